"""Declaration manifest writer.

The managed-code generator consumes JSON manifests of the surviving
declarations. Ignored declarations are left out entirely.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from bindgen.module_config import GenerationOptions, ModuleDescriptor
from extraction.models import DeclarationGraph, TranslationUnit

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".bindings.json"


def _write_json(path: Path, payload: dict[str, Any]) -> Path:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


def _header(descriptor: ModuleDescriptor, options: GenerationOptions) -> dict[str, Any]:
    return {
        "module": descriptor.to_dict(),
        "options": options.to_dict(),
    }


def _unit_stem(unit: TranslationUnit, used: set[str]) -> str:
    stem = Path(unit.file_path).name.replace(".", "_")
    candidate = stem
    index = 1
    while candidate in used:
        index += 1
        candidate = f"{stem}_{index}"
    used.add(candidate)
    return candidate


def emit_declarations(
    graph: DeclarationGraph,
    descriptor: ModuleDescriptor,
    options: GenerationOptions,
) -> list[Path]:
    """Write the declaration manifests and return their paths.

    ``file_per_module`` writes ``<module>.bindings.json``;
    ``file_per_unit`` writes one manifest per translation unit.
    """
    output_dir = Path(options.output_dir)
    os.makedirs(output_dir, exist_ok=True)
    written: list[Path] = []

    if options.output_mode == "file_per_unit":
        used: set[str] = set()
        for unit in graph.units:
            payload = _header(descriptor, options)
            payload["units"] = [unit.to_dict()]
            path = output_dir / f"{_unit_stem(unit, used)}{MANIFEST_SUFFIX}"
            written.append(_write_json(path, payload))
    else:
        payload = _header(descriptor, options)
        payload.update(graph.to_dict())
        path = output_dir / f"{descriptor.name}{MANIFEST_SUFFIX}"
        written.append(_write_json(path, payload))

    logger.info("Wrote %d declaration manifest(s) to %s", len(written), output_dir)
    return written
