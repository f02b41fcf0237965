"""Module configurator: turns resolved paths into the extraction inputs.

Header and code files are selected by scanning configured directories (one
level, no recursion) and keeping names with a recognized extension. Adding
or removing a header in the native tree therefore changes the generated
surface without any change here; the declaration filter constrains the
result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

from core.errors import ConfigurationError
from core.generator_config import GeneratorConfig
from core.path_resolver import ResolvedPaths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleDescriptor:
    """Complete input description of one binding module."""

    name: str
    include_dirs: tuple[Path, ...]
    headers: tuple[Path, ...]
    code_files: tuple[Path, ...]
    library_dirs: tuple[Path, ...]
    libraries: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "include_dirs": [str(p) for p in self.include_dirs],
            "headers": [str(p) for p in self.headers],
            "code_files": [str(p) for p in self.code_files],
            "library_dirs": [str(p) for p in self.library_dirs],
            "libraries": list(self.libraries),
        }


@dataclass(frozen=True)
class GenerationOptions:
    """Target and output options for the generator and downstream compiler."""

    output_dir: Path
    compile_code: bool = False
    generate_finalizers: bool = True
    output_mode: str = "file_per_module"
    generate_debug_output: bool = True
    debug_mode: bool = True
    platform: str = "windows"
    target: str = "shared_library"

    def to_dict(self) -> dict[str, Any]:
        return {
            "output_dir": str(self.output_dir),
            "compile_code": self.compile_code,
            "generate_finalizers": self.generate_finalizers,
            "output_mode": self.output_mode,
            "generate_debug_output": self.generate_debug_output,
            "debug_mode": self.debug_mode,
            "platform": self.platform,
            "target": self.target,
        }


def _unique(items: Iterable[Any]) -> tuple:
    return tuple(dict.fromkeys(items))


def _require_dir(path: Path, role: str) -> Path:
    if not path.is_dir():
        raise ConfigurationError(f"{role} directory does not exist: {path}")
    return path


def scan_directory(directory: Path, extensions: Sequence[str]) -> list[Path]:
    """List files directly inside ``directory`` whose names end in ``extensions``.

    Raises:
        ConfigurationError: If ``directory`` does not exist.
    """
    _require_dir(directory, "Scanned")
    suffixes = tuple(extensions)
    return sorted(
        entry
        for entry in directory.iterdir()
        if entry.is_file() and entry.name.endswith(suffixes)
    )


def build_module(config: GeneratorConfig, paths: ResolvedPaths) -> ModuleDescriptor:
    """Assemble the ModuleDescriptor for ``config.module_name``.

    Raises:
        ConfigurationError: If an include, header or source directory, or a
            configured SDK header, does not exist.
    """
    layout = config.layout
    sdk_include = _require_dir(paths.windows_include_dir, "Windows SDK include")
    header_dirs = [
        _require_dir(paths.sdk_source_root / subdir, "Header")
        for subdir in layout.header_subdirs
    ]
    source_dirs = [
        _require_dir(paths.sdk_source_root / subdir, "Source")
        for subdir in layout.source_subdirs
    ]

    headers: list[Path] = []
    for directory in header_dirs:
        found = scan_directory(directory, layout.header_extensions)
        logger.debug("Headers in %s: %s", directory, [p.name for p in found])
        headers.extend(found)

    for header_name in layout.sdk_headers:
        sdk_header = sdk_include / header_name
        if not sdk_header.is_file():
            raise ConfigurationError(f"SDK header not found: {sdk_header}")
        headers.append(sdk_header)

    code_files: list[Path] = []
    for directory in source_dirs:
        code_files.extend(scan_directory(directory, layout.source_extensions))

    library_dirs = (
        paths.windows_lib_dir(layout.sdk_lib_subdir),
        paths.build_root / layout.build_lib_subdir,
    )
    for library_dir in library_dirs:
        if not library_dir.is_dir():
            logger.warning("Library directory does not exist (yet): %s", library_dir)

    descriptor = ModuleDescriptor(
        name=config.module_name,
        include_dirs=_unique([sdk_include, *header_dirs]),
        headers=_unique(headers),
        code_files=_unique(code_files),
        library_dirs=_unique(library_dirs),
        libraries=_unique(layout.libraries),
    )
    logger.info(
        "Configured module '%s': %d include dirs, %d headers, %d code files, %d libraries",
        descriptor.name,
        len(descriptor.include_dirs),
        len(descriptor.headers),
        len(descriptor.code_files),
        len(descriptor.libraries),
    )
    return descriptor


def build_generation_options(
    config: GeneratorConfig,
    paths: ResolvedPaths,
) -> GenerationOptions:
    """Generation options; output goes to the interop module tree by default."""
    output = config.output
    output_dir = Path(output.output_dir) if output.output_dir else paths.interop_root
    return GenerationOptions(
        output_dir=output_dir,
        compile_code=output.compile_code,
        generate_finalizers=output.generate_finalizers,
        output_mode=output.output_mode,
        generate_debug_output=output.generate_debug_output,
        debug_mode=output.debug_mode,
    )
