#!/usr/bin/env python3
"""
Binding generator run harness.

Resolves the SpoutDX source, build and Windows SDK directories, configures
the module, extracts declarations, runs filter -> passes -> renamer and
writes the declaration manifests plus a run report.

Usage:
    python run_bindgen.py
    python run_bindgen.py --config spoutdx.yml --start-dir ./Spout2/BINDINGS
    python run_bindgen.py --config spoutdx.yml --dry-run --log-level DEBUG
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Any, Optional

from bindgen.decl_filter import FilterDecision, FilterRuleSet
from bindgen.emitter import emit_declarations
from bindgen.module_config import build_generation_options, build_module
from bindgen.pipeline import build_pipeline
from core.errors import BindgenError
from core.generator_config import GeneratorConfig, load_generator_config
from core.path_resolver import resolve_paths
from core.run_artifacts import DEFAULT_REPORT_DIR, write_run_report
from core.structured_logging import (
    configure_structured_logging,
    phase_scope,
    set_module_name,
    set_run_id,
)
from extraction.extractor import extract_module

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate the SpoutDX managed binding declarations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python run_bindgen.py\n"
            "  python run_bindgen.py --config spoutdx.yml --dry-run\n"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Generator config (YAML/JSON). Built-in SpoutDX profile if omitted.",
    )
    parser.add_argument(
        "--start-dir",
        default=None,
        help=(
            "Directory the upward directory search starts from; overrides the "
            "config start_dir (default: cwd)."
        ),
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Override the manifest output directory (default: SpoutDX tree).",
    )
    parser.add_argument(
        "--report-dir",
        default=DEFAULT_REPORT_DIR,
        help=f"Directory for the JSON run report. Default: {DEFAULT_REPORT_DIR}",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: INFO",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the pipeline but do not write manifests.",
    )
    return parser.parse_args(argv)


def run_generation(
    config: GeneratorConfig,
    start_dir: Optional[str] = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    """Run one generation end to end and return the report payload.

    Raises:
        BindgenError: On the first failure; nothing is written in that case.
    """
    with phase_scope("resolve"):
        paths = resolve_paths(config, start_dir)

    with phase_scope("configure"):
        descriptor = build_module(config, paths)
        options = build_generation_options(config, paths)

    with phase_scope("extract"):
        graph, stats = extract_module(descriptor)

    decisions: list[FilterDecision] = []
    renamed: list[tuple[str, str]] = []
    pipeline = build_pipeline(
        FilterRuleSet.from_patterns(config.filter.deny_prefixes, config.filter.allow_exact),
        renames=config.namespace_renames,
        decisions=decisions,
        renamed=renamed,
    )
    graph = pipeline.run(graph)

    written = []
    if dry_run:
        logger.info("Dry run: skipping manifest output")
    else:
        with phase_scope("emit"):
            written = emit_declarations(graph, descriptor, options)

    return {
        "status": "success",
        "module": descriptor.name,
        "paths": paths.to_dict(),
        "descriptor": descriptor.to_dict(),
        "options": options.to_dict(),
        "extraction": stats.to_dict(),
        "filter": {
            "evaluated": len(decisions),
            "ignored": sorted({d.name for d in decisions if d.ignore}),
            "overridden": sorted(
                {d.name for d in decisions if not d.ignore and d.matched_rule is not None}
            ),
        },
        "renamed_namespaces": [list(pair) for pair in renamed],
        "stages": pipeline.executed_stages,
        "outputs": [str(path) for path in written],
        "dry_run": dry_run,
    }


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_structured_logging(getattr(logging, args.log_level))
    run_id = set_run_id()

    try:
        config = load_generator_config(args.config)
        if args.output_dir:
            config = replace(config, output=replace(config.output, output_dir=args.output_dir))
        set_module_name(config.module_name)

        report = run_generation(config, start_dir=args.start_dir, dry_run=args.dry_run)
        path = write_run_report(report, run_id, output_dir=args.report_dir)
        logger.info("Generation finished; report written to %s", path)
        return 0

    except BindgenError as e:
        logger.error("%s: %s", type(e).__name__, e)
        write_run_report(
            {"status": "failed", "error": str(e), "error_type": type(e).__name__},
            run_id,
            output_dir=args.report_dir,
        )
        return 1
    except Exception as e:
        logger.error("Generation failed: %s", e, exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
