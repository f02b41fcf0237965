"""Core shared contracts and utilities."""

from core.errors import (
    BindgenError,
    ConfigurationError,
    DirectoryNotFoundError,
    GenerationError,
)
from core.structured_logging import (
    configure_structured_logging,
    get_run_id,
    phase_scope,
    set_module_name,
    set_run_id,
)
from core.generator_config import (
    GeneratorConfig,
    load_generator_config,
    parse_generator_config,
)
from core.path_resolver import (
    ResolvedPaths,
    resolve_latest_version,
    resolve_named_directory,
    resolve_paths,
)
from core.run_artifacts import write_run_report

__all__ = [
    "BindgenError",
    "ConfigurationError",
    "DirectoryNotFoundError",
    "GenerationError",
    "configure_structured_logging",
    "get_run_id",
    "phase_scope",
    "set_module_name",
    "set_run_id",
    "GeneratorConfig",
    "load_generator_config",
    "parse_generator_config",
    "ResolvedPaths",
    "resolve_latest_version",
    "resolve_named_directory",
    "resolve_paths",
    "write_run_report",
]
