"""Generator configuration contract.

All filesystem discovery inputs, module layout, rule lists and output options
for a run live in one frozen ``GeneratorConfig``. It is built once at startup
(from built-in SpoutDX defaults or a YAML/JSON file) and handed to the
resolver, configurator and pipeline as a parameter.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_WINDOWS_SDK_ROOT = r"C:\Program Files (x86)\Windows Kits\10"

DEFAULT_DENY_PREFIXES: tuple[str, ...] = (
    "ID3D11",
    "ID3D10",
    "_D3D10",
    "BasicString",
    "IProvideClassInfo",
    "ISimpleFrameSite",
    "IPictureDisp",
    "IObjectWithSite",
    "IFont",
    "tagCALPOLESTR",
)

DEFAULT_ALLOW_EXACT: tuple[str, ...] = (
    "ID3D11Device",
    "ID3D11Texture2D",
    "ID3D11DeviceContext",
    "D3D11SHADER_RESOURCE_VIEW_DESC",
    "D3D11UNORDERED_ACCESS_VIEW_DESC",
    "D3D11RENDER_TARGET_VIEW_DESC",
    "SpoutDX",
)

DEFAULT_NAMESPACE_RENAMES: dict[str, str] = {"Std": "Spout.Std"}

OUTPUT_MODES = ("file_per_module", "file_per_unit")


@dataclass(frozen=True)
class SearchConfig:
    """Directory names located by upward walk from the start directory."""

    sdk_source_dir: str = "Spout2"
    interop_dir: str = "SpoutDX"
    build_dir: str = "BUILD"


@dataclass(frozen=True)
class LayoutConfig:
    """Where the module's inputs live, relative to the resolved roots."""

    header_subdirs: tuple[str, ...] = (
        "SPOUTSDK/SpoutDirectX/SpoutDX",
        "SPOUTSDK/SpoutGL",
    )
    source_subdirs: tuple[str, ...] = ("SPOUTSDK/SpoutDirectX/SpoutDX",)
    header_extensions: tuple[str, ...] = (".h", ".hpp")
    source_extensions: tuple[str, ...] = (".cpp",)
    sdk_headers: tuple[str, ...] = ("d3d11.h",)
    sdk_lib_subdir: str = "um/x64"
    build_lib_subdir: str = "Binaries/x64"
    libraries: tuple[str, ...] = ("Spout.lib", "SpoutDX.lib")


@dataclass(frozen=True)
class FilterConfig:
    """Deny prefixes and exact-name allow overrides for the class filter."""

    deny_prefixes: tuple[str, ...] = DEFAULT_DENY_PREFIXES
    allow_exact: tuple[str, ...] = DEFAULT_ALLOW_EXACT


@dataclass(frozen=True)
class OutputConfig:
    """Options handed to the emitter and downstream compiler."""

    output_dir: Optional[str] = None
    compile_code: bool = False
    generate_finalizers: bool = True
    output_mode: str = "file_per_module"
    generate_debug_output: bool = True
    debug_mode: bool = True


@dataclass(frozen=True)
class GeneratorConfig:
    """Top-level generator configuration."""

    module_name: str = "SpoutDX"
    start_dir: Optional[str] = None
    windows_sdk_root: str = DEFAULT_WINDOWS_SDK_ROOT
    search: SearchConfig = field(default_factory=SearchConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    namespace_renames: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_NAMESPACE_RENAMES)
    )
    output: OutputConfig = field(default_factory=OutputConfig)


def _expect_dict(payload: Any, ctx: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ConfigurationError(f"{ctx} must be an object")
    return payload


def _string_tuple(payload: dict[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = payload.get(key)
    if raw is None:
        return default
    if not isinstance(raw, list):
        raise ConfigurationError(f"'{key}' must be a list of strings")
    values = tuple(str(item).strip() for item in raw)
    if any(not value for value in values):
        raise ConfigurationError(f"'{key}' contains an empty entry")
    return values


def _string(payload: dict[str, Any], key: str, default: str) -> str:
    raw = payload.get(key)
    if raw is None:
        return default
    value = str(raw).strip()
    if not value:
        raise ConfigurationError(f"'{key}' must not be empty")
    return value


def _load_payload(path: str) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(f"Config file not found: {config_path}")

    text = config_path.read_text(encoding="utf-8")
    try:
        if config_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to parse config {config_path}: {exc}") from exc

    if payload is None:
        logger.warning("Config file %s is empty; using defaults", config_path)
        return {}
    return _expect_dict(payload, "config")


def _parse_search(payload: dict[str, Any]) -> SearchConfig:
    defaults = SearchConfig()
    return SearchConfig(
        sdk_source_dir=_string(payload, "sdk_source_dir", defaults.sdk_source_dir),
        interop_dir=_string(payload, "interop_dir", defaults.interop_dir),
        build_dir=_string(payload, "build_dir", defaults.build_dir),
    )


def _parse_layout(payload: dict[str, Any]) -> LayoutConfig:
    defaults = LayoutConfig()
    return LayoutConfig(
        header_subdirs=_string_tuple(payload, "header_subdirs", defaults.header_subdirs),
        source_subdirs=_string_tuple(payload, "source_subdirs", defaults.source_subdirs),
        header_extensions=_string_tuple(
            payload, "header_extensions", defaults.header_extensions
        ),
        source_extensions=_string_tuple(
            payload, "source_extensions", defaults.source_extensions
        ),
        sdk_headers=_string_tuple(payload, "sdk_headers", defaults.sdk_headers),
        sdk_lib_subdir=_string(payload, "sdk_lib_subdir", defaults.sdk_lib_subdir),
        build_lib_subdir=_string(payload, "build_lib_subdir", defaults.build_lib_subdir),
        libraries=_string_tuple(payload, "libraries", defaults.libraries),
    )


def _parse_output(payload: dict[str, Any]) -> OutputConfig:
    defaults = OutputConfig()
    output_mode = _string(payload, "output_mode", defaults.output_mode)
    if output_mode not in OUTPUT_MODES:
        raise ConfigurationError(
            f"output_mode must be one of {', '.join(OUTPUT_MODES)}, got '{output_mode}'"
        )
    output_dir = payload.get("output_dir")
    return OutputConfig(
        output_dir=str(output_dir) if output_dir is not None else None,
        compile_code=bool(payload.get("compile_code", defaults.compile_code)),
        generate_finalizers=bool(
            payload.get("generate_finalizers", defaults.generate_finalizers)
        ),
        output_mode=output_mode,
        generate_debug_output=bool(
            payload.get("generate_debug_output", defaults.generate_debug_output)
        ),
        debug_mode=bool(payload.get("debug_mode", defaults.debug_mode)),
    )


def _parse_renames(raw: Any) -> dict[str, str]:
    if raw is None:
        return dict(GeneratorConfig().namespace_renames)
    renames = _expect_dict(raw, "namespace_renames")
    parsed: dict[str, str] = {}
    for source, target in renames.items():
        source_name = str(source).strip()
        target_name = str(target).strip() if target is not None else ""
        if not source_name or not target_name:
            raise ConfigurationError("namespace_renames entries must be non-empty")
        parsed[source_name] = target_name
    return parsed


def parse_generator_config(payload: dict[str, Any]) -> GeneratorConfig:
    """Build a ``GeneratorConfig`` from a decoded YAML/JSON payload."""
    payload = _expect_dict(payload, "config")
    defaults = GeneratorConfig()

    filter_payload = _expect_dict(payload.get("filter", {}), "filter")
    start_dir = payload.get("start_dir")

    return GeneratorConfig(
        module_name=_string(payload, "module_name", defaults.module_name),
        start_dir=str(start_dir) if start_dir is not None else None,
        windows_sdk_root=_string(payload, "windows_sdk_root", defaults.windows_sdk_root),
        search=_parse_search(_expect_dict(payload.get("search", {}), "search")),
        layout=_parse_layout(_expect_dict(payload.get("layout", {}), "layout")),
        filter=FilterConfig(
            deny_prefixes=_string_tuple(
                filter_payload, "deny_prefixes", DEFAULT_DENY_PREFIXES
            ),
            allow_exact=_string_tuple(filter_payload, "allow_exact", DEFAULT_ALLOW_EXACT),
        ),
        namespace_renames=_parse_renames(payload.get("namespace_renames")),
        output=_parse_output(_expect_dict(payload.get("output", {}), "output")),
    )


def load_generator_config(path: Optional[str] = None) -> GeneratorConfig:
    """Load generator configuration from YAML/JSON, or the SpoutDX defaults."""
    if path is None:
        logger.info("No config file given; using built-in SpoutDX profile")
        return GeneratorConfig()
    config = parse_generator_config(_load_payload(path))
    logger.info("Loaded generator config for module '%s' from %s", config.module_name, path)
    return config
