"""Filesystem discovery for SDK roots and sibling source trees.

Two lookups are supported:

* a named directory, found by walking upward from a start directory until an
  ancestor (the start directory included) has a child with that name;
* the latest version directory under a versioned SDK root.

The version pick orders directory names by plain string comparison, not by
semantic version. ``"9"`` sorts above ``"10"``, so SDK roots must use names
that are lexically monotonic with their versions (Windows Kits ``10.0.x.0``
names are).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from core.errors import DirectoryNotFoundError
from core.generator_config import GeneratorConfig

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


@dataclass(frozen=True)
class ResolvedPaths:
    """Directories located once at startup and passed to later stages."""

    sdk_source_root: Path
    interop_root: Path
    build_root: Path
    windows_sdk_root: Path
    windows_sdk_version: str

    @property
    def windows_include_dir(self) -> Path:
        return self.windows_sdk_root / "Include" / self.windows_sdk_version / "um"

    def windows_lib_dir(self, subdir: str = "um/x64") -> Path:
        return self.windows_sdk_root / "Lib" / self.windows_sdk_version / subdir

    def to_dict(self) -> dict[str, str]:
        return {
            "sdk_source_root": str(self.sdk_source_root),
            "interop_root": str(self.interop_root),
            "build_root": str(self.build_root),
            "windows_sdk_root": str(self.windows_sdk_root),
            "windows_sdk_version": self.windows_sdk_version,
        }


def resolve_named_directory(start_dir: PathLike, target_name: str) -> Path:
    """Find ``target_name`` as a child of ``start_dir`` or its nearest ancestor.

    Args:
        start_dir: First candidate; its parents are tried in order after it.
            ``..`` segments are collapsed first, so the walk follows the
            normalized path rather than the spelled one.
        target_name: Name of the child directory to look for.

    Returns:
        Path of the matching child of the nearest candidate.

    Raises:
        DirectoryNotFoundError: If the walk reaches the filesystem root
            without a match.
    """
    start = Path(os.path.abspath(start_dir))
    for candidate in (start, *start.parents):
        path = candidate / target_name
        if path.is_dir():
            logger.info("Found '%s': %s", target_name, path)
            return path

    raise DirectoryNotFoundError(
        f"directory for '{target_name}' was not found above {start}"
    )


def resolve_latest_version(sdk_root: PathLike) -> str:
    """Return the greatest child directory name of ``sdk_root``.

    Names are compared as strings (descending), so the result is only the
    newest version when names are lexically ordered like their versions.

    Raises:
        DirectoryNotFoundError: If ``sdk_root`` is missing or has no child
            directories.
    """
    root = Path(sdk_root)
    if not root.is_dir():
        raise DirectoryNotFoundError(f"SDK root not found: {root}")

    names = sorted((entry.name for entry in root.iterdir() if entry.is_dir()), reverse=True)
    if not names:
        raise DirectoryNotFoundError(f"SDK root {root} has no version directories")

    logger.debug("Version directories under %s (lexical order): %s", root, names)
    return names[0]


def resolve_paths(
    config: GeneratorConfig,
    start_dir: Optional[PathLike] = None,
) -> ResolvedPaths:
    """Resolve every directory a run needs.

    The start directory is taken from ``start_dir`` (the command line), then
    ``config.start_dir``, then the current working directory.
    """
    if start_dir is not None:
        start = Path(start_dir)
    elif config.start_dir is not None:
        start = Path(config.start_dir)
    else:
        start = Path.cwd()
    logger.info("Resolving directories from %s", start)

    sdk_source_root = resolve_named_directory(start, config.search.sdk_source_dir)
    interop_root = resolve_named_directory(start, config.search.interop_dir)
    build_root = resolve_named_directory(start, config.search.build_dir)

    windows_sdk_root = Path(config.windows_sdk_root)
    version = resolve_latest_version(windows_sdk_root / "Include")
    logger.info("Using Windows SDK %s in %s", version, windows_sdk_root)

    return ResolvedPaths(
        sdk_source_root=sdk_source_root,
        interop_root=interop_root,
        build_root=build_root,
        windows_sdk_root=windows_sdk_root,
        windows_sdk_version=version,
    )
