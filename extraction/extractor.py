"""
High-level orchestrator for module declaration extraction.

Parses every header and code file of a ModuleDescriptor and assembles the
resulting translation units into one DeclarationGraph.
"""

import logging
import os
from typing import TYPE_CHECKING, Collection, Dict, Iterable, List, Optional, Tuple

from core.errors import ConfigurationError
from extraction.config import CPP_EXTENSIONS
from extraction.models import DeclarationGraph, TranslationUnit
from extraction.parser import count_error_nodes, parse_file
from extraction.traversal import build_translation_unit

if TYPE_CHECKING:
    from bindgen.module_config import ModuleDescriptor

logger = logging.getLogger(__name__)


class ExtractionStats:
    """Statistics for an extraction operation."""

    def __init__(self):
        self.files_processed = 0
        self.files_failed = 0
        self.namespaces = 0
        self.classes = 0
        self.functions = 0
        self.macros = 0
        self.parse_errors = 0

    def record(self, unit: TranslationUnit) -> None:
        self.files_processed += 1
        self.namespaces += len(unit.namespaces)
        self.classes += sum(1 for _ in unit.iter_classes(include_ignored=True))
        self.functions += len(unit.functions)
        self.macros += len(unit.macros)
        self.parse_errors += unit.parse_error_count

    def to_dict(self) -> Dict[str, int]:
        """Convert stats to dictionary."""
        return {
            "files_processed": self.files_processed,
            "files_failed": self.files_failed,
            "namespaces": self.namespaces,
            "classes": self.classes,
            "functions": self.functions,
            "macros": self.macros,
            "parse_errors": self.parse_errors,
        }

    def __str__(self) -> str:
        return (
            f"ExtractionStats(processed={self.files_processed}, "
            f"failed={self.files_failed}, classes={self.classes}, "
            f"functions={self.functions}, parse_errors={self.parse_errors})"
        )


def extract_unit(
    file_path: str,
    extensions: Optional[Collection[str]] = CPP_EXTENSIONS,
) -> TranslationUnit:
    """Extract the declarations of a single header or source file.

    Args:
        file_path: File to parse.
        extensions: Accepted suffixes, or None when the caller has already
            selected the file (module headers and code files).

    Raises:
        ConfigurationError: If the file does not exist or its suffix is not
            accepted.
    """
    file_path = os.path.abspath(file_path)
    if not os.path.isfile(file_path):
        raise ConfigurationError(f"Module input file not found: {file_path}")

    ext = os.path.splitext(file_path)[1]
    if extensions is not None and ext not in extensions:
        raise ConfigurationError(
            f"File {file_path} is not a C++ header or source file. "
            f"Expected one of: {sorted(extensions)}"
        )

    tree, source_bytes = parse_file(file_path)
    unit = build_translation_unit(tree, source_bytes, file_path)
    unit.parse_error_count = count_error_nodes(tree)
    if unit.parse_error_count:
        logger.warning(
            "File %s contains syntax errors (%d error nodes)",
            file_path,
            unit.parse_error_count,
        )
    return unit


def extract_files(
    files: Iterable[str],
    continue_on_error: bool = False,
    extensions: Optional[Collection[str]] = CPP_EXTENSIONS,
) -> Tuple[DeclarationGraph, ExtractionStats]:
    """Extract a DeclarationGraph from an ordered list of files.

    Args:
        files: Header and code files, in the order their units should appear.
        continue_on_error: If True, unreadable files are counted and skipped.
            A generation run leaves this off so a partial graph is never
            emitted.
        extensions: Accepted suffixes, passed to extract_unit.

    Returns:
        A tuple of (graph, stats).
    """
    graph = DeclarationGraph()
    stats = ExtractionStats()

    for file_path in files:
        try:
            unit = extract_unit(str(file_path), extensions=extensions)
        except (ConfigurationError, OSError) as e:
            logger.error("Failed to extract %s: %s", file_path, e)
            stats.files_failed += 1
            if not continue_on_error:
                raise
            continue
        graph.units.append(unit)
        stats.record(unit)

    logger.info("Extraction complete: %s", stats)
    return graph, stats


def extract_module(
    descriptor: "ModuleDescriptor",
    continue_on_error: bool = False,
) -> Tuple[DeclarationGraph, ExtractionStats]:
    """Extract the declaration graph for a module.

    Headers are parsed first, then code files. Include and library
    directories are recorded in the descriptor for the downstream compiler;
    tree-sitter does not preprocess, so they are not consulted here.

    The descriptor's file lists are taken as given; their suffixes are not
    checked again here.
    """
    files: List[str] = [str(path) for path in descriptor.headers]
    files.extend(str(path) for path in descriptor.code_files)
    logger.info(
        "Extracting module '%s': %d headers, %d code files",
        descriptor.name,
        len(descriptor.headers),
        len(descriptor.code_files),
    )
    return extract_files(files, continue_on_error=continue_on_error, extensions=None)
