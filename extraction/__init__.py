"""
Declaration extraction engine.

Tree-sitter-based C++ header/source parser that builds the declaration
graph (namespaces, classes, functions, macros) of a binding module.
"""

from extraction.models import (
    ClassDecl,
    Declaration,
    DeclarationGraph,
    FieldDecl,
    FunctionDecl,
    MacroDefinition,
    Namespace,
    Parameter,
    TranslationUnit,
)
from extraction.parser import (
    create_parser,
    parse_file,
    parse_bytes,
    count_error_nodes,
    mask_declaration_macros,
)
from extraction.traversal import build_translation_unit
from extraction.extractor import (
    extract_unit,
    extract_files,
    extract_module,
    ExtractionStats,
)

__all__ = [
    # Data models
    "ClassDecl",
    "Declaration",
    "DeclarationGraph",
    "FieldDecl",
    "FunctionDecl",
    "MacroDefinition",
    "Namespace",
    "Parameter",
    "TranslationUnit",
    "ExtractionStats",
    # Low-level parsing
    "create_parser",
    "parse_file",
    "parse_bytes",
    "count_error_nodes",
    "mask_declaration_macros",
    # Mid-level extraction
    "build_translation_unit",
    # High-level orchestration
    "extract_unit",
    "extract_files",
    "extract_module",
]
