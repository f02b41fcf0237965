"""
Configuration constants for C++ declaration extraction.

Defines the tree-sitter node type strings used to build the declaration graph.
"""

from typing import Dict, Set

# Class-like specifiers that become ClassDecl nodes
CLASS_SPECIFIERS: Set[str] = {
    "class_specifier",
    "struct_specifier",
}

# Function node types
FUNCTION_DEFINITION: str = "function_definition"
FUNCTION_DECLARATOR: str = "function_declarator"

# Template wrapper node type
TEMPLATE_WRAPPER: str = "template_declaration"

# Namespace definition node type
NAMESPACE_NODE: str = "namespace_definition"

# Member list of a class/struct body
FIELD_LIST: str = "field_declaration_list"
FIELD_DECLARATION: str = "field_declaration"

# Declaration node types that can wrap a class specifier or a prototype
DECLARATION_NODES: Set[str] = {
    "declaration",
    "type_definition",
}

# Wrapper types that should be treated as transparent
TRANSPARENT_WRAPPERS: Set[str] = {
    "linkage_specification",  # extern "C" { ... }
}

# Preprocessor directives that may contain code we need to traverse
PREPROCESSOR_CONTAINERS: Set[str] = {
    "preproc_ifdef",
    "preproc_ifndef",
    "preproc_if",
    "preproc_elif",
    "preproc_else",
}

# Macro definitions
MACRO_DEFINITION: str = "preproc_def"
FUNCTION_MACRO_DEFINITION: str = "preproc_function_def"

# Specifier keywords recorded on methods
VIRTUAL_SPECIFIER: str = "virtual"
STATIC_SPECIFIER: str = "static"

# Files the extractor accepts
HEADER_EXTENSIONS: Set[str] = {".h", ".hpp", ".hxx"}
SOURCE_EXTENSIONS: Set[str] = {".cpp", ".cc", ".cxx", ".c"}
CPP_EXTENSIONS: Set[str] = HEADER_EXTENSIONS | SOURCE_EXTENSIONS

# Leading macro tokens that break class parsing (COM interface headers)
CLASS_DECORATOR_MACROS: Set[str] = {
    "MIDL_INTERFACE",
    "DECLSPEC_UUID",
    "DECLSPEC_NOVTABLE",
    "SPOUT_DLLEXP",
}

# Call-like macros that expand to a class key: MIDL_INTERFACE("uuid") -> struct
CLASS_KEY_MACROS: Dict[str, str] = {
    "MIDL_INTERFACE": "struct",
}

# Call-like macros that expand to attributes only
ATTRIBUTE_CALL_MACROS: Set[str] = {
    "DECLSPEC_UUID",
}

# Bare attribute, export and calling-convention macros
ATTRIBUTE_MACROS: Set[str] = {
    "DECLSPEC_NOVTABLE",
    "SPOUT_DLLEXP",
    "STDMETHODCALLTYPE",
    "STDAPICALLTYPE",
    "WINAPI",
    "APIENTRY",
    "__stdcall",
    "__cdecl",
    "BEGIN_INTERFACE",
    "END_INTERFACE",
}
