"""
Tree-sitter parser initialization and file parsing utilities.

This module provides functions to initialize the C++ parser and parse
header and source files into syntax trees.
"""

import logging
import re
from typing import Iterable, Tuple

import tree_sitter_cpp as tscpp
from tree_sitter import Language, Node, Parser, Tree

from extraction.config import ATTRIBUTE_CALL_MACROS, ATTRIBUTE_MACROS, CLASS_KEY_MACROS

logger = logging.getLogger(__name__)

# Module-level language constant
CPP_LANGUAGE = Language(tscpp.language())


def _alternation(names: Iterable[str]) -> bytes:
    return b"|".join(re.escape(name.encode("ascii")) for name in sorted(names))


_CLASS_KEY_RE = re.compile(rb"\b(%s)[ \t]*\([^()\n]*\)" % _alternation(CLASS_KEY_MACROS))
_ATTRIBUTE_RE = re.compile(
    rb"\b(?:%s)[ \t]*\([^()\n]*\)" % _alternation(ATTRIBUTE_CALL_MACROS)
    + rb"|\b(?:%s)\b" % _alternation(ATTRIBUTE_MACROS)
    # SAL annotations: _In_, _Out_opt_, _COM_Outptr_, _Out_writes_(n)
    + rb"|\b_[A-Z][A-Za-z_]*[a-z][A-Za-z_]*_(?!\w)(?:[ \t]*\([^()\n]*\))?"
)


def _in_directive(match: "re.Match[bytes]") -> bool:
    line_start = match.string.rfind(b"\n", 0, match.start()) + 1
    return match.string[line_start:match.start()].lstrip().startswith(b"#")


def _class_key(match: "re.Match[bytes]") -> bytes:
    if _in_directive(match):
        return match.group(0)
    key = CLASS_KEY_MACROS[match.group(1).decode("ascii")].encode("ascii")
    return key.ljust(len(match.group(0)))


def _blank(match: "re.Match[bytes]") -> bytes:
    if _in_directive(match):
        return match.group(0)
    return b" " * len(match.group(0))


def mask_declaration_macros(source: bytes) -> bytes:
    """Replace COM and export decoration macros with what they expand to.

    ``MIDL_INTERFACE("uuid")`` becomes ``struct``; attribute, calling
    convention and SAL annotation macros become blanks. Replacements are
    padded with spaces so byte offsets and line numbers are unchanged.
    Preprocessor directive lines are left as written.

    Example:
        >>> mask_declaration_macros(b'MIDL_INTERFACE("x") IFoo')
        b'struct              IFoo'
    """
    masked = _CLASS_KEY_RE.sub(_class_key, source)
    return _ATTRIBUTE_RE.sub(_blank, masked)


def create_parser() -> Parser:
    """Create a tree-sitter parser for C++."""
    parser = Parser(CPP_LANGUAGE)
    logger.debug("Created tree-sitter C++ parser")
    return parser


def parse_bytes(source: bytes) -> Tree:
    """Parse raw bytes of C++ source code.

    Decoration macros are masked first (see ``mask_declaration_macros``), so
    node offsets index equally into the raw and the masked source.

    Args:
        source: UTF-8 encoded bytes of C++ source code.

    Returns:
        The parsed syntax tree.

    Raises:
        TypeError: If source is not bytes.

    Example:
        >>> tree = parse_bytes(b"class SpoutDX {};")
        >>> tree.root_node.type
        'translation_unit'
    """
    if not isinstance(source, bytes):
        raise TypeError(f"Source must be bytes, got {type(source).__name__}")

    tree = create_parser().parse(mask_declaration_macros(source))
    logger.debug("Parsed %d bytes of C++ code", len(source))
    return tree


def parse_file(file_path: str) -> Tuple[Tree, bytes]:
    """Parse a C++ header or source file from disk.

    Returns:
        A tuple of (tree, source_bytes), with decoration macros masked in
        source_bytes.

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: If the file cannot be read.
    """
    try:
        with open(file_path, "rb") as f:
            source_bytes = f.read()
    except FileNotFoundError:
        logger.error("File not found: %s", file_path)
        raise
    except OSError as e:
        logger.error("Error reading file %s: %s", file_path, e)
        raise

    source_bytes = mask_declaration_macros(source_bytes)
    tree = parse_bytes(source_bytes)
    if tree.root_node.has_error:
        logger.warning("File %s contains syntax errors", file_path)

    logger.debug("Parsed file: %s", file_path)
    return tree, source_bytes


def count_error_nodes(tree: Tree) -> int:
    """Count ERROR and missing nodes in a parsed tree."""
    count = 0
    stack: list[Node] = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            count += 1
        stack.extend(node.children)
    return count
