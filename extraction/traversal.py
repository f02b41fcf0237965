"""
Syntax tree traversal that builds a TranslationUnit.

Walks a tree-sitter C++ tree and records namespaces, classes/structs (with
their public members), free functions and ``#define`` macros. Only
declarations are recorded; function bodies and expressions are not inspected.
"""

import logging
import re
from typing import List, Optional, Tuple, Union

from tree_sitter import Node, Tree

from extraction.config import (
    CLASS_DECORATOR_MACROS,
    CLASS_SPECIFIERS,
    DECLARATION_NODES,
    FIELD_DECLARATION,
    FIELD_LIST,
    FUNCTION_DECLARATOR,
    FUNCTION_DEFINITION,
    FUNCTION_MACRO_DEFINITION,
    MACRO_DEFINITION,
    NAMESPACE_NODE,
    PREPROCESSOR_CONTAINERS,
    STATIC_SPECIFIER,
    TEMPLATE_WRAPPER,
    TRANSPARENT_WRAPPERS,
    VIRTUAL_SPECIFIER,
)
from extraction.models import (
    ClassDecl,
    FieldDecl,
    FunctionDecl,
    MacroDefinition,
    Namespace,
    Parameter,
    TranslationUnit,
)
from extraction.parser import parse_bytes

logger = logging.getLogger(__name__)

Scope = Union[TranslationUnit, Namespace]

_SPACE_RE = re.compile(r"\s+")
_PURE_RE = re.compile(r"=\s*0\s*;?\s*$")
_DECORATED_CLASS_RE = re.compile(
    r"^\s*(?:(class|struct)\s+)?"
    r"((?:[A-Z_][A-Z0-9_]*\s*(?:\([^)]*\))?\s+)+)?"
    r"([A-Za-z_]\w*)\s*(?::\s*([^{;]*))?\{",
)
_RECOVERED_CLASS_NAME = "__recovered"

_POINTER_DECLARATORS = {"pointer_declarator", "abstract_pointer_declarator"}
_REFERENCE_DECLARATORS = {"reference_declarator", "abstract_reference_declarator"}


def _text(node: Optional[Node], source_bytes: bytes) -> str:
    if node is None:
        return ""
    raw = source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="ignore")
    return _SPACE_RE.sub(" ", raw).strip()


def _inner_declarator(node: Node) -> Optional[Node]:
    inner = node.child_by_field_name("declarator")
    if inner is not None:
        return inner
    named = [child for child in node.named_children if child.type != "type_qualifier"]
    return named[-1] if named else None


def unwrap_declarator(node: Optional[Node]) -> Tuple[Optional[Node], str]:
    """Strip pointer/reference declarators and return (inner, suffix).

    Example: for ``**ppDevice`` this returns the identifier node and ``"**"``.
    """
    suffix = ""
    while node is not None and (
        node.type in _POINTER_DECLARATORS or node.type in _REFERENCE_DECLARATORS
    ):
        suffix += "*" if node.type in _POINTER_DECLARATORS else "&"
        node = _inner_declarator(node)
    return node, suffix


def _base_type(node: Node, source_bytes: bytes) -> str:
    """Type text of a declaration including leading ``const``/``volatile``."""
    qualifiers = [
        _text(child, source_bytes)
        for child in node.children
        if child.type == "type_qualifier"
        and child.end_byte <= (node.child_by_field_name("type") or child).start_byte
    ]
    type_text = _text(node.child_by_field_name("type"), source_bytes)
    return " ".join(qualifiers + [type_text]).strip()


def _has_specifier(node: Node, source_bytes: bytes, keyword: str) -> bool:
    return any(
        child.type in (keyword, f"{keyword}_function_specifier", "storage_class_specifier")
        and _text(child, source_bytes) == keyword
        for child in node.children
    )


def normalize_operator_name(raw: str) -> str:
    """Canonical spelling for operator names (``operator ==`` -> ``operator==``)."""
    rest = _SPACE_RE.sub(" ", raw[len("operator"):]).strip()
    if rest and (rest[0].isalpha() or rest[0] == "_"):
        return "operator " + rest.replace(" ", "")
    return "operator" + rest.replace(" ", "")


def _function_name(name_node: Node, source_bytes: bytes) -> Optional[str]:
    if name_node.type in ("identifier", "field_identifier", "destructor_name"):
        return _text(name_node, source_bytes)
    if name_node.type == "operator_name":
        return normalize_operator_name(_text(name_node, source_bytes))
    if name_node.type == "qualified_identifier":
        # Out-of-line member definition; the class declaration carries it.
        logger.debug(
            "Skipping out-of-line definition %s at line %d",
            _text(name_node, source_bytes),
            name_node.start_point.row + 1,
        )
        return None
    logger.debug("Unsupported function name node: %s", name_node.type)
    return None


def extract_parameters(param_list: Optional[Node], source_bytes: bytes) -> List[Parameter]:
    """Build Parameter entries from a ``parameter_list`` node."""
    params: List[Parameter] = []
    if param_list is None:
        return params

    for child in param_list.named_children:
        if child.type == "variadic_parameter_declaration" or child.type == "...":
            params.append(Parameter(name="", type_name="..."))
            continue
        if child.type not in ("parameter_declaration", "optional_parameter_declaration"):
            continue

        base = _base_type(child, source_bytes)
        inner, suffix = unwrap_declarator(child.child_by_field_name("declarator"))
        name = ""
        if inner is not None and inner.type in ("identifier", "field_identifier"):
            name = _text(inner, source_bytes)
        if inner is not None and inner.type == "array_declarator":
            array_name = inner.child_by_field_name("declarator")
            name = _text(array_name, source_bytes)
            suffix += "*"

        type_name = f"{base}{suffix}"
        if type_name == "void" and not name:
            continue

        default_node = child.child_by_field_name("default_value")
        params.append(
            Parameter(
                name=name,
                type_name=type_name,
                default_value=_text(default_node, source_bytes) if default_node else None,
            )
        )
    return params


def build_function(node: Node, source_bytes: bytes) -> Optional[FunctionDecl]:
    """Build a FunctionDecl from a definition, declaration or field declaration.

    Returns None when the node does not declare a function (e.g. a variable)
    or declares one that is not translated (out-of-line member definitions).
    """
    declarator = node.child_by_field_name("declarator")
    if declarator is not None and declarator.type == "operator_cast":
        cast_type = _text(declarator.child_by_field_name("type"), source_bytes)
        func_decl = declarator.child_by_field_name("declarator")
        return FunctionDecl(
            name=f"operator {cast_type}",
            start_line=node.start_point.row + 1,
            return_type=cast_type,
            parameters=[],
            is_const=_declarator_has_const(func_decl, source_bytes),
        )

    inner, suffix = unwrap_declarator(declarator)
    if inner is None or inner.type != FUNCTION_DECLARATOR:
        return None

    name_node = inner.child_by_field_name("declarator")
    if name_node is None:
        return None
    name = _function_name(name_node, source_bytes)
    if not name:
        return None

    base = _base_type(node, source_bytes)
    return_type = f"{base}{suffix}" if base else ""
    node_text = _text(node, source_bytes)

    return FunctionDecl(
        name=name,
        start_line=node.start_point.row + 1,
        return_type=return_type,
        parameters=extract_parameters(inner.child_by_field_name("parameters"), source_bytes),
        is_virtual=_has_specifier(node, source_bytes, VIRTUAL_SPECIFIER),
        is_override=_declarator_has_virtual_specifier(inner, source_bytes),
        is_static=_has_specifier(node, source_bytes, STATIC_SPECIFIER),
        is_const=_declarator_has_const(inner, source_bytes),
        is_pure=node.type != FUNCTION_DEFINITION and bool(_PURE_RE.search(node_text)),
    )


def _declarator_has_const(func_declarator: Optional[Node], source_bytes: bytes) -> bool:
    if func_declarator is None:
        return False
    return any(
        child.type == "type_qualifier" and _text(child, source_bytes) == "const"
        for child in func_declarator.children
    )


def _declarator_has_virtual_specifier(func_declarator: Node, source_bytes: bytes) -> bool:
    return any(
        child.type == "virtual_specifier"
        and _text(child, source_bytes) in ("override", "final")
        for child in func_declarator.children
    )


def extract_bases(class_node: Node, source_bytes: bytes) -> List[str]:
    """Base class names from a class specifier's ``base_class_clause``."""
    bases: List[str] = []
    for child in class_node.children:
        if child.type != "base_class_clause":
            continue
        for base in child.named_children:
            if base.type in ("type_identifier", "qualified_type_identifier", "template_type"):
                bases.append(_text(base, source_bytes))
    return bases


def _default_access(kind: str) -> str:
    return "public" if kind == "struct" else "private"


def _populate_members(
    cls: ClassDecl,
    body: Node,
    source_bytes: bytes,
    access: str,
) -> str:
    """Add the public members of a class body to ``cls``; return final access."""
    for child in body.named_children:
        if child.type == "access_specifier":
            access = _text(child, source_bytes).rstrip(":").strip()
            continue
        if child.type in PREPROCESSOR_CONTAINERS:
            access = _populate_members(cls, child, source_bytes, access)
            continue
        if access == "private":
            continue
        if child.type == TEMPLATE_WRAPPER:
            logger.debug("Skipping member template in %s", cls.name)
            continue

        if child.type == FIELD_DECLARATION:
            type_node = child.child_by_field_name("type")
            if type_node is not None and type_node.type in CLASS_SPECIFIERS:
                nested = build_class(type_node, source_bytes)
                if nested is not None:
                    cls.classes.append(nested)
            method = build_function(child, source_bytes)
            if method is not None:
                cls.methods.append(method)
                continue
            base = _base_type(child, source_bytes)
            for declarator in child.children_by_field_name("declarator"):
                inner, suffix = unwrap_declarator(declarator)
                if inner is None or inner.type != "field_identifier":
                    continue
                cls.fields.append(
                    FieldDecl(
                        name=_text(inner, source_bytes),
                        start_line=child.start_point.row + 1,
                        type_name=f"{base}{suffix}",
                    )
                )
        elif child.type == FUNCTION_DEFINITION or child.type in DECLARATION_NODES:
            method = build_function(child, source_bytes)
            if method is not None:
                cls.methods.append(method)
    return access


def build_class(
    node: Node,
    source_bytes: bytes,
    fallback_name: Optional[str] = None,
) -> Optional[ClassDecl]:
    """Build a ClassDecl from a class/struct specifier with a body.

    Forward declarations (no body) return None. Anonymous specifiers take
    ``fallback_name`` (e.g. the typedef name) or are skipped.
    """
    body = node.child_by_field_name("body")
    if body is None:
        return None

    name = _text(node.child_by_field_name("name"), source_bytes) or fallback_name
    if not name:
        logger.debug("Skipping anonymous %s at line %d", node.type, node.start_point.row + 1)
        return None

    kind = "struct" if node.type == "struct_specifier" else "class"
    cls = ClassDecl(
        name=name,
        start_line=node.start_point.row + 1,
        kind=kind,
        bases=extract_bases(node, source_bytes),
    )
    _populate_members(cls, body, source_bytes, _default_access(kind))
    return cls


def match_decorated_class_head(text: str) -> Optional[Tuple[str, str, List[str], int]]:
    """Match ``[class|struct] MACRO(...) Name : bases {`` at the start of ``text``.

    Without a ``class``/``struct`` keyword one of the known decorator macros
    must be present.

    Returns:
        ``(kind, name, bases, brace_index)`` or None.
    """
    match = _DECORATED_CLASS_RE.match(text)
    if not match:
        return None
    keyword, decorators, name, bases_text = match.groups()
    decorator_names = {
        token.split("(")[0].strip() for token in (decorators or "").split() if token
    }
    if keyword is None and not decorator_names & CLASS_DECORATOR_MACROS:
        return None

    bases = []
    for base in (bases_text or "").split(","):
        base = re.sub(r"^\s*(public|protected|private|virtual)\s+", "", base).strip()
        if base:
            bases.append(base)
    return keyword or "struct", name, bases, match.end() - 1


def recover_decorated_class(node: Node, source_bytes: bytes) -> Optional[ClassDecl]:
    """Recover a class whose head is broken by a decorator macro.

    Known COM and export macros are masked before parsing. A head carrying an
    unlisted one, such as ``class OTHER_EXPORT Foo : public Base { ... };``,
    still parses as a function definition or an error node. The head is
    matched textually and the body is re-parsed inside a synthetic struct.
    """
    text = source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="ignore")
    head = match_decorated_class_head(text)
    if head is None:
        return None
    kind, name, bases, open_idx = head

    close_idx = text.rfind("}")
    if close_idx <= open_idx:
        return None

    body_source = (
        f"{kind} {_RECOVERED_CLASS_NAME} {{{text[open_idx + 1:close_idx]}}};"
    ).encode("utf-8")
    recovered_tree = parse_bytes(body_source)
    recovered = None
    for child in recovered_tree.root_node.named_children:
        if child.type in CLASS_SPECIFIERS:
            recovered = build_class(child, body_source)
            break

    cls = ClassDecl(
        name=name,
        start_line=node.start_point.row + 1,
        kind=kind,
        bases=bases,
    )
    if recovered is not None:
        cls.methods = recovered.methods
        cls.fields = recovered.fields
        cls.classes = recovered.classes
    logger.info("Recovered decorated %s '%s' at line %d", kind, name, cls.start_line)
    return cls


def build_macro(node: Node, source_bytes: bytes) -> Optional[MacroDefinition]:
    """Build a MacroDefinition from ``#define`` nodes."""
    name = _text(node.child_by_field_name("name"), source_bytes)
    if not name:
        return None
    return MacroDefinition(
        name=name,
        start_line=node.start_point.row + 1,
        value=_text(node.child_by_field_name("value"), source_bytes),
        is_function_like=node.type == FUNCTION_MACRO_DEFINITION,
    )


def _namespace_for(scope: Scope, name: str, line: int) -> Namespace:
    for existing in scope.namespaces:
        if existing.name == name:
            return existing
    namespace = Namespace(name=name, start_line=line)
    scope.namespaces.append(namespace)
    return namespace


def _add_class(scope: Scope, cls: Optional[ClassDecl]) -> None:
    if cls is not None:
        scope.classes.append(cls)


def traverse_scope(
    node: Node,
    source_bytes: bytes,
    unit: TranslationUnit,
    scope: Scope,
) -> None:
    """Recursively record the declarations under ``node`` into ``scope``."""
    for child in node.children:
        if not child.is_named:
            continue

        if child.type == NAMESPACE_NODE:
            name = _text(child.child_by_field_name("name"), source_bytes)
            body = child.child_by_field_name("body")
            if not name:
                logger.debug("Skipping anonymous namespace at line %d", child.start_point.row + 1)
                continue
            if body is not None:
                namespace = _namespace_for(scope, name, child.start_point.row + 1)
                traverse_scope(body, source_bytes, unit, namespace)

        elif child.type in CLASS_SPECIFIERS:
            _add_class(scope, build_class(child, source_bytes))

        elif child.type in DECLARATION_NODES:
            type_node = child.child_by_field_name("type")
            if type_node is not None and type_node.type in CLASS_SPECIFIERS:
                typedef_name = None
                if child.type == "type_definition":
                    typedef_name = _text(child.child_by_field_name("declarator"), source_bytes)
                _add_class(scope, build_class(type_node, source_bytes, typedef_name))
                continue
            function = build_function(child, source_bytes)
            if function is not None:
                scope.functions.append(function)

        elif child.type == FUNCTION_DEFINITION:
            recovered = recover_decorated_class(child, source_bytes)
            if recovered is not None:
                scope.classes.append(recovered)
                continue
            function = build_function(child, source_bytes)
            if function is not None:
                scope.functions.append(function)

        elif child.type == "ERROR":
            _add_class(scope, recover_decorated_class(child, source_bytes))

        elif child.type in (MACRO_DEFINITION, FUNCTION_MACRO_DEFINITION):
            macro = build_macro(child, source_bytes)
            if macro is not None:
                unit.macros.append(macro)

        elif child.type == TEMPLATE_WRAPPER:
            logger.debug("Skipping template at line %d", child.start_point.row + 1)

        elif child.type in TRANSPARENT_WRAPPERS:
            body = child.child_by_field_name("body")
            if body is not None:
                traverse_scope(body, source_bytes, unit, scope)

        elif child.type in PREPROCESSOR_CONTAINERS or child.type == "declaration_list":
            traverse_scope(child, source_bytes, unit, scope)


def build_translation_unit(
    tree: Tree,
    source_bytes: bytes,
    file_path: str,
) -> TranslationUnit:
    """Build the TranslationUnit for one parsed file.

    This is the main entry point for declaration extraction.
    """
    unit = TranslationUnit(file_path=file_path)
    traverse_scope(tree.root_node, source_bytes, unit, unit)
    logger.debug(
        "Built unit %s: %d namespaces, %d classes, %d functions, %d macros",
        file_path,
        len(unit.namespaces),
        len(unit.classes),
        len(unit.functions),
        len(unit.macros),
    )
    return unit
