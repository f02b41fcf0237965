"""Generic translation-unit passes run between the filter and the renamer.

Each pass walks the declaration graph and may ignore declarations, rename
them, or abort the run with ``GenerationError``. Ignored declarations and
their subtrees are never visited, so a declaration dropped by the filter is
never the subject of a later pass.

``default_passes()`` returns the fixed order used for a generation run.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Union

from core.errors import GenerationError
from extraction.models import (
    ClassDecl,
    DeclarationGraph,
    FieldDecl,
    FunctionDecl,
    MacroDefinition,
    Namespace,
    Parameter,
    TranslationUnit,
)

logger = logging.getLogger(__name__)

Owner = Union[TranslationUnit, Namespace, ClassDecl]

CSHARP_KEYWORDS = frozenset(
    """
    abstract as base bool break byte case catch char checked class const continue
    decimal default delegate do double else enum event explicit extern false
    finally fixed float for foreach goto if implicit in int interface internal is
    lock long namespace new null object operator out override params private
    protected public readonly ref return sbyte sealed short sizeof stackalloc
    static string struct switch this throw true try typeof uint ulong unchecked
    unsafe ushort using virtual void volatile while
    """.split()
)

RENAME_TARGETS_ANY = frozenset({"namespace", "class", "function", "method", "field"})

NON_TRANSLATABLE_OPERATORS = frozenset(
    {
        "operator=",
        "operator->",
        "operator->*",
        "operator()",
        "operator,",
        "operator new",
        "operator delete",
        "operator new[]",
        "operator delete[]",
    }
)

_INT_RE = re.compile(r"^[-+]?(0[xX][0-9A-Fa-f]+|\d+)([uUlL]*)$")
_FLOAT_RE = re.compile(r"^[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?[fF]?$")
_STRING_RE = re.compile(r'^L?"(?:[^"\\]|\\.)*"$')
_CHAR_RE = re.compile(r"^L?'(?:[^'\\]|\\.)+'$")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_]\w*")
_INVALID_NAME_CHARS_RE = re.compile(r"\W")


def is_literal(value: str) -> bool:
    """True for integer, float, string, char and boolean literals."""
    text = value.strip()
    while text.startswith("(") and text.endswith(")"):
        text = text[1:-1].strip()
    if text in ("true", "false"):
        return True
    return bool(
        _INT_RE.match(text)
        or _FLOAT_RE.match(text)
        or _STRING_RE.match(text)
        or _CHAR_RE.match(text)
    )


def type_identifiers(type_name: str) -> set[str]:
    """Identifiers mentioned in a type spelling (``const ID3D11Device*`` -> both words)."""
    return set(_IDENTIFIER_RE.findall(type_name))


def strip_type(type_name: str) -> str:
    """Bare class name of a (pointer/reference/const) type spelling."""
    text = re.sub(r"\bconst\b|\bvolatile\b|[*&]", " ", type_name)
    return " ".join(text.split())


class TranslationUnitPass:
    """Base class for passes over the declaration graph.

    Subclasses override the ``visit_*`` hooks they need. The walk skips
    ignored declarations and does not descend into ignored namespaces or
    classes.
    """

    name = "translation-unit-pass"

    def __init__(self) -> None:
        self.graph: Optional[DeclarationGraph] = None
        self.unit: Optional[TranslationUnit] = None

    def __call__(self, graph: DeclarationGraph) -> DeclarationGraph:
        self.run(graph)
        return graph

    def run(self, graph: DeclarationGraph) -> None:
        self.graph = graph
        for unit in graph.units:
            self.unit = unit
            self.walk_scope(unit)
            for macro in unit.macros:
                if not macro.ignored:
                    self.visit_macro(macro)

    def walk_scope(self, scope: Union[TranslationUnit, Namespace]) -> None:
        for namespace in list(scope.namespaces):
            if namespace.ignored:
                continue
            self.visit_namespace(namespace)
            if not namespace.ignored:
                self.walk_scope(namespace)
        for cls in list(scope.classes):
            self.walk_class(cls)
        self.visit_function_list(scope, scope.functions)
        for function in list(scope.functions):
            if not function.ignored:
                self.visit_function(function, scope)

    def walk_class(self, cls: ClassDecl) -> None:
        if cls.ignored:
            return
        self.visit_class(cls)
        if cls.ignored:
            return
        for nested in list(cls.classes):
            self.walk_class(nested)
        for field_decl in cls.fields:
            if not field_decl.ignored:
                self.visit_field(field_decl, cls)
        self.visit_function_list(cls, cls.methods)
        for method in list(cls.methods):
            if not method.ignored:
                self.visit_function(method, cls)

    def visit_namespace(self, namespace: Namespace) -> None:
        pass

    def visit_class(self, cls: ClassDecl) -> None:
        pass

    def visit_field(self, field_decl: FieldDecl, owner: ClassDecl) -> None:
        pass

    def visit_function_list(self, owner: Owner, functions: List[FunctionDecl]) -> None:
        pass

    def visit_function(self, function: FunctionDecl, owner: Owner) -> None:
        pass

    def visit_macro(self, macro: MacroDefinition) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _owner_name(owner: Owner) -> str:
    if isinstance(owner, TranslationUnit):
        return owner.file_path
    return owner.name


class CheckKeywordNamesPass(TranslationUnitPass):
    """Escape declaration names that are C# keywords with ``@``."""

    name = "check-keyword-names"

    def _escape(self, decl_name: str) -> str:
        return f"@{decl_name}" if decl_name in CSHARP_KEYWORDS else decl_name

    def visit_namespace(self, namespace: Namespace) -> None:
        namespace.name = self._escape(namespace.name)

    def visit_class(self, cls: ClassDecl) -> None:
        cls.name = self._escape(cls.name)

    def visit_field(self, field_decl: FieldDecl, owner: ClassDecl) -> None:
        field_decl.name = self._escape(field_decl.name)

    def visit_function(self, function: FunctionDecl, owner: Owner) -> None:
        if not function.is_operator:
            function.name = self._escape(function.name)
        for param in function.parameters:
            param.name = self._escape(param.name)


class RenameDeclsUpperCasePass(TranslationUnitPass):
    """Upper-case the first letter of selected declaration kinds."""

    name = "rename-decls-upper-case"

    def __init__(self, targets: Iterable[str] = RENAME_TARGETS_ANY) -> None:
        super().__init__()
        self.targets = frozenset(targets)

    @staticmethod
    def _upper_first(decl_name: str) -> str:
        if decl_name.startswith(("~", "@")):
            return decl_name
        return decl_name[:1].upper() + decl_name[1:]

    def visit_namespace(self, namespace: Namespace) -> None:
        if "namespace" in self.targets:
            namespace.name = self._upper_first(namespace.name)

    def visit_class(self, cls: ClassDecl) -> None:
        if "class" in self.targets:
            cls.name = self._upper_first(cls.name)

    def visit_field(self, field_decl: FieldDecl, owner: ClassDecl) -> None:
        if "field" in self.targets:
            field_decl.name = self._upper_first(field_decl.name)

    def visit_function(self, function: FunctionDecl, owner: Owner) -> None:
        target = "method" if isinstance(owner, ClassDecl) else "function"
        if target in self.targets and not function.is_operator:
            function.name = self._upper_first(function.name)


class FunctionToStaticMethodPass(TranslationUnitPass):
    """Move ``Class_Name`` free functions into ``Class`` as static methods."""

    name = "function-to-static-method"

    def visit_function_list(self, owner: Owner, functions: List[FunctionDecl]) -> None:
        if isinstance(owner, ClassDecl):
            return
        classes = {cls.name: cls for cls in owner.classes if not cls.ignored}
        for function in list(functions):
            if function.ignored or "_" not in function.name:
                continue
            prefix, rest = function.name.split("_", 1)
            cls = classes.get(prefix)
            if cls is None or not rest:
                continue
            functions.remove(function)
            function.name = rest
            function.is_static = True
            cls.methods.append(function)
            logger.debug("Moved %s_%s into %s as static method", prefix, rest, cls.name)


class HandleDefaultParamValuesPass(TranslationUnitPass):
    """Turn native default arguments into values a managed signature accepts.

    Null pointers become ``null``, literals are kept, anything else is
    dropped. Dropping a default also drops the defaults before it, since a
    managed optional parameter cannot precede a required one.
    """

    name = "handle-default-param-values"

    @staticmethod
    def _translate(param: Parameter) -> Optional[str]:
        value = (param.default_value or "").strip()
        is_pointer = param.type_name.endswith("*")
        if value in ("NULL", "nullptr") or (is_pointer and value == "0"):
            return "null"
        if _INT_RE.match(value):
            return value.rstrip("uUlL")
        if is_literal(value):
            return value
        return None

    def visit_function(self, function: FunctionDecl, owner: Owner) -> None:
        last_dropped = -1
        for index, param in enumerate(function.parameters):
            if param.default_value is None:
                continue
            translated = self._translate(param)
            if translated is None:
                logger.debug(
                    "Dropping default '%s' of %s(%s)",
                    param.default_value,
                    function.name,
                    param.name,
                )
                last_dropped = index
            param.default_value = translated
        for param in function.parameters[: last_dropped + 1]:
            param.default_value = None


def managed_signature(function: FunctionDecl) -> tuple[str, ...]:
    """Parameter types as the managed side sees them (no const, ``&`` as ``*``)."""
    return tuple(
        re.sub(r"\bconst\b", "", param.type_name).replace("&", "*").replace(" ", "")
        for param in function.parameters
    )


def _native_signature(function: FunctionDecl) -> tuple:
    return (
        function.return_type.replace(" ", ""),
        tuple(param.type_name.replace(" ", "") for param in function.parameters),
        function.is_const,
    )


class CheckAmbiguousFunctionsPass(TranslationUnitPass):
    """Resolve or reject overloads that collapse to one managed signature."""

    name = "check-ambiguous-functions"

    def visit_function_list(self, owner: Owner, functions: List[FunctionDecl]) -> None:
        groups: dict[tuple, list[FunctionDecl]] = {}
        for function in functions:
            if function.ignored or function.is_operator:
                continue
            groups.setdefault((function.name, managed_signature(function)), []).append(function)

        for (func_name, _), group in groups.items():
            if len(group) < 2:
                continue
            self._resolve(owner, func_name, group)

    def _resolve(self, owner: Owner, func_name: str, group: List[FunctionDecl]) -> None:
        distinct: dict[tuple, FunctionDecl] = {}
        for function in group:
            key = _native_signature(function)
            if key in distinct:
                function.explicitly_ignore("redeclaration")
                continue
            distinct[key] = function

        candidates = list(distinct.values())
        if len(candidates) < 2:
            return

        const_methods = [f for f in candidates if f.is_const]
        if len(candidates) == 2 and len(const_methods) == 1:
            const_methods[0].explicitly_ignore("const overload")
            logger.debug("Ignored const overload of %s::%s", _owner_name(owner), func_name)
            return

        raise GenerationError(
            f"Ambiguous overloads of '{_owner_name(owner)}::{func_name}' "
            f"at lines {[f.start_line for f in candidates]}"
        )


class CheckOperatorsOverloadsPass(TranslationUnitPass):
    """Ignore operators that have no managed equivalent."""

    name = "check-operators-overloads"

    def visit_function(self, function: FunctionDecl, owner: Owner) -> None:
        if not function.is_operator:
            return
        if function.name in NON_TRANSLATABLE_OPERATORS or function.name.startswith("operator "):
            function.explicitly_ignore(f"operator {function.name} is not translatable")


class CheckIgnoredDeclsPass(TranslationUnitPass):
    """Ignore declarations whose signatures reference an ignored class."""

    name = "check-ignored-decls"

    def run(self, graph: DeclarationGraph) -> None:
        self.ignored_names = graph.ignored_class_names()
        super().run(graph)

    def _references_ignored(self, type_names: Iterable[str]) -> Optional[str]:
        for type_name in type_names:
            hit = type_identifiers(type_name) & self.ignored_names
            if hit:
                return sorted(hit)[0]
        return None

    def visit_class(self, cls: ClassDecl) -> None:
        kept = [base for base in cls.bases if strip_type(base) not in self.ignored_names]
        if len(kept) != len(cls.bases):
            logger.debug("Dropping ignored bases of %s: %s", cls.name, set(cls.bases) - set(kept))
            cls.bases = kept

    def visit_field(self, field_decl: FieldDecl, owner: ClassDecl) -> None:
        hit = self._references_ignored([field_decl.type_name])
        if hit:
            field_decl.explicitly_ignore(f"type {hit} is ignored")

    def visit_function(self, function: FunctionDecl, owner: Owner) -> None:
        types = [function.return_type] + [p.type_name for p in function.parameters]
        hit = self._references_ignored(types)
        if hit:
            function.explicitly_ignore(f"signature uses ignored type {hit}")


class CheckMacroPass(TranslationUnitPass):
    """Keep only macros that expand to a single literal."""

    name = "check-macro"

    def visit_macro(self, macro: MacroDefinition) -> None:
        if macro.is_function_like:
            macro.explicitly_ignore("function-like macro")
        elif not is_literal(macro.value):
            macro.explicitly_ignore("macro value is not a literal")


class CheckVirtualOverrideReturnCovariancePass(TranslationUnitPass):
    """Align covariant override return types with the base declaration."""

    name = "check-virtual-override-return-covariance"

    def _derives_from(self, derived: str, base: str, seen: Optional[set] = None) -> bool:
        if derived == base:
            return True
        seen = seen if seen is not None else set()
        if derived in seen:
            return False
        seen.add(derived)
        cls = self.graph.find_class(derived) if self.graph else None
        if cls is None:
            return False
        return any(self._derives_from(strip_type(b), base, seen) for b in cls.bases)

    def _base_method(self, cls: ClassDecl, method: FunctionDecl) -> Optional[FunctionDecl]:
        seen: set[str] = set()
        pending = list(cls.bases)
        while pending:
            base_name = strip_type(pending.pop(0))
            if base_name in seen:
                continue
            seen.add(base_name)
            base = self.graph.find_class(base_name) if self.graph else None
            if base is None:
                continue
            for candidate in base.methods:
                if (
                    candidate.original_name == method.original_name
                    and len(candidate.parameters) == len(method.parameters)
                    and (candidate.is_virtual or candidate.is_override)
                ):
                    return candidate
            pending.extend(base.bases)
        return None

    def visit_class(self, cls: ClassDecl) -> None:
        if not cls.bases:
            return
        for method in cls.methods:
            if method.ignored or not (method.is_virtual or method.is_override):
                continue
            base_method = self._base_method(cls, method)
            if base_method is None:
                continue
            own = method.return_type.replace(" ", "")
            inherited = base_method.return_type.replace(" ", "")
            if own == inherited:
                continue
            if own and own[-1] in "*&" and own[-1:] == inherited[-1:] and self._derives_from(
                strip_type(method.return_type), strip_type(base_method.return_type)
            ):
                logger.debug(
                    "Covariant return %s::%s %s -> %s",
                    cls.name,
                    method.name,
                    method.return_type,
                    base_method.return_type,
                )
                method.return_type = base_method.return_type
                continue
            raise GenerationError(
                f"Override '{cls.name}::{method.name}' returns {method.return_type}, "
                f"incompatible with base return type {base_method.return_type}"
            )


def clean_name(decl_name: str) -> str:
    """Make ``decl_name`` a valid identifier, keeping a leading ``@`` escape."""
    prefix = "@" if decl_name.startswith("@") else ""
    body = _INVALID_NAME_CHARS_RE.sub("_", decl_name[len(prefix):])
    if not body:
        return "_"
    if body[0].isdigit():
        body = f"_{body}"
    return prefix + body


class CleanInvalidDeclNamesPass(TranslationUnitPass):
    """Name unnamed parameters and replace invalid identifier characters."""

    name = "clean-invalid-decl-names"

    def visit_namespace(self, namespace: Namespace) -> None:
        namespace.name = clean_name(namespace.name)

    def visit_class(self, cls: ClassDecl) -> None:
        cls.name = clean_name(cls.name)

    def visit_field(self, field_decl: FieldDecl, owner: ClassDecl) -> None:
        field_decl.name = clean_name(field_decl.name)

    def visit_function(self, function: FunctionDecl, owner: Owner) -> None:
        if not (function.is_operator or function.name.startswith("~")):
            function.name = clean_name(function.name)
        for index, param in enumerate(function.parameters):
            if param.type_name == "...":
                continue
            param.name = clean_name(param.name) if param.name else f"_{index}"


def default_passes() -> list[TranslationUnitPass]:
    """The generic passes in their fixed run order."""
    return [
        CheckKeywordNamesPass(),
        RenameDeclsUpperCasePass(RENAME_TARGETS_ANY),
        FunctionToStaticMethodPass(),
        HandleDefaultParamValuesPass(),
        CheckAmbiguousFunctionsPass(),
        CheckOperatorsOverloadsPass(),
        CheckIgnoredDeclsPass(),
        CheckMacroPass(),
        CheckVirtualOverrideReturnCovariancePass(),
        CleanInvalidDeclNamesPass(),
    ]
