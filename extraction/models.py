"""
Data models for the extracted declaration graph.

A ``DeclarationGraph`` is a list of translation units, one per parsed header
or source file. Units hold namespaces, classes, free functions and macros.
Later stages mostly change the ``name``, ``ignored`` and type fields of
existing declarations; the only structural edit is moving prefixed free
functions into their class as static methods.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


@dataclass
class Declaration:
    """Common fields for every declaration node.

    Attributes:
        name: Current (possibly renamed) name.
        original_name: Name as extracted; never rewritten.
        start_line: 1-indexed line in the declaring file.
        ignored: Set when the declaration is excluded from further
            processing and from output, together with its subtree.
        ignore_reason: Human-readable reason recorded with ``ignored``.
    """

    name: str
    start_line: int = 0
    original_name: str = ""
    ignored: bool = False
    ignore_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.original_name:
            self.original_name = self.name

    def explicitly_ignore(self, reason: str) -> None:
        """Exclude this declaration (and its members) from generation."""
        if not self.ignored:
            self.ignored = True
            self.ignore_reason = reason


@dataclass
class Parameter:
    """A function parameter."""

    name: str
    type_name: str
    default_value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type_name,
            "default": self.default_value,
        }


@dataclass
class FunctionDecl(Declaration):
    """A free function, method or operator."""

    return_type: str = "void"
    parameters: List[Parameter] = field(default_factory=list)
    is_virtual: bool = False
    is_override: bool = False
    is_static: bool = False
    is_const: bool = False
    is_pure: bool = False

    @property
    def is_operator(self) -> bool:
        return self.original_name.startswith("operator")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "return_type": self.return_type,
            "parameters": [param.to_dict() for param in self.parameters],
            "static": self.is_static,
            "virtual": self.is_virtual,
            "const": self.is_const,
            "line": self.start_line,
        }


@dataclass
class FieldDecl(Declaration):
    """A data member."""

    type_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type_name}


@dataclass
class ClassDecl(Declaration):
    """A class or struct definition."""

    kind: str = "class"
    bases: List[str] = field(default_factory=list)
    methods: List[FunctionDecl] = field(default_factory=list)
    fields: List[FieldDecl] = field(default_factory=list)
    classes: List["ClassDecl"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "bases": list(self.bases),
            "methods": [m.to_dict() for m in self.methods if not m.ignored],
            "fields": [f.to_dict() for f in self.fields if not f.ignored],
            "classes": [c.to_dict() for c in self.classes if not c.ignored],
            "line": self.start_line,
        }


@dataclass
class MacroDefinition(Declaration):
    """A ``#define`` directive."""

    value: str = ""
    is_function_like: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass
class Namespace(Declaration):
    """A named namespace and the declarations it directly contains."""

    namespaces: List["Namespace"] = field(default_factory=list)
    classes: List[ClassDecl] = field(default_factory=list)
    functions: List[FunctionDecl] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "namespaces": [n.to_dict() for n in self.namespaces if not n.ignored],
            "classes": [c.to_dict() for c in self.classes if not c.ignored],
            "functions": [f.to_dict() for f in self.functions if not f.ignored],
        }


@dataclass
class TranslationUnit:
    """Declarations extracted from one header or source file."""

    file_path: str
    namespaces: List[Namespace] = field(default_factory=list)
    classes: List[ClassDecl] = field(default_factory=list)
    functions: List[FunctionDecl] = field(default_factory=list)
    macros: List[MacroDefinition] = field(default_factory=list)
    parse_error_count: int = 0

    def iter_classes(self, include_ignored: bool = False) -> Iterator[ClassDecl]:
        """Yield every class in the unit, including namespaced and nested ones."""

        def walk_classes(classes: List[ClassDecl]) -> Iterator[ClassDecl]:
            for cls in classes:
                if cls.ignored and not include_ignored:
                    continue
                yield cls
                yield from walk_classes(cls.classes)

        def walk_namespace(ns: Namespace) -> Iterator[ClassDecl]:
            if ns.ignored and not include_ignored:
                return
            yield from walk_classes(ns.classes)
            for child in ns.namespaces:
                yield from walk_namespace(child)

        yield from walk_classes(self.classes)
        for ns in self.namespaces:
            yield from walk_namespace(ns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "namespaces": [n.to_dict() for n in self.namespaces if not n.ignored],
            "classes": [c.to_dict() for c in self.classes if not c.ignored],
            "functions": [f.to_dict() for f in self.functions if not f.ignored],
            "macros": [m.to_dict() for m in self.macros if not m.ignored],
        }


@dataclass
class DeclarationGraph:
    """All translation units of one module."""

    units: List[TranslationUnit] = field(default_factory=list)

    def find_class(self, name: str) -> Optional[ClassDecl]:
        """Return the first class named ``name`` (ignored ones included).

        Matches the current or the extracted name, so native type spellings
        still resolve after renaming passes.
        """
        for unit in self.units:
            for cls in unit.iter_classes(include_ignored=True):
                if name in (cls.name, cls.original_name):
                    return cls
        return None

    def ignored_class_names(self) -> set[str]:
        return {
            cls.name
            for unit in self.units
            for cls in unit.iter_classes(include_ignored=True)
            if cls.ignored
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"units": [unit.to_dict() for unit in self.units]}
