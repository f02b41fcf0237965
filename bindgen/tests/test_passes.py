"""Tests for the generic translation-unit passes."""

import unittest

from bindgen.passes import (
    CheckAmbiguousFunctionsPass,
    CheckIgnoredDeclsPass,
    CheckKeywordNamesPass,
    CheckMacroPass,
    CheckOperatorsOverloadsPass,
    CheckVirtualOverrideReturnCovariancePass,
    CleanInvalidDeclNamesPass,
    FunctionToStaticMethodPass,
    HandleDefaultParamValuesPass,
    RenameDeclsUpperCasePass,
    TranslationUnitPass,
    clean_name,
    default_passes,
    is_literal,
    managed_signature,
)
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


def _graph(unit: TranslationUnit) -> DeclarationGraph:
    return DeclarationGraph(units=[unit])


def _method(name, *params, **kwargs):
    return FunctionDecl(name=name, parameters=list(params), **kwargs)


class RecordingPass(TranslationUnitPass):
    name = "recording"

    def __init__(self):
        super().__init__()
        self.seen = []

    def visit_namespace(self, namespace):
        self.seen.append(("namespace", namespace.name))

    def visit_class(self, cls):
        self.seen.append(("class", cls.name))

    def visit_function(self, function, owner):
        self.seen.append(("function", function.name))

    def visit_macro(self, macro):
        self.seen.append(("macro", macro.name))


class TestTraversal(unittest.TestCase):
    def test_ignored_subtrees_not_visited(self):
        hidden = ClassDecl(name="ID3D11Foo", methods=[_method("Bar")])
        hidden.explicitly_ignore("filtered")
        dropped = _method("Dropped")
        dropped.explicitly_ignore("test")
        ns = Namespace(name="skip", classes=[ClassDecl(name="Inner")])
        ns.explicitly_ignore("test")
        unit = TranslationUnit(
            file_path="a.h",
            namespaces=[ns, Namespace(name="std", classes=[ClassDecl(name="Helper")])],
            classes=[hidden, ClassDecl(name="SpoutDX", methods=[_method("Open")])],
            functions=[dropped, _method("Free")],
            macros=[MacroDefinition(name="SPOUT_PORT", value="10")],
        )
        recorder = RecordingPass()
        recorder(_graph(unit))
        self.assertEqual(
            recorder.seen,
            [
                ("namespace", "std"),
                ("class", "Helper"),
                ("class", "SpoutDX"),
                ("function", "Open"),
                ("function", "Free"),
                ("macro", "SPOUT_PORT"),
            ],
        )


class TestKeywordAndCase(unittest.TestCase):
    def test_keyword_names_escaped(self):
        func = _method("lock", Parameter("object", "int"), Parameter("width", "int"))
        unit = TranslationUnit(
            file_path="a.h",
            classes=[ClassDecl(name="event", fields=[FieldDecl(name="base", type_name="int")])],
            functions=[func],
        )
        CheckKeywordNamesPass()(_graph(unit))
        self.assertEqual(unit.classes[0].name, "@event")
        self.assertEqual(unit.classes[0].fields[0].name, "@base")
        self.assertEqual(func.name, "@lock")
        self.assertEqual([p.name for p in func.parameters], ["@object", "width"])

    def test_upper_case_rename(self):
        op = _method("operator==")
        dtor = _method("~spoutDX")
        func = _method("getSenderCount", Parameter("count", "int*"))
        cls = ClassDecl(name="spoutDX", methods=[op, dtor, _method("@lock")])
        unit = TranslationUnit(
            file_path="a.h",
            namespaces=[Namespace(name="std")],
            classes=[cls],
            functions=[func],
        )
        RenameDeclsUpperCasePass()(_graph(unit))
        self.assertEqual(unit.namespaces[0].name, "Std")
        self.assertEqual(cls.name, "SpoutDX")
        self.assertEqual(func.name, "GetSenderCount")
        self.assertEqual(func.parameters[0].name, "count")
        self.assertEqual([m.name for m in cls.methods], ["operator==", "~spoutDX", "@lock"])
        self.assertEqual(cls.original_name, "spoutDX")

    def test_upper_case_targets(self):
        func = _method("helper")
        unit = TranslationUnit(
            file_path="a.h",
            namespaces=[Namespace(name="std")],
            functions=[func],
        )
        RenameDeclsUpperCasePass(targets={"function"})(_graph(unit))
        self.assertEqual(unit.namespaces[0].name, "std")
        self.assertEqual(func.name, "Helper")


class TestFunctionToStaticMethod(unittest.TestCase):
    def test_prefixed_function_moves_into_class(self):
        cls = ClassDecl(name="SpoutDX")
        moved = _method("SpoutDX_IsAvailable", return_type="bool")
        stays = _method("Other_Thing")
        unit = TranslationUnit(file_path="a.h", classes=[cls], functions=[moved, stays])
        FunctionToStaticMethodPass()(_graph(unit))
        self.assertEqual(unit.functions, [stays])
        self.assertEqual(cls.methods, [moved])
        self.assertEqual(moved.name, "IsAvailable")
        self.assertTrue(moved.is_static)

    def test_ignored_class_does_not_receive(self):
        cls = ClassDecl(name="ID3D11Foo")
        cls.explicitly_ignore("filtered")
        func = _method("ID3D11Foo_Create")
        unit = TranslationUnit(file_path="a.h", classes=[cls], functions=[func])
        FunctionToStaticMethodPass()(_graph(unit))
        self.assertEqual(unit.functions, [func])


class TestDefaultValues(unittest.TestCase):
    def _run(self, *params):
        func = _method("F", *params)
        unit = TranslationUnit(file_path="a.h", functions=[func])
        HandleDefaultParamValuesPass()(_graph(unit))
        return [p.default_value for p in func.parameters]

    def test_null_pointers(self):
        self.assertEqual(
            self._run(
                Parameter("a", "ID3D11Device*", "nullptr"),
                Parameter("b", "void*", "NULL"),
                Parameter("c", "char*", "0"),
            ),
            ["null", "null", "null"],
        )

    def test_literals_kept(self):
        self.assertEqual(
            self._run(
                Parameter("a", "bool", "true"),
                Parameter("b", "int", "0"),
                Parameter("c", "float", "1.5f"),
                Parameter("d", "const char*", '"sender"'),
                Parameter("e", "unsigned int", "10u"),
            ),
            ["true", "0", "1.5f", '"sender"', "10"],
        )

    def test_expression_dropped_with_preceding_defaults(self):
        self.assertEqual(
            self._run(
                Parameter("a", "int", "1"),
                Parameter("b", "DXGI_FORMAT", "DXGI_FORMAT_B8G8R8A8_UNORM"),
                Parameter("c", "bool", "false"),
            ),
            [None, None, "false"],
        )


class TestAmbiguousFunctions(unittest.TestCase):
    def test_const_overload_ignored(self):
        plain = _method("GetName", Parameter("s", "char*"))
        const = _method("GetName", Parameter("s", "char*"), is_const=True)
        cls = ClassDecl(name="SpoutDX", methods=[plain, const])
        CheckAmbiguousFunctionsPass()(_graph(TranslationUnit(file_path="a.h", classes=[cls])))
        self.assertFalse(plain.ignored)
        self.assertTrue(const.ignored)

    def test_redeclaration_ignored(self):
        first = _method("Init", return_type="bool")
        second = _method("Init", return_type="bool")
        unit = TranslationUnit(file_path="a.h", functions=[first, second])
        CheckAmbiguousFunctionsPass()(_graph(unit))
        self.assertFalse(first.ignored)
        self.assertTrue(second.ignored)

    def test_reference_pointer_collision_raises(self):
        by_ref = _method("SetSize", Parameter("w", "unsigned int&"))
        by_ptr = _method("SetSize", Parameter("w", "unsigned int*"))
        cls = ClassDecl(name="SpoutDX", methods=[by_ref, by_ptr])
        with self.assertRaises(GenerationError) as ctx:
            CheckAmbiguousFunctionsPass()(_graph(TranslationUnit(file_path="a.h", classes=[cls])))
        self.assertIn("SpoutDX::SetSize", str(ctx.exception))

    def test_distinct_overloads_allowed(self):
        a = _method("Send", Parameter("t", "ID3D11Texture2D*"))
        b = _method("Send", Parameter("w", "unsigned int"), Parameter("h", "unsigned int"))
        cls = ClassDecl(name="SpoutDX", methods=[a, b])
        CheckAmbiguousFunctionsPass()(_graph(TranslationUnit(file_path="a.h", classes=[cls])))
        self.assertFalse(a.ignored or b.ignored)

    def test_managed_signature(self):
        func = _method("F", Parameter("a", "const char*"), Parameter("b", "unsigned int&"))
        self.assertEqual(managed_signature(func), ("char*", "unsignedint*"))


class TestOperatorsAndMacros(unittest.TestCase):
    def test_non_translatable_operators_ignored(self):
        ops = [_method(n) for n in ("operator=", "operator()", "operator==", "operator bool")]
        cls = ClassDecl(name="SpoutDX", methods=ops)
        CheckOperatorsOverloadsPass()(_graph(TranslationUnit(file_path="a.h", classes=[cls])))
        self.assertEqual([m.ignored for m in ops], [True, True, False, True])

    def test_macros(self):
        macros = [
            MacroDefinition(name="SPOUT_PORT", value="10000"),
            MacroDefinition(name="SPOUT_NAME", value='"Spout"'),
            MacroDefinition(name="SPOUT_SCALE", value="(0.5f)"),
            MacroDefinition(name="SPOUT_FLAGS", value="(A | B)"),
            MacroDefinition(name="SPOUT_MAX", value="((a) > (b))", is_function_like=True),
            MacroDefinition(name="SPOUT_H", value=""),
        ]
        unit = TranslationUnit(file_path="a.h", macros=macros)
        CheckMacroPass()(_graph(unit))
        self.assertEqual(
            [m.name for m in macros if not m.ignored],
            ["SPOUT_PORT", "SPOUT_NAME", "SPOUT_SCALE"],
        )

    def test_is_literal(self):
        for value in ("0", "0x1F", "-3", "2.0", "1e5", "'a'", '"x"', "true", "10UL"):
            self.assertTrue(is_literal(value), value)
        for value in ("", "A | B", "sizeof(int)", "FOO"):
            self.assertFalse(is_literal(value), value)


class TestIgnoredDecls(unittest.TestCase):
    def test_references_to_ignored_classes(self):
        foo = ClassDecl(name="ID3D11Foo")
        foo.explicitly_ignore("filtered")
        uses_ret = _method("GetFoo", return_type="ID3D11Foo*")
        uses_param = _method("SetFoo", Parameter("p", "const ID3D11Foo&"))
        clean = _method("SetFooCount", Parameter("n", "int"))
        field = FieldDecl(name="foo", type_name="ID3D11Foo*")
        derived = ClassDecl(
            name="SpoutDX",
            bases=["ID3D11Foo", "IUnknown"],
            methods=[uses_ret, uses_param, clean],
            fields=[field],
        )
        unit = TranslationUnit(file_path="a.h", classes=[foo, derived])
        CheckIgnoredDeclsPass()(_graph(unit))

        self.assertTrue(uses_ret.ignored)
        self.assertTrue(uses_param.ignored)
        self.assertFalse(clean.ignored)
        self.assertTrue(field.ignored)
        self.assertEqual(derived.bases, ["IUnknown"])


class TestCovariance(unittest.TestCase):
    def _classes(self, derived_return):
        base = ClassDecl(
            name="Base",
            methods=[_method("Clone", return_type="Base*", is_virtual=True)],
        )
        derived = ClassDecl(
            name="Derived",
            bases=["Base"],
            methods=[_method("Clone", return_type=derived_return, is_override=True)],
        )
        return base, derived

    def test_covariant_return_rewritten(self):
        base, derived = self._classes("Derived*")
        unit = TranslationUnit(file_path="a.h", classes=[base, derived])
        CheckVirtualOverrideReturnCovariancePass()(_graph(unit))
        self.assertEqual(derived.methods[0].return_type, "Base*")

    def test_incompatible_return_raises(self):
        base, derived = self._classes("int")
        unit = TranslationUnit(file_path="a.h", classes=[base, derived])
        with self.assertRaises(GenerationError):
            CheckVirtualOverrideReturnCovariancePass()(_graph(unit))

    def test_unrelated_pointer_raises(self):
        base, derived = self._classes("Other*")
        unit = TranslationUnit(
            file_path="a.h",
            classes=[base, derived, ClassDecl(name="Other")],
        )
        with self.assertRaises(GenerationError):
            CheckVirtualOverrideReturnCovariancePass()(_graph(unit))


class TestCleanNames(unittest.TestCase):
    def test_clean_name(self):
        self.assertEqual(clean_name("Spout.Std"), "Spout_Std")
        self.assertEqual(clean_name("3D"), "_3D")
        self.assertEqual(clean_name("@object"), "@object")
        self.assertEqual(clean_name(""), "_")

    def test_unnamed_parameters(self):
        func = _method(
            "Send",
            Parameter("", "HANDLE"),
            Parameter("width", "unsigned int"),
            Parameter("", "bool"),
            Parameter("", "..."),
        )
        unit = TranslationUnit(file_path="a.h", functions=[func])
        CleanInvalidDeclNamesPass()(_graph(unit))
        self.assertEqual([p.name for p in func.parameters], ["_0", "width", "_2", ""])


class TestDefaultPasses(unittest.TestCase):
    def test_order(self):
        self.assertEqual(
            [p.name for p in default_passes()],
            [
                "check-keyword-names",
                "rename-decls-upper-case",
                "function-to-static-method",
                "handle-default-param-values",
                "check-ambiguous-functions",
                "check-operators-overloads",
                "check-ignored-decls",
                "check-macro",
                "check-virtual-override-return-covariance",
                "clean-invalid-decl-names",
            ],
        )


if __name__ == "__main__":
    unittest.main()
