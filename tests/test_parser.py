"""
Tests for the parser module.

Tests the Tree-sitter and LibCST adapters through the structural extractor:
declarations, export detection, parameters, types, imports and complexity.
"""

import pytest

from engine.parser import (
    NodeKind,
    PythonAdapter,
    SourceParseError,
    StructuralExtractor,
    TypeScriptAdapter,
    compute_complexity,
)
from engine.parser.syntax import ConditionalNode, FunctionNode, LoopNode
from tests.fixtures import BROKEN_PY, BROKEN_TS, GREETER_PY, MAIN_JS, MATH_TS


@pytest.fixture
def extractor():
    return StructuralExtractor()


@pytest.fixture
def math_ts(extractor):
    return extractor.analyze_source("src/math.ts", MATH_TS)


@pytest.fixture
def greeter_py(extractor):
    return extractor.analyze_source("pkg/greeter.py", GREETER_PY)


def _by_name(items):
    return {item.name: item for item in items}


class TestTypeScriptFunctions:
    """Tests for TypeScript function extraction."""

    def test_exported_function(self, math_ts):
        """Test an exported function with JSDoc and typed parameters."""
        add = _by_name(math_ts.functions)["add"]

        assert add.is_exported is True
        assert add.doc_comment == "Adds two numbers."
        assert [(p.name, p.type) for p in add.parameters] == [("a", "number"), ("b", "number")]
        assert add.return_type == "number"
        assert (add.start_line, add.end_line) == (4, 6)

    def test_optional_and_default_parameters(self, math_ts):
        """Test optional markers and literal default values."""
        helper = _by_name(math_ts.functions)["helper"]

        x, y, z = helper.parameters
        assert (x.name, x.type, x.optional) == ("x", "string", False)
        assert (y.name, y.type, y.optional) == ("y", "number", True)
        assert (z.name, z.optional, z.default_value) == ("z", True, "5")
        assert helper.return_type == "void"
        assert helper.is_exported is False

    def test_complexity_counts_branches_and_loops(self, math_ts):
        """Test that if, else-if and for each add one."""
        helper = _by_name(math_ts.functions)["helper"]

        assert helper.complexity == 4
        assert helper.dependencies == ("log", "add")

    def test_arrow_function_bound_to_const(self, math_ts):
        """Test that a const-bound async arrow becomes a named function."""
        multiply = _by_name(math_ts.functions)["multiply"]

        assert multiply.is_async is True
        assert multiply.is_exported is True
        assert multiply.return_type == "Promise"

    def test_file_level_fields(self, math_ts):
        """Test language, totals and content hash."""
        assert math_ts.language == "typescript"
        assert math_ts.lines_of_code == len(MATH_TS.split("\n"))
        assert math_ts.complexity == 8
        assert len(math_ts.content_hash) == 64
        assert math_ts.warnings == ()


class TestTypeScriptDeclarations:
    """Tests for classes, interfaces, type aliases, imports and exports."""

    def test_class_heritage_and_members(self, math_ts):
        """Test extends/implements, methods and properties."""
        calculator = _by_name(math_ts.classes)["Calculator"]

        assert calculator.is_exported is True
        assert calculator.extends == "Base"
        assert calculator.implements == ("Shape",)
        assert [m.name for m in calculator.methods] == ["add", "reset"]
        assert calculator.methods[1].is_async is True

        props = _by_name(calculator.properties)
        assert props["total"].visibility == "private"
        assert props["total"].type == "number"
        assert props["version"].is_static is True
        assert props["version"].is_readonly is True

    def test_interface(self, math_ts):
        """Test interface members."""
        shape = _by_name(math_ts.interfaces)["Shape"]

        assert shape.is_exported is True
        assert [(m.name, m.return_type) for m in shape.methods] == [("area", "number")]
        assert [(p.name, p.type) for p in shape.properties] == [("name", "string")]

    def test_type_alias(self, math_ts):
        """Test that the alias definition is whitespace-collapsed source."""
        alias = _by_name(math_ts.types)["Id"]

        assert alias.definition == "string | number"
        assert alias.is_exported is True

    def test_imports(self, math_ts):
        """Test named, namespace and default imports."""
        format_import, path_import, lib_import = math_ts.imports

        assert format_import.source == "./format"
        assert [i.name for i in format_import.imports] == ["format"]
        assert path_import.namespace == "path"
        assert lib_import.is_default is True
        assert [(i.name, i.alias) for i in lib_import.imports] == [("default", "Default"), ("a", "b")]

    def test_export_names(self, math_ts):
        """Test the export list in declaration order."""
        assert math_ts.exports == ("add", "multiply", "Calculator", "Shape", "Id")


class TestJavaScript:
    """Tests for JavaScript extraction."""

    def test_local_export_clause_marks_function(self, extractor):
        """Test that `export { sum }` exports an earlier declaration."""
        analysis = extractor.analyze_source("src/main.js", MAIN_JS)
        functions = _by_name(analysis.functions)

        assert analysis.language == "javascript"
        assert functions["sum"].is_exported is True
        assert functions["sum"].doc_comment == "Sum values."
        assert functions["double"].is_exported is False
        assert functions["main"].is_exported is True
        assert set(analysis.exports) == {"main", "sum"}

    def test_switch_and_ternary_complexity(self, extractor):
        """Test that every case, default included, and the ternary count."""
        main = _by_name(extractor.analyze_source("src/main.js", MAIN_JS).functions)["main"]

        assert main.complexity == 4
        assert main.dependencies == ("sum", "double")

    def test_untyped_parameters(self, extractor):
        """Test that JavaScript parameters carry no type."""
        sum_fn = _by_name(extractor.analyze_source("src/main.js", MAIN_JS).functions)["sum"]

        assert [(p.name, p.type) for p in sum_fn.parameters] == [("values", None)]


class TestPython:
    """Tests for Python extraction."""

    def test_function_signature(self, greeter_py):
        """Test annotations, defaults and docstrings."""
        greet = _by_name(greeter_py.functions)["greet"]

        assert greet.is_exported is True
        assert greet.doc_comment == "Return a greeting."
        name, excited = greet.parameters
        assert (name.name, name.type, name.optional) == ("name", "string", False)
        assert (excited.type, excited.optional, excited.default_value) == ("boolean", True, "False")
        assert greet.return_type == "string"
        assert greet.complexity == 2
        assert greet.dependencies == ("norm",)

    def test_private_async_function(self, greeter_py):
        """Test underscore visibility, star parameters and try/loop complexity."""
        fetch = _by_name(greeter_py.functions)["_fetch"]

        assert fetch.visibility == "private"
        assert fetch.is_async is True
        assert fetch.is_exported is False
        assert [p.name for p in fetch.parameters] == ["url", "*args", "**kwargs"]
        assert all(p.optional for p in fetch.parameters[1:])
        assert fetch.complexity == 3
        assert fetch.dependencies == ("range", "get", "RuntimeError")

    def test_class_methods_and_properties(self, greeter_py):
        """Test that self is dropped and ClassVar/Final are recognised."""
        greeter = _by_name(greeter_py.classes)["Greeter"]

        assert greeter.extends == "Base"
        assert greeter.doc_comment == "Greets people."
        methods = _by_name(greeter.methods)
        assert [p.name for p in methods["greet"].parameters] == ["name"]
        assert [p.name for p in methods["build"].parameters] == ["value"]

        props = _by_name(greeter.properties)
        assert props["prefix"].is_static is True
        assert props["prefix"].type == "string"
        assert props["limit"].is_readonly is True
        assert props["limit"].type == "number"

    def test_protocol_becomes_interface(self, greeter_py):
        """Test that Protocol subclasses are modelled as interfaces."""
        named = _by_name(greeter_py.interfaces)["Named"]

        assert named.extends == ()
        assert [(p.name, p.type) for p in named.properties] == [("name", "string")]
        assert [(m.name, m.return_type) for m in named.methods] == [("describe", "string")]

    def test_type_alias_and_dunder_all(self, greeter_py):
        """Test TypeAlias extraction and __all__-driven exports."""
        alias = _by_name(greeter_py.types)["UserId"]

        assert alias.definition == "int"
        assert alias.is_exported is False
        assert greeter_py.exports == ("greet", "Greeter", "Named")

    def test_imports(self, greeter_py):
        """Test from-imports, plain imports and relative imports."""
        typing_import, os_import, helpers_import = greeter_py.imports

        assert typing_import.source == "typing"
        assert "Protocol" in [i.name for i in typing_import.imports]
        assert os_import.namespace == "os"
        assert helpers_import.source == ".helpers"
        assert [(i.name, i.alias) for i in helpers_import.imports] == [("normalize", "norm")]

    def test_without_dunder_all_public_names_are_exported(self, extractor):
        """Test the underscore convention when __all__ is absent."""
        analysis = extractor.analyze_source("m.py", "def run():\n    pass\n\ndef _hidden():\n    pass\n")
        functions = _by_name(analysis.functions)

        assert functions["run"].is_exported is True
        assert functions["_hidden"].is_exported is False


class TestTopLevelStatements:
    """Tests for minimal files made of imports, aliases and one declaration."""

    def test_import_then_function(self, extractor):
        """Test a TypeScript import followed by an exported function."""
        analysis = extractor.analyze_source(
            "m.ts",
            "import { x } from './y';\nexport function add(a: number, b: number): number {\n  return a + b;\n}\n",
        )

        assert analysis.warnings == ()
        assert [i.source for i in analysis.imports] == ["./y"]
        assert [(f.name, f.is_exported) for f in analysis.functions] == [("add", True)]

    def test_lone_type_alias(self, extractor):
        """Test a file holding a single exported type alias."""
        analysis = extractor.analyze_source("ids.ts", "export type Id = string;\n")

        assert analysis.warnings == ()
        assert [(t.name, t.definition, t.is_exported) for t in analysis.types] == [("Id", "string", True)]
        assert analysis.exports == ("Id",)

    def test_python_module_import(self, extractor):
        """Test a Python file with a plain import."""
        analysis = extractor.analyze_source("tool.py", "import os\n\n\ndef run():\n    return os.getcwd()\n")

        assert analysis.warnings == ()
        assert analysis.imports[0].namespace == "os"
        assert [f.name for f in analysis.functions] == ["run"]


class TestParseFailures:
    """Tests for syntax errors and unsupported files."""

    def test_broken_typescript_yields_empty_model(self, extractor, log_messages):
        """Test that a parse error degrades to an empty model with a warning."""
        analysis = extractor.analyze_source("src/broken.ts", BROKEN_TS)

        assert analysis.functions == ()
        assert len(analysis.warnings) == 1
        assert analysis.warnings[0].startswith("Parse error")
        assert any("Failed to parse" in m for m in log_messages)

    def test_broken_python_yields_empty_model(self, extractor):
        """Test the same degradation for Python."""
        analysis = extractor.analyze_source("broken.py", BROKEN_PY)

        assert analysis.functions == ()
        assert analysis.warnings[0].startswith("Parse error")

    def test_adapters_raise_source_parse_error(self):
        """Test that the adapters themselves raise."""
        with pytest.raises(SourceParseError):
            TypeScriptAdapter().parse("broken.ts", BROKEN_TS)
        with pytest.raises(SourceParseError):
            PythonAdapter().parse("broken.py", BROKEN_PY)

    def test_unsupported_extension(self, extractor, tmp_path, log_messages):
        """Test that unsupported files are skipped with a warning."""
        path = tmp_path / "script.rb"
        path.write_text("puts 1\n")

        assert extractor.analyze_file(path) is None
        assert any("Unsupported file type" in m for m in log_messages)
        with pytest.raises(ValueError):
            extractor.parse_source(path, "puts 1\n")

    def test_analyze_file_records_last_modified(self, extractor, tmp_path):
        """Test that analyzing from disk fills last_modified."""
        path = tmp_path / "math.ts"
        path.write_text(MATH_TS)

        analysis = extractor.analyze_file(path)

        assert analysis is not None
        assert analysis.last_modified is not None


class TestComplexity:
    """Tests for the complexity walk over the syntax union."""

    def test_empty_function(self):
        """Test the base complexity of one."""
        assert compute_complexity(FunctionNode(name="f")) == 1

    def test_nesting_does_not_multiply(self):
        """Test that nested constructs each count once."""
        inner = ConditionalNode(condition="b")
        loop = LoopNode(children=[inner])
        outer = ConditionalNode(condition="a", consequent=[loop])
        func = FunctionNode(name="f", children=[outer])

        assert compute_complexity(func) == 4
        assert inner.kind == NodeKind.CONDITIONAL
