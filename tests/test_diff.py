"""
Tests for the structural diff.

Tests impact classification for functions, classes, interfaces, types and
re-exported names, plus the stale doc-comment rule.
"""

import pytest

from engine.models import (
    ClassInfo,
    DiffCategory,
    DiffType,
    FileAnalysis,
    FunctionSignature,
    ImpactLevel,
    InterfaceInfo,
    ParameterInfo,
    PropertyInfo,
    TypeInfo,
)
from engine.parser import StructuralExtractor, compare_analyses, format_function_signature
from tests.fixtures import ADD_BODY_CHANGED_TS, ADD_V1_TS, ADD_V2_TS


def _func(name="add", params=("a", "b"), exported=True, **kwargs):
    return FunctionSignature(
        name=name,
        parameters=tuple(ParameterInfo(name=p, type="number") for p in params),
        is_exported=exported,
        **kwargs,
    )


def _analysis(**kwargs):
    return FileAnalysis(file_path="src/math.ts", language="typescript", **kwargs)


class TestFunctionDiffs:
    """Tests for function impact classification."""

    def test_parameter_count_change_on_exported_is_breaking(self):
        """Test scenario A: add(a, b) -> add(a, b, c), exported."""
        old = _analysis(functions=(_func(),))
        new = _analysis(functions=(_func(params=("a", "b", "c")),))

        (diff,) = compare_analyses(old, new)

        assert diff.type == DiffType.MODIFIED
        assert diff.category == DiffCategory.FUNCTION
        assert diff.impact_level == ImpactLevel.BREAKING
        assert "Parameter count changed from 2 to 3" in diff.details
        assert diff.old_signature == "add(a: number, b: number): void"
        assert diff.new_signature == "add(a: number, b: number, c: number): void"

    def test_removed_private_function_is_minor(self):
        """Test scenario B: a non-exported helper disappears."""
        old = _analysis(functions=(_func("helper", exported=False),))

        (diff,) = compare_analyses(old, _analysis())

        assert diff.type == DiffType.REMOVED
        assert diff.impact_level == ImpactLevel.MINOR
        assert diff.details == "Function 'helper' was removed"

    def test_removed_exported_function_is_breaking(self):
        """Test that removing an exported function breaks callers."""
        (diff,) = compare_analyses(_analysis(functions=(_func(),)), _analysis())

        assert diff.impact_level == ImpactLevel.BREAKING
        assert diff.old_signature == "add(a: number, b: number): void"

    def test_added_function_is_patch(self):
        """Test that new functions are patch-level additions."""
        (diff,) = compare_analyses(_analysis(), _analysis(functions=(_func(),)))

        assert diff.type == DiffType.ADDED
        assert diff.impact_level == ImpactLevel.PATCH
        assert diff.new_signature is not None

    def test_async_change_is_major(self):
        """Test that async-ness changes are major."""
        (diff,) = compare_analyses(
            _analysis(functions=(_func(),)),
            _analysis(functions=(_func(is_async=True),)),
        )

        assert diff.impact_level == ImpactLevel.MAJOR
        assert "Function became async" in diff.details

    def test_newly_exported_is_minor(self):
        """Test that exporting a function is a minor change."""
        (diff,) = compare_analyses(
            _analysis(functions=(_func(exported=False),)),
            _analysis(functions=(_func(),)),
        )

        assert diff.impact_level == ImpactLevel.MINOR
        assert "Function is now exported" in diff.details

    def test_no_longer_exported_is_breaking(self):
        """Test that un-exporting a function is breaking."""
        (diff,) = compare_analyses(
            _analysis(functions=(_func(),)),
            _analysis(functions=(_func(exported=False),)),
        )

        assert diff.impact_level == ImpactLevel.BREAKING

    def test_parameter_rename_is_patch(self):
        """Test that renames with the same count are patch-level."""
        (diff,) = compare_analyses(
            _analysis(functions=(_func(),)),
            _analysis(functions=(_func(params=("x", "b")),)),
        )

        assert diff.impact_level == ImpactLevel.PATCH
        assert "Parameter 'a' renamed to 'x'" in diff.details

    def test_return_type_change_on_exported_is_breaking(self):
        """Test that a changed return type breaks exported functions."""
        (diff,) = compare_analyses(
            _analysis(functions=(_func(return_type="number"),)),
            _analysis(functions=(_func(return_type="string"),)),
        )

        assert diff.impact_level == ImpactLevel.BREAKING
        assert "Return type changed from 'number' to 'string'" in diff.details

    def test_identical_models_have_no_diffs(self):
        """Test that comparing a model with itself yields nothing."""
        analysis = _analysis(functions=(_func(),), exports=("add",))

        assert compare_analyses(analysis, analysis) == []


class TestStaleDocComment:
    """Tests for body-only changes under an unchanged doc comment."""

    def test_body_change_with_same_doc_is_patch(self):
        """Test that a changed semantic hash flags a stale doc comment."""
        old = _analysis(functions=(_func(doc_comment="Adds.", semantic_hash="1" * 64),))
        new = _analysis(functions=(_func(doc_comment="Adds.", semantic_hash="2" * 64),))

        (diff,) = compare_analyses(old, new)

        assert diff.type == DiffType.MODIFIED
        assert diff.impact_level == ImpactLevel.PATCH
        assert "doc comment may be stale" in diff.details

    def test_body_change_without_doc_is_ignored(self):
        """Test that undocumented body changes produce no diff."""
        old = _analysis(functions=(_func(semantic_hash="1" * 64),))
        new = _analysis(functions=(_func(semantic_hash="2" * 64),))

        assert compare_analyses(old, new) == []

    def test_body_only_change_is_never_breaking(self):
        """Test the extracted TypeScript versions end to end."""
        extractor = StructuralExtractor()
        old = extractor.analyze_source("src/math.ts", ADD_V1_TS)
        new = extractor.analyze_source("src/math.ts", ADD_BODY_CHANGED_TS)

        diffs = compare_analyses(old, new)

        assert [d.name for d in diffs] == ["add"]
        assert diffs[0].impact_level == ImpactLevel.PATCH


class TestExtractedScenarios:
    """Tests running the extractor and diff together."""

    def test_added_parameter_and_removed_helper(self):
        """Test scenarios A and B from real TypeScript sources."""
        extractor = StructuralExtractor()
        old = extractor.analyze_source("src/math.ts", ADD_V1_TS)
        new = extractor.analyze_source("src/math.ts", ADD_V2_TS)

        diffs = {d.name: d for d in compare_analyses(old, new)}

        assert diffs["add"].impact_level == ImpactLevel.BREAKING
        assert diffs["add"].type == DiffType.MODIFIED
        assert diffs["helper"].type == DiffType.REMOVED
        assert diffs["helper"].impact_level == ImpactLevel.MINOR


class TestClassInterfaceTypeDiffs:
    """Tests for non-function categories."""

    def test_public_method_removed_is_breaking(self):
        """Test that an exported class losing a public method breaks."""
        old = _analysis(classes=(ClassInfo(name="Calc", is_exported=True, methods=(_func("add"), _func("sub"))),))
        new = _analysis(classes=(ClassInfo(name="Calc", is_exported=True, methods=(_func("add"),)),))

        (diff,) = compare_analyses(old, new)

        assert diff.category == DiffCategory.CLASS
        assert diff.impact_level == ImpactLevel.BREAKING
        assert "Method 'sub' was removed" in diff.details

    def test_private_method_removed_is_patch(self):
        """Test that private members do not count toward breaking."""
        private = _func("_cache", visibility="private")
        old = _analysis(classes=(ClassInfo(name="Calc", is_exported=True, methods=(_func("add"), private)),))
        new = _analysis(classes=(ClassInfo(name="Calc", is_exported=True, methods=(_func("add"),)),))

        (diff,) = compare_analyses(old, new)

        assert diff.impact_level == ImpactLevel.PATCH

    def test_superclass_change_is_breaking(self):
        """Test that changing the superclass of an exported class breaks."""
        (diff,) = compare_analyses(
            _analysis(classes=(ClassInfo(name="Calc", is_exported=True, extends="Base"),)),
            _analysis(classes=(ClassInfo(name="Calc", is_exported=True, extends="Other"),)),
        )

        assert diff.impact_level == ImpactLevel.BREAKING

    def test_method_became_async_is_major(self):
        """Test async changes on methods."""
        (diff,) = compare_analyses(
            _analysis(classes=(ClassInfo(name="Calc", is_exported=True, methods=(_func("run"),)),)),
            _analysis(classes=(ClassInfo(name="Calc", is_exported=True, methods=(_func("run", is_async=True),)),)),
        )

        assert diff.impact_level == ImpactLevel.MAJOR

    def test_removed_class_category(self):
        """Test removed classes carry the class category."""
        (diff,) = compare_analyses(_analysis(classes=(ClassInfo(name="Calc"),)), _analysis())

        assert (diff.type, diff.category, diff.impact_level) == (
            DiffType.REMOVED,
            DiffCategory.CLASS,
            ImpactLevel.MINOR,
        )

    def test_interface_member_type_change_is_breaking(self):
        """Test interface member type changes."""
        (diff,) = compare_analyses(
            _analysis(interfaces=(InterfaceInfo(name="Shape", is_exported=True,
                                                properties=(PropertyInfo(name="id", type="number"),)),)),
            _analysis(interfaces=(InterfaceInfo(name="Shape", is_exported=True,
                                                properties=(PropertyInfo(name="id", type="string"),)),)),
        )

        assert diff.category == DiffCategory.INTERFACE
        assert diff.impact_level == ImpactLevel.BREAKING

    def test_interface_member_added_is_patch(self):
        """Test additive interface changes."""
        (diff,) = compare_analyses(
            _analysis(interfaces=(InterfaceInfo(name="Shape", is_exported=True),)),
            _analysis(interfaces=(InterfaceInfo(name="Shape", is_exported=True,
                                                properties=(PropertyInfo(name="id"),)),)),
        )

        assert diff.impact_level == ImpactLevel.PATCH

    @pytest.mark.parametrize(
        "old_exported,new_exported,definition,expected",
        [
            (True, True, "number", ImpactLevel.BREAKING),
            (False, False, "number", ImpactLevel.PATCH),
            (False, True, "string", ImpactLevel.MINOR),
        ],
    )
    def test_type_alias_impact(self, old_exported, new_exported, definition, expected):
        """Test type alias classification."""
        (diff,) = compare_analyses(
            _analysis(types=(TypeInfo(name="Id", is_exported=old_exported, definition="string"),)),
            _analysis(types=(TypeInfo(name="Id", is_exported=new_exported, definition=definition),)),
        )

        assert diff.category == DiffCategory.TYPE
        assert diff.impact_level == expected


class TestExportDiffs:
    """Tests for re-exported names."""

    def test_reexport_removed_and_added(self):
        """Test that only non-declared export names are compared."""
        old = _analysis(functions=(_func(),), exports=("add", "format"))
        new = _analysis(functions=(_func(),), exports=("add", "parse"))

        diffs = {d.name: d for d in compare_analyses(old, new)}

        assert set(diffs) == {"format", "parse"}
        assert diffs["format"].impact_level == ImpactLevel.BREAKING
        assert diffs["parse"].impact_level == ImpactLevel.MINOR
        assert diffs["parse"].category == DiffCategory.EXPORT


class TestFormatSignature:
    """Tests for signature rendering."""

    def test_async_and_untyped(self):
        """Test the async prefix and the any/void fallbacks."""
        func = FunctionSignature(name="load", parameters=(ParameterInfo(name="url"),), is_async=True)

        assert format_function_signature(func) == "async load(url: any): void"
