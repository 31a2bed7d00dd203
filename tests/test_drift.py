"""
Tests for the drift module.

Tests snapshot-to-snapshot drift detection, documentation matching, severity
and effort rollups, and suggestion generation.
"""

import pytest

from engine.drift import (
    DriftDetector,
    SuggestionGenerator,
    detect_drift,
    determine_drift_type,
    estimate_update_effort,
    find_affected_documentation,
    is_section_affected,
    map_impact_to_severity,
    overall_severity,
    references_file,
)
from engine.models import (
    CodeDiff,
    DiffCategory,
    DiffType,
    DocumentationDrift,
    DocumentationSection,
    DocumentationSnapshot,
    DriftSnapshot,
    DriftType,
    ImpactLevel,
    Severity,
    UpdateEffort,
)
from engine.parser import StructuralExtractor
from engine.storage import DocumentationExtractor
from tests.fixtures import ADD_V1_TS, ADD_V2_TS, API_DOC_MD, MATH_TS


MATH_PATH = "/repo/src/math.ts"
DOC_PATH = "/repo/docs/api.md"


def _snapshot(sources, timestamp="2026-01-05T09:14:03.118274Z", docs=None):
    extractor = StructuralExtractor()
    files = {path: extractor.analyze_source(path, content) for path, content in sources.items()}
    documentation = {
        path: DocumentationExtractor().extract(path, content) for path, content in (docs or {}).items()
    }
    return DriftSnapshot(project_path="/repo", timestamp=timestamp, files=files, documentation=documentation)


def _diff(diff_type=DiffType.MODIFIED, impact=ImpactLevel.PATCH, name="add",
          category=DiffCategory.FUNCTION, details="changed", **kwargs):
    return CodeDiff(type=diff_type, category=category, name=name,
                    details=details, impact_level=impact, **kwargs)


def _drift(severity):
    return DocumentationDrift(
        type=DriftType.OUTDATED,
        affected_docs=(),
        code_changes=(),
        description="",
        detected_at="2026-01-05T09:14:03+00:00",
        severity=severity,
    )


class TestDriftDetector:
    """Tests for comparing whole snapshots."""

    def test_identical_snapshots_have_no_drift(self):
        """Test that a snapshot compared with itself reports nothing."""
        snapshot = _snapshot({MATH_PATH: MATH_TS}, docs={DOC_PATH: API_DOC_MD})

        assert detect_drift(snapshot, snapshot) == []

    def test_breaking_change_with_documentation(self):
        """Test scenario A end to end: breaking drift and an affected doc."""
        old = _snapshot({MATH_PATH: ADD_V1_TS}, docs={DOC_PATH: API_DOC_MD})
        new = _snapshot({MATH_PATH: ADD_V2_TS}, "2026-01-06T17:40:51.002913Z", docs={DOC_PATH: API_DOC_MD})

        (result,) = DriftDetector().detect_drift(old, new)

        assert result.file_path == MATH_PATH
        assert result.has_drift is True
        assert result.severity == Severity.CRITICAL
        types = {d.code_changes[0].name: d.type for d in result.drifts}
        assert types == {"add": DriftType.BREAKING, "helper": DriftType.INCORRECT}
        assert all(d.affected_docs == (DOC_PATH,) for d in result.drifts)

        impact = result.impact_analysis
        assert (impact.breaking_changes, impact.major_changes, impact.minor_changes) == (1, 0, 1)
        assert impact.estimated_update_effort == UpdateEffort.HIGH
        assert impact.requires_manual_review is True

    def test_suggestions_target_referencing_sections(self):
        """Test that only sections naming the changed symbol get suggestions."""
        old = _snapshot({MATH_PATH: ADD_V1_TS}, docs={DOC_PATH: API_DOC_MD})
        new = _snapshot({MATH_PATH: ADD_V2_TS}, docs={DOC_PATH: API_DOC_MD})

        (result,) = detect_drift(old, new)

        (suggestion,) = result.suggestions
        assert suggestion.section == "add(a, b)"
        assert suggestion.doc_file == DOC_PATH
        assert suggestion.confidence == 0.7
        assert suggestion.auto_applicable is False
        assert suggestion.suggested_content.startswith("\n\n> **Updated**: ")

    def test_new_files_are_skipped(self):
        """Test that files absent from the older snapshot are not checked."""
        old = _snapshot({MATH_PATH: ADD_V1_TS})
        new = _snapshot({MATH_PATH: ADD_V1_TS, "/repo/src/extra.ts": ADD_V2_TS})

        assert detect_drift(old, new) == []

    def test_drift_without_documentation(self):
        """Test that drift is reported even when no doc is affected."""
        old = _snapshot({MATH_PATH: ADD_V1_TS})
        new = _snapshot({MATH_PATH: ADD_V2_TS})

        (result,) = detect_drift(old, new)

        assert result.suggestions == ()
        assert result.impact_analysis.affected_doc_files == ()
        assert result.severity == Severity.CRITICAL

    def test_result_serializes(self):
        """Test the camelCase result dictionary."""
        old = _snapshot({MATH_PATH: ADD_V1_TS})
        new = _snapshot({MATH_PATH: ADD_V2_TS})

        data = detect_drift(old, new)[0].to_dict()

        assert data["severity"] == "critical"
        assert data["impactAnalysis"]["requiresManualReview"] is True
        impacts = {d["codeChanges"][0]["name"]: d["codeChanges"][0]["impactLevel"] for d in data["drifts"]}
        assert impacts == {"add": "breaking", "helper": "minor"}


class TestAffectedDocumentation:
    """Tests for matching documentation to a changed file."""

    @pytest.mark.parametrize(
        "reference,file_path,expected",
        [
            ("src/math.ts", "src/math.ts", True),
            ("src/math.ts", "/repo/src/math.ts", True),
            ("./src/math.ts", "/repo/src/math.ts", True),
            ("../src/math.ts", "/repo/src/math.ts", True),
            ("math.ts", "/repo/src/mathematics.ts", False),
            ("lib/math.ts", "/repo/src/math.ts", False),
            ("", "/repo/src/math.ts", False),
        ],
    )
    def test_references_file(self, reference, file_path, expected):
        """Test exact and path-suffix matching."""
        assert references_file(reference, file_path) is expected

    def test_symbol_reference_without_path(self):
        """Test that a section naming a changed function marks the doc."""
        doc = DocumentationExtractor().extract(DOC_PATH, "## add(a, b)\nSums.\n")
        diffs = [_diff(impact=ImpactLevel.BREAKING)]

        assert find_affected_documentation("/repo/lib/other.ts", diffs, {DOC_PATH: doc}) == [DOC_PATH]

    def test_unrelated_doc(self):
        """Test that docs mentioning neither path nor symbol are not affected."""
        doc = DocumentationExtractor().extract(DOC_PATH, "## Notes\nPlain text.\n")

        assert find_affected_documentation(MATH_PATH, [_diff()], {DOC_PATH: doc}) == []


class TestSeverityAndEffort:
    """Tests for the classification helpers."""

    @pytest.mark.parametrize(
        "impact,severity",
        [
            (ImpactLevel.BREAKING, Severity.CRITICAL),
            (ImpactLevel.MAJOR, Severity.HIGH),
            (ImpactLevel.MINOR, Severity.MEDIUM),
            (ImpactLevel.PATCH, Severity.LOW),
        ],
    )
    def test_impact_to_severity(self, impact, severity):
        """Test the fixed impact-to-severity table."""
        assert map_impact_to_severity(impact) == severity

    def test_drift_type_precedence(self):
        """Test that breaking impact wins over the change kind."""
        assert determine_drift_type(_diff(DiffType.REMOVED, ImpactLevel.BREAKING)) == DriftType.BREAKING
        assert determine_drift_type(_diff(DiffType.REMOVED, ImpactLevel.MINOR)) == DriftType.INCORRECT
        assert determine_drift_type(_diff(DiffType.ADDED)) == DriftType.MISSING
        assert determine_drift_type(_diff(DiffType.MODIFIED, ImpactLevel.MAJOR)) == DriftType.OUTDATED

    def test_overall_severity(self):
        """Test the maximum rule and the empty default."""
        assert overall_severity([]) == Severity.NONE
        assert overall_severity([_drift(Severity.LOW), _drift(Severity.HIGH)]) == Severity.HIGH

    def test_update_effort(self):
        """Test the effort thresholds."""
        assert estimate_update_effort([]) == UpdateEffort.LOW
        assert estimate_update_effort([_drift(Severity.CRITICAL)]) == UpdateEffort.HIGH
        assert estimate_update_effort([_drift(Severity.HIGH)] * 6) == UpdateEffort.HIGH
        assert estimate_update_effort([_drift(Severity.HIGH)]) == UpdateEffort.MEDIUM
        assert estimate_update_effort([_drift(Severity.LOW)] * 11) == UpdateEffort.MEDIUM
        assert estimate_update_effort([_drift(Severity.LOW)] * 10) == UpdateEffort.LOW


class TestSuggestions:
    """Tests for suggestion content and scoring."""

    @pytest.fixture
    def doc(self):
        add = DocumentationSection(
            title="add",
            content="Call add(a: number, b: number): number to sum. add is fast.",
            referenced_functions=("add",),
        )
        sub = DocumentationSection(title="sub", content="Subtracts.", referenced_functions=("sub",))
        shapes = DocumentationSection(title="Shapes", content="Shapes.", referenced_types=("Shape",))
        return DocumentationSnapshot(file_path="docs/api.md", content_hash="0" * 64, sections=(add, sub, shapes))

    def test_removed_symbol(self, doc):
        """Test strikethrough of every whole-word mention plus the notice."""
        (suggestion,) = SuggestionGenerator().generate(_diff(DiffType.REMOVED, ImpactLevel.BREAKING), doc)

        assert suggestion.section == "add"
        assert suggestion.suggested_content.startswith(
            "\n\n> **Note**: The `add` function has been removed in the latest version.\n"
        )
        assert suggestion.suggested_content.count("~~add~~ (removed)") == 2
        assert suggestion.confidence == 0.8
        assert suggestion.auto_applicable is False
        assert "has been removed from the codebase" in suggestion.reasoning

    def test_added_symbol_with_signature(self, doc):
        """Test the appended stub with a fenced signature."""
        diff = _diff(DiffType.ADDED, name="sub", new_signature="sub(a: number): number")

        (suggestion,) = SuggestionGenerator().generate(diff, doc, "typescript")

        assert suggestion.suggested_content == (
            "Subtracts.\n\n## sub\n\nA new function has been added.\n\n"
            "```typescript\nsub(a: number): number\n```\n"
        )
        assert suggestion.confidence == 0.6

    def test_added_symbol_without_signature(self, doc):
        """Test the documentation-needed placeholder."""
        (suggestion,) = SuggestionGenerator().generate(_diff(DiffType.ADDED, name="sub"), doc)

        assert suggestion.suggested_content.endswith(
            "> **Documentation needed**: Please document the `sub` function.\n"
        )

    def test_modified_patch_is_auto_applicable(self, doc):
        """Test in-place signature replacement for patch-level changes."""
        diff = _diff(
            details="Parameter 'a' renamed to 'x'",
            old_signature="add(a: number, b: number): number",
            new_signature="add(x: number, b: number): number",
        )

        (suggestion,) = SuggestionGenerator().generate(diff, doc)

        assert suggestion.auto_applicable is True
        assert suggestion.confidence == 0.7
        assert "add(x: number, b: number): number" in suggestion.suggested_content
        assert "add(a: number" not in suggestion.suggested_content
        assert suggestion.suggested_content.startswith("\n\n> **Updated**: Parameter 'a' renamed to 'x'\n")

    def test_category_routing(self, doc):
        """Test which reference list each category consults."""
        shapes = doc.sections[2]

        assert is_section_affected(shapes, _diff(name="Shape", category=DiffCategory.INTERFACE)) is True
        assert is_section_affected(shapes, _diff(name="Shape", category=DiffCategory.CLASS)) is False
        assert is_section_affected(shapes, _diff(name="Shape", category=DiffCategory.EXPORT)) is True
        assert is_section_affected(shapes, _diff(name="Shape", category=DiffCategory.IMPORT)) is False

    def test_feedback_scorer(self, doc):
        """Test that a scorer attaches a score without touching confidence."""
        generator = SuggestionGenerator(feedback_scorer=lambda suggestion: 0.9)

        (suggestion,) = generator.generate(_diff(), doc)

        assert suggestion.feedback_score == 0.9
        assert suggestion.confidence == 0.7

    def test_failing_feedback_scorer(self, doc, log_messages):
        """Test that an unavailable scorer is logged and ignored."""
        def scorer(suggestion):
            raise ConnectionError("tracker offline")

        (suggestion,) = SuggestionGenerator(feedback_scorer=scorer).generate(_diff(), doc)

        assert suggestion.feedback_score is None
        assert any("Feedback scorer unavailable" in m for m in log_messages)
