"""
Drift Detection for driftgraph

This module implements the core drift detection logic: comparing two
snapshots file by file, classifying every structural change, and locating
the documentation that describes the changed code.

Drift Types:
    BREAKING:  The change is classified as breaking impact
    INCORRECT: A documented symbol was removed
    OUTDATED:  A symbol's signature was modified
    MISSING:   A new symbol appeared with no documentation

Severity Mapping:
    breaking -> critical, major -> high, minor -> medium, patch -> low

Academic Context:
    Input: Previous DriftSnapshot + current DriftSnapshot
    Transformation: Per-file structural diff with impact classification,
                    then reference matching against documentation sections
    Output: One DriftDetectionResult per changed file
    Limitation: Documentation references are found by name and path
                heuristics, not by resolving the prose semantically

Design Decisions:
    - Deterministic: same snapshots produce the same drifts and suggestions
    - Files only present in the newer snapshot are not checked
    - Drift is reported even when no documentation is affected
"""

from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Iterable, Optional

from engine.models import (
    CodeDiff,
    DiffType,
    DocumentationDrift,
    DocumentationSnapshot,
    DriftDetectionResult,
    DriftSnapshot,
    DriftType,
    ImpactAnalysis,
    ImpactLevel,
    Severity,
    UpdateEffort,
)
from engine.parser.diff import compare_analyses
from engine.drift.suggestions import SuggestionGenerator, is_section_affected


IMPACT_SEVERITY = {
    ImpactLevel.BREAKING: Severity.CRITICAL,
    ImpactLevel.MAJOR: Severity.HIGH,
    ImpactLevel.MINOR: Severity.MEDIUM,
    ImpactLevel.PATCH: Severity.LOW,
}

FENCE_LANGUAGES = {
    "typescript": "typescript",
    "javascript": "javascript",
    "python": "python",
}


def map_impact_to_severity(impact: ImpactLevel) -> Severity:
    return IMPACT_SEVERITY[impact]


def determine_drift_type(diff: CodeDiff) -> DriftType:
    """Breaking impact wins over the kind of change."""
    if diff.impact_level == ImpactLevel.BREAKING:
        return DriftType.BREAKING
    if diff.type == DiffType.REMOVED:
        return DriftType.INCORRECT
    if diff.type == DiffType.ADDED:
        return DriftType.MISSING
    return DriftType.OUTDATED


def describe_diff(diff: CodeDiff) -> str:
    return f"{diff.category.value} '{diff.name}' was {diff.type.value}: {diff.details}"


def overall_severity(drifts: Iterable[DocumentationDrift]) -> Severity:
    """The highest drift severity, NONE when there are no drifts."""
    return max((d.severity for d in drifts), key=lambda s: s.rank, default=Severity.NONE)


def estimate_update_effort(drifts: list[DocumentationDrift]) -> UpdateEffort:
    critical = sum(1 for d in drifts if d.severity == Severity.CRITICAL)
    high = sum(1 for d in drifts if d.severity == Severity.HIGH)
    if critical > 0 or high > 5:
        return UpdateEffort.HIGH
    if high > 0 or len(drifts) > 10:
        return UpdateEffort.MEDIUM
    return UpdateEffort.LOW


def _path_parts(path: str) -> tuple[str, ...]:
    normalized = PurePosixPath(path.replace("\\", "/"))
    return tuple(p for p in normalized.parts if p not in (".", "..", "/"))


def references_file(reference: str, file_path: str) -> bool:
    """
    True if a documentation code reference points at `file_path`.

    A reference matches when it equals the path, or when its normalized
    path segments are a suffix of the file's segments.

    Example:
        >>> references_file("./src/math.ts", "/repo/src/math.ts")
        True
        >>> references_file("math.ts", "/repo/src/mathematics.ts")
        False
    """
    if reference == file_path:
        return True
    ref_parts = _path_parts(reference)
    file_parts = _path_parts(file_path)
    if not ref_parts or len(ref_parts) > len(file_parts):
        return False
    return file_parts[-len(ref_parts):] == ref_parts


def find_affected_documentation(
    file_path: str,
    diffs: list[CodeDiff],
    documentation: dict[str, DocumentationSnapshot],
) -> list[str]:
    """Documentation files referencing the changed file or a changed symbol."""
    affected = []
    for doc_path, doc in documentation.items():
        if any(references_file(ref, file_path) for ref in doc.referenced_code):
            affected.append(doc_path)
            continue
        if any(is_section_affected(section, diff) for diff in diffs for section in doc.sections):
            affected.append(doc_path)
    return list(dict.fromkeys(affected))


class DriftDetector:
    """
    Detects documentation drift between two snapshots.

    Usage:
        detector = DriftDetector()
        results = detector.detect_drift(previous, current)
        critical = [r for r in results if r.severity == Severity.CRITICAL]
    """

    def __init__(self, suggestion_generator: Optional[SuggestionGenerator] = None):
        self.suggestion_generator = suggestion_generator or SuggestionGenerator()

    def detect_drift(self, old: DriftSnapshot, new: DriftSnapshot) -> list[DriftDetectionResult]:
        """
        Compare two snapshots.

        Args:
            old: The earlier snapshot
            new: The later snapshot

        Returns:
            One result per file present in both snapshots that has at least
            one structural change, in the order of `new.files`
        """
        results = []
        for file_path, new_analysis in new.files.items():
            old_analysis = old.files.get(file_path)
            if old_analysis is None:
                continue

            diffs = compare_analyses(old_analysis, new_analysis)
            if not diffs:
                continue

            affected = find_affected_documentation(file_path, diffs, new.documentation)
            language = FENCE_LANGUAGES.get(new_analysis.language, "text")
            results.append(self.analyze_drift(file_path, diffs, affected, new, language))
        return results

    def analyze_drift(
        self,
        file_path: str,
        diffs: list[CodeDiff],
        affected_docs: list[str],
        snapshot: DriftSnapshot,
        language: str = "typescript",
    ) -> DriftDetectionResult:
        """Build drifts, suggestions and the impact summary for one file."""
        detected_at = datetime.now(timezone.utc).isoformat()
        drifts = []
        suggestions = []

        for diff in diffs:
            drifts.append(
                DocumentationDrift(
                    type=determine_drift_type(diff),
                    affected_docs=tuple(affected_docs),
                    code_changes=(diff,),
                    description=describe_diff(diff),
                    detected_at=detected_at,
                    severity=map_impact_to_severity(diff.impact_level),
                )
            )
            for doc_path in affected_docs:
                doc = snapshot.documentation.get(doc_path)
                if doc is not None:
                    suggestions.extend(self.suggestion_generator.generate(diff, doc, language))

        breaking = sum(1 for d in diffs if d.impact_level == ImpactLevel.BREAKING)
        major = sum(1 for d in diffs if d.impact_level == ImpactLevel.MAJOR)
        minor = sum(1 for d in diffs if d.impact_level == ImpactLevel.MINOR)

        impact = ImpactAnalysis(
            breaking_changes=breaking,
            major_changes=major,
            minor_changes=minor,
            affected_doc_files=tuple(affected_docs),
            estimated_update_effort=estimate_update_effort(drifts),
            requires_manual_review=breaking > 0 or major > 3,
        )

        return DriftDetectionResult(
            file_path=file_path,
            has_drift=bool(drifts),
            severity=overall_severity(drifts),
            drifts=tuple(drifts),
            suggestions=tuple(suggestions),
            impact_analysis=impact,
        )


def detect_drift(old: DriftSnapshot, new: DriftSnapshot) -> list[DriftDetectionResult]:
    """Convenience wrapper around DriftDetector().detect_drift."""
    return DriftDetector().detect_drift(old, new)
