"""
Drift detection module for driftgraph.

Compares two snapshots, classifies structural changes by impact, and
proposes documentation edits for the sections they affect.
"""

from engine.drift.detector import (
    DriftDetector,
    detect_drift,
    determine_drift_type,
    estimate_update_effort,
    find_affected_documentation,
    map_impact_to_severity,
    overall_severity,
    references_file,
)
from engine.drift.suggestions import SuggestionGenerator, is_section_affected

__all__ = [
    "DriftDetector",
    "detect_drift",
    "determine_drift_type",
    "estimate_update_effort",
    "find_affected_documentation",
    "map_impact_to_severity",
    "overall_severity",
    "references_file",
    "SuggestionGenerator",
    "is_section_affected",
]
