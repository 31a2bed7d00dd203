"""
Storage module for driftgraph.

JSON snapshot persistence and markdown documentation extraction, together
enabling drift detection across runs.
"""

from engine.storage.documentation import (
    DocumentationExtractor,
    extract_code_references,
    extract_sections,
    extract_symbols_from_code,
)
from engine.storage.snapshots import SnapshotStore, snapshot_filename, snapshot_timestamp

__all__ = [
    "DocumentationExtractor",
    "extract_code_references",
    "extract_sections",
    "extract_symbols_from_code",
    "SnapshotStore",
    "snapshot_filename",
    "snapshot_timestamp",
]
