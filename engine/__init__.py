"""
driftgraph Engine

Core engine for extracting structural models from TypeScript, JavaScript
and Python sources, building call graphs, snapshotting code and
documentation, and detecting documentation drift.
"""

from engine.models import (
    CallGraph,
    CodeDiff,
    DriftDetectionResult,
    DriftSnapshot,
    FileAnalysis,
    FunctionSignature,
)

__all__ = [
    "CallGraph",
    "CodeDiff",
    "DriftDetectionResult",
    "DriftSnapshot",
    "FileAnalysis",
    "FunctionSignature",
]
__version__ = "0.1.0"
