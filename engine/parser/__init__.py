"""
Parser module for driftgraph.

Tree-sitter (TypeScript/JavaScript) and LibCST (Python) adapters onto a
closed syntax node union, the structural extractor built on top of them, and
the structural diff between two extracted models.
"""

from engine.parser.diff import compare_analyses, format_function_signature
from engine.parser.extractor import (
    FunctionDefinition,
    ParsedFile,
    StructuralExtractor,
    analyze_file,
    compute_complexity,
)
from engine.parser.python import PythonAdapter
from engine.parser.syntax import NodeKind, SourceParseError
from engine.parser.typescript import TypeScriptAdapter

__all__ = [
    "compare_analyses",
    "format_function_signature",
    "FunctionDefinition",
    "ParsedFile",
    "StructuralExtractor",
    "analyze_file",
    "compute_complexity",
    "PythonAdapter",
    "NodeKind",
    "SourceParseError",
    "TypeScriptAdapter",
]
