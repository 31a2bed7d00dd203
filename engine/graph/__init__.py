"""
Graph module for driftgraph.

Depth-bounded call-graph construction across files, with cycle detection,
conditional-branch and exception-path capture, and import resolution.
"""

from engine.graph.builder import (
    CallGraphBuilder,
    CallGraphOptions,
    build_call_graph,
    collect_exceptions,
)
from engine.graph.resolver import ImportResolver, is_builtin_call

__all__ = [
    "CallGraphBuilder",
    "CallGraphOptions",
    "build_call_graph",
    "collect_exceptions",
    "ImportResolver",
    "is_builtin_call",
]
