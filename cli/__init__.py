"""
CLI module for driftgraph.

The command-line interface providing analyze, snapshot, detect, callgraph
and history commands.
"""

from cli.main import app

__all__ = ["app"]
