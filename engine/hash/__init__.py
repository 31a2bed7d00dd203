"""
Hash module for driftgraph.

Content hashes for files and semantic hashes for function bodies, the latter
ignoring formatting, comments and docstrings.
"""

from engine.hash.semantic_hash import (
    CodeNormalizer,
    compute_content_hash,
    compute_doc_hash,
    compute_python_node_hash,
    compute_semantic_hash,
    compute_token_hash,
    normalize_python_code,
)

__all__ = [
    "CodeNormalizer",
    "compute_content_hash",
    "compute_doc_hash",
    "compute_python_node_hash",
    "compute_semantic_hash",
    "compute_token_hash",
    "normalize_python_code",
]
