"""
Content and Semantic Hashing for driftgraph

Three hashes are used across the system:

    1. Content hash: SHA-256 of the raw file bytes, recorded per file and per
       documentation file
    2. Semantic hash (Python): SHA-256 of a function's code after docstrings,
       comments and blank-line layout have been stripped with LibCST
    3. Token hash (TypeScript/JavaScript): SHA-256 of the function's leaf
       tokens with comments excluded, joined by single spaces

The semantic and token hashes let the drift detector notice that a function's
implementation changed while its doc comment stayed exactly the same.

Design Decisions:
    - Python normalization runs as one LibCST transformer pass
    - Whitespace between tokens never influences the token hash
    - All hashes are 64-character lowercase hex digests

Academic Context:
    Input: Source text (file, function, or token stream)
    Transformation: Docstring/comment removal → Normalization → SHA-256
    Output: Deterministic 64-character hex hash
    Limitation: Semantic equivalence is approximated, not proven;
                renaming a variable changes the hash
"""

import hashlib
from typing import Iterable

import libcst as cst


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def compute_content_hash(content: str) -> str:
    """
    Hash raw file content.

    Args:
        content: Full file text

    Returns:
        64-character hexadecimal SHA-256 hash
    """
    return _sha256(content)


def _is_docstring(stmt: cst.BaseStatement) -> bool:
    if not isinstance(stmt, cst.SimpleStatementLine) or len(stmt.body) != 1:
        return False
    expr = stmt.body[0]
    return isinstance(expr, cst.Expr) and isinstance(
        expr.value, (cst.SimpleString, cst.ConcatenatedString)
    )


class CodeNormalizer(cst.CSTTransformer):
    """
    Strips everything that does not change behaviour from a Python snippet:
    leading docstrings of functions and classes, comments, and blank lines.

    Usage:
        module = cst.parse_module(source)
        normalized = module.visit(CodeNormalizer()).code
    """

    def _strip_docstring(self, node):
        body = node.body
        if not isinstance(body, cst.IndentedBlock) or not body.body:
            return node
        if not _is_docstring(body.body[0]):
            return node
        remaining = list(body.body[1:]) or [cst.SimpleStatementLine(body=[cst.Pass()])]
        return node.with_changes(body=body.with_changes(body=remaining))

    def leave_FunctionDef(self, original_node, updated_node):
        updated_node = updated_node.with_changes(leading_lines=[], lines_after_decorators=[])
        return self._strip_docstring(updated_node)

    def leave_ClassDef(self, original_node, updated_node):
        updated_node = updated_node.with_changes(leading_lines=[], lines_after_decorators=[])
        return self._strip_docstring(updated_node)

    def leave_EmptyLine(self, original_node, updated_node):
        return cst.RemovalSentinel.REMOVE

    def leave_TrailingWhitespace(self, original_node, updated_node):
        return cst.TrailingWhitespace()

    def leave_IndentedBlock(self, original_node, updated_node):
        return updated_node.with_changes(header=cst.TrailingWhitespace(), footer=[])


def normalize_python_code(source: str) -> str:
    """
    Normalize Python source code for semantic comparison.

    Args:
        source: Python source code as a string

    Returns:
        Normalized source code string

    Raises:
        libcst.ParserSyntaxError: If the source has syntax errors

    Example:
        >>> a = 'def add(a, b):\\n    \"\"\"Add.\"\"\"\\n    # sum\\n    return a + b\\n'
        >>> b = 'def add(a, b):\\n    return a + b\\n'
        >>> normalize_python_code(a) == normalize_python_code(b)
        True
    """
    module = cst.parse_module(source)
    return module.visit(CodeNormalizer()).code


def compute_semantic_hash(source: str) -> str:
    """
    Compute the semantic hash of a Python snippet.

    Stable across whitespace, comment and docstring edits; changes when the
    logic, names or signature change.

    Raises:
        libcst.ParserSyntaxError: If the source has syntax errors
    """
    return _sha256(normalize_python_code(source))


def compute_python_node_hash(node: cst.CSTNode) -> str:
    """Semantic hash of a parsed LibCST statement (function or class)."""
    module = cst.Module(body=[node])
    return _sha256(module.visit(CodeNormalizer()).code)


def compute_token_hash(tokens: Iterable[str]) -> str:
    """
    Hash a token stream.

    Callers pass leaf-token texts with comments already removed, so
    formatting never affects the result.
    """
    return _sha256(" ".join(tokens))


def compute_doc_hash(doc: str) -> str:
    """Hash documentation text with surrounding whitespace stripped."""
    return _sha256(doc.strip())
