"""
Import Resolution and Built-in Detection

Maps an import specifier written in one file to the project file it refers
to, and decides whether an unresolved call targets a well-known built-in
(those are skipped silently instead of being reported as unresolved).

Resolution rules:
    JavaScript / TypeScript:
        - Relative specifiers resolve against the importing file's directory
        - `@/x` maps to <root>/x and `~/x` to <root>/src/x
        - Candidates: the literal path, each extension appended, a `.js`-style
          suffix swapped for each extension, then `index.<ext>` inside a
          directory
        - Bare package specifiers are never resolved
    Python:
        - Relative imports climb one directory per extra leading dot
        - Absolute imports are tried against the root and <root>/src
        - Candidates: `module.py`, then `module/__init__.py`
"""

import builtins
import sys
from pathlib import Path
from typing import Iterable, Optional


JS_GLOBAL_FUNCTIONS = frozenset({
    "parseInt", "parseFloat", "isNaN", "isFinite", "setTimeout", "setInterval",
    "clearTimeout", "clearInterval", "setImmediate", "queueMicrotask", "require",
    "fetch", "encodeURIComponent", "decodeURIComponent", "encodeURI", "decodeURI",
    "structuredClone", "eval", "alert", "Symbol", "BigInt", "Number", "String",
    "Boolean", "Array", "Object", "Date", "RegExp", "Error", "Promise",
})

JS_GLOBAL_OBJECTS = frozenset({
    "console", "Math", "JSON", "Object", "Array", "Promise", "Number", "String",
    "Date", "Reflect", "process", "window", "document", "globalThis", "Intl",
    "Buffer", "Symbol", "Map", "Set", "URL", "performance", "crypto",
})

JS_COMMON_METHODS = frozenset({
    "push", "pop", "shift", "unshift", "slice", "splice", "map", "filter",
    "reduce", "forEach", "find", "findIndex", "some", "every", "includes",
    "indexOf", "join", "split", "concat", "sort", "reverse", "keys", "values",
    "entries", "has", "get", "set", "add", "delete", "clear", "then", "catch",
    "finally", "toString", "trim", "toLowerCase", "toUpperCase", "replace",
    "replaceAll", "startsWith", "endsWith", "match", "test", "exec", "padStart",
    "padEnd", "flat", "flatMap", "fill", "at", "charAt", "substring", "toFixed",
    "call", "apply", "bind", "log", "error", "warn", "info", "debug", "emit",
    "on", "once", "resolve", "reject", "all",
})

NODE_BUILTIN_MODULES = frozenset({
    "fs", "fs/promises", "path", "os", "http", "https", "url", "util", "events",
    "stream", "crypto", "child_process", "assert", "buffer", "net", "zlib",
    "readline", "worker_threads", "timers",
})

PY_BUILTIN_FUNCTIONS = frozenset(name for name in dir(builtins) if not name.startswith("_"))

PY_COMMON_METHODS = frozenset({
    "append", "extend", "insert", "pop", "remove", "clear", "copy", "update",
    "get", "items", "keys", "values", "setdefault", "join", "split", "rsplit",
    "strip", "lstrip", "rstrip", "replace", "format", "startswith", "endswith",
    "lower", "upper", "encode", "decode", "read", "write", "close", "add",
    "discard", "sort", "index", "count", "find", "splitlines", "readlines",
    "exists", "is_file", "is_dir", "mkdir", "open", "read_text", "write_text",
    "glob", "rglob", "resolve", "debug", "info", "warning", "error",
    "exception", "critical",
})

JS_INDEX_NAME = "index"


def is_standard_module(source: str, language: str) -> bool:
    """True when an import specifier names a standard-library module."""
    if language == "python":
        if source.startswith("."):
            return False
        return source.split(".", 1)[0] in sys.stdlib_module_names
    if source.startswith("node:"):
        return True
    return source in NODE_BUILTIN_MODULES


def is_builtin_call(
    callee: str,
    receiver: Optional[str],
    language: str,
    standard_names: Iterable[str] = (),
) -> bool:
    """
    Decide whether a call targets a well-known built-in.

    Args:
        callee: Simple called name
        receiver: Text left of the final member access, if any
        language: "python", "typescript" or "javascript"
        standard_names: Local names bound by standard-library imports
    """
    standard = set(standard_names)
    receiver_root = receiver.split(".", 1)[0].split("(", 1)[0] if receiver else None

    if language == "python":
        if receiver is None:
            return callee in PY_BUILTIN_FUNCTIONS or callee in standard
        return receiver_root in standard or callee in PY_COMMON_METHODS

    if receiver is None:
        return callee in JS_GLOBAL_FUNCTIONS or callee in standard
    return (
        receiver_root in JS_GLOBAL_OBJECTS
        or receiver_root in standard
        or callee in JS_COMMON_METHODS
    )


class ImportResolver:
    """
    Resolves import specifiers to project files.

    Attributes:
        root: Project root used for alias and absolute-import resolution
        extensions: Allowed source extensions
    """

    def __init__(self, root: Path, extensions: Iterable[str]):
        self.root = root
        self.extensions = tuple(extensions)

    def resolve(self, from_file: Path | str, source: str) -> Optional[Path]:
        """Return the file an import refers to, or None if it is outside the project."""
        from_path = Path(from_file)
        if from_path.suffix.lower() == ".py":
            candidates = self._python_candidates(from_path, source)
        else:
            candidates = self._js_candidates(from_path, source)
        for candidate in candidates:
            if candidate.suffix.lower() in self.extensions and candidate.is_file():
                return candidate.resolve()
        return None

    def _js_candidates(self, from_path: Path, source: str) -> list[Path]:
        if source.startswith("@/"):
            base = self.root / source[2:]
        elif source.startswith("~/"):
            base = self.root / "src" / source[2:]
        elif source.startswith("."):
            base = from_path.parent / source
        else:
            return []

        candidates = [base]
        candidates.extend(Path(f"{base}{ext}") for ext in self.extensions)
        if base.suffix in (".js", ".jsx", ".mjs", ".cjs"):
            stem = base.with_suffix("")
            candidates.extend(Path(f"{stem}{ext}") for ext in self.extensions)
        candidates.extend(base / f"{JS_INDEX_NAME}{ext}" for ext in self.extensions)
        return candidates

    def _python_candidates(self, from_path: Path, source: str) -> list[Path]:
        if source.startswith("."):
            level = len(source) - len(source.lstrip("."))
            module = source[level:]
            base_dir = from_path.parent
            for _ in range(level - 1):
                base_dir = base_dir.parent
            bases = [base_dir]
        else:
            module = source
            bases = [self.root, self.root / "src"]

        parts = module.split(".") if module else []
        candidates = []
        for base_dir in bases:
            target = base_dir.joinpath(*parts)
            if parts:
                candidates.append(target.with_name(f"{target.name}.py"))
            candidates.append(target / "__init__.py")
        return candidates
