"""
Call Graph Builder for driftgraph

Builds a bounded call tree rooted at one entry symbol, following explicit
call edges within a file and across imports.

Design Decisions:
    - Every build owns a _BuildContext (file cache, active path, result
      accumulators); the builder itself is stateless, so concurrent builds
      never share mutable state
    - Cycle detection uses the active path only: a function is removed from
      the path once its children are built, so the same callee is expanded
      again under unrelated siblings (no whole-graph memoization)
    - Unresolved targets become external, truncated placeholder nodes plus
      one deduplicated `unresolved_calls` record; built-ins are skipped
    - `calls` lists every call site in the body, including those inside
      branches; conditional paths repeat the branch calls with their side

Academic Context:
    Input: Entry symbol name + project root
    Transformation: Depth-bounded DFS over resolved call sites
    Output: CallGraph tree with cycle back-references
    Limitation: Dynamic dispatch, callbacks and re-assigned names are not
                followed; method calls resolve by name only

Graph Properties:
    - Tree-shaped: cycles are cut and recorded in `circular_references`
    - max_depth_reached <= options.max_depth
    - Nodes at depth == max_depth are truncated with no children
"""

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from engine.config import EXCLUDE_DIRS, SOURCE_EXTENSIONS, DriftConfig
from engine.graph.resolver import ImportResolver, is_builtin_call, is_standard_module
from engine.models import (
    CallGraph,
    CallGraphNode,
    CallSiteLocation,
    CircularReference,
    ConditionalPath,
    ExceptionPath,
    FunctionSignature,
    UnresolvedCall,
)
from engine.parser.extractor import FunctionDefinition, ParsedFile, StructuralExtractor
from engine.parser.syntax import (
    CallNode,
    ClassNode,
    ConditionalNode,
    FunctionNode,
    SwitchNode,
    SyntaxNode,
    ThrowNode,
    TryNode,
    iter_calls,
)


@dataclass
class CallGraphOptions:
    """
    Options for a single call-graph build.

    Attributes:
        max_depth: Nodes at this depth are truncated (root is depth 0)
        resolve_imports: Follow imports into other project files
        extract_conditionals: Record if/ternary/switch-case paths
        track_exceptions: Record throw/raise sites
        extensions: Allowed extensions for entry search and import resolution
        exclude_dirs: Directory names skipped during entry search
        cancel_event: When set, every subsequent node is truncated
    """

    max_depth: int = 3
    resolve_imports: bool = True
    extract_conditionals: bool = True
    track_exceptions: bool = True
    extensions: tuple[str, ...] = SOURCE_EXTENSIONS
    exclude_dirs: tuple[str, ...] = EXCLUDE_DIRS
    cancel_event: Optional[threading.Event] = None

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")

    @classmethod
    def from_config(cls, config: DriftConfig, **overrides) -> "CallGraphOptions":
        values = {
            "max_depth": config.max_depth,
            "resolve_imports": config.resolve_imports,
            "extract_conditionals": config.extract_conditionals,
            "track_exceptions": config.track_exceptions,
            "extensions": config.source_extensions,
            "exclude_dirs": config.exclude_dirs,
        }
        values.update(overrides)
        return cls(**values)


class _BuildContext:
    """Per-build state: file cache, active path and result accumulators."""

    def __init__(self, root: Path, options: CallGraphOptions, extractor: StructuralExtractor):
        self.root = root
        self.project_root = root if root.is_dir() else root.parent
        self.options = options
        self.extractor = extractor
        self.resolver = ImportResolver(self.project_root, options.extensions)
        self.cache: dict[str, Optional[ParsedFile]] = {}
        self.active_path: set[str] = set()
        self.all_functions: dict[str, FunctionSignature] = {}
        self.analyzed_files: dict[str, None] = {}
        self.circular: dict[tuple[str, str], CircularReference] = {}
        self.unresolved: dict[tuple[str, str, int], UnresolvedCall] = {}
        self.max_depth_reached = 0
        self.cancelled = False

    def is_cancelled(self) -> bool:
        event = self.options.cancel_event
        if event is not None and event.is_set():
            self.cancelled = True
        return self.cancelled

    def note_depth(self, depth: int) -> None:
        self.max_depth_reached = max(self.max_depth_reached, depth)

    def parse(self, path: Path) -> Optional[ParsedFile]:
        key = str(path.resolve())
        if key in self.cache:
            logger.debug(f"Cache hit for {key}")
            return self.cache[key]
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Could not read {path}: {exc}")
            parsed = None
        else:
            parsed = self.extractor.parse_source(key, content)
        self.cache[key] = parsed
        return parsed

    def source_files(self) -> list[Path]:
        if self.root.is_file():
            return [self.root]
        excluded = set(self.options.exclude_dirs)
        files = []
        for path in sorted(self.root.rglob("*")):
            if path.suffix.lower() not in self.options.extensions or not path.is_file():
                continue
            if any(part in excluded for part in path.relative_to(self.root).parts[:-1]):
                continue
            files.append(path)
        return files

    def find_entry(self, name: str) -> Optional[tuple[ParsedFile, FunctionDefinition]]:
        parsed_files = [p for p in (self.parse(f) for f in self.source_files()) if p is not None]
        for parsed in parsed_files:
            if name in parsed.functions:
                return parsed, parsed.functions[name]
        for parsed in parsed_files:
            if name in parsed.methods:
                return parsed, parsed.methods[name]
        return None

    def record_unresolved(self, name: str, file: str, line: int) -> None:
        self.unresolved.setdefault((name, file, line), UnresolvedCall(name=name, file=file, line=line))

    def record_cycle(self, caller: str, callee: str, file: str, line: int) -> None:
        self.circular.setdefault(
            (caller, callee),
            CircularReference(from_function=caller, to_function=callee, file=file, line=line),
        )


def _iter_branching(nodes: list[SyntaxNode]) -> Iterator[SyntaxNode]:
    """Conditionals and switches in source order, nested definitions excluded."""
    for node in nodes:
        if isinstance(node, (FunctionNode, ClassNode)):
            continue
        if isinstance(node, (ConditionalNode, SwitchNode)):
            yield node
        yield from _iter_branching(node.sub_nodes())


def collect_exceptions(nodes: list[SyntaxNode], in_try: bool = False) -> list[ExceptionPath]:
    """
    Throw/raise sites in source order.

    `is_caught` is True when the site is lexically inside a try body; it does
    not check whether the handler matches the exception type.
    """
    found: list[ExceptionPath] = []
    for node in nodes:
        if isinstance(node, (FunctionNode, ClassNode)):
            continue
        if isinstance(node, ThrowNode):
            found.append(
                ExceptionPath(
                    exception_type=node.exception_type,
                    line_number=node.start_line,
                    is_caught=in_try,
                    expression=node.expression,
                )
            )
            found.extend(collect_exceptions(node.children, in_try))
        elif isinstance(node, TryNode):
            found.extend(collect_exceptions(node.children, True))
            found.extend(collect_exceptions([*node.handlers, *node.orelse, *node.finalizer], in_try))
        else:
            found.extend(collect_exceptions(node.sub_nodes(), in_try))
    return found


class CallGraphBuilder:
    """
    Builds call graphs for TypeScript, JavaScript and Python projects.

    Example:
        >>> builder = CallGraphBuilder()
        >>> graph = builder.build_call_graph("main", "src/")
        >>> [c.function.name for c in graph.root.calls]
        ['helper']
    """

    def __init__(self, extractor: Optional[StructuralExtractor] = None):
        self.extractor = extractor or StructuralExtractor()

    def build_call_graph(
        self,
        entry_symbol: str,
        root_path: Path | str,
        options: Optional[CallGraphOptions] = None,
    ) -> CallGraph:
        """
        Build the call graph rooted at `entry_symbol`.

        Args:
            entry_symbol: Function or method name to start from
            root_path: Project directory (or a single file) to search
            options: Build options; defaults to CallGraphOptions()

        Returns:
            CallGraph. A missing entry yields an external, truncated root and
            exactly one unresolved call for the entry name.
        """
        options = options or CallGraphOptions()
        started = time.perf_counter()
        root = Path(root_path).resolve()
        ctx = _BuildContext(root, options, self.extractor)

        entry = ctx.find_entry(entry_symbol)
        if entry is None:
            logger.warning(f"Entry symbol '{entry_symbol}' not found under {root}")
            ctx.record_unresolved(entry_symbol, str(root), 0)
            root_node = CallGraphNode(
                function=FunctionSignature.placeholder(entry_symbol),
                location=CallSiteLocation(file=str(root), line=0),
                depth=0,
                truncated=True,
                is_external=True,
            )
        else:
            parsed, definition = entry
            root_node = self._build_node(ctx, parsed, definition, 0)

        graph = CallGraph(
            entry_point=entry_symbol,
            root=root_node,
            all_functions=ctx.all_functions,
            max_depth_reached=ctx.max_depth_reached,
            analyzed_files=list(ctx.analyzed_files),
            circular_references=list(ctx.circular.values()),
            unresolved_calls=list(ctx.unresolved.values()),
            build_time_ms=(time.perf_counter() - started) * 1000,
            cancelled=ctx.cancelled,
        )
        logger.debug(
            f"Built call graph for '{entry_symbol}': {len(graph.all_functions)} functions, "
            f"depth {graph.max_depth_reached}, {len(graph.unresolved_calls)} unresolved"
        )
        return graph

    def _build_node(
        self,
        ctx: _BuildContext,
        parsed: ParsedFile,
        definition: FunctionDefinition,
        depth: int,
    ) -> CallGraphNode:
        signature = definition.signature
        ctx.all_functions[signature.name] = signature
        ctx.note_depth(depth)
        node = CallGraphNode(
            function=signature,
            location=CallSiteLocation(file=parsed.path, line=signature.start_line),
            depth=depth,
        )
        if ctx.is_cancelled() or depth >= ctx.options.max_depth:
            node.truncated = True
            return node

        key = f"{parsed.path}:{signature.name}"
        ctx.active_path.add(key)
        ctx.analyzed_files.setdefault(parsed.path, None)
        body = definition.node.children
        try:
            for call in iter_calls(body):
                child = self._resolve_call(ctx, parsed, signature.name, call, depth + 1)
                if child is not None:
                    node.calls.append(child)
            if ctx.options.extract_conditionals:
                node.conditional_branches = self._conditionals(ctx, parsed, signature.name, body, depth + 1)
            if ctx.options.track_exceptions:
                node.exceptions = collect_exceptions(body)
        finally:
            ctx.active_path.discard(key)
        return node

    def _branch(
        self,
        ctx: _BuildContext,
        parsed: ParsedFile,
        caller: str,
        nodes: list[SyntaxNode],
        depth: int,
    ) -> list[CallGraphNode]:
        result = []
        for call in iter_calls(nodes):
            child = self._resolve_call(ctx, parsed, caller, call, depth)
            if child is not None:
                result.append(child)
        return result

    def _conditionals(
        self,
        ctx: _BuildContext,
        parsed: ParsedFile,
        caller: str,
        body: list[SyntaxNode],
        depth: int,
    ) -> list[ConditionalPath]:
        paths = []
        for node in _iter_branching(body):
            if isinstance(node, ConditionalNode):
                paths.append(
                    ConditionalPath(
                        type=node.type,
                        condition=node.condition,
                        line_number=node.start_line,
                        true_branch=self._branch(ctx, parsed, caller, node.consequent, depth),
                        false_branch=self._branch(ctx, parsed, caller, node.alternate, depth),
                    )
                )
            else:
                for case in node.cases:
                    paths.append(
                        ConditionalPath(
                            type="switch-case",
                            condition=case.test if case.test is not None else "default",
                            line_number=case.start_line,
                            true_branch=self._branch(ctx, parsed, caller, case.children, depth),
                        )
                    )
        return paths

    def _resolve_call(
        self,
        ctx: _BuildContext,
        parsed: ParsedFile,
        caller: str,
        call: CallNode,
        depth: int,
    ) -> Optional[CallGraphNode]:
        target = self._locate(ctx, parsed, call)
        if target is None:
            language = parsed.analysis.language
            standard = [
                name
                for imp in parsed.imports
                if is_standard_module(imp.source, language)
                for name in [imp.namespace, *(i.local_name for i in imp.imports)]
                if name
            ]
            if is_builtin_call(call.callee, call.receiver, language, standard):
                return None
            logger.debug(f"Unresolved call '{call.callee}' at {parsed.path}:{call.start_line}")
            ctx.record_unresolved(call.callee, parsed.path, call.start_line)
            ctx.note_depth(depth)
            return CallGraphNode(
                function=FunctionSignature.placeholder(call.callee),
                location=CallSiteLocation(file=parsed.path, line=call.start_line),
                depth=depth,
                truncated=True,
                is_external=True,
            )

        target_file, definition = target
        key = f"{target_file.path}:{definition.signature.name}"
        if key in ctx.active_path:
            ctx.record_cycle(caller, definition.signature.name, parsed.path, call.start_line)
            ctx.note_depth(depth)
            return CallGraphNode(
                function=definition.signature,
                location=CallSiteLocation(file=target_file.path, line=definition.signature.start_line),
                depth=depth,
                truncated=True,
            )
        return self._build_node(ctx, target_file, definition, depth)

    def _locate(
        self,
        ctx: _BuildContext,
        parsed: ParsedFile,
        call: CallNode,
    ) -> Optional[tuple[ParsedFile, FunctionDefinition]]:
        if not call.is_member_call and call.callee in parsed.functions:
            return parsed, parsed.functions[call.callee]
        if call.is_member_call and call.callee in parsed.methods:
            return parsed, parsed.methods[call.callee]
        if not ctx.options.resolve_imports:
            return None

        for imp in parsed.imports:
            if call.is_member_call:
                if imp.namespace is not None and call.receiver == imp.namespace:
                    found = self._lookup(ctx, parsed, imp.source, call.callee)
                    if found is not None:
                        return found
                for name in imp.imports:
                    if name.local_name == call.receiver and parsed.analysis.language == "python":
                        module = f"{imp.source}{name.name}" if imp.source.endswith(".") else f"{imp.source}.{name.name}"
                        found = self._lookup(ctx, parsed, module, call.callee)
                        if found is not None:
                            return found
                continue

            for name in imp.imports:
                if name.local_name == call.callee:
                    found = self._lookup(ctx, parsed, imp.source, name.name, fallback=call.callee)
                    if found is not None:
                        return found
                elif name.name == "*":
                    found = self._lookup(ctx, parsed, imp.source, call.callee)
                    if found is not None:
                        return found
        return None

    def _lookup(
        self,
        ctx: _BuildContext,
        parsed: ParsedFile,
        source: str,
        name: str,
        fallback: Optional[str] = None,
    ) -> Optional[tuple[ParsedFile, FunctionDefinition]]:
        path = ctx.resolver.resolve(parsed.path, source)
        if path is None:
            return None
        target = ctx.parse(path)
        if target is None:
            return None
        logger.debug(f"Resolved import '{source}' from {parsed.path} to {path}")
        for candidate in (name, fallback):
            if candidate is None:
                continue
            if candidate in target.functions:
                return target, target.functions[candidate]
            if candidate in target.methods:
                return target, target.methods[candidate]
        return None


def build_call_graph(
    entry_symbol: str,
    root_path: Path | str,
    options: Optional[CallGraphOptions] = None,
) -> CallGraph:
    """Convenience wrapper around CallGraphBuilder.build_call_graph."""
    return CallGraphBuilder().build_call_graph(entry_symbol, root_path, options)
