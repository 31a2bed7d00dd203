"""
Structural Extractor

Turns a source file into its flat structural model (FileAnalysis): functions,
classes, interfaces, type aliases, imports, export names, per-function
cyclomatic complexity, content hash and line count.

Key Components:
    - StructuralExtractor: dispatches to the language adapter by extension
    - ParsedFile: structural model plus the adapted tree and a definition
      index, consumed by the call-graph builder
    - compute_complexity: cyclomatic complexity over the closed node union

Design Decisions:
    - One depth-first walk over the adapted tree; the "inside export wrapper"
      flag applies to direct children of an ExportNode only
    - Top-level declarations named by a local `export { a, b }` clause are
      marked exported after the walk
    - Complexity is a second, independent walk: 1 + one per conditional,
      loop, switch case and catch clause, regardless of nesting
    - A parse failure never propagates: the model degrades to empty lists
      with the failure recorded in `warnings`

Academic Context:
    Input: Source file path and content
    Transformation: Adapter → closed union → structural model
    Output: FileAnalysis (frozen, JSON-serializable)
    Limitation: No type inference; names are matched syntactically
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from engine.hash.semantic_hash import compute_content_hash
from engine.models import (
    ClassInfo,
    FileAnalysis,
    FunctionSignature,
    ImportInfo,
    InterfaceInfo,
    PropertyInfo,
    TypeInfo,
)
from engine.parser.python import PythonAdapter
from engine.parser.syntax import (
    ClassNode,
    ExportNode,
    FunctionNode,
    ImportNode,
    InterfaceNode,
    ModuleNode,
    NodeKind,
    PropertyNode,
    SourceParseError,
    SyntaxNode,
    TypeAliasNode,
    iter_calls,
)
from engine.parser.typescript import TypeScriptAdapter, language_for


_BRANCH_KINDS = {NodeKind.CONDITIONAL, NodeKind.LOOP, NodeKind.CASE, NodeKind.CATCH}


def compute_complexity(node: SyntaxNode) -> int:
    """
    Cyclomatic complexity of a function subtree.

    Starts at 1 and adds 1 for every if/ternary, loop, switch or match case
    (default included) and catch clause anywhere below the node.

    Example:
        >>> compute_complexity(FunctionNode(name="f"))
        1
    """
    return 1 + sum(1 for n in node.walk() if n.kind in _BRANCH_KINDS)


def function_dependencies(node: FunctionNode) -> list[str]:
    """Called names in first-call order, nested definitions excluded."""
    seen: dict[str, None] = {}
    for call in iter_calls(node.children):
        seen.setdefault(call.callee, None)
    return list(seen)


def build_signature(node: FunctionNode, is_exported: bool = False) -> FunctionSignature:
    """Project a FunctionNode onto a FunctionSignature."""
    return FunctionSignature(
        name=node.name,
        parameters=tuple(node.parameters),
        return_type=node.return_type,
        is_async=node.is_async,
        is_exported=is_exported,
        visibility=node.visibility,
        doc_comment=node.doc_comment,
        start_line=node.start_line,
        end_line=max(node.start_line, node.end_line),
        complexity=compute_complexity(node),
        dependencies=tuple(function_dependencies(node)),
        semantic_hash=node.body_hash,
    )


def _property(node: PropertyNode) -> PropertyInfo:
    return PropertyInfo(
        name=node.name,
        type=node.type,
        is_static=node.is_static,
        is_readonly=node.is_readonly,
        visibility=node.visibility,
    )


@dataclass
class FunctionDefinition:
    """A function or method definition located in a parsed file."""

    node: FunctionNode
    signature: FunctionSignature
    class_name: Optional[str] = None


@dataclass
class ParsedFile:
    """
    Everything the call-graph builder needs from one file.

    Attributes:
        analysis: The structural model
        tree: Adapted syntax tree, None when parsing failed
        functions: Top-level and nested functions by name (first wins)
        methods: Class methods by name (first wins)
    """

    analysis: FileAnalysis
    tree: Optional[ModuleNode] = None
    functions: dict[str, FunctionDefinition] = field(default_factory=dict)
    methods: dict[str, FunctionDefinition] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return self.analysis.file_path

    @property
    def imports(self) -> tuple[ImportInfo, ...]:
        return self.analysis.imports


class _ModelBuilder:
    """Collects declarations during the structural walk."""

    def __init__(self) -> None:
        self.functions: list[FunctionSignature] = []
        self.classes: list[ClassInfo] = []
        self.interfaces: list[InterfaceInfo] = []
        self.types: list[TypeInfo] = []
        self.imports: list[ImportInfo] = []
        self.exports: dict[str, None] = {}
        self.local_exports: set[str] = set()
        self.top_level: set[str] = set()
        self.function_defs: dict[str, FunctionDefinition] = {}
        self.method_defs: dict[str, FunctionDefinition] = {}

    def walk(self, node: SyntaxNode, exported: bool = False, top_level: bool = False) -> None:
        if isinstance(node, ExportNode):
            self._export(node, top_level)
            return

        if isinstance(node, FunctionNode):
            signature = build_signature(node, exported)
            self.functions.append(signature)
            self.function_defs.setdefault(node.name, FunctionDefinition(node, signature))
            self._declared(node.name, exported, top_level)
            for child in node.children:
                self.walk(child)
            return

        if isinstance(node, ClassNode):
            self._class(node, exported, top_level)
            return

        if isinstance(node, InterfaceNode):
            self.interfaces.append(
                InterfaceInfo(
                    name=node.name,
                    is_exported=exported,
                    extends=tuple(node.extends),
                    properties=tuple(_property(p) for p in node.properties),
                    methods=tuple(build_signature(m) for m in node.methods),
                    doc_comment=node.doc_comment,
                    start_line=node.start_line,
                    end_line=node.end_line,
                )
            )
            self._declared(node.name, exported, top_level)
            return

        if isinstance(node, TypeAliasNode):
            self.types.append(
                TypeInfo(
                    name=node.name,
                    is_exported=exported,
                    definition=node.definition,
                    doc_comment=node.doc_comment,
                    start_line=node.start_line,
                    end_line=node.end_line,
                )
            )
            self._declared(node.name, exported, top_level)
            return

        if isinstance(node, ImportNode):
            self.imports.append(
                ImportInfo(
                    source=node.source,
                    imports=tuple(node.names),
                    is_default=node.is_default,
                    namespace=node.namespace,
                    start_line=node.start_line,
                )
            )
            return

        for child in node.sub_nodes():
            self.walk(child)

    def _declared(self, name: str, exported: bool, top_level: bool) -> None:
        if top_level:
            self.top_level.add(name)
        if exported:
            self.exports.setdefault(name, None)

    def _export(self, node: ExportNode, top_level: bool) -> None:
        if node.source is None:
            self.local_exports.update(s.name for s in node.specifiers)
        for name in node.exported_names:
            self.exports.setdefault(name, None)
        if node.source is not None and not node.specifiers:
            self.exports.setdefault("*", None)
        for child in node.children:
            self.walk(child, exported=True, top_level=top_level)

    def _class(self, node: ClassNode, exported: bool, top_level: bool) -> None:
        methods = []
        for method in node.methods:
            signature = build_signature(method)
            methods.append(signature)
            self.method_defs.setdefault(
                method.name, FunctionDefinition(method, signature, class_name=node.name)
            )
        self.classes.append(
            ClassInfo(
                name=node.name,
                is_exported=exported,
                extends=node.extends,
                implements=tuple(node.implements),
                methods=tuple(methods),
                properties=tuple(_property(p) for p in node.properties),
                doc_comment=node.doc_comment,
                start_line=node.start_line,
                end_line=node.end_line,
            )
        )
        self._declared(node.name, exported, top_level)
        for method in node.methods:
            for child in method.children:
                self.walk(child)
        for child in [*node.properties, *node.children]:
            self.walk(child)

    def apply_local_exports(self) -> None:
        """Mark top-level declarations named by a local export clause."""
        marked = self.local_exports & self.top_level

        def mark(items):
            return [
                replace(item, is_exported=True) if item.name in marked and not item.is_exported else item
                for item in items
            ]

        self.functions = mark(self.functions)
        self.classes = mark(self.classes)
        self.interfaces = mark(self.interfaces)
        self.types = mark(self.types)
        for name, definition in self.function_defs.items():
            if name in marked and not definition.signature.is_exported:
                definition.signature = replace(definition.signature, is_exported=True)


class StructuralExtractor:
    """
    Extracts structural models from TypeScript, JavaScript and Python files.

    The extractor is stateless apart from its adapter table and may be shared
    across threads.

    Example:
        >>> extractor = StructuralExtractor()
        >>> analysis = extractor.analyze_source("math.ts", "export function add(a: number, b: number): number { return a + b; }")
        >>> analysis.functions[0].is_exported
        True
    """

    def __init__(self, adapters=None):
        adapters = adapters if adapters is not None else [TypeScriptAdapter(), PythonAdapter()]
        self._adapters = {ext: adapter for adapter in adapters for ext in adapter.extensions}

    @property
    def extensions(self) -> tuple[str, ...]:
        return tuple(self._adapters)

    def supports(self, file_path: Path | str) -> bool:
        return Path(file_path).suffix.lower() in self._adapters

    @staticmethod
    def language_for(file_path: Path | str) -> str:
        suffix = Path(file_path).suffix.lower()
        return "python" if suffix == ".py" else language_for(file_path)

    def analyze_file(self, file_path: Path | str) -> Optional[FileAnalysis]:
        """
        Analyze a file on disk.

        Args:
            file_path: Path to a source file

        Returns:
            FileAnalysis, or None for unsupported extensions and unreadable files
        """
        path = Path(file_path)
        if not self.supports(path):
            logger.warning(f"Unsupported file type: {path}")
            return None
        try:
            content = path.read_text(encoding="utf-8")
            mtime = path.stat().st_mtime
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Could not read {path}: {exc}")
            return None
        last_modified = datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()
        return self.analyze_source(path, content, last_modified=last_modified)

    def analyze_source(
        self,
        file_path: Path | str,
        content: str,
        last_modified: Optional[str] = None,
    ) -> FileAnalysis:
        """Analyze in-memory source; never raises for syntax errors."""
        return self.parse_source(file_path, content, last_modified).analysis

    def parse_source(
        self,
        file_path: Path | str,
        content: str,
        last_modified: Optional[str] = None,
    ) -> ParsedFile:
        """
        Parse source into a ParsedFile.

        Raises:
            ValueError: If the extension is not supported
        """
        path = str(file_path)
        adapter = self._adapters.get(Path(path).suffix.lower())
        if adapter is None:
            raise ValueError(f"Unsupported file type: {path}")

        base = FileAnalysis(
            file_path=path,
            language=self.language_for(path),
            content_hash=compute_content_hash(content),
            last_modified=last_modified,
            lines_of_code=len(content.split("\n")),
        )

        try:
            tree = adapter.parse(path, content)
        except SourceParseError as exc:
            logger.warning(f"Failed to parse {path}: {exc}")
            return ParsedFile(analysis=replace(base, warnings=(f"Parse error: {exc}",)))

        builder = _ModelBuilder()
        for child in tree.children:
            builder.walk(child, top_level=True)
        builder.apply_local_exports()

        complexity = sum(f.complexity for f in builder.functions) + sum(
            m.complexity for c in builder.classes for m in c.methods
        )
        analysis = replace(
            base,
            functions=tuple(builder.functions),
            classes=tuple(builder.classes),
            interfaces=tuple(builder.interfaces),
            types=tuple(builder.types),
            imports=tuple(builder.imports),
            exports=tuple(builder.exports),
            complexity=complexity,
        )
        return ParsedFile(
            analysis=analysis,
            tree=tree,
            functions=builder.function_defs,
            methods=builder.method_defs,
        )


def analyze_file(file_path: Path | str) -> Optional[FileAnalysis]:
    """Convenience wrapper around StructuralExtractor.analyze_file."""
    return StructuralExtractor().analyze_file(file_path)
