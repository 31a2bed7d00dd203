"""
Core Data Models for driftgraph

This module defines the canonical data structures used throughout the system:
- FunctionSignature / ClassInfo / InterfaceInfo / TypeInfo: the structural
  model of one source file
- FileAnalysis: everything extracted from one file at one point in time
- CodeDiff: one structural change between two versions of the same file
- CallGraph / CallGraphNode: the bounded call tree rooted at one entry symbol
- DriftSnapshot and the documentation records it holds
- DriftDetectionResult and the drift/suggestion records it carries

These models are designed to be:
- Immutable where possible (frozen dataclasses holding tuples)
- Serializable for storage (stable camelCase JSON field names)
- Clear in their semantic meaning
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import networkx as nx


class ImpactLevel(Enum):
    """
    Classification of a single structural change.

    States:
        BREAKING: Existing callers or documentation examples stop working.
        MAJOR: Behavioural contract changed (e.g. a function became async).
        MINOR: New API surface appeared.
        PATCH: Everything else.
    """

    BREAKING = "breaking"
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class Severity(Enum):
    """Severity of a drift, derived deterministically from its impact level."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Ordering position, NONE lowest."""
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [
    Severity.NONE,
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
]


class DiffType(Enum):
    """Kind of change recorded by a CodeDiff."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


class DiffCategory(Enum):
    """Kind of symbol a CodeDiff refers to."""

    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    TYPE = "type"
    IMPORT = "import"
    EXPORT = "export"


class DriftType(Enum):
    """How documentation relates to a code change."""

    OUTDATED = "outdated"
    INCORRECT = "incorrect"
    MISSING = "missing"
    BREAKING = "breaking"


class UpdateEffort(Enum):
    """Rough estimate of the work needed to bring docs back in sync."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------------------------------------------------
# Structural model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParameterInfo:
    """
    A single declared parameter.

    Attributes:
        name: Parameter name (destructuring patterns keep their source text)
        type: Mapped type label, None when the parameter is not annotated
        optional: True for `?` parameters, defaulted parameters and rest args
        default_value: Literal or identifier text of the default, if any
    """

    name: str
    type: Optional[str] = None
    optional: bool = False
    default_value: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "optional": self.optional,
            "defaultValue": self.default_value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParameterInfo":
        return cls(
            name=data["name"],
            type=data.get("type"),
            optional=data.get("optional", False),
            default_value=data.get("defaultValue"),
        )


@dataclass(frozen=True)
class FunctionSignature:
    """
    Structural description of a function, method or method signature.

    A FunctionSignature is produced by the Structural Extractor every time a
    file is parsed. Two signatures from different parses are compared by
    value; neither is ever mutated.

    Attributes:
        name: Simple function name
        parameters: Declared parameters in order
        return_type: Mapped return type label, None when not annotated
        is_async: True for async functions
        is_exported: True when reachable through an export wrapper
        visibility: "public", "private" or "protected"
        doc_comment: JSDoc block or docstring, if present
        start_line: 1-indexed first line
        end_line: 1-indexed last line
        complexity: Cyclomatic complexity, always >= 1
        dependencies: Names of the functions it calls, in first-call order
        semantic_hash: Hash of the normalized code (comments/docstrings excluded)

    Invariants:
        - complexity >= 1
        - start_line <= end_line
    """

    name: str
    parameters: tuple[ParameterInfo, ...] = ()
    return_type: Optional[str] = None
    is_async: bool = False
    is_exported: bool = False
    visibility: str = "public"
    doc_comment: Optional[str] = None
    start_line: int = 0
    end_line: int = 0
    complexity: int = 1
    dependencies: tuple[str, ...] = ()
    semantic_hash: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        if self.complexity < 1:
            raise ValueError(f"complexity must be >= 1, got {self.complexity}")
        if self.start_line > self.end_line:
            raise ValueError(
                f"start_line ({self.start_line}) must be <= end_line ({self.end_line})"
            )

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    @classmethod
    def placeholder(cls, name: str) -> "FunctionSignature":
        """Signature standing in for a call target that could not be located."""
        return cls(name=name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "parameters": [p.to_dict() for p in self.parameters],
            "returnType": self.return_type,
            "isAsync": self.is_async,
            "isExported": self.is_exported,
            "visibility": self.visibility,
            "docComment": self.doc_comment,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "complexity": self.complexity,
            "dependencies": list(self.dependencies),
            "semanticHash": self.semantic_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FunctionSignature":
        return cls(
            name=data["name"],
            parameters=tuple(ParameterInfo.from_dict(p) for p in data.get("parameters", [])),
            return_type=data.get("returnType"),
            is_async=data.get("isAsync", False),
            is_exported=data.get("isExported", False),
            visibility=data.get("visibility", "public"),
            doc_comment=data.get("docComment"),
            start_line=data.get("startLine", 0),
            end_line=data.get("endLine", 0),
            complexity=data.get("complexity", 1),
            dependencies=tuple(data.get("dependencies", [])),
            semantic_hash=data.get("semanticHash"),
        )


@dataclass(frozen=True)
class PropertyInfo:
    """A class field or interface property."""

    name: str
    type: Optional[str] = None
    is_static: bool = False
    is_readonly: bool = False
    visibility: str = "public"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "isStatic": self.is_static,
            "isReadonly": self.is_readonly,
            "visibility": self.visibility,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PropertyInfo":
        return cls(
            name=data["name"],
            type=data.get("type"),
            is_static=data.get("isStatic", False),
            is_readonly=data.get("isReadonly", False),
            visibility=data.get("visibility", "public"),
        )


@dataclass(frozen=True)
class ClassInfo:
    """
    Structural description of a class.

    Attributes:
        name: Class name
        is_exported: True when reachable through an export wrapper
        extends: Superclass name, if any
        implements: Implemented interfaces (Python: the remaining bases)
        methods: Method signatures in declaration order
        properties: Declared fields
        doc_comment: JSDoc block or docstring, if present
        start_line: 1-indexed first line
        end_line: 1-indexed last line
    """

    name: str
    is_exported: bool = False
    extends: Optional[str] = None
    implements: tuple[str, ...] = ()
    methods: tuple[FunctionSignature, ...] = ()
    properties: tuple[PropertyInfo, ...] = ()
    doc_comment: Optional[str] = None
    start_line: int = 0
    end_line: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "isExported": self.is_exported,
            "extends": self.extends,
            "implements": list(self.implements),
            "methods": [m.to_dict() for m in self.methods],
            "properties": [p.to_dict() for p in self.properties],
            "docComment": self.doc_comment,
            "startLine": self.start_line,
            "endLine": self.end_line,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClassInfo":
        return cls(
            name=data["name"],
            is_exported=data.get("isExported", False),
            extends=data.get("extends"),
            implements=tuple(data.get("implements", [])),
            methods=tuple(FunctionSignature.from_dict(m) for m in data.get("methods", [])),
            properties=tuple(PropertyInfo.from_dict(p) for p in data.get("properties", [])),
            doc_comment=data.get("docComment"),
            start_line=data.get("startLine", 0),
            end_line=data.get("endLine", 0),
        )


@dataclass(frozen=True)
class InterfaceInfo:
    """Structural description of an interface (TS) or Protocol/TypedDict (Python)."""

    name: str
    is_exported: bool = False
    extends: tuple[str, ...] = ()
    properties: tuple[PropertyInfo, ...] = ()
    methods: tuple[FunctionSignature, ...] = ()
    doc_comment: Optional[str] = None
    start_line: int = 0
    end_line: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "isExported": self.is_exported,
            "extends": list(self.extends),
            "properties": [p.to_dict() for p in self.properties],
            "methods": [m.to_dict() for m in self.methods],
            "docComment": self.doc_comment,
            "startLine": self.start_line,
            "endLine": self.end_line,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InterfaceInfo":
        return cls(
            name=data["name"],
            is_exported=data.get("isExported", False),
            extends=tuple(data.get("extends", [])),
            properties=tuple(PropertyInfo.from_dict(p) for p in data.get("properties", [])),
            methods=tuple(FunctionSignature.from_dict(m) for m in data.get("methods", [])),
            doc_comment=data.get("docComment"),
            start_line=data.get("startLine", 0),
            end_line=data.get("endLine", 0),
        )


@dataclass(frozen=True)
class TypeInfo:
    """A type alias; `definition` is the whitespace-collapsed aliased type text."""

    name: str
    is_exported: bool = False
    definition: str = "unknown"
    doc_comment: Optional[str] = None
    start_line: int = 0
    end_line: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "isExported": self.is_exported,
            "definition": self.definition,
            "docComment": self.doc_comment,
            "startLine": self.start_line,
            "endLine": self.end_line,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TypeInfo":
        return cls(
            name=data["name"],
            is_exported=data.get("isExported", False),
            definition=data.get("definition", "unknown"),
            doc_comment=data.get("docComment"),
            start_line=data.get("startLine", 0),
            end_line=data.get("endLine", 0),
        )


@dataclass(frozen=True)
class ImportedName:
    """One name bound by an import; alias is None when not renamed."""

    name: str
    alias: Optional[str] = None

    @property
    def local_name(self) -> str:
        return self.alias or self.name


@dataclass(frozen=True)
class ImportInfo:
    """
    One import declaration.

    Attributes:
        source: Module specifier as written ("./helper.js", "..utils", "os.path")
        imports: Names bound by the declaration
        is_default: True when a default import is present (JS/TS)
        namespace: Local name bound to the whole module, if any
        start_line: 1-indexed line of the declaration
    """

    source: str
    imports: tuple[ImportedName, ...] = ()
    is_default: bool = False
    namespace: Optional[str] = None
    start_line: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "imports": [
                {"name": i.name, "alias": i.alias} if i.alias else {"name": i.name}
                for i in self.imports
            ],
            "isDefault": self.is_default,
            "namespace": self.namespace,
            "startLine": self.start_line,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImportInfo":
        return cls(
            source=data["source"],
            imports=tuple(
                ImportedName(name=i["name"], alias=i.get("alias"))
                for i in data.get("imports", [])
            ),
            is_default=data.get("isDefault", False),
            namespace=data.get("namespace"),
            start_line=data.get("startLine", 0),
        )


@dataclass(frozen=True)
class FileAnalysis:
    """
    The structural model of one file at one point in time.

    A file that failed to parse still yields a FileAnalysis: every list is
    empty, content_hash and lines_of_code are filled in and the failure is
    recorded in warnings.
    """

    file_path: str
    language: str
    functions: tuple[FunctionSignature, ...] = ()
    classes: tuple[ClassInfo, ...] = ()
    interfaces: tuple[InterfaceInfo, ...] = ()
    types: tuple[TypeInfo, ...] = ()
    imports: tuple[ImportInfo, ...] = ()
    exports: tuple[str, ...] = ()
    content_hash: str = ""
    last_modified: Optional[str] = None
    lines_of_code: int = 0
    complexity: int = 0
    warnings: tuple[str, ...] = ()

    @property
    def parsed(self) -> bool:
        """False when extraction degraded to an empty model."""
        return not self.warnings

    def to_dict(self) -> dict[str, Any]:
        return {
            "filePath": self.file_path,
            "language": self.language,
            "functions": [f.to_dict() for f in self.functions],
            "classes": [c.to_dict() for c in self.classes],
            "interfaces": [i.to_dict() for i in self.interfaces],
            "types": [t.to_dict() for t in self.types],
            "imports": [i.to_dict() for i in self.imports],
            "exports": list(self.exports),
            "contentHash": self.content_hash,
            "lastModified": self.last_modified,
            "linesOfCode": self.lines_of_code,
            "complexity": self.complexity,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileAnalysis":
        return cls(
            file_path=data["filePath"],
            language=data["language"],
            functions=tuple(FunctionSignature.from_dict(f) for f in data.get("functions", [])),
            classes=tuple(ClassInfo.from_dict(c) for c in data.get("classes", [])),
            interfaces=tuple(InterfaceInfo.from_dict(i) for i in data.get("interfaces", [])),
            types=tuple(TypeInfo.from_dict(t) for t in data.get("types", [])),
            imports=tuple(ImportInfo.from_dict(i) for i in data.get("imports", [])),
            exports=tuple(data.get("exports", [])),
            content_hash=data.get("contentHash", ""),
            last_modified=data.get("lastModified"),
            lines_of_code=data.get("linesOfCode", 0),
            complexity=data.get("complexity", 0),
            warnings=tuple(data.get("warnings", [])),
        )


@dataclass(frozen=True)
class CodeDiff:
    """
    The atomic unit of structural change between two versions of one file.

    Attributes:
        type: added / removed / modified / unchanged
        category: function / class / interface / type / import / export
        name: Symbol name
        details: Human-readable description of what changed
        old_signature: Formatted signature before the change
        new_signature: Formatted signature after the change
        impact_level: breaking / major / minor / patch
    """

    type: DiffType
    category: DiffCategory
    name: str
    details: str
    impact_level: ImpactLevel
    old_signature: Optional[str] = None
    new_signature: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "category": self.category.value,
            "name": self.name,
            "details": self.details,
            "oldSignature": self.old_signature,
            "newSignature": self.new_signature,
            "impactLevel": self.impact_level.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CodeDiff":
        return cls(
            type=DiffType(data["type"]),
            category=DiffCategory(data["category"]),
            name=data["name"],
            details=data.get("details", ""),
            impact_level=ImpactLevel(data["impactLevel"]),
            old_signature=data.get("oldSignature"),
            new_signature=data.get("newSignature"),
        )


# ---------------------------------------------------------------------------
# Call graph
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CallSiteLocation:
    """File and 1-indexed line of a definition or call site."""

    file: str
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "line": self.line}


@dataclass
class ConditionalPath:
    """
    One branching construct inside a function body.

    Attributes:
        type: "if", "ternary" or "switch-case"
        condition: Condition source text ("default" for a default case)
        line_number: 1-indexed line of the construct
        true_branch: Nodes for the calls made when the condition holds
        false_branch: Nodes for the calls made otherwise
    """

    type: str
    condition: str
    line_number: int
    true_branch: list["CallGraphNode"] = field(default_factory=list)
    false_branch: list["CallGraphNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "condition": self.condition,
            "lineNumber": self.line_number,
            "trueBranch": [n.to_dict() for n in self.true_branch],
            "falseBranch": [n.to_dict() for n in self.false_branch],
        }


@dataclass(frozen=True)
class ExceptionPath:
    """
    A throw/raise site.

    is_caught is a syntactic heuristic: the throw sits inside a try body.
    It says nothing about whether the handler actually matches.
    """

    exception_type: str
    line_number: int
    is_caught: bool
    expression: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "exceptionType": self.exception_type,
            "lineNumber": self.line_number,
            "isCaught": self.is_caught,
            "expression": self.expression,
        }


@dataclass
class CallGraphNode:
    """
    One resolved or unresolved call target in a call graph.

    Attributes:
        function: The target signature, or a placeholder when unresolved
        location: Definition location (call-site location for placeholders)
        calls: Child nodes for the calls made by this function
        conditional_branches: Branching constructs with their calls
        exceptions: Throw/raise sites
        depth: Recursion depth at which the node was reached (root = 0)
        truncated: Expansion stopped early (depth limit, cycle or cancellation)
        is_external: Target could not be located in the project
    """

    function: FunctionSignature
    location: CallSiteLocation
    depth: int
    calls: list["CallGraphNode"] = field(default_factory=list)
    conditional_branches: list[ConditionalPath] = field(default_factory=list)
    exceptions: list[ExceptionPath] = field(default_factory=list)
    truncated: bool = False
    is_external: bool = False

    def iter_nodes(self):
        """Yield this node and every node below it, branch nodes included."""
        yield self
        for child in self.calls:
            yield from child.iter_nodes()
        for branch in self.conditional_branches:
            for child in branch.true_branch + branch.false_branch:
                yield from child.iter_nodes()

    def to_dict(self) -> dict[str, Any]:
        return {
            "function": self.function.to_dict(),
            "location": self.location.to_dict(),
            "calls": [c.to_dict() for c in self.calls],
            "conditionalBranches": [b.to_dict() for b in self.conditional_branches],
            "exceptions": [e.to_dict() for e in self.exceptions],
            "depth": self.depth,
            "truncated": self.truncated,
            "isExternal": self.is_external,
        }


@dataclass(frozen=True)
class CircularReference:
    """A call that would re-enter a function already on the active path."""

    from_function: str
    to_function: str
    file: str
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_function,
            "to": self.to_function,
            "file": self.file,
            "line": self.line,
        }


@dataclass(frozen=True)
class UnresolvedCall:
    """A call site whose target was neither found in-project nor a known built-in."""

    name: str
    file: str
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "file": self.file, "line": self.line}


@dataclass
class CallGraph:
    """
    Result of building a call graph for one entry symbol.

    Attributes:
        entry_point: The requested entry symbol name
        root: Root node (an external placeholder if the entry was not found)
        all_functions: Every distinct function reached, keyed by name;
            later discoveries of a duplicate name overwrite earlier ones
        max_depth_reached: Deepest node depth actually created
        analyzed_files: Files whose functions were expanded, deduplicated
        circular_references: Back-edges cut during the build
        unresolved_calls: Call sites that could not be resolved
        build_time_ms: Wall-clock build time
        cancelled: True when the build stopped on an external cancel flag
    """

    entry_point: str
    root: CallGraphNode
    all_functions: dict[str, FunctionSignature] = field(default_factory=dict)
    max_depth_reached: int = 0
    analyzed_files: list[str] = field(default_factory=list)
    circular_references: list[CircularReference] = field(default_factory=list)
    unresolved_calls: list[UnresolvedCall] = field(default_factory=list)
    build_time_ms: float = 0.0
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "entryPoint": self.entry_point,
            "root": self.root.to_dict(),
            "allFunctions": [
                {"name": name, "signature": sig.to_dict()}
                for name, sig in self.all_functions.items()
            ],
            "maxDepthReached": self.max_depth_reached,
            "analyzedFiles": list(self.analyzed_files),
            "circularReferences": [c.to_dict() for c in self.circular_references],
            "unresolvedCalls": [u.to_dict() for u in self.unresolved_calls],
            "buildTimeMs": self.build_time_ms,
            "cancelled": self.cancelled,
        }

    def to_digraph(self) -> nx.DiGraph:
        """
        Export the call tree as a directed graph.

        Nodes are keyed "file:name" and carry the FunctionSignature plus the
        external flag. Tree edges have kind="call"; cut back-edges from
        circular_references are added with kind="cycle".

        Returns:
            networkx.DiGraph
        """
        graph = nx.DiGraph()

        def key(node: CallGraphNode) -> str:
            return f"{node.location.file}:{node.function.name}"

        def visit(node: CallGraphNode) -> None:
            node_key = key(node)
            if node_key not in graph:
                graph.add_node(
                    node_key,
                    signature=node.function,
                    is_external=node.is_external,
                )
            children = list(node.calls)
            for branch in node.conditional_branches:
                children.extend(branch.true_branch)
                children.extend(branch.false_branch)
            for child in children:
                visit(child)
                graph.add_edge(node_key, key(child), kind="call")

        visit(self.root)

        by_name = {data["signature"].name: n for n, data in graph.nodes(data=True)}
        for ref in self.circular_references:
            source = f"{ref.file}:{ref.from_function}"
            target = by_name.get(ref.to_function, f"{ref.file}:{ref.to_function}")
            if source in graph and target in graph:
                graph.add_edge(source, target, kind="cycle")

        return graph


# ---------------------------------------------------------------------------
# Documentation and snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CodeExample:
    """A fenced code block inside a documentation section."""

    language: str
    code: str
    description: str = ""
    referenced_symbols: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "code": self.code,
            "description": self.description,
            "referencedSymbols": list(self.referenced_symbols),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CodeExample":
        return cls(
            language=data.get("language", "text"),
            code=data.get("code", ""),
            description=data.get("description", ""),
            referenced_symbols=tuple(data.get("referencedSymbols", [])),
        )


@dataclass(frozen=True)
class DocumentationSection:
    """A heading-delimited part of a documentation file, with its symbol references."""

    title: str
    content: str
    referenced_functions: tuple[str, ...] = ()
    referenced_classes: tuple[str, ...] = ()
    referenced_types: tuple[str, ...] = ()
    code_examples: tuple[CodeExample, ...] = ()
    start_line: int = 0
    end_line: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "referencedFunctions": list(self.referenced_functions),
            "referencedClasses": list(self.referenced_classes),
            "referencedTypes": list(self.referenced_types),
            "codeExamples": [e.to_dict() for e in self.code_examples],
            "startLine": self.start_line,
            "endLine": self.end_line,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentationSection":
        return cls(
            title=data["title"],
            content=data.get("content", ""),
            referenced_functions=tuple(data.get("referencedFunctions", [])),
            referenced_classes=tuple(data.get("referencedClasses", [])),
            referenced_types=tuple(data.get("referencedTypes", [])),
            code_examples=tuple(CodeExample.from_dict(e) for e in data.get("codeExamples", [])),
            start_line=data.get("startLine", 0),
            end_line=data.get("endLine", 0),
        )


@dataclass(frozen=True)
class DocumentationSnapshot:
    """Structural capture of one documentation file."""

    file_path: str
    content_hash: str
    referenced_code: tuple[str, ...] = ()
    last_updated: Optional[str] = None
    sections: tuple[DocumentationSection, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "filePath": self.file_path,
            "contentHash": self.content_hash,
            "referencedCode": list(self.referenced_code),
            "lastUpdated": self.last_updated,
            "sections": [s.to_dict() for s in self.sections],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentationSnapshot":
        return cls(
            file_path=data["filePath"],
            content_hash=data.get("contentHash", ""),
            referenced_code=tuple(data.get("referencedCode", [])),
            last_updated=data.get("lastUpdated"),
            sections=tuple(DocumentationSection.from_dict(s) for s in data.get("sections", [])),
        )


@dataclass(frozen=True)
class DriftSnapshot:
    """
    An immutable, timestamped capture of a project's code and documentation.

    Snapshots are write-once: a new edit produces a new snapshot.
    """

    project_path: str
    timestamp: str
    files: dict[str, FileAnalysis] = field(default_factory=dict)
    documentation: dict[str, DocumentationSnapshot] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectPath": self.project_path,
            "timestamp": self.timestamp,
            "files": {path: a.to_dict() for path, a in self.files.items()},
            "documentation": {path: d.to_dict() for path, d in self.documentation.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DriftSnapshot":
        return cls(
            project_path=data["projectPath"],
            timestamp=data["timestamp"],
            files={path: FileAnalysis.from_dict(a) for path, a in data["files"].items()},
            documentation={
                path: DocumentationSnapshot.from_dict(d)
                for path, d in data["documentation"].items()
            },
        )


# ---------------------------------------------------------------------------
# Drift detection results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentationDrift:
    """One code change together with the documentation it affects."""

    type: DriftType
    affected_docs: tuple[str, ...]
    code_changes: tuple[CodeDiff, ...]
    description: str
    detected_at: str
    severity: Severity

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "affectedDocs": list(self.affected_docs),
            "codeChanges": [c.to_dict() for c in self.code_changes],
            "description": self.description,
            "detectedAt": self.detected_at,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class DriftSuggestion:
    """
    A proposed edit to one documentation section.

    confidence is static per diff kind; feedback_score is an independent
    number contributed by an optional external scorer.
    """

    doc_file: str
    section: str
    current_content: str
    suggested_content: str
    reasoning: str
    confidence: float
    auto_applicable: bool
    feedback_score: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "docFile": self.doc_file,
            "section": self.section,
            "currentContent": self.current_content,
            "suggestedContent": self.suggested_content,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "autoApplicable": self.auto_applicable,
            "feedbackScore": self.feedback_score,
        }


@dataclass(frozen=True)
class ImpactAnalysis:
    """Summary of the changes in one file."""

    breaking_changes: int = 0
    major_changes: int = 0
    minor_changes: int = 0
    affected_doc_files: tuple[str, ...] = ()
    estimated_update_effort: UpdateEffort = UpdateEffort.LOW
    requires_manual_review: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "breakingChanges": self.breaking_changes,
            "majorChanges": self.major_changes,
            "minorChanges": self.minor_changes,
            "affectedDocFiles": list(self.affected_doc_files),
            "estimatedUpdateEffort": self.estimated_update_effort.value,
            "requiresManualReview": self.requires_manual_review,
        }


@dataclass(frozen=True)
class DriftDetectionResult:
    """Drift report for one source file."""

    file_path: str
    has_drift: bool
    severity: Severity
    drifts: tuple[DocumentationDrift, ...] = ()
    suggestions: tuple[DriftSuggestion, ...] = ()
    impact_analysis: ImpactAnalysis = field(default_factory=ImpactAnalysis)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filePath": self.file_path,
            "hasDrift": self.has_drift,
            "severity": self.severity.value,
            "drifts": [d.to_dict() for d in self.drifts],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "impactAnalysis": self.impact_analysis.to_dict(),
        }
