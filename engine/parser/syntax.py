"""
Closed Syntax Node Union

Language adapters translate their parser's concrete tree into the small set
of node types defined here. Everything downstream (the structural extractor,
complexity counting, the call-graph builder) only ever sees these nodes.

Design Decisions:
    - One dataclass per construct the analysis cares about; anything else is
      dropped by the adapter and its relevant descendants are lifted into the
      nearest represented ancestor
    - Structured slots (consequent/alternate, cases, handlers, methods) are
      plain lists so visitors can tell which branch a call sits in
    - `sub_nodes()` is the single traversal primitive; `walk()` builds on it

Academic Context:
    Input: A parser-specific concrete syntax tree
    Transformation: Adapter projection onto a closed algebraic union
    Output: A language-neutral tree with 1-indexed line spans
    Limitation: Only constructs relevant to structure and control flow survive
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from engine.models import ImportedName, ParameterInfo


class SourceParseError(Exception):
    """Raised by an adapter when the source contains syntax errors."""

    def __init__(self, file_path: str, message: str, line: Optional[int] = None):
        self.file_path = file_path
        self.line = line
        location = f"{file_path}:{line}" if line else file_path
        super().__init__(f"{location}: {message}")


class NodeKind(Enum):
    MODULE = "module"
    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    TYPE_ALIAS = "type_alias"
    PROPERTY = "property"
    IMPORT = "import"
    EXPORT = "export"
    CALL = "call"
    CONDITIONAL = "conditional"
    SWITCH = "switch"
    CASE = "case"
    LOOP = "loop"
    TRY = "try"
    CATCH = "catch"
    THROW = "throw"


@dataclass(kw_only=True)
class SyntaxNode:
    """Base for every node in the union."""

    kind = NodeKind.MODULE

    start_line: int = 0
    end_line: int = 0
    children: list["SyntaxNode"] = field(default_factory=list)

    def sub_nodes(self) -> list["SyntaxNode"]:
        """All direct sub-nodes, across every structured slot."""
        return list(self.children)

    def walk(self) -> Iterator["SyntaxNode"]:
        """Pre-order traversal of all descendants (self excluded)."""
        for child in self.sub_nodes():
            yield child
            yield from child.walk()


@dataclass(kw_only=True)
class ModuleNode(SyntaxNode):
    kind = NodeKind.MODULE

    path: str
    language: str


@dataclass(kw_only=True)
class FunctionNode(SyntaxNode):
    """
    A function, method, method signature or variable-bound arrow/lambda.

    `children` holds the body. `body_hash` is the adapter's normalized-code
    hash, used to notice implementation changes.
    """

    kind = NodeKind.FUNCTION

    name: str
    parameters: list[ParameterInfo] = field(default_factory=list)
    return_type: Optional[str] = None
    is_async: bool = False
    is_static: bool = False
    visibility: str = "public"
    doc_comment: Optional[str] = None
    body_hash: Optional[str] = None


@dataclass(kw_only=True)
class PropertyNode(SyntaxNode):
    kind = NodeKind.PROPERTY

    name: str
    type: Optional[str] = None
    is_static: bool = False
    is_readonly: bool = False
    visibility: str = "public"


@dataclass(kw_only=True)
class ClassNode(SyntaxNode):
    kind = NodeKind.CLASS

    name: str
    extends: Optional[str] = None
    implements: list[str] = field(default_factory=list)
    methods: list[FunctionNode] = field(default_factory=list)
    properties: list[PropertyNode] = field(default_factory=list)
    doc_comment: Optional[str] = None

    def sub_nodes(self) -> list[SyntaxNode]:
        return [*self.properties, *self.methods, *self.children]


@dataclass(kw_only=True)
class InterfaceNode(SyntaxNode):
    kind = NodeKind.INTERFACE

    name: str
    extends: list[str] = field(default_factory=list)
    methods: list[FunctionNode] = field(default_factory=list)
    properties: list[PropertyNode] = field(default_factory=list)
    doc_comment: Optional[str] = None

    def sub_nodes(self) -> list[SyntaxNode]:
        return [*self.properties, *self.methods, *self.children]


@dataclass(kw_only=True)
class TypeAliasNode(SyntaxNode):
    kind = NodeKind.TYPE_ALIAS

    name: str
    definition: str = "unknown"
    doc_comment: Optional[str] = None


@dataclass(kw_only=True)
class ImportNode(SyntaxNode):
    """
    One import declaration.

    `names` are the bound names (a JS default import appears as name
    "default" with the local alias). `namespace` is the local name bound to
    the whole module (`import * as ns`, `import pkg.mod`).
    """

    kind = NodeKind.IMPORT

    source: str
    names: list[ImportedName] = field(default_factory=list)
    is_default: bool = False
    namespace: Optional[str] = None


@dataclass(kw_only=True)
class ExportNode(SyntaxNode):
    """
    An export wrapper.

    Declarations it wraps are its direct `children`. Export clauses record
    their specifiers (name = local, alias = exported) and, for re-exports,
    the `source` module.
    """

    kind = NodeKind.EXPORT

    specifiers: list[ImportedName] = field(default_factory=list)
    source: Optional[str] = None
    is_default: bool = False

    @property
    def exported_names(self) -> list[str]:
        return [s.alias or s.name for s in self.specifiers]


@dataclass(kw_only=True)
class CallNode(SyntaxNode):
    """
    A call site. `callee` is the simple called name; `receiver` is the text
    left of the final member access, if any. `children` holds calls and
    other constructs found inside the arguments.
    """

    kind = NodeKind.CALL

    callee: str
    receiver: Optional[str] = None
    text: str = ""

    @property
    def is_member_call(self) -> bool:
        return self.receiver is not None


@dataclass(kw_only=True)
class ConditionalNode(SyntaxNode):
    """
    `if` statement or ternary/conditional expression.

    `children` holds nodes found in the condition itself. An `else if`
    chain is a nested ConditionalNode in `alternate`.
    """

    kind = NodeKind.CONDITIONAL

    type: str = "if"
    condition: str = ""
    consequent: list[SyntaxNode] = field(default_factory=list)
    alternate: list[SyntaxNode] = field(default_factory=list)

    def sub_nodes(self) -> list[SyntaxNode]:
        return [*self.children, *self.consequent, *self.alternate]


@dataclass(kw_only=True)
class CaseNode(SyntaxNode):
    """One `case`/`default` (JS) or `case` (Python match); test None = default."""

    kind = NodeKind.CASE

    test: Optional[str] = None


@dataclass(kw_only=True)
class SwitchNode(SyntaxNode):
    kind = NodeKind.SWITCH

    discriminant: str = ""
    cases: list[CaseNode] = field(default_factory=list)

    def sub_nodes(self) -> list[SyntaxNode]:
        return [*self.children, *self.cases]


@dataclass(kw_only=True)
class LoopNode(SyntaxNode):
    kind = NodeKind.LOOP

    loop_type: str = "for"


@dataclass(kw_only=True)
class CatchNode(SyntaxNode):
    kind = NodeKind.CATCH

    parameter: Optional[str] = None


@dataclass(kw_only=True)
class TryNode(SyntaxNode):
    """
    `children` is the protected try body. Handlers, the Python `else` block
    and the finalizer are separate slots and are not protected by this try.
    """

    kind = NodeKind.TRY

    handlers: list[CatchNode] = field(default_factory=list)
    orelse: list[SyntaxNode] = field(default_factory=list)
    finalizer: list[SyntaxNode] = field(default_factory=list)

    def sub_nodes(self) -> list[SyntaxNode]:
        return [*self.children, *self.handlers, *self.orelse, *self.finalizer]


@dataclass(kw_only=True)
class ThrowNode(SyntaxNode):
    """A throw/raise; `exception_type` is the adapter's best guess at the type."""

    kind = NodeKind.THROW

    expression: str = ""
    exception_type: str = "Error"


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces."""
    return " ".join(text.split())


def iter_calls(nodes: list[SyntaxNode]) -> Iterator[CallNode]:
    """
    Yield call sites in source order, without descending into nested
    function or class definitions.
    """
    for node in nodes:
        if isinstance(node, (FunctionNode, ClassNode)):
            continue
        if isinstance(node, CallNode):
            yield node
        yield from iter_calls(node.sub_nodes())
