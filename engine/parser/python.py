"""
Python Syntax Adapter

Parses Python sources with LibCST and projects the concrete syntax tree onto
the closed node union in engine.parser.syntax.

Design Decisions:
    - LibCST over `ast`: comments and formatting survive, so the semantic hash
      can strip exactly what it wants and positions come from PositionProvider
    - Python has no export syntax: top-level definitions named in `__all__`
      (or, without `__all__`, every top-level name not starting with `_`) are
      wrapped in an ExportNode so downstream code treats both languages alike
    - Classes deriving from Protocol or TypedDict become InterfaceNodes
    - `X: TypeAlias = ...` and `type X = ...` become TypeAliasNodes
    - A leading `self`/`cls` parameter is never recorded

Academic Context:
    Input: Python source text
    Transformation: LibCST CST → closed syntax union
    Output: ModuleNode with 1-indexed line spans
    Limitation: Annotations are reduced to a closed label set, not evaluated
"""

from pathlib import Path
from typing import Optional, Sequence

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from engine.hash.semantic_hash import compute_python_node_hash
from engine.models import ImportedName, ParameterInfo
from engine.parser.syntax import (
    CallNode,
    CaseNode,
    CatchNode,
    ClassNode,
    ConditionalNode,
    ExportNode,
    FunctionNode,
    ImportNode,
    InterfaceNode,
    LoopNode,
    ModuleNode,
    PropertyNode,
    SourceParseError,
    SwitchNode,
    SyntaxNode,
    ThrowNode,
    TryNode,
    TypeAliasNode,
    collapse_whitespace,
)


_TYPE_LABELS = {
    "str": "string",
    "bytes": "string",
    "int": "number",
    "float": "number",
    "complex": "number",
    "bool": "boolean",
    "Any": "any",
    "None": "void",
}

_INTERFACE_BASES = {"Protocol", "TypedDict"}

_DEFAULT_VALUE_NODES = (
    cst.Integer,
    cst.Float,
    cst.Imaginary,
    cst.SimpleString,
    cst.Name,
)


def _last_component(name: str) -> str:
    return name.rsplit(".", 1)[-1]


def _dotted_name(node: cst.BaseExpression) -> str:
    if isinstance(node, cst.Name):
        return node.value
    if isinstance(node, cst.Attribute):
        return f"{_dotted_name(node.value)}.{node.attr.value}"
    return ""


def _visibility(name: str) -> str:
    return "private" if name.startswith("_") and not name.endswith("__") else "public"


class _Converter:
    def __init__(self, module: cst.Module, positions):
        self._module = module
        self._positions = positions

    # -- helpers ---------------------------------------------------------

    def code(self, node: Optional[cst.CSTNode]) -> str:
        if node is None:
            return ""
        return collapse_whitespace(self._module.code_for_node(node))

    def _span(self, node: cst.CSTNode) -> dict:
        position = self._positions[node]
        return {"start_line": position.start.line, "end_line": position.end.line}

    def type_label(self, expr: Optional[cst.BaseExpression]) -> Optional[str]:
        if expr is None:
            return None
        if isinstance(expr, cst.Name):
            return _TYPE_LABELS.get(expr.value, expr.value)
        if isinstance(expr, cst.Attribute):
            return _TYPE_LABELS.get(expr.attr.value, expr.attr.value)
        if isinstance(expr, cst.Subscript):
            return self.type_label(expr.value)
        if isinstance(expr, cst.SimpleString):
            inner = expr.evaluated_value
            if isinstance(inner, str) and inner.isidentifier():
                return _TYPE_LABELS.get(inner, inner)
        return "unknown"

    def _annotation(self, annotation: Optional[cst.Annotation]) -> Optional[str]:
        if annotation is None:
            return None
        return self.type_label(annotation.annotation)

    def _default_value(self, expr: Optional[cst.BaseExpression]) -> Optional[str]:
        if expr is None:
            return None
        if isinstance(expr, _DEFAULT_VALUE_NODES):
            return self.code(expr)
        if isinstance(expr, cst.UnaryOperation) and isinstance(expr.expression, (cst.Integer, cst.Float)):
            return self.code(expr)
        return None

    # -- dispatch --------------------------------------------------------

    def convert(self, node: cst.CSTNode) -> list[SyntaxNode]:
        if isinstance(node, cst.FunctionDef):
            return [self.function(node)]
        if isinstance(node, cst.ClassDef):
            return [self.class_def(node)]
        if isinstance(node, cst.Assign):
            return self._assign(node)
        if isinstance(node, cst.AnnAssign):
            return self._ann_assign(node)
        if isinstance(node, cst.TypeAlias):
            return [
                TypeAliasNode(
                    name=node.name.value,
                    definition=self.code(node.value),
                    **self._span(node),
                )
            ]
        if isinstance(node, cst.Import):
            return self._import(node)
        if isinstance(node, cst.ImportFrom):
            return [self._import_from(node)]
        if isinstance(node, cst.Call):
            return self._call(node)
        if isinstance(node, cst.If):
            return [self._if(node)]
        if isinstance(node, cst.IfExp):
            return [
                ConditionalNode(
                    type="ternary",
                    condition=self.code(node.test),
                    children=self.convert(node.test),
                    consequent=self.convert(node.body),
                    alternate=self.convert(node.orelse),
                    **self._span(node),
                )
            ]
        if isinstance(node, cst.Match):
            return [self._match(node)]
        if isinstance(node, (cst.For, cst.While)):
            return [
                LoopNode(
                    loop_type="for" if isinstance(node, cst.For) else "while",
                    children=self.convert_children(node),
                    **self._span(node),
                )
            ]
        if isinstance(node, (cst.Try, cst.TryStar)):
            return [self._try(node)]
        if isinstance(node, cst.Raise):
            return [self._raise(node)]
        return self.convert_children(node)

    def convert_children(self, node: cst.CSTNode) -> list[SyntaxNode]:
        return self.convert_all(node.children)

    def convert_all(self, nodes: Sequence[cst.CSTNode]) -> list[SyntaxNode]:
        result: list[SyntaxNode] = []
        for child in nodes:
            result.extend(self.convert(child))
        return result

    def _suite(self, suite: cst.BaseSuite) -> list[SyntaxNode]:
        return self.convert_all(suite.body)

    # -- declarations ----------------------------------------------------

    def parameters(self, params: cst.Parameters, is_method: bool = False) -> list[ParameterInfo]:
        ordered: list[tuple[cst.Param, str]] = []
        ordered.extend((p, "") for p in params.posonly_params)
        ordered.extend((p, "") for p in params.params)
        if isinstance(params.star_arg, cst.Param):
            ordered.append((params.star_arg, "*"))
        ordered.extend((p, "") for p in params.kwonly_params)
        if params.star_kwarg is not None:
            ordered.append((params.star_kwarg, "**"))

        if is_method and ordered and not ordered[0][1] and ordered[0][0].name.value in ("self", "cls"):
            ordered = ordered[1:]

        return [
            ParameterInfo(
                name=f"{prefix}{param.name.value}",
                type=self._annotation(param.annotation),
                optional=bool(prefix) or param.default is not None,
                default_value=self._default_value(param.default),
            )
            for param, prefix in ordered
        ]

    def function(self, node: cst.FunctionDef, is_method: bool = False) -> FunctionNode:
        decorators = {_last_component(_dotted_name(d.decorator)) for d in node.decorators}
        name = node.name.value
        return FunctionNode(
            name=name,
            parameters=self.parameters(
                node.params, is_method=is_method and "staticmethod" not in decorators
            ),
            return_type=self._annotation(node.returns),
            is_async=node.asynchronous is not None,
            is_static=bool(decorators & {"staticmethod", "classmethod"}),
            visibility=_visibility(name),
            doc_comment=node.get_docstring(),
            body_hash=compute_python_node_hash(node),
            children=self._suite(node.body),
            **self._span(node),
        )

    def _lambda(self, name: str, statement: cst.BaseSmallStatement, value: cst.Lambda) -> FunctionNode:
        return FunctionNode(
            name=name,
            parameters=self.parameters(value.params),
            visibility=_visibility(name),
            body_hash=compute_python_node_hash(cst.SimpleStatementLine(body=[statement])),
            children=self.convert(value.body),
            **self._span(statement),
        )

    def _assign(self, node: cst.Assign) -> list[SyntaxNode]:
        if (
            len(node.targets) == 1
            and isinstance(node.targets[0].target, cst.Name)
            and isinstance(node.value, cst.Lambda)
        ):
            return [self._lambda(node.targets[0].target.value, node, node.value)]
        return self.convert(node.value)

    def _ann_assign(self, node: cst.AnnAssign) -> list[SyntaxNode]:
        if isinstance(node.target, cst.Name):
            annotation = _last_component(_dotted_name(node.annotation.annotation))
            if annotation == "TypeAlias" and node.value is not None:
                return [
                    TypeAliasNode(
                        name=node.target.value,
                        definition=self.code(node.value),
                        **self._span(node),
                    )
                ]
            if isinstance(node.value, cst.Lambda):
                return [self._lambda(node.target.value, node, node.value)]
        return self.convert(node.value) if node.value is not None else []

    def _base_names(self, node: cst.ClassDef) -> list[str]:
        names = []
        for arg in node.bases:
            if arg.keyword is not None or arg.star:
                continue
            value = arg.value.value if isinstance(arg.value, cst.Subscript) else arg.value
            names.append(_dotted_name(value) or self.code(value))
        return names

    def _class_property(self, statement: cst.BaseSmallStatement) -> Optional[PropertyNode]:
        if isinstance(statement, cst.AnnAssign) and isinstance(statement.target, cst.Name):
            annotation = statement.annotation.annotation
            wrapper = annotation.value if isinstance(annotation, cst.Subscript) else annotation
            qualifier = _last_component(_dotted_name(wrapper))
            inner = annotation
            if qualifier in ("ClassVar", "Final") and isinstance(annotation, cst.Subscript):
                element = annotation.slice[0].slice
                inner = element.value if isinstance(element, cst.Index) else None
            name = statement.target.value
            return PropertyNode(
                name=name,
                type=self.type_label(inner),
                is_static=qualifier == "ClassVar",
                is_readonly=qualifier == "Final",
                visibility=_visibility(name),
                children=self.convert(statement.value) if statement.value is not None else [],
                **self._span(statement),
            )
        if (
            isinstance(statement, cst.Assign)
            and len(statement.targets) == 1
            and isinstance(statement.targets[0].target, cst.Name)
        ):
            name = statement.targets[0].target.value
            if name.startswith("__") and name.endswith("__"):
                return None
            return PropertyNode(
                name=name,
                is_static=True,
                visibility=_visibility(name),
                children=self.convert(statement.value),
                **self._span(statement),
            )
        return None

    def class_def(self, node: cst.ClassDef) -> SyntaxNode:
        bases = self._base_names(node)
        is_interface = any(_last_component(b) in _INTERFACE_BASES for b in bases)

        methods: list[FunctionNode] = []
        properties: list[PropertyNode] = []
        extra: list[SyntaxNode] = []
        statements = node.body.body if isinstance(node.body, cst.IndentedBlock) else [node.body]
        for statement in statements:
            if isinstance(statement, cst.FunctionDef):
                methods.append(self.function(statement, is_method=True))
                continue
            if isinstance(statement, cst.SimpleStatementLine):
                for small in statement.body:
                    prop = self._class_property(small)
                    if prop is not None:
                        properties.append(prop)
                    else:
                        extra.extend(self.convert(small))
                continue
            extra.extend(self.convert(statement))

        if is_interface:
            return InterfaceNode(
                name=node.name.value,
                extends=[
                    b for b in bases
                    if _last_component(b) not in _INTERFACE_BASES | {"Generic"}
                ],
                methods=methods,
                properties=properties,
                doc_comment=node.get_docstring(),
                children=extra,
                **self._span(node),
            )

        real_bases = [b for b in bases if b != "object"]
        return ClassNode(
            name=node.name.value,
            extends=real_bases[0] if real_bases else None,
            implements=real_bases[1:],
            methods=methods,
            properties=properties,
            doc_comment=node.get_docstring(),
            children=extra,
            **self._span(node),
        )

    # -- modules ---------------------------------------------------------

    def _import(self, node: cst.Import) -> list[SyntaxNode]:
        result: list[SyntaxNode] = []
        for alias in node.names:
            dotted = _dotted_name(alias.name)
            local = alias.asname.name.value if alias.asname is not None else dotted
            result.append(ImportNode(source=dotted, namespace=local, **self._span(node)))
        return result

    def _import_from(self, node: cst.ImportFrom) -> ImportNode:
        module = _dotted_name(node.module) if node.module is not None else ""
        source = "." * len(node.relative) + module
        names: list[ImportedName] = []
        if isinstance(node.names, cst.ImportStar):
            names.append(ImportedName(name="*"))
        else:
            for alias in node.names:
                asname = alias.asname.name.value if alias.asname is not None else None
                names.append(ImportedName(name=_dotted_name(alias.name), alias=asname))
        return ImportNode(source=source, names=names, **self._span(node))

    # -- expressions and control flow ------------------------------------

    def _call(self, node: cst.Call) -> list[SyntaxNode]:
        arguments = self.convert_all([arg.value for arg in node.args])
        if isinstance(node.func, cst.Name):
            return [CallNode(callee=node.func.value, text=self.code(node), children=arguments,
                             **self._span(node))]
        if isinstance(node.func, cst.Attribute):
            return [
                CallNode(
                    callee=node.func.attr.value,
                    receiver=self.code(node.func.value),
                    text=self.code(node),
                    children=self.convert(node.func.value) + arguments,
                    **self._span(node),
                )
            ]
        return self.convert(node.func) + arguments

    def _if(self, node: cst.If) -> ConditionalNode:
        if isinstance(node.orelse, cst.If):
            alternate: list[SyntaxNode] = [self._if(node.orelse)]
        elif isinstance(node.orelse, cst.Else):
            alternate = self._suite(node.orelse.body)
        else:
            alternate = []
        return ConditionalNode(
            type="if",
            condition=self.code(node.test),
            children=self.convert(node.test),
            consequent=self._suite(node.body),
            alternate=alternate,
            **self._span(node),
        )

    def _match(self, node: cst.Match) -> SwitchNode:
        cases = []
        for case in node.cases:
            pattern = case.pattern
            is_wildcard = isinstance(pattern, cst.MatchAs) and pattern.pattern is None and pattern.name is None
            cases.append(
                CaseNode(
                    test=None if is_wildcard else self.code(pattern),
                    children=self._suite(case.body),
                    **self._span(case),
                )
            )
        return SwitchNode(
            discriminant=self.code(node.subject),
            children=self.convert(node.subject),
            cases=cases,
            **self._span(node),
        )

    def _try(self, node) -> TryNode:
        handlers = [
            CatchNode(
                parameter=self.code(handler.type) if handler.type is not None else None,
                children=self._suite(handler.body),
                **self._span(handler),
            )
            for handler in node.handlers
        ]
        return TryNode(
            children=self._suite(node.body),
            handlers=handlers,
            orelse=self._suite(node.orelse.body) if node.orelse is not None else [],
            finalizer=self._suite(node.finalbody.body) if node.finalbody is not None else [],
            **self._span(node),
        )

    def _raise(self, node: cst.Raise) -> ThrowNode:
        exc = node.exc
        if isinstance(exc, cst.Call):
            exception_type = _last_component(_dotted_name(exc.func)) or "Error"
        elif isinstance(exc, (cst.Name, cst.Attribute)):
            exception_type = _last_component(_dotted_name(exc))
        else:
            exception_type = "Error"
        return ThrowNode(
            expression=self.code(exc),
            exception_type=exception_type,
            children=self.convert(exc) if exc is not None else [],
            **self._span(node),
        )

    # -- module ----------------------------------------------------------

    def _dunder_all(self) -> Optional[list[str]]:
        names: Optional[list[str]] = None
        for statement in self._module.body:
            if not isinstance(statement, cst.SimpleStatementLine):
                continue
            for small in statement.body:
                if isinstance(small, cst.Assign):
                    targets = [t.target for t in small.targets]
                    value = small.value
                elif isinstance(small, (cst.AnnAssign, cst.AugAssign)):
                    targets = [small.target]
                    value = small.value
                else:
                    continue
                if not any(isinstance(t, cst.Name) and t.value == "__all__" for t in targets):
                    continue
                if not isinstance(value, (cst.List, cst.Tuple)):
                    continue
                found = [
                    e.value.evaluated_value
                    for e in value.elements
                    if isinstance(e.value, cst.SimpleString)
                ]
                if isinstance(small, cst.AugAssign) and names is not None:
                    names.extend(found)
                else:
                    names = found
        return names

    def module(self, path: str) -> ModuleNode:
        public_names = self._dunder_all()
        children: list[SyntaxNode] = []
        declared: set[str] = set()
        for statement in self._module.body:
            for node in self.convert(statement):
                name = getattr(node, "name", None)
                if not isinstance(node, (FunctionNode, ClassNode, InterfaceNode, TypeAliasNode)):
                    children.append(node)
                    continue
                declared.add(name)
                exported = name in public_names if public_names is not None else not name.startswith("_")
                if exported:
                    children.append(
                        ExportNode(children=[node], start_line=node.start_line, end_line=node.end_line)
                    )
                else:
                    children.append(node)

        if public_names:
            reexported = [n for n in public_names if n not in declared]
            if reexported:
                children.append(ExportNode(specifiers=[ImportedName(name=n) for n in reexported]))

        return ModuleNode(
            path=path,
            language="python",
            children=children,
            start_line=1,
            end_line=max(1, len(self._module.code.splitlines())),
        )


class PythonAdapter:
    """
    LibCST adapter for Python.

    Example:
        >>> module = PythonAdapter().parse("pkg/util.py", "def add(a, b):\\n    return a + b\\n")
        >>> module.children[0].children[0].name
        'add'
    """

    extensions = (".py",)

    def parse(self, file_path: Path | str, content: str) -> ModuleNode:
        """
        Parse Python source into a ModuleNode.

        Raises:
            SourceParseError: If the source contains syntax errors
        """
        path = str(file_path)
        try:
            module = cst.parse_module(content)
        except cst.ParserSyntaxError as exc:
            raise SourceParseError(path, exc.message, exc.raw_line) from exc
        wrapper = MetadataWrapper(module)
        positions = wrapper.resolve(PositionProvider)
        return _Converter(wrapper.module, positions).module(path)
