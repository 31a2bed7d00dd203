"""
TypeScript / JavaScript Syntax Adapter

Parses JS/TS sources with Tree-sitter and projects the concrete syntax tree
onto the closed node union in engine.parser.syntax.

Design Decisions:
    - The grammar is chosen by extension: `.ts` → typescript, `.tsx` → tsx,
      every JavaScript extension → javascript (which also covers JSX)
    - A fresh Parser is created for every call; Language objects are shared
    - A tree containing ERROR or MISSING nodes raises SourceParseError, so a
      half-parsed file never produces a partial model
    - JSDoc is the `/** ... */` comment immediately preceding a declaration,
      looked up on the export wrapper when the declaration is wrapped
    - Variable declarators bound to arrow functions or function expressions
      become FunctionNodes named after the variable

Academic Context:
    Input: JS/TS source text
    Transformation: Tree-sitter CST → closed syntax union
    Output: ModuleNode with 1-indexed line spans
    Limitation: Types are reduced to a closed label set, not checked
"""

from pathlib import Path
from typing import Callable, Optional

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from engine.hash.semantic_hash import compute_token_hash
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


_GRAMMARS = {
    "javascript": Language(tree_sitter_javascript.language()),
    "typescript": Language(tree_sitter_typescript.language_typescript()),
    "tsx": Language(tree_sitter_typescript.language_tsx()),
}

GRAMMAR_BY_EXTENSION = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

FUNCTION_VALUE_TYPES = {"arrow_function", "function_expression", "function", "generator_function"}

_PRIMITIVE_TYPES = {"string", "number", "boolean", "any", "void"}

_LOOP_TYPES = {
    "for_statement": "for",
    "for_in_statement": "for-in",
    "while_statement": "while",
    "do_statement": "do-while",
}

_DEFAULT_VALUE_TYPES = {
    "number", "string", "true", "false", "null", "undefined", "identifier", "template_string",
}


def language_for(path: Path | str) -> str:
    """Return "typescript" or "javascript" for a supported extension."""
    grammar = GRAMMAR_BY_EXTENSION[Path(path).suffix.lower()]
    return "javascript" if grammar == "javascript" else "typescript"


def _clean_jsdoc(text: str) -> str:
    body = text[3:-2] if text.endswith("*/") else text[3:]
    lines = []
    for line in body.splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:]
            if line.startswith(" "):
                line = line[1:]
        lines.append(line.rstrip())
    return "\n".join(lines).strip()


class _Converter:
    """Converts one Tree-sitter tree; holds the source bytes for slicing."""

    def __init__(self, source: bytes):
        self._source = source
        self._handlers: dict[str, Callable[[Node], list[SyntaxNode]]] = {
            "function_declaration": self._function_declaration,
            "generator_function_declaration": self._function_declaration,
            "lexical_declaration": self._variable_declaration,
            "variable_declaration": self._variable_declaration,
            "class_declaration": self._class,
            "abstract_class_declaration": self._class,
            "interface_declaration": self._interface,
            "type_alias_declaration": self._type_alias,
            "import_statement": self._import,
            "export_statement": self._export,
            "call_expression": self._call,
            "if_statement": self._if,
            "ternary_expression": self._ternary,
            "switch_statement": self._switch,
            "try_statement": self._try,
            "throw_statement": self._throw,
        }
        for loop_type in _LOOP_TYPES:
            self._handlers[loop_type] = self._loop

    # -- helpers ---------------------------------------------------------

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self._source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    @staticmethod
    def _span(node: Node) -> dict:
        return {"start_line": node.start_point[0] + 1, "end_line": node.end_point[0] + 1}

    @staticmethod
    def _has_token(node: Node, token: str) -> bool:
        return any(child.type == token for child in node.children)

    def _string_value(self, node: Optional[Node]) -> str:
        text = self.text(node)
        if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
            return text[1:-1]
        return text

    def _tokens(self, node: Node) -> list[str]:
        tokens = []
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type == "comment":
                continue
            if current.child_count == 0:
                tokens.append(self.text(current))
            else:
                stack.extend(reversed(current.children))
        return tokens

    def _doc_comment(self, node: Node) -> Optional[str]:
        anchor = node
        while anchor.parent is not None and anchor.parent.type in (
            "export_statement",
            "lexical_declaration",
            "variable_declaration",
        ):
            anchor = anchor.parent
        previous = anchor.prev_named_sibling
        if previous is not None and previous.type == "comment":
            text = self.text(previous)
            if text.startswith("/**"):
                return _clean_jsdoc(text)
        return None

    def _unwrap(self, node: Optional[Node]) -> Optional[Node]:
        """Strip parentheses around a condition."""
        while node is not None and node.type == "parenthesized_expression" and node.named_children:
            node = node.named_children[0]
        return node

    # -- types -----------------------------------------------------------

    def type_label(self, node: Optional[Node]) -> Optional[str]:
        if node is None:
            return None
        if node.type == "type_annotation":
            if not node.named_children:
                return "unknown"
            node = node.named_children[0]
        if node.type == "predefined_type":
            text = self.text(node)
            return text if text in _PRIMITIVE_TYPES else "unknown"
        if node.type in ("type_identifier", "nested_type_identifier"):
            return self.text(node)
        if node.type == "generic_type":
            return self.text(node.child_by_field_name("name"))
        return "unknown"

    def _reference_name(self, node: Node) -> str:
        if node.type == "generic_type":
            return self.text(node.child_by_field_name("name"))
        return collapse_whitespace(self.text(node))

    # -- dispatch --------------------------------------------------------

    def convert(self, node: Node) -> list[SyntaxNode]:
        if node.type == "comment":
            return []
        handler = self._handlers.get(node.type)
        if handler is not None:
            return handler(node)
        return self.convert_children(node)

    def convert_children(self, node: Optional[Node]) -> list[SyntaxNode]:
        if node is None:
            return []
        result: list[SyntaxNode] = []
        for child in node.named_children:
            result.extend(self.convert(child))
        return result

    def module(self, root: Node, path: str, language: str) -> ModuleNode:
        return ModuleNode(
            path=path,
            language=language,
            children=self.convert_children(root),
            **self._span(root),
        )

    # -- declarations ----------------------------------------------------

    def parameters(self, node: Optional[Node]) -> list[ParameterInfo]:
        if node is None:
            return []
        if node.type == "identifier":
            return [ParameterInfo(name=self.text(node))]
        result = []
        for param in node.named_children:
            if param.type in ("comment", "decorator"):
                continue
            result.append(self._parameter(param))
        return result

    def _default_value(self, node: Optional[Node]) -> Optional[str]:
        if node is None:
            return None
        if node.type in _DEFAULT_VALUE_TYPES:
            return self.text(node)
        if node.type == "unary_expression" and node.named_children:
            if node.named_children[0].type == "number":
                return self.text(node)
        return None

    def _parameter(self, param: Node) -> ParameterInfo:
        if param.type in ("required_parameter", "optional_parameter"):
            pattern = param.child_by_field_name("pattern")
            value = param.child_by_field_name("value")
            is_rest = pattern is not None and pattern.type == "rest_pattern"
            return ParameterInfo(
                name=collapse_whitespace(self.text(pattern)),
                type=self.type_label(param.child_by_field_name("type")),
                optional=param.type == "optional_parameter" or value is not None or is_rest,
                default_value=self._default_value(value),
            )
        if param.type == "assignment_pattern":
            value = param.child_by_field_name("right")
            return ParameterInfo(
                name=collapse_whitespace(self.text(param.child_by_field_name("left"))),
                optional=True,
                default_value=self._default_value(value),
            )
        if param.type == "rest_pattern":
            return ParameterInfo(name=self.text(param), optional=True)
        return ParameterInfo(name=collapse_whitespace(self.text(param)))

    def _visibility(self, node: Node) -> str:
        for child in node.children:
            if child.type == "accessibility_modifier":
                return self.text(child)
        name = node.child_by_field_name("name") or node.child_by_field_name("property")
        if name is not None and name.type == "private_property_identifier":
            return "private"
        return "public"

    def function(self, node: Node, name: str, decl: Optional[Node] = None) -> FunctionNode:
        """
        Build a FunctionNode from any function-shaped Tree-sitter node.

        Args:
            node: function_declaration, method_definition, arrow_function, ...
            name: Name to record
            decl: Node to take the line span and doc comment from
                (the variable declarator for variable-bound functions)
        """
        decl = decl or node
        params = node.child_by_field_name("parameters") or node.child_by_field_name("parameter")
        return FunctionNode(
            name=name,
            parameters=self.parameters(params),
            return_type=self.type_label(node.child_by_field_name("return_type")),
            is_async=self._has_token(node, "async"),
            is_static=self._has_token(node, "static"),
            visibility=self._visibility(node),
            doc_comment=self._doc_comment(decl),
            body_hash=compute_token_hash(self._tokens(decl)),
            children=self.convert(node.child_by_field_name("body"))
            if node.child_by_field_name("body") is not None
            else [],
            **self._span(decl),
        )

    def _function_declaration(self, node: Node) -> list[SyntaxNode]:
        return [self.function(node, self.text(node.child_by_field_name("name")))]

    def _variable_declaration(self, node: Node) -> list[SyntaxNode]:
        result: list[SyntaxNode] = []
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if value is None:
                continue
            if name is not None and name.type == "identifier" and value.type in FUNCTION_VALUE_TYPES:
                result.append(self.function(value, self.text(name), decl=declarator))
            else:
                result.extend(self.convert(value))
        return result

    def _class(self, node: Node) -> list[SyntaxNode]:
        extends = None
        implements: list[str] = []
        for child in node.named_children:
            if child.type != "class_heritage":
                continue
            for clause in child.named_children:
                if clause.type == "extends_clause":
                    value = clause.child_by_field_name("value") or clause.named_children[0]
                    extends = collapse_whitespace(self.text(value))
                elif clause.type == "implements_clause":
                    implements.extend(self._reference_name(t) for t in clause.named_children)
                elif clause.type != "comment" and extends is None:
                    extends = collapse_whitespace(self.text(clause))

        methods: list[FunctionNode] = []
        properties: list[PropertyNode] = []
        extra: list[SyntaxNode] = []
        body = node.child_by_field_name("body")
        for member in body.named_children if body is not None else []:
            if member.type in ("method_definition", "method_signature", "abstract_method_signature"):
                methods.append(self.function(member, self.text(member.child_by_field_name("name"))))
            elif member.type in ("public_field_definition", "field_definition"):
                name = member.child_by_field_name("name") or member.child_by_field_name("property")
                properties.append(
                    PropertyNode(
                        name=self.text(name),
                        type=self.type_label(member.child_by_field_name("type")),
                        is_static=self._has_token(member, "static"),
                        is_readonly=self._has_token(member, "readonly"),
                        visibility=self._visibility(member),
                        children=self.convert_children(member.child_by_field_name("value")),
                        **self._span(member),
                    )
                )
            else:
                extra.extend(self.convert(member))

        return [
            ClassNode(
                name=self.text(node.child_by_field_name("name")),
                extends=extends,
                implements=implements,
                methods=methods,
                properties=properties,
                doc_comment=self._doc_comment(node),
                children=extra,
                **self._span(node),
            )
        ]

    def _interface(self, node: Node) -> list[SyntaxNode]:
        extends: list[str] = []
        for child in node.named_children:
            if child.type == "extends_type_clause":
                extends.extend(self._reference_name(t) for t in child.named_children)

        methods: list[FunctionNode] = []
        properties: list[PropertyNode] = []
        body = node.child_by_field_name("body")
        for member in body.named_children if body is not None else []:
            if member.type == "method_signature":
                methods.append(self.function(member, self.text(member.child_by_field_name("name"))))
            elif member.type == "property_signature":
                properties.append(
                    PropertyNode(
                        name=self.text(member.child_by_field_name("name")),
                        type=self.type_label(member.child_by_field_name("type")),
                        is_readonly=self._has_token(member, "readonly"),
                        **self._span(member),
                    )
                )

        return [
            InterfaceNode(
                name=self.text(node.child_by_field_name("name")),
                extends=extends,
                methods=methods,
                properties=properties,
                doc_comment=self._doc_comment(node),
                **self._span(node),
            )
        ]

    def _type_alias(self, node: Node) -> list[SyntaxNode]:
        value = node.child_by_field_name("value")
        return [
            TypeAliasNode(
                name=self.text(node.child_by_field_name("name")),
                definition=collapse_whitespace(self.text(value)) if value is not None else "unknown",
                doc_comment=self._doc_comment(node),
                **self._span(node),
            )
        ]

    # -- modules ---------------------------------------------------------

    def _import(self, node: Node) -> list[SyntaxNode]:
        names: list[ImportedName] = []
        is_default = False
        namespace = None
        for child in node.named_children:
            if child.type != "import_clause":
                continue
            for part in child.named_children:
                if part.type == "identifier":
                    is_default = True
                    names.append(ImportedName(name="default", alias=self.text(part)))
                elif part.type == "namespace_import":
                    identifiers = [c for c in part.named_children if c.type == "identifier"]
                    if identifiers:
                        namespace = self.text(identifiers[0])
                elif part.type == "named_imports":
                    for specifier in part.named_children:
                        if specifier.type != "import_specifier":
                            continue
                        alias = specifier.child_by_field_name("alias")
                        names.append(
                            ImportedName(
                                name=self.text(specifier.child_by_field_name("name")),
                                alias=self.text(alias) if alias is not None else None,
                            )
                        )
        return [
            ImportNode(
                source=self._string_value(node.child_by_field_name("source")),
                names=names,
                is_default=is_default,
                namespace=namespace,
                **self._span(node),
            )
        ]

    def _export(self, node: Node) -> list[SyntaxNode]:
        export = ExportNode(is_default=self._has_token(node, "default"), **self._span(node))
        source = node.child_by_field_name("source")
        if source is not None:
            export.source = self._string_value(source)

        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")
        if declaration is not None:
            export.children = self.convert(declaration)
        elif value is not None:
            if value.type == "identifier":
                export.specifiers.append(ImportedName(name=self.text(value), alias="default"))
            elif value.type in FUNCTION_VALUE_TYPES:
                name = value.child_by_field_name("name")
                export.children = [
                    self.function(value, self.text(name) if name is not None else "default", decl=node)
                ]
            else:
                export.children = self.convert(value)

        for child in node.named_children:
            if child.type == "export_clause":
                for specifier in child.named_children:
                    if specifier.type != "export_specifier":
                        continue
                    alias = specifier.child_by_field_name("alias")
                    export.specifiers.append(
                        ImportedName(
                            name=self.text(specifier.child_by_field_name("name")),
                            alias=self.text(alias) if alias is not None else None,
                        )
                    )
            elif child.type == "namespace_export":
                identifiers = [c for c in child.named_children if c.type != "comment"]
                if identifiers:
                    export.specifiers.append(
                        ImportedName(name="*", alias=self._string_value(identifiers[0]))
                    )
        return [export]

    # -- expressions and control flow ------------------------------------

    def _call(self, node: Node) -> list[SyntaxNode]:
        function = node.child_by_field_name("function")
        arguments = self.convert_children(node.child_by_field_name("arguments"))
        if function is None:
            return arguments
        if function.type == "identifier":
            return [CallNode(callee=self.text(function), text=collapse_whitespace(self.text(node)),
                             children=arguments, **self._span(node))]
        if function.type == "member_expression":
            target = function.child_by_field_name("object")
            return [
                CallNode(
                    callee=self.text(function.child_by_field_name("property")),
                    receiver=collapse_whitespace(self.text(target)),
                    text=collapse_whitespace(self.text(node)),
                    children=self.convert(target) + arguments,
                    **self._span(node),
                )
            ]
        # IIFEs, curried calls, super(...) and dynamic import(): keep what is inside
        return self.convert(function) + arguments

    def _if(self, node: Node) -> list[SyntaxNode]:
        condition = node.child_by_field_name("condition")
        return [
            ConditionalNode(
                type="if",
                condition=collapse_whitespace(self.text(self._unwrap(condition))),
                children=self.convert_children(condition),
                consequent=self.convert(node.child_by_field_name("consequence")),
                alternate=self.convert_children(node.child_by_field_name("alternative")),
                **self._span(node),
            )
        ]

    def _ternary(self, node: Node) -> list[SyntaxNode]:
        condition = node.child_by_field_name("condition")
        return [
            ConditionalNode(
                type="ternary",
                condition=collapse_whitespace(self.text(self._unwrap(condition))),
                children=self.convert(condition),
                consequent=self.convert(node.child_by_field_name("consequence")),
                alternate=self.convert(node.child_by_field_name("alternative")),
                **self._span(node),
            )
        ]

    def _switch(self, node: Node) -> list[SyntaxNode]:
        value = node.child_by_field_name("value")
        cases: list[CaseNode] = []
        body = node.child_by_field_name("body")
        for case in body.named_children if body is not None else []:
            if case.type not in ("switch_case", "switch_default"):
                continue
            test = case.child_by_field_name("value")
            statements: list[SyntaxNode] = []
            for statement in case.children_by_field_name("body"):
                statements.extend(self.convert(statement))
            cases.append(
                CaseNode(
                    test=collapse_whitespace(self.text(test)) if test is not None else None,
                    children=statements,
                    **self._span(case),
                )
            )
        return [
            SwitchNode(
                discriminant=collapse_whitespace(self.text(self._unwrap(value))),
                children=self.convert_children(value),
                cases=cases,
                **self._span(node),
            )
        ]

    def _loop(self, node: Node) -> list[SyntaxNode]:
        return [LoopNode(loop_type=_LOOP_TYPES[node.type], children=self.convert_children(node),
                         **self._span(node))]

    def _try(self, node: Node) -> list[SyntaxNode]:
        handlers: list[CatchNode] = []
        handler = node.child_by_field_name("handler")
        if handler is not None:
            parameter = handler.child_by_field_name("parameter")
            handlers.append(
                CatchNode(
                    parameter=self.text(parameter) if parameter is not None else None,
                    children=self.convert(handler.child_by_field_name("body")),
                    **self._span(handler),
                )
            )
        finalizer = node.child_by_field_name("finalizer")
        return [
            TryNode(
                children=self.convert(node.child_by_field_name("body")),
                handlers=handlers,
                finalizer=self.convert(finalizer.child_by_field_name("body"))
                if finalizer is not None
                else [],
                **self._span(node),
            )
        ]

    def _exception_type(self, expression: Optional[Node]) -> str:
        if expression is None:
            return "Error"
        if expression.type == "new_expression":
            constructor = expression.child_by_field_name("constructor")
            if constructor is not None and constructor.type == "member_expression":
                return self.text(constructor.child_by_field_name("property"))
            if constructor is not None:
                return self.text(constructor)
        if expression.type == "identifier":
            return self.text(expression)
        if expression.type == "call_expression":
            function = expression.child_by_field_name("function")
            if function is not None and function.type == "identifier":
                return self.text(function)
            if function is not None and function.type == "member_expression":
                return self.text(function.child_by_field_name("property"))
        return "Error"

    def _throw(self, node: Node) -> list[SyntaxNode]:
        expressions = [c for c in node.named_children if c.type != "comment"]
        expression = expressions[0] if expressions else None
        return [
            ThrowNode(
                expression=collapse_whitespace(self.text(expression)),
                exception_type=self._exception_type(expression),
                children=self.convert(expression) if expression is not None else [],
                **self._span(node),
            )
        ]


def _first_error_line(root: Node) -> Optional[int]:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


class TypeScriptAdapter:
    """
    Tree-sitter adapter for TypeScript and JavaScript.

    Example:
        >>> adapter = TypeScriptAdapter()
        >>> module = adapter.parse("src/math.ts", "export function add(a: number) {}")
        >>> module.children[0].kind
        <NodeKind.EXPORT: 'export'>
    """

    extensions = tuple(GRAMMAR_BY_EXTENSION)

    def parse(self, file_path: Path | str, content: str) -> ModuleNode:
        """
        Parse JS/TS source into a ModuleNode.

        Raises:
            SourceParseError: If the source contains syntax errors
        """
        path = str(file_path)
        grammar = GRAMMAR_BY_EXTENSION[Path(path).suffix.lower()]
        source = content.encode("utf-8")
        tree = Parser(_GRAMMARS[grammar]).parse(source)
        root = tree.root_node
        if root.has_error:
            raise SourceParseError(path, "syntax error", _first_error_line(root))
        return _Converter(source).module(root, path, language_for(path))
