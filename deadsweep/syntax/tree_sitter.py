"""Tree-sitter powered declaration extraction for JavaScript and TypeScript."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..errors import RecoverableParseError
from .base import (
    DEFAULT,
    NAMED,
    NAMESPACE,
    ClassDeclaration,
    FunctionDeclaration,
    FunctionMetrics,
    ImportBinding,
    ImportDeclaration,
    MethodDeclaration,
    ParsedModule,
    Span,
    SyntaxTreeProvider,
    VariableDeclaration,
)

_LANGUAGE_BY_SUFFIX = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}

_DECLARATION_SUFFIXES = (".d.ts", ".d.mts", ".d.cts")

_LOOP_TYPES = {"for_statement", "for_in_statement"}
_VARIABLE_STATEMENTS = {"lexical_declaration", "variable_declaration"}
_FUNCTION_TYPES = {"function_declaration", "generator_function_declaration"}
_CLASS_TYPES = {"class_declaration", "abstract_class_declaration"}
_NAMED_FUNCTION_TYPES = _FUNCTION_TYPES | {"method_definition"}
_ANONYMOUS_FUNCTION_TYPES = {"arrow_function", "function_expression", "function", "generator_function"}
_NESTING_TYPES = {
    "if_statement",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "switch_statement",
    "try_statement",
}


def _load_language(key: str) -> Language:
    if key == "javascript":
        return Language(tree_sitter_javascript.language())
    if key == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    if key == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    raise ValueError(f"Unknown grammar: {key}")


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and its named descendants in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.named_children))


def node_span(node: Node) -> Span:
    return Span(node.start_byte, node.end_byte)


def string_value(node: Optional[Node], source: bytes) -> Optional[str]:
    """Return the contents of a string literal node, or None if it is dynamic."""
    if node is None:
        return None
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.named_children):
            return None
    elif node.type != "string":
        return None
    text = _node_text(node, source)
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return None


def _node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def _is_else_if(node: Node) -> bool:
    parent = node.parent
    return node.type == "if_statement" and parent is not None and parent.type == "else_clause"


def _has_ancestor(node: Node, types: set[str]) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.type in types:
            return True
        parent = parent.parent
    return False


class TreeSitterProvider(SyntaxTreeProvider):
    """Parses JS/TS/TSX sources with tree-sitter grammars.

    Parsers are cached per grammar and are not shared across threads; the
    project loader parses files sequentially.
    """

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def supports(self, path: str) -> bool:
        return self._language_for_file(path) is not None

    def parse(self, path: str, text: str) -> ParsedModule:
        language_key = self._language_for_file(path)
        if language_key is None:
            raise RecoverableParseError(path, "unsupported file type")
        source = text.encode("utf-8")
        tree = self._get_parser(language_key).parse(source)
        root = tree.root_node
        if root.has_error:
            raise RecoverableParseError(
                path, f"syntax error near line {_first_error_line(root)}"
            )
        return _ModuleCollector(source).collect(root)

    def _get_parser(self, language_key: str) -> Parser:
        parser = self._parsers.get(language_key)
        if parser is None:
            parser = Parser(_load_language(language_key))
            self._parsers[language_key] = parser
        return parser

    @staticmethod
    def _language_for_file(path: str) -> Optional[str]:
        lower = path.lower()
        if lower.endswith(_DECLARATION_SUFFIXES):
            return None
        return _LANGUAGE_BY_SUFFIX.get(Path(lower).suffix)


def _first_error_line(root: Node) -> int:
    for node in walk(root):
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
    return root.start_point[0] + 1


class _ModuleCollector:
    """Single-use visitor building a ParsedModule from a syntax tree."""

    def __init__(self, source: bytes) -> None:
        self._source = source
        self._module = ParsedModule()

    def collect(self, root: Node) -> ParsedModule:
        for child in root.named_children:
            self._visit_top_level(child)

        for node in walk(root):
            if node.type == "import_statement":
                self._add_import(node)
            elif node.type == "export_statement":
                self._add_export(node)
            elif node.type in _VARIABLE_STATEMENTS:
                self._add_variables(node)
            elif node.type == "call_expression":
                self._add_dynamic_specifier(node)
            elif node.type in _NAMED_FUNCTION_TYPES or node.type in _ANONYMOUS_FUNCTION_TYPES:
                self._add_metrics(node)

        self._apply_export_clauses()
        return self._module

    # ------------------------------------------------------------------
    # Declarations

    def _visit_top_level(self, node: Node) -> None:
        exported = False
        if node.type == "export_statement":
            declaration = node.child_by_field_name("declaration")
            if declaration is None:
                return
            node, exported = declaration, True

        if node.type in _FUNCTION_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                self._module.functions.append(
                    FunctionDeclaration(
                        name=self._text(name_node),
                        span=node_span(node),
                        exported=exported,
                    )
                )
        elif node.type in _CLASS_TYPES:
            self._add_class(node, exported)

    def _add_class(self, node: Node, exported: bool) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        class_name = self._text(name_node)
        declaration = ClassDeclaration(name=class_name, span=node_span(node), exported=exported)
        body = node.child_by_field_name("body")
        members: Iterable[Node] = body.named_children if body is not None else ()
        for member in members:
            if member.type != "method_definition":
                continue
            method_name_node = member.child_by_field_name("name")
            if method_name_node is None:
                continue
            modifiers = {child.type for child in member.children}
            accessibility = [
                self._text(child)
                for child in member.children
                if child.type == "accessibility_modifier"
            ]
            method_name = self._text(method_name_node)
            declaration.methods.append(
                MethodDeclaration(
                    name=method_name,
                    class_name=class_name,
                    span=node_span(member),
                    is_private=(
                        method_name_node.type == "private_property_identifier"
                        or "private" in accessibility
                    ),
                    is_accessor=bool(modifiers & {"get", "set"}),
                    is_constructor=method_name == "constructor",
                )
            )
        self._module.classes.append(declaration)

    def _add_variables(self, node: Node) -> None:
        declarators = [child for child in node.named_children if child.type == "variable_declarator"]
        if not declarators:
            return
        siblings = tuple(node_span(child) for child in declarators)
        parent = node.parent
        exported = parent is not None and parent.type == "export_statement"
        in_loop = _has_ancestor(node, _LOOP_TYPES)
        for declarator in declarators:
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            self._module.variables.append(
                VariableDeclaration(
                    name=self._text(name_node),
                    span=node_span(declarator),
                    statement=node_span(node),
                    siblings=siblings,
                    exported=exported,
                    destructured=name_node.type != "identifier",
                    in_loop=in_loop,
                )
            )

    # ------------------------------------------------------------------
    # Function metrics

    def _function_name(self, node: Node) -> Optional[str]:
        """Name of a function-like node, or None for anonymous callbacks."""
        if node.type in _NAMED_FUNCTION_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is None:
                return None
            name = self._text(name_node)
            if node.type == "method_definition":
                owner = node.parent.parent if node.parent is not None else None
                owner_name = owner.child_by_field_name("name") if owner is not None else None
                if owner_name is not None:
                    return f"{self._text(owner_name)}.{name}"
            return name
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            name_node = parent.child_by_field_name("name")
            if name_node is not None and name_node.type == "identifier":
                return self._text(name_node)
        return None

    def _add_metrics(self, node: Node) -> None:
        name = self._function_name(node)
        if name is None:
            return
        depth, depth_line = self._nesting(node)
        start, end = node.start_point[0], node.end_point[0]
        self._module.metrics.append(
            FunctionMetrics(
                name=name,
                line=start + 1,
                line_count=end - start + 1,
                depth=depth,
                depth_line=depth_line,
            )
        )

    def _nesting(self, function: Node) -> Tuple[int, int]:
        # Named inner functions are measured on their own; anonymous
        # callbacks count as part of the enclosing function.
        deepest, deepest_line = 0, 0
        stack = [(child, 0) for child in reversed(function.named_children)]
        while stack:
            node, depth = stack.pop()
            if node.type in _NAMED_FUNCTION_TYPES or node.type in _ANONYMOUS_FUNCTION_TYPES:
                if self._function_name(node) is not None:
                    continue
            if node.type in _NESTING_TYPES and not _is_else_if(node):
                depth += 1
                if depth > deepest:
                    deepest, deepest_line = depth, node.start_point[0] + 1
            stack.extend((child, depth) for child in reversed(node.named_children))
        return deepest, deepest_line

    # ------------------------------------------------------------------
    # Module references

    def _add_import(self, node: Node) -> None:
        specifier = string_value(node.child_by_field_name("source"), self._source)
        declaration = ImportDeclaration(specifier=specifier or "", span=node_span(node))
        for child in node.named_children:
            if child.type == "import_require_clause":
                specifier = string_value(child.child_by_field_name("source"), self._source)
            elif child.type == "import_clause":
                declaration.bindings.extend(self._import_bindings(child, declaration))
        if specifier:
            declaration.specifier = specifier
            self._module.specifiers.append(specifier)
        self._module.imports.append(declaration)

    def _import_bindings(self, clause: Node, declaration: ImportDeclaration) -> List[ImportBinding]:
        bindings: List[ImportBinding] = []
        for part in clause.named_children:
            if part.type == "identifier":
                bindings.append(ImportBinding(self._text(part), DEFAULT, node_span(part)))
            elif part.type == "namespace_import":
                local = next((c for c in part.named_children if c.type == "identifier"), None)
                if local is not None:
                    bindings.append(ImportBinding(self._text(local), NAMESPACE, node_span(part)))
            elif part.type == "named_imports":
                declaration.named_block = node_span(part)
                for spec in part.named_children:
                    if spec.type != "import_specifier":
                        continue
                    local = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                    if local is not None:
                        bindings.append(ImportBinding(self._text(local), NAMED, node_span(spec)))
        return bindings

    def _add_export(self, node: Node) -> None:
        specifier = string_value(node.child_by_field_name("source"), self._source)
        if specifier:
            self._module.specifiers.append(specifier)
        for child in node.named_children:
            if child.type != "export_clause":
                continue
            for spec in child.named_children:
                if spec.type != "export_specifier":
                    continue
                name_node = spec.child_by_field_name("name")
                if name_node is not None:
                    self._module.exported_names.append(self._text(name_node))
        value = node.child_by_field_name("value")
        if value is not None and value.type == "identifier":
            self._module.exported_names.append(self._text(value))

    def _add_dynamic_specifier(self, node: Node) -> None:
        function = node.child_by_field_name("function")
        if function is None:
            return
        if function.type != "import" and not (
            function.type == "identifier" and self._text(function) == "require"
        ):
            return
        arguments = node.child_by_field_name("arguments")
        if arguments is None or not arguments.named_children:
            return
        specifier = string_value(arguments.named_children[0], self._source)
        if specifier:
            self._module.specifiers.append(specifier)

    def _apply_export_clauses(self) -> None:
        names = set(self._module.exported_names)
        if not names:
            return
        module = self._module
        module.variables = [
            replace(var, exported=True) if var.name in names else var for var in module.variables
        ]
        module.functions = [
            replace(fn, exported=True) if fn.name in names else fn for fn in module.functions
        ]
        for cls in module.classes:
            if cls.name in names:
                cls.exported = True

    def _text(self, node: Node) -> str:
        return _node_text(node, self._source)


__all__ = ["TreeSitterProvider", "node_span", "string_value", "walk"]
