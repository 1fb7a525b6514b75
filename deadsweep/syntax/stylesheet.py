"""CSS parsing and rule-level regeneration backed by tree-sitter-css."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

import tree_sitter_css
from tree_sitter import Language, Node, Parser

from ..errors import RecoverableParseError
from .base import Span
from .edits import apply_edits, expand_to_line

STYLESHEET_SUFFIXES = (".css", ".scss", ".less")


@dataclass(frozen=True)
class ClassReference:
    """A ``.name`` class selector with its 1-based position."""

    name: str
    line: int
    column: int


@dataclass(frozen=True)
class SelectorEntry:
    """One comma-separated selector of a rule.

    ``classes`` only lists class selectors that decide whether the selector
    can match; classes inside pseudo-class arguments (``:not(.x)``) are kept
    apart in ``argument_classes``.
    """

    text: str
    classes: Tuple[ClassReference, ...]
    argument_classes: Tuple[ClassReference, ...] = ()


@dataclass(frozen=True)
class StyleRule:
    span: Span
    selectors: Tuple[SelectorEntry, ...]

    @property
    def class_names(self) -> Tuple[str, ...]:
        return tuple(ref.name for selector in self.selectors for ref in selector.classes)


@dataclass
class Stylesheet:
    """Parsed stylesheet: the original text plus its rules in source order."""

    path: str
    text: str
    rules: List[StyleRule] = field(default_factory=list)

    def class_references(self) -> Iterator[ClassReference]:
        seen = set()
        for rule in self.rules:
            for selector in rule.selectors:
                for ref in selector.classes + selector.argument_classes:
                    key = (ref.name, ref.line, ref.column)
                    if key in seen:
                        continue
                    seen.add(key)
                    yield ref


class StylesheetParser:
    """Parses stylesheets into rules and writes them back with rules removed."""

    def __init__(self) -> None:
        self._parser: Optional[Parser] = None

    def supports(self, path: str) -> bool:
        return Path(path).suffix.lower() in STYLESHEET_SUFFIXES

    def parse(self, path: str, text: str) -> Stylesheet:
        source = text.encode("utf-8")
        tree = self._get_parser().parse(source)
        if tree.root_node.has_error:
            raise RecoverableParseError(path, "stylesheet could not be parsed")

        sheet = Stylesheet(path=path, text=text)
        stack = [tree.root_node]
        while stack:
            node = stack.pop()
            if node.type == "rule_set":
                rule = self._build_rule(node, source)
                if rule is not None:
                    sheet.rules.append(rule)
            stack.extend(reversed(node.named_children))
        return sheet

    def regenerate(self, sheet: Stylesheet, removed: Iterable[StyleRule]) -> str:
        """Return ``sheet.text`` without ``removed``; other bytes are untouched."""
        source = sheet.text.encode("utf-8")
        spans = [expand_to_line(source, rule.span) for rule in removed]
        if not spans:
            return sheet.text
        return apply_edits(source, spans).decode("utf-8")

    def _get_parser(self) -> Parser:
        if self._parser is None:
            self._parser = Parser(Language(tree_sitter_css.language()))
        return self._parser

    def _build_rule(self, node: Node, source: bytes) -> Optional[StyleRule]:
        selectors_node = next((c for c in node.named_children if c.type == "selectors"), None)
        if selectors_node is None:
            return None
        entries = []
        for selector in selectors_node.named_children:
            if selector.type == "comment":
                continue
            classes: List[ClassReference] = []
            argument_classes: List[ClassReference] = []
            _collect_classes(selector, source, classes, argument_classes, inside_arguments=False)
            entries.append(
                SelectorEntry(
                    text=source[selector.start_byte : selector.end_byte].decode("utf-8"),
                    classes=tuple(classes),
                    argument_classes=tuple(argument_classes),
                )
            )
        return StyleRule(span=Span(node.start_byte, node.end_byte), selectors=tuple(entries))


def _collect_classes(
    node: Node,
    source: bytes,
    classes: List[ClassReference],
    argument_classes: List[ClassReference],
    *,
    inside_arguments: bool,
) -> None:
    if node.type == "class_selector":
        name_node = next((c for c in node.named_children if c.type == "class_name"), None)
        if name_node is not None:
            target = argument_classes if inside_arguments else classes
            target.append(_class_reference(name_node, source))
    for child in node.named_children:
        _collect_classes(
            child,
            source,
            classes,
            argument_classes,
            inside_arguments=inside_arguments or child.type == "arguments",
        )


def _class_reference(name_node: Node, source: bytes) -> ClassReference:
    dot = name_node.start_byte - 1
    line_start = source.rfind(b"\n", 0, dot) + 1
    column = len(source[line_start:dot].decode("utf-8", errors="ignore")) + 1
    return ClassReference(
        name=source[name_node.start_byte : name_node.end_byte].decode("utf-8"),
        line=name_node.start_point[0] + 1,
        column=column,
    )


__all__ = [
    "ClassReference",
    "STYLESHEET_SUFFIXES",
    "SelectorEntry",
    "StyleRule",
    "Stylesheet",
    "StylesheetParser",
]
