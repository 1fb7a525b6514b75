"""Syntax-tree provider contract and the declarations it extracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

NAMED = "named"
DEFAULT = "default"
NAMESPACE = "namespace"


@dataclass(frozen=True)
class Span:
    """Half-open byte range ``[start, end)`` in the UTF-8 encoded source."""

    start: int
    end: int

    def contains(self, other: "Span") -> bool:
        return self.start <= other.start and other.end <= self.end


@dataclass(frozen=True)
class ImportBinding:
    """A local name introduced by an import statement."""

    name: str
    kind: str
    span: Span


@dataclass
class ImportDeclaration:
    """An ``import ... from "x"`` statement with its local bindings.

    ``named_block`` spans the braces of the named bindings, if any.
    """

    specifier: str
    span: Span
    bindings: List[ImportBinding] = field(default_factory=list)
    named_block: Optional[Span] = None

    @property
    def default(self) -> ImportBinding | None:
        return next((b for b in self.bindings if b.kind == DEFAULT), None)

    @property
    def namespace(self) -> ImportBinding | None:
        return next((b for b in self.bindings if b.kind == NAMESPACE), None)

    @property
    def named(self) -> List[ImportBinding]:
        return [b for b in self.bindings if b.kind == NAMED]


@dataclass(frozen=True)
class VariableDeclaration:
    """One declarator of a ``const``/``let``/``var`` statement."""

    name: str
    span: Span
    statement: Span
    siblings: Tuple[Span, ...]
    exported: bool = False
    destructured: bool = False
    in_loop: bool = False


@dataclass(frozen=True)
class FunctionDeclaration:
    """A top-level ``function`` declaration."""

    name: str
    span: Span
    exported: bool = False


@dataclass(frozen=True)
class MethodDeclaration:
    """A method defined in a class body."""

    name: str
    class_name: str
    span: Span
    is_private: bool = False
    is_accessor: bool = False
    is_constructor: bool = False

    @property
    def qualified_name(self) -> str:
        return f"{self.class_name}.{self.name}"


@dataclass
class ClassDeclaration:
    """A top-level class and the methods declared in its body."""

    name: str
    span: Span
    exported: bool = False
    methods: List[MethodDeclaration] = field(default_factory=list)


@dataclass(frozen=True)
class FunctionMetrics:
    """Size and control-flow nesting of one named function or method.

    ``depth`` counts nested ``if``/loop/``switch``/``try`` statements;
    ``depth_line`` is the 1-based line of the deepest one.
    """

    name: str
    line: int
    line_count: int
    depth: int = 0
    depth_line: int = 0


@dataclass
class ParsedModule:
    """Everything the analyzers need from one parsed source file."""

    imports: List[ImportDeclaration] = field(default_factory=list)
    variables: List[VariableDeclaration] = field(default_factory=list)
    functions: List[FunctionDeclaration] = field(default_factory=list)
    classes: List[ClassDeclaration] = field(default_factory=list)
    exported_names: List[str] = field(default_factory=list)
    specifiers: List[str] = field(default_factory=list)
    metrics: List[FunctionMetrics] = field(default_factory=list)


class SyntaxTreeProvider(ABC):
    """Contract for turning source text into a :class:`ParsedModule`."""

    @abstractmethod
    def supports(self, path: str) -> bool:
        """Return True when this provider can parse ``path``."""

    @abstractmethod
    def parse(self, path: str, text: str) -> ParsedModule:
        """Parse ``text`` (the contents of ``path``).

        Implementations raise :class:`deadsweep.errors.RecoverableParseError`
        when the file cannot be parsed reliably.
        """


__all__ = [
    "ClassDeclaration",
    "DEFAULT",
    "FunctionDeclaration",
    "FunctionMetrics",
    "ImportBinding",
    "ImportDeclaration",
    "MethodDeclaration",
    "NAMED",
    "NAMESPACE",
    "ParsedModule",
    "Span",
    "SyntaxTreeProvider",
    "VariableDeclaration",
]
