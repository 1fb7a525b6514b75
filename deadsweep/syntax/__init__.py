"""Syntax-tree providers for JavaScript/TypeScript sources and stylesheets."""

from .base import ParsedModule, Span, SyntaxTreeProvider
from .stylesheet import StylesheetParser
from .tree_sitter import TreeSitterProvider

__all__ = [
    "ParsedModule",
    "Span",
    "StylesheetParser",
    "SyntaxTreeProvider",
    "TreeSitterProvider",
]
