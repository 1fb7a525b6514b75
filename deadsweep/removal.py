"""Transactional removal of unused code, files and CSS rules."""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Set

from .analyzers.protection import ProtectionClassifier
from .analyzers.styles import removable_rules
from .config import RunMode
from .context import RunContext
from .errors import PARSE, WRITE, AnalysisWarning, RecoverableParseError, RecoverableWriteError, Result
from .logging import get_logger
from .models import AnalysisResult
from .syntax.base import ImportDeclaration, ParsedModule, Span, SyntaxTreeProvider
from .syntax.edits import apply_edits, expand_to_line
from .syntax.stylesheet import StylesheetParser
from .syntax.tree_sitter import TreeSitterProvider


def list_removal_spans(items: Sequence[Span], unused: Sequence[bool]) -> List[Span]:
    """Spans removing the unused entries of a comma-separated list.

    A run of unused entries followed by a kept entry is removed up to that
    entry's start; a trailing run is removed from the end of the entry before
    it, taking the separating comma along.
    """
    spans: List[Span] = []
    index = 0
    count = len(items)
    while index < count:
        if not unused[index]:
            index += 1
            continue
        end = index
        while end + 1 < count and unused[end + 1]:
            end += 1
        if end + 1 < count:
            spans.append(Span(items[index].start, items[end + 1].start))
        elif index > 0:
            spans.append(Span(items[index - 1].end, items[end].end))
        else:
            spans.append(Span(items[index].start, items[end].end))
        index = end + 1
    return spans


def import_removal_spans(declaration: ImportDeclaration, unused: Collection[str], source: bytes) -> List[Span]:
    bindings = declaration.bindings
    dropped = [binding for binding in bindings if binding.name in unused]
    if not dropped:
        return []
    if len(dropped) == len(bindings):
        return [expand_to_line(source, declaration.span)]

    spans: List[Span] = []
    default = declaration.default
    namespace = declaration.namespace
    named = declaration.named
    tail = namespace.span if namespace is not None else declaration.named_block

    if default is not None and default.name in unused and tail is not None:
        spans.append(Span(default.span.start, tail.start))

    if namespace is not None and namespace.name in unused and default is not None:
        spans.append(Span(default.span.end, namespace.span.end))

    if named:
        flags = [binding.name in unused for binding in named]
        if all(flags) and default is not None and declaration.named_block is not None:
            spans.append(Span(default.span.end, declaration.named_block.end))
        elif any(flags):
            spans.extend(list_removal_spans([binding.span for binding in named], flags))
    return spans


def declaration_removal_spans(
    module: ParsedModule,
    source: bytes,
    *,
    imports: Collection[str] = (),
    variables: Collection[str] = (),
    functions: Collection[str] = (),
) -> List[Span]:
    """Every byte span to delete from ``source`` for the given unused names."""
    spans: List[Span] = []

    for declaration in module.imports:
        spans.extend(import_removal_spans(declaration, imports, source))

    if variables:
        statements: Dict[Span, List[bool]] = {}
        siblings: Dict[Span, Sequence[Span]] = {}
        for variable in module.variables:
            flags = statements.setdefault(variable.statement, [False] * len(variable.siblings))
            siblings[variable.statement] = variable.siblings
            removable = (
                variable.name in variables
                and not variable.exported
                and not variable.destructured
                and not variable.in_loop
            )
            if removable and variable.span in variable.siblings:
                flags[variable.siblings.index(variable.span)] = True
        for statement, flags in statements.items():
            if not any(flags):
                continue
            if all(flags):
                spans.append(expand_to_line(source, statement))
            else:
                spans.extend(list_removal_spans(siblings[statement], flags))

    if functions:
        for function in module.functions:
            if function.name in functions and not function.exported:
                spans.append(expand_to_line(source, function.span))
        for cls in module.classes:
            if cls.exported:
                continue
            for method in cls.methods:
                if method.is_private or method.is_accessor or method.is_constructor:
                    continue
                if method.qualified_name in functions:
                    spans.append(expand_to_line(source, method.span))
    return spans


class RemovalEngine:
    """Applies an AnalysisResult to disk; dry runs only report."""

    def __init__(
        self,
        provider: SyntaxTreeProvider | None = None,
        stylesheet_parser: StylesheetParser | None = None,
    ) -> None:
        self.provider = provider or TreeSitterProvider()
        self.stylesheet_parser = stylesheet_parser or StylesheetParser()
        self.logger = get_logger("removal")

    def execute(self, result: AnalysisResult, mode: RunMode, context: RunContext) -> AnalysisResult:
        if mode is RunMode.DRY_RUN:
            self.logger.info("Dry run: no files were modified")
            return result

        options = context.options
        modified: List[str] = list(result.modified_files)
        deleted: List[str] = list(result.deleted_files)
        reclaimed = result.bytes_reclaimed

        doomed: Set[str] = set(result.unused_files) if options.delete_unused_files else set()
        sources = sorted(
            set(result.unused_imports) | set(result.unused_variables) | set(result.unused_functions)
        )
        for path in sources:
            if path in doomed:
                continue
            changed = context.record(
                self.rewrite_source(
                    path,
                    imports=result.unused_imports.get(path, ()),
                    variables=result.unused_variables.get(path, ()) if options.deep_scrub else (),
                    functions=result.unused_functions.get(path, ()) if options.deep_scrub else (),
                )
            )
            if changed:
                modified.append(path)
                self.logger.info("Cleaned %s", context.relative(path))

        protection = ProtectionClassifier(context.root, context.config.protection.extra_patterns)
        if options.delete_unused_files:
            for path in result.unused_files:
                size = context.record(self.delete_file(path, protection))
                if size is not None:
                    deleted.append(path)
                    reclaimed += size
                    self.logger.info("Deleted %s (%d bytes)", context.relative(path), size)

        if options.delete_unused_assets and result.assets is not None:
            for asset in result.assets.items:
                size = context.record(self.delete_file(asset.path, protection))
                if size is not None:
                    deleted.append(asset.path)
                    reclaimed += size
                    self.logger.info(
                        "Deleted unused %s %s (%d bytes)", asset.kind, context.relative(asset.path), size
                    )

        if options.clean_styles:
            for path, selectors in result.unused_selectors.items():
                saved = context.record(
                    self.clean_stylesheet(path, {selector.class_name for selector in selectors})
                )
                if saved is not None:
                    modified.append(path)
                    reclaimed += saved
                    self.logger.info("Cleaned %s (%d bytes removed)", context.relative(path), saved)

        return replace(
            result,
            modified_files=tuple(dict.fromkeys(modified)),
            deleted_files=tuple(dict.fromkeys(deleted)),
            bytes_reclaimed=reclaimed,
        )

    def rewrite_source(
        self,
        path: str,
        *,
        imports: Iterable[str] = (),
        variables: Iterable[str] = (),
        functions: Iterable[str] = (),
    ) -> Result[bool]:
        """Re-parse ``path`` and splice out the named declarations.

        Returns ``True`` when the file was rewritten.
        """
        try:
            text = Path(path).read_bytes().decode("utf-8")
            module = self.provider.parse(path, text)
        except RecoverableParseError as exc:
            return Result.failure(AnalysisWarning.from_error(exc, PARSE))
        except (OSError, UnicodeDecodeError) as exc:
            return Result.failure(AnalysisWarning(PARSE, path, f"unreadable: {exc}"))

        source = text.encode("utf-8")
        spans = declaration_removal_spans(
            module,
            source,
            imports=set(imports),
            variables=set(variables),
            functions=set(functions),
        )
        updated = apply_edits(source, spans).decode("utf-8")
        if updated == text:
            return Result.success(False)
        try:
            _write_text(path, updated)
        except RecoverableWriteError as exc:
            return Result.failure(AnalysisWarning.from_error(exc, WRITE))
        return Result.success(True)

    def delete_file(self, path: str, protection: ProtectionClassifier) -> Result[Optional[int]]:
        """Delete ``path`` unless protected; the value is the reclaimed size."""
        tag = protection.classify(path)
        if tag.protected:
            self.logger.debug("Kept protected file %s (%s)", path, ", ".join(tag.reasons))
            return Result.success(None)
        try:
            size = os.path.getsize(path)
            os.remove(path)
        except OSError as exc:
            error = RecoverableWriteError(path, f"could not delete: {exc}")
            return Result.failure(AnalysisWarning.from_error(error, WRITE))
        return Result.success(size)

    def clean_stylesheet(self, path: str, unused: Collection[str]) -> Result[Optional[int]]:
        """Drop dead rules from ``path``; the value is the number of bytes removed."""
        try:
            text = Path(path).read_bytes().decode("utf-8")
            sheet = self.stylesheet_parser.parse(path, text)
        except RecoverableParseError as exc:
            return Result.failure(AnalysisWarning.from_error(exc, PARSE))
        except (OSError, UnicodeDecodeError) as exc:
            return Result.failure(AnalysisWarning(PARSE, path, f"unreadable: {exc}"))

        updated = self.stylesheet_parser.regenerate(sheet, removable_rules(sheet, unused))
        if updated == text:
            return Result.success(None)
        try:
            _write_text(path, updated)
        except RecoverableWriteError as exc:
            return Result.failure(AnalysisWarning.from_error(exc, WRITE))
        return Result.success(len(text.encode("utf-8")) - len(updated.encode("utf-8")))


def _write_text(path: str, text: str) -> None:
    try:
        Path(path).write_bytes(text.encode("utf-8"))
    except OSError as exc:
        raise RecoverableWriteError(path, f"could not save: {exc}") from exc


__all__ = [
    "RemovalEngine",
    "declaration_removal_spans",
    "import_removal_spans",
    "list_removal_spans",
]
