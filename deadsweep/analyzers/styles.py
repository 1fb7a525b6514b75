"""CSS class usage analysis across sources and markup."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..context import RunContext
from ..errors import PARSE, AnalysisWarning, RecoverableParseError, Result
from ..logging import get_logger
from ..models import CssSelector, SourceUnit
from ..syntax.stylesheet import STYLESHEET_SUFFIXES, StyleRule, Stylesheet, StylesheetParser
from .reachability import resolve_module_path

_TOKEN = re.compile(r"-?[A-Za-z_][\w-]*")
_STRING_LITERAL = re.compile(r"""(["'`])(.*?)\1""", re.DOTALL)

# Each pattern captures a chunk of text whose tokens are class names.
_CLASS_ATTRIBUTE_PATTERNS = (
    re.compile(r"""\bclass(?:Name)?\s*=\s*(["'`])(?P<value>.*?)\1""", re.DOTALL),
    re.compile(r"""\bclassName\s*=\s*\{\s*(["'`])(?P<value>.*?)\1\s*\}""", re.DOTALL),
    re.compile(r"""\bclass:\s*(["'`])(?P<value>.*?)\1"""),
)
_CLASS_LIST_CALL = re.compile(r"""classList\.(?:add|remove|toggle|contains|replace)\((?P<args>[^)]*)\)""")
_MEMBER_REFERENCE = re.compile(r"\.(-?[A-Za-z_][\w-]*)")
_TEMPLATE_PREFIX = re.compile(r"(-?[A-Za-z_][\w-]*[-_])\$\{")
_DYNAMIC_CLASS_NAME = re.compile(r"className=\{([^}]+)\}")


@dataclass
class ClassUsage:
    """Class names (and class-name prefixes) referenced by a set of files."""

    names: Set[str] = field(default_factory=set)
    prefixes: Set[str] = field(default_factory=set)

    def matches(self, class_name: str) -> bool:
        if class_name in self.names:
            return True
        return any(class_name.startswith(prefix) for prefix in self.prefixes)


@dataclass
class StylesheetUsage:
    path: str
    sheet: Stylesheet
    selectors: List[CssSelector] = field(default_factory=list)

    @property
    def unused(self) -> List[CssSelector]:
        return [selector for selector in self.selectors if not selector.used]

    @property
    def unused_class_names(self) -> Set[str]:
        used = {selector.class_name for selector in self.selectors if selector.used}
        return {selector.class_name for selector in self.unused} - used


@dataclass
class StyleReport:
    stylesheets: List[StylesheetUsage] = field(default_factory=list)

    def unused_by_file(self) -> Dict[str, Tuple[CssSelector, ...]]:
        return {
            usage.path: tuple(usage.unused) for usage in self.stylesheets if usage.unused
        }


def collect_class_usage(text: str, usage: Optional[ClassUsage] = None) -> ClassUsage:
    """Add every class name ``text`` references to ``usage``."""
    usage = usage or ClassUsage()
    for pattern in _CLASS_ATTRIBUTE_PATTERNS:
        for match in pattern.finditer(text):
            value = match.group("value")
            usage.names.update(_TOKEN.findall(_strip_substitutions(value)))
    for match in _CLASS_LIST_CALL.finditer(text):
        for literal in _STRING_LITERAL.finditer(match.group("args")):
            usage.names.update(_TOKEN.findall(literal.group(2)))
    usage.names.update(_MEMBER_REFERENCE.findall(text))
    usage.prefixes.update(_TEMPLATE_PREFIX.findall(text))
    return usage


def _strip_substitutions(value: str) -> str:
    return re.sub(r"\$\{[^}]*\}", " ", value)


def removable_rules(sheet: Stylesheet, unused: Collection[str]) -> List[StyleRule]:
    """Rules whose every selector contains at least one unused class.

    Classes inside pseudo-class arguments are not considered, so ``:not(.x)``
    never makes a selector dead.
    """
    removable = []
    for rule in sheet.rules:
        if not rule.selectors:
            continue
        if all(
            any(ref.name in unused for ref in selector.classes) for selector in rule.selectors
        ):
            removable.append(rule)
    return removable


class StyleUsageAnalyzer:
    """Marks CSS class selectors as used when sources or markup reference them."""

    def __init__(self, parser: StylesheetParser | None = None) -> None:
        self.parser = parser or StylesheetParser()
        self.logger = get_logger("styles")

    def analyze(
        self,
        stylesheets: Sequence[str],
        units: Sequence[SourceUnit],
        markup: Sequence[str],
        context: RunContext,
    ) -> StyleReport:
        report = StyleReport()
        for path in stylesheets:
            usage = context.record(self.load_stylesheet(path))
            if usage is not None:
                report.stylesheets.append(usage)
        if not report.stylesheets:
            return report

        texts: List[Tuple[str, str]] = [(unit.path, unit.text) for unit in units]
        for path in markup:
            text = context.record(_read_text(path))
            if text is not None:
                texts.append((path, text))

        class_usage = ClassUsage()
        for _, text in texts:
            collect_class_usage(text, class_usage)

        for stylesheet in report.stylesheets:
            for selector in stylesheet.selectors:
                if class_usage.matches(selector.class_name):
                    selector.mark_used()

        if context.options.scan_components:
            self._mark_component_styles(report, units)

        total = sum(len(usage.selectors) for usage in report.stylesheets)
        unused = sum(len(usage.unused) for usage in report.stylesheets)
        self.logger.info(
            "Found %d class selectors across %d stylesheets, %d unused",
            total,
            len(report.stylesheets),
            unused,
        )
        return report

    def load_stylesheet(self, path: str) -> Result[StylesheetUsage]:
        text_result = _read_text(path)
        if text_result.warning is not None:
            return Result.failure(text_result.warning)
        try:
            sheet = self.parser.parse(path, text_result.value or "")
        except RecoverableParseError as exc:
            return Result.failure(AnalysisWarning.from_error(exc, PARSE))
        selectors = [
            CssSelector(selector=f".{ref.name}", stylesheet=path, line=ref.line, column=ref.column)
            for ref in sheet.class_references()
        ]
        return Result.success(StylesheetUsage(path=path, sheet=sheet, selectors=selectors))

    def _mark_component_styles(self, report: StyleReport, units: Iterable[SourceUnit]) -> None:
        by_path = {usage.path: usage for usage in report.stylesheets}
        for unit in units:
            if not _DYNAMIC_CLASS_NAME.search(unit.text):
                continue
            directory = os.path.dirname(unit.path)
            targets = {path for path in by_path if os.path.dirname(path) == directory}
            for specifier in unit.specifiers:
                if not specifier.startswith(".") or not specifier.lower().endswith(STYLESHEET_SUFFIXES):
                    continue
                resolved = resolve_module_path(Path(directory), specifier)
                if resolved is not None and str(resolved) in by_path:
                    targets.add(str(resolved))
            for path in targets:
                for selector in by_path[path].selectors:
                    selector.mark_used()


def _read_text(path: str) -> Result[str]:
    try:
        return Result.success(Path(path).read_bytes().decode("utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        return Result.failure(AnalysisWarning(PARSE, path, f"unreadable: {exc}"))


__all__ = [
    "ClassUsage",
    "StyleReport",
    "StyleUsageAnalyzer",
    "StylesheetUsage",
    "collect_class_usage",
    "removable_rules",
]
