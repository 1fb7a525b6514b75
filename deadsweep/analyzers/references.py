"""Per-unit symbol extraction and usage classification."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Sequence

from ..context import RunContext
from ..errors import PARSE, AnalysisWarning, Result
from ..logging import get_logger
from ..models import SourceUnit, Symbol, SymbolKind, UnitReferences


class UsageStrategy(ABC):
    """Decides how often a declared name is referenced in a unit."""

    @abstractmethod
    def occurrences(self, name: str, text: str) -> int:
        """Return how many times ``name`` appears in ``text``; at least 1."""


class TextOccurrenceHeuristic(UsageStrategy):
    """Counts whole-word matches of the name in the raw source text.

    ``$`` is treated as a word character because it is legal in JS
    identifiers. A count of one means the declaration is its only mention.
    """

    def __init__(self) -> None:
        self._patterns: Dict[str, re.Pattern[str]] = {}

    def occurrences(self, name: str, text: str) -> int:
        pattern = self._patterns.get(name)
        if pattern is None:
            pattern = re.compile(rf"(?<![\w$]){re.escape(name)}(?![\w$])")
            self._patterns[name] = pattern
        return max(1, len(pattern.findall(text)))


class ReferenceGraphBuilder:
    """Builds the unused-symbol view of every source unit."""

    def __init__(self, strategy: UsageStrategy | None = None) -> None:
        self.strategy = strategy or TextOccurrenceHeuristic()
        self.logger = get_logger("references")

    def build(self, units: Sequence[SourceUnit], context: RunContext) -> List[Result[UnitReferences]]:
        deep_scrub = context.options.deep_scrub
        workers = context.options.workers
        if workers > 1 and len(units) > 1:
            self.logger.debug("Analyzing %d units on %d workers", len(units), workers)
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="deadsweep-refs") as pool:
                return list(pool.map(lambda unit: self.analyze_unit(unit, deep_scrub), units))
        return [self.analyze_unit(unit, deep_scrub) for unit in units]

    def analyze_unit(self, unit: SourceUnit, deep_scrub: bool = False) -> Result[UnitReferences]:
        module = unit.module
        if module is None:
            return Result.failure(
                AnalysisWarning(PARSE, unit.path, f"skipped, {unit.parse_error or 'parse failed'}")
            )

        exported_names = set(module.exported_names)
        symbols: List[Symbol] = []

        for declaration in module.imports:
            for binding in declaration.bindings:
                symbols.append(
                    self._symbol(
                        unit,
                        binding.name,
                        SymbolKind.IMPORT,
                        exported=binding.name in exported_names,
                    )
                )

        if deep_scrub:
            for variable in module.variables:
                if variable.destructured or variable.in_loop:
                    continue
                symbols.append(
                    self._symbol(unit, variable.name, SymbolKind.VARIABLE, exported=variable.exported)
                )

            for function in module.functions:
                symbols.append(
                    self._symbol(unit, function.name, SymbolKind.FUNCTION, exported=function.exported)
                )

            for cls in module.classes:
                for method in cls.methods:
                    if method.is_private or method.is_accessor or method.is_constructor:
                        continue
                    symbols.append(
                        Symbol(
                            name=method.qualified_name,
                            unit=unit.path,
                            kind=SymbolKind.METHOD,
                            exported=cls.exported,
                            occurrences=self.strategy.occurrences(method.name, unit.text),
                        )
                    )

        return Result.success(UnitReferences(path=unit.path, symbols=tuple(symbols)))

    def _symbol(self, unit: SourceUnit, name: str, kind: SymbolKind, *, exported: bool) -> Symbol:
        return Symbol(
            name=name,
            unit=unit.path,
            kind=kind,
            exported=exported,
            occurrences=self.strategy.occurrences(name, unit.text),
        )


__all__ = ["ReferenceGraphBuilder", "TextOccurrenceHeuristic", "UsageStrategy"]
