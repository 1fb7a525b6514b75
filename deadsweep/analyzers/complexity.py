"""Large files, long functions and deeply nested code."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from ..config import ComplexityConfig
from ..context import RunContext
from ..logging import get_logger
from ..models import FileComplexity, LongFunction, NestingHotspot, SourceUnit


def count_lines(text: str) -> int:
    return len(text.splitlines())


class ComplexityAnalyzer:
    """Flags units that cross the configured size and nesting thresholds.

    Function metrics come from the parsed module; degraded units are still
    checked for their line count.
    """

    def __init__(self) -> None:
        self.logger = get_logger("complexity")

    def analyze(self, units: Sequence[SourceUnit], context: RunContext) -> Tuple[FileComplexity, ...]:
        limits = context.config.complexity
        flagged = [report for report in (self.measure(unit, limits) for unit in units) if report]
        flagged.sort(key=lambda report: (-report.line_count, report.path))
        if flagged:
            self.logger.info("Found %d file(s) above complexity thresholds", len(flagged))
        return tuple(flagged)

    def measure(self, unit: SourceUnit, limits: ComplexityConfig) -> FileComplexity | None:
        """Return the metrics of ``unit`` if any threshold is exceeded."""
        metrics = unit.module.metrics if unit.module is not None else []
        long_functions: List[LongFunction] = []
        deep_nesting: List[NestingHotspot] = []
        for item in metrics:
            if item.line_count > limits.max_function_lines:
                long_functions.append(LongFunction(item.name, item.line, item.line_count))
            if item.depth > limits.max_nesting_depth:
                deep_nesting.append(NestingHotspot(item.name, item.depth_line, item.depth))

        line_count = count_lines(unit.text)
        large = line_count > limits.max_file_lines
        if not (large or long_functions or deep_nesting):
            return None
        return FileComplexity(
            path=unit.path,
            line_count=line_count,
            function_count=len(metrics),
            large=large,
            long_functions=tuple(long_functions),
            deep_nesting=tuple(deep_nesting),
        )


__all__ = ["ComplexityAnalyzer", "count_lines"]
