"""Per-run state handed to every pipeline component."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, TypeVar

from .config import RunOptions, SweepConfig
from .errors import AnalysisWarning, Result
from .logging import display_path, get_logger

T = TypeVar("T")


@dataclass
class RunContext:
    """Root, options, config and the append-only warning sink of one run."""

    root: Path
    options: RunOptions
    config: SweepConfig
    logger: logging.Logger = field(default_factory=lambda: get_logger("run"))
    warnings: List[AnalysisWarning] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def warn(self, category: str, message: str, path: Optional[str] = None) -> AnalysisWarning:
        return self.add_warning(AnalysisWarning(category=category, path=path, message=message))

    def add_warning(self, warning: AnalysisWarning) -> AnalysisWarning:
        """Record ``warning`` once; repeats from later passes are ignored."""
        with self._lock:
            if warning in self.warnings:
                return warning
            self.warnings.append(warning)
        if warning.path:
            self.logger.warning(
                "[%s] %s: %s", warning.category, self.relative(warning.path), warning.message
            )
        else:
            self.logger.warning("[%s] %s", warning.category, warning.message)
        return warning

    def record(self, result: Result[T]) -> Optional[T]:
        """Return the value of ``result``, recording its warning if it failed."""
        if result.warning is not None:
            self.add_warning(result.warning)
            return None
        return result.value

    def relative(self, path: str | Path) -> str:
        return display_path(path, self.root)


__all__ = ["RunContext"]
