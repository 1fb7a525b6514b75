"""Error types and per-item outcomes for analysis runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

PARSE = "parse"
WRITE = "write"
MANIFEST = "manifest"
CONFIG = "config"


class SweepError(RuntimeError):
    """Base class for errors raised by deadsweep components."""


class RecoverableParseError(SweepError):
    """A single file could not be read or parsed; the run continues without it."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class RecoverableWriteError(SweepError):
    """A single file could not be saved or deleted after analysis."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ManifestMissing(SweepError):
    """No usable package.json was found for the project."""


class FatalConfigurationError(SweepError):
    """The run cannot start, e.g. the target directory does not exist."""


@dataclass(frozen=True)
class AnalysisWarning:
    """A recoverable problem recorded during a run."""

    category: str
    path: Optional[str]
    message: str

    @classmethod
    def from_error(cls, error: Exception, category: str) -> "AnalysisWarning":
        path = getattr(error, "path", None)
        message = getattr(error, "message", None) or str(error)
        return cls(category=category, path=path, message=message)

    def describe(self) -> str:
        if self.path:
            return f"[{self.category}] {self.path}: {self.message}"
        return f"[{self.category}] {self.message}"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or the warning explaining why there is none."""

    value: Optional[T] = None
    warning: Optional[AnalysisWarning] = None

    @property
    def ok(self) -> bool:
        return self.warning is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, warning: AnalysisWarning) -> "Result[T]":
        return cls(warning=warning)


__all__ = [
    "AnalysisWarning",
    "CONFIG",
    "FatalConfigurationError",
    "MANIFEST",
    "ManifestMissing",
    "PARSE",
    "RecoverableParseError",
    "RecoverableWriteError",
    "Result",
    "SweepError",
    "WRITE",
]
