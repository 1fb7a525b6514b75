"""Core data models shared across deadsweep components."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import AnalysisWarning
from .logging import display_path
from .syntax.base import ParsedModule


class SymbolKind(str, Enum):
    IMPORT = "import"
    VARIABLE = "variable"
    FUNCTION = "function"
    METHOD = "method"


@dataclass
class SourceUnit:
    """One JS/TS file as loaded by the project loader.

    ``module`` is ``None`` for degraded units (the file did not parse); such
    units still contribute ``specifiers`` so the files they import stay
    reachable, but they are never analyzed for symbols nor deleted.
    """

    path: str
    text: str
    module: Optional[ParsedModule]
    specifiers: List[str] = field(default_factory=list)
    parse_error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.module is None

    @property
    def size(self) -> int:
        return len(self.text.encode("utf-8"))


@dataclass(frozen=True)
class Symbol:
    """Named declaration with its whole-word occurrence count."""

    name: str
    unit: str
    kind: SymbolKind
    exported: bool = False
    occurrences: int = 1

    def __post_init__(self) -> None:
        if self.occurrences < 1:
            raise ValueError(f"occurrences must be >= 1 for {self.name!r}")

    @property
    def is_unused(self) -> bool:
        return self.occurrences <= 1 and not self.exported


@dataclass(frozen=True)
class ModuleEdge:
    source: str
    target: str


@dataclass(frozen=True)
class ProtectionTag:
    """Protection classification of one path; ``reasons`` only ever grows."""

    path: str
    reasons: Tuple[str, ...] = ()

    @property
    def protected(self) -> bool:
        return bool(self.reasons)

    def with_reason(self, reason: str) -> "ProtectionTag":
        if reason in self.reasons:
            return self
        return ProtectionTag(path=self.path, reasons=self.reasons + (reason,))


@dataclass
class CssSelector:
    """A class selector found in a stylesheet."""

    selector: str
    stylesheet: str
    line: int
    column: int
    used: bool = False

    @property
    def class_name(self) -> str:
        return self.selector[1:]

    def mark_used(self) -> None:
        self.used = True


@dataclass(frozen=True)
class UnitReferences:
    """Unused symbols of a single unit, grouped by kind."""

    path: str
    symbols: Tuple[Symbol, ...] = ()

    def unused(self, *kinds: SymbolKind) -> Tuple[str, ...]:
        return tuple(
            symbol.name for symbol in self.symbols if symbol.kind in kinds and symbol.is_unused
        )

    @property
    def unused_imports(self) -> Tuple[str, ...]:
        return self.unused(SymbolKind.IMPORT)

    @property
    def unused_variables(self) -> Tuple[str, ...]:
        return self.unused(SymbolKind.VARIABLE)

    @property
    def unused_functions(self) -> Tuple[str, ...]:
        return self.unused(SymbolKind.FUNCTION, SymbolKind.METHOD)


@dataclass(frozen=True)
class DependencyAuditResult:
    """Declared vs. imported packages from package.json."""

    unused: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()
    replaceable: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unused": list(self.unused),
            "missing": list(self.missing),
            "replaceable": dict(self.replaceable),
        }


IMAGE = "image"
FONT = "font"


@dataclass(frozen=True)
class UnusedAsset:
    path: str
    kind: str
    size: int = 0


@dataclass(frozen=True)
class AssetSweepResult:
    """Images and fonts no source, markup, stylesheet or JSON file names."""

    items: Tuple[UnusedAsset, ...] = ()

    @property
    def images(self) -> Tuple[str, ...]:
        return tuple(item.path for item in self.items if item.kind == IMAGE)

    @property
    def fonts(self) -> Tuple[str, ...]:
        return tuple(item.path for item in self.items if item.kind == FONT)

    @property
    def total_size(self) -> int:
        return sum(item.size for item in self.items)

    def merge(self, later: Optional["AssetSweepResult"]) -> "AssetSweepResult":
        if later is None:
            return self
        known = {item.path for item in self.items}
        return AssetSweepResult(
            items=self.items + tuple(item for item in later.items if item.path not in known)
        )

    def to_dict(self, rel: Callable[[str], str] = str) -> Dict[str, Any]:
        return {
            "images": [rel(path) for path in self.images],
            "fonts": [rel(path) for path in self.fonts],
            "total_size": self.total_size,
        }


@dataclass(frozen=True)
class LongFunction:
    name: str
    line: int
    line_count: int


@dataclass(frozen=True)
class NestingHotspot:
    name: str
    line: int
    depth: int


@dataclass(frozen=True)
class FileComplexity:
    """Size and structure metrics of a file that crossed a threshold."""

    path: str
    line_count: int
    function_count: int
    large: bool = False
    long_functions: Tuple[LongFunction, ...] = ()
    deep_nesting: Tuple[NestingHotspot, ...] = ()

    @property
    def score(self) -> int:
        return self.line_count // 100 + 5 * len(self.long_functions) + 10 * len(self.deep_nesting)

    def to_dict(self, rel: Callable[[str], str] = str) -> Dict[str, Any]:
        return {
            "path": rel(self.path),
            "line_count": self.line_count,
            "function_count": self.function_count,
            "large": self.large,
            "long_functions": [
                {"name": item.name, "line": item.line, "line_count": item.line_count}
                for item in self.long_functions
            ],
            "deep_nesting": [
                {"name": item.name, "line": item.line, "depth": item.depth}
                for item in self.deep_nesting
            ],
            "score": self.score,
        }


def freeze_groups(groups: Mapping[str, Iterable[Any]]) -> Mapping[str, Tuple[Any, ...]]:
    """Return a read-only ``path -> tuple`` view without empty groups."""
    frozen: Dict[str, Tuple[Any, ...]] = {}
    for key in sorted(groups):
        values = tuple(groups[key])
        if values:
            frozen[key] = values
    return MappingProxyType(frozen)


def _merge_groups(
    first: Mapping[str, Tuple[Any, ...]], later: Mapping[str, Tuple[Any, ...]]
) -> Mapping[str, Tuple[Any, ...]]:
    merged: Dict[str, List[Any]] = {key: list(values) for key, values in first.items()}
    for key, values in later.items():
        bucket = merged.setdefault(key, [])
        bucket.extend(value for value in values if value not in bucket)
    return freeze_groups(merged)


def _unique(*sequences: Sequence[Any]) -> Tuple[Any, ...]:
    seen: List[Any] = []
    for sequence in sequences:
        for item in sequence:
            if item not in seen:
                seen.append(item)
    return tuple(seen)


def _empty() -> Mapping[str, Tuple[Any, ...]]:
    return MappingProxyType({})


@dataclass(frozen=True)
class AnalysisResult:
    """Immutable outcome of a run.

    Mappings group findings by absolute file path. ``modified_files`` covers
    both rewritten sources and rewritten stylesheets; ``deleted_files`` covers
    both unreachable sources and unused assets.
    """

    root: str
    unused_imports: Mapping[str, Tuple[str, ...]] = field(default_factory=_empty)
    unused_variables: Mapping[str, Tuple[str, ...]] = field(default_factory=_empty)
    unused_functions: Mapping[str, Tuple[str, ...]] = field(default_factory=_empty)
    unused_files: Tuple[str, ...] = ()
    unused_selectors: Mapping[str, Tuple[CssSelector, ...]] = field(default_factory=_empty)
    modified_files: Tuple[str, ...] = ()
    deleted_files: Tuple[str, ...] = ()
    bytes_reclaimed: int = 0
    warnings: Tuple[AnalysisWarning, ...] = ()
    dependency_audit: Optional[DependencyAuditResult] = None
    cycles: Tuple[Tuple[str, ...], ...] = ()
    assets: Optional[AssetSweepResult] = None
    complexity: Tuple[FileComplexity, ...] = ()
    files_analyzed: int = 0
    stylesheets_analyzed: int = 0
    passes: int = 1

    @property
    def has_findings(self) -> bool:
        return any(
            (
                self.unused_imports,
                self.unused_variables,
                self.unused_functions,
                self.unused_files,
                self.unused_selectors,
                self.assets is not None and self.assets.items,
            )
        )

    @property
    def changed(self) -> bool:
        return bool(self.modified_files or self.deleted_files)

    def warning_counts(self) -> Dict[str, int]:
        return dict(Counter(warning.category for warning in self.warnings))

    def merge(self, later: "AnalysisResult") -> "AnalysisResult":
        """Fold a subsequent pass into this result.

        Findings and mutations accumulate; the dependency audit, cycles,
        complexity and counters describe the project as first seen.
        """
        return AnalysisResult(
            root=self.root,
            unused_imports=_merge_groups(self.unused_imports, later.unused_imports),
            unused_variables=_merge_groups(self.unused_variables, later.unused_variables),
            unused_functions=_merge_groups(self.unused_functions, later.unused_functions),
            unused_files=_unique(self.unused_files, later.unused_files),
            unused_selectors=_merge_groups(self.unused_selectors, later.unused_selectors),
            modified_files=_unique(self.modified_files, later.modified_files),
            deleted_files=_unique(self.deleted_files, later.deleted_files),
            bytes_reclaimed=self.bytes_reclaimed + later.bytes_reclaimed,
            warnings=_unique(self.warnings, later.warnings),
            dependency_audit=self.dependency_audit,
            cycles=self.cycles,
            assets=self.assets.merge(later.assets) if self.assets is not None else later.assets,
            complexity=self.complexity,
            files_analyzed=self.files_analyzed,
            stylesheets_analyzed=self.stylesheets_analyzed,
            passes=self.passes + later.passes,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-ready rendering with root-relative paths."""

        def rel(path: str) -> str:
            return display_path(path, self.root)

        def groups(mapping: Mapping[str, Tuple[str, ...]]) -> Dict[str, List[str]]:
            return {rel(path): list(names) for path, names in mapping.items()}

        return {
            "root": self.root,
            "unused_imports": groups(self.unused_imports),
            "unused_variables": groups(self.unused_variables),
            "unused_functions": groups(self.unused_functions),
            "unused_files": [rel(path) for path in self.unused_files],
            "unused_selectors": {
                rel(path): [
                    {"selector": item.selector, "line": item.line, "column": item.column}
                    for item in selectors
                ]
                for path, selectors in self.unused_selectors.items()
            },
            "modified_files": [rel(path) for path in self.modified_files],
            "deleted_files": [rel(path) for path in self.deleted_files],
            "bytes_reclaimed": self.bytes_reclaimed,
            "warnings": [
                {
                    "category": warning.category,
                    "path": rel(warning.path) if warning.path else None,
                    "message": warning.message,
                }
                for warning in self.warnings
            ],
            "warning_counts": self.warning_counts(),
            "dependency_audit": self.dependency_audit.to_dict() if self.dependency_audit else None,
            "cycles": [[rel(path) for path in cycle] for cycle in self.cycles],
            "assets": self.assets.to_dict(rel) if self.assets is not None else None,
            "complexity": [item.to_dict(rel) for item in self.complexity],
            "files_analyzed": self.files_analyzed,
            "stylesheets_analyzed": self.stylesheets_analyzed,
            "passes": self.passes,
        }


__all__ = [
    "AnalysisResult",
    "AssetSweepResult",
    "CssSelector",
    "DependencyAuditResult",
    "FONT",
    "FileComplexity",
    "IMAGE",
    "LongFunction",
    "ModuleEdge",
    "NestingHotspot",
    "ProtectionTag",
    "SourceUnit",
    "Symbol",
    "SymbolKind",
    "UnitReferences",
    "UnusedAsset",
    "freeze_groups",
]
