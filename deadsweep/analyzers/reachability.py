"""Module graph construction and unreachable-file detection."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Optional, Sequence, Set, Tuple

import networkx as nx

from ..context import RunContext
from ..logging import get_logger
from ..models import ModuleEdge, SourceUnit
from .utils import PackageManifest

RESOLVE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")

_TS_EQUIVALENTS = {".js": (".ts", ".tsx"), ".jsx": (".tsx",)}


def _candidates(base: Path, directory_only: bool = False) -> List[Path]:
    if directory_only:
        return [base / f"index{ext}" for ext in RESOLVE_EXTENSIONS]
    candidates = [base]
    for ext in RESOLVE_EXTENSIONS:
        candidates.append(base.with_name(base.name + ext))
        candidates.append(base / f"index{ext}")
    for ext in _TS_EQUIVALENTS.get(base.suffix, ()):
        candidates.append(base.with_suffix(ext))
    return candidates


def _names_directory(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.endswith("/")


def resolve_module_path(directory: Path, specifier: str) -> Optional[Path]:
    """Resolve ``specifier`` relative to ``directory`` the way bundlers do.

    Tries the exact path, then ``path + ext`` and ``path/index + ext`` for
    each extension in order; a ``.js``/``.jsx`` specifier may also point at
    its TypeScript counterpart. ``.``, ``..`` and specifiers ending in ``/``
    name a directory and only resolve to its index file.
    """
    base = Path(os.path.normpath(directory / specifier))
    for candidate in _candidates(base, _names_directory(specifier)):
        if candidate.is_file():
            return candidate
    return None


@dataclass
class ReachabilityReport:
    edges: Tuple[ModuleEdge, ...]
    entry_points: FrozenSet[str]
    unreachable: Tuple[str, ...]
    graph: nx.DiGraph = field(default_factory=nx.DiGraph, repr=False)

    def inbound(self, path: str) -> List[str]:
        if path not in self.graph:
            return []
        return sorted(source for source in self.graph.predecessors(path) if source != path)


class FileReachabilityResolver:
    """Builds import edges between units and reports files nothing imports."""

    def __init__(self) -> None:
        self.logger = get_logger("reachability")

    def resolve(
        self,
        units: Sequence[SourceUnit],
        manifest: Optional[PackageManifest],
        context: RunContext,
    ) -> ReachabilityReport:
        graph = nx.DiGraph()
        graph.add_nodes_from(unit.path for unit in units)

        edges: List[ModuleEdge] = []
        seen: Set[ModuleEdge] = set()
        for unit in units:
            directory = Path(unit.path).parent
            for specifier in unit.specifiers:
                if not specifier.startswith("."):
                    continue
                target = resolve_module_path(directory, specifier)
                if target is None:
                    self.logger.debug(
                        "Unresolved import %r in %s", specifier, context.relative(unit.path)
                    )
                    continue
                edge = ModuleEdge(source=unit.path, target=str(target))
                if edge in seen:
                    continue
                seen.add(edge)
                edges.append(edge)
                graph.add_edge(edge.source, edge.target)

        entry_points = self.entry_points(manifest, context.root)
        inbound = {edge.target for edge in edges if edge.source != edge.target}
        unreachable = tuple(
            sorted(
                unit.path
                for unit in units
                if unit.path not in inbound
                and unit.path not in entry_points
                and not unit.degraded
            )
        )
        self.logger.debug(
            "Module graph: %d nodes, %d edges, %d entry points",
            graph.number_of_nodes(),
            graph.number_of_edges(),
            len(entry_points),
        )
        return ReachabilityReport(
            edges=tuple(edges),
            entry_points=entry_points,
            unreachable=unreachable,
            graph=graph,
        )

    @staticmethod
    def entry_points(manifest: Optional[PackageManifest], root: Path) -> FrozenSet[str]:
        if manifest is None:
            return frozenset()
        resolved: Set[str] = set()
        for entry in manifest.entry_points:
            resolved.add(os.path.normpath(root / entry))
            target = resolve_module_path(root, entry)
            if target is not None:
                resolved.add(str(target))
        return frozenset(resolved)


__all__ = [
    "FileReachabilityResolver",
    "RESOLVE_EXTENSIONS",
    "ReachabilityReport",
    "resolve_module_path",
]
