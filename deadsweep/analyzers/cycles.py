"""Circular import detection over the module graph."""

from __future__ import annotations

from typing import List, Tuple

import networkx as nx

from ..logging import get_logger

logger = get_logger("cycles")


class ModuleCycleDetector:
    """Reports one representative cycle per strongly connected component."""

    def find_cycles(self, graph: nx.DiGraph) -> Tuple[Tuple[str, ...], ...]:
        working = nx.DiGraph(graph)
        working.remove_edges_from(list(nx.selfloop_edges(working)))

        cycles: List[Tuple[str, ...]] = []
        for component in nx.strongly_connected_components(working):
            if len(component) < 2:
                continue
            start = min(component)
            subgraph = working.subgraph(component)
            edges = nx.find_cycle(subgraph, source=start)
            nodes = [source for source, _ in edges]
            pivot = nodes.index(min(nodes))
            cycles.append(tuple(nodes[pivot:] + nodes[:pivot]))

        cycles.sort()
        if cycles:
            logger.info("Found %d circular import chain(s)", len(cycles))
        return tuple(cycles)


__all__ = ["ModuleCycleDetector"]
