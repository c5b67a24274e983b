"""Multi-source shortest-path search over the rail graph."""

from __future__ import annotations

import heapq
import itertools
import math
from typing import Any, Iterable, NamedTuple, Optional

from .graph import RailGraph


class Seed(NamedTuple):
    """Cost already spent reaching a node before riding the network."""
    node_id: int
    initial_cost: float


class MinQueue:
    """Binary min-heap of items keyed by a numeric priority.

    Equal priorities pop in insertion order. There is no decrease-key;
    superseded entries stay in the heap and are skipped by the caller.
    """

    def __init__(self):
        self._heap: list[tuple[float, int, Any]] = []
        self._counter = itertools.count()

    def push(self, item: Any, priority: float) -> None:
        heapq.heappush(self._heap, (priority, next(self._counter), item))

    def pop(self) -> Optional[tuple[Any, float]]:
        """Remove and return (item, priority) with the lowest priority, or None if empty."""
        if not self._heap:
            return None
        priority, _, item = heapq.heappop(self._heap)
        return item, priority

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)


def solve_multi_source(graph: RailGraph, seeds: Iterable[tuple[int, float]]) -> dict[int, float]:
    """Minimum cost from any seed to every reachable node.

    Each seed starts at its own initial cost instead of zero. The search runs
    over the whole reachable component; budget filtering is left to the
    caller so one solve can serve several budgets. Unreached nodes are
    absent from the result. Seeds on nodes outside the graph are ignored.
    """
    dist: dict[int, float] = {}
    pq = MinQueue()

    for node_id, initial_cost in seeds:
        if not math.isfinite(initial_cost) or initial_cost < 0:
            raise ValueError(f"Seed {node_id} has invalid initial cost {initial_cost}")
        if not graph.has_node(node_id):
            continue
        if node_id not in dist or initial_cost < dist[node_id]:
            dist[node_id] = initial_cost
            pq.push(node_id, initial_cost)

    visited: set[int] = set()
    costs: dict[int, float] = {}

    while pq:
        current, current_cost = pq.pop()
        if current in visited:
            continue
        visited.add(current)
        costs[current] = current_cost

        for neighbor, edge_cost in graph.neighbors_of(current):
            if neighbor in visited:
                continue
            new_cost = current_cost + edge_cost
            if neighbor not in dist or new_cost < dist[neighbor]:
                dist[neighbor] = new_cost
                pq.push(neighbor, new_cost)

    return costs


def solve_from(graph: RailGraph, node_id: int) -> dict[int, float]:
    """Costs from a single node, starting at zero."""
    return solve_multi_source(graph, [Seed(node_id, 0.0)])
