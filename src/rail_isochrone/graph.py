"""Rail network graph built from a precomputed JSON description."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class GraphFormatError(ValueError):
    """The graph document matches none of the supported shapes."""


class NegativeCostError(ValueError):
    """An edge cost is negative or not finite."""


class GraphShape(Enum):
    """Serialization shapes accepted for a graph document."""
    EDGE_LIST = "edge_list"  # {"nodes": [{id, name}], "edges": [{from, to, cost}]}
    ADJACENCY = "adjacency"  # {node: {neighbor: cost}}


def normalize_node_id(value: Any) -> int:
    """Canonical integer form of a node or station identifier."""
    if isinstance(value, bool):
        raise GraphFormatError(f"Invalid node id: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise GraphFormatError(f"Invalid node id: {value!r}")


def _check_cost(cost: Any, u: int, v: int) -> float:
    try:
        cost = float(cost)
    except (TypeError, ValueError):
        raise NegativeCostError(f"Edge {u}-{v} has non-numeric cost {cost!r}") from None
    if not math.isfinite(cost) or cost < 0:
        raise NegativeCostError(f"Edge {u}-{v} has invalid cost {cost}")
    return cost


def detect_shape(doc: Any) -> GraphShape:
    """Work out which serialization shape a graph document uses."""
    if isinstance(doc, Mapping):
        if isinstance(doc.get("nodes"), list) and isinstance(doc.get("edges"), list):
            return GraphShape.EDGE_LIST
        if all(isinstance(neighbors, Mapping) for neighbors in doc.values()):
            return GraphShape.ADJACENCY
    raise GraphFormatError("Graph document is neither {nodes, edges} nor an adjacency map")


class RailGraph:
    """Immutable undirected weighted graph of stations.

    Costs are travel times in seconds. Build it with one of the constructors
    (``build``, ``from_adjacency`` or ``from_document``); the instance is
    read-only afterwards.
    """

    def __init__(self, names: dict[int, str], adjacency: dict[int, tuple[tuple[int, float], ...]],
                 dropped_edges: int = 0):
        self._names = names
        self._adjacency = adjacency
        self.dropped_edges = dropped_edges

    @classmethod
    def build(cls, nodes: Iterable[Any], edges: Iterable[Mapping]) -> "RailGraph":
        """Build from node records and ``{from, to, cost}`` edges.

        Edges referencing an undeclared node are dropped.
        """
        names: dict[int, str] = {}
        for node in nodes:
            raw_id = node.get("id") if isinstance(node, Mapping) else node
            try:
                node_id = normalize_node_id(raw_id)
            except GraphFormatError:
                logger.warning(f"Skipping node without a usable id: {node!r}")
                continue
            names[node_id] = (node.get("name") if isinstance(node, Mapping) else None) or ""

        adjacency: dict[int, list[tuple[int, float]]] = {node_id: [] for node_id in names}
        dropped = 0
        for edge in edges:
            try:
                u = normalize_node_id(edge.get("from"))
                v = normalize_node_id(edge.get("to"))
            except GraphFormatError:
                dropped += 1
                continue
            if u not in names or v not in names:
                logger.debug(f"Dropping edge {u}-{v}: endpoint is not a declared node")
                dropped += 1
                continue
            cost = _check_cost(edge.get("cost"), u, v)
            adjacency[u].append((v, cost))
            adjacency[v].append((u, cost))

        if dropped:
            logger.warning(f"Dropped {dropped} edge(s) referencing unknown nodes")
        return cls._freeze(names, adjacency, dropped)

    @classmethod
    def from_adjacency(cls, adjacency_map: Mapping[Any, Mapping[Any, Any]]) -> "RailGraph":
        """Build from ``{node: {neighbor: cost}}``, symmetrizing every entry."""
        names: dict[int, str] = {}
        pairs: list[tuple[int, int, float]] = []
        dropped = 0
        for key, neighbors in adjacency_map.items():
            try:
                u = normalize_node_id(key)
            except GraphFormatError:
                logger.debug(f"Dropping adjacency entry with unusable id {key!r}")
                dropped += len(neighbors)
                continue
            names.setdefault(u, "")
            for neighbor, cost in neighbors.items():
                try:
                    v = normalize_node_id(neighbor)
                except GraphFormatError:
                    logger.debug(f"Dropping edge {u}-{neighbor!r}: unusable neighbor id")
                    dropped += 1
                    continue
                names.setdefault(v, "")
                pairs.append((u, v, _check_cost(cost, u, v)))

        adjacency: dict[int, list[tuple[int, float]]] = {node_id: [] for node_id in names}
        for u, v, cost in pairs:
            adjacency[u].append((v, cost))
            adjacency[v].append((u, cost))

        if dropped:
            logger.warning(f"Dropped {dropped} edge(s) with unusable node ids")
        return cls._freeze(names, adjacency, dropped)

    @classmethod
    def from_document(cls, doc: Any) -> "RailGraph":
        """Build from a decoded JSON document of either supported shape."""
        shape = detect_shape(doc)
        if shape is GraphShape.EDGE_LIST:
            return cls.build(doc["nodes"], doc["edges"])
        return cls.from_adjacency(doc)

    @classmethod
    def _freeze(cls, names, adjacency, dropped) -> "RailGraph":
        frozen = {node_id: tuple(edges) for node_id, edges in adjacency.items()}
        graph = cls(names, frozen, dropped)
        logger.info(f"Built rail graph: {len(graph)} nodes, {graph.edge_count} edges")
        return graph

    def neighbors_of(self, node_id: int) -> list[tuple[int, float]]:
        """(neighbor, cost) pairs of a node; empty for unknown or isolated nodes."""
        return list(self._adjacency.get(node_id, ()))

    def has_node(self, node_id: int) -> bool:
        return node_id in self._names

    def node_name(self, node_id: int) -> Optional[str]:
        return self._names.get(node_id)

    @property
    def node_ids(self) -> list[int]:
        return list(self._names)

    @property
    def edge_count(self) -> int:
        """Undirected edge count (each stored direction counted once)."""
        return sum(len(edges) for edges in self._adjacency.values()) // 2

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._names


def parse_graph_document(doc: Any) -> RailGraph:
    """Parse a graph document, whatever its shape."""
    return RailGraph.from_document(doc)
