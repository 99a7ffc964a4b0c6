"""Typed work graph with precursor -> successor normalization."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from typing import Literal, Optional

from workgraph.core.model import EdgeRelation, WorkEdge, WorkNode

logger = logging.getLogger(__name__)


# Which stored endpoint is the precursor (the side that must finish first).
# HANDOFF_TO flows forward along the stored direction; the other relations are
# phrased from the dependent node ("B depends on A" is stored as B -> A).
PRECURSOR_SIDE: dict[str, Literal["from", "to"]] = {
    "HANDOFF_TO": "from",
    "DEPENDS_ON": "to",
    "NEEDS_INFO_FROM": "to",
    "APPROVAL_BY": "to",
}


def orient(edge: WorkEdge) -> tuple[str, str]:
    """Return (precursor_id, successor_id) for a stored edge."""
    if PRECURSOR_SIDE[edge.relation] == "from":
        return edge.from_node_id, edge.to_node_id
    return edge.to_node_id, edge.from_node_id


class GraphModel:
    """Read-only view over one snapshot of nodes and edges."""

    __slots__ = ("_nodes", "_order", "_edges", "_dropped", "_precursors", "_successors")

    def __init__(self, nodes: Iterable[WorkNode], edges: Iterable[WorkEdge]) -> None:
        self._nodes: dict[str, WorkNode] = {}
        self._order: list[str] = []
        for node in nodes:
            if node.id in self._nodes:
                continue
            self._nodes[node.id] = node
            self._order.append(node.id)

        self._edges: list[WorkEdge] = []
        self._dropped: list[WorkEdge] = []
        self._precursors: dict[str, list[tuple[str, EdgeRelation]]] = {
            nid: [] for nid in self._order
        }
        self._successors: dict[str, list[tuple[str, EdgeRelation]]] = {
            nid: [] for nid in self._order
        }

        for edge in edges:
            if edge.from_node_id not in self._nodes or edge.to_node_id not in self._nodes:
                logger.debug(
                    "dropping edge %s (%s -> %s): endpoint not in graph",
                    edge.id,
                    edge.from_node_id,
                    edge.to_node_id,
                )
                self._dropped.append(edge)
                continue
            precursor, successor = orient(edge)
            self._edges.append(edge)
            self._precursors[successor].append((precursor, edge.relation))
            self._successors[precursor].append((successor, edge.relation))

    @classmethod
    def build(cls, nodes: Iterable[WorkNode], edges: Iterable[WorkEdge]) -> GraphModel:
        return cls(nodes, edges)

    @property
    def nodes(self) -> list[WorkNode]:
        """Nodes in snapshot order."""
        return [self._nodes[nid] for nid in self._order]

    @property
    def edges(self) -> list[WorkEdge]:
        """Edges that survived endpoint checks, in input order."""
        return list(self._edges)

    @property
    def dropped_edges(self) -> list[WorkEdge]:
        return list(self._dropped)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._order)

    def node(self, node_id: str) -> WorkNode:
        return self._nodes[node_id]

    def precursors_of(self, node_id: str) -> list[tuple[WorkNode, EdgeRelation]]:
        return [(self._nodes[p], rel) for p, rel in self._precursors.get(node_id, [])]

    def successors_of(self, node_id: str) -> list[tuple[WorkNode, EdgeRelation]]:
        return [(self._nodes[s], rel) for s, rel in self._successors.get(node_id, [])]

    def precursor_ids(self, node_id: str) -> list[str]:
        return [p for p, _ in self._precursors.get(node_id, [])]

    def successor_ids(self, node_id: str) -> list[str]:
        return [s for s, _ in self._successors.get(node_id, [])]

    def would_create_cycle(self, from_node_id: str, to_node_id: str, relation: str) -> bool:
        """Whether storing ``from DEPENDS_ON to`` would close a dependency loop.

        Only DEPENDS_ON edges are considered; other relations never count as cycles.
        """
        return self.find_cycle_path(from_node_id, to_node_id, relation) is not None

    def find_cycle_path(
        self, from_node_id: str, to_node_id: str, relation: str
    ) -> Optional[list[str]]:
        """Return the loop a new DEPENDS_ON edge would close, as stored-direction ids.

        The path starts at ``to_node_id`` and ends at ``from_node_id``.
        """
        if relation != "DEPENDS_ON":
            return None
        if from_node_id == to_node_id:
            return [to_node_id, from_node_id]

        # Stored direction: A DEPENDS_ON B is A -> B.
        adj: dict[str, list[str]] = {}
        for edge in self._edges:
            if edge.relation == "DEPENDS_ON":
                adj.setdefault(edge.from_node_id, []).append(edge.to_node_id)

        q: deque[list[str]] = deque([[to_node_id]])
        seen: set[str] = {to_node_id}
        while q:
            path = q.popleft()
            for nxt in adj.get(path[-1], []):
                if nxt == from_node_id:
                    return path + [nxt]
                if nxt not in seen:
                    seen.add(nxt)
                    q.append(path + [nxt])
        return None
