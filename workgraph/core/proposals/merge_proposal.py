from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Iterator

from workgraph.core.proposals.contracts import Proposal


@dataclass(frozen=True)
class MergeResult:
    snapshot: dict[str, Any]
    id_remap: dict[str, str]
    added_node_ids: list[str]
    added_edge_ids: list[str]
    notes: list[str]


def _suffixes() -> Iterator[str]:
    letters = [chr(c) for c in range(ord("A"), ord("Z") + 1)]
    for a in letters:
        yield a
    for a in letters:
        for b in letters:
            yield a + b


def allocate_unique_id(existing: set[str], proposed: str) -> str:
    if proposed not in existing:
        return proposed
    for suf in _suffixes():
        candidate = f"{proposed}-{suf}"
        if candidate not in existing:
            return candidate
    raise RuntimeError(f"Unable to allocate unique id for {proposed}")


def merge_proposal(snapshot: dict[str, Any], proposal: Proposal) -> MergeResult:
    """Append proposed nodes/edges to a copy of the snapshot.

    Colliding node ids get a letter suffix and proposed edges follow the remap.
    Proposed nodes always start as TODO with no saved position, so the next
    render lays them out. Existing nodes and edges are never modified.
    """
    out: dict[str, Any] = deepcopy(snapshot)
    for key in ("nodes", "edges"):
        if out.get(key) is None:
            out[key] = []
    nodes: list[dict[str, Any]] = out["nodes"]
    edges: list[dict[str, Any]] = out["edges"]
    if not isinstance(nodes, list) or not isinstance(edges, list):
        raise ValueError("snapshot.nodes and snapshot.edges must be lists")

    node_ids = {n["id"] for n in nodes if isinstance(n, dict) and isinstance(n.get("id"), str)}
    edge_ids = {e["id"] for e in edges if isinstance(e, dict) and isinstance(e.get("id"), str)}

    id_remap: dict[str, str] = {}
    added_nodes: list[str] = []
    for raw in proposal.nodes:
        node = deepcopy(raw)
        proposed_id = node["id"]
        new_id = allocate_unique_id(node_ids, proposed_id)
        if new_id != proposed_id:
            id_remap[proposed_id] = new_id
        node["id"] = new_id
        node["manual_status"] = "TODO"
        node.pop("position", None)
        node_ids.add(new_id)
        nodes.append(node)
        added_nodes.append(new_id)

    proposed_node_ids = {n["id"] for n in proposal.nodes}

    def remap(x: str) -> str:
        # Only ids introduced by this proposal are remapped; references to existing
        # nodes are kept as-is.
        return id_remap.get(x, x) if x in proposed_node_ids else x

    added_edges: list[str] = []
    for i, raw in enumerate(proposal.edges, start=1):
        edge = deepcopy(raw)
        edge["from_node_id"] = remap(edge["from_node_id"])
        edge["to_node_id"] = remap(edge["to_node_id"])
        proposed_eid = edge.get("id") if isinstance(edge.get("id"), str) and edge["id"] else f"E-P{i}"
        edge["id"] = allocate_unique_id(edge_ids, proposed_eid)
        edge_ids.add(edge["id"])
        edges.append(edge)
        added_edges.append(edge["id"])

    return MergeResult(
        snapshot=out,
        id_remap=id_remap,
        added_node_ids=added_nodes,
        added_edge_ids=added_edges,
        notes=proposal.notes,
    )
