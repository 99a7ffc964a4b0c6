from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Proposal:
    """Nodes/edges suggested by the external generation service, as plain data."""

    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]
    notes: list[str]


def parse_proposal(obj: Any) -> Proposal:
    if not isinstance(obj, dict):
        raise ValueError("Proposal must be an object")

    nodes_raw = obj.get("nodes", [])
    edges_raw = obj.get("edges", [])
    notes_raw = obj.get("notes", [])

    if not isinstance(nodes_raw, list):
        raise ValueError("nodes must be a list")
    if not isinstance(edges_raw, list):
        raise ValueError("edges must be a list")
    if not isinstance(notes_raw, list) or any(not isinstance(x, str) for x in notes_raw):
        raise ValueError("notes must be a list[str]")

    for item in nodes_raw:
        if not isinstance(item, dict):
            raise ValueError("Each nodes item must be an object")
        if not isinstance(item.get("id"), str) or not item["id"]:
            raise ValueError("nodes[].id must be a non-empty string")
        if not isinstance(item.get("title"), str) or not item["title"].strip():
            raise ValueError("nodes[].title must be a non-empty string")

    for item in edges_raw:
        if not isinstance(item, dict):
            raise ValueError("Each edges item must be an object")
        for key in ("from_node_id", "to_node_id", "relation"):
            if not isinstance(item.get(key), str) or not item[key]:
                raise ValueError(f"edges[].{key} must be a non-empty string")

    return Proposal(nodes=list(nodes_raw), edges=list(edges_raw), notes=list(notes_raw))
