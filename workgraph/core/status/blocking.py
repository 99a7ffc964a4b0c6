from __future__ import annotations

from dataclasses import dataclass

from workgraph.core.graph.graph_model import GraphModel
from workgraph.core.model import ComputedStatus, WorkNode
from workgraph.core.status.policy import DEFAULT_POLICY, RelationPolicy


@dataclass(frozen=True)
class BlockingInfo:
    node_id: str
    blocked_by: list[str]
    blocking: list[str]
    blocks_count: int


def blocked_by(graph: GraphModel, statuses: dict[str, ComputedStatus], node_id: str) -> list[str]:
    """Titles of precursors that are not DONE (each precursor once, in edge order)."""
    out: list[str] = []
    seen: set[str] = set()
    for precursor, _ in graph.precursors_of(node_id):
        if precursor.id in seen:
            continue
        seen.add(precursor.id)
        if statuses.get(precursor.id) != "DONE":
            out.append(precursor.title)
    return out


def blocking(graph: GraphModel, node_id: str) -> list[str]:
    """Titles of successors held up by this node; empty once the node is DONE."""
    if graph.node(node_id).is_done:
        return []
    out: list[str] = []
    seen: set[str] = set()
    for successor, _ in graph.successors_of(node_id):
        if successor.id in seen:
            continue
        seen.add(successor.id)
        out.append(successor.title)
    return out


def blocked_others(
    graph: GraphModel,
    node_id: str,
    user_id: str,
    policy: RelationPolicy = DEFAULT_POLICY,
) -> list[WorkNode]:
    """Successors owned by someone other than ``user_id`` that this node holds up.

    The node must be owned by the user and not DONE. Only relations in
    ``policy.blocks_others`` count; unowned successors never count.
    """
    node = graph.node(node_id)
    if node.is_done or user_id not in node.owners:
        return []
    out: list[WorkNode] = []
    seen: set[str] = set()
    for successor, relation in graph.successors_of(node_id):
        if relation not in policy.blocks_others or successor.id in seen:
            continue
        if successor.owners and user_id not in successor.owners:
            seen.add(successor.id)
            out.append(successor)
    return out


def blocks_others(
    graph: GraphModel,
    node_id: str,
    user_id: str,
    policy: RelationPolicy = DEFAULT_POLICY,
) -> bool:
    return bool(blocked_others(graph, node_id, user_id, policy))


def blocks_count(graph: GraphModel, node_id: str, policy: RelationPolicy = DEFAULT_POLICY) -> int:
    """One-hop impact badge: distinct successors via blocking relations."""
    return len(
        {s.id for s, relation in graph.successors_of(node_id) if relation in policy.blocks_others}
    )


def waiting_reason(
    graph: GraphModel,
    statuses: dict[str, ComputedStatus],
    node_id: str,
    policy: RelationPolicy = DEFAULT_POLICY,
) -> tuple[str, list[str]]:
    """Explain a BLOCKED/WAITING node: (reason, sorted owner ids responsible)."""
    status = statuses.get(node_id)
    incomplete = [(p, rel) for p, rel in graph.precursors_of(node_id) if not p.is_done]

    if status == "BLOCKED":
        culprits = [p for p, rel in incomplete if policy.severity_of(rel) == "hard"]
        count = len({p.id for p in culprits})
        reason = f"Blocked by {count} task{'s' if count != 1 else ''}"
    elif status == "WAITING":
        culprits = [p for p, rel in incomplete if policy.severity_of(rel) == "soft"]
        relations = {rel for p, rel in incomplete if policy.severity_of(rel) == "soft"}
        if relations == {"APPROVAL_BY"}:
            reason = "Waiting for approval"
        elif relations == {"NEEDS_INFO_FROM"}:
            reason = "Waiting for information"
        else:
            reason = "Waiting for input"
    else:
        return "", []

    responsible: set[str] = set()
    for p in culprits:
        responsible.update(p.owners)
    return reason, sorted(responsible)


def analyze_blocking(
    graph: GraphModel,
    statuses: dict[str, ComputedStatus],
    policy: RelationPolicy = DEFAULT_POLICY,
) -> dict[str, BlockingInfo]:
    return {
        node.id: BlockingInfo(
            node_id=node.id,
            blocked_by=blocked_by(graph, statuses, node.id),
            blocking=blocking(graph, node.id),
            blocks_count=blocks_count(graph, node.id, policy),
        )
        for node in graph.nodes
    }
