from __future__ import annotations

from workgraph.core.graph.graph_model import GraphModel
from workgraph.core.model import ComputedStatus
from workgraph.core.status.policy import DEFAULT_POLICY, RelationPolicy


def compute_status(
    graph: GraphModel, node_id: str, policy: RelationPolicy = DEFAULT_POLICY
) -> ComputedStatus:
    """Derive one node's execution state from its direct precursors.

    Only the precursors' *manual* status is consulted, so no ordering or cycle
    handling is required: mutually dependent nodes simply block each other.
    Priority: DONE (manual) > BLOCKED > WAITING > manual TODO/DOING.
    """
    node = graph.node(node_id)
    if node.is_done:
        return "DONE"

    waiting = False
    for precursor, relation in graph.precursors_of(node_id):
        if precursor.is_done:
            continue
        severity = policy.severity_of(relation)
        if severity == "hard":
            return "BLOCKED"
        if severity == "soft":
            waiting = True

    if waiting:
        return "WAITING"
    return node.manual_status


def compute_statuses(
    graph: GraphModel, policy: RelationPolicy = DEFAULT_POLICY
) -> dict[str, ComputedStatus]:
    """Compute statuses for every node in the graph, keyed by node id in snapshot order."""
    return {node.id: compute_status(graph, node.id, policy) for node in graph.nodes}
