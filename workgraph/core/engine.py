from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from workgraph.core.actions.classify import ActionBuckets, action_buckets
from workgraph.core.graph.graph_model import GraphModel
from workgraph.core.model import ComputedStatus, WorkEdge, WorkNode
from workgraph.core.status.blocking import BlockingInfo, analyze_blocking
from workgraph.core.status.policy import DEFAULT_POLICY, RelationPolicy
from workgraph.core.status.status_engine import compute_statuses


@dataclass(frozen=True)
class GraphEvaluation:
    graph: GraphModel
    policy: RelationPolicy
    statuses: dict[str, ComputedStatus]
    blocking: dict[str, BlockingInfo]

    def buckets_for(self, user_id: str) -> ActionBuckets:
        return action_buckets(self.graph, self.statuses, user_id, self.policy)


def evaluate(
    nodes: Iterable[WorkNode],
    edges: Iterable[WorkEdge],
    policy: RelationPolicy = DEFAULT_POLICY,
) -> GraphEvaluation:
    """Build the graph once and run status + blocking analysis over it."""
    graph = GraphModel.build(nodes, edges)
    statuses = compute_statuses(graph, policy)
    return GraphEvaluation(
        graph=graph,
        policy=policy,
        statuses=statuses,
        blocking=analyze_blocking(graph, statuses, policy),
    )
