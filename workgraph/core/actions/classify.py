from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, cast

from workgraph.core.graph.graph_model import GraphModel
from workgraph.core.model import COMPUTED_STATUSES, ComputedStatus, WorkNode
from workgraph.core.status.blocking import blocked_others, blocks_count, waiting_reason
from workgraph.core.status.policy import DEFAULT_POLICY, RelationPolicy


@dataclass(frozen=True)
class ActionItem:
    node: WorkNode
    computed_status: ComputedStatus
    reason: str = ""
    responsible: list[str] = field(default_factory=list)
    blocked_node_ids: list[str] = field(default_factory=list)

    @property
    def blocked_count(self) -> int:
        return len(self.blocked_node_ids)

    def to_dict(self) -> dict[str, Any]:
        n = self.node
        return {
            "id": n.id,
            "title": n.title,
            "type": n.type,
            "manual_status": n.manual_status,
            "computed_status": self.computed_status,
            "owners": sorted(n.owners),
            "due_at": n.due_at.isoformat() if n.due_at else None,
            "reason": self.reason or None,
            "responsible": list(self.responsible),
            "blocked_node_ids": list(self.blocked_node_ids),
            "blocked_count": self.blocked_count,
        }


@dataclass(frozen=True)
class ActionBuckets:
    user_id: str
    actionable: list[ActionItem]
    waiting: list[ActionItem]
    blocking: list[ActionItem]

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "actionable": [i.to_dict() for i in self.actionable],
            "waiting": [i.to_dict() for i in self.waiting],
            "blocking": [i.to_dict() for i in self.blocking],
        }


def _due_key(due: datetime) -> datetime:
    # Nodes built in code may carry naive datetimes; read them as UTC like the validator does.
    return due if due.tzinfo is not None else due.replace(tzinfo=timezone.utc)


def _ordered(items: list[ActionItem]) -> list[ActionItem]:
    # Due date ascending with undated last, then title, then id.
    dated = sorted(
        [i for i in items if i.node.due_at is not None],
        key=lambda i: (_due_key(cast(datetime, i.node.due_at)), i.node.title, i.node.id),
    )
    undated = sorted(
        [i for i in items if i.node.due_at is None], key=lambda i: (i.node.title, i.node.id)
    )
    return dated + undated


def action_buckets(
    graph: GraphModel,
    statuses: dict[str, ComputedStatus],
    user_id: str,
    policy: RelationPolicy = DEFAULT_POLICY,
) -> ActionBuckets:
    """Split the user's nodes into Do Now / Waiting / Blocking-Others queues.

    A node can sit in both Waiting and Blocking: it is stuck itself while holding up
    someone else's work.
    """
    actionable: list[ActionItem] = []
    waiting: list[ActionItem] = []
    blocking_items: list[ActionItem] = []

    for node in graph.nodes:
        if user_id not in node.owners:
            continue
        status = statuses[node.id]

        if status in ("BLOCKED", "WAITING"):
            reason, responsible = waiting_reason(graph, statuses, node.id, policy)
            waiting.append(
                ActionItem(
                    node=node, computed_status=status, reason=reason, responsible=responsible
                )
            )
        elif node.manual_status in ("TODO", "DOING"):
            actionable.append(ActionItem(node=node, computed_status=status))

        held_up = blocked_others(graph, node.id, user_id, policy)
        if held_up:
            blocking_items.append(
                ActionItem(
                    node=node,
                    computed_status=status,
                    blocked_node_ids=[m.id for m in held_up],
                )
            )

    return ActionBuckets(
        user_id=user_id,
        actionable=_ordered(actionable),
        waiting=_ordered(waiting),
        blocking=_ordered(blocking_items),
    )


def filter_nodes(
    graph: GraphModel,
    statuses: dict[str, ComputedStatus],
    status: str = "ALL",
    query: str = "",
) -> list[WorkNode]:
    """Canvas-style filter: computed status (or ALL) plus case-insensitive title search."""
    needle = query.strip().lower()
    out: list[WorkNode] = []
    for node in graph.nodes:
        if status != "ALL" and statuses.get(node.id) != status:
            continue
        if needle and needle not in node.title.lower():
            continue
        out.append(node)
    return out


def summarize_statuses(
    graph: GraphModel,
    statuses: dict[str, ComputedStatus],
    policy: RelationPolicy = DEFAULT_POLICY,
) -> dict[str, Any]:
    """Project monitor numbers: per-status counts, ready-to-start and bottleneck counts."""
    counts = Counter(statuses.values())
    actionable = sum(
        1
        for node in graph.nodes
        if node.manual_status in ("TODO", "DOING")
        and statuses[node.id] not in ("BLOCKED", "WAITING")
    )
    bottlenecks = sum(1 for node in graph.nodes if blocks_count(graph, node.id, policy) > 0)
    return {
        "node_count": len(graph),
        "edge_count": len(graph.edges),
        "dropped_edge_count": len(graph.dropped_edges),
        "status_counts": {s: int(counts.get(s, 0)) for s in COMPUTED_STATUSES},
        "actionable_count": actionable,
        "bottleneck_count": bottlenecks,
    }
