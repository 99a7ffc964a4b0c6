from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional


NodeType = Literal["TASK", "DECISION", "BLOCKER", "INFOREQ"]
ManualStatus = Literal["TODO", "DOING", "DONE"]
ComputedStatus = Literal["TODO", "DOING", "WAITING", "BLOCKED", "DONE"]
EdgeRelation = Literal["DEPENDS_ON", "HANDOFF_TO", "NEEDS_INFO_FROM", "APPROVAL_BY"]

NODE_TYPES: tuple[str, ...] = ("TASK", "DECISION", "BLOCKER", "INFOREQ")
MANUAL_STATUSES: tuple[str, ...] = ("TODO", "DOING", "DONE")
COMPUTED_STATUSES: tuple[str, ...] = ("TODO", "DOING", "WAITING", "BLOCKED", "DONE")
EDGE_RELATIONS: tuple[str, ...] = ("DEPENDS_ON", "HANDOFF_TO", "NEEDS_INFO_FROM", "APPROVAL_BY")


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class WorkNode:
    id: str
    title: str
    type: NodeType = "TASK"
    manual_status: ManualStatus = "TODO"
    owners: frozenset[str] = field(default_factory=frozenset)
    teams: frozenset[str] = field(default_factory=frozenset)

    description: Optional[str] = None
    due_at: Optional[datetime] = None
    position: Optional[Position] = None
    created_index: int = 0

    @property
    def is_done(self) -> bool:
        return self.manual_status == "DONE"


@dataclass(frozen=True)
class WorkEdge:
    id: str
    from_node_id: str
    to_node_id: str
    relation: EdgeRelation


@dataclass(frozen=True)
class NodePosition:
    node_id: str
    x: float
    y: float


@dataclass(frozen=True)
class Snapshot:
    schema_version: str
    project_id: Optional[str]
    nodes: list[WorkNode]
    edges: list[WorkEdge]
