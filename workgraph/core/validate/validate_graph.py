from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Optional, cast

from workgraph.core.errors import GraphValidationError
from workgraph.core.model import (
    EDGE_RELATIONS,
    MANUAL_STATUSES,
    NODE_TYPES,
    EdgeRelation,
    ManualStatus,
    NodeType,
    Position,
    Snapshot,
    WorkEdge,
    WorkNode,
)


def _is_list_of_str(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def parse_due_at(v: Any) -> Optional[datetime]:
    """Coerce a YAML/JSON due date into an aware datetime (UTC when no offset is given).

    Raises ValueError for unparseable values.
    """
    if v is None:
        return None
    if isinstance(v, datetime):
        dt = v
    elif isinstance(v, date):
        dt = datetime.combine(v, time.min)
    elif isinstance(v, str) and v.strip():
        s = v.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    else:
        raise ValueError(f"not a timestamp: {v!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def validate_graph(
    snapshot: dict[str, Any],
) -> tuple[Optional[Snapshot], list[GraphValidationError]]:
    """Validate a graph snapshot and build typed nodes/edges.

    Returns (snapshot, errors). Snapshot is None when errors exist.
    Edges whose endpoints are missing are NOT errors here; GraphModel drops them.
    """

    file = cast(Optional[str], snapshot.get("__file__"))
    errors: list[GraphValidationError] = []

    schema_version = snapshot.get("schema_version")
    if not isinstance(schema_version, str) or not schema_version.strip():
        errors.append(
            GraphValidationError(
                code="E_REQUIRED_FIELD",
                message="schema_version is required and must be a non-empty string",
                file=file,
                path="schema_version",
            )
        )

    project_id = snapshot.get("project_id")
    if project_id is not None and not isinstance(project_id, str):
        errors.append(
            GraphValidationError(
                code="E_INVALID_TYPE",
                message="project_id must be a string",
                file=file,
                path="project_id",
            )
        )

    raw_nodes = snapshot.get("nodes")
    if not isinstance(raw_nodes, list):
        errors.append(
            GraphValidationError(
                code="E_REQUIRED_FIELD",
                message="nodes is required and must be an array",
                file=file,
                path="nodes",
            )
        )
        return None, _sorted(errors)

    raw_edges = snapshot.get("edges")
    if raw_edges is None:
        raw_edges = []
    if not isinstance(raw_edges, list):
        errors.append(
            GraphValidationError(
                code="E_INVALID_TYPE",
                message="edges must be an array",
                file=file,
                path="edges",
            )
        )
        raw_edges = []

    nodes: list[WorkNode] = []
    seen_ids: set[str] = set()
    for i, raw in enumerate(raw_nodes):
        node, node_errors = _validate_node(raw, i, file, seen_ids)
        errors.extend(node_errors)
        if node is not None:
            seen_ids.add(node.id)
            nodes.append(node)

    edges: list[WorkEdge] = []
    seen_edge_ids: set[str] = set()
    for i, raw in enumerate(raw_edges):
        edge, edge_errors = _validate_edge(raw, i, file, seen_edge_ids)
        errors.extend(edge_errors)
        if edge is not None:
            seen_edge_ids.add(edge.id)
            edges.append(edge)

    if errors:
        return None, _sorted(errors)

    return (
        Snapshot(
            schema_version=cast(str, schema_version),
            project_id=cast(Optional[str], project_id),
            nodes=nodes,
            edges=edges,
        ),
        [],
    )


def _validate_node(
    raw: Any, index: int, file: Optional[str], seen_ids: set[str]
) -> tuple[Optional[WorkNode], list[GraphValidationError]]:
    node_path = f"nodes[{index}]"

    def err(code: str, message: str, field: str | None = None) -> GraphValidationError:
        return GraphValidationError(
            code=code,
            message=message,
            file=file,
            path=f"{node_path}.{field}" if field else node_path,
        )

    if not isinstance(raw, dict):
        return None, [err("E_INVALID_TYPE", "node must be an object")]

    nid = raw.get("id")
    if not isinstance(nid, str) or not nid.strip():
        return None, [err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", "id")]
    if nid in seen_ids:
        return None, [err("E_DUPLICATE_ID", f"duplicate node id: {nid}", "id")]

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        return None, [
            err("E_REQUIRED_FIELD", "title is required and must be a non-empty string", "title")
        ]

    errors: list[GraphValidationError] = []

    ntype = raw.get("type", "TASK")
    if not isinstance(ntype, str) or ntype not in NODE_TYPES:
        errors.append(err("E_INVALID_ENUM", f"type must be one of {list(NODE_TYPES)}", "type"))

    manual = raw.get("manual_status", "TODO")
    if not isinstance(manual, str) or manual not in MANUAL_STATUSES:
        errors.append(
            err(
                "E_INVALID_ENUM",
                f"manual_status must be one of {list(MANUAL_STATUSES)}",
                "manual_status",
            )
        )

    owners = raw.get("owners") or []
    if not _is_list_of_str(owners):
        errors.append(err("E_INVALID_TYPE", "owners must be an array of strings", "owners"))

    teams = raw.get("teams") or []
    if not _is_list_of_str(teams):
        errors.append(err("E_INVALID_TYPE", "teams must be an array of strings", "teams"))

    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        errors.append(err("E_INVALID_TYPE", "description must be a string", "description"))

    due_at: Optional[datetime] = None
    try:
        due_at = parse_due_at(raw.get("due_at"))
    except ValueError:
        errors.append(err("E_INVALID_TYPE", "due_at must be an ISO-8601 timestamp", "due_at"))

    position: Optional[Position] = None
    raw_pos = raw.get("position")
    if raw_pos is not None:
        if (
            isinstance(raw_pos, dict)
            and _is_number(raw_pos.get("x"))
            and _is_number(raw_pos.get("y"))
        ):
            position = Position(x=float(raw_pos["x"]), y=float(raw_pos["y"]))
        else:
            errors.append(
                err("E_INVALID_TYPE", "position must be an object with numeric x and y", "position")
            )

    if errors:
        return None, errors

    return (
        WorkNode(
            id=nid,
            title=title,
            type=cast(NodeType, ntype),
            manual_status=cast(ManualStatus, manual),
            owners=frozenset(owners),
            teams=frozenset(teams),
            description=description,
            due_at=due_at,
            position=position,
            created_index=index,
        ),
        [],
    )


def _validate_edge(
    raw: Any, index: int, file: Optional[str], seen_ids: set[str]
) -> tuple[Optional[WorkEdge], list[GraphValidationError]]:
    edge_path = f"edges[{index}]"

    def err(code: str, message: str, field: str | None = None) -> GraphValidationError:
        return GraphValidationError(
            code=code,
            message=message,
            file=file,
            path=f"{edge_path}.{field}" if field else edge_path,
        )

    if not isinstance(raw, dict):
        return None, [err("E_INVALID_TYPE", "edge must be an object")]

    errors: list[GraphValidationError] = []

    eid = raw.get("id")
    if not isinstance(eid, str) or not eid.strip():
        errors.append(err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", "id"))
    elif eid in seen_ids:
        errors.append(err("E_DUPLICATE_ID", f"duplicate edge id: {eid}", "id"))

    for key in ("from_node_id", "to_node_id"):
        v = raw.get(key)
        if not isinstance(v, str) or not v.strip():
            errors.append(
                err("E_REQUIRED_FIELD", f"{key} is required and must be a non-empty string", key)
            )

    relation = raw.get("relation")
    if not isinstance(relation, str) or relation not in EDGE_RELATIONS:
        errors.append(
            err("E_INVALID_ENUM", f"relation must be one of {list(EDGE_RELATIONS)}", "relation")
        )

    if errors:
        return None, errors

    return (
        WorkEdge(
            id=cast(str, eid),
            from_node_id=raw["from_node_id"],
            to_node_id=raw["to_node_id"],
            relation=cast(EdgeRelation, relation),
        ),
        [],
    )


def summarize_graph(snapshot: Snapshot) -> str:
    counts = Counter([n.type for n in snapshot.nodes])
    parts = [f"{t}={counts.get(t, 0)}" for t in NODE_TYPES]
    return f"OK: {len(snapshot.nodes)} nodes (" + ", ".join(parts) + f"), {len(snapshot.edges)} edges"


def _sorted(errors: Iterable[GraphValidationError]) -> list[GraphValidationError]:
    return sorted(errors, key=lambda e: e.sort_key)
