from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from workgraph.core.errors import GraphValidationError, PersistenceError
from workgraph.core.io.load_graph import dump_graph, load_graph, read_document
from workgraph.core.model import NodePosition, Snapshot, WorkEdge, WorkNode
from workgraph.core.validate.validate_graph import validate_graph


class GraphStore(Protocol):
    def list_nodes(self, project_id: str) -> list[WorkNode]: ...

    def list_edges(self, project_id: str) -> list[WorkEdge]: ...

    def save_positions(self, project_id: str, positions: list[NodePosition]) -> None: ...


class FileGraphStore:
    """One snapshot file per project: <root>/<project_id>.yaml|.yml|.json."""

    SUFFIXES = (".yaml", ".yml", ".json")

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def path_for(self, project_id: str) -> Path:
        for suffix in self.SUFFIXES:
            p = self._root / f"{project_id}{suffix}"
            if p.exists():
                return p
        return self._root / f"{project_id}.yaml"

    def load_snapshot(self, project_id: str) -> Snapshot:
        raw = load_graph(str(self.path_for(project_id)))
        snapshot, errors = validate_graph(raw)
        if errors or snapshot is None:
            raise errors[0]
        return snapshot

    def list_nodes(self, project_id: str) -> list[WorkNode]:
        return self.load_snapshot(project_id).nodes

    def list_edges(self, project_id: str) -> list[WorkEdge]:
        return self.load_snapshot(project_id).edges

    def save_positions(self, project_id: str, positions: list[NodePosition]) -> None:
        """Write all positions or none.

        Only ``nodes[].position`` changes; every other key of the document is written back as read.
        """
        path = self.path_for(project_id)
        raw = read_document(path)
        nodes = raw.get("nodes")
        if not isinstance(nodes, list):
            raise GraphValidationError(
                code="E_REQUIRED_FIELD",
                message="nodes is required and must be an array",
                file=str(path),
                path="nodes",
            )

        by_id: dict[str, dict[str, Any]] = {
            n["id"]: n for n in nodes if isinstance(n, dict) and isinstance(n.get("id"), str)
        }
        missing = sorted({p.node_id for p in positions} - set(by_id))
        if missing:
            raise PersistenceError(
                code="E_UNKNOWN_NODE",
                message=f"cannot save positions for unknown node ids: {missing}",
                file=str(path),
                path="positions",
            )

        for p in positions:
            by_id[p.node_id]["position"] = {"x": p.x, "y": p.y}
        dump_graph(raw, str(path))
