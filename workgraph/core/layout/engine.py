from __future__ import annotations

from typing import Literal, Optional, cast

from workgraph.core.errors import LayoutError
from workgraph.core.graph.graph_model import GraphModel
from workgraph.core.layout.grid import GridOptions, grid_layout
from workgraph.core.layout.layered import Direction, LayeredOptions, layered_layout
from workgraph.core.model import NodePosition


LayoutMode = Literal["GRID", "LR", "TB"]
LAYOUT_MODES: tuple[str, ...] = ("GRID", "LR", "TB")


def normalize_mode(mode: str) -> LayoutMode:
    m = (mode or "").strip().upper()
    if m not in LAYOUT_MODES:
        raise LayoutError(
            code="E_LAYOUT_UNKNOWN_MODE",
            message=f"unknown layout mode: {mode} (choose one of: {', '.join(LAYOUT_MODES)})",
            path="mode",
        )
    return cast(LayoutMode, m)


def layout_positions(
    graph: GraphModel,
    mode: str,
    *,
    grid_options: Optional[GridOptions] = None,
    layered_options: Optional[LayeredOptions] = None,
) -> list[NodePosition]:
    """Positions for every node in snapshot order, ignoring saved positions."""
    m = normalize_mode(mode)
    if m == "GRID":
        return grid_layout(graph, grid_options)
    return layered_layout(graph, cast(Direction, m), layered_options)


def place_unpositioned(graph: GraphModel, mode: str) -> list[NodePosition]:
    """Positions only for nodes without a saved one; saved placements are left alone."""
    return [p for p in layout_positions(graph, mode) if graph.node(p.node_id).position is None]


def effective_positions(graph: GraphModel, mode: str) -> list[NodePosition]:
    """Saved positions where present, computed ones elsewhere (initial render)."""
    computed = {p.node_id: p for p in place_unpositioned(graph, mode)}
    out: list[NodePosition] = []
    for node in graph.nodes:
        if node.position is not None:
            out.append(NodePosition(node_id=node.id, x=node.position.x, y=node.position.y))
        else:
            out.append(computed[node.id])
    return out
