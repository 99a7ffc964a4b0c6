from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from workgraph.core.graph.graph_model import GraphModel
from workgraph.core.model import NodePosition


@dataclass(frozen=True)
class GridOptions:
    columns: int = 5
    node_width: float = 240
    node_height: float = 120
    x_gap: float = 100
    y_gap: float = 80


def compute_layers(graph: GraphModel) -> dict[str, int]:
    """Longest-path layer from precursor-less nodes.

    layer(N) = 0 without precursors, else 1 + max(layer(P)). A precursor that is
    still on the DFS stack closes a cycle and is skipped; if every precursor of a
    node was skipped, the node takes the lowest layer among its already-resolved
    neighbours (0 when there are none).
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {n.id: WHITE for n in graph.nodes}
    layers: dict[str, int] = {}

    def finish(frame: _Frame) -> None:
        u = frame.node_id
        if frame.resolved:
            layers[u] = 1 + max(frame.resolved)
        elif frame.cyclic:
            known = [layers[v] for v in graph.successor_ids(u) if v in layers]
            layers[u] = min(known) if known else 0
        else:
            layers[u] = 0
        state[u] = BLACK

    # Explicit stack: long chains must not hit the interpreter recursion limit.
    for root in graph.nodes:
        if state[root.id] != WHITE:
            continue
        state[root.id] = GRAY
        stack = [_Frame(root.id, iter(graph.precursor_ids(root.id)))]
        while stack:
            frame = stack[-1]
            if frame.pending is not None:
                frame.resolved.append(layers[frame.pending])
                frame.pending = None
            for p in frame.precursors:
                if state[p] == WHITE:
                    state[p] = GRAY
                    frame.pending = p
                    stack.append(_Frame(p, iter(graph.precursor_ids(p))))
                    break
                if state[p] == GRAY:
                    frame.cyclic = True
                else:
                    frame.resolved.append(layers[p])
            else:
                finish(stack.pop())
    return layers


@dataclass
class _Frame:
    node_id: str
    precursors: Iterator[str]
    resolved: list[int] = field(default_factory=list)
    cyclic: bool = False
    pending: Optional[str] = None


def grid_layout(graph: GraphModel, options: GridOptions | None = None) -> list[NodePosition]:
    """Pack nodes row-major by (layer, creation order, id) into fixed-size cells."""
    opts = options or GridOptions()
    layers = compute_layers(graph)
    ordered = sorted(graph.nodes, key=lambda n: (layers[n.id], n.created_index, n.id))

    cell_w = opts.node_width + opts.x_gap
    cell_h = opts.node_height + opts.y_gap
    by_id: dict[str, NodePosition] = {}
    for i, node in enumerate(ordered):
        row, col = divmod(i, opts.columns)
        by_id[node.id] = NodePosition(node_id=node.id, x=col * cell_w, y=row * cell_h)
    return [by_id[n.id] for n in graph.nodes]
