from __future__ import annotations

from collections import Counter
from typing import Any, Optional, Sequence

from workgraph.core.errors import GraphError, GraphValidationError
from workgraph.core.graph.graph_model import PRECURSOR_SIDE


# Graph lint rules. All findings are warnings: cycles and dangling edges are
# legal states the engine tolerates, lint just surfaces them.
# - L_DANGLING_EDGE: edge endpoint does not exist (edge is ignored by the engine)
# - L_SELF_LOOP: node depends on itself (permanently BLOCKED/WAITING until DONE)
# - L_DUPLICATE_EDGE: same (from, to, relation) stored more than once
# - L_TASK_MISSING_OWNER: open TASK nodes should have at least one owner
# - L_CYCLE_DETECTED: precursor cycle (mutual blocking)


def lint_graph(snapshot: dict[str, Any]) -> list[GraphValidationError]:
    """Lint a graph snapshot.

    Lint runs *in addition to* validation and works on partially-invalid input
    (best effort). The CLI prints lint + validation findings together.
    """

    file = _cast_optional_str(snapshot.get("__file__"))

    nodes = snapshot.get("nodes")
    if not isinstance(nodes, list):
        # Let validator handle shape.
        return []
    edges = snapshot.get("edges")
    if not isinstance(edges, list):
        edges = []

    id_to_index: dict[str, int] = {}
    id_to_raw: dict[str, dict[str, Any]] = {}
    for i, raw in enumerate(nodes):
        if not isinstance(raw, dict):
            continue
        nid = raw.get("id")
        if not isinstance(nid, str):
            continue
        id_to_index.setdefault(nid, i)
        id_to_raw.setdefault(nid, raw)

    errors: list[GraphValidationError] = []

    def warn(code: str, message: str, path: str) -> None:
        errors.append(
            GraphValidationError(
                code=code, message=message, file=file, path=path, severity="warning"
            )
        )

    # Rule: open tasks must have owners
    for nid, raw in id_to_raw.items():
        if raw.get("type", "TASK") != "TASK" or raw.get("manual_status") == "DONE":
            continue
        owners = raw.get("owners")
        if not isinstance(owners, list) or not [o for o in owners if isinstance(o, str) and o]:
            warn(
                "L_TASK_MISSING_OWNER",
                "open task has no owners",
                f"nodes[{id_to_index[nid]}].owners",
            )

    # Edge rules; also build precursor lists for cycle detection.
    id_to_precursors: dict[str, list[str]] = {nid: [] for nid in id_to_raw}
    edge_keys: list[tuple[str, str, str]] = []
    for i, raw in enumerate(edges):
        if not isinstance(raw, dict):
            continue
        src, dst, rel = raw.get("from_node_id"), raw.get("to_node_id"), raw.get("relation")
        if not isinstance(src, str) or not isinstance(dst, str) or not isinstance(rel, str):
            continue

        missing = [x for x in (src, dst) if x not in id_to_raw]
        if missing:
            warn(
                "L_DANGLING_EDGE",
                f"edge references unknown node(s) {missing}; it will be ignored",
                f"edges[{i}]",
            )
            continue

        if src == dst:
            warn("L_SELF_LOOP", f"node {src} is linked to itself via {rel}", f"edges[{i}]")

        key = (src, dst, rel)
        if key in edge_keys:
            warn("L_DUPLICATE_EDGE", f"duplicate {rel} edge {src} -> {dst}", f"edges[{i}]")
        edge_keys.append(key)

        precursor, successor = (src, dst) if PRECURSOR_SIDE.get(rel) == "from" else (dst, src)
        if precursor != successor:
            id_to_precursors[successor].append(precursor)

    # Rule: cycle detection
    for nid, msg in _detect_cycles(id_to_precursors):
        warn("L_CYCLE_DETECTED", msg, f"nodes[{id_to_index.get(nid, 0)}].id")

    return _sorted(errors)


def _detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {nid: WHITE for nid in id_to_deps.keys()}
    stack: list[str] = []
    emitted: set[frozenset[str]] = set()
    out: list[tuple[str, str]] = []

    def dfs(u: str) -> None:
        state[u] = GRAY
        stack.append(u)
        for v in id_to_deps.get(u, []):
            if v not in state:
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                idx = stack.index(v)
                cycle = stack[idx:] + [v]
                key = frozenset(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "blocking cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                dfs(v)
        stack.pop()
        state[u] = BLACK

    for nid in list(state.keys()):
        if state[nid] == WHITE:
            dfs(nid)

    return out


def severity_counts(findings: Sequence[GraphError]) -> dict[str, int]:
    counts = Counter(e.severity for e in findings)
    return {"error": counts.get("error", 0), "warning": counts.get("warning", 0)}


def _sorted(errors: list[GraphValidationError]) -> list[GraphValidationError]:
    return sorted(errors, key=lambda e: e.sort_key)


def _cast_optional_str(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None
