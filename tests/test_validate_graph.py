from datetime import datetime, timezone
from pathlib import Path

from workgraph.core.io.load_graph import load_graph
from workgraph.core.model import Position
from workgraph.core.validate.validate_graph import summarize_graph, validate_graph

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def test_validate_happy_path():
    snapshot, errors = validate_graph(load_graph(str(EXAMPLES / "basic-graph.yaml")))
    assert errors == []
    assert snapshot is not None
    assert [n.id for n in snapshot.nodes] == ["A", "B", "C", "D", "F", "G", "H", "I"]

    by_id = {n.id: n for n in snapshot.nodes}
    assert by_id["A"].owners == frozenset({"alice"})
    assert by_id["B"].type == "TASK"
    assert by_id["C"].type == "DECISION"
    assert by_id["F"].position == Position(x=40.0, y=80.0)
    assert by_id["F"].created_index == 4
    # Bare dates and Z suffixes both become aware UTC datetimes.
    assert by_id["F"].due_at == datetime(2026, 1, 10, tzinfo=timezone.utc)
    assert by_id["D"].due_at == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_validate_keeps_dangling_edges_for_graph_model():
    snapshot, errors = validate_graph(load_graph(str(EXAMPLES / "basic-graph.yaml")))
    assert errors == []
    assert snapshot is not None
    assert any(e.to_node_id == "GONE" for e in snapshot.edges)


def test_validate_bad_enums():
    snapshot, errors = validate_graph(load_graph(str(EXAMPLES / "invalid-bad-enum.yaml")))
    assert snapshot is None
    paths = {(e.code, e.path) for e in errors}
    assert ("E_INVALID_ENUM", "nodes[0].manual_status") in paths
    assert ("E_INVALID_ENUM", "edges[0].relation") in paths


def test_validate_duplicate_node_id():
    raw = {
        "schema_version": "0.1.0",
        "nodes": [{"id": "A", "title": "x"}, {"id": "A", "title": "y"}],
        "edges": [],
    }
    snapshot, errors = validate_graph(raw)
    assert snapshot is None
    assert [e.code for e in errors] == ["E_DUPLICATE_ID"]


def test_validate_rejects_bad_position_and_due_date():
    raw = {
        "schema_version": "0.1.0",
        "nodes": [{"id": "A", "title": "x", "position": {"x": "1"}, "due_at": "soon"}],
    }
    snapshot, errors = validate_graph(raw)
    assert snapshot is None
    assert {e.path for e in errors} == {"nodes[0].position", "nodes[0].due_at"}


def test_summarize_graph():
    snapshot, _ = validate_graph(load_graph(str(EXAMPLES / "basic-graph.yaml")))
    assert snapshot is not None
    assert summarize_graph(snapshot) == (
        "OK: 8 nodes (TASK=6, DECISION=1, BLOCKER=0, INFOREQ=1), 7 edges"
    )
