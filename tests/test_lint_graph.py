from pathlib import Path

from workgraph.core.io.load_graph import load_graph
from workgraph.core.lint.lint_graph import lint_graph, severity_counts

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _codes(findings):
    return [f.code for f in findings]


def test_lint_basic_flags_dangling_edge_only():
    findings = lint_graph(load_graph(str(EXAMPLES / "basic-graph.yaml")))
    assert _codes(findings) == ["L_DANGLING_EDGE"]
    assert findings[0].path == "edges[6]"
    assert findings[0].severity == "warning"


def test_lint_cycle_and_self_loop():
    findings = lint_graph(load_graph(str(EXAMPLES / "cycle-graph.yaml")))
    codes = set(_codes(findings))
    assert "L_SELF_LOOP" in codes
    assert "L_CYCLE_DETECTED" in codes
    cycle = [f for f in findings if f.code == "L_CYCLE_DETECTED"]
    assert len(cycle) == 1
    assert cycle[0].message.startswith("blocking cycle detected:")


def test_lint_missing_owner_and_duplicate_edge():
    raw = {
        "__file__": "inline.yaml",
        "nodes": [
            {"id": "A", "title": "A", "owners": ["x"]},
            {"id": "B", "title": "B"},
            {"id": "C", "title": "C", "manual_status": "DONE"},
            {"id": "D", "title": "D", "type": "DECISION"},
        ],
        "edges": [
            {"id": "E1", "from_node_id": "B", "to_node_id": "A", "relation": "DEPENDS_ON"},
            {"id": "E2", "from_node_id": "B", "to_node_id": "A", "relation": "DEPENDS_ON"},
        ],
    }
    findings = lint_graph(raw)
    assert sorted(_codes(findings)) == ["L_DUPLICATE_EDGE", "L_TASK_MISSING_OWNER"]
    missing = [f for f in findings if f.code == "L_TASK_MISSING_OWNER"][0]
    assert missing.path == "nodes[1].owners"
    assert missing.file == "inline.yaml"


def test_lint_handoff_direction_in_cycles():
    # A hands off to B and A depends on B: B -> A and A -> B.
    raw = {
        "nodes": [{"id": "A", "title": "A", "owners": ["x"]}, {"id": "B", "title": "B", "owners": ["y"]}],
        "edges": [
            {"id": "E1", "from_node_id": "A", "to_node_id": "B", "relation": "HANDOFF_TO"},
            {"id": "E2", "from_node_id": "A", "to_node_id": "B", "relation": "DEPENDS_ON"},
        ],
    }
    assert _codes(lint_graph(raw)) == ["L_CYCLE_DETECTED"]


def test_lint_tolerates_bad_shape():
    assert lint_graph({"nodes": "nope"}) == []


def test_severity_counts():
    findings = lint_graph(load_graph(str(EXAMPLES / "cycle-graph.yaml")))
    counts = severity_counts(findings)
    assert counts["error"] == 0
    assert counts["warning"] == len(findings)
