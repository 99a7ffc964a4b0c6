from pathlib import Path

import pytest
import yaml

from workgraph.core.errors import GraphLoadError
from workgraph.core.io.load_graph import dump_graph, load_graph, read_document

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def test_load_yaml_success():
    graph = load_graph(str(EXAMPLES / "basic-graph.yaml"))
    assert graph["schema_version"] == "0.1.0"
    assert graph["project_id"] == "launch"
    assert isinstance(graph["nodes"], list)
    assert len(graph["edges"]) == 7


def test_load_missing_file():
    try:
        load_graph(str(EXAMPLES / "does-not-exist.yaml"))
        assert False, "expected GraphLoadError"
    except GraphLoadError as e:
        assert e.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "graph.txt"
    p.write_text("hello", encoding="utf-8")
    try:
        load_graph(str(p))
        assert False, "expected GraphLoadError"
    except GraphLoadError as e:
        assert e.code == "E_UNSUPPORTED_FORMAT"


def test_load_bad_json(tmp_path):
    p = tmp_path / "graph.json"
    p.write_text("{not json", encoding="utf-8")
    try:
        load_graph(str(p))
        assert False, "expected GraphLoadError"
    except GraphLoadError as e:
        assert e.code == "E_JSON_PARSE"


def test_dump_json_roundtrip_drops_private_keys(tmp_path):
    graph = load_graph(str(EXAMPLES / "cycle-graph.yaml"))
    out = tmp_path / "nested" / "cycle.json"
    dump_graph(graph, str(out))
    again = load_graph(str(out))
    assert again["nodes"] == graph["nodes"]
    assert "__file__" not in out.read_text(encoding="utf-8")


def test_load_keeps_unknown_top_level_keys(tmp_path):
    p = tmp_path / "graph.yaml"
    p.write_text('schema_version: "0.1.0"\nname: Launch plan\nnodes: []\n', encoding="utf-8")
    graph = load_graph(str(p))
    assert graph["name"] == "Launch plan"
    assert graph["edges"] == []
    assert graph["__file__"] == str(p)
    assert "__file__" not in read_document(p)


def test_load_bad_yaml_timestamp(tmp_path):
    p = tmp_path / "graph.yaml"
    p.write_text("schema_version: '0.1.0'\nnodes:\n  - {id: A, title: A, due_at: 2026-13-01}\n", encoding="utf-8")
    with pytest.raises(GraphLoadError) as exc:
        load_graph(str(p))
    assert exc.value.code == "E_YAML_PARSE"


def test_failed_dump_leaves_previous_file(tmp_path):
    p = tmp_path / "graph.yaml"
    p.write_text("schema_version: '0.1.0'\nnodes: []\n", encoding="utf-8")
    with pytest.raises(yaml.YAMLError):
        dump_graph({"schema_version": "0.1.0", "nodes": [object()]}, str(p))
    assert p.read_text(encoding="utf-8") == "schema_version: '0.1.0'\nnodes: []\n"
    assert sorted(x.name for x in tmp_path.iterdir()) == ["graph.yaml"]


def test_error_envelope_to_dict():
    e = GraphLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file="g.yaml")
    assert str(e) == "g.yaml: E_FILE_NOT_FOUND: file does not exist"
    assert e.to_dict() == {
        "code": "E_FILE_NOT_FOUND",
        "message": "file does not exist",
        "file": "g.yaml",
        "path": None,
        "severity": "error",
        "source": "load",
    }
