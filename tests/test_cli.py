import json
import shutil
from pathlib import Path

from typer.testing import CliRunner

from workgraph.cli import app
from workgraph.core.io.load_graph import load_graph

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"
BASIC = str(EXAMPLES / "basic-graph.yaml")

runner = CliRunner()


def test_cli_validate_success():
    r = runner.invoke(app, ["validate", BASIC])
    assert r.exit_code == 0
    assert "OK: 8 nodes" in r.stdout


def test_cli_validate_json():
    r = runner.invoke(app, ["validate", BASIC, "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["tool"] == "workgraph"
    assert payload["command"] == "validate"
    assert payload["ok"] is True
    assert payload["summary"] == {"project_id": "launch", "node_count": 8, "edge_count": 7}


def test_cli_validate_failure():
    r = runner.invoke(app, ["validate", str(EXAMPLES / "invalid-bad-enum.yaml")])
    assert r.exit_code == 2
    assert "E_INVALID_ENUM" in (r.stdout + r.stderr)


def test_cli_validate_missing_file_json():
    r = runner.invoke(app, ["validate", str(EXAMPLES / "nope.yaml"), "--format", "json"])
    assert r.exit_code == 1
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    assert payload["errors"][0]["code"] == "E_FILE_NOT_FOUND"
    assert payload["errors"][0]["source"] == "load"


def test_cli_unknown_format():
    r = runner.invoke(app, ["validate", BASIC, "--format", "xml"])
    assert r.exit_code == 2
    assert "E_VALIDATE_UNKNOWN_FORMAT" in (r.stdout + r.stderr)


def test_cli_lint_warnings_do_not_fail():
    r = runner.invoke(app, ["lint", BASIC])
    assert r.exit_code == 0
    out = r.stdout + r.stderr
    assert "L_DANGLING_EDGE" in out
    assert "OK: lint passed (1 warning(s))" in out


def test_cli_lint_json_cycle():
    r = runner.invoke(app, ["lint", str(EXAMPLES / "cycle-graph.yaml"), "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["ok"] is True
    codes = {e["code"] for e in payload["errors"]}
    assert {"L_CYCLE_DETECTED", "L_SELF_LOOP"} <= codes
    assert all(e["source"] == "lint" for e in payload["errors"])


def test_cli_lint_validation_errors_fail():
    r = runner.invoke(app, ["lint", str(EXAMPLES / "invalid-bad-enum.yaml")])
    assert r.exit_code == 2


def test_cli_status_text():
    r = runner.invoke(app, ["--verbose", "status", BASIC])
    assert r.exit_code == 0
    assert "D: BLOCKED (TODO) Launch | blocked by: Build API, Security review" in r.stdout
    assert "Summary: TODO=2, DOING=1, WAITING=1, BLOCKED=3, DONE=1" in r.stdout


def test_cli_status_json_filter():
    r = runner.invoke(app, ["status", BASIC, "--status", "BLOCKED", "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert [n["id"] for n in payload["nodes"]] == ["B", "D", "G"]
    assert payload["summary"]["bottleneck_count"] == 3
    a_row = runner.invoke(app, ["status", BASIC, "--query", "draft", "--format", "json"])
    row = json.loads(a_row.stdout)["nodes"][0]
    assert row["id"] == "A"
    assert row["blocks_count"] == 1
    assert row["blocking"] == ["Build API", "Security review"]


def test_cli_status_unknown_filter():
    r = runner.invoke(app, ["status", BASIC, "--status", "STUCK"])
    assert r.exit_code == 2
    assert "E_STATUS_UNKNOWN_FILTER" in (r.stdout + r.stderr)


def test_cli_status_policy_file():
    r = runner.invoke(
        app,
        ["status", BASIC, "--policy-file", str(EXAMPLES / "policy-strict.yaml"), "--format", "json"],
    )
    assert r.exit_code == 0
    rows = {n["id"]: n for n in json.loads(r.stdout)["nodes"]}
    assert rows["C"]["computed_status"] == "BLOCKED"
    assert rows["H"]["blocks_count"] == 1


def test_cli_status_policy_file_missing():
    r = runner.invoke(app, ["status", BASIC, "--policy-file", str(EXAMPLES / "nope.yaml")])
    assert r.exit_code == 1
    assert "E_POLICY_FILE_NOT_FOUND" in (r.stdout + r.stderr)


def test_cli_status_policy_file_invalid(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("severity: {DEPENDS_ON: maybe}\n", encoding="utf-8")
    r = runner.invoke(app, ["status", BASIC, "--policy-file", str(p)])
    assert r.exit_code == 2
    assert "E_POLICY_FILE_INVALID" in (r.stdout + r.stderr)


def test_cli_actions_text():
    r = runner.invoke(app, ["actions", BASIC, "--user", "bob"])
    assert r.exit_code == 0
    assert "Do now (0):" in r.stdout
    assert "- B: Build API | Blocked by 1 task (alice)" in r.stdout
    assert "- B: Build API | holding up D" in r.stdout


def test_cli_actions_json():
    r = runner.invoke(app, ["actions", BASIC, "--user", "alice", "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["user_id"] == "alice"
    assert [i["id"] for i in payload["actionable"]] == ["F", "A"]
    assert [i["id"] for i in payload["waiting"]] == ["D"]
    assert [i["id"] for i in payload["blocking"]] == ["F", "A"]


def test_cli_layout_json():
    r = runner.invoke(app, ["layout", BASIC, "--mode", "grid", "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["mode"] == "GRID"
    pos = {p["node_id"]: (p["x"], p["y"]) for p in payload["positions"]}
    assert pos["D"] == (680, 200)


def test_cli_layout_unpositioned_only():
    r = runner.invoke(app, ["layout", BASIC, "--unpositioned-only"])
    assert r.exit_code == 0
    assert "F:" not in r.stdout
    assert "A: x=0 y=0" in r.stdout


def test_cli_layout_unknown_mode():
    r = runner.invoke(app, ["layout", BASIC, "--mode", "SPIRAL", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["errors"][0]["code"] == "E_LAYOUT_UNKNOWN_MODE"


def test_cli_organize_writes_positions(tmp_path):
    shutil.copy(EXAMPLES / "basic-graph.yaml", tmp_path / "launch.yaml")
    r = runner.invoke(app, ["organize", "launch", "--store", str(tmp_path), "--mode", "LR"])
    assert r.exit_code == 0, r.stdout + r.stderr
    assert "OK: saved 8 positions for launch" in r.stdout
    raw = load_graph(str(tmp_path / "launch.yaml"))
    assert all("position" in n for n in raw["nodes"])


def test_cli_organize_missing_project(tmp_path):
    r = runner.invoke(app, ["organize", "ghost", "--store", str(tmp_path)])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in (r.stdout + r.stderr)


def test_cli_organize_unknown_mode(tmp_path):
    r = runner.invoke(app, ["organize", "launch", "--store", str(tmp_path), "--mode", "x"])
    assert r.exit_code == 2
    assert "E_LAYOUT_UNKNOWN_MODE" in (r.stdout + r.stderr)


def test_cli_check_edge_cycle():
    r = runner.invoke(app, ["check-edge", BASIC, "--from", "A", "--to", "D"])
    assert r.exit_code == 2
    assert "CYCLE: D -> B -> A" in (r.stdout + r.stderr)


def test_cli_check_edge_ok():
    r = runner.invoke(app, ["check-edge", BASIC, "--from", "D", "--to", "F"])
    assert r.exit_code == 0
    assert "OK:" in r.stdout


def test_cli_check_edge_unknown_node():
    r = runner.invoke(app, ["check-edge", BASIC, "--from", "A", "--to", "ZZ"])
    assert r.exit_code == 2
    assert "E_UNKNOWN_NODE" in (r.stdout + r.stderr)


def test_cli_merge_proposal(tmp_path):
    out = tmp_path / "merged.yaml"
    r = runner.invoke(
        app, ["merge-proposal", BASIC, str(EXAMPLES / "proposal.yaml"), "--out", str(out)]
    )
    assert r.exit_code == 0, r.stdout + r.stderr
    assert "nodes+2, edges+2" in r.stdout
    assert "renamed A -> A-A" in r.stdout
    merged = load_graph(str(out))
    assert [n["id"] for n in merged["nodes"]][-2:] == ["A-A", "N1"]


def test_cli_merge_proposal_invalid(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("nodes:\n  - {id: X}\n", encoding="utf-8")
    r = runner.invoke(app, ["merge-proposal", BASIC, str(bad), "--out", str(tmp_path / "o.yaml")])
    assert r.exit_code == 2
    assert "E_PROPOSAL_INVALID" in (r.stdout + r.stderr)
    assert not (tmp_path / "o.yaml").exists()


def test_cli_status_policy_env_var_missing(monkeypatch, tmp_path):
    missing = tmp_path / "gone.yaml"
    monkeypatch.setenv("WORKGRAPH_POLICY_FILE", str(missing))
    r = runner.invoke(app, ["status", BASIC, "--format", "json"])
    assert r.exit_code == 1
    err = json.loads(r.stdout)["errors"][0]
    assert err["code"] == "E_POLICY_FILE_NOT_FOUND"
    assert str(missing) in err["message"]
    assert "None" not in err["message"]


def test_cli_status_policy_file_is_directory(tmp_path):
    r = runner.invoke(app, ["actions", BASIC, "--user", "alice", "--policy-file", str(tmp_path)])
    assert r.exit_code == 1
    assert "E_POLICY_FILE_READ" in (r.stdout + r.stderr)
