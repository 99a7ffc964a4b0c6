from __future__ import annotations

import json
import logging
from typing import Any, NoReturn, Optional

import typer

from workgraph.core.actions.classify import filter_nodes, summarize_statuses
from workgraph.core.engine import evaluate
from workgraph.core.errors import (
    GraphError,
    GraphLoadError,
    GraphValidationError,
    LayoutError,
    PersistenceError,
)
from workgraph.core.graph.graph_model import GraphModel
from workgraph.core.io.load_graph import dump_graph, load_graph
from workgraph.core.io.store import FileGraphStore
from workgraph.core.layout.engine import layout_positions, normalize_mode, place_unpositioned
from workgraph.core.layout.organize import organize as organize_project
from workgraph.core.lint.lint_graph import lint_graph, severity_counts
from workgraph.core.model import COMPUTED_STATUSES, EDGE_RELATIONS, Snapshot
from workgraph.core.proposals.contracts import parse_proposal
from workgraph.core.proposals.merge_proposal import merge_proposal
from workgraph.core.status.policy import (
    PolicyConfigError,
    RelationPolicy,
    load_and_merge,
    resolve_policy_path,
)
from workgraph.core.validate.validate_graph import summarize_graph, validate_graph

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Work graph CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a graph snapshot (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a graph snapshot file."""
    _check_format("validate", format)
    _, snapshot = _load_or_exit("validate", path, format)

    if format == "text":
        typer.echo(summarize_graph(snapshot))
        return

    _emit_json(
        "validate",
        ok=True,
        exit_code=0,
        errors=[],
        summary={
            "project_id": snapshot.project_id,
            "node_count": len(snapshot.nodes),
            "edge_count": len(snapshot.edges),
        },
    )


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a graph snapshot (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Lint a graph snapshot. Lint findings are warnings; only validation errors fail."""
    _check_format("lint", format)

    try:
        raw = load_graph(path)
    except GraphLoadError as e:
        _fail("lint", format, [e], 1)

    _, validation_errors = validate_graph(raw)
    findings: list[GraphError] = [*lint_graph(raw), *validation_errors]
    exit_code = 2 if validation_errors else 0

    if format == "json":
        _emit_json(
            "lint",
            ok=not validation_errors,
            exit_code=exit_code,
            errors=findings,
            summary=severity_counts(findings),
        )

    if findings:
        _print_errors(findings)
    if exit_code:
        raise typer.Exit(code=exit_code)
    typer.echo(f"OK: lint passed ({len(findings)} warning(s))")


@app.command("status")
def status(
    path: str = typer.Argument(..., help="Path to a graph snapshot (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    policy_file: Optional[str] = typer.Option(
        None, "--policy-file", help="YAML relation policy overrides (or $WORKGRAPH_POLICY_FILE)"
    ),
    only: str = typer.Option("ALL", "--status", help="Only show nodes with this computed status"),
    query: str = typer.Option("", "--query", help="Case-insensitive title filter"),
) -> None:
    """Compute every node's execution status with blocked-by/blocking details."""
    _check_format("status", format)
    if only != "ALL" and only not in COMPUTED_STATUSES:
        _fail(
            "status",
            format,
            [
                GraphValidationError(
                    code="E_STATUS_UNKNOWN_FILTER",
                    message=f"unknown status: {only} (choose one of: ALL, {', '.join(COMPUTED_STATUSES)})",
                    path="status",
                )
            ],
            2,
        )

    policy = _policy_or_exit("status", format, policy_file)
    _, snapshot = _load_or_exit("status", path, format)
    ev = evaluate(snapshot.nodes, snapshot.edges, policy)

    rows = []
    for node in filter_nodes(ev.graph, ev.statuses, only, query):
        info = ev.blocking[node.id]
        rows.append(
            {
                "id": node.id,
                "title": node.title,
                "manual_status": node.manual_status,
                "computed_status": ev.statuses[node.id],
                "blocked_by": info.blocked_by,
                "blocking": info.blocking,
                "blocks_count": info.blocks_count,
            }
        )

    summary = summarize_statuses(ev.graph, ev.statuses, policy)
    if format == "json":
        _emit_json("status", ok=True, exit_code=0, errors=[], summary=summary, nodes=rows)

    for row in rows:
        line = f"{row['id']}: {row['computed_status']} ({row['manual_status']}) {row['title']}"
        if row["blocked_by"]:
            line += " | blocked by: " + ", ".join(row["blocked_by"])
        if row["blocks_count"]:
            line += f" | blocks {row['blocks_count']}"
        typer.echo(line)
    counts = ", ".join(f"{k}={v}" for k, v in summary["status_counts"].items())
    typer.echo(f"Summary: {counts}")


@app.command("actions")
def actions(
    path: str = typer.Argument(..., help="Path to a graph snapshot (.yaml/.yml/.json)"),
    user: str = typer.Option(..., "--user", help="User id to build the action center for"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    policy_file: Optional[str] = typer.Option(None, "--policy-file"),
) -> None:
    """Show a user's Do Now / Waiting / Blocking queues."""
    _check_format("actions", format)
    policy = _policy_or_exit("actions", format, policy_file)
    _, snapshot = _load_or_exit("actions", path, format)
    buckets = evaluate(snapshot.nodes, snapshot.edges, policy).buckets_for(user)

    if format == "json":
        _emit_json("actions", ok=True, exit_code=0, errors=[], **buckets.to_dict())

    sections = [
        ("Do now", buckets.actionable),
        ("Waiting", buckets.waiting),
        ("Blocking others", buckets.blocking),
    ]
    for label, items in sections:
        typer.echo(f"{label} ({len(items)}):")
        for item in items:
            extra = ""
            if item.reason:
                extra = f" | {item.reason}"
                if item.responsible:
                    extra += " (" + ", ".join(item.responsible) + ")"
            if item.blocked_node_ids:
                extra = f" | holding up {', '.join(item.blocked_node_ids)}"
            typer.echo(f"- {item.node.id}: {item.node.title}{extra}")


@app.command("layout")
def layout(
    path: str = typer.Argument(..., help="Path to a graph snapshot (.yaml/.yml/.json)"),
    mode: str = typer.Option("GRID", "--mode", help="Layout mode: GRID|LR|TB"),
    unpositioned_only: bool = typer.Option(
        False, "--unpositioned-only", help="Only place nodes without a saved position"
    ),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Compute node positions without saving them."""
    _check_format("layout", format)
    _, snapshot = _load_or_exit("layout", path, format)
    graph = GraphModel.build(snapshot.nodes, snapshot.edges)

    try:
        if unpositioned_only:
            positions = place_unpositioned(graph, mode)
        else:
            positions = layout_positions(graph, mode)
    except LayoutError as e:
        _fail("layout", format, [e], 2)

    if format == "json":
        _emit_json(
            "layout",
            ok=True,
            exit_code=0,
            errors=[],
            mode=normalize_mode(mode),
            positions=[{"node_id": p.node_id, "x": p.x, "y": p.y} for p in positions],
        )
    for p in positions:
        typer.echo(f"{p.node_id}: x={p.x:g} y={p.y:g}")


@app.command("organize")
def organize(
    project_id: str = typer.Argument(..., help="Project id (snapshot file stem in --store)"),
    store: str = typer.Option(".", "--store", help="Directory holding <project_id>.yaml"),
    mode: str = typer.Option("GRID", "--mode", help="Layout mode: GRID|LR|TB"),
) -> None:
    """Re-layout every node of a project and save the positions back to the store."""
    try:
        positions = organize_project(FileGraphStore(store), project_id, mode)
    except LayoutError as e:
        _print_errors([e])
        raise typer.Exit(code=2)
    except GraphLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)
    except (GraphValidationError, PersistenceError) as e:
        _print_errors([e])
        raise typer.Exit(code=2)
    typer.echo(f"OK: saved {len(positions)} positions for {project_id}")


@app.command("check-edge")
def check_edge(
    path: str = typer.Argument(..., help="Path to a graph snapshot (.yaml/.yml/.json)"),
    from_node: str = typer.Option(..., "--from", help="Dependent node id"),
    to_node: str = typer.Option(..., "--to", help="Node depended upon"),
    relation: str = typer.Option("DEPENDS_ON", "--relation"),
) -> None:
    """Check whether adding an edge would close a DEPENDS_ON cycle."""
    if relation not in EDGE_RELATIONS:
        _print_errors(
            [
                GraphValidationError(
                    code="E_INVALID_ENUM",
                    message=f"relation must be one of {list(EDGE_RELATIONS)}",
                    path="relation",
                )
            ]
        )
        raise typer.Exit(code=2)

    _, snapshot = _load_or_exit("check-edge", path, "text")
    graph = GraphModel.build(snapshot.nodes, snapshot.edges)
    missing = [n for n in (from_node, to_node) if n not in graph]
    if missing:
        _print_errors(
            [
                GraphValidationError(
                    code="E_UNKNOWN_NODE",
                    message=f"unknown node id(s): {missing}",
                    file=path,
                    path="edge",
                )
            ]
        )
        raise typer.Exit(code=2)

    cycle = graph.find_cycle_path(from_node, to_node, relation)
    if cycle is not None:
        typer.echo("CYCLE: " + " -> ".join(cycle), err=True)
        raise typer.Exit(code=2)
    typer.echo("OK: edge does not create a dependency cycle")


@app.command("merge-proposal")
def merge_proposal_cmd(
    path: str = typer.Argument(..., help="Path to a graph snapshot (.yaml/.yml/.json)"),
    proposal: str = typer.Argument(..., help="Proposal file with nodes/edges (.yaml/.json)"),
    out: str = typer.Option(..., "--out", help="Where to write the merged snapshot"),
) -> None:
    """Merge proposed nodes/edges (from a generator) into a snapshot."""
    try:
        raw = load_graph(path)
        proposal_raw = load_graph(proposal)
    except GraphLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    try:
        parsed = parse_proposal(
            {"nodes": proposal_raw.get("nodes") or [], "edges": proposal_raw.get("edges") or []}
        )
    except ValueError as e:
        _print_errors(
            [GraphValidationError(code="E_PROPOSAL_INVALID", message=str(e), file=proposal)]
        )
        raise typer.Exit(code=2)

    result = merge_proposal(raw, parsed)
    _, errors = validate_graph(result.snapshot)
    if errors:
        _print_errors(list(errors))
        raise typer.Exit(code=2)

    dump_graph(result.snapshot, out)
    typer.echo(
        f"OK: wrote {out} (nodes+{len(result.added_node_ids)}, edges+{len(result.added_edge_ids)})"
    )
    for old, new in sorted(result.id_remap.items()):
        typer.echo(f"renamed {old} -> {new}")


def _check_format(command: str, format: str) -> None:
    if format not in ("text", "json"):
        err = GraphValidationError(
            code=f"E_{command.upper().replace('-', '_')}_UNKNOWN_FORMAT",
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _load_or_exit(command: str, path: str, format: str) -> tuple[dict[str, Any], Snapshot]:
    try:
        raw = load_graph(path)
    except GraphLoadError as e:
        _fail(command, format, [e], 1)

    snapshot, errors = validate_graph(raw)
    if errors or snapshot is None:
        _fail(command, format, list(errors), 2)
    return raw, snapshot


def _policy_or_exit(command: str, format: str, policy_file: Optional[str]) -> RelationPolicy:
    path = resolve_policy_path(policy_file)
    try:
        return load_and_merge(path)
    except FileNotFoundError:
        _fail(
            command,
            format,
            [
                GraphLoadError(
                    code="E_POLICY_FILE_NOT_FOUND",
                    message=f"policy file not found: {path}",
                    file=path,
                    path="policy_file",
                )
            ],
            1,
        )
    except OSError as e:
        _fail(
            command,
            format,
            [
                GraphLoadError(
                    code="E_POLICY_FILE_READ",
                    message=f"cannot read policy file: {e}",
                    file=path,
                    path="policy_file",
                )
            ],
            1,
        )
    except PolicyConfigError as e:
        _fail(
            command,
            format,
            [
                GraphValidationError(
                    code="E_POLICY_FILE_INVALID", message=str(e), file=path, path="policy_file"
                )
            ],
            2,
        )


def _fail(command: str, format: str, errors: list[GraphError], exit_code: int) -> NoReturn:
    if format == "json":
        _emit_json(command, ok=False, exit_code=exit_code, errors=errors, summary=None)
    _print_errors(errors)
    raise typer.Exit(code=exit_code)


def _emit_json(
    command: str, *, ok: bool, exit_code: int, errors: list[GraphError], **extra: Any
) -> NoReturn:
    payload: dict[str, Any] = {
        "tool": "workgraph",
        "command": command,
        "ok": ok,
        "error_count": len(errors),
        "errors": [e.to_dict() for e in errors],
    }
    payload.update(extra)
    typer.echo(json.dumps(payload, indent=2, sort_keys=True, default=str))
    raise typer.Exit(code=exit_code)


def _print_errors(errors: list[GraphError]) -> None:
    for e in sorted(errors, key=lambda e: e.sort_key):
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="workgraph")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
