"""Snapshot documents on disk, YAML or JSON by file suffix."""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from workgraph.core.errors import GraphLoadError

# Where load_graph records the source path; never written back to disk.
SOURCE_KEY = "__file__"

_YAML_SUFFIXES = (".yaml", ".yml")


def read_document(path: str | Path) -> dict[str, Any]:
    """Parse a snapshot file and return its whole top-level mapping, unknown keys included."""
    p = Path(path)
    if not p.exists():
        raise GraphLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=str(p))

    suffix = p.suffix.lower()
    if suffix not in _YAML_SUFFIXES and suffix != ".json":
        raise GraphLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="supported formats are .yaml/.yml and .json",
            file=str(p),
        )

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise GraphLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        data = yaml.safe_load(text) if suffix in _YAML_SUFFIXES else json.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        # PyYAML raises ValueError for out-of-range timestamps such as 2026-13-01.
        code = "E_YAML_PARSE" if suffix in _YAML_SUFFIXES else "E_JSON_PARSE"
        raise GraphLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise GraphLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )
    return data


def load_graph(path: str) -> dict[str, Any]:
    """Read a snapshot for validation and linting.

    Shape is not checked here. A missing ``edges`` key reads as an empty list, and the
    source path is stored under ``__file__`` so findings can point back at the file.
    """
    data = read_document(path)
    data.setdefault("edges", [])
    data[SOURCE_KEY] = str(Path(path))
    return data


def dump_graph(snapshot: dict[str, Any], path: str) -> None:
    """Write a snapshot document, JSON for ``.json`` and YAML otherwise.

    The document is serialized first and then swapped in with ``os.replace``, so a failed
    write leaves the previous file intact.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    data = {k: v for k, v in snapshot.items() if not k.startswith("__")}
    if p.suffix.lower() == ".json":
        text = json.dumps(data, indent=2, default=str) + "\n"
    else:
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, p)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise
