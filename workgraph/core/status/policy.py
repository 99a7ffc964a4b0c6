from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional

import yaml

from workgraph.core.model import EDGE_RELATIONS


Severity = Literal["hard", "soft", "none"]
SEVERITIES: tuple[str, ...] = ("hard", "soft", "none")

POLICY_ENV_VAR = "WORKGRAPH_POLICY_FILE"


@dataclass(frozen=True)
class RelationPolicy:
    """Relation -> severity table plus the relations that count as blocking other people."""

    severity: dict[str, Severity]
    blocks_others: frozenset[str]

    def severity_of(self, relation: str) -> Severity:
        return self.severity.get(relation, "none")


DEFAULT_POLICY = RelationPolicy(
    severity={
        "DEPENDS_ON": "hard",
        "HANDOFF_TO": "hard",
        "NEEDS_INFO_FROM": "soft",
        "APPROVAL_BY": "soft",
    },
    blocks_others=frozenset({"DEPENDS_ON"}),
)


class PolicyConfigError(ValueError):
    pass


def load_policy_file(path: str | Path) -> dict[str, Any]:
    """Load policy overrides from a YAML file.

    Format:
      severity:
        <RELATION>: hard|soft|none
      blocks_others: [<RELATION>, ...]

    Both keys are optional. Returns the validated override mapping.
    """
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise PolicyConfigError(f"policy file is not valid YAML: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise PolicyConfigError("policy file must be a mapping with severity/blocks_others")

    unknown = set(raw.keys()) - {"severity", "blocks_others"}
    if unknown:
        raise PolicyConfigError(f"unknown policy keys: {sorted(unknown)}")

    out: dict[str, Any] = {}
    severity = raw.get("severity")
    if severity is not None:
        if not isinstance(severity, dict):
            raise PolicyConfigError("severity must be a mapping of relation -> hard|soft|none")
        sev_out: dict[str, str] = {}
        for rel, level in severity.items():
            if rel not in EDGE_RELATIONS:
                raise PolicyConfigError(f"unknown relation in severity: {rel}")
            if level not in SEVERITIES:
                raise PolicyConfigError(f"severity for {rel} must be one of {list(SEVERITIES)}")
            sev_out[rel] = level
        out["severity"] = sev_out

    blocks = raw.get("blocks_others")
    if blocks is not None:
        if not isinstance(blocks, list) or any(r not in EDGE_RELATIONS for r in blocks):
            raise PolicyConfigError(f"blocks_others must be a list drawn from {list(EDGE_RELATIONS)}")
        out["blocks_others"] = list(blocks)

    return out


def merged_policy(overrides: dict[str, Any] | None = None) -> RelationPolicy:
    """Return DEFAULT_POLICY with optional overrides applied.

    Severity entries replace the default per relation; blocks_others replaces the whole set.
    """
    if not overrides:
        return DEFAULT_POLICY
    severity = dict(DEFAULT_POLICY.severity)
    severity.update(overrides.get("severity", {}))
    blocks = overrides.get("blocks_others")
    return RelationPolicy(
        severity=severity,
        blocks_others=frozenset(blocks) if blocks is not None else DEFAULT_POLICY.blocks_others,
    )


def resolve_policy_path(policy_file: Optional[str]) -> Optional[str]:
    """Explicit file, then $WORKGRAPH_POLICY_FILE; None means the built-in defaults."""
    return policy_file or (os.getenv(POLICY_ENV_VAR, "") or "").strip() or None


def load_and_merge(policy_file: Optional[str]) -> RelationPolicy:
    """Resolve the policy: explicit file, then $WORKGRAPH_POLICY_FILE, then defaults."""
    path = resolve_policy_path(policy_file)
    if path is None:
        return merged_policy()
    return merged_policy(load_policy_file(path))
