from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional


@dataclass(frozen=True)
class GraphError(Exception):
    """Error/finding envelope shared by loading, validation, lint, layout and the store.

    ``severity`` is "error" or "warning"; lint findings are warnings and never fail a command.
    """

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None
    severity: str = "error"

    # Pipeline stage reported in JSON output.
    source: ClassVar[str] = "graph"

    @property
    def location(self) -> str:
        return ":".join(x for x in (self.file, self.path) if x) or "<graph>"

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.file or "", self.path or "", self.code)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "file": self.file,
            "path": self.path,
            "severity": self.severity,
            "source": "lint" if self.code.startswith("L_") else self.source,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.code}: {self.message}"


class GraphLoadError(GraphError):
    source = "load"


class GraphValidationError(GraphError):
    source = "validate"


class LayoutError(GraphError):
    source = "layout"


class PersistenceError(GraphError):
    source = "store"
