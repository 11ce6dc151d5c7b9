"""Operation result dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class OperationResult:
    """Outcome of a mutating filesystem operation.

    Failures are carried as data so they can cross the bridge and be
    rendered uniformly by the caller.
    """

    success: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> OperationResult:
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> OperationResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OperationResult:
        return cls(success=bool(data["success"]), error=data.get("error"))
