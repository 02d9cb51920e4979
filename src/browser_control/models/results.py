"""Uniform result contract returned by every session and page action.

A result is either a success carrying command-specific fields, or a failure
carrying an ``error`` message and an optional advisory ``hint`` that
suggests the next command to run. Nothing else is ever returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ActionResult:
    """Tagged ``Success`` / ``Failure`` result.

    Use :meth:`ok` and :meth:`fail` rather than the constructor.
    """

    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    hint: str | None = None

    def __post_init__(self) -> None:
        if self.success and (self.error is not None or self.hint is not None):
            raise ValueError("a successful result cannot carry an error or hint")
        if not self.success and not self.error:
            raise ValueError("a failed result requires an error message")
        if not self.success and self.data:
            raise ValueError("a failed result carries only error and hint")
        if "success" in self.data or "error" in self.data:
            raise ValueError("result fields may not shadow 'success' or 'error'")

    @classmethod
    def ok(cls, **fields: Any) -> ActionResult:
        return cls(success=True, data=fields)

    @classmethod
    def fail(cls, error: str, hint: str | None = None) -> ActionResult:
        return cls(success=False, error=error, hint=hint)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a command-specific field."""
        return self.data.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to the printed record: ``{"success": ..., **fields}``."""
        out: dict[str, Any] = {"success": self.success}
        if not self.success:
            out["error"] = self.error
            if self.hint:
                out["hint"] = self.hint
        out.update(self.data)
        return out
