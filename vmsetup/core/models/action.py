"""
Action and Receipt models — the execution contract.

Actions represent requested external operations (a command, a git call).
Receipts represent results. Adapters receive Actions and return Receipts,
never exceptions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A requested operation to be executed by an adapter.

    Action ids follow ``<step>:<label>`` so a failing command can be
    traced back to the provisioning step that issued it.
    """

    id: str                         # unique action identifier
    name: str = ""                  # human-readable name
    adapter: str                    # which adapter handles this
    params: dict[str, Any] = Field(default_factory=dict)
    for_step: str | None = None     # provisioning step that issued it


class Receipt(BaseModel):
    """Result of an adapter execution or a provisioning step.

    ``warning`` is a soft failure: something went wrong but the
    pipeline is allowed to continue.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "warning", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    failure_kind: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the action failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="skipped",
            output=reason,
            **kwargs,
        )

    @classmethod
    def warning(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a soft-failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="warning",
            error=error,
            **kwargs,
        )

    def downgrade(self) -> Receipt:
        """Return a copy of a failed receipt as a soft failure."""
        if not self.failed:
            return self
        return self.model_copy(update={"status": "warning"})
