"""
ProvisionState — what the last run did.

Serialized to .vmsetup/state.json in the work directory. It is a record,
not a source of truth: preconditions always re-probe the machine.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepState(BaseModel):
    """Recorded outcome of one step."""

    name: str
    status: str = ""            # ok, skipped, warning, failed
    message: str = ""
    finished_at: str | None = None


class RunRecord(BaseModel):
    """Summary of the last run."""

    operation_id: str = ""
    pipeline: str = ""
    started_at: str = ""
    ended_at: str = ""
    status: str = ""            # ok, warning, failed
    failed_step: str | None = None


class ProvisionState(BaseModel):
    """Root state model — serialized to .vmsetup/state.json."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Identity ─────────────────────────────────────────────────
    project_name: str = ""

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Step state ───────────────────────────────────────────────
    steps: dict[str, StepState] = Field(default_factory=dict)

    # ── Last run ─────────────────────────────────────────────────
    last_run: RunRecord = Field(default_factory=RunRecord)

    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def set_step_state(self, name: str, **kwargs: Any) -> None:
        """Update or create a step state entry."""
        if name in self.steps:
            for key, value in kwargs.items():
                setattr(self.steps[name], key, value)
        else:
            self.steps[name] = StepState(name=name, **kwargs)
