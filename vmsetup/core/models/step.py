"""
Step and StepResult — the unit of the provisioning pipeline.

A Step is an action plus an optional precondition. The executor runs
steps in declared order and stops at the first hard failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Literal

from pydantic import BaseModel, Field

from vmsetup.core.models.action import Receipt


class FailureKind:
    """Failure classes surfaced to the operator."""

    PRECONDITION_MISSING = "precondition_missing"
    TOOL_NOT_FOUND = "tool_not_found"
    HARD_FAILURE = "hard_failure"


@dataclass
class Step:
    """One provisioning step.

    Attributes:
        name:          Human-readable identifier, used in reports and action ids.
        action:        Callable performing the work, returns a Receipt.
        precondition:  Callable returning True when the step is already done.
                       None means the step is unconditional.
        soft:          Downgrade a failure to a warning and keep going.
        retries:       Extra attempts after a failed action.
        retry_delay:   Base delay in seconds for exponential backoff.
        description:   One-line summary shown by ``vmsetup plan``.
    """

    name: str
    action: Callable[[], Receipt]
    precondition: Callable[[], bool] | None = None
    soft: bool = False
    retries: int = 0
    retry_delay: float = 2.0
    description: str = ""


class StepResult(BaseModel):
    """Outcome of one step."""

    step: str
    status: Literal["ok", "skipped", "warning", "failed"] = "ok"
    message: str = ""
    error: str | None = None
    failure_kind: str | None = None
    attempts: int = 0
    duration_ms: int = 0
    receipts: list[Receipt] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in ("ok", "skipped", "warning")

    @property
    def failed(self) -> bool:
        return self.status == "failed"


@dataclass
class StepPlan:
    """Ordered steps for one pipeline, with a label for reporting."""

    name: str
    steps: list[Step] = field(default_factory=list)

    def add(self, step: Step) -> None:
        self.steps.append(step)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.steps]
