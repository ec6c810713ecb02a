"""
Engine executor — the ordered, fail-fast step loop.

Flow:
    steps → (precondition? skip : action with retries) → result → stop on hard failure

Nothing is rolled back. A failed step leaves the machine as it is and the
operator re-runs after fixing it; steps with preconditions turn into
skips on the second pass.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable

from vmsetup.core.engine.conditional import ALREADY_SATISFIED, check_precondition, ensure
from vmsetup.core.models.action import Receipt
from vmsetup.core.models.step import FailureKind, Step, StepResult

logger = logging.getLogger(__name__)

WOULD_RUN = "[dry-run] would run"

StartListener = Callable[[Step], None]
FinishListener = Callable[[Step, StepResult], None]


@dataclass
class ExecutionReport:
    """Result of executing a sequence of steps."""

    operation_id: str = ""
    pipeline: str = ""
    started_at: str = ""
    ended_at: str = ""
    results: list[StepResult] = field(default_factory=list)
    dry_run: bool = False

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failed_result(self) -> StepResult | None:
        for result in self.results:
            if result.failed:
                return result
        return None

    @property
    def failed_step(self) -> str | None:
        """Name of the step that halted the run, if any."""
        failed = self.failed_result
        return failed.step if failed else None

    @property
    def warnings(self) -> list[StepResult]:
        return [r for r in self.results if r.status == "warning"]

    @property
    def ok(self) -> bool:
        return self.failed_result is None

    @property
    def status(self) -> str:
        if not self.ok:
            return "failed"
        if self.warnings:
            return "warning"
        return "ok"

    def result_for(self, step: str) -> StepResult | None:
        for result in self.results:
            if result.step == step:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "pipeline": self.pipeline,
            "status": self.status,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "failed_step": self.failed_step,
            "steps": [
                r.model_dump(mode="json", exclude={"receipts"}) for r in self.results
            ],
        }


def execute_steps(
    steps: list[Step],
    *,
    pipeline: str = "",
    dry_run: bool = False,
    on_start: StartListener | None = None,
    on_finish: FinishListener | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ExecutionReport:
    """Run *steps* strictly in order, stopping at the first hard failure.

    Args:
        steps: Ordered steps.
        pipeline: Label for logs and the report.
        dry_run: Only evaluate preconditions; never run actions.
        on_start: Called before each step.
        on_finish: Called with each step's result.
        sleep: Backoff sleeper (injectable for tests).

    Returns:
        ExecutionReport. ``report.ok`` is True only if no step failed;
        ``report.failed_step`` names the step that halted the run.
    """
    report = ExecutionReport(
        operation_id=generate_operation_id(),
        pipeline=pipeline,
        started_at=datetime.now(UTC).isoformat(),
        dry_run=dry_run,
    )

    for step in steps:
        if on_start:
            on_start(step)

        if dry_run:
            result = _plan_step(step)
        else:
            result = _run_step(step, sleep)

        report.results.append(result)
        if on_finish:
            on_finish(step, result)

        status_marker = {"ok": "✓", "skipped": "⊘", "warning": "!", "failed": "✗"}[result.status]
        logger.info("%s %s → %s", status_marker, step.name, result.status)

        if result.failed:
            logger.info("Step '%s' failed: %s", step.name, result.error)
            break

    report.ended_at = datetime.now(UTC).isoformat()
    return report


def _plan_step(step: Step) -> StepResult:
    if check_precondition(step.precondition, step.name):
        return StepResult(step=step.name, status="skipped", message=ALREADY_SATISFIED)
    return StepResult(step=step.name, status="skipped", message=WOULD_RUN)


def _run_step(step: Step, sleep: Callable[[float], None]) -> StepResult:
    start = time.monotonic()
    attempts = 0
    receipts: list[Receipt] = []

    def attempt() -> Receipt:
        nonlocal attempts
        while True:
            attempts += 1
            receipt = _call_action(step)
            receipts.append(receipt)
            if not receipt.failed or attempts > step.retries:
                return receipt
            # Missing preconditions and missing tools won't fix themselves
            if receipt.failure_kind in (FailureKind.PRECONDITION_MISSING, FailureKind.TOOL_NOT_FOUND):
                return receipt
            delay = step.retry_delay * (2 ** (attempts - 1))
            logger.info(
                "Step '%s' failed (attempt %d/%d), retrying in %.1fs: %s",
                step.name, attempts, step.retries + 1, delay, receipt.error,
            )
            sleep(delay)

    receipt = ensure(step.precondition, attempt, name=step.name)

    if receipt.failed and step.soft:
        logger.info("Step '%s' failed softly, continuing: %s", step.name, receipt.error)
        receipt = receipt.downgrade()
    elif receipt.failed and receipt.failure_kind is None:
        receipt = receipt.model_copy(update={"failure_kind": FailureKind.HARD_FAILURE})

    return StepResult(
        step=step.name,
        status=receipt.status,
        message=receipt.output,
        error=receipt.error,
        failure_kind=receipt.failure_kind,
        attempts=attempts,
        duration_ms=int((time.monotonic() - start) * 1000),
        receipts=receipts,
    )


def _call_action(step: Step) -> Receipt:
    try:
        return step.action()
    except Exception as e:
        logger.debug("Step '%s' raised", step.name, exc_info=True)
        return Receipt.failure(
            adapter="step",
            action_id=step.name,
            error=f"Unexpected error: {e}",
            failure_kind=FailureKind.HARD_FAILURE,
        )


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
