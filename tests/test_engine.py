"""
Tests for the engine — conditional installer and step executor.
"""

import logging

from vmsetup.core.engine.conditional import ALREADY_SATISFIED, check_precondition, ensure
from vmsetup.core.engine.executor import WOULD_RUN, execute_steps, generate_operation_id
from vmsetup.core.models.action import Receipt
from vmsetup.core.models.step import FailureKind, Step


def _ok(name: str = "step", calls: list | None = None):
    def action() -> Receipt:
        if calls is not None:
            calls.append(name)
        return Receipt.success(adapter="test", action_id=name, output=f"{name} done")
    return action


def _fail(name: str = "step", kind: str | None = None, calls: list | None = None):
    def action() -> Receipt:
        if calls is not None:
            calls.append(name)
        return Receipt.failure(adapter="test", action_id=name, error=f"{name} broke", failure_kind=kind)
    return action


# ── Conditional installer ───────────────────────────────────────────


class TestEnsure:
    def test_runs_action_when_not_satisfied(self):
        calls = []
        receipt = ensure(lambda: False, _ok("a", calls), name="a")
        assert receipt.ok
        assert calls == ["a"]

    def test_skips_when_satisfied(self):
        calls = []
        receipt = ensure(lambda: True, _ok("a", calls), name="a")
        assert receipt.status == "skipped"
        assert receipt.output == ALREADY_SATISFIED
        assert calls == []

    def test_second_pass_is_skip(self):
        """Once the action has produced its effect, a re-run is a no-op."""
        marker: set[str] = set()
        calls = []

        def install() -> Receipt:
            calls.append("install")
            marker.add("installed")
            return Receipt.success(adapter="test", action_id="install")

        first = ensure(lambda: "installed" in marker, install, name="install")
        second = ensure(lambda: "installed" in marker, install, name="install")

        assert first.ok
        assert second.status == "skipped"
        assert calls == ["install"]

    def test_no_precondition_always_runs(self):
        calls = []
        ensure(None, _ok("a", calls))
        ensure(None, _ok("a", calls))
        assert calls == ["a", "a"]

    def test_failure_passes_through_unchanged(self):
        receipt = ensure(lambda: False, _fail("a", FailureKind.TOOL_NOT_FOUND))
        assert receipt.failed
        assert receipt.failure_kind == FailureKind.TOOL_NOT_FOUND

    def test_raising_probe_counts_as_unsatisfied(self):
        def probe() -> bool:
            raise OSError("permission denied")

        assert check_precondition(probe, "x") is False
        calls = []
        ensure(probe, _ok("a", calls))
        assert calls == ["a"]


# ── Executor ────────────────────────────────────────────────────────


class TestExecuteSteps:
    def test_runs_in_order(self):
        calls = []
        steps = [Step(name=n, action=_ok(n, calls)) for n in ("one", "two", "three")]
        report = execute_steps(steps)
        assert calls == ["one", "two", "three"]
        assert report.ok
        assert report.status == "ok"
        assert [r.step for r in report.results] == ["one", "two", "three"]

    def test_fail_fast(self):
        calls = []
        steps = [
            Step(name="one", action=_ok("one", calls)),
            Step(name="two", action=_fail("two", calls=calls)),
            Step(name="three", action=_ok("three", calls)),
        ]
        report = execute_steps(steps)

        assert calls == ["one", "two"]
        assert not report.ok
        assert report.failed_step == "two"
        assert report.result_for("three") is None
        assert report.failed_result.error == "two broke"

    def test_unclassified_failure_is_hard(self):
        report = execute_steps([Step(name="x", action=_fail("x"))])
        assert report.results[0].failure_kind == FailureKind.HARD_FAILURE

    def test_failure_kind_preserved(self):
        report = execute_steps([Step(name="x", action=_fail("x", FailureKind.PRECONDITION_MISSING))])
        assert report.results[0].failure_kind == FailureKind.PRECONDITION_MISSING

    def test_soft_failure_continues(self):
        calls = []
        steps = [
            Step(name="soft", action=_fail("soft", calls=calls), soft=True),
            Step(name="after", action=_ok("after", calls)),
        ]
        report = execute_steps(steps)

        assert calls == ["soft", "after"]
        assert report.ok
        assert report.status == "warning"
        assert report.result_for("soft").status == "warning"
        assert report.result_for("soft").error == "soft broke"

    def test_warning_receipt_continues(self):
        steps = [
            Step(name="pull", action=lambda: Receipt.warning(adapter="git", action_id="pull", error="no auth")),
            Step(name="after", action=_ok("after")),
        ]
        report = execute_steps(steps)
        assert report.ok
        assert [w.step for w in report.warnings] == ["pull"]

    def test_precondition_skip(self):
        calls = []
        steps = [Step(name="x", action=_ok("x", calls), precondition=lambda: True)]
        report = execute_steps(steps)
        assert calls == []
        result = report.results[0]
        assert result.status == "skipped"
        assert result.message == ALREADY_SATISFIED
        assert result.attempts == 0

    def test_raising_action_becomes_hard_failure(self):
        def boom() -> Receipt:
            raise RuntimeError("kaboom")

        report = execute_steps([Step(name="x", action=boom), Step(name="y", action=_ok("y"))])
        assert report.failed_step == "x"
        assert "kaboom" in report.results[0].error
        assert report.results[0].failure_kind == FailureKind.HARD_FAILURE
        assert report.total == 1

    def test_failures_left_to_status_lines(self, caplog):
        def boom() -> Receipt:
            raise RuntimeError("kaboom")

        caplog.set_level(logging.WARNING, logger="vmsetup.core.engine.executor")
        execute_steps([
            Step(name="soft", action=_fail("soft"), soft=True),
            Step(name="hard", action=boom),
        ])
        assert caplog.records == []

    def test_listeners(self):
        started, finished = [], []
        execute_steps(
            [Step(name="a", action=_ok("a")), Step(name="b", action=_ok("b"))],
            on_start=lambda step: started.append(step.name),
            on_finish=lambda step, result: finished.append((step.name, result.status)),
        )
        assert started == ["a", "b"]
        assert finished == [("a", "ok"), ("b", "ok")]

    def test_operation_id_format(self):
        op_id = generate_operation_id()
        assert op_id.startswith("run-")
        assert len(op_id.split("-")) == 4


class TestRetries:
    def test_retries_then_succeeds(self):
        attempts = []
        sleeps = []

        def flaky() -> Receipt:
            attempts.append(1)
            if len(attempts) < 3:
                return Receipt.failure(adapter="test", action_id="flaky", error="network")
            return Receipt.success(adapter="test", action_id="flaky")

        step = Step(name="flaky", action=flaky, retries=2, retry_delay=1.0)
        report = execute_steps([step], sleep=sleeps.append)

        assert report.ok
        assert report.results[0].attempts == 3
        assert len(report.results[0].receipts) == 3
        assert sleeps == [1.0, 2.0]

    def test_budget_exhausted(self):
        sleeps = []
        step = Step(name="down", action=_fail("down"), retries=1, retry_delay=0.5)
        report = execute_steps([step], sleep=sleeps.append)
        assert report.failed_step == "down"
        assert report.results[0].attempts == 2
        assert sleeps == [0.5]

    def test_no_retry_for_missing_tool(self):
        sleeps = []
        step = Step(name="t", action=_fail("t", FailureKind.TOOL_NOT_FOUND), retries=3)
        report = execute_steps([step], sleep=sleeps.append)
        assert report.results[0].attempts == 1
        assert sleeps == []


class TestDryRun:
    def test_nothing_executes(self):
        calls = []
        steps = [
            Step(name="done", action=_ok("done", calls), precondition=lambda: True),
            Step(name="todo", action=_ok("todo", calls), precondition=lambda: False),
            Step(name="always", action=_ok("always", calls)),
        ]
        report = execute_steps(steps, dry_run=True)

        assert calls == []
        assert report.dry_run
        assert [r.message for r in report.results] == [ALREADY_SATISFIED, WOULD_RUN, WOULD_RUN]
        assert all(r.status == "skipped" for r in report.results)

    def test_to_dict(self):
        report = execute_steps([Step(name="a", action=_ok("a"))], pipeline="demo")
        data = report.to_dict()
        assert data["pipeline"] == "demo"
        assert data["status"] == "ok"
        assert data["steps"][0]["step"] == "a"
        assert "receipts" not in data["steps"][0]
