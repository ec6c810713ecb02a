"""
Status use case — record finished runs and report the last one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from vmsetup.core.engine.executor import ExecutionReport
from vmsetup.core.models.state import ProvisionState
from vmsetup.core.persistence.audit import AuditEntry, AuditWriter
from vmsetup.core.persistence.state_file import (
    default_state_path,
    load_state,
    record_report,
    save_state,
)

logger = logging.getLogger(__name__)


def record_run(workdir: Path, project_name: str, report: ExecutionReport) -> None:
    """Persist *report*: audit ledger always, step state unless a dry run."""
    AuditWriter(workdir=workdir).write(AuditEntry.from_report(report, project=project_name))
    if report.dry_run:
        return

    path = default_state_path(workdir)
    state = load_state(path, project_name)
    state.project_name = project_name
    record_report(state, report)
    try:
        save_state(state, path)
    except OSError as e:
        logger.error("Could not record run state: %s", e)


@dataclass
class StatusResult:
    """Last recorded run plus recent history."""

    workdir: Path
    state: ProvisionState | None = None
    history: list[AuditEntry] = field(default_factory=list)

    @property
    def has_run(self) -> bool:
        return self.state is not None and bool(self.state.last_run.operation_id)

    def to_dict(self) -> dict:
        result: dict = {"workdir": str(self.workdir), "has_run": self.has_run}
        if self.state:
            result["state"] = self.state.model_dump(mode="json")
        result["history"] = [e.model_dump(mode="json") for e in self.history]
        return result


def get_status(workdir: Path, history: int = 5) -> StatusResult:
    """Read ``.vmsetup/`` under *workdir*."""
    path = default_state_path(workdir)
    result = StatusResult(workdir=workdir)
    if path.is_file():
        result.state = load_state(path)
    result.history = AuditWriter(workdir=workdir).read_recent(history)
    return result
