"""
State file persistence — what the last run did, per step.

State lives in ``.vmsetup/state.json`` under the work directory. Writes
go to a temp file in the same directory first and are then renamed into
place, so an interrupted run never leaves a half-written file behind.
"""

from __future__ import annotations

import json
import logging
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from vmsetup.core.engine.executor import ExecutionReport
from vmsetup.core.models.state import ProvisionState, RunRecord

logger = logging.getLogger(__name__)

STATE_DIR = ".vmsetup"
STATE_FILE = "state.json"


def default_state_path(workdir: Path) -> Path:
    """Get the state file path for a work directory."""
    return workdir / STATE_DIR / STATE_FILE


def load_state(path: Path, project_name: str = "") -> ProvisionState:
    """Load provisioning state, or a fresh one if the file is absent or unreadable."""
    if not path.is_file():
        logger.debug("No state file at %s, starting fresh", path)
        return ProvisionState(project_name=project_name)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = ProvisionState.model_validate(data)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s (%s), starting fresh", path, e)
        return ProvisionState(project_name=project_name)
    except Exception as e:
        logger.warning("Cannot load state from %s (%s), starting fresh", path, e)
        return ProvisionState(project_name=project_name)

    logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
    return state


def save_state(state: ProvisionState, path: Path) -> None:
    """Write *state* to *path* atomically."""
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save state to %s", path)
        raise
    logger.debug("State saved to %s", path)


def record_report(state: ProvisionState, report: ExecutionReport) -> ProvisionState:
    """Fold an execution report into *state*.

    Steps the run never reached keep whatever the previous run recorded.
    """
    state.last_run = RunRecord(
        operation_id=report.operation_id,
        pipeline=report.pipeline,
        started_at=report.started_at,
        ended_at=report.ended_at,
        status=report.status,
        failed_step=report.failed_step,
    )
    finished_at = report.ended_at or datetime.now(UTC).isoformat()
    for result in report.results:
        state.set_step_state(
            result.step,
            status=result.status,
            message=result.error or result.message,
            finished_at=finished_at,
        )
    return state
