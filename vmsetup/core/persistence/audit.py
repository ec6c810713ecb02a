"""
Audit ledger — append-only history of provisioning runs.

One NDJSON line per run in ``.vmsetup/audit.ndjson``. Entries are never
rewritten; ``vmsetup status`` reads the tail.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from vmsetup.core.engine.executor import ExecutionReport

logger = logging.getLogger(__name__)

AUDIT_DIR = ".vmsetup"
AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """A single audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    pipeline: str = ""             # provision, install-cli, auth

    status: str = ""               # ok, warning, failed
    dry_run: bool = False
    steps_total: int = 0
    steps_skipped: int = 0
    steps_warned: int = 0
    failed_step: str | None = None
    duration_ms: int = 0

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_report(cls, report: ExecutionReport, **context: Any) -> AuditEntry:
        """Summarize an execution report."""
        return cls(
            operation_id=report.operation_id,
            pipeline=report.pipeline,
            status=report.status,
            dry_run=report.dry_run,
            steps_total=report.total,
            steps_skipped=sum(1 for r in report.results if r.status == "skipped"),
            steps_warned=len(report.warnings),
            failed_step=report.failed_step,
            duration_ms=sum(r.duration_ms for r in report.results),
            errors=[f"{r.step}: {r.error}" for r in report.results if r.error],
            context=context,
        )


class AuditWriter:
    """Append-only audit ledger writer."""

    def __init__(self, path: Path | None = None, workdir: Path | None = None):
        if path is not None:
            self._path = path
        elif workdir is not None:
            self._path = workdir / AUDIT_DIR / AUDIT_FILE
        else:
            self._path = Path(AUDIT_DIR) / AUDIT_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append one entry. A write error is logged, never raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s/%s", entry.pipeline, entry.operation_id)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        with self._path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(AuditEntry.model_validate(json.loads(line)))
                except Exception as e:
                    logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        return entries

    def read_recent(self, n: int = 10) -> list[AuditEntry]:
        return self.read_all()[-n:]
