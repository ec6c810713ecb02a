"""
Auth use case — configure token authentication and record the run.
"""

from __future__ import annotations

from vmsetup.core.engine.executor import ExecutionReport
from vmsetup.core.services.git_auth import configure_auth
from vmsetup.core.services.runtime import ProvisionContext
from vmsetup.core.use_cases.status import record_run


def run_auth(
    ctx: ProvisionContext,
    *,
    dry_run: bool = False,
    on_start=None,
    on_finish=None,
    persist: bool = True,
) -> ExecutionReport:
    report = configure_auth(ctx, dry_run=dry_run, on_start=on_start, on_finish=on_finish)
    if persist:
        record_run(ctx.workdir, ctx.config.project_name, report)
    return report
