"""
Provision use case — the master pipeline.

    preflight → install-cli → install-system-packages → acquire-repository
      → create-virtualenv → install-dependencies → write documents
      → install-validation-script (soft) → verify-environment (soft)

The pipeline is fail-fast: the first hard failure ends the run and
nothing is undone. Re-running after a fix is the recovery path; steps
guarded by preconditions turn into skips.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from vmsetup.adapters.registry import AdapterRegistry, default_registry
from vmsetup.core.engine.executor import ExecutionReport, execute_steps
from vmsetup.core.models.action import Receipt
from vmsetup.core.models.settings import ProvisionConfig
from vmsetup.core.models.step import FailureKind, Step, StepPlan
from vmsetup.core.models.template import GeneratedFile
from vmsetup.core.services.generators.auth_script import generate_auth_script
from vmsetup.core.services.generators.context_doc import generate_context_document
from vmsetup.core.services.generators.quick_start import generate_quick_start
from vmsetup.core.services.runtime import ProvisionContext
from vmsetup.core.services.script_patcher import (
    PatchSourceError,
    patch,
    validation_script_rules,
)
from vmsetup.core.services.templates import write_generated
from vmsetup.core.use_cases.install_cli import install_cli_receipt
from vmsetup.core.use_cases.status import record_run

logger = logging.getLogger(__name__)

PIPELINE = "provision"


def build_context(
    config: ProvisionConfig,
    workdir: Path,
    registry: AdapterRegistry | None = None,
    **probes,
) -> ProvisionContext:
    """Context with the real adapters unless *registry* is given."""
    return ProvisionContext(
        config=config,
        workdir=workdir.resolve(),
        registry=registry or default_registry(),
        **probes,
    )


def _written(step: str, path: Path) -> Receipt:
    return Receipt.success(adapter="template", action_id=f"{step}:write", output=str(path))


def build_provision_plan(ctx: ProvisionContext) -> StepPlan:
    """Ordered master pipeline for *ctx*."""
    cfg = ctx.config
    retries = cfg.execution.network_retries
    delay = cfg.execution.retry_delay
    plan = StepPlan(name=PIPELINE)

    # ── Preflight ───────────────────────────────────────────────

    def preflight() -> Receipt:
        if os.geteuid() == 0 and not cfg.execution.allow_root:
            return Receipt.failure(
                adapter="preflight",
                action_id="preflight:user",
                error=(
                    "This tool should not be run as root. Please run as a regular user "
                    "(or set execution.allow_root)."
                ),
                failure_kind=FailureKind.PRECONDITION_MISSING,
            )
        # Every later step runs in the work directory
        try:
            ctx.workdir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Receipt.failure(
                adapter="preflight",
                action_id="preflight:workdir",
                error=f"Cannot create work directory {ctx.workdir}: {e}",
                failure_kind=FailureKind.PRECONDITION_MISSING,
            )
        return Receipt.success(adapter="preflight", action_id="preflight:user", output=str(ctx.workdir))

    plan.add(Step(
        name="preflight",
        action=preflight,
        description="Refuse to run as root and create the work directory",
    ))

    # ── Tooling ─────────────────────────────────────────────────

    plan.add(Step(
        name="install-cli",
        action=lambda: install_cli_receipt(ctx),
        precondition=lambda: ctx.tool(cfg.cli.command) is not None,
        description=f"Install `{cfg.cli.command}` via nvm + npm",
    ))

    def install_system_packages() -> Receipt:
        step = "install-system-packages"
        update = ctx.apt(step, "update", "update")
        if update.failed:
            return update
        return ctx.apt(step, "install", "install", "-y", *cfg.system.packages)

    plan.add(Step(
        name="install-system-packages",
        action=install_system_packages,
        precondition=lambda: ctx.is_installed(cfg.system.packages),
        retries=retries,
        retry_delay=delay,
        description=f"apt-get install {len(cfg.system.packages)} packages",
    ))

    # ── Repository ──────────────────────────────────────────────

    def acquire_repository() -> Receipt:
        step = "acquire-repository"
        repo = cfg.repository
        if ctx.repo_path.is_dir():
            logger.warning("%s already exists, pulling latest changes", repo.directory)
            receipt = ctx.git(
                step, "pull", "pull",
                cwd=ctx.repo_path, remote=repo.remote, branch=repo.branch,
            )
            if receipt.failed:
                return Receipt.warning(
                    adapter="git",
                    action_id=f"{step}:pull",
                    error=f"Could not pull latest changes (authentication may be needed): {receipt.error}",
                )
            return receipt
        return ctx.git(step, "clone", "clone", cwd=ctx.workdir, url=repo.url, dest=repo.directory)

    plan.add(Step(
        name="acquire-repository",
        action=acquire_repository,
        retries=retries,
        retry_delay=delay,
        description=f"Clone {cfg.repository.url} or pull {cfg.repository.remote}/{cfg.repository.branch}",
    ))

    # ── Python environment ──────────────────────────────────────

    def create_virtualenv() -> Receipt:
        return ctx.shell(
            "create-virtualenv", "venv",
            [cfg.python.interpreter, "-m", "venv", cfg.python.venv_dir],
            cwd=ctx.repo_path,
        )

    plan.add(Step(
        name="create-virtualenv",
        action=create_virtualenv,
        precondition=lambda: ctx.venv_path.is_dir(),
        description=f"{cfg.python.interpreter} -m venv {cfg.python.venv_dir}",
    ))

    def install_dependencies() -> Receipt:
        step = "install-dependencies"
        pip = [str(ctx.venv_python), "-m", "pip"]
        repo_path = ctx.repo_path

        receipt = ctx.shell(step, "upgrade-pip", [*pip, "install", "--upgrade", "pip"], cwd=repo_path)
        if receipt.failed:
            return receipt

        requirements = repo_path / cfg.python.requirements_file
        if requirements.is_file():
            receipt = ctx.shell(step, "requirements", [*pip, "install", "-r", cfg.python.requirements_file], cwd=repo_path)
        else:
            logger.warning(
                "%s not found. Installing basic dependencies: %s",
                cfg.python.requirements_file, " ".join(cfg.python.fallback_packages),
            )
            receipt = ctx.shell(step, "fallback", [*pip, "install", *cfg.python.fallback_packages], cwd=repo_path)
        if receipt.failed:
            return receipt

        if (repo_path / "setup.py").is_file() or (repo_path / "pyproject.toml").is_file():
            receipt = ctx.shell(step, "editable", [*pip, "install", "-e", "."], cwd=repo_path)
        return receipt

    plan.add(Step(
        name="install-dependencies",
        action=install_dependencies,
        retries=retries,
        retry_delay=delay,
        description="Upgrade pip, install requirements, install the project in development mode",
    ))

    # ── Documents ───────────────────────────────────────────────

    def emit(step: str, generated: GeneratedFile) -> Receipt:
        return _written(step, write_generated(ctx.workdir, generated))

    plan.add(Step(
        name="write-context-document",
        action=lambda: emit("write-context-document", generate_context_document(cfg, ctx.workdir)),
        description=f"Write {cfg.repository.directory}/{cfg.documents.context_file}",
    ))
    plan.add(Step(
        name="write-auth-script",
        action=lambda: emit("write-auth-script", generate_auth_script(cfg)),
        description=f"Write {cfg.documents.auth_script}",
    ))
    plan.add(Step(
        name="write-quick-start",
        action=lambda: emit("write-quick-start", generate_quick_start(cfg)),
        description=f"Write {cfg.documents.quick_start_file}",
    ))

    def install_validation_script() -> Receipt:
        step = "install-validation-script"
        source = ctx.repo_path / cfg.documents.validation_source
        try:
            content = patch(source, validation_script_rules(cfg.repository.directory))
        except PatchSourceError as e:
            return Receipt.failure(
                adapter="template",
                action_id=f"{step}:patch",
                error=f"Validation script not found in repository: {e}",
            )
        return emit(step, GeneratedFile(
            path=cfg.documents.validation_script,
            content=content,
            executable=True,
            reason=f"Patched copy of {cfg.documents.validation_source}",
        ))

    plan.add(Step(
        name="install-validation-script",
        action=install_validation_script,
        soft=True,
        description=f"Copy and patch {cfg.documents.validation_source}",
    ))

    # ── Smoke test ──────────────────────────────────────────────

    def verify_environment() -> Receipt:
        step = "verify-environment"
        receipt = ctx.shell(
            step, "smoke-import",
            [str(ctx.venv_python), "-c", f"import {', '.join(cfg.python.smoke_imports)}"],
            cwd=ctx.repo_path,
        )
        if receipt.failed:
            return Receipt.failure(
                adapter="shell",
                action_id=f"{step}:smoke-import",
                error=(
                    "Python environment validation failed - may need manual dependency installation "
                    f"({receipt.error})"
                ),
            )
        return receipt

    plan.add(Step(
        name="verify-environment",
        action=verify_environment,
        soft=True,
        description=f"import {', '.join(cfg.python.smoke_imports)}",
    ))

    return plan


def run_provision(
    ctx: ProvisionContext,
    *,
    dry_run: bool = False,
    on_start=None,
    on_finish=None,
    persist: bool = True,
) -> ExecutionReport:
    """Run the master pipeline and record the outcome under ``.vmsetup/``."""
    plan = build_provision_plan(ctx)
    report = execute_steps(
        plan.steps,
        pipeline=plan.name,
        dry_run=dry_run,
        on_start=on_start,
        on_finish=on_finish,
        sleep=ctx.sleep,
    )
    if persist:
        record_run(ctx.workdir, ctx.config.project_name, report)
    return report
