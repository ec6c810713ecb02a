"""
CLI tool installer — apt bootstrap, nvm, Node.js LTS, then the npm
package providing the command.

Every tool is located by path after its installer runs (see
``services.tooling``). A tool that still cannot be found is reported as
``tool_not_found``, separate from the installer itself failing.
"""

from __future__ import annotations

import logging

from vmsetup.core.engine.executor import ExecutionReport, execute_steps
from vmsetup.core.models.action import Receipt
from vmsetup.core.models.step import FailureKind, Step
from vmsetup.core.services.runtime import ProvisionContext
from vmsetup.core.services.script_verify import cleanup_script
from vmsetup.core.services.tooling import bin_dir_of, nvm_dir, nvm_script

logger = logging.getLogger(__name__)

PIPELINE = "install-cli"

_NVM_USE_LTS = '. "$NVM_DIR/nvm.sh" && nvm install --lts && nvm use --lts'


def _not_found(step: str, what: str, hint: str) -> Receipt:
    return Receipt.failure(
        adapter="tooling",
        action_id=f"{step}:resolve",
        error=f"{what} could not be found after installation. {hint}",
        failure_kind=FailureKind.TOOL_NOT_FOUND,
    )


def build_install_cli_steps(ctx: ProvisionContext) -> list[Step]:
    cfg = ctx.config
    retries = cfg.execution.network_retries
    delay = cfg.execution.retry_delay

    def update_packages() -> Receipt:
        return ctx.apt("update-packages", "update", "update")

    def upgrade_packages() -> Receipt:
        return ctx.apt("upgrade-packages", "upgrade", "upgrade", "-y")

    def install_bootstrap() -> Receipt:
        return ctx.apt(
            "install-bootstrap-packages", "install",
            "install", "-y", *cfg.cli.bootstrap_packages,
        )

    def install_nvm() -> Receipt:
        step = "install-nvm"
        download = ctx.fetch_script(
            cfg.cli.nvm_installer_url,
            cfg.cli.nvm_installer_sha256,
            action_id=f"{step}:download",
        )
        if download.failed:
            return download

        try:
            receipt = ctx.shell(step, "run-installer", ["bash", download.output])
        finally:
            cleanup_script(download.output)

        if receipt.failed:
            return receipt
        if not nvm_script().is_file():
            return _not_found(step, f"nvm ({nvm_script()})", "Check the nvm installer output.")
        return receipt

    def install_node() -> Receipt:
        step = "install-node"
        receipt = ctx.shell(
            step, "nvm-install-lts",
            ["bash", "-c", _NVM_USE_LTS],
            env={"NVM_DIR": str(nvm_dir())},
        )
        if receipt.failed:
            return receipt

        node = ctx.tool("node", refresh=True)
        npm = ctx.tool("npm", refresh=True)
        if not node or not npm:
            return _not_found(step, "Node.js or npm", "Check the `nvm install --lts` output.")
        logger.info("Node.js at %s, npm at %s", node, npm)
        return receipt

    def install_package() -> Receipt:
        step = "install-cli-package"
        npm = ctx.tool("npm")
        if not npm:
            return _not_found(step, "npm", "Install Node.js first.")

        receipt = ctx.shell(
            step, "npm-install",
            [npm, "install", "-g", cfg.cli.npm_package],
            env={"PATH": f"{bin_dir_of(npm)}:$PATH"},
        )
        if receipt.failed:
            return receipt

        command = ctx.tool(cfg.cli.command, refresh=True)
        if not command:
            return _not_found(
                step, f"`{cfg.cli.command}`",
                f"Reopen the shell or add {bin_dir_of(npm)} to PATH.",
            )
        return Receipt.success(
            adapter="tooling",
            action_id=f"{step}:resolve",
            output=f"{cfg.cli.command} installed at {command}",
        )

    steps = [
        Step(
            name="update-packages",
            action=update_packages,
            retries=retries,
            retry_delay=delay,
            description="apt-get update",
        ),
    ]
    if cfg.system.upgrade:
        steps.append(Step(
            name="upgrade-packages",
            action=upgrade_packages,
            retries=retries,
            retry_delay=delay,
            description="apt-get upgrade -y",
        ))
    steps += [
        Step(
            name="install-bootstrap-packages",
            action=install_bootstrap,
            precondition=lambda: ctx.is_installed(cfg.cli.bootstrap_packages),
            retries=retries,
            retry_delay=delay,
            description=f"apt-get install {' '.join(cfg.cli.bootstrap_packages)}",
        ),
        Step(
            name="install-nvm",
            action=install_nvm,
            precondition=lambda: nvm_script().is_file(),
            retries=retries,
            retry_delay=delay,
            description=f"Download, verify and run {cfg.cli.nvm_installer_url}",
        ),
        Step(
            name="install-node",
            action=install_node,
            retries=retries,
            retry_delay=delay,
            description="nvm install --lts && nvm use --lts",
        ),
        Step(
            name="install-cli-package",
            action=install_package,
            precondition=lambda: ctx.tool(cfg.cli.command) is not None,
            retries=retries,
            retry_delay=delay,
            description=f"npm install -g {cfg.cli.npm_package}",
        ),
    ]
    return steps


def run_install_cli(
    ctx: ProvisionContext,
    *,
    dry_run: bool = False,
    on_start=None,
    on_finish=None,
) -> ExecutionReport:
    """Run the installer sub-pipeline."""
    return execute_steps(
        build_install_cli_steps(ctx),
        pipeline=PIPELINE,
        dry_run=dry_run,
        on_start=on_start,
        on_finish=on_finish,
        sleep=ctx.sleep,
    )


def install_cli_receipt(ctx: ProvisionContext, **kwargs) -> Receipt:
    """Run the sub-pipeline and fold its report into one receipt."""
    report = run_install_cli(ctx, **kwargs)
    failed = report.failed_result
    if failed is not None:
        return Receipt.failure(
            adapter=PIPELINE,
            action_id=f"{PIPELINE}:{failed.step}",
            error=f"{failed.step}: {failed.error}",
            failure_kind=failed.failure_kind,
            metadata={"report": report.to_dict()},
        )
    return Receipt.success(
        adapter=PIPELINE,
        action_id=f"{PIPELINE}:done",
        output=f"{ctx.config.cli.command} available at {ctx.tools.get(ctx.config.cli.command, '?')}",
        metadata={"report": report.to_dict()},
    )
