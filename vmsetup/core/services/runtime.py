"""
ProvisionContext — everything a step needs at run time.

Steps are closures over one context: the loaded config, the work
directory, the adapter registry, and the probes used by preconditions.
Probes are plain callables so tests can swap them out.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from vmsetup.adapters.registry import AdapterRegistry
from vmsetup.core.models.action import Action, Receipt
from vmsetup.core.models.settings import ProvisionConfig
from vmsetup.core.services.script_verify import download_and_verify_script
from vmsetup.core.services.system_deps import packages_installed
from vmsetup.core.services.tooling import resolve_tool


@dataclass
class ProvisionContext:
    """Run-time context shared by every step of a pipeline."""

    config: ProvisionConfig
    workdir: Path
    registry: AdapterRegistry
    tools: dict[str, str] = field(default_factory=dict)
    resolve_tool: Callable[[str], str | None] = resolve_tool
    is_installed: Callable[[list[str]], bool] = packages_installed
    fetch_script: Callable[..., Receipt] = download_and_verify_script
    sleep: Callable[[float], None] = time.sleep

    # ── Paths ───────────────────────────────────────────────────

    @property
    def repo_path(self) -> Path:
        return self.workdir / self.config.repository.directory

    @property
    def venv_path(self) -> Path:
        return self.repo_path / self.config.python.venv_dir

    @property
    def venv_python(self) -> Path:
        return self.venv_path / "bin" / "python"

    @property
    def token_path(self) -> Path:
        return self.workdir / self.config.auth.token_file

    # ── Tools ───────────────────────────────────────────────────

    def tool(self, name: str, *, refresh: bool = False) -> str | None:
        """Resolve *name* once and remember where it was found."""
        if not refresh and name in self.tools:
            return self.tools[name]
        path = self.resolve_tool(name)
        if path:
            self.tools[name] = path
        else:
            self.tools.pop(name, None)
        return path

    # ── Dispatch ────────────────────────────────────────────────

    def run(
        self,
        step: str,
        label: str,
        adapter: str,
        *,
        cwd: Path | None = None,
        **params: Any,
    ) -> Receipt:
        """Execute one adapter action on behalf of *step*."""
        action = Action(
            id=f"{step}:{label}",
            name=label,
            adapter=adapter,
            params=params,
            for_step=step,
        )
        return self.registry.execute_action(
            action,
            workdir=str(self.workdir),
            cwd=str(cwd) if cwd else None,
        )

    def shell(
        self,
        step: str,
        label: str,
        argv: list[str],
        *,
        cwd: Path | None = None,
        sudo: bool = False,
        env: dict[str, str] | None = None,
    ) -> Receipt:
        params: dict[str, Any] = {
            "argv": argv,
            "timeout": self.config.execution.command_timeout,
        }
        if sudo:
            params["sudo"] = True
        if env:
            params["env"] = env
        return self.run(step, label, "shell", cwd=cwd, **params)

    def git(self, step: str, label: str, operation: str, *, cwd: Path | None = None, **params: Any) -> Receipt:
        return self.run(
            step, label, "git",
            cwd=cwd,
            operation=operation,
            timeout=self.config.execution.command_timeout,
            **params,
        )

    def apt(self, step: str, label: str, *args: str) -> Receipt:
        """``apt-get <args>`` without prompts, through sudo when configured."""
        argv = ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", *args]
        return self.shell(step, label, argv, sudo=self.config.system.use_sudo)
