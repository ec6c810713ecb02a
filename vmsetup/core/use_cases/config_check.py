"""
Config check use case — validate vmsetup.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from vmsetup.core.config.loader import ConfigError, find_config_file, load_config
from vmsetup.core.models.settings import ProvisionConfig
from vmsetup.core.services.generators.context_doc import context_template_path
from vmsetup.core.services.git_auth import split_remote_url


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: ProvisionConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "project_name": self.config.project_name if self.config else None,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def check_config(config_path: Path | None = None, workdir: Path | None = None) -> ConfigCheckResult:
    """Validate the configuration and flag settings that will bite at run time.

    Without a config file the built-in defaults are checked. *workdir*
    (default: cwd) is the directory `vmsetup run` would provision.
    """
    result = ConfigCheckResult()
    if config_path is None:
        config_path = find_config_file()
    result.config_path = config_path

    try:
        config = load_config(config_path, search=False)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.config = config

    if config_path is None:
        result.warnings.append("No vmsetup.yml found; using built-in defaults.")

    try:
        split_remote_url(config.repository.url)
    except ValueError:
        result.warnings.append(
            f"repository.url is not an http(s) URL; `vmsetup auth` cannot configure it: {config.repository.url}"
        )

    if not config.cli.nvm_installer_sha256:
        result.warnings.append("cli.nvm_installer_sha256 is not set; the nvm installer will run unverified.")

    if config.execution.allow_root:
        result.warnings.append("execution.allow_root is set; provisioning as root is allowed.")

    template = context_template_path(config, workdir or Path.cwd())
    if template is not None and not template.is_file():
        result.warnings.append(f"documents.context_template not found: {template}")

    if not config.system.packages:
        result.warnings.append("system.packages is empty.")

    result.valid = True
    return result
