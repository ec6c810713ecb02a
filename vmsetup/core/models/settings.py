"""
ProvisionConfig — everything the pipeline needs to know about the target VM.

Defaults reproduce the LFG-S setup, so running without a ``vmsetup.yml``
provisions that project. Unknown keys are rejected.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RepositoryConfig(_Section):
    """Repository to clone into the work directory."""

    url: str = "https://github.com/girishlikesbutter/LFGs.git"
    directory: str = "LFG-S"
    branch: str = "master"
    remote: str = "origin"


class SystemConfig(_Section):
    """System packages installed through apt."""

    packages: list[str] = Field(default_factory=lambda: [
        "curl",
        "git",
        "python3",
        "python3-pip",
        "python3-venv",
        "python3-dev",
        "build-essential",
        "libffi-dev",
        "libssl-dev",
        "jq",
        "tree",
        "htop",
    ])
    use_sudo: bool = True
    upgrade: bool = True


class CliToolConfig(_Section):
    """The CLI tool installed through nvm + npm."""

    command: str = "claude"
    npm_package: str = "@anthropic-ai/claude-code"
    nvm_installer_url: str = "https://raw.githubusercontent.com/nvm-sh/nvm/v0.39.7/install.sh"
    nvm_installer_sha256: str | None = None
    bootstrap_packages: list[str] = Field(default_factory=lambda: [
        "curl",
        "git",
        "python3",
        "python3-pip",
        "python3-venv",
    ])


class PythonEnvConfig(_Section):
    """Virtual environment and dependency installation."""

    interpreter: str = "python3"
    venv_dir: str = "venv"
    requirements_file: str = "requirements.txt"
    fallback_packages: list[str] = Field(default_factory=lambda: [
        "numpy",
        "pandas",
        "matplotlib",
        "torch",
        "scikit-learn",
    ])
    smoke_imports: list[str] = Field(default_factory=lambda: ["numpy", "torch"])


class AuthConfig(_Section):
    """Token-based HTTPS authentication for the cloned repository."""

    token_file: str = ".github_token"
    username: str = "girishlikesbutter"


class DocumentsConfig(_Section):
    """Generated documents and helper scripts."""

    context_file: str = "CLAUDE_CONTEXT.md"
    quick_start_file: str = "QUICK_START.md"
    auth_script: str = "setup_git_auth.sh"
    validation_source: str = "scripts/setup/validate_setup.sh"
    validation_script: str = "validate_setup.sh"
    context_template: str | None = None   # operator override for the context text


class ExecutionConfig(_Section):
    """Timeouts and retry budget."""

    command_timeout: int = 1800
    network_retries: int = 2
    retry_delay: float = 2.0
    allow_root: bool = False


class ProvisionConfig(_Section):
    """Root configuration model — loaded from vmsetup.yml."""

    project_name: str = "LFG-S"
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)
    cli: CliToolConfig = Field(default_factory=CliToolConfig)
    python: PythonEnvConfig = Field(default_factory=PythonEnvConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    documents: DocumentsConfig = Field(default_factory=DocumentsConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
