"""
Generators — produce the documents and helper scripts written next to
the cloned repository.

Each generator module exposes a ``generate_*()`` function that returns
a ``GeneratedFile`` with a path relative to the work directory.
"""

from __future__ import annotations

from vmsetup.core.models.settings import ProvisionConfig
from vmsetup.core.services.git_auth import split_remote_url


def placeholders(config: ProvisionConfig) -> dict[str, str]:
    """Substitution table shared by every bundled template."""
    try:
        scheme, host_path = split_remote_url(config.repository.url)
    except ValueError:
        # SSH remotes: the auth script is meaningless but still renders
        scheme, host_path = "https", config.repository.url
    return {
        "PROJECT_NAME": config.project_name,
        "REPO_DIR": config.repository.directory,
        "REMOTE": config.repository.remote,
        "VENV_DIR": config.python.venv_dir,
        "CLI_COMMAND": config.cli.command,
        "TOKEN_FILE": config.auth.token_file,
        "GIT_USERNAME": config.auth.username,
        "URL_SCHEME": scheme,
        "URL_HOST_PATH": host_path,
        "CONTEXT_FILE": config.documents.context_file,
        "AUTH_SCRIPT": config.documents.auth_script,
        "QUICK_START_FILE": config.documents.quick_start_file,
    }
