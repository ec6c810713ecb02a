"""
Auth helper script generator.

The script repeats what ``vmsetup auth`` does, for operators who would
rather run a shell script on a machine without vmsetup installed. The
token is read at run time; it is never baked into the file.
"""

from __future__ import annotations

from vmsetup.core.models.settings import ProvisionConfig
from vmsetup.core.models.template import GeneratedFile
from vmsetup.core.services.generators import placeholders
from vmsetup.core.services.templates import load_template, render


def generate_auth_script(config: ProvisionConfig) -> GeneratedFile:
    """Render ``setup_git_auth.sh`` (mode 0755)."""
    return GeneratedFile(
        path=config.documents.auth_script,
        content=render(load_template("setup_git_auth.sh"), placeholders(config)),
        executable=True,
        reason="Token-based git remote configuration",
    )
