"""
Quick start guide generator.
"""

from __future__ import annotations

from vmsetup.core.models.settings import ProvisionConfig
from vmsetup.core.models.template import GeneratedFile
from vmsetup.core.services.generators import placeholders
from vmsetup.core.services.templates import load_template, render


def generate_quick_start(config: ProvisionConfig) -> GeneratedFile:
    return GeneratedFile(
        path=config.documents.quick_start_file,
        content=render(load_template("quick_start.md"), placeholders(config)),
        reason="Operator quick start guide",
    )


def render_next_steps(config: ProvisionConfig) -> str:
    """Operator checklist printed after a successful ``vmsetup run``."""
    return render(load_template("next_steps.txt"), placeholders(config))
