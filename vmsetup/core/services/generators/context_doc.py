"""
Context document generator — the project briefing written inside the
cloned repository for the coding assistant to read first.
"""

from __future__ import annotations

import logging
from pathlib import Path

from vmsetup.core.models.settings import ProvisionConfig
from vmsetup.core.models.template import GeneratedFile
from vmsetup.core.services.generators import placeholders
from vmsetup.core.services.templates import load_template, render

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "context.md"


def context_template_path(config: ProvisionConfig, workdir: Path) -> Path | None:
    """Operator context template, resolved against *workdir*; None when unset."""
    override = config.documents.context_template
    if not override:
        return None
    return workdir / override


def generate_context_document(config: ProvisionConfig, workdir: Path) -> GeneratedFile:
    """Render the context document.

    ``documents.context_template`` replaces the bundled text with an
    operator-supplied file.
    """
    source = context_template_path(config, workdir)
    if source is not None:
        logger.info("Using context template %s", source)
        template = source.read_text(encoding="utf-8")
    else:
        template = load_template(DEFAULT_TEMPLATE)

    return GeneratedFile(
        path=f"{config.repository.directory}/{config.documents.context_file}",
        content=render(template, placeholders(config)),
        reason=f"Project context for {config.project_name}",
    )
