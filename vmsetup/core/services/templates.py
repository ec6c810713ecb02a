"""
Template emitter — literal placeholder substitution and file writes.

Templates are plain text files shipped in ``vmsetup/templates/`` that
editors can open and syntax-highlight. Placeholders look like
``__PROJECT_NAME__`` and are replaced verbatim; no escaping is applied,
so substituted values must not contain anything the host format
interprets.

Every write overwrites the target. There is no backup.
"""

from __future__ import annotations

import logging
from pathlib import Path

from vmsetup.core.models.template import GeneratedFile

logger = logging.getLogger(__name__)

# ── Template directory ──────────────────────────────────────────────

TEMPLATES_DIR = Path(__file__).resolve().parents[2] / "templates"

EXECUTABLE_MODE = 0o755


def load_template(name: str) -> str:
    """Read a bundled template by file name."""
    return (TEMPLATES_DIR / name).read_text(encoding="utf-8")


def render(template: str, substitutions: dict[str, str] | None = None) -> str:
    """Substitute ``__KEY__`` placeholders.

    Keys may be given bare (``PROJECT_NAME``) or already wrapped
    (``__PROJECT_NAME__``). Unknown placeholders are left as they are.
    """
    content = template
    for key, value in (substitutions or {}).items():
        token = key if key.startswith("__") else f"__{key}__"
        content = content.replace(token, value)
    return content


def emit(
    path: Path,
    template: str,
    substitutions: dict[str, str] | None = None,
    *,
    executable: bool = False,
) -> GeneratedFile:
    """Render *template* and write it to *path*, replacing any existing file."""
    generated = GeneratedFile(
        path=str(path),
        content=render(template, substitutions),
        executable=executable,
    )
    write_generated(Path("."), generated)
    return generated


def write_generated(root: Path, generated: GeneratedFile) -> Path:
    """Write a GeneratedFile under *root* and return its absolute path.

    An absolute ``generated.path`` ignores *root*.
    """
    target = root / generated.path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(generated.content, encoding="utf-8")
    if generated.executable:
        target.chmod(EXECUTABLE_MODE)
    logger.debug("Wrote %s (%d bytes)", target, len(generated.content))
    return target
