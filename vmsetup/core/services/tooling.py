"""
Tool resolution — where a command lives, as an explicit path.

nvm only puts node on PATH for shells that sourced ``nvm.sh``. We never
source anything; instead a command is looked up on PATH first and then
in nvm's per-version bin directories, newest version first.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)")


def nvm_dir() -> Path:
    """``$NVM_DIR``, or ``~/.nvm`` when unset."""
    env = os.environ.get("NVM_DIR")
    if env:
        return Path(env)
    return Path.home() / ".nvm"


def nvm_script() -> Path:
    return nvm_dir() / "nvm.sh"


def _version_key(path: Path) -> tuple[int, int, int]:
    m = _VERSION_RE.match(path.name)
    if not m:
        return (0, 0, 0)
    return (int(m.group(1)), int(m.group(2)), int(m.group(3)))


def nvm_bin_dirs() -> list[Path]:
    """Node bin directories installed by nvm, newest first."""
    versions = nvm_dir() / "versions" / "node"
    if not versions.is_dir():
        return []
    dirs = [v / "bin" for v in versions.iterdir() if (v / "bin").is_dir()]
    return sorted(dirs, key=lambda d: _version_key(d.parent), reverse=True)


def resolve_tool(name: str) -> str | None:
    """Absolute path of *name*, or None if it cannot be found."""
    found = shutil.which(name)
    if found:
        return found

    for bin_dir in nvm_bin_dirs():
        candidate = bin_dir / name
        if candidate.is_file() and os.access(candidate, os.X_OK):
            logger.debug("Resolved %s under nvm: %s", name, candidate)
            return str(candidate)

    return None


def bin_dir_of(tool_path: str) -> str:
    """Directory holding a resolved tool, for prepending to PATH."""
    return str(Path(tool_path).parent)
