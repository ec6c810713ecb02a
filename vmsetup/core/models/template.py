"""
Generated file model — used by all generators.
"""

from __future__ import annotations

from pydantic import BaseModel


class GeneratedFile(BaseModel):
    """A file produced by a generator.

    Attributes:
        path:       Path relative to the directory it is written into.
        content:    Full file content.
        executable: Whether to set mode 0o755 after writing.
        reason:     Why this file was generated.
    """

    path: str
    content: str
    executable: bool = False
    reason: str = ""
