"""
Logging configuration — central setup for the CLI.

Called once at startup by vmsetup.main. Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  VMSETUP_LOG_LEVEL env var  >  WARNING (default)

Optional file output via VMSETUP_LOG_FILE / VMSETUP_LOG_FILE_LEVEL.

Console records carry the same ``[INFO]`` / ``[WARNING]`` / ``[ERROR]``
tags as the CLI's status lines. Every handler redacts credentials that
appear inside URLs.
"""

from __future__ import annotations

import logging
import sys

import click

from vmsetup.adapters.vcs.git import redact_url

# ── Format strings ──────────────────────────────────────────────

_FMT_CONSOLE = "%(tag)s %(message)s"
_FMT_DEBUG = "%(asctime)s %(tag)s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

_FMT_FILE = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_TAG_COLORS = {
    "DEBUG": ("DEBUG", "white"),
    "INFO": ("INFO", "blue"),
    "WARNING": ("WARNING", "yellow"),
    "ERROR": ("ERROR", "red"),
    "CRITICAL": ("ERROR", "red"),
}

_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


class RedactingFilter(logging.Filter):
    """Strip ``user:token@`` from URLs before a record is emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_url(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class StatusFormatter(logging.Formatter):
    """Prefix records with a colored ``[LEVEL]`` tag."""

    def __init__(self, fmt: str, datefmt: str | None = None, color: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        label, color = _TAG_COLORS.get(record.levelname, (record.levelname, "white"))
        tag = f"[{label}]"
        record.tag = click.style(tag, fg=color) if self._color else tag
        return super().format(record)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
    color: bool | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
        quiet_third_party: Keep noisy third-party loggers at WARNING
            unless we're at DEBUG level.
        color: Force colored tags on or off (default: only on a TTY).
    """
    numeric_level = _parse_level(level)
    if color is None:
        color = sys.stderr.isatty()

    redactor = RedactingFilter()

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        formatter = StatusFormatter(_FMT_DEBUG, datefmt=_DATEFMT_DEBUG, color=color)
    else:
        formatter = StatusFormatter(_FMT_CONSOLE, color=color)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(formatter)
    console.addFilter(redactor)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        fh.addFilter(redactor)
        root.addHandler(fh)

    root.setLevel(effective_level)

    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
