"""
Git adapter — version control operations.

Provides the git operations the pipeline needs (clone, pull, remote
URL rewrite, ls-remote probe) through the adapter protocol. Uses the
git CLI. Credentials embedded in URLs are redacted from every receipt.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import time

from vmsetup.adapters.base import Adapter, ExecutionContext
from vmsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)

_CREDENTIALS_RE = re.compile(r"(https?://)[^/@\s]+@")


def redact_url(text: str) -> str:
    """Replace ``user:token@`` in any URL inside *text* with ``***@``."""
    return _CREDENTIALS_RE.sub(r"\1***@", text)


class GitAdapter(Adapter):
    """Git version control operations.

    Action params:
        operation (str): One of 'clone', 'pull', 'set_remote_url',
                         'ls_remote'.
        url (str): Repository URL (for 'clone' and 'set_remote_url').
        dest (str): Target directory (for 'clone').
        remote (str): Remote name (default: 'origin').
        branch (str): Branch to pull (for 'pull', optional).
        timeout (int): Timeout in seconds (default: 600).
    """

    _VALID_OPS = {"clone", "pull", "set_remote_url", "ls_remote"}

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in self._VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(self._VALID_OPS))}"

        if operation in ("clone", "set_remote_url") and not context.action.params.get("url"):
            return False, f"Missing required param: 'url' for {operation} operation"

        if operation == "clone" and not context.action.params.get("dest"):
            return False, "Missing required param: 'dest' for clone operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        operation = params["operation"]
        remote = params.get("remote", "origin")

        if operation == "clone":
            args = ["clone", params["url"], params["dest"]]
        elif operation == "pull":
            args = ["pull", remote]
            if params.get("branch"):
                args.append(params["branch"])
        elif operation == "set_remote_url":
            args = ["remote", "set-url", remote, params["url"]]
        else:
            args = ["ls-remote", remote]

        return self._run(context, args)

    # ── Helpers ─────────────────────────────────────────────────

    def _run(self, ctx: ExecutionContext, args: list[str]) -> Receipt:
        """Run a git command and wrap the outcome in a receipt."""
        timeout = ctx.action.params.get("timeout", 600)
        command = redact_url(" ".join(["git", *args]))
        # Never prompt for credentials; a hung prompt would block the run
        env_prompt = {"GIT_TERMINAL_PROMPT": "0"}

        logger.debug("Executing: %s (cwd=%s)", command, ctx.working_dir)
        start = time.monotonic()
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=ctx.working_dir,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=_merged_env(env_prompt),
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Command timed out after {timeout}s",
                metadata={"command": command},
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Git error: {redact_url(str(e))}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=redact_url(result.stdout.strip()),
                duration_ms=elapsed_ms,
                metadata={"command": command, "return_code": 0},
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=ctx.action.id,
            error=redact_url(result.stderr.strip()) or f"git {args[0]} exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={"command": command, "return_code": result.returncode},
        )


def _merged_env(overrides: dict[str, str]) -> dict[str, str]:
    return {**os.environ, **overrides}
