"""
Shell command adapter — run a command and capture its output.

Commands are argv lists, never shell strings, so substituted paths
cannot break quoting. Every command runs with a timeout.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from vmsetup.adapters.base import Adapter, ExecutionContext
from vmsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1800

# Keep receipts small; installers are chatty
_OUTPUT_TAIL = 2000


class ShellCommandAdapter(Adapter):
    """Execute commands and capture output.

    Action params:
        argv (list[str]): The command to execute.
        sudo (bool): Prefix with ``sudo`` unless already root (default: False).
        env (dict[str, str]): Extra environment variables, ``$VAR`` expanded.
        timeout (int): Timeout in seconds (default: 1800).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.action.params.get("argv")
        if not argv:
            return False, "Missing required param: 'argv'"
        if not isinstance(argv, list):
            return False, "Param 'argv' must be a list of strings"

        cwd = context.working_dir
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = [str(a) for a in context.action.params["argv"]]
        timeout = context.action.params.get("timeout", DEFAULT_TIMEOUT)
        cwd = context.working_dir

        if context.action.params.get("sudo") and os.geteuid() != 0:
            argv = ["sudo", *argv]

        env = os.environ.copy()
        for key, value in context.action.params.get("env", {}).items():
            env[key] = os.path.expandvars(value)

        command = " ".join(argv)
        logger.debug("Executing: %s (cwd=%s)", command, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                metadata={"command": command, "timeout": timeout},
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command not found: {argv[0]}",
                metadata={"command": command},
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = result.stdout.strip()[-_OUTPUT_TAIL:]
        stderr = result.stderr.strip()[-_OUTPUT_TAIL:]

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                duration_ms=elapsed_ms,
                metadata={
                    "command": command,
                    "return_code": result.returncode,
                    "stderr": stderr,
                },
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={
                "command": command,
                "return_code": result.returncode,
                "stdout": output,
            },
        )
