"""
Git authentication — point the cloned repository's remote at a
token-bearing HTTPS URL and prove it works.

Pipeline:
    check-token-file → secure-token-file → check-repository
        → configure-remote → probe-remote

The token is read from a file the operator creates. Only its presence
is checked; a bad token surfaces at the probe. The token never reaches
logs or receipts: the git adapter redacts credentials in URLs.
"""

from __future__ import annotations

import logging
import stat
from typing import TYPE_CHECKING, Callable
from urllib.parse import quote, urlsplit

from vmsetup.core.engine.executor import ExecutionReport, execute_steps
from vmsetup.core.models.action import Receipt
from vmsetup.core.models.step import FailureKind, Step

if TYPE_CHECKING:
    from pathlib import Path

    from vmsetup.core.services.runtime import ProvisionContext

logger = logging.getLogger(__name__)

ADAPTER = "auth"
SECURE_MODE = 0o600
PROBE_FAILED = "Git authentication test failed. Please check your token."


# ── URL helpers ─────────────────────────────────────────────────────


def split_remote_url(url: str) -> tuple[str, str]:
    """Split an HTTP(S) remote into ``(scheme, host/path)``.

    Credentials already embedded in *url* are dropped.

    Raises:
        ValueError: For anything that is not an http or https URL.
    """
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ValueError(f"Token authentication needs an http(s) remote, got: {url}")
    host = parts.hostname
    if parts.port:
        host = f"{host}:{parts.port}"
    return parts.scheme, f"{host}{parts.path}"


def build_authenticated_url(url: str, username: str, token: str) -> str:
    """``https://<user>:<token>@<host>/<path>`` for *url*."""
    scheme, host_path = split_remote_url(url)
    return f"{scheme}://{quote(username, safe='')}:{quote(token, safe='')}@{host_path}"


# ── Token file ──────────────────────────────────────────────────────


def read_token(path: Path) -> str:
    return path.read_text(encoding="utf-8").strip()


def file_mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def is_secure(path: Path) -> bool:
    """True when *path* is readable and writable by its owner only."""
    return path.is_file() and file_mode(path) == SECURE_MODE


def token_remediation(token_file: str) -> str:
    return (
        f"GitHub token file not found: {token_file}\n"
        f"Create it with your Personal Access Token:\n"
        f"  echo 'your_token_here' > {token_file}\n"
        f"  chmod 600 {token_file}"
    )


# ── Steps ───────────────────────────────────────────────────────────


def build_auth_steps(ctx: ProvisionContext) -> list[Step]:
    """Ordered authentication steps for *ctx*."""
    cfg = ctx.config

    def check_token_file() -> Receipt:
        if not ctx.token_path.is_file():
            return Receipt.failure(
                ADAPTER, "check-token-file:exists",
                error=token_remediation(cfg.auth.token_file),
                failure_kind=FailureKind.PRECONDITION_MISSING,
            )
        return Receipt.success(ADAPTER, "check-token-file:exists", output=str(ctx.token_path))

    def secure_token_file() -> Receipt:
        current = file_mode(ctx.token_path)
        logger.warning(
            "Token file %s has mode %o, setting %o",
            cfg.auth.token_file, current, SECURE_MODE,
        )
        ctx.token_path.chmod(SECURE_MODE)
        return Receipt.success(
            ADAPTER, "secure-token-file:chmod",
            output=f"Permissions on {cfg.auth.token_file} set to 600",
            metadata={"previous_mode": oct(current)},
        )

    def check_repository() -> Receipt:
        if not ctx.repo_path.is_dir():
            return Receipt.failure(
                ADAPTER, "check-repository:exists",
                error=f"{cfg.repository.directory} directory not found. Run `vmsetup run` first.",
                failure_kind=FailureKind.PRECONDITION_MISSING,
            )
        return Receipt.success(ADAPTER, "check-repository:exists", output=str(ctx.repo_path))

    def configure_remote() -> Receipt:
        token = read_token(ctx.token_path)
        url = build_authenticated_url(cfg.repository.url, cfg.auth.username, token)
        return ctx.git(
            "configure-remote", "set-url", "set_remote_url",
            cwd=ctx.repo_path,
            url=url,
            remote=cfg.repository.remote,
        )

    def probe_remote() -> Receipt:
        receipt = ctx.git(
            "probe-remote", "ls-remote", "ls_remote",
            cwd=ctx.repo_path,
            remote=cfg.repository.remote,
        )
        if receipt.failed:
            logger.debug("ls-remote failed: %s", receipt.error)
            return Receipt.failure(
                ADAPTER, "probe-remote:ls-remote",
                error=PROBE_FAILED,
                metadata={"detail": receipt.error or ""},
            )
        return Receipt.success(
            ADAPTER, "probe-remote:ls-remote",
            output="Git authentication configured successfully",
        )

    return [
        Step(
            name="check-token-file",
            action=check_token_file,
            description=f"Require {cfg.auth.token_file} in the work directory",
        ),
        Step(
            name="secure-token-file",
            action=secure_token_file,
            precondition=lambda: is_secure(ctx.token_path),
            description="Restrict the token file to mode 600",
        ),
        Step(
            name="check-repository",
            action=check_repository,
            description=f"Require the {cfg.repository.directory} checkout",
        ),
        Step(
            name="configure-remote",
            action=configure_remote,
            description=f"Set {cfg.repository.remote} to a token-bearing URL",
        ),
        Step(
            name="probe-remote",
            action=probe_remote,
            description=f"git ls-remote {cfg.repository.remote}",
        ),
    ]


def configure_auth(
    ctx: ProvisionContext,
    *,
    dry_run: bool = False,
    on_start: Callable | None = None,
    on_finish: Callable | None = None,
) -> ExecutionReport:
    """Run the authentication pipeline."""
    return execute_steps(
        build_auth_steps(ctx),
        pipeline="auth",
        dry_run=dry_run,
        on_start=on_start,
        on_finish=on_finish,
    )
