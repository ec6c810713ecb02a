"""
Remote installer verification.

Installers fetched over the network are downloaded to a tempfile, hashed,
optionally checked against a pinned SHA256, and only then executed from
that file. Nothing fetched is ever piped straight into a shell.
"""

from __future__ import annotations

import hashlib
import logging
import os
import subprocess
import tempfile

from vmsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)

ADAPTER = "download"


def download_and_verify_script(
    url: str,
    expected_sha256: str | None = None,
    *,
    action_id: str = "download",
    timeout: int = 60,
) -> Receipt:
    """Download *url* to a private tempfile and verify it.

    Returns:
        A success receipt whose ``output`` is the local script path and
        whose metadata carries ``sha256`` and ``size_bytes``; or a failure
        receipt (download error, timeout, checksum mismatch).
    """
    try:
        result = subprocess.run(
            ["curl", "-fsSL", "--max-time", str(timeout), url],
            capture_output=True, timeout=timeout + 5,
        )
    except subprocess.TimeoutExpired:
        return Receipt.failure(ADAPTER, action_id, f"Download timed out after {timeout}s")
    except OSError as e:
        return Receipt.failure(ADAPTER, action_id, f"Download error: {e}")

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")[:200]
        return Receipt.failure(
            ADAPTER, action_id, f"Download failed (exit {result.returncode}): {stderr}",
        )

    content = result.stdout
    actual = hashlib.sha256(content).hexdigest()

    if expected_sha256:
        expected = expected_sha256.removeprefix("sha256:").lower()
        if actual != expected:
            return Receipt.failure(
                ADAPTER,
                action_id,
                f"SHA256 mismatch for {url}: expected {expected}, got {actual}",
                metadata={"expected_sha256": expected, "actual_sha256": actual},
            )
    else:
        logger.warning("No checksum pinned for %s (sha256=%s); running unverified", url, actual)

    fd, path = tempfile.mkstemp(suffix=".sh", prefix="vmsetup_installer_")
    try:
        os.write(fd, content)
    finally:
        os.close(fd)
    os.chmod(path, 0o700)

    return Receipt.success(
        ADAPTER,
        action_id,
        output=path,
        metadata={"sha256": actual, "size_bytes": len(content), "url": url},
    )


def cleanup_script(path: str) -> None:
    """Remove a downloaded script, ignoring a file that is already gone."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
