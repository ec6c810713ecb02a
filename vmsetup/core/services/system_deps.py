"""
System package probes (Debian/Ubuntu).

Read-only: asks dpkg whether a package is installed. Anything that
prevents a definite answer counts as "not installed", so the install
step runs and apt reports the real problem.
"""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)


def is_pkg_installed(pkg: str) -> bool:
    """Check a single package with ``dpkg-query -W -f='${Status}'``."""
    try:
        r = subprocess.run(
            ["dpkg-query", "-W", "-f=${Status}", pkg],
            capture_output=True, text=True, timeout=10,
        )
    except FileNotFoundError:
        logger.warning("dpkg-query not found (checking %s)", pkg)
        return False
    except subprocess.TimeoutExpired:
        logger.warning("Timeout checking package %s", pkg)
        return False
    except OSError as exc:
        logger.warning("OS error checking package %s: %s", pkg, exc)
        return False
    return "install ok installed" in r.stdout


def check_packages(packages: list[str]) -> dict[str, list[str]]:
    """Split *packages* into installed and missing.

    Returns:
        {"missing": [...], "installed": [...]}
    """
    missing: list[str] = []
    installed: list[str] = []
    for pkg in packages:
        (installed if is_pkg_installed(pkg) else missing).append(pkg)
    return {"missing": missing, "installed": installed}


def packages_installed(packages: list[str]) -> bool:
    """True when every package in *packages* is installed."""
    missing = check_packages(packages)["missing"]
    if missing:
        logger.debug("Missing packages: %s", ", ".join(missing))
    return not missing
