"""
Tests for dpkg package probes.
"""

import subprocess

import pytest

from vmsetup.core.services import system_deps


def _fake_dpkg(installed: set[str]):
    def run(argv, **kwargs):
        pkg = argv[-1]
        status = "install ok installed" if pkg in installed else "unknown ok not-installed"
        return subprocess.CompletedProcess(argv, 0 if pkg in installed else 1, stdout=status, stderr="")
    return run


class TestPackages:
    def test_check_packages_split(self, monkeypatch):
        monkeypatch.setattr(system_deps.subprocess, "run", _fake_dpkg({"git", "curl"}))
        result = system_deps.check_packages(["git", "jq", "curl"])
        assert result == {"missing": ["jq"], "installed": ["git", "curl"]}
        assert not system_deps.packages_installed(["git", "jq"])
        assert system_deps.packages_installed(["git", "curl"])

    @pytest.mark.parametrize("exc", [
        FileNotFoundError("dpkg-query"),
        subprocess.TimeoutExpired("dpkg-query", 10),
        PermissionError("denied"),
    ])
    def test_probe_errors_mean_missing(self, monkeypatch, exc):
        def run(argv, **kwargs):
            raise exc
        monkeypatch.setattr(system_deps.subprocess, "run", run)
        assert system_deps.is_pkg_installed("git") is False

    def test_empty_list_is_installed(self):
        assert system_deps.packages_installed([])
