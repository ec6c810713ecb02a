"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from vmsetup.adapters.mock import MockAdapter
from vmsetup.adapters.registry import AdapterRegistry
from vmsetup.core.models.settings import ExecutionConfig, ProvisionConfig
from vmsetup.core.services.runtime import ProvisionContext


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def config() -> ProvisionConfig:
    """Default config, allowed to run as root (CI containers often are)."""
    return ProvisionConfig(execution=ExecutionConfig(allow_root=True, network_retries=1, retry_delay=0.0))


@pytest.fixture
def shell() -> MockAdapter:
    return MockAdapter("shell")


@pytest.fixture
def git() -> MockAdapter:
    return MockAdapter("git")


@pytest.fixture
def registry(shell: MockAdapter, git: MockAdapter) -> AdapterRegistry:
    """Registry whose shell and git adapters are mocks."""
    reg = AdapterRegistry()
    reg.register(shell)
    reg.register(git)
    return reg


@pytest.fixture
def probes() -> dict:
    """Probes for a machine where every tool and package is present."""
    return {
        "resolve_tool": lambda name: f"/usr/bin/{name}",
        "is_installed": lambda packages: True,
        "sleep": lambda seconds: None,
    }


@pytest.fixture
def make_ctx(tmp_path: Path, config: ProvisionConfig, registry: AdapterRegistry, probes: dict):
    """Factory for a ProvisionContext rooted at tmp_path."""

    def _make(**overrides) -> ProvisionContext:
        kwargs = {"config": config, "workdir": tmp_path, "registry": registry, **probes}
        kwargs.update(overrides)
        return ProvisionContext(**kwargs)

    return _make
