"""
Configuration loader — reads vmsetup.yml into a ProvisionConfig.

The file is optional: without one, the built-in defaults provision the
LFG-S project. A file that exists but does not validate is an error.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from vmsetup.core.models.settings import ProvisionConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "vmsetup.yml"


class ConfigError(Exception):
    """Raised when the configuration file is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for vmsetup.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to vmsetup.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None, *, search: bool = True) -> ProvisionConfig:
    """Load and validate the provisioning configuration.

    Args:
        path: Explicit path to vmsetup.yml. If None and *search* is set,
            searches upward from the current directory.
        search: Whether to search when *path* is None.

    Returns:
        Validated ProvisionConfig (defaults when no file is found).

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file() if search else None
        if path is None:
            logger.debug("No %s found, using built-in defaults", CONFIG_FILE)
            return ProvisionConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = ProvisionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config for '%s' from %s", config.project_name, path)
    return config


def dump_config(config: ProvisionConfig) -> str:
    """Render a config back to YAML (used by ``vmsetup config show``)."""
    return yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False)
