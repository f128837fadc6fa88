"""
Configuration loader — reads depsync.yml into a ProjectConfig.

The config file is optional: a project with only a Depfile runs with
default settings rooted at the current directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from depsync.core.models.project import ProjectConfig

logger = logging.getLogger(__name__)

# Default config filename
PROJECT_CONFIG_FILE = "depsync.yml"


class ConfigError(Exception):
    """Raised when project configuration is invalid or missing."""


def find_project_file(start_dir: Path | None = None) -> Path | None:
    """Search for depsync.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to depsync.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / PROJECT_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_project_config(path: Path | None) -> ProjectConfig:
    """Load and validate project configuration.

    Args:
        path: Path to depsync.yml. None yields the default configuration.

    Returns:
        Validated ProjectConfig model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        logger.debug("No %s, using defaults", PROJECT_CONFIG_FILE)
        return ProjectConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading project config from %s", path)

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
        config = ProjectConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid project configuration: {e}") from e

    logger.info("Loaded project config '%s' from %s", config.name or path.parent.name, path)
    return config


def project_root(config_path: Path | None) -> Path:
    """Get the project root directory from a config file path."""
    if config_path is None:
        return Path.cwd().resolve()
    return config_path.parent.resolve()
