"""
Check use case — load the manifest and validate dependency names.

Runs the same validation as the first stage of ``depsync update`` but
never resolves, checks out, or builds anything.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from depsync.core.config.loader import ConfigError, find_project_file, load_project_config, project_root
from depsync.core.config.manifest import read_manifest
from depsync.core.engine.validator import unknown_dependency_names
from depsync.core.errors import ManifestError
from depsync.core.models.manifest import Manifest


@dataclass
class CheckResult:
    """Result of checking the manifest and requested names."""

    manifest: Manifest | None = None
    project_root: Path | None = None
    requested: list[str] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.error is None and not self.unknown

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "project_root": str(self.project_root) if self.project_root else None,
            "error": self.error,
            "dependencies": [
                dep.model_dump(mode="json")
                for _, dep in sorted((self.manifest.dependencies if self.manifest else {}).items())
            ],
            "requested": self.requested,
            "unknown": self.unknown,
        }


def check_dependencies(
    dependencies: Iterable[str] | None = None,
    config_path: Path | None = None,
) -> CheckResult:
    """Load the combined manifest and check requested names against it.

    Args:
        dependencies: Names to validate. None or empty = just load.
        config_path: Optional explicit path to depsync.yml.
    """
    result = CheckResult()

    try:
        if config_path is None:
            config_path = find_project_file()
        config = load_project_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    root = project_root(config_path)
    result.project_root = root

    try:
        manifest = read_manifest(root, config)
    except ManifestError as e:
        result.error = str(e)
        return result
    result.manifest = manifest

    requested = list(dependencies) if dependencies else None
    result.requested = sorted(requested or [])
    result.unknown = unknown_dependency_names(requested, manifest.names)
    return result
