"""
Manifest reader — loads Depfile and Depfile.private into one Manifest.

Depfile is required. Depfile.private is optional and holds dependencies
only the project itself needs (test helpers and the like); its entries
are merged into the combined manifest. A dependency declared twice,
in one file or across both, is an error.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from depsync.adapters.base import ManifestSource
from depsync.core.errors import ManifestError
from depsync.core.models.manifest import Dependency, Manifest
from depsync.core.models.project import ProjectConfig

logger = logging.getLogger(__name__)


def parse_manifest_text(raw: str, source: str = "<manifest>") -> list[Dependency]:
    """Parse manifest YAML into a list of dependencies.

    Accepts either a mapping with a ``dependencies`` list or a bare list.
    List entries are ``owner/Name`` shorthand strings or mappings.

    Raises:
        ManifestError: If the YAML or an entry is malformed.
    """
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in {source}: {e}", source=source) from e

    if data is None:
        return []

    entries: Any
    if isinstance(data, dict):
        entries = data.get("dependencies") or []
    else:
        entries = data

    if not isinstance(entries, list):
        raise ManifestError(
            f"Expected a list of dependencies in {source}, got {type(entries).__name__}",
            source=source,
        )

    deps: list[Dependency] = []
    for index, entry in enumerate(entries):
        try:
            if isinstance(entry, str):
                dep = Dependency.from_shorthand(entry)
            elif isinstance(entry, dict):
                location = entry.get("location")
                if location is not None and not isinstance(location, str):
                    raise ManifestError(
                        f"Entry {index} in {source}: location must be a string, "
                        f"got {type(location).__name__}",
                        source=source,
                    )
                if "name" not in entry and location:
                    entry = {**entry, "name": Dependency.from_shorthand(location).name}
                dep = Dependency.model_validate(entry)
            else:
                raise ManifestError(
                    f"Entry {index} in {source} must be a string or mapping",
                    source=source,
                )
        except (ValidationError, TypeError, AttributeError) as e:
            raise ManifestError(f"Invalid entry {index} in {source}: {e}", source=source) from e

        if not dep.name:
            raise ManifestError(f"Entry {index} in {source} has no name", source=source)
        deps.append(dep)

    return deps


def combine(*groups: tuple[str, list[Dependency]]) -> Manifest:
    """Merge parsed dependency lists, rejecting duplicates.

    Args:
        groups: (source label, dependencies) pairs, in precedence order.
    """
    seen: dict[str, str] = {}
    duplicates: list[str] = []
    manifest = Manifest()

    for source, deps in groups:
        for dep in deps:
            key = dep.name.lower()
            if key in seen:
                duplicates.append(f"{dep.name} ({seen[key]}, {source})")
                continue
            seen[key] = source
            manifest.dependencies[dep.name] = dep

    if duplicates:
        raise ManifestError(
            f"Duplicate dependencies: {', '.join(sorted(duplicates))}",
            duplicates=sorted(duplicates),
        )

    return manifest


def read_manifest(project_dir: Path, config: ProjectConfig | None = None) -> Manifest:
    """Read the combined manifest for a project (blocking).

    Raises:
        ManifestError: If Depfile is missing or either file is invalid.
    """
    config = config or ProjectConfig()
    main_path = project_dir / config.manifest
    private_path = project_dir / config.private_manifest

    if not main_path.is_file():
        raise ManifestError(f"No {config.manifest} found in {project_dir}", path=str(main_path))

    groups: list[tuple[str, list[Dependency]]] = []
    for path in (main_path, private_path):
        if path is private_path and not path.is_file():
            continue
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestError(f"Cannot read {path}: {e}", path=str(path)) from e
        groups.append((path.name, parse_manifest_text(raw, source=path.name)))

    manifest = combine(*groups)
    logger.info("Loaded manifest with %d dependencies from %s", len(manifest), project_dir)
    return manifest


class ManifestReader(ManifestSource):
    """Loads a project's combined manifest off the event loop."""

    def __init__(self, project_dir: Path, config: ProjectConfig | None = None):
        self._project_dir = project_dir
        self._config = config or ProjectConfig()

    @property
    def project_dir(self) -> Path:
        return self._project_dir

    async def load_manifest(self) -> Manifest:
        return await asyncio.to_thread(read_manifest, self._project_dir, self._config)
