"""
Dependency name validation — reject names the manifest doesn't declare.

A misspelled dependency must never trigger network or filesystem work,
so this runs before anything else in the update pipeline.
"""

from __future__ import annotations

from collections.abc import Iterable

from depsync.core.errors import UnknownDependenciesError


def unknown_dependency_names(
    requested: Iterable[str] | None,
    declared: Iterable[str],
) -> list[str]:
    """Requested names with no case-insensitive match in ``declared``.

    Returns a sorted, de-duplicated list of lower-cased names.
    """
    if requested is None:
        return []

    declared_lower = {name.lower() for name in declared}
    requested_lower = {name.lower() for name in requested}
    return sorted(requested_lower - declared_lower)


def validate_dependency_names(
    requested: Iterable[str] | None,
    declared: Iterable[str],
) -> None:
    """Check requested dependency names against the declared set.

    Args:
        requested: Names the user asked for. None = all dependencies.
        declared: Dependency identifiers from the manifest.

    Raises:
        UnknownDependenciesError: with every unmatched name, sorted.
    """
    unknown = unknown_dependency_names(requested, declared)
    if unknown:
        raise UnknownDependenciesError(unknown)
