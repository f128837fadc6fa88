"""Adapters — collaborators the update pipeline delegates to.

Public re-exports for convenient access.
"""

from depsync.adapters.base import DependencyBuilder, DependencyUpdater, ManifestSource
from depsync.adapters.mock import MockBuilder, MockManifestSource, MockUpdater

__all__ = [
    "DependencyBuilder",
    "DependencyUpdater",
    "ManifestSource",
    "MockBuilder",
    "MockManifestSource",
    "MockUpdater",
]
