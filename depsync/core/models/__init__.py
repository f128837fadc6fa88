"""
Domain models — types shared by the update pipeline.

All models are re-exported here for convenient access:

    from depsync.core.models import Manifest, UpdateRequest, UpdateOutcome
"""

from depsync.core.models.manifest import Dependency, Manifest
from depsync.core.models.outcome import UpdateOutcome
from depsync.core.models.project import CommandSet, ProjectConfig
from depsync.core.models.request import (
    BuildConfig,
    DerivedBuildConfig,
    ResolverStrategy,
    UpdateRequest,
)

__all__ = [
    # request.py
    "BuildConfig",
    # project.py
    "CommandSet",
    # manifest.py
    "Dependency",
    "DerivedBuildConfig",
    "Manifest",
    "ProjectConfig",
    "ResolverStrategy",
    # outcome.py
    "UpdateOutcome",
    "UpdateRequest",
]
