"""
UpdateRequest — the immutable configuration of one update run.

Built once per invocation from already-validated options and consumed
exactly once by the UpdateCoordinator. Everything the pipeline needs,
including the build log destination, travels through this object
rather than through process-wide state.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResolverStrategy(str, Enum):
    """Which resolver codeline computes the version graph."""

    LEGACY = "legacy"
    NEW = "new"


class BuildConfig(BaseModel):
    """Build options passed through to the build collaborator untouched."""

    model_config = ConfigDict(frozen=True)

    platforms: tuple[str, ...] = ()          # empty = all platforms
    configuration: str = "Release"
    toolchain: str | None = None
    derived_data: str | None = None
    cache_builds: bool = False
    use_binaries: bool = True


class DerivedBuildConfig(BaseModel):
    """What the build collaborator receives for an update run.

    The update pipeline never builds the host project itself, only its
    dependencies, so ``skip_current_project`` is always set.
    """

    model_config = ConfigDict(frozen=True)

    build_config: BuildConfig = Field(default_factory=BuildConfig)
    skip_current_project: bool = True
    dependencies_to_build: frozenset[str] | None = None
    log_path: Path | None = None
    project_dir: Path = Path(".")
    verbose: bool = False
    archive: bool = False


class UpdateRequest(BaseModel):
    """Configuration for one update run."""

    model_config = ConfigDict(frozen=True)

    perform_checkout: bool = True
    perform_build: bool = True        # ignored unless perform_checkout
    resolver_strategy: ResolverStrategy = ResolverStrategy.LEGACY
    target_names: frozenset[str] | None = None
    build_config: BuildConfig = Field(default_factory=BuildConfig)
    log_path: Path | None = None
    project_dir: Path = Path(".")
    verbose: bool = False

    @field_validator("target_names")
    @classmethod
    def _non_empty_targets(cls, value: frozenset[str] | None) -> frozenset[str] | None:
        if value is not None and len(value) == 0:
            raise ValueError("target_names must be omitted or non-empty")
        return value

    @property
    def should_build(self) -> bool:
        """Building only makes sense after a checkout."""
        return self.perform_checkout and self.perform_build

    def derived_build_config(self) -> DerivedBuildConfig:
        """Project this request onto the build collaborator's options."""
        return DerivedBuildConfig(
            build_config=self.build_config,
            skip_current_project=True,
            dependencies_to_build=self.target_names,
            log_path=self.log_path,
            project_dir=self.project_dir,
            verbose=self.verbose,
            archive=False,
        )
