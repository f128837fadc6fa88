"""
Collaborator contracts — the protocol between the coordinator and tools.

The update coordinator only talks to the outside world through these
three interfaces. It never reads files, resolves versions, or invokes
a toolchain itself.

Collaborators signal failure by raising the matching ``UpdateError``
subclass. Anything else they raise is a bug and propagates unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Set

from depsync.core.engine.resolver import ResolverSelection
from depsync.core.models.manifest import Manifest
from depsync.core.models.request import DerivedBuildConfig


class ManifestSource(ABC):
    """Loads the combined dependency manifest for a project."""

    @abstractmethod
    async def load_manifest(self) -> Manifest:
        """Return the combined manifest.

        Raises:
            ManifestError: missing, unreadable, or malformed manifest.
        """


class DependencyUpdater(ABC):
    """Resolves the dependency graph and optionally checks it out."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The updater identifier (e.g., 'command', 'mock')."""

    @abstractmethod
    async def resolve_and_checkout(
        self,
        resolver: ResolverSelection,
        target_names: Set[str] | None,
        perform_checkout: bool,
    ) -> None:
        """Resolve versions, then check them out when asked to.

        Args:
            resolver: The selected resolver strategy handle.
            target_names: Dependencies to re-resolve. None = all.
            perform_checkout: If False, resolve only (no filesystem changes).

        Raises:
            ResolutionError: any resolution or checkout failure, aggregated.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class DependencyBuilder(ABC):
    """Builds checked-out dependencies."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The builder identifier (e.g., 'command', 'mock')."""

    @abstractmethod
    async def build(self, config: DerivedBuildConfig) -> None:
        """Build the dependencies described by ``config``.

        Raises:
            BuildError: the toolchain reported a failure.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
