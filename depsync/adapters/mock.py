"""
Mock collaborators — test doubles for the update pipeline.

Used by tests and by ``depsync update --mock`` to run the pipeline
without touching the network, the filesystem, or a toolchain. Each mock
records its calls and can be configured to fail or to block until
released (for cancellation scenarios).
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Set
from dataclasses import dataclass

from depsync.adapters.base import DependencyBuilder, DependencyUpdater, ManifestSource
from depsync.core.engine.resolver import ResolverSelection
from depsync.core.errors import BuildError, ManifestError, ResolutionError, UpdateError
from depsync.core.models.manifest import Dependency, Manifest
from depsync.core.models.request import DerivedBuildConfig


@dataclass(frozen=True)
class UpdateCall:
    """One recorded resolve_and_checkout call."""

    resolver: ResolverSelection
    target_names: frozenset[str] | None
    perform_checkout: bool


class _Gate:
    """Optional blocking point shared by the mocks."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self._release: asyncio.Event | None = None
        self.was_cancelled = False

    def block(self) -> None:
        self._release = asyncio.Event()

    def release(self) -> None:
        if self._release is not None:
            self._release.set()

    async def wait(self) -> None:
        self.entered.set()
        if self._release is None:
            return
        try:
            await self._release.wait()
        except asyncio.CancelledError:
            self.was_cancelled = True
            raise


class MockManifestSource(ManifestSource):
    """Serves a fixed manifest, or a configured error."""

    def __init__(self, names: Iterable[str] = (), error: UpdateError | None = None):
        self._manifest = Manifest(
            dependencies={n: Dependency(name=n, location=f"mock/{n}") for n in names}
        )
        self._error = error
        self.call_count = 0

    def set_failure(self, message: str = "Mock manifest failure") -> None:
        self._error = ManifestError(message)

    async def load_manifest(self) -> Manifest:
        self.call_count += 1
        if self._error is not None:
            raise self._error
        return self._manifest


class MockUpdater(DependencyUpdater):
    """Universal mock for resolve+checkout.

    By default, succeeds immediately. ``set_failure`` makes every call
    raise; ``block`` makes calls wait until ``release`` (or cancellation).
    """

    def __init__(self, updater_name: str = "mock"):
        self._name = updater_name
        self._error: UpdateError | None = None
        self._gate = _Gate()
        self._call_log: list[UpdateCall] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[UpdateCall]:
        """All calls this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def entered(self) -> asyncio.Event:
        return self._gate.entered

    @property
    def was_cancelled(self) -> bool:
        return self._gate.was_cancelled

    def set_failure(self, error: UpdateError | str = "Mock resolution failure") -> None:
        self._error = ResolutionError(error) if isinstance(error, str) else error

    def block(self) -> None:
        self._gate.block()

    def release(self) -> None:
        self._gate.release()

    async def resolve_and_checkout(
        self,
        resolver: ResolverSelection,
        target_names: Set[str] | None,
        perform_checkout: bool,
    ) -> None:
        self._call_log.append(
            UpdateCall(
                resolver=resolver,
                target_names=frozenset(target_names) if target_names is not None else None,
                perform_checkout=perform_checkout,
            )
        )
        await self._gate.wait()
        if self._error is not None:
            raise self._error

    def reset(self) -> None:
        """Clear call log and configured failure."""
        self._call_log.clear()
        self._error = None


class MockBuilder(DependencyBuilder):
    """Universal mock for the build collaborator."""

    def __init__(self, builder_name: str = "mock"):
        self._name = builder_name
        self._error: UpdateError | None = None
        self._gate = _Gate()
        self._call_log: list[DerivedBuildConfig] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[DerivedBuildConfig]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def entered(self) -> asyncio.Event:
        return self._gate.entered

    @property
    def was_cancelled(self) -> bool:
        return self._gate.was_cancelled

    def set_failure(self, message: str = "Mock build failure", failed_targets: list[str] | None = None) -> None:
        self._error = BuildError(message, failed_targets=failed_targets)

    def block(self) -> None:
        self._gate.block()

    def release(self) -> None:
        self._gate.release()

    async def build(self, config: DerivedBuildConfig) -> None:
        self._call_log.append(config)
        await self._gate.wait()
        if self._error is not None:
            raise self._error

    def reset(self) -> None:
        self._call_log.clear()
        self._error = None
