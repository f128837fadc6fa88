"""
Update coordinator — the central sequencing loop of an update run.

Takes an UpdateRequest and drives it through four strictly ordered
stages, stopping at the first failure:

    load manifest + validate names → resolve (+ checkout) → build → complete

Each stage is a single awaited unit. Stage k+1 never starts before
stage k has finished: checkout mutates the on-disk state that build
reads, and name validation must gate all network and filesystem work.

There are no retries and no rollback. If checkout fails halfway, the
dependencies already checked out stay on disk as the collaborator left
them; the coordinator only reports the failure.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from depsync.adapters.base import DependencyBuilder, DependencyUpdater, ManifestSource
from depsync.core.engine.resolver import select_resolver
from depsync.core.engine.validator import validate_dependency_names
from depsync.core.errors import UpdateCancelledError, UpdateError
from depsync.core.models.outcome import UpdateOutcome
from depsync.core.models.request import UpdateRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpdateCoordinator:
    """Runs the update pipeline for one request.

    Cancellation: call ``cancel()`` from any coroutine on the same event
    loop. The stage currently awaited is cancelled and ``run()`` returns
    a cancelled outcome. A collaborator that ignores cancellation and
    finishes anyway still yields a cancelled outcome for its stage.

    A cancel issued while idle applies to the next run. Every run clears
    the request when it ends, so a coordinator can be reused.
    """

    def __init__(
        self,
        manifest_source: ManifestSource,
        updater: DependencyUpdater,
        builder: DependencyBuilder,
    ):
        self._manifest_source = manifest_source
        self._updater = updater
        self._builder = builder
        self._current: asyncio.Future | None = None
        self._cancel_requested = False
        self._running = False

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def running(self) -> bool:
        return self._running

    def cancel(self) -> None:
        """Request cancellation of the run in progress."""
        if self._cancel_requested:
            return
        self._cancel_requested = True
        logger.info("Cancellation requested")
        if self._current is not None and not self._current.done():
            self._current.cancel()

    async def run(self, request: UpdateRequest) -> UpdateOutcome:
        """Execute the pipeline and return its single outcome."""
        if self._running:
            raise RuntimeError("UpdateCoordinator.run() is already in progress")
        self._running = True

        start = time.monotonic()
        completed: list[str] = []
        build_attempted = False
        stage = "load_manifest"

        try:
            # ── Stage 1: manifest + name validation ──────────────────
            manifest = await self._run_stage(stage, self._manifest_source.load_manifest)
            if request.target_names is not None:
                validate_dependency_names(request.target_names, manifest.names)
            completed.append(stage)
            logger.debug("✓ %s (%d declared)", stage, len(manifest.names))

            # ── Stage 2: resolve, optionally checkout ────────────────
            stage = "resolve_and_checkout"
            resolver = select_resolver(request.resolver_strategy)
            logger.info(
                "Resolving %s with the %s resolver%s",
                _describe_targets(request.target_names),
                resolver.name,
                "" if request.perform_checkout else " (no checkout)",
            )
            await self._run_stage(
                stage,
                self._updater.resolve_and_checkout,
                resolver,
                request.target_names,
                request.perform_checkout,
            )
            completed.append(stage)
            logger.debug("✓ %s", stage)

            # ── Stage 3: build ───────────────────────────────────────
            stage = "build"
            if request.should_build:
                build_attempted = True
                await self._run_stage(stage, self._builder.build, request.derived_build_config())
                logger.debug("✓ %s", stage)
            else:
                logger.debug("⊘ %s skipped", stage)
            completed.append(stage)

        except UpdateCancelledError:
            logger.warning("Update cancelled during %s", stage)
            outcome = UpdateOutcome.cancellation(
                stage,
                stages_completed=completed,
                build_attempted=build_attempted,
            )
        except UpdateError as e:
            logger.info("✗ %s → %s", stage, e)
            outcome = UpdateOutcome.failure(
                e,
                stage,
                stages_completed=completed,
                build_attempted=build_attempted,
            )
        else:
            completed.append("complete")
            outcome = UpdateOutcome.success(
                stages_completed=completed,
                build_attempted=build_attempted,
            )
        finally:
            self._running = False
            self._cancel_requested = False

        outcome.duration_ms = int((time.monotonic() - start) * 1000)
        return outcome

    async def _run_stage(
        self,
        stage: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T:
        """Await one stage as its own task so it can be cancelled alone."""
        if self._cancel_requested:
            raise UpdateCancelledError(stage)

        task = asyncio.ensure_future(func(*args))
        self._current = task
        try:
            result = await task
        except asyncio.CancelledError:
            if self._cancel_requested and task.cancelled():
                raise UpdateCancelledError(stage) from None
            raise
        finally:
            self._current = None

        if self._cancel_requested:
            logger.debug("%s finished after cancellation was requested", stage)
            raise UpdateCancelledError(stage)
        return result


def _describe_targets(target_names: frozenset[str] | None) -> str:
    if target_names is None:
        return "all dependencies"
    return ", ".join(sorted(target_names))
