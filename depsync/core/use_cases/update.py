"""
Update use case — resolve, check out, and build a project's dependencies.

This is the vertical slice behind ``depsync update``: it loads the
project config, builds the UpdateRequest and the collaborators, runs
the coordinator on an event loop (Ctrl-C cancels the run), and appends
the outcome to the audit ledger.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from depsync.adapters.base import DependencyBuilder, DependencyUpdater, ManifestSource
from depsync.adapters.mock import MockBuilder, MockUpdater
from depsync.adapters.shell.command import CommandBuilder, CommandUpdater
from depsync.core.config.loader import ConfigError, find_project_file, load_project_config, project_root
from depsync.core.config.manifest import ManifestReader
from depsync.core.engine.coordinator import UpdateCoordinator
from depsync.core.models.outcome import UpdateOutcome
from depsync.core.models.project import ProjectConfig
from depsync.core.models.request import BuildConfig, ResolverStrategy, UpdateRequest
from depsync.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


@dataclass
class Collaborators:
    """The three external collaborators of one run."""

    manifest_source: ManifestSource
    updater: DependencyUpdater
    builder: DependencyBuilder


@dataclass
class UpdateResult:
    """Result of ``depsync update``."""

    outcome: UpdateOutcome | None = None
    request: UpdateRequest | None = None
    project_root: Path | None = None
    operation_id: str = ""
    error: str | None = None        # set when the run never started

    @property
    def exit_code(self) -> int:
        if self.error or self.outcome is None:
            return EXIT_FAILED
        if self.outcome.cancelled:
            return EXIT_CANCELLED
        return EXIT_OK if self.outcome.ok else EXIT_FAILED

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}

        result: dict = {
            "operation_id": self.operation_id,
            "project_root": str(self.project_root),
        }
        if self.request:
            result["request"] = {
                "checkout": self.request.perform_checkout,
                "build": self.request.should_build,
                "resolver": self.request.resolver_strategy.value,
                "dependencies": sorted(self.request.target_names or []),
            }
        if self.outcome:
            result["outcome"] = self.outcome.to_dict()
        return result


def build_collaborators(
    config: ProjectConfig,
    root: Path,
    mock_mode: bool = False,
) -> Collaborators:
    """Wire the manifest reader and the command (or mock) collaborators."""
    manifest_source = ManifestReader(root, config)
    if mock_mode:
        return Collaborators(manifest_source, MockUpdater(), MockBuilder())

    return Collaborators(
        manifest_source,
        CommandUpdater(config.commands, root, checkout_dir=config.checkout_dir),
        CommandBuilder(config.commands, checkout_dir=config.checkout_dir),
    )


async def run_pipeline(coordinator: UpdateCoordinator, request: UpdateRequest) -> UpdateOutcome:
    """Run the coordinator, turning SIGINT into a cancellation request."""
    loop = asyncio.get_running_loop()
    handler_installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, coordinator.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        logger.debug("SIGINT handler unavailable; Ctrl-C will not cancel cleanly")

    try:
        return await coordinator.run(request)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def run_update(
    dependencies: Iterable[str] | None = None,
    config_path: Path | None = None,
    perform_checkout: bool = True,
    perform_build: bool = True,
    resolver: ResolverStrategy = ResolverStrategy.LEGACY,
    build_config: BuildConfig | None = None,
    log_path: Path | None = None,
    verbose: bool = False,
    mock_mode: bool = False,
    collaborators: Collaborators | None = None,
    audit: bool = True,
) -> UpdateResult:
    """Update a project's dependencies.

    Args:
        dependencies: Dependency names to update. None or empty = all.
        config_path: Optional explicit path to depsync.yml.
        perform_checkout: If False, resolve only.
        perform_build: If False, skip the build (ignored without checkout).
        resolver: Resolver codeline to use.
        build_config: Options passed through to the build.
        log_path: Build log destination. None = a temporary file.
        verbose: Ask the build collaborator for verbose output.
        mock_mode: Use mock resolve/checkout/build collaborators.
        collaborators: Optional pre-wired collaborators (overrides mock_mode).
        audit: Append the run to .state/audit.ndjson.

    Returns:
        UpdateResult with the pipeline outcome.
    """
    result = UpdateResult()

    # ── Load project config ──────────────────────────────────────
    try:
        if config_path is None:
            config_path = find_project_file()
        config = load_project_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    root = project_root(config_path)
    result.project_root = root

    # ── Build the request ────────────────────────────────────────
    names = frozenset(dependencies) if dependencies else None
    request = UpdateRequest(
        perform_checkout=perform_checkout,
        perform_build=perform_build,
        resolver_strategy=resolver,
        target_names=names,
        build_config=build_config or BuildConfig(),
        log_path=log_path,
        project_dir=root,
        verbose=verbose,
    )
    result.request = request

    # ── Run the pipeline ─────────────────────────────────────────
    if collaborators is None:
        collaborators = build_collaborators(config, root, mock_mode=mock_mode)

    coordinator = UpdateCoordinator(
        collaborators.manifest_source,
        collaborators.updater,
        collaborators.builder,
    )
    result.operation_id = generate_operation_id()
    logger.info("Update %s started in %s", result.operation_id, root)

    outcome = asyncio.run(run_pipeline(coordinator, request))
    result.outcome = outcome
    logger.info("Update %s finished: %s", result.operation_id, outcome.status)

    # ── Write audit log ──────────────────────────────────────────
    if audit:
        AuditWriter(project_root=root).write(
            AuditEntry.from_run(result.operation_id, request, outcome)
        )

    return result


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return f"upd-{now}-{uuid.uuid4().hex[:6]}"
