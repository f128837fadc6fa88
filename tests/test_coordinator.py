"""
Tests for the update coordinator — stage ordering, gating, failures,
and cancellation.
"""

import asyncio

import pytest

from depsync.adapters.mock import MockBuilder, MockManifestSource, MockUpdater
from depsync.core.config.manifest import ManifestReader
from depsync.core.engine.coordinator import UpdateCoordinator
from depsync.core.errors import (
    BuildError,
    ManifestError,
    ResolutionError,
    UnknownDependenciesError,
    UpdateCancelledError,
)
from depsync.core.models.request import BuildConfig, ResolverStrategy, UpdateRequest

# ── Happy path ───────────────────────────────────────────────────────


class TestSuccessfulRuns:
    @pytest.mark.asyncio
    async def test_update_all_builds_once(self, coordinator, updater, builder):
        # Scenario B
        outcome = await coordinator.run(UpdateRequest())
        assert outcome.ok
        assert outcome.error is None
        assert updater.call_count == 1
        assert builder.call_count == 1
        assert outcome.build_attempted
        assert outcome.stages_completed == [
            "load_manifest",
            "resolve_and_checkout",
            "build",
            "complete",
        ]

    @pytest.mark.asyncio
    async def test_all_targets_passed_as_none(self, coordinator, updater):
        await coordinator.run(UpdateRequest())
        call = updater.call_log[0]
        assert call.target_names is None
        assert call.perform_checkout is True

    @pytest.mark.asyncio
    async def test_build_config_projection(self, coordinator, builder, tmp_path):
        request = UpdateRequest(
            target_names={"Alpha"},
            build_config=BuildConfig(platforms=("iOS",), configuration="Debug"),
            log_path=tmp_path / "build.log",
            project_dir=tmp_path,
        )
        outcome = await coordinator.run(request)
        assert outcome.ok

        config = builder.call_log[0]
        assert config.skip_current_project is True
        assert config.archive is False
        assert config.dependencies_to_build == frozenset({"Alpha"})
        assert config.log_path == tmp_path / "build.log"
        assert config.build_config.platforms == ("iOS",)
        assert config.build_config.configuration == "Debug"
        assert config.project_dir == tmp_path

    @pytest.mark.asyncio
    async def test_targets_forwarded_to_updater(self, coordinator, updater):
        await coordinator.run(UpdateRequest(target_names={"BETA"}))
        assert updater.call_log[0].target_names == frozenset({"BETA"})

    @pytest.mark.asyncio
    async def test_duration_recorded(self, coordinator):
        outcome = await coordinator.run(UpdateRequest())
        assert outcome.duration_ms >= 0


# ── Build gating ─────────────────────────────────────────────────────


class TestBuildGating:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("perform_build", [True, False])
    async def test_no_checkout_never_builds(self, coordinator, updater, builder, perform_build):
        request = UpdateRequest(perform_checkout=False, perform_build=perform_build)
        outcome = await coordinator.run(request)
        assert outcome.ok
        assert builder.call_count == 0
        assert not outcome.build_attempted
        assert updater.call_log[0].perform_checkout is False

    @pytest.mark.asyncio
    async def test_checkout_without_build(self, coordinator, builder):
        outcome = await coordinator.run(UpdateRequest(perform_build=False))
        assert outcome.ok
        assert builder.call_count == 0
        assert "build" in outcome.stages_completed


# ── Resolver selection ───────────────────────────────────────────────


class TestResolverStrategy:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", list(ResolverStrategy))
    async def test_strategy_reaches_updater(self, coordinator, updater, strategy):
        await coordinator.run(UpdateRequest(resolver_strategy=strategy))
        assert updater.call_log[0].resolver.strategy is strategy

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", list(ResolverStrategy))
    async def test_strategy_does_not_change_validation(self, coordinator, updater, strategy):
        request = UpdateRequest(resolver_strategy=strategy, target_names={"gamma"})
        outcome = await coordinator.run(request)
        assert isinstance(outcome.error, UnknownDependenciesError)
        assert updater.call_count == 0


# ── Failures ─────────────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_unknown_dependencies_stop_before_io(self, coordinator, updater, builder):
        # Scenario A
        outcome = await coordinator.run(UpdateRequest(target_names={"Alpha", "Gamma"}))
        assert outcome.failed
        assert outcome.stage == "load_manifest"
        assert isinstance(outcome.error, UnknownDependenciesError)
        assert outcome.error.names == ["gamma"]
        assert updater.call_count == 0
        assert builder.call_count == 0
        assert outcome.stages_completed == []

    @pytest.mark.asyncio
    async def test_manifest_error_propagates(self, updater, builder):
        source = MockManifestSource(error=ManifestError("No Depfile found"))
        coordinator = UpdateCoordinator(source, updater, builder)
        outcome = await coordinator.run(UpdateRequest())
        assert outcome.failed
        assert outcome.stage == "load_manifest"
        assert str(outcome.error) == "No Depfile found"
        assert updater.call_count == 0

    @pytest.mark.asyncio
    async def test_manifest_error_even_without_targets(self, updater, builder):
        source = MockManifestSource()
        source.set_failure("unreadable")
        outcome = await UpdateCoordinator(source, updater, builder).run(UpdateRequest())
        assert isinstance(outcome.error, ManifestError)

    @pytest.mark.asyncio
    async def test_malformed_manifest_file_is_a_failure(self, tmp_path, updater, builder):
        (tmp_path / "Depfile").write_text("dependencies:\n  - location: [a, b]\n")
        coordinator = UpdateCoordinator(ManifestReader(tmp_path), updater, builder)
        outcome = await coordinator.run(UpdateRequest())
        assert outcome.failed
        assert outcome.stage == "load_manifest"
        assert isinstance(outcome.error, ManifestError)
        assert updater.call_count == 0

    @pytest.mark.asyncio
    async def test_resolution_error_skips_build(self, coordinator, updater, builder):
        # Scenario C
        error = ResolutionError("unsatisfiable: alpha ~> 2.0")
        updater.set_failure(error)
        outcome = await coordinator.run(UpdateRequest())
        assert outcome.failed
        assert outcome.error is error
        assert outcome.stage == "resolve_and_checkout"
        assert builder.call_count == 0
        assert outcome.stages_completed == ["load_manifest"]

    @pytest.mark.asyncio
    async def test_build_error_propagates(self, coordinator, builder):
        builder.set_failure("compile failed", failed_targets=["alpha"])
        outcome = await coordinator.run(UpdateRequest())
        assert outcome.failed
        assert outcome.stage == "build"
        assert isinstance(outcome.error, BuildError)
        assert outcome.error.failed_targets == ["alpha"]
        assert outcome.build_attempted

    @pytest.mark.asyncio
    async def test_no_retries(self, coordinator, updater):
        updater.set_failure("network down")
        await coordinator.run(UpdateRequest())
        assert updater.call_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates(self, manifest_source, builder):
        class BrokenUpdater(MockUpdater):
            async def resolve_and_checkout(self, resolver, target_names, perform_checkout):
                raise KeyError("bug")

        coordinator = UpdateCoordinator(manifest_source, BrokenUpdater(), builder)
        with pytest.raises(KeyError):
            await coordinator.run(UpdateRequest())
        assert not coordinator.running


# ── Ordering ─────────────────────────────────────────────────────────


class TestStageOrdering:
    @pytest.mark.asyncio
    async def test_stages_run_strictly_in_sequence(self, manifest_source):
        events: list[str] = []

        class RecordingUpdater(MockUpdater):
            async def resolve_and_checkout(self, resolver, target_names, perform_checkout):
                events.append("checkout:start")
                await asyncio.sleep(0.01)
                events.append("checkout:end")

        class RecordingBuilder(MockBuilder):
            async def build(self, config):
                events.append("build:start")

        coordinator = UpdateCoordinator(manifest_source, RecordingUpdater(), RecordingBuilder())
        outcome = await coordinator.run(UpdateRequest())
        assert outcome.ok
        assert events == ["checkout:start", "checkout:end", "build:start"]

    @pytest.mark.asyncio
    async def test_concurrent_run_rejected(self, coordinator, updater):
        updater.block()
        task = asyncio.create_task(coordinator.run(UpdateRequest()))
        await updater.entered.wait()
        with pytest.raises(RuntimeError):
            await coordinator.run(UpdateRequest())
        updater.release()
        outcome = await task
        assert outcome.ok


# ── Cancellation ─────────────────────────────────────────────────────


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_during_checkout(self, coordinator, updater, builder):
        # Scenario D
        updater.block()
        task = asyncio.create_task(coordinator.run(UpdateRequest()))
        await updater.entered.wait()

        coordinator.cancel()
        outcome = await task

        assert outcome.cancelled
        assert not outcome.ok
        assert outcome.stage == "resolve_and_checkout"
        assert isinstance(outcome.error, UpdateCancelledError)
        assert updater.was_cancelled
        assert builder.call_count == 0

    @pytest.mark.asyncio
    async def test_cancel_during_build(self, coordinator, builder):
        builder.block()
        task = asyncio.create_task(coordinator.run(UpdateRequest()))
        await builder.entered.wait()

        coordinator.cancel()
        outcome = await task

        assert outcome.cancelled
        assert outcome.stage == "build"
        assert outcome.stages_completed == ["load_manifest", "resolve_and_checkout"]
        assert builder.was_cancelled

    @pytest.mark.asyncio
    async def test_cancel_before_run(self, coordinator, manifest_source, updater):
        coordinator.cancel()
        outcome = await coordinator.run(UpdateRequest())
        assert outcome.cancelled
        assert outcome.stage == "load_manifest"
        assert manifest_source.call_count == 0
        assert updater.call_count == 0

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, coordinator, updater):
        updater.block()
        task = asyncio.create_task(coordinator.run(UpdateRequest()))
        await updater.entered.wait()
        coordinator.cancel()
        coordinator.cancel()
        assert coordinator.cancel_requested
        outcome = await task
        assert outcome.cancelled

    @pytest.mark.asyncio
    async def test_cancel_after_completion_keeps_success(self, coordinator):
        outcome = await coordinator.run(UpdateRequest())
        coordinator.cancel()
        assert outcome.ok

    @pytest.mark.asyncio
    async def test_builder_ignoring_cancellation_is_still_cancelled(self, manifest_source, updater):
        class IgnoringBuilder(MockBuilder):
            async def build(self, config):
                try:
                    await super().build(config)
                except asyncio.CancelledError:
                    return None

        builder = IgnoringBuilder()
        builder.block()
        coordinator = UpdateCoordinator(manifest_source, updater, builder)
        task = asyncio.create_task(coordinator.run(UpdateRequest()))
        await builder.entered.wait()

        coordinator.cancel()
        outcome = await task

        assert outcome.cancelled
        assert not outcome.ok
        assert outcome.stage == "build"
        assert outcome.build_attempted
        assert "complete" not in outcome.stages_completed
        assert builder.was_cancelled

    @pytest.mark.asyncio
    async def test_updater_ignoring_cancellation_stops_at_its_stage(self, manifest_source, builder):
        class IgnoringUpdater(MockUpdater):
            async def resolve_and_checkout(self, resolver, target_names, perform_checkout):
                try:
                    await super().resolve_and_checkout(resolver, target_names, perform_checkout)
                except asyncio.CancelledError:
                    return None

        updater = IgnoringUpdater()
        updater.block()
        coordinator = UpdateCoordinator(manifest_source, updater, builder)
        task = asyncio.create_task(coordinator.run(UpdateRequest()))
        await updater.entered.wait()

        coordinator.cancel()
        outcome = await task

        assert outcome.cancelled
        assert outcome.stage == "resolve_and_checkout"
        assert outcome.stages_completed == ["load_manifest"]
        assert builder.call_count == 0

    @pytest.mark.asyncio
    async def test_coordinator_reusable_after_cancel(self, coordinator, updater):
        coordinator.cancel()
        first = await coordinator.run(UpdateRequest())
        assert first.cancelled
        assert not coordinator.cancel_requested

        second = await coordinator.run(UpdateRequest())
        assert second.ok
        assert updater.call_count == 1

    @pytest.mark.asyncio
    async def test_external_task_cancellation_propagates(self, coordinator, updater, builder):
        updater.block()
        task = asyncio.create_task(coordinator.run(UpdateRequest()))
        await updater.entered.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert updater.was_cancelled
        assert builder.call_count == 0
