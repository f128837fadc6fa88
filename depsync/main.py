"""
depsync — CLI entrypoint.

Usage:
    python -m depsync.main --help
    python -m depsync.main update
    python -m depsync.main update Alamofire --no-build
    python -m depsync.main check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from depsync import __version__
from depsync.core.observability.logging_config import (
    LOG_FILE_ENV,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="depsync")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to depsync.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """depsync — update, check out, and build project dependencies."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(LOG_FILE_ENV),
    )


@cli.command()
@click.argument("dependencies", nargs=-1)
@click.option("--no-checkout", is_flag=True, help="Resolve only; don't check out or build.")
@click.option(
    "--no-build",
    is_flag=True,
    help="Skip building dependencies after updating (ignored with --no-checkout).",
)
@click.option("--new-resolver", is_flag=True, help="Use the new resolver codeline.")
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to the build output log. A temporary file is used by default.",
)
@click.option(
    "--platform",
    "platforms",
    multiple=True,
    help="Platform to build for (repeatable; default: all).",
)
@click.option("--configuration", default="Release", show_default=True, help="Build configuration.")
@click.option("--toolchain", default=None, help="Toolchain to build with.")
@click.option("--derived-data", default=None, help="Intermediate build output directory.")
@click.option("--cache-builds", is_flag=True, help="Reuse cached builds when possible.")
@click.option(
    "--use-binaries/--no-use-binaries",
    default=True,
    help="Use prebuilt binaries when available.",
)
@click.option("--mock", is_flag=True, help="Use mock collaborators (no real resolution or build).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(
    ctx: click.Context,
    dependencies: tuple[str, ...],
    no_checkout: bool,
    no_build: bool,
    new_resolver: bool,
    log_path: str | None,
    platforms: tuple[str, ...],
    configuration: str,
    toolchain: str | None,
    derived_data: str | None,
    cache_builds: bool,
    use_binaries: bool,
    mock: bool,
    as_json: bool,
) -> None:
    """Update and rebuild the project's dependencies.

    Examples:

        depsync update

        depsync update Alamofire SnapKit --no-build

        depsync update --new-resolver --platform iOS
    """
    from depsync.core.models.request import BuildConfig, ResolverStrategy
    from depsync.core.use_cases.update import run_update

    result = run_update(
        dependencies=dependencies or None,
        config_path=ctx.obj.get("config_path"),
        perform_checkout=not no_checkout,
        perform_build=not no_build,
        resolver=ResolverStrategy.NEW if new_resolver else ResolverStrategy.LEGACY,
        build_config=BuildConfig(
            platforms=platforms,
            configuration=configuration,
            toolchain=toolchain,
            derived_data=derived_data,
            cache_builds=cache_builds,
            use_binaries=use_binaries,
        ),
        log_path=Path(log_path) if log_path else None,
        verbose=ctx.obj.get("verbose", False),
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(result.exit_code)

    outcome = result.outcome
    request = result.request
    assert outcome is not None and request is not None

    if not ctx.obj.get("quiet"):
        mode_label = "[mock] " if mock else ""
        targets = ", ".join(sorted(request.target_names)) if request.target_names else "all dependencies"
        click.secho(f"\n⚡ {mode_label}update — {targets}", fg="cyan", bold=True)
        click.echo(f"   Resolver: {request.resolver_strategy.value}")
        for stage in outcome.stages_completed:
            if stage == "complete":
                continue
            skipped = stage == "build" and not outcome.build_attempted
            marker = "⊘" if skipped else "✓"
            click.secho(f"   {marker} {stage}", fg="yellow" if skipped else "green")
        click.echo()

    if outcome.ok:
        click.secho(f"   Result: updated ({outcome.duration_ms}ms)", fg="green", bold=True)
        click.echo()
        return

    if outcome.cancelled:
        click.secho(f"   ⊘ Cancelled during {outcome.stage}", fg="yellow", bold=True)
    else:
        click.secho(f"   ✗ {outcome.stage} failed", fg="red", bold=True)
        if outcome.error is not None:
            for line in str(outcome.error).split("\n")[:10]:
                click.echo(f"     │ {line}")
    click.echo()
    sys.exit(result.exit_code)


@cli.command()
@click.argument("dependencies", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, dependencies: tuple[str, ...], as_json: bool) -> None:
    """Validate the manifest and, optionally, dependency names.

    Nothing is resolved, checked out, or built.
    """
    from depsync.core.use_cases.check import check_dependencies

    result = check_dependencies(
        dependencies=dependencies or None,
        config_path=ctx.obj.get("config_path"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    manifest = result.manifest
    assert manifest is not None

    if not ctx.obj.get("quiet"):
        click.secho(f"\n📦 Dependencies: {len(manifest)}", fg="cyan", bold=True)
        for name, dep in sorted(manifest.dependencies.items()):
            constraint = f" {dep.constraint}" if dep.constraint else ""
            click.echo(f"   • {name}{constraint}  → {dep.origin}:{dep.location}")
        click.echo()

    if result.unknown:
        click.secho(f"❌ Unknown dependencies: {', '.join(result.unknown)}", fg="red")
        sys.exit(1)

    click.secho("✅ Manifest is valid", fg="green", bold=True)


if __name__ == "__main__":
    cli()
