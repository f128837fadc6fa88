"""
Command-backed collaborators — resolve, checkout, and build by running
the external commands configured in depsync.yml.

Commands run through the shell, asynchronously, so that cancelling the
awaiting task kills the child process instead of leaving it running.

Placeholders available in every command string (values are shell-quoted):

    {dependencies}   space-separated target names (empty = all)
    {resolver}       'legacy' or 'new'
    {platforms}      comma-separated platforms (empty = all)
    {configuration}  build configuration, e.g. 'Release'
    {project_dir}    project root directory
    {checkout_dir}   dependency checkout directory
    {log_path}       build log file

The same values are exported as DEPSYNC_* environment variables.
Any other braces, ``${DEPSYNC_RESOLVER}`` included, reach the shell as
written.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shlex
import tempfile
import time
from collections.abc import Set
from dataclasses import dataclass, field
from pathlib import Path

from depsync.adapters.base import DependencyBuilder, DependencyUpdater
from depsync.core.engine.resolver import ResolverSelection
from depsync.core.errors import BuildError, ResolutionError
from depsync.core.models.project import CommandSet
from depsync.core.models.request import DerivedBuildConfig

logger = logging.getLogger(__name__)

# Lines of stderr kept in error messages
_STDERR_TAIL = 20

# {name} placeholders; ${name} belongs to the shell
_PLACEHOLDER = re.compile(r"(?<!\$)\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass
class CommandResult:
    """Outcome of one external command."""

    command: str
    return_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.return_code == 0

    def stderr_tail(self, lines: int = _STDERR_TAIL) -> str:
        return "\n".join(self.stderr.strip().splitlines()[-lines:])


@dataclass
class CommandContext:
    """Values substituted into command strings."""

    project_dir: Path = Path(".")
    checkout_dir: str = ""
    dependencies: list[str] = field(default_factory=list)
    resolver: str = ""
    platforms: list[str] = field(default_factory=list)
    configuration: str = ""
    log_path: str = ""

    def variables(self) -> dict[str, str]:
        return {
            "dependencies": " ".join(self.dependencies),
            "resolver": self.resolver,
            "platforms": ",".join(self.platforms),
            "configuration": self.configuration,
            "project_dir": str(self.project_dir),
            "checkout_dir": self.checkout_dir,
            "log_path": self.log_path,
        }

    def render(self, template: str) -> str:
        """Substitute placeholders, quoting each value for the shell."""
        values = self.variables()
        quoted = {key: shlex.quote(value) if value else "" for key, value in values.items()}
        # Dependencies expand to several words.
        quoted["dependencies"] = " ".join(shlex.quote(d) for d in self.dependencies)

        def substitute(match: re.Match) -> str:
            key = match.group(1)
            if key not in quoted:
                raise ValueError(f"Bad placeholder in command {template!r}: {key!r}")
            return quoted[key]

        return _PLACEHOLDER.sub(substitute, template)

    def environment(self) -> dict[str, str]:
        env = dict(os.environ)
        for key, value in self.variables().items():
            env[f"DEPSYNC_{key.upper()}"] = value
        return env


async def run_command(
    command: str,
    cwd: Path,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run a shell command and capture its output.

    On cancellation or timeout the child process is killed and reaped
    before the exception propagates.

    Raises:
        asyncio.TimeoutError: If the command outlives ``timeout``.
        OSError: If the shell cannot be started.
    """
    logger.debug("Executing: %s (cwd=%s)", command, cwd)
    start = time.monotonic()

    proc = await asyncio.create_subprocess_shell(
        command,
        cwd=str(cwd),
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except (asyncio.CancelledError, asyncio.TimeoutError):
        if proc.returncode is None:
            logger.debug("Killing pid %s: %s", proc.pid, command)
            proc.kill()
            await proc.wait()
        raise

    return CommandResult(
        command=command,
        return_code=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        duration_ms=int((time.monotonic() - start) * 1000),
    )


class CommandUpdater(DependencyUpdater):
    """Resolve with the strategy's command, then run the checkout command."""

    def __init__(self, commands: CommandSet, project_dir: Path, checkout_dir: str = ""):
        self._commands = commands
        self._project_dir = project_dir
        self._checkout_dir = checkout_dir

    @property
    def name(self) -> str:
        return "command"

    async def resolve_and_checkout(
        self,
        resolver: ResolverSelection,
        target_names: Set[str] | None,
        perform_checkout: bool,
    ) -> None:
        context = CommandContext(
            project_dir=self._project_dir,
            checkout_dir=self._checkout_dir,
            dependencies=sorted(target_names) if target_names else [],
            resolver=resolver.name,
        )

        template = self._commands.resolver_command(resolver.strategy)
        if not template:
            raise ResolutionError(
                f"No resolve_{resolver.name} command configured in depsync.yml",
                resolver=resolver.name,
            )
        await self._run(template, context, step="resolve")

        if not perform_checkout:
            logger.debug("Checkout disabled, resolved only")
            return

        if not self._commands.checkout:
            raise ResolutionError("No checkout command configured in depsync.yml")
        await self._run(self._commands.checkout, context, step="checkout")

    async def _run(self, template: str, context: CommandContext, step: str) -> None:
        try:
            command = context.render(template)
            result = await run_command(
                command,
                cwd=self._project_dir,
                env=context.environment(),
                timeout=self._commands.timeout,
            )
        except ValueError as e:
            raise ResolutionError(str(e), step=step) from e
        except asyncio.TimeoutError as e:
            raise ResolutionError(
                f"{step} timed out after {self._commands.timeout}s", step=step
            ) from e
        except OSError as e:
            raise ResolutionError(f"Cannot run {step} command: {e}", step=step) from e

        if not result.ok:
            raise ResolutionError(
                result.stderr_tail() or f"{step} exited with code {result.return_code}",
                step=step,
                command=result.command,
                return_code=result.return_code,
            )

        logger.info("✓ %s (%dms)", step, result.duration_ms)


class CommandBuilder(DependencyBuilder):
    """Run the configured build command, logging output to a file."""

    def __init__(self, commands: CommandSet, checkout_dir: str = ""):
        self._commands = commands
        self._checkout_dir = checkout_dir

    @property
    def name(self) -> str:
        return "command"

    async def build(self, config: DerivedBuildConfig) -> None:
        template = self._commands.build
        if not template:
            logger.warning("No build command configured in depsync.yml, skipping build")
            return

        log_path = config.log_path or _temporary_log_path()
        context = CommandContext(
            project_dir=config.project_dir,
            checkout_dir=self._checkout_dir,
            dependencies=sorted(config.dependencies_to_build) if config.dependencies_to_build else [],
            platforms=list(config.build_config.platforms),
            configuration=config.build_config.configuration,
            log_path=str(log_path),
        )

        try:
            command = context.render(template)
            result = await run_command(
                command,
                cwd=config.project_dir,
                env=context.environment(),
                timeout=self._commands.timeout,
            )
        except ValueError as e:
            raise BuildError(str(e)) from e
        except asyncio.TimeoutError as e:
            raise BuildError(f"Build timed out after {self._commands.timeout}s") from e
        except OSError as e:
            raise BuildError(f"Cannot run build command: {e}") from e

        _append_log(log_path, result)
        logger.info("Build log: %s", log_path)

        if not result.ok:
            raise BuildError(
                result.stderr_tail() or f"Build exited with code {result.return_code}",
                failed_targets=sorted(config.dependencies_to_build or []),
                command=result.command,
                return_code=result.return_code,
                log_path=str(log_path),
            )


def _temporary_log_path() -> Path:
    fd, path = tempfile.mkstemp(prefix="depsync-build-", suffix=".log")
    os.close(fd)
    return Path(path)


def _append_log(path: Path, result: CommandResult) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(f"$ {result.command}\n")
            f.write(result.stdout)
            f.write(result.stderr)
            f.write(f"\n[exit {result.return_code}, {result.duration_ms}ms]\n")
    except OSError as e:
        logger.error("Failed to write build log %s: %s", path, e)
