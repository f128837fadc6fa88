"""
Project configuration model — loaded from depsync.yml.

Declares where the manifests live, where checkouts go, and which
external commands perform resolution, checkout, and build.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from depsync.core.models.request import ResolverStrategy


class CommandSet(BaseModel):
    """External commands backing the resolve/checkout/build collaborators.

    Each value is a shell command string. Placeholders such as
    ``{dependencies}`` and ``{platforms}`` are substituted at run time.
    """

    resolve_legacy: str | None = None
    resolve_new: str | None = None
    checkout: str | None = None
    build: str | None = None
    timeout: int = 3600              # seconds, per command

    def resolver_command(self, strategy: ResolverStrategy) -> str | None:
        """The resolve command for the given strategy."""
        if strategy is ResolverStrategy.NEW:
            return self.resolve_new
        return self.resolve_legacy


class ProjectConfig(BaseModel):
    """Root project configuration."""

    name: str = ""
    manifest: str = "Depfile"
    private_manifest: str = "Depfile.private"
    checkout_dir: str = "Deps/Checkouts"
    commands: CommandSet = Field(default_factory=CommandSet)
