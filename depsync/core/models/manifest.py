"""
Manifest model — the declared external dependencies of a project.

Loaded from Depfile (and optionally Depfile.private), this is what the
update pipeline validates requested dependency names against.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class Dependency(BaseModel):
    """A single declared dependency.

    The identifier used for name matching is the last path component of
    the location (``Alamofire/Alamofire`` → ``Alamofire``) unless an
    explicit ``name`` is given.
    """

    name: str
    origin: Literal["github", "git", "binary"] = "github"
    location: str = ""
    constraint: str = ""            # e.g. "~> 5.0", ">= 1.2", a branch or tag

    @classmethod
    def from_shorthand(cls, spec: str) -> Dependency:
        """Build a GitHub dependency from ``owner/Name`` shorthand."""
        location = spec.strip()
        name = location.rstrip("/").rsplit("/", 1)[-1]
        if name.endswith(".git"):
            name = name[: -len(".git")]
        return cls(name=name, location=location)


class Manifest(BaseModel):
    """Combined dependency manifest, keyed by dependency identifier."""

    dependencies: dict[str, Dependency] = Field(default_factory=dict)

    @property
    def names(self) -> set[str]:
        """Declared dependency identifiers."""
        return set(self.dependencies.keys())

    def get(self, name: str) -> Dependency | None:
        """Look up a dependency, ignoring case."""
        lowered = name.lower()
        for key, dep in self.dependencies.items():
            if key.lower() == lowered:
                return dep
        return None

    def __len__(self) -> int:
        return len(self.dependencies)
