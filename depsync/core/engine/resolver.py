"""
Resolver selection — pick one of the two resolver codelines.

The choice is a flag on the request. The coordinator turns it into an
opaque handle that only the resolve+checkout collaborator looks at;
validation and the shape of the pipeline are identical either way.
"""

from __future__ import annotations

from dataclasses import dataclass

from depsync.core.models.request import ResolverStrategy


@dataclass(frozen=True)
class ResolverSelection:
    """Opaque handle for the resolver strategy chosen for a run."""

    strategy: ResolverStrategy

    @property
    def name(self) -> str:
        return self.strategy.value

    @property
    def is_new(self) -> bool:
        return self.strategy is ResolverStrategy.NEW


def select_resolver(strategy: ResolverStrategy | str) -> ResolverSelection:
    """Return the resolver handle for ``strategy``.

    Accepts the enum or its string value ('legacy' / 'new').
    """
    return ResolverSelection(strategy=ResolverStrategy(strategy))
