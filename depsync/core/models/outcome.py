"""
UpdateOutcome — the terminal result of one update run.

Either success, a single failure, or a cancellation. There is no
partial-success representation: the pipeline is all-or-nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from depsync.core.errors import UpdateCancelledError, UpdateError

Stage = Literal["load_manifest", "resolve_and_checkout", "build", "complete"]


@dataclass
class UpdateOutcome:
    """Result of running the update pipeline."""

    status: Literal["ok", "failed", "cancelled"] = "ok"
    error: UpdateError | None = None
    stage: str = "complete"                  # stage that ended the run
    stages_completed: list[str] = field(default_factory=list)
    build_attempted: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def cancelled(self) -> bool:
        return self.status == "cancelled"

    @classmethod
    def success(cls, **kwargs) -> UpdateOutcome:
        return cls(status="ok", stage="complete", **kwargs)

    @classmethod
    def failure(cls, error: UpdateError, stage: str, **kwargs) -> UpdateOutcome:
        return cls(status="failed", error=error, stage=stage, **kwargs)

    @classmethod
    def cancellation(cls, stage: str, **kwargs) -> UpdateOutcome:
        return cls(
            status="cancelled",
            error=UpdateCancelledError(stage),
            stage=stage,
            **kwargs,
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "stage": self.stage,
            "stages_completed": list(self.stages_completed),
            "build_attempted": self.build_attempted,
            "duration_ms": self.duration_ms,
            "error": self.error.to_dict() if self.error else None,
        }
