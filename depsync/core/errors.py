"""
Error taxonomy — every way an update run can end without success.

Each stage of the update pipeline surfaces failures as one of these
exceptions. The coordinator never inspects them beyond the base class:
whatever a collaborator raises is reported upward verbatim.
"""

from __future__ import annotations


class UpdateError(Exception):
    """Base class for all update pipeline failures."""

    kind = "update"

    def __init__(self, message: str = "", **details: object):
        super().__init__(message)
        self.message = message
        self.details = dict(details)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self), **self.details}


class UnknownDependenciesError(UpdateError):
    """One or more requested dependency names are not in the manifest."""

    kind = "unknown_dependencies"

    def __init__(self, names: list[str]):
        self.names = sorted(names)
        super().__init__(f"Unknown dependencies: {', '.join(self.names)}")

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self), "names": self.names}


class ManifestError(UpdateError):
    """The manifest is missing, unreadable, or malformed."""

    kind = "manifest"


class ResolutionError(UpdateError):
    """Resolution or checkout failed (constraints, network, filesystem)."""

    kind = "resolution"


class BuildError(UpdateError):
    """The build toolchain reported a failure."""

    kind = "build"

    def __init__(self, message: str = "", failed_targets: list[str] | None = None, **details: object):
        super().__init__(message, **details)
        self.failed_targets = list(failed_targets or [])

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["failed_targets"] = self.failed_targets
        return data


class UpdateCancelledError(UpdateError):
    """The run was cancelled before reaching completion."""

    kind = "cancelled"

    def __init__(self, stage: str = ""):
        self.stage = stage
        suffix = f" during {stage}" if stage else ""
        super().__init__(f"Update cancelled{suffix}")

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self), "stage": self.stage}
