"""
Update ledger — append-only record of update runs.

Every ``depsync update`` appends one entry to .state/audit.ndjson in the
project root: what was requested, which resolver ran, how far the
pipeline got, and how it ended. Entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from depsync.core.models.outcome import UpdateOutcome
from depsync.core.models.request import UpdateRequest

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_DIR = ".state"
DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """A single update run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""

    # What was asked
    resolver: str = ""
    dependencies: list[str] = Field(default_factory=list)   # empty = all
    checkout: bool = True
    build: bool = True

    # How it ended
    status: str = ""               # ok, failed, cancelled
    stage: str = ""
    stages_completed: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    error: dict[str, Any] | None = None

    @classmethod
    def from_run(
        cls,
        operation_id: str,
        request: UpdateRequest,
        outcome: UpdateOutcome,
    ) -> AuditEntry:
        return cls(
            operation_id=operation_id,
            resolver=request.resolver_strategy.value,
            dependencies=sorted(request.target_names or []),
            checkout=request.perform_checkout,
            build=request.should_build,
            status=outcome.status,
            stage=outcome.stage,
            stages_completed=list(outcome.stages_completed),
            duration_ms=outcome.duration_ms,
            error=outcome.error.to_dict() if outcome.error else None,
        )


class AuditWriter:
    """Append-only ledger writer.

    Each call to write() appends a single JSON line. The file and its
    directory are created on first write.
    """

    def __init__(self, path: Path | None = None, project_root: Path | None = None):
        if path is not None:
            self._path = path
        elif project_root is not None:
            self._path = project_root / DEFAULT_AUDIT_DIR / DEFAULT_AUDIT_FILE
        else:
            self._path = Path(DEFAULT_AUDIT_DIR) / DEFAULT_AUDIT_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append an entry. Write failures are logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s (%s)", entry.operation_id, entry.status)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """Read all entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:]
