"""
Audit ledger — append-only record of applied runs.

Each APPLY run appends one NDJSON (newline-delimited JSON) line to the
ledger. Dry runs never write here: a simulated run must leave the
filesystem untouched.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from postinstall.core.models.log import ExecutionLog
from postinstall.core.ownership import hand_over, missing_ancestors

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """A single audit log entry (one run)."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    mode: str = ""
    user: str = ""

    status: str = ""               # ok, partial, failed, interrupted
    steps_total: int = 0
    steps_applied: int = 0
    steps_skipped: int = 0
    steps_failed: int = 0

    # step name → error message
    errors: dict[str, str] = Field(default_factory=dict)

    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_log(cls, log: ExecutionLog, user: str = "", **context: Any) -> AuditEntry:
        return cls(
            operation_id=log.operation_id,
            mode=log.mode.value,
            user=user,
            status=log.status,
            steps_total=log.total,
            steps_applied=log.applied,
            steps_skipped=log.skipped,
            steps_failed=log.failed,
            errors={e.step: e.detail for e in log.failures},
            context=context,
        )


class AuditWriter:
    """Append-only audit ledger writer.

    Each call to write() appends a single JSON line to the ledger file.
    The file and its directory are created if they don't exist; when
    ``owner`` is given they are handed to that uid/gid so the ledger in
    the user's home stays writable without sudo.
    """

    def __init__(self, path: Path, owner: tuple[int, int] | None = None):
        self._path = path
        self._owner = owner

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> bool:
        """Append an audit entry to the ledger.

        Returns:
            True if written. Failures are logged, never raised.
        """
        data = entry.model_dump(mode="json")
        line = json.dumps(data, ensure_ascii=False) + "\n"

        try:
            created = missing_ancestors(self._path)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            if self._owner is not None:
                hand_over([*created, self._path], *self._owner)
            logger.debug("Audit entry written: %s → %s", entry.operation_id, self._path)
            return True
        except OSError as e:
            logger.error("Failed to write audit entry to %s: %s", self._path, e)
            return False

    def read_all(self) -> list[AuditEntry]:
        """Read all entries from the ledger, oldest first."""
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

