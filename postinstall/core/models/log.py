"""
Execution log — the ordered record of what a run did to each step.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from postinstall.core.models.action import ErrorKind
from postinstall.core.models.step import ExecutionMode


class StepOutcome(str, Enum):
    """Terminal state of a step within one run."""

    SKIPPED = "skipped"
    SIMULATED = "simulated"
    APPLIED = "applied"
    FAILED = "failed"


class LogEntry(BaseModel):
    """One step's outcome."""

    step: str
    group: str = ""
    outcome: StepOutcome
    detail: str = ""                       # skip reason, dry-run description, output or error
    error_kind: ErrorKind | None = None
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)


class ExecutionLog(BaseModel):
    """Ordered sequence of step outcomes for a single run."""

    operation_id: str = ""
    mode: ExecutionMode = ExecutionMode.SIMULATE
    entries: list[LogEntry] = Field(default_factory=list)
    interrupted: bool = False              # stopped by Ctrl-C; entries end at the last finished step

    def record(self, entry: LogEntry) -> LogEntry:
        self.entries.append(entry)
        return entry

    def outcome_of(self, step: str) -> StepOutcome | None:
        """Outcome recorded for a step name, or None if it has not run."""
        for entry in self.entries:
            if entry.step == step:
                return entry.outcome
        return None

    def count(self, outcome: StepOutcome) -> int:
        return sum(1 for e in self.entries if e.outcome == outcome)

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def applied(self) -> int:
        return self.count(StepOutcome.APPLIED)

    @property
    def skipped(self) -> int:
        return self.count(StepOutcome.SKIPPED)

    @property
    def simulated(self) -> int:
        return self.count(StepOutcome.SIMULATED)

    @property
    def failed(self) -> int:
        return self.count(StepOutcome.FAILED)

    @property
    def failures(self) -> list[LogEntry]:
        return [e for e in self.entries if e.outcome == StepOutcome.FAILED]

    @property
    def changed(self) -> bool:
        """Whether any step was applied (or would have been, in a dry run)."""
        return self.applied > 0 or self.simulated > 0

    @property
    def status(self) -> str:
        if self.interrupted:
            return "interrupted"
        if self.failed == 0:
            return "ok"
        if self.failed < self.total:
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "mode": self.mode.value,
            "status": self.status,
            "interrupted": self.interrupted,
            "total": self.total,
            "applied": self.applied,
            "skipped": self.skipped,
            "simulated": self.simulated,
            "failed": self.failed,
            "entries": [e.model_dump(mode="json") for e in self.entries],
        }
