"""
Action and Receipt models — the execution contract.

Actions describe one mutation. Receipts describe what happened when an
adapter carried it out. Adapters return Receipts, never exceptions.
"""

from __future__ import annotations

import shlex
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ErrorKind = Literal["action_failed", "configuration_missing"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A mutation to be carried out by an adapter.

    ``params`` is adapter specific; see each adapter's docstring for
    the keys it understands.
    """

    id: str                         # unique action identifier
    adapter: str                    # which adapter handles this
    params: dict[str, Any] = Field(default_factory=dict)

    def describe(self) -> str:
        """Human-readable rendition used for dry-run output.

        Prefers an explicit ``description`` param, then the argv,
        then a generic ``adapter:operation path`` form.
        """
        if self.params.get("description"):
            return str(self.params["description"])
        argv = self.params.get("argv")
        if argv:
            prefix = f"(as {self.params['run_as']}) " if self.params.get("run_as") else ""
            return prefix + shlex.join(str(a) for a in argv)
        operation = self.params.get("operation", "")
        target = self.params.get("path") or self.params.get("dest") or ""
        return f"{self.adapter}:{operation} {target}".strip()


class Receipt(BaseModel):
    """Result of an adapter execution.

    Receipts capture the full outcome of an action. The adapter
    NEVER raises exceptions — failures are captured here.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    error_kind: ErrorKind | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action succeeded."""
        return self.status == "ok"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            error_kind="action_failed",
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt (nothing left to do)."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="skipped",
            output=reason,
            **kwargs,
        )

    @classmethod
    def missing(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        remedy: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt for an absent prerequisite.

        ``remedy`` is the command the user can run by hand later.
        """
        metadata = kwargs.pop("metadata", {})
        if remedy:
            metadata["remedy"] = remedy
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            error_kind="configuration_missing",
            metadata=metadata,
            **kwargs,
        )
