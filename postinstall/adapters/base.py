"""
Adapter base — the protocol contract between steps and tools.

Every side effect goes through an adapter. Steps never call subprocess
or touch files themselves; they hand an Action to the registry, which
validates it against the right adapter and executes it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from postinstall.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action."""

    action: Action

    @property
    def params(self) -> dict[str, Any]:
        return self.action.params

    @property
    def run_as(self) -> str | None:
        """User to run commands as (None = current process user)."""
        return self.action.params.get("run_as") or None


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.

    ``validate`` is where absent prerequisites are reported: a failed
    validation becomes a ``configuration_missing`` receipt, which the
    executor logs as a warning rather than an error.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g. 'shell', 'apt', 'git')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available.

        Should be fast and never raise.
        """

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def remedy(self, context: ExecutionContext) -> str:
        """Command the user can run by hand when validation fails."""
        return ""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
