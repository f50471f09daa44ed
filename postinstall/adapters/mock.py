"""
Mock adapter — test double standing in for any adapter.

Records every context it is asked to execute and returns success by
default. Individual action IDs can be configured to fail or to report
a missing prerequisite through validation.
"""

from __future__ import annotations

from postinstall.adapters.base import Adapter, ExecutionContext
from postinstall.core.models.action import Receipt


class MockAdapter(Adapter):
    """Configurable mock adapter.

    By default, validates and succeeds for everything.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._invalid: dict[str, str] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has executed."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Configure a specific action to fail when executed."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
        )

    def set_invalid(self, action_id: str, error: str = "Mock prerequisite missing") -> None:
        """Configure a specific action to fail validation."""
        self._invalid[action_id] = error

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not self._available:
            return False, f"'{self._name}' not available"
        if context.action.id in self._invalid:
            return False, self._invalid[context.action.id]
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if context.action.id in self._responses:
            return self._responses[context.action.id]

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and configured responses."""
        self._call_log.clear()
        self._responses.clear()
        self._invalid.clear()
