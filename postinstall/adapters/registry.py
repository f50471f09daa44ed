"""
Adapter registry — central dispatch for all side effects.

Step actions never talk to adapters directly: they hand an Action to
the registry, which resolves the adapter, validates, executes and times
the call. The registry never raises.
"""

from __future__ import annotations

import logging
import time

from postinstall.adapters.base import Adapter, ExecutionContext
from postinstall.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for adapters."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        """Register an adapter under its name."""
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def list_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._adapters.keys())

    def execute_action(self, action: Action) -> Receipt:
        """Execute an action through the appropriate adapter.

        1. Resolve the adapter
        2. Validate — a failed validation means a prerequisite is missing
        3. Execute
        4. Return a Receipt (never raises)
        """
        start_time = time.monotonic()
        context = ExecutionContext(action=action)

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            is_valid, error_msg = adapter.validate(context)
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )
        if not is_valid:
            return Receipt.missing(
                adapter=action.adapter,
                action_id=action.id,
                error=error_msg,
                remedy=adapter.remedy(context),
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            # Adapters should never raise
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt
