"""
Engine executor — the planned-mutation loop.

Takes an ordered list of steps and an explicit execution mode, and walks
the steps once:

    check → skipped
          → simulate: record what would run
          → apply:    run the action, record applied / failed

Failures never abort the run and nothing is rolled back: every step is
independently idempotent, so the fix for a failed run is to run again.
Ctrl-C stops the walk; the log keeps what finished before it.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from postinstall.core.models.action import Receipt
from postinstall.core.models.log import ExecutionLog, LogEntry, StepOutcome
from postinstall.core.models.step import ExecutionMode, Step

logger = logging.getLogger(__name__)


class ActionFailed(Exception):
    """An action could not complete.

    For step actions that call code outside the adapter layer; adapters
    report failures through receipts instead.
    """


class ConfigurationMissing(ActionFailed):
    """A prerequisite of an action is absent (tool, service, source file).

    The exception form of ``Receipt.missing`` for the same kind of step
    action. ``remedy`` is an optional command the user can run by hand later.
    """

    def __init__(self, message: str, remedy: str = ""):
        super().__init__(message)
        self.remedy = remedy


def _is_satisfied(step: Step) -> bool:
    """Evaluate a step's check. A check that raises counts as unsatisfied."""
    try:
        return bool(step.check())
    except Exception as e:
        logger.warning("Check for '%s' raised, treating as not satisfied: %s", step.name, e)
        return False


def _upstream_unchanged(step: Step, log: ExecutionLog) -> bool:
    """True when every step named in ``step.after`` was skipped this run."""
    if not step.after:
        return False
    changed = {StepOutcome.APPLIED, StepOutcome.SIMULATED, StepOutcome.FAILED}
    return not any(log.outcome_of(name) in changed for name in step.after)


def _apply(step: Step) -> LogEntry:
    """Run a step's action and turn its receipt (or exception) into a log entry."""
    start = time.monotonic()
    try:
        receipt = step.action()
    except ConfigurationMissing as e:
        receipt = Receipt.missing(adapter="step", action_id=step.name, error=str(e), remedy=e.remedy)
    except Exception as e:
        receipt = Receipt.failure(adapter="step", action_id=step.name, error=str(e) or type(e).__name__)
    elapsed_ms = int((time.monotonic() - start) * 1000)

    if receipt.ok:
        return LogEntry(
            step=step.name,
            group=step.group,
            outcome=StepOutcome.APPLIED,
            detail=receipt.output,
            duration_ms=elapsed_ms,
        )
    if receipt.status == "skipped":
        return LogEntry(
            step=step.name,
            group=step.group,
            outcome=StepOutcome.SKIPPED,
            detail=receipt.output or "nothing to do",
            duration_ms=elapsed_ms,
        )
    return LogEntry(
        step=step.name,
        group=step.group,
        outcome=StepOutcome.FAILED,
        detail=receipt.error or "unknown error",
        error_kind=receipt.error_kind or "action_failed",
        duration_ms=elapsed_ms,
        metadata=receipt.metadata,
    )


def run_steps(
    steps: Sequence[Step],
    mode: ExecutionMode,
    operation_id: str | None = None,
) -> ExecutionLog:
    """Run every step in order and return the execution log.

    Args:
        steps: Ordered steps. Order is significant.
        mode: APPLY runs actions; SIMULATE only records their descriptions.
        operation_id: Identifier for the run (generated when omitted).

    Returns:
        ExecutionLog with exactly one entry per step, in step order.
        On Ctrl-C the log is returned with ``interrupted`` set and no
        entry for the step that was running.
    """
    log = ExecutionLog(operation_id=operation_id or generate_operation_id(), mode=mode)

    try:
        _walk(steps, mode, log)
    except KeyboardInterrupt:
        log.interrupted = True
        logger.warning(
            "Run %s interrupted after %d of %d steps", log.operation_id, log.total, len(steps),
        )
    return log


def _walk(steps: Sequence[Step], mode: ExecutionMode, log: ExecutionLog) -> None:
    for step in steps:
        if _upstream_unchanged(step, log):
            entry = LogEntry(
                step=step.name,
                group=step.group,
                outcome=StepOutcome.SKIPPED,
                detail="no upstream change",
            )
        elif _is_satisfied(step):
            entry = LogEntry(
                step=step.name,
                group=step.group,
                outcome=StepOutcome.SKIPPED,
                detail="already satisfied",
            )
        elif mode is ExecutionMode.SIMULATE:
            entry = LogEntry(
                step=step.name,
                group=step.group,
                outcome=StepOutcome.SIMULATED,
                detail=step.description or step.name,
            )
        else:
            entry = _apply(step)

        log.record(entry)
        _log_entry(entry)


def _log_entry(entry: LogEntry) -> None:
    if entry.outcome is StepOutcome.FAILED:
        if entry.error_kind == "configuration_missing":
            remedy = entry.metadata.get("remedy")
            logger.warning(
                "⚠ %s: %s%s",
                entry.step,
                entry.detail,
                f" (run manually: {remedy})" if remedy else "",
            )
        else:
            logger.error("✗ %s: %s", entry.step, entry.detail)
        return
    marker = {
        StepOutcome.APPLIED: "✓",
        StepOutcome.SKIPPED: "⊘",
        StepOutcome.SIMULATED: "🔸",
    }[entry.outcome]
    logger.info("%s %s → %s", marker, entry.step, entry.outcome.value)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
