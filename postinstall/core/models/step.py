"""
Step model — one idempotent unit of setup work.

A step pairs a read-only ``check`` ("is this already done?") with an
``action`` that performs the mutation and returns a Receipt. Steps are
plain values: building them has no side effects, so a list of steps can
be inspected, filtered and printed before anything runs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from postinstall.core.models.action import Receipt


class ExecutionMode(str, Enum):
    """How the executor treats unsatisfied steps."""

    APPLY = "apply"
    SIMULATE = "simulate"


@dataclass(frozen=True)
class Step:
    """An ordered unit of setup work.

    Attributes:
        name: Unique, human-readable step name.
        check: Returns True when the step is already satisfied.
        action: Performs the mutation. Only called in APPLY mode.
        description: What the action would do, shown in SIMULATE mode.
        group: Setup phase this step belongs to (e.g. ``install_packages``).
        after: Names of earlier steps this one reacts to. When every one
            of them was skipped in the current run, this step is skipped
            too (e.g. restart a service only if its config changed).
    """

    name: str
    check: Callable[[], bool]
    action: Callable[[], Receipt]
    description: str = ""
    group: str = ""
    after: tuple[str, ...] = ()

    def __repr__(self) -> str:
        return f"<Step {self.name!r} group={self.group!r}>"
