"""
Step builder — shared plumbing for the per-phase step modules.

Each phase module turns one section of SetupConfig into Steps. The
builder carries what they all need: the registry actions dispatch
through, the target user, and the path template variables.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any

from postinstall.adapters.registry import AdapterRegistry
from postinstall.core.config.loader import render
from postinstall.core.context import TargetUser
from postinstall.core.models.action import Action
from postinstall.core.models.step import Step


def never() -> bool:
    """Check for steps that have no cheaper idempotency probe than running."""
    return False


@dataclass
class StepBuilder:
    """Builds Steps whose actions dispatch through ``registry``."""

    registry: AdapterRegistry
    target: TargetUser
    variables: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.variables = {**self.target.variables(), **self.variables}

    def render(self, template: str) -> str:
        return render(template, self.variables)

    def path(self, template: str) -> Path:
        return Path(self.render(template)).expanduser()

    @property
    def owner(self) -> list[int]:
        """``[uid, gid]`` for files created in the target user's home."""
        return [self.target.uid, self.target.gid]

    def step(
        self,
        name: str,
        group: str,
        adapter: str,
        params: dict[str, Any],
        check: Callable[[], bool],
        after: tuple[str, ...] = (),
    ) -> Step:
        """Create a step whose action is ``adapter`` applied to ``params``."""
        action = Action(id=name, adapter=adapter, params=params)
        return Step(
            name=name,
            group=group,
            check=check,
            action=partial(self.registry.execute_action, action),
            description=action.describe(),
            after=after,
        )
