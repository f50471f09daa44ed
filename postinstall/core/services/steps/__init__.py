"""
Step catalog — the concrete setup phases, in execution order.

    update_system → fix_audio → install_packages → setup_go_environment
    → install_go_tools → install_apt_repositories → setup_tmux
    → setup_python_tools

Packages come before the Go and pipx phases, which use the toolchains
the package list installs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from postinstall.adapters.registry import AdapterRegistry
from postinstall.core.context import TargetUser
from postinstall.core.models.config import SetupConfig
from postinstall.core.models.log import ExecutionLog, StepOutcome
from postinstall.core.models.step import ExecutionMode, Step
from postinstall.core.services.steps.audio import audio_steps
from postinstall.core.services.steps.base import StepBuilder, never
from postinstall.core.services.steps.golang import go_environment_steps, go_tool_steps
from postinstall.core.services.steps.python_tools import python_tool_steps
from postinstall.core.services.steps.repositories import repository_steps
from postinstall.core.services.steps.system import package_steps, update_system_steps
from postinstall.core.services.steps.tmux import tmux_steps

logger = logging.getLogger(__name__)

PhaseBuilder = Callable[[SetupConfig, StepBuilder], list[Step]]

PHASES: dict[str, PhaseBuilder] = {
    "update_system": update_system_steps,
    "fix_audio": audio_steps,
    "install_packages": package_steps,
    "setup_go_environment": go_environment_steps,
    "install_go_tools": go_tool_steps,
    "install_apt_repositories": repository_steps,
    "setup_tmux": tmux_steps,
    "setup_python_tools": python_tool_steps,
}

GROUPS: tuple[str, ...] = tuple(PHASES)


class UnknownGroupError(ValueError):
    """Raised when ``only`` names a group that does not exist."""


def build_steps(
    config: SetupConfig,
    target: TargetUser,
    registry: AdapterRegistry,
    only: Iterable[str] | None = None,
) -> list[Step]:
    """Build the ordered step list for ``target``.

    Args:
        config: Loaded setup configuration.
        target: User whose home and identity the steps act on.
        registry: Registry the step actions dispatch through.
        only: Restrict to these groups. Phase order is kept regardless
            of the order given.

    Raises:
        UnknownGroupError: If ``only`` names an unknown group.
    """
    selected = set(only or GROUPS)
    unknown = selected - set(GROUPS)
    if unknown:
        raise UnknownGroupError(
            f"Unknown group(s): {', '.join(sorted(unknown))}. "
            f"Available: {', '.join(GROUPS)}"
        )

    b = StepBuilder(registry=registry, target=target)
    b.variables["gopath"] = str(b.path(config.golang.gopath))

    steps: list[Step] = []
    for group, phase in PHASES.items():
        if group not in selected:
            continue
        built = phase(config, b)
        logger.debug("Phase %s: %d step(s)", group, len(built))
        steps.extend(built)
    return steps


# Post-run hints, keyed by the group whose changes they follow from.
_NOTICES = {
    "setup_tmux": "Launch tmux and press prefix + I to install plugins.",
    "setup_go_environment": "Open a new shell (or source your profile) to pick up GOPATH.",
    "setup_python_tools": "Open a new shell to pick up the pipx PATH change.",
}


def completion_notices(log: ExecutionLog) -> list[str]:
    """Manual follow-ups for the groups that changed during ``log``'s run."""
    changed = {
        e.group for e in log.entries
        if e.outcome in (StepOutcome.APPLIED, StepOutcome.SIMULATED)
    }
    notices = [msg for group, msg in _NOTICES.items() if group in changed]
    if log.mode is ExecutionMode.APPLY and log.applied:
        notices.append("A reboot is recommended to finish applying the changes.")
    return notices


__all__ = [
    "GROUPS",
    "PHASES",
    "StepBuilder",
    "UnknownGroupError",
    "build_steps",
    "completion_notices",
    "never",
]
