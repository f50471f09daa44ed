"""
Python tooling phase — put pipx's bin directory on the user's PATH.
"""

from __future__ import annotations

from functools import partial

from postinstall.core.models.config import SetupConfig
from postinstall.core.models.step import Step
from postinstall.core.services import probes
from postinstall.core.services.steps.base import StepBuilder

GROUP = "setup_python_tools"


def python_tool_steps(config: SetupConfig, b: StepBuilder) -> list[Step]:
    section = config.python_tools
    if not section.pipx_ensurepath:
        return []

    profile = b.path(section.profile)
    return [
        b.step(
            name=f"{GROUP}:pipx-ensurepath",
            group=GROUP,
            adapter="shell",
            params={"argv": ["pipx", "ensurepath"], "run_as": b.target.name},
            check=partial(probes.file_contains, profile, b.render(section.path_marker)),
        )
    ]
