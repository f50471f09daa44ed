"""
tmux phase — plugin manager clone and ~/.tmux.conf.
"""

from __future__ import annotations

from functools import partial

from postinstall.core.models.config import SetupConfig
from postinstall.core.models.step import Step
from postinstall.core.services import probes
from postinstall.core.services.steps.base import StepBuilder

GROUP = "setup_tmux"


def tmux_steps(config: SetupConfig, b: StepBuilder) -> list[Step]:
    section = config.tmux
    if not section.enabled:
        return []

    plugin_dir = b.path(section.plugin_dir)
    config_path = b.path(section.config_path)
    return [
        b.step(
            name=f"{GROUP}:tpm",
            group=GROUP,
            adapter="git",
            params={
                "operation": "clone",
                "url": section.plugin_repo,
                "dest": str(plugin_dir),
                "depth": 1,
                "run_as": b.target.name,
                "description": f"git clone {section.plugin_repo} {plugin_dir}",
            },
            check=partial(probes.dir_nonempty, plugin_dir),
        ),
        b.step(
            name=f"{GROUP}:config",
            group=GROUP,
            adapter="filesystem",
            params={
                "operation": "write",
                "path": str(config_path),
                "content": section.config,
                "owner": b.owner,
                "description": f"Write tmux config to {config_path}",
            },
            check=partial(probes.file_equals, config_path, section.config),
        ),
    ]
