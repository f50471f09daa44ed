"""
Go phases — GOPATH in the shell profile, then ``go install`` tools.

Tools are installed as the target user with GOPATH set explicitly, so
the build does not depend on the profile change being sourced.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path

from postinstall.core.models.config import GoTool, SetupConfig
from postinstall.core.models.step import Step
from postinstall.core.services import probes
from postinstall.core.services.steps.base import StepBuilder

ENV_GROUP = "setup_go_environment"
TOOLS_GROUP = "install_go_tools"


def go_environment_steps(config: SetupConfig, b: StepBuilder) -> list[Step]:
    section = config.golang
    if not section.enabled:
        return []

    profile = b.path(section.profile)
    lines = [b.render(ln) for ln in section.env_lines]
    return [
        b.step(
            name=f"{ENV_GROUP}:profile",
            group=ENV_GROUP,
            adapter="filesystem",
            params={
                "operation": "append_lines",
                "path": str(profile),
                "lines": lines,
                "owner": b.owner,
                "description": f"Append {len(lines)} Go environment line(s) to {profile}",
            },
            check=partial(probes.file_has_lines, profile, lines),
        )
    ]


def _linked_or_on_path(binary: str, link: Path, source: Path) -> bool:
    return probes.is_symlink_to(link, source) or probes.has_binary(binary)


def go_tool_steps(config: SetupConfig, b: StepBuilder) -> list[Step]:
    section = config.golang
    if not section.enabled:
        return []

    gopath = b.path(section.gopath)
    bin_dir = gopath / "bin"
    env = {"GOPATH": str(gopath), "PATH": f"$PATH:{bin_dir}"}

    steps: list[Step] = []
    for tool in section.tools:
        steps.extend(_tool_steps(tool, b, env, bin_dir, b.path(section.link_dir)))
    return steps


def _tool_steps(
    tool: GoTool,
    b: StepBuilder,
    env: dict[str, str],
    bin_dir: Path,
    link_dir: Path,
) -> list[Step]:
    binary = bin_dir / tool.binary_name
    link = link_dir / tool.binary_name

    install = b.step(
        name=f"{TOOLS_GROUP}:{tool.name}",
        group=TOOLS_GROUP,
        adapter="shell",
        params={
            "argv": ["go", "install", tool.module],
            "run_as": b.target.name,
            "env": env,
            "timeout": 900,
        },
        check=binary.is_file,
    )
    symlink = b.step(
        name=f"{TOOLS_GROUP}:link-{tool.name}",
        group=TOOLS_GROUP,
        adapter="filesystem",
        params={
            "operation": "symlink",
            "path": str(link),
            "source": str(binary),
            "description": f"ln -sf {binary} {link}",
        },
        check=partial(_linked_or_on_path, tool.binary_name, link, binary),
    )
    return [install, symlink]
