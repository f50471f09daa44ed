"""
Audio phase — WirePlumber ALSA tuning for VMware guests.

The services are restarted only when one of the earlier audio steps
actually changed something in this run.
"""

from __future__ import annotations

from functools import partial

from postinstall.core.models.config import SetupConfig
from postinstall.core.models.step import Step
from postinstall.core.services import probes
from postinstall.core.services.steps.base import StepBuilder, never

GROUP = "fix_audio"


def _wireplumber_present(binary: str, package: str) -> bool:
    return probes.has_binary(binary) or probes.is_pkg_installed(package)


def audio_steps(config: SetupConfig, b: StepBuilder) -> list[Step]:
    section = config.audio
    if not section.enabled:
        return []

    conf_dir = b.path(section.config_dir)
    conf_file = conf_dir / section.config_file

    install = b.step(
        name=f"{GROUP}:install-{section.package}",
        group=GROUP,
        adapter="apt",
        params={
            "operation": "install",
            "packages": [section.package],
            "description": f"apt-get install -y {section.package}",
        },
        check=partial(_wireplumber_present, section.binary, section.package),
    )
    mkdir = b.step(
        name=f"{GROUP}:config-dir",
        group=GROUP,
        adapter="filesystem",
        params={
            "operation": "mkdir",
            "path": str(conf_dir),
            "owner": b.owner,
            "description": f"mkdir -p {conf_dir}",
        },
        check=conf_dir.is_dir,
    )
    write = b.step(
        name=f"{GROUP}:alsa-config",
        group=GROUP,
        adapter="filesystem",
        params={
            "operation": "write",
            "path": str(conf_file),
            "content": section.content,
            "owner": b.owner,
            "description": f"Write ALSA config to {conf_file}",
        },
        check=partial(probes.file_equals, conf_file, section.content),
    )
    restart = b.step(
        name=f"{GROUP}:restart-services",
        group=GROUP,
        adapter="service",
        params={
            "operation": "restart",
            "services": list(section.services),
            "run_as": b.target.name,
            "uid": b.target.uid,
            "description": "systemctl --user restart " + " ".join(section.services),
        },
        check=never,
        after=(install.name, mkdir.name, write.name),
    )
    return [install, mkdir, write, restart]
