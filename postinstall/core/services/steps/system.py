"""
System phases — apt maintenance and the base package list.
"""

from __future__ import annotations

from functools import partial

from postinstall.core.models.config import SetupConfig
from postinstall.core.models.step import Step
from postinstall.core.services import probes
from postinstall.core.services.steps.base import StepBuilder

UPDATE_GROUP = "update_system"
PACKAGES_GROUP = "install_packages"


def update_system_steps(config: SetupConfig, b: StepBuilder) -> list[Step]:
    """One step per apt maintenance operation, in configured order.

    ``update`` is satisfied while the package cache is fresh; the others
    while ``apt-get --simulate`` says they would change nothing.
    """
    section = config.system_update
    if not section.enabled:
        return []

    steps = []
    for op in section.operations:
        if op == "update":
            check = partial(probes.apt_lists_fresh, section.cache_max_age)
            command = "apt-get update"
        else:
            check = partial(probes.apt_simulation_is_noop, op)
            command = f"apt-get {op} -y"
        steps.append(b.step(
            name=f"{UPDATE_GROUP}:{op}",
            group=UPDATE_GROUP,
            adapter="apt",
            params={"operation": op, "description": command},
            check=check,
        ))
    return steps


def package_steps(config: SetupConfig, b: StepBuilder) -> list[Step]:
    """One step per package, satisfied when dpkg reports it installed."""
    return [
        b.step(
            name=f"{PACKAGES_GROUP}:{pkg}",
            group=PACKAGES_GROUP,
            adapter="apt",
            params={
                "operation": "install",
                "packages": [pkg],
                "description": f"apt-get install -y {pkg}",
            },
            check=partial(probes.is_pkg_installed, pkg),
        )
        for pkg in config.packages
    ]
