"""
apt adapter — package installation and apt maintenance.

Runs ``apt-get`` non-interactively. Package installs only ask apt for
the packages that are actually missing.
"""

from __future__ import annotations

import logging
import os
import shutil

from postinstall.adapters.base import Adapter, ExecutionContext
from postinstall.adapters.shell.runner import run_subprocess, to_receipt
from postinstall.core.models.action import Receipt
from postinstall.core.services.probes import missing_packages

logger = logging.getLogger(__name__)

MAINTENANCE_OPERATIONS = (
    "update", "upgrade", "full-upgrade", "dist-upgrade", "autoremove", "autoclean",
)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptAdapter(Adapter):
    """apt-get operations.

    Action params:
        operation (str): 'install' or one of MAINTENANCE_OPERATIONS.
        packages (list[str]): Packages to install (for 'install').
        timeout (int): Timeout in seconds (default: 1800).
    """

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation != "install" and operation not in MAINTENANCE_OPERATIONS:
            return False, f"Unknown apt operation '{operation}'"

        if operation == "install" and not context.params.get("packages"):
            return False, "Missing required param: 'packages' for install operation"

        if not self.is_available():
            return False, "'apt-get' not found in PATH"

        if os.geteuid() != 0:
            return False, "apt operations require root; re-run with sudo"

        return True, ""

    def remedy(self, context: ExecutionContext) -> str:
        operation = context.params.get("operation", "")
        if operation != "install" and operation not in MAINTENANCE_OPERATIONS:
            return ""
        return "sudo " + " ".join(self._argv(operation, context.params.get("packages", [])))

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        timeout = context.params.get("timeout", 1800)

        packages: list[str] = []
        if operation == "install":
            packages = missing_packages(list(context.params["packages"]))
            if not packages:
                return Receipt.skip(
                    adapter=self.name,
                    action_id=context.action.id,
                    reason="All packages already installed",
                )

        argv = self._argv(operation, packages)
        result = run_subprocess(argv, env_overrides=_APT_ENV, timeout=timeout)
        receipt = to_receipt(self.name, context.action.id, result, operation=operation, packages=packages)
        if receipt.ok:
            receipt.output = (
                f"Installed {', '.join(packages)}" if packages else f"apt-get {operation} done"
            )
        return receipt

    @staticmethod
    def _argv(operation: str, packages: list[str]) -> list[str]:
        if operation == "install":
            return ["apt-get", "install", "-y", *packages]
        if operation == "update":
            return ["apt-get", "update"]
        return ["apt-get", operation, "-y"]
