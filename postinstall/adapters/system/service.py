"""
Service adapter — restart systemd user services for the target user.

When the tool runs under sudo, ``systemctl --user`` would talk to root's
manager; the adapter switches to the target user and points the command
at that user's runtime directory instead.
"""

from __future__ import annotations

import logging
import shutil

from postinstall.adapters.base import Adapter, ExecutionContext
from postinstall.adapters.shell.runner import run_subprocess, to_receipt
from postinstall.core.models.action import Receipt
from postinstall.core.services.probes import (
    user_service_manager_reachable,
    user_systemd_env,
)

logger = logging.getLogger(__name__)


class ServiceAdapter(Adapter):
    """systemd user-service management.

    Action params:
        operation (str): 'restart'.
        services (list[str]): Unit names.
        run_as (str): Owner of the user manager.
        uid (int): That user's uid (locates /run/user/<uid>).
        timeout (int): Timeout in seconds (default: 60).
    """

    @property
    def name(self) -> str:
        return "service"

    def is_available(self) -> bool:
        return shutil.which("systemctl") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if context.params.get("operation") != "restart":
            return False, f"Unknown service operation '{context.params.get('operation')}'"

        if not context.params.get("services"):
            return False, "Missing required param: 'services'"

        if not self.is_available():
            return False, "'systemctl' not found in PATH"

        user = context.run_as or ""
        uid = int(context.params.get("uid", 0))
        if not user_service_manager_reachable(user, uid):
            return False, f"Could not reach the systemd user manager for '{user}'. Reboot or restart the services manually"

        return True, ""

    def remedy(self, context: ExecutionContext) -> str:
        return "systemctl --user restart " + " ".join(context.params.get("services", []))

    def execute(self, context: ExecutionContext) -> Receipt:
        services = list(context.params["services"])
        uid = int(context.params.get("uid", 0))
        result = run_subprocess(
            ["systemctl", "--user", "restart", *services],
            run_as=context.run_as,
            env_overrides=user_systemd_env(uid),
            timeout=context.params.get("timeout", 60),
        )
        receipt = to_receipt(self.name, context.action.id, result, services=services)
        if receipt.ok:
            receipt.output = f"Restarted {', '.join(services)}"
        return receipt
