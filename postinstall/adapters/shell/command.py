"""
Shell command adapter — run an argv list and capture output.

No shell is involved: ``argv`` is executed directly, so values taken
from configuration are never re-interpreted.
"""

from __future__ import annotations

import logging
import os
import shutil

from postinstall.adapters.base import Adapter, ExecutionContext
from postinstall.adapters.shell.runner import run_subprocess, to_receipt
from postinstall.core.models.action import Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Execute commands and capture output.

    Action params:
        argv (list[str]): The command to execute.
        run_as (str): Run as this user (default: current user).
        env (dict[str, str]): Extra environment variables.
        cwd (str): Working directory.
        timeout (int): Timeout in seconds (default: 300).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.params.get("argv") or []
        if not argv:
            return False, "Missing required param: 'argv'"

        search_path = context.params.get("env", {}).get("PATH")
        if search_path:
            search_path = os.path.expandvars(search_path)
        if shutil.which(argv[0], path=search_path) is None:
            return False, f"'{argv[0]}' not found in PATH"

        cwd = context.params.get("cwd")
        if cwd and not os.path.isdir(cwd):
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def remedy(self, context: ExecutionContext) -> str:
        return context.action.describe()

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = [str(a) for a in context.params["argv"]]
        result = run_subprocess(
            argv,
            run_as=context.run_as,
            env_overrides=context.params.get("env"),
            cwd=context.params.get("cwd"),
            timeout=context.params.get("timeout", 300),
        )
        return to_receipt(self.name, context.action.id, result, argv=argv)
