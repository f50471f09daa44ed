"""
Git adapter — fetch repositories into the user's home.

Uses the git CLI. Clones run as the target user so the checkout is
owned by them, not by root.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from postinstall.adapters.base import Adapter, ExecutionContext
from postinstall.adapters.shell.runner import run_subprocess, to_receipt
from postinstall.core.models.action import Receipt

logger = logging.getLogger(__name__)


class GitAdapter(Adapter):
    """Git operations.

    Action params:
        operation (str): 'clone'.
        url (str): Repository URL.
        dest (str): Destination directory.
        depth (int): Shallow clone depth (optional).
        run_as (str): Run as this user (default: current user).
        timeout (int): Timeout in seconds (default: 120).
    """

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation != "clone":
            return False, f"Unknown operation '{operation}'. Valid: clone"

        for key in ("url", "dest"):
            if not context.params.get(key):
                return False, f"Missing required param: '{key}' for clone operation"

        if not self.is_available():
            return False, "'git' not found in PATH"

        dest = Path(context.params["dest"])
        if dest.exists() and any(dest.iterdir()):
            return False, f"Destination is not empty: {dest}"

        return True, ""

    def remedy(self, context: ExecutionContext) -> str:
        return f"git clone {context.params.get('url', '')} {context.params.get('dest', '')}"

    def execute(self, context: ExecutionContext) -> Receipt:
        url = context.params["url"]
        dest = context.params["dest"]

        argv = ["git", "clone"]
        if context.params.get("depth"):
            argv += ["--depth", str(context.params["depth"])]
        argv += [url, dest]

        # Parent must exist and be writable by the cloning user.
        parent_result = run_subprocess(
            ["mkdir", "-p", str(Path(dest).parent)],
            run_as=context.run_as,
            timeout=10,
        )
        if not parent_result["ok"]:
            return to_receipt(self.name, context.action.id, parent_result, operation="clone")

        result = run_subprocess(
            argv,
            run_as=context.run_as,
            timeout=context.params.get("timeout", 120),
        )
        receipt = to_receipt(self.name, context.action.id, result, operation="clone", url=url)
        if receipt.ok:
            receipt.output = f"Cloned {url} → {dest}"
        return receipt
