"""
Subprocess runner — the single place where mutating commands are spawned.

Commands are argv lists, never shell strings. When the process runs as
root on behalf of another user (``sudo postinstall``), commands that must
run as that user are wrapped in ``sudo -u USER -H env VAR=...``.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any

from postinstall.core.models.action import Receipt

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 2000


def as_user(
    argv: list[str],
    run_as: str | None,
    env_overrides: dict[str, str] | None = None,
) -> tuple[list[str], dict[str, str]]:
    """Build the argv and environment for running ``argv`` as ``run_as``.

    Returns:
        ``(argv, env)``. When a user switch is needed the overrides are
        passed through ``env`` on the command line (sudo resets the
        environment); otherwise they are merged into the process env.
    """
    env = os.environ.copy()
    overrides = {k: os.path.expandvars(v) for k, v in (env_overrides or {}).items()}

    if run_as and os.geteuid() == 0 and run_as != "root":
        prefix = ["sudo", "-u", run_as, "-H"]
        if overrides:
            prefix += ["env", *(f"{k}={v}" for k, v in overrides.items())]
        return prefix + list(argv), env

    env.update(overrides)
    return list(argv), env


def run_subprocess(
    argv: list[str],
    *,
    run_as: str | None = None,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
    timeout: int = 300,
) -> dict[str, Any]:
    """Run a command and capture its result.

    Args:
        argv: Command as a list of arguments.
        run_as: Run as this user (only switches when running as root).
        env_overrides: Extra environment variables ($VARS are expanded).
        cwd: Working directory.
        timeout: Seconds before the command is killed.

    Returns:
        ``{"ok": True, "stdout": ..., "elapsed_ms": N}`` on success,
        ``{"ok": False, "error": ..., "stderr": ..., ...}`` on failure.
    """
    cmd, env = as_user(argv, run_as, env_overrides)
    logger.debug("Executing: %s (cwd=%s)", cmd, cwd)

    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out after {timeout}s"}
    except FileNotFoundError:
        return {"ok": False, "error": f"Command not found: {cmd[0]}"}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout[-_OUTPUT_TAIL:] if result.stdout else ""
    stderr = result.stderr[-_OUTPUT_TAIL:] if result.stderr else ""

    if result.returncode == 0:
        return {"ok": True, "stdout": stdout.strip(), "elapsed_ms": elapsed_ms}

    return {
        "ok": False,
        "error": stderr.strip() or f"Command exited with code {result.returncode}",
        "return_code": result.returncode,
        "stderr": stderr,
        "stdout": stdout,
        "elapsed_ms": elapsed_ms,
    }


def to_receipt(adapter: str, action_id: str, result: dict[str, Any], **metadata: Any) -> Receipt:
    """Convert a ``run_subprocess`` result dict into a Receipt."""
    if result["ok"]:
        return Receipt.success(
            adapter=adapter,
            action_id=action_id,
            output=result.get("stdout", ""),
            duration_ms=result.get("elapsed_ms", 0),
            metadata=metadata,
        )
    return Receipt.failure(
        adapter=adapter,
        action_id=action_id,
        error=result.get("error", "unknown error"),
        duration_ms=result.get("elapsed_ms", 0),
        metadata={**metadata, "return_code": result.get("return_code")},
    )
