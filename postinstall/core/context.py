"""
Target user context — whose home directory the setup writes into.

The tool normally runs under ``sudo``; per-user files (shell profile,
tmux config, WirePlumber config) must land in the invoking user's home,
not root's. The user is resolved once at startup:

    SUDO_USER  >  USER  >  effective uid

and passed explicitly to everything that needs it.
"""

from __future__ import annotations

import logging
import os
import pwd
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetUser:
    """The user the setup is performed for."""

    name: str
    home: Path
    uid: int
    gid: int

    def variables(self) -> dict[str, str]:
        """Built-in template variables for config path rendering."""
        return {"user": self.name, "home": str(self.home)}


def resolve_target_user(environ: Mapping[str, str] | None = None) -> TargetUser:
    """Resolve the invoking user from the privilege-escalation context.

    Args:
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        TargetUser with home, uid and gid from the password database.
        Falls back to ``HOME`` when the user has no passwd entry.
    """
    env = os.environ if environ is None else environ
    sudo_user = env.get("SUDO_USER", "")
    name = sudo_user or env.get("USER", "") or env.get("LOGNAME", "")

    try:
        entry = pwd.getpwnam(name) if name else pwd.getpwuid(os.geteuid())
    except KeyError:
        logger.warning("User '%s' not in passwd database, using HOME", name)
        return TargetUser(
            name=name,
            home=Path(env.get("HOME", "/root")),
            uid=os.geteuid(),
            gid=os.getegid(),
        )

    return TargetUser(
        name=entry.pw_name,
        home=Path(entry.pw_dir),
        uid=entry.pw_uid,
        gid=entry.pw_gid,
    )


def running_as_bare_root(environ: Mapping[str, str] | None = None) -> bool:
    """True when running as root without sudo (no invoking user to target)."""
    env = os.environ if environ is None else environ
    return os.geteuid() == 0 and not env.get("SUDO_USER")
