"""
Read-only probes — the building blocks of step checks.

Nothing in here mutates the system: probes read files and run query
commands (``dpkg-query``, ``apt-get --simulate``, ``systemctl is-active``)
so they are safe to call in dry-run mode. Probes never raise for an
expected "no" — a missing checker binary or a timeout answers False.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import time
from pathlib import Path

logger = logging.getLogger(__name__)

APT_PKGCACHE = Path("/var/cache/apt/pkgcache.bin")
APT_LISTS_DIR = Path("/var/lib/apt/lists")

_APT_SUMMARY_RE = re.compile(
    r"(\d+) upgraded, (\d+) newly installed, (\d+) to remove"
)


def _query(argv: list[str], timeout: int = 30) -> subprocess.CompletedProcess | None:
    try:
        return subprocess.run(argv, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        logger.warning("Probe command not found: %s", argv[0])
    except subprocess.TimeoutExpired:
        logger.warning("Timeout running probe: %s", " ".join(argv))
    except OSError as exc:
        logger.warning("OS error running probe %s: %s", argv[0], exc)
    return None


def is_pkg_installed(pkg: str) -> bool:
    """Check if a Debian package is installed (``dpkg-query``)."""
    r = _query(["dpkg-query", "-W", "-f=${Status}", pkg], timeout=10)
    return r is not None and "install ok installed" in r.stdout


def missing_packages(packages: list[str]) -> list[str]:
    """Subset of ``packages`` that is not installed, order preserved."""
    return [p for p in packages if not is_pkg_installed(p)]


def has_binary(name: str, path: str | None = None) -> bool:
    """Whether ``name`` resolves on PATH (or on an explicit search path)."""
    return shutil.which(name, path=path) is not None


def apt_lists_fresh(max_age: int) -> bool:
    """Whether the apt package cache was refreshed within ``max_age`` seconds."""
    for marker in (APT_PKGCACHE, APT_LISTS_DIR):
        try:
            age = time.time() - marker.stat().st_mtime
        except OSError:
            continue
        return age < max_age
    return False


def apt_simulation_is_noop(operation: str) -> bool:
    """Whether ``apt-get --simulate <operation>`` would change nothing.

    Upgrade-type operations print a summary line
    (``0 upgraded, 0 newly installed, 0 to remove ...``); ``autoclean``
    prints one ``Del`` line per archive it would delete.
    """
    r = _query(["apt-get", "--simulate", operation], timeout=120)
    if r is None or r.returncode != 0:
        return False

    if operation == "autoclean":
        return not any(line.startswith("Del ") for line in r.stdout.splitlines())

    m = _APT_SUMMARY_RE.search(r.stdout)
    if not m:
        return False
    return all(int(n) == 0 for n in m.groups())


def dir_nonempty(path: Path) -> bool:
    """Whether ``path`` is a directory with at least one entry."""
    try:
        return path.is_dir() and any(path.iterdir())
    except OSError:
        return False


def file_equals(path: Path, content: str) -> bool:
    """Whether ``path`` exists with exactly ``content``."""
    try:
        return path.read_text(encoding="utf-8") == content
    except (OSError, UnicodeDecodeError):
        return False


def file_has_lines(path: Path, lines: list[str]) -> bool:
    """Whether every non-blank line in ``lines`` appears as a whole line in ``path``."""
    try:
        present = set(path.read_text(encoding="utf-8").splitlines())
    except (OSError, UnicodeDecodeError):
        return False
    return all(ln in present for ln in lines if ln.strip())


def file_contains(path: Path, needle: str) -> bool:
    """Whether ``needle`` occurs anywhere in ``path``."""
    try:
        return needle in path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False


def is_symlink_to(path: Path, source: Path) -> bool:
    """Whether ``path`` is a symlink resolving to ``source``."""
    try:
        return path.is_symlink() and path.resolve() == source.resolve()
    except OSError:
        return False


def user_systemd_env(uid: int) -> dict[str, str]:
    """Environment that lets ``systemctl --user`` reach the user's manager."""
    runtime_dir = f"/run/user/{uid}"
    return {
        "XDG_RUNTIME_DIR": runtime_dir,
        "DBUS_SESSION_BUS_ADDRESS": f"unix:path={runtime_dir}/bus",
    }


def user_service_manager_reachable(user: str, uid: int) -> bool:
    """Whether the user's systemd instance answers ``systemctl --user``."""
    argv = ["systemctl", "--user", "is-system-running"]
    if os.geteuid() == 0 and uid != 0:
        env_args = [f"{k}={v}" for k, v in user_systemd_env(uid).items()]
        argv = ["sudo", "-u", user, "env", *env_args, *argv]
    r = _query(argv, timeout=10)
    # is-system-running exits non-zero for "degraded" but still answers
    return r is not None and r.stdout.strip() not in ("", "offline")
