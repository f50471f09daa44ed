"""
Ownership helpers — files created in the user's home while running as root
must end up owned by that user.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


def missing_ancestors(path: Path) -> list[Path]:
    """Directories above ``path`` that do not exist yet, outermost first."""
    missing: list[Path] = []
    parent = path.parent
    while not parent.exists():
        missing.append(parent)
        if parent.parent == parent:
            break
        parent = parent.parent
    return list(reversed(missing))


def hand_over(paths: Iterable[Path], uid: int, gid: int) -> None:
    """chown each path to uid:gid. A no-op for paths already owned by uid."""
    for p in paths:
        if p.lstat().st_uid == uid:
            continue
        os.chown(p, uid, gid, follow_symlinks=False)
        logger.debug("chown %s → %d:%d", p, uid, gid)
