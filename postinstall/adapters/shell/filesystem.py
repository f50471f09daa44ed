"""
Filesystem adapter — file and directory mutations.

Provides a receipt-returning interface for the file writes the setup
performs, so they go through the same registry dispatch as commands.
"""

from __future__ import annotations

import logging
import os
import tempfile
import urllib.request
from pathlib import Path

from postinstall.adapters.base import Adapter, ExecutionContext
from postinstall.core.models.action import Receipt
from postinstall.core.ownership import hand_over, missing_ancestors

logger = logging.getLogger(__name__)

_USER_AGENT = "postinstall/1.0"


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        operation (str): One of 'mkdir', 'write', 'append_lines',
            'symlink', 'download'.
        path (str): Target path (absolute).
        content (str): Content to write (for 'write').
        lines (list[str]): Lines to append when absent (for 'append_lines').
        source (str): Link target (for 'symlink').
        url (str): Source URL (for 'download').
        owner (list[int]): ``[uid, gid]`` for created paths (optional).
        mode (int): File mode for written files (optional).
        timeout (int): Download timeout in seconds (default: 60).
    """

    _REQUIRED = {
        "mkdir": (),
        "write": ("content",),
        "append_lines": ("lines",),
        "symlink": ("source",),
        "download": ("url",),
    }

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation not in self._REQUIRED:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(self._REQUIRED))}"

        if not context.params.get("path"):
            return False, "Missing required param: 'path'"

        for key in self._REQUIRED[operation]:
            if key not in context.params:
                return False, f"Missing required param: '{key}' for {operation} operation"

        if operation == "symlink" and not Path(context.params["source"]).exists():
            return False, f"Link source not found: {context.params['source']}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        target = Path(context.params["path"])

        handler = {
            "mkdir": self._mkdir,
            "write": self._write,
            "append_lines": self._append_lines,
            "symlink": self._symlink,
            "download": self._download,
        }[operation]

        created = missing_ancestors(target)
        try:
            receipt = handler(context, target)
            owner = context.params.get("owner")
            if receipt.ok and owner:
                hand_over([*created, target], int(owner[0]), int(owner[1]))
            return receipt
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation, "path": str(target)},
            )

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        target.mkdir(parents=True, exist_ok=True)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Directory created: {target}",
            metadata={"path": str(target)},
        )

    def _write(self, ctx: ExecutionContext, target: Path) -> Receipt:
        content = ctx.params["content"]
        target.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write(target, content.encode("utf-8"), ctx.params.get("mode"))
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Written {len(content)} bytes to {target}",
            metadata={"path": str(target), "size": len(content)},
        )

    def _append_lines(self, ctx: ExecutionContext, target: Path) -> Receipt:
        lines = [ln for ln in ctx.params["lines"] if ln.strip()]
        existing = target.read_text(encoding="utf-8") if target.is_file() else ""
        present = set(existing.splitlines())
        new_lines = [ln for ln in lines if ln not in present]

        if not new_lines:
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"All lines already present in {target}",
            )

        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write("\n# Added by postinstall\n")
            for ln in new_lines:
                f.write(f"{ln}\n")

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Appended {len(new_lines)} line(s) to {target}",
            metadata={"path": str(target), "lines": new_lines},
        )

    def _symlink(self, ctx: ExecutionContext, target: Path) -> Receipt:
        source = Path(ctx.params["source"])
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_symlink() or target.exists():
            target.unlink()
        target.symlink_to(source)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Linked {target} → {source}",
            metadata={"path": str(target), "source": str(source)},
        )

    def _download(self, ctx: ExecutionContext, target: Path) -> Receipt:
        url = ctx.params["url"]
        req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        with urllib.request.urlopen(req, timeout=ctx.params.get("timeout", 60)) as resp:
            data = resp.read()
        target.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write(target, data, ctx.params.get("mode", 0o644))
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Downloaded {len(data)} bytes from {url} to {target}",
            metadata={"path": str(target), "url": url, "size": len(data)},
        )


def _atomic_write(target: Path, data: bytes, mode: int | None = None) -> None:
    """Write to a temp file in the same directory, then rename over target.

    A symlinked target is written through: the link stays and the file
    it points at is replaced.
    """
    if target.is_symlink():
        target = target.resolve()
    fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        if mode is not None:
            tmp.chmod(mode)
        elif target.exists():
            tmp.chmod(target.stat().st_mode & 0o7777)
        else:
            tmp.chmod(0o644)
        tmp.replace(target)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
