"""
Setup use case — the full vertical slice of one invocation.

Loads setup.yml, resolves the target user, builds the step catalog,
runs it in the requested mode and, for applied runs, appends the
outcome to the audit ledger.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from postinstall.adapters.registry import AdapterRegistry
from postinstall.core.config.loader import ConfigError, find_config_file, load_config, render
from postinstall.core.context import TargetUser, resolve_target_user
from postinstall.core.engine.executor import generate_operation_id, run_steps
from postinstall.core.models.log import ExecutionLog
from postinstall.core.models.step import ExecutionMode, Step
from postinstall.core.persistence.audit import AuditEntry, AuditWriter
from postinstall.core.services.steps import UnknownGroupError, build_steps, completion_notices

logger = logging.getLogger(__name__)


def default_registry() -> AdapterRegistry:
    """Registry with every adapter the step catalog dispatches to."""
    from postinstall.adapters.shell.command import ShellCommandAdapter
    from postinstall.adapters.shell.filesystem import FilesystemAdapter
    from postinstall.adapters.system.apt import AptAdapter
    from postinstall.adapters.system.service import ServiceAdapter
    from postinstall.adapters.vcs.git import GitAdapter

    registry = AdapterRegistry()
    registry.register(ShellCommandAdapter())
    registry.register(FilesystemAdapter())
    registry.register(GitAdapter())
    registry.register(AptAdapter())
    registry.register(ServiceAdapter())
    return registry


@dataclass
class SetupResult:
    """Result of one setup invocation."""

    log: ExecutionLog | None = None
    target: TargetUser | None = None
    config_path: Path | None = None
    audit_path: Path | None = None
    audit_written: bool = False
    notices: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["config_path"] = str(self.config_path) if self.config_path else None
        result["user"] = self.target.name if self.target else ""
        result["home"] = str(self.target.home) if self.target else ""
        if self.log:
            result["log"] = self.log.to_dict()
        result["audit_path"] = str(self.audit_path) if self.audit_written else None
        result["notices"] = self.notices
        return result


@dataclass
class PlanResult:
    """The ordered step list, without checking or running anything."""

    steps: list[Step] = field(default_factory=list)
    target: TargetUser | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "user": self.target.name if self.target else "",
            "steps": [
                {"name": s.name, "group": s.group, "description": s.description}
                for s in self.steps
            ],
        }


def _prepare(
    config_path: Path | None,
    only: Iterable[str] | None,
    registry: AdapterRegistry,
    target: TargetUser | None,
) -> tuple[list[Step], TargetUser, Path, str]:
    path = find_config_file(config_path)
    config = load_config(path)
    if target is None:
        target = resolve_target_user()
    logger.info("Target user: %s (home %s)", target.name, target.home)
    try:
        steps = build_steps(config, target, registry, only=only)
    except UnknownGroupError as e:
        raise ConfigError(str(e)) from e
    return steps, target, path, config.audit_log


def plan_setup(
    config_path: Path | None = None,
    only: Iterable[str] | None = None,
    target: TargetUser | None = None,
) -> PlanResult:
    """Build the step list for inspection (``--list``)."""
    result = PlanResult()
    try:
        result.steps, result.target, _, _ = _prepare(
            config_path, only, default_registry(), target,
        )
    except ConfigError as e:
        result.error = str(e)
    return result


def run_setup(
    mode: ExecutionMode,
    config_path: Path | None = None,
    only: Iterable[str] | None = None,
    audit: bool = True,
    registry: AdapterRegistry | None = None,
    target: TargetUser | None = None,
) -> SetupResult:
    """Run the setup in ``mode``.

    Args:
        mode: APPLY or SIMULATE. There is no default.
        config_path: Explicit setup.yml (else env var, else bundled default).
        only: Restrict to these step groups.
        audit: Append the outcome to the audit ledger (APPLY runs only).
        registry: Pre-configured adapter registry (default: all adapters).
        target: Target user override (default: resolved from the environment).

    Returns:
        SetupResult. ``error`` is set only when the run could not start;
        failed steps are reported through the log.
    """
    result = SetupResult()

    # ── Load config and build steps ──────────────────────────────
    if registry is None:
        registry = default_registry()
    try:
        steps, target, path, audit_template = _prepare(config_path, only, registry, target)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.target = target
    result.config_path = path

    # ── Execute ──────────────────────────────────────────────────
    operation_id = generate_operation_id()
    logger.info("Starting %s run %s (%d steps)", mode.value, operation_id, len(steps))
    log = run_steps(steps, mode, operation_id=operation_id)
    result.log = log
    result.notices = completion_notices(log)

    # ── Audit ────────────────────────────────────────────────────
    if mode is ExecutionMode.APPLY and audit:
        audit_path = Path(render(audit_template, target.variables())).expanduser()
        writer = AuditWriter(audit_path, owner=(target.uid, target.gid))
        entry = AuditEntry.from_log(
            log,
            user=target.name,
            config=str(path),
            groups=sorted({s.group for s in steps}),
        )
        result.audit_path = audit_path
        result.audit_written = writer.write(entry)

    return result
