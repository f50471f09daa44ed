"""
postinstall — CLI entrypoint.

Usage:
    postinstall --dry-run          show what would change
    sudo postinstall --run         apply it
    postinstall --list             print the planned steps
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import click

from postinstall import __version__
from postinstall.core.models.log import StepOutcome
from postinstall.core.models.step import ExecutionMode
from postinstall.core.observability.logging_config import (
    FILE_ENV_VAR,
    FILE_LEVEL_ENV_VAR,
    level_from_flags,
    setup_logging,
)
from postinstall.core.services.steps import GROUPS

HELP_FLAGS = ("-h", "--help")

_MARKERS = {
    StepOutcome.APPLIED: ("✓", "green"),
    StepOutcome.SKIPPED: ("⊘", None),
    StepOutcome.SIMULATED: ("🔸 [DRY RUN]", "yellow"),
    StepOutcome.FAILED: ("✗", "red"),
}


def resolve_mode(run: bool, dry_run: bool) -> ExecutionMode | None:
    """Map the mode flags to an ExecutionMode. ``--run`` wins over ``--dry-run``."""
    if run:
        return ExecutionMode.APPLY
    if dry_run:
        return ExecutionMode.SIMULATE
    return None


class SetupCommand(click.Command):
    """click Command with this tool's argument contract.

    Help (or no arguments) always exits 0 before anything else is
    looked at; any invalid input exits 1 rather than click's 2.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if not args or any(a in HELP_FLAGS for a in args):
            click.echo(self.get_help(ctx))
            ctx.exit(0)

        try:
            rest = super().parse_args(ctx, args)
        except click.NoSuchOption as e:
            self._reject(ctx, f"Unknown option: {e.option_name}")
        except click.UsageError as e:
            self._reject(ctx, e.format_message())

        if ctx.args:
            self._reject(ctx, f"Unknown option: {ctx.args[0]}")
        return rest

    @staticmethod
    def _reject(ctx: click.Context, message: str) -> None:
        click.secho(f"✗ {message}", fg="red", err=True)
        click.echo(ctx.get_usage(), err=True)
        click.echo(f"Try '{ctx.command_path} --help' for help.", err=True)
        ctx.exit(1)


@click.command(
    cls=SetupCommand,
    context_settings={"help_option_names": list(HELP_FLAGS), "allow_extra_args": True},
)
@click.version_option(version=__version__, prog_name="postinstall")
@click.option("--run", "run", is_flag=True, help="Apply the changes.")
@click.option("--dry-run", "dry_run", is_flag=True, help="Show what would change, change nothing.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to setup.yml (default: $POSTINSTALL_CONFIG, else the bundled one).",
)
@click.option(
    "--only",
    "only",
    multiple=True,
    type=click.Choice(GROUPS),
    help="Run only this setup phase (repeatable).",
)
@click.option("--list", "list_steps", is_flag=True, help="Print the planned steps and exit.")
@click.option("--json", "as_json", is_flag=True, help="Output the execution log as JSON.")
@click.option("--no-audit", is_flag=True, help="Do not append this run to the audit ledger.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only print failures and the summary.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.pass_context
def cli(
    ctx: click.Context,
    run: bool,
    dry_run: bool,
    config_path: str | None,
    only: tuple[str, ...],
    list_steps: bool,
    as_json: bool,
    no_audit: bool,
    verbose: bool,
    quiet: bool,
    debug: bool,
) -> None:
    """Post-install setup for a fresh Debian/Kali machine.

    Every step checks first and only changes what is not already in
    place. Pass --dry-run to preview, --run to apply. When both are
    given, --run wins.
    """
    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=level_from_flags(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(FILE_ENV_VAR),
        log_file_level=os.environ.get(FILE_LEVEL_ENV_VAR),
    )

    config = Path(config_path) if config_path else None

    if list_steps:
        _list(ctx, config, only, as_json)
        return

    mode = resolve_mode(run, dry_run)
    if mode is None:
        click.secho("⚠ No mode given: use --dry-run to preview or --run to apply.", fg="yellow", err=True)
        click.echo(ctx.get_usage(), err=True)
        ctx.exit(1)

    from postinstall.core.context import running_as_bare_root
    from postinstall.core.use_cases.setup import run_setup

    if running_as_bare_root():
        click.secho(
            "⚠ Running as root without sudo: per-user files will go to root's home.",
            fg="yellow",
            err=True,
        )

    try:
        result = run_setup(mode, config_path=config, only=only or None, audit=not no_audit)
    except KeyboardInterrupt:
        click.secho("\n✗ Interrupted.", fg="red", err=True)
        ctx.exit(130)

    interrupted = result.log is not None and result.log.interrupted

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            ctx.exit(1)
        if interrupted:
            ctx.exit(130)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        ctx.exit(1)

    _report(result, quiet=quiet)
    if interrupted:
        click.secho("\n✗ Interrupted.", fg="red", err=True)
        ctx.exit(130)


def _list(ctx: click.Context, config, only: tuple[str, ...], as_json: bool) -> None:
    from postinstall.core.use_cases.setup import plan_setup

    plan = plan_setup(config_path=config, only=only or None)
    if as_json:
        click.echo(json.dumps(plan.to_dict(), indent=2))
        if plan.error:
            ctx.exit(1)
        return
    if plan.error:
        click.secho(f"❌ {plan.error}", fg="red", err=True)
        ctx.exit(1)

    group = None
    for i, step in enumerate(plan.steps, start=1):
        if step.group != group:
            group = step.group
            click.secho(f"\n{group}", fg="cyan", bold=True)
        click.echo(f"  {i:>3}. {step.name}")
        click.echo(f"       {step.description}")


def _report(result, quiet: bool = False) -> None:
    log = result.log
    dry = log.mode is ExecutionMode.SIMULATE

    if not quiet:
        title = "Dry run" if dry else "Setup"
        click.secho(f"\n📋 {title} for {result.target.name} ({result.target.home})", fg="cyan", bold=True)

    group = None
    for entry in log.entries:
        if quiet and entry.outcome is not StepOutcome.FAILED:
            continue
        if entry.group != group and not quiet:
            group = entry.group
            click.secho(f"\n  {group}", fg="white", bold=True)

        if entry.outcome is StepOutcome.FAILED and entry.error_kind == "configuration_missing":
            remedy = entry.metadata.get("remedy")
            click.secho(f"    ⚠ {entry.step}: {entry.detail}", fg="yellow")
            if remedy:
                click.echo(f"        run manually: {remedy}")
            continue

        marker, color = _MARKERS[entry.outcome]
        click.secho(f"    {marker} {entry.step}", fg=color, nl=False)
        if entry.outcome is StepOutcome.SKIPPED:
            click.echo(f"  ({entry.detail})")
        elif entry.detail:
            click.echo(f": {entry.detail}")
        else:
            click.echo()

    click.echo()
    if dry:
        summary = f"{log.simulated} would change, {log.skipped} already satisfied"
    else:
        summary = f"{log.applied} applied, {log.skipped} skipped, {log.failed} failed"
    color = {"ok": "green", "partial": "yellow", "failed": "red", "interrupted": "red"}.get(log.status, "white")
    click.secho(f"  Summary: {summary}", fg=color, bold=True)

    if result.audit_written and not quiet:
        click.echo(f"  Audit: {result.audit_path}")

    if result.notices and not quiet:
        click.echo()
        for notice in result.notices:
            click.echo(f"  👉 {notice}")


if __name__ == "__main__":
    cli()
