"""Pacemaker primitive operator CLI (pco).

Usage:
    pco apply primitives.yaml      # Reconcile every declared action
    pco plan primitives.yaml       # Show the commands apply would run
    pco show vip                   # Show the parsed live state of a primitive
    pco start vip                  # Start a primitive if it is stopped
    pco stop vip                   # Stop a primitive if it is running
    pco delete vip                 # Delete a stopped primitive
"""

from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import click

from .config import VALID_LOG_LEVELS, Config, ConfigurationError
from .controller import ReconciliationController
from .errors import PrimitiveError
from .main import reconcile_all, setup_logging
from .models import LifecycleAction, ReconciliationResult
from .spec_loader import SpecLoadError, load_specs
from .transport import CrmShellTransport


def _controller(ctx: click.Context) -> ReconciliationController:
    return ctx.obj["controller"]


def _echo_result(result: ReconciliationResult) -> None:
    label = f"{result.action.value} {result.name}"
    for command in result.commands_applied:
        click.echo(f"  applied: {command}")
    for command in result.commands_planned:
        click.echo(f"  planned: {command}")

    if not result.success:
        click.secho(f"✗ {label}: {result.failure_reason}", fg="red", err=True)
    elif result.changed:
        click.secho(f"✓ {label}: changed", fg="green")
    else:
        click.echo(f"  {label}: up to date")


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="pco")
@click.option(
    "--log-level",
    type=click.Choice(VALID_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL",
)
@click.option("--dry-run/--no-dry-run", default=None, help="Compute commands without applying")
@click.option("--strict/--no-strict", default=None, help="Fail on same-named non-primitives")
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str | None,
    dry_run: bool | None,
    strict: bool | None,
) -> None:
    """Pacemaker primitive operator CLI (pco).

    Reconciles declared primitives against the live cluster using crm and
    crm_resource. Defaults come from the same environment variables as the
    operator entry point.
    """
    ctx.ensure_object(dict)

    try:
        config = Config.from_env()
        overrides: dict[str, object] = {}
        if log_level is not None:
            overrides["log_level"] = log_level.upper()
        if dry_run is not None:
            overrides["dry_run"] = dry_run
        if strict is not None:
            overrides["strict_object_kind"] = strict
        if overrides:
            config = dataclasses.replace(config, **overrides)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    setup_logging(config.log_level_number, stream=sys.stderr)

    transport = ctx.obj.get("transport") or CrmShellTransport(config)
    ctx.obj["controller"] = ReconciliationController(transport, config)


# =============================================================================
# Declaration Commands
# =============================================================================


@cli.command()
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def apply(ctx: click.Context, spec_file: Path) -> None:
    """Reconcile every primitive declared in SPEC_FILE."""
    try:
        specs = load_specs(spec_file)
    except SpecLoadError as e:
        raise click.ClickException(str(e)) from e

    results = reconcile_all(_controller(ctx), specs)
    for result in results:
        _echo_result(result)

    failed = [r for r in results if not r.success]
    if failed:
        raise click.ClickException(f"{len(failed)} action(s) failed")


@cli.command()
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def plan(ctx: click.Context, spec_file: Path) -> None:
    """Show the create/modify commands for SPEC_FILE without applying them."""
    controller = _controller(ctx)
    try:
        specs = load_specs(spec_file)
        for spec in specs:
            commands = controller.plan(spec, controller.load_live_state(spec.name))
            if not commands:
                click.echo(f"{spec.name}: up to date")
                continue
            click.echo(f"{spec.name}:")
            for command in commands:
                click.echo(f"  {command}")
    except (SpecLoadError, PrimitiveError) as e:
        raise click.ClickException(str(e)) from e


# =============================================================================
# Single-primitive Commands
# =============================================================================


@cli.command()
@click.argument("name")
@click.pass_context
def show(ctx: click.Context, name: str) -> None:
    """Show the parsed live state of primitive NAME."""
    try:
        live = _controller(ctx).load_live_state(name)
    except PrimitiveError as e:
        raise click.ClickException(str(e)) from e

    if live is None:
        click.echo(f"{name}: absent")
        return

    click.echo(f"{name}: {live.agent}")
    for label, attributes in (("params", live.params), ("meta", live.meta)):
        for key, value in sorted(attributes.items()):
            click.echo(f"  {label} {key}={value}")


def _run_lifecycle(ctx: click.Context, name: str, action: LifecycleAction) -> None:
    controller = _controller(ctx)
    try:
        live = controller.load_live_state(name)
        match action:
            case LifecycleAction.START:
                result = controller.ensure_started(name, live)
            case LifecycleAction.STOP:
                result = controller.ensure_stopped(name, live)
            case _:
                result = controller.ensure_deleted(name, live)
    except PrimitiveError as e:
        raise click.ClickException(str(e)) from e

    _echo_result(result)
    if not result.success:
        raise click.ClickException(result.failure_reason or "command failed")


@cli.command()
@click.argument("name")
@click.pass_context
def start(ctx: click.Context, name: str) -> None:
    """Start primitive NAME if it is not running."""
    _run_lifecycle(ctx, name, LifecycleAction.START)


@cli.command()
@click.argument("name")
@click.pass_context
def stop(ctx: click.Context, name: str) -> None:
    """Stop primitive NAME if it is running."""
    _run_lifecycle(ctx, name, LifecycleAction.STOP)


@cli.command()
@click.argument("name")
@click.pass_context
def delete(ctx: click.Context, name: str) -> None:
    """Delete primitive NAME; refused while it is running."""
    _run_lifecycle(ctx, name, LifecycleAction.DELETE)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
