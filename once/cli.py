from __future__ import annotations

from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.table import Table
from typer.core import TyperCommand

from once import __version__
from once.config import StateConfig, resolve_mode
from once.controller import ExecutionController
from once.errors import OnceError
from once.identity import resolve_identity
from once.log import configure_logging
from once.models.enums import Granularity, Outcome
from once.types import ExecutionPlan, ExecutionReport, Invocation, Mode, PeriodMode, WindowMode
from once.utils import render_command

app = typer.Typer(help="Run a command at most once per period or rolling window", add_completion=False)
console = Console(markup=False, highlight=False)
err_console = Console(stderr=True, markup=False, highlight=False, soft_wrap=True)

# typer may raise from its bundled copy of click.
_USAGE_ERRORS = tuple(
    {click.UsageError} | {cls for cls in typer.BadParameter.__mro__ if cls.__name__ == "UsageError"}
)


class OnceCommand(TyperCommand):
    """Usage errors exit 1 and a bare ``once`` prints help and exits 0."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if not args:
            help_text = ctx.get_help()
            if help_text:
                click.echo(help_text, color=ctx.color)
            ctx.exit(0)
        try:
            return super().parse_args(ctx, args)
        except _USAGE_ERRORS as exc:
            exc.exit_code = 1
            raise


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"once {__version__}")
        raise typer.Exit()


def _explain(plan: ExecutionPlan, invocation: Invocation, mode: Mode, config: StateConfig) -> None:
    identity = invocation.identity
    table = Table(title=f"once v{__version__}")
    table.add_column("field")
    table.add_column("value", overflow="fold")
    table.add_row("period", mode.granularity.value if isinstance(mode, PeriodMode) else "(none)")
    table.add_row("window", mode.label if isinstance(mode, WindowMode) else "(none)")
    table.add_row("bucket", plan.bucket or "(n/a)")
    table.add_row("state", str(config.state_dir))
    table.add_row("lock", str(plan.lock_path))
    table.add_row("stamp", str(plan.stamp_path))
    table.add_row("hash", plan.token)
    table.add_row("exe", identity.executable_path)
    table.add_row("args", render_command(identity.arguments))
    table.add_row("cwd", identity.working_dir)
    table.add_row("extra", identity.extra_key)
    console.print(table)


def _describe(report: ExecutionReport, invocation: Invocation, mode: Mode) -> str | None:
    if report.outcome is Outcome.BUSY:
        return "Another instance is already running for this key."

    if report.outcome is Outcome.SKIPPED:
        if isinstance(mode, WindowMode):
            reason = f"ran {report.elapsed_seconds}s ago; window {mode.label}"
        else:
            reason = f"already ran during {report.bucket}"
        return f"DRY-RUN: would SKIP ({reason})" if report.dry_run else f"Skipped: {reason}."

    if report.outcome is Outcome.WOULD_RUN:
        if report.forced:
            reason = "forced"
        elif isinstance(mode, WindowMode):
            reason = f"window {mode.label} satisfied"
        else:
            reason = f"first run in {mode.granularity.value}: {report.bucket}"
        return f"DRY-RUN: would RUN ({reason}) -> {render_command(invocation.argv)}"

    return None


@app.command(
    cls=OnceCommand,
    context_settings={"allow_interspersed_args": False, "help_option_names": ["-h", "--help"]},
)
def run_cmd(
    command: Annotated[
        list[str] | None,
        typer.Argument(help="Command to execute (pass with -- separator)", show_default=False),
    ] = None,
    period: Annotated[
        Granularity | None,
        typer.Option("--period", help="Calendar period: hour|day|week|month", case_sensitive=False),
    ] = None,
    window: Annotated[
        str | None, typer.Option("--window", help="Rolling window: 1h, 30m, 2d, or raw seconds")
    ] = None,
    key_extra: Annotated[str, typer.Option("--key-extra", help="Add extra material to the identity key")] = "",
    state_dir: Annotated[
        Path | None,
        typer.Option("--state-dir", help="State dir (default: $XDG_STATE_HOME/once)", show_default=False),
    ] = None,
    force: Annotated[bool, typer.Option("--force", help="Force execution (ignore stamps)")] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Report action but don't execute")] = False,
    explain: Annotated[bool, typer.Option("--explain", help="Print derived identity/bucket/paths")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging on stderr")] = False,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
) -> None:
    """Run a command at most once per period or rolling window.

    Exit codes: 0 executed (or would execute with --dry-run), 1 command failed
    or bad usage, 3 skipped by the period/window rule, 4 another instance is
    already running for this key.
    """
    configure_logging(verbose)
    try:
        mode = resolve_mode(period, window)
        invocation = resolve_identity(command or [], key_extra)
        config = StateConfig.from_env(state_dir=state_dir)
        controller = ExecutionController(config)
        if explain:
            _explain(controller.plan(invocation, mode), invocation, mode, config)
        report = controller.execute(invocation, mode, force=force, dry_run=dry_run)
    except OnceError as exc:
        err_console.print(f"once: {exc}")
        raise typer.Exit(code=exc.exit_code)
    except OSError as exc:
        err_console.print(f"once: state error: {exc}")
        raise typer.Exit(code=1)

    message = _describe(report, invocation, mode)
    if message:
        err_console.print(message)
    raise typer.Exit(code=report.outcome.exit_code)


if __name__ == "__main__":
    app()
