"""ScriptIt CLI entry point.

This module provides the main Typer application and entry point for the
`scriptit` CLI. Global options are handled in the app callback, before any
command runs.

Usage:
    scriptit [--debug] [--pwd DIR] init [options]   - Scaffold a project
    scriptit [--debug] [--pwd DIR] exec <path>      - Execute one script
    scriptit [--debug] [--pwd DIR] run [options]    - List or pick scripts
    scriptit version [options]                      - Show version information

Running `scriptit` without a command is the same as `scriptit run`.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Annotated

import structlog
import typer

from scriptit.cli.commands import exec_, init, run, version
from scriptit.core.config import DEBUG_ENV_VAR, debug_enabled
from scriptit.errors import ScriptItError
from scriptit.runner import change_working_directory

app = typer.Typer(
    name="scriptit",
    help="ScriptIt - Run scripts with environment management and lifecycle hooks",
)

# Register core commands
app.command(name="init")(init.init_command)
app.command(name="exec")(exec_.exec_command)
app.command(name="run")(run.run_command)
app.command(name="version")(version.version_command)


def configure_logging(debug: bool) -> None:
    """Send structlog output to stderr, filtered at WARNING or DEBUG."""
    level = logging.DEBUG if debug else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            "-d",
            help="Run in debug mode with verbose logging",
        ),
    ] = False,
    pwd: Annotated[
        Path | None,
        typer.Option(
            "--pwd",
            help="Working directory for script execution (relative paths resolve from here)",
        ),
    ] = None,
) -> None:
    """ScriptIt - Run scripts with environment management and lifecycle hooks."""
    if debug:
        os.environ[DEBUG_ENV_VAR] = "true"
        typer.secho("Debug mode enabled", fg=typer.colors.BLUE)
    configure_logging(debug or debug_enabled())

    if pwd is not None:
        target = pwd.expanduser().resolve()
        try:
            change_working_directory(target)
        except ScriptItError as e:
            typer.secho(f"Error: Directory does not exist: {target}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1) from e
        typer.secho(f"Changing working directory to: {target}", fg=typer.colors.BRIGHT_BLACK)

    if ctx.invoked_subcommand is None:
        ctx.invoke(run.run_command)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
