"""Version command for ScriptIt CLI.

This module provides the `scriptit version` command that displays version information.
"""

import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Annotated

import typer

DEPENDENCIES = ["pydantic", "typer", "pyyaml", "structlog", "python-dotenv"]


def get_version() -> str:
    """Get the installed ScriptIt version.

    Returns:
        Version string or 'unknown' if not found.
    """
    try:
        return version("scriptit")
    except PackageNotFoundError:
        return "unknown"


def version_command(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show detailed version information",
        ),
    ] = False,
) -> None:
    """Show ScriptIt version information."""
    scriptit_version = get_version()

    if not verbose:
        typer.echo(f"scriptit {scriptit_version}")
        return

    typer.echo(f"ScriptIt version: {scriptit_version}")
    typer.echo(f"Python version: {sys.version}")
    typer.echo(f"Python executable: {sys.executable}")

    typer.echo("\nDependencies:")
    for dep in DEPENDENCIES:
        try:
            typer.echo(f"  {dep}: {version(dep)}")
        except PackageNotFoundError:
            typer.echo(f"  {dep}: not found")
