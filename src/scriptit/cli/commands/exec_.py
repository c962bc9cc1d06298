"""Exec command for ScriptIt CLI.

This module provides the `scriptit exec <path>` command that runs a single
script with the full environment pipeline and terminal prompting.

Exit codes:
    0: Script succeeded
    1: Script failed
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from scriptit.core.config import load_runner_config
from scriptit.core.invocation import RunLogger, execute_script_with_environment
from scriptit.core.variables import parse_env_prompts_list, split_env_assignments
from scriptit.ui.prompter import TyperPrompter


def _resolve_script_argument(script_path: Path, scripts_dir: Path) -> Path:
    """Resolve against the working directory, then the scripts directory."""
    candidate = script_path.expanduser()
    if candidate.is_absolute() or candidate.exists():
        return candidate.resolve()
    in_scripts_dir = scripts_dir / candidate
    if in_scripts_dir.exists():
        return in_scripts_dir.resolve()
    return candidate.resolve()


def exec_command(
    script_path: Annotated[
        Path,
        typer.Argument(help="Path to the script to execute"),
    ],
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to runner configuration file",
        ),
    ] = None,
    env: Annotated[
        list[str] | None,
        typer.Option(
            "--env",
            "-e",
            help="Set an environment variable (KEY=value); repeatable",
        ),
    ] = None,
    env_prompts: Annotated[
        list[str] | None,
        typer.Option(
            "--env-prompts",
            help="Variables to prompt for before execution (e.g. API_KEY,SECRET)",
        ),
    ] = None,
) -> None:
    """Execute a single script file directly."""
    runner_config = load_runner_config(config_path=config)
    path = _resolve_script_argument(script_path, runner_config.scripts_dir)

    cli_env, rejected = split_env_assignments(env)
    for item in rejected:
        typer.secho(f"Skipping malformed --env argument: {item}", fg=typer.colors.YELLOW, err=True)

    run_logger = RunLogger(
        info=lambda message: typer.secho(f"  {message}", fg=typer.colors.BRIGHT_BLACK),
        warn=lambda message: typer.secho(f"  {message}", fg=typer.colors.YELLOW, err=True),
        error=lambda message: typer.secho(f"  {message}", fg=typer.colors.RED, err=True),
    )

    typer.secho(f"--- Running script: {path.name} ---", fg=typer.colors.CYAN)
    try:
        asyncio.run(
            execute_script_with_environment(
                path,
                runner_config,
                cli_env=cli_env,
                cli_env_prompts=parse_env_prompts_list(env_prompts),
                prompter=TyperPrompter(),
                run_logger=run_logger,
            )
        )
    except Exception as e:
        typer.secho(f"--- Error running script {path.name} ---", fg=typer.colors.RED, err=True)
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        typer.secho(f"--- Script {path.name} failed ---\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e

    typer.secho(f"--- Script {path.name} finished successfully ---\n", fg=typer.colors.GREEN)
