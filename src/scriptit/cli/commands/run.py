"""Run command for ScriptIt CLI.

This module provides the `scriptit run` command. It lists the available
scripts (with `--no-tui`, or in debug mode unless `--force-tui` is given) or
starts the interactive session.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from scriptit.core.config import RunnerConfig, debug_enabled, load_runner_config
from scriptit.core.discovery import describe_script, discover_scripts
from scriptit.core.invocation import RunLogger, ensure_tmp_dir
from scriptit.core.variables import parse_env_prompts_list
from scriptit.ui.interactive import InteractiveSession
from scriptit.ui.prompter import TyperPrompter


def list_scripts(config: RunnerConfig) -> None:
    """Print the available scripts with their functions and descriptions."""
    typer.secho("Running in non-TUI mode. Available scripts:", fg=typer.colors.BLUE)
    typer.secho(f"Scripts directory: {config.scripts_dir}", fg=typer.colors.BRIGHT_BLACK)
    if config.exclude_patterns:
        typer.secho(
            f"Exclude patterns: {', '.join(config.exclude_patterns)}",
            fg=typer.colors.BRIGHT_BLACK,
        )

    scripts = discover_scripts(config.scripts_dir, config.exclude_patterns)
    if not scripts:
        typer.secho("No scripts found in the scripts directory.", fg=typer.colors.YELLOW)
        return

    typer.secho("Available scripts:", fg=typer.colors.GREEN)
    for index, script_path in enumerate(scripts, start=1):
        relative = script_path.relative_to(config.scripts_dir).as_posix()
        typer.secho(f"{index}. {relative}", fg=typer.colors.CYAN)

        summary = describe_script(script_path)
        if summary.error is not None:
            typer.secho(f"   Error loading script: {summary.error}", fg=typer.colors.YELLOW)
            continue
        typer.secho(f"   Function type: {summary.function_info}", fg=typer.colors.BRIGHT_BLACK)
        if summary.description:
            typer.secho(f"   Description: {summary.description}", fg=typer.colors.BRIGHT_BLACK)

    typer.secho("\nTo run a script, use:", fg=typer.colors.BLUE)
    typer.echo("scriptit exec <script-path>")


def run_command(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to runner configuration file",
        ),
    ] = None,
    scripts_dir: Annotated[
        Path | None,
        typer.Option(
            "--scripts-dir",
            "-s",
            help="Override scripts directory from config",
        ),
    ] = None,
    tmp_dir: Annotated[
        Path | None,
        typer.Option(
            "--tmp-dir",
            "-t",
            help="Override temporary directory from config",
        ),
    ] = None,
    no_tui: Annotated[
        bool,
        typer.Option(
            "--no-tui",
            help="Just list available scripts",
        ),
    ] = False,
    force_tui: Annotated[
        bool,
        typer.Option(
            "--force-tui",
            help="Start the interactive session even in debug mode",
        ),
    ] = False,
    env_prompts: Annotated[
        list[str] | None,
        typer.Option(
            "--env-prompts",
            help="Variables to prompt for before each run (e.g. API_KEY,SECRET)",
        ),
    ] = None,
) -> None:
    """Run scripts using the interactive session."""
    runner_config = load_runner_config(
        config_path=config,
        cli_overrides={"scripts_dir": scripts_dir, "tmp_dir": tmp_dir},
    )

    if no_tui or (debug_enabled() and not force_tui):
        list_scripts(runner_config)
        return

    session = InteractiveSession(
        runner_config,
        prompter=TyperPrompter(),
        env_prompts=parse_env_prompts_list(env_prompts),
    )
    try:
        ensure_tmp_dir(
            runner_config.tmp_dir,
            RunLogger(info=lambda message: typer.secho(message, fg=typer.colors.BRIGHT_BLACK)),
        )
        asyncio.run(session.run())
    except Exception as e:
        typer.secho("Error running the interactive session:", fg=typer.colors.RED, err=True)
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        typer.secho(
            "\nTry running with --no-tui or --debug option to see available scripts.",
            fg=typer.colors.YELLOW,
            err=True,
        )
        raise typer.Exit(1) from e
