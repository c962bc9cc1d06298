"""Init command for ScriptIt CLI.

This module provides the `scriptit init` command that scaffolds a project:
the scripts and temp directories, a runner.config.py, an example env file,
two example scripts and .gitignore entries. Existing files are kept unless
--force is given.
"""

import os
import shutil
from pathlib import Path
from typing import Annotated

import typer

from scriptit.core.config import DEFAULT_CONFIG_FILE, DEFAULT_SCRIPTS_DIR, DEFAULT_TMP_DIR

RUNNER_CONFIG_TEMPLATE = '''\
# {config_file}
# Plain module attributes (or a `config` dict) configure the runner.

scripts_dir = "{scripts_dir}"  # relative path from project root
tmp_dir = "{tmp_dir}"  # relative path from project root
env_files = [
    ".env",  # General environment variables
    ".env.local",  # Local overrides (gitignored)
    # ".env.production",  # Example for specific environments
]
default_params = {{  # These will be available in the script context
    # "my_global_param": "hello world",
    # "api_token": "${{API_TOKEN_FROM_ENV}}",  # Example of env var interpolation
}}
exclude_patterns = [
    # "helpers/**",
]
'''

ENV_EXAMPLE_CONTENT = 'MY_VARIABLE="Hello from .env"\nAPI_TOKEN_FROM_ENV="your_secret_token_here"\n'

EXAMPLE_SCRIPT_TEMPLATE = '''\
# {script_path}
# An example script for ScriptIt: tear_up, execute and tear_down run in order.

import asyncio
from datetime import datetime
from pathlib import Path

description = "Logs messages and environment variables."


async def tear_up(context):
    context.log("TearUp: Preparing something...")
    await asyncio.sleep(0.5)
    context.log(f"TearUp: Done. Temp dir: {{context.tmp_dir}}")
    return {{"prepared": True, "timestamp": datetime.now().isoformat()}}


async def execute(context, tear_up_result):
    context.log("Execute: Running main logic...")
    context.log(f"  Received from tear_up: {{tear_up_result}}")
    context.log(f"  MY_VARIABLE from env: {{context.env.get('MY_VARIABLE')}}")
    context.log(f"  Config path: {{context.config_path}}")

    output_file = Path(context.tmp_dir) / "example_output.txt"
    output_file.write_text(f"Output from example script at {{datetime.now().isoformat()}}\\n")
    context.log(f"  Wrote to {{output_file}}")

    if context.env.get("FAIL_EXAMPLE") == "true":
        raise RuntimeError("Intentional failure triggered by FAIL_EXAMPLE env var.")

    await asyncio.sleep(1)
    context.log("Execute: Main logic complete.")
    return {{"success": True, "data": "Execution finished"}}


async def tear_down(context, execute_result, tear_up_result):
    context.log("TearDown: Cleaning up...")
    context.log(f"  Received from execute: {{execute_result}}")
    context.log(f"  TearUp data during teardown: {{tear_up_result}}")
    context.log("TearDown: Cleanup complete.")
'''

LAMBDA_EXAMPLE_TEMPLATE = '''\
# {script_path}
# A single `default` function: ScriptIt calls it instead of `execute`.

import asyncio
import os
from datetime import datetime

description = "Lambda-style script using a default function"


async def default(context):
    context.log("Lambda-style execution starting...")
    context.log(f"Environment: {{context.env.get('APP_ENV', 'development')}}")
    context.log(f"Working directory: {{os.getcwd()}}")

    await asyncio.sleep(0.8)

    result = {{
        "timestamp": datetime.now().isoformat(),
        "success": True,
        "message": "Lambda execution completed",
    }}
    context.log(f"Result: {{result}}")
    return result
'''


def _relative_posix(path: Path) -> str:
    return Path(os.path.relpath(path)).as_posix()


def _write_file(path: Path, content: str, force: bool, label: str) -> bool:
    """Write ``content`` unless the file exists and ``force`` is off."""
    if path.exists() and not force:
        typer.secho(
            f"{label} {path} already exists. Use --force to overwrite.",
            fg=typer.colors.YELLOW,
        )
        return False
    path.write_text(content)
    typer.secho(f"Created {label.lower()}: {path}", fg=typer.colors.GREEN)
    return True


def _ensure_gitignore_entries(gitignore_path: Path, entries: list[tuple[str, str]]) -> None:
    """Append missing (comment, entry) pairs to .gitignore."""
    content = gitignore_path.read_text() if gitignore_path.exists() else ""
    changed = False
    for comment, entry in entries:
        if entry in content.splitlines():
            typer.secho(f"'{entry}' already in .gitignore", fg=typer.colors.BLUE)
            continue
        if content and not content.endswith("\n"):
            content += "\n"
        content += f"\n# {comment}\n{entry}\n"
        changed = True
        typer.secho(f"Added '{entry}' to .gitignore", fg=typer.colors.GREEN)
    if changed:
        gitignore_path.write_text(content.lstrip("\n"))


def init_command(
    scripts_dir: Annotated[
        Path,
        typer.Option(
            "--scripts-dir",
            "-s",
            help="Directory for scripts",
        ),
    ] = Path(DEFAULT_SCRIPTS_DIR),
    tmp_dir: Annotated[
        Path,
        typer.Option(
            "--tmp-dir",
            "-t",
            help="Directory for temporary files",
        ),
    ] = Path(DEFAULT_TMP_DIR),
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing files and directories",
        ),
    ] = False,
) -> None:
    """Initialize a new script runner project structure."""
    scripts_path = scripts_dir.resolve()
    tmp_path = tmp_dir.resolve()
    config_path = Path(DEFAULT_CONFIG_FILE).resolve()

    typer.secho("Initializing script runner project...", fg=typer.colors.BLUE)

    try:
        for directory in (scripts_path, tmp_path):
            if directory.exists() and not force:
                typer.secho(
                    f"Directory {directory} already exists. Use --force to overwrite.",
                    fg=typer.colors.YELLOW,
                )
            else:
                directory.mkdir(parents=True, exist_ok=True)
                typer.secho(f"Created directory: {directory}", fg=typer.colors.GREEN)

        _write_file(
            config_path,
            RUNNER_CONFIG_TEMPLATE.format(
                config_file=DEFAULT_CONFIG_FILE,
                scripts_dir=_relative_posix(scripts_path),
                tmp_dir=_relative_posix(tmp_path),
            ),
            force,
            "Config file",
        )

        env_example_path = Path(".env.example").resolve()
        _write_file(env_example_path, ENV_EXAMPLE_CONTENT, force, "Example env file")
        env_path = Path(".env").resolve()
        if not env_path.exists():
            shutil.copyfile(env_example_path, env_path)
            typer.secho("Copied .env.example to .env", fg=typer.colors.GREEN)

        example_path = scripts_path / "example.py"
        if _write_file(
            example_path,
            EXAMPLE_SCRIPT_TEMPLATE.format(script_path=_relative_posix(example_path)),
            force,
            "Example script",
        ):
            lambda_path = scripts_path / "lambda_example.py"
            _write_file(
                lambda_path,
                LAMBDA_EXAMPLE_TEMPLATE.format(script_path=_relative_posix(lambda_path)),
                True,
                "Lambda example",
            )

        _ensure_gitignore_entries(
            Path(".gitignore").resolve(),
            [
                ("Temporary files for ScriptIt", f"{_relative_posix(tmp_path)}/"),
                ("Local environment variables (gitignored)", ".env.local"),
            ],
        )
    except OSError as e:
        typer.secho(f"Error: Failed to initialize project: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e

    typer.secho("\nInitialization complete!", fg=typer.colors.GREEN, bold=True)
    typer.secho("To get started:", fg=typer.colors.YELLOW)
    typer.secho(f"1. (Optional) Customize '{DEFAULT_CONFIG_FILE}'", fg=typer.colors.YELLOW)
    typer.secho("2. (Optional) Create/edit '.env' with your environment variables.", fg=typer.colors.YELLOW)
    typer.secho(f"3. Add your scripts to the '{scripts_dir}' directory.", fg=typer.colors.YELLOW)
    typer.secho("4. Run 'scriptit run' or just 'scriptit' to start.", fg=typer.colors.YELLOW)
