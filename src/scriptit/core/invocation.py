"""High-level script invocation shared by the CLI and the interactive session.

execute_script_with_environment() wraps the execution core with everything
an interactive invocation needs: temp directory creation, the script's
declared variables, environment assembly, prompting, a run header and
result reporting. The front ends only differ in the RunLogger and the
EnvironmentPrompter they pass in.

Classes:
    - RunLogger: info/warn/error sinks for invocation messages

Functions:
    - format_result: Render a script result for humans
    - execute_script_with_environment: Run one script end to end
"""

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import typer

from scriptit.core.config import RunnerConfig
from scriptit.core.context import ScriptContext
from scriptit.core.environment import build_base_environment, interpolate_env_vars
from scriptit.core.executor import (
    ConsoleInterceptionOptions,
    ScriptExecutor,
    load_script_module,
)
from scriptit.core.variables import (
    EnvironmentPrompter,
    VariableDefinition,
    merge_variable_declarations,
    negotiate_variables,
    normalize_variable_definitions,
)
from scriptit.errors import ScriptItError, ScriptItErrorCode

logger = structlog.get_logger()


def _echo(message: str) -> None:
    typer.echo(message)


def _echo_err(message: str) -> None:
    typer.echo(message, err=True)


@dataclass
class RunLogger:
    """Sinks for the messages an invocation produces.

    Attributes:
        info: Progress and script output lines.
        warn: Recoverable problems.
        error: Failures.
    """

    info: Callable[[str], None] = field(default=_echo)
    warn: Callable[[str], None] = field(default=_echo_err)
    error: Callable[[str], None] = field(default=_echo_err)


def format_result(result: Any) -> str:
    """Render a script result for display (JSON when possible)."""
    if isinstance(result, (dict, list, tuple)):
        try:
            return json.dumps(result, default=str)
        except (TypeError, ValueError):
            return str(result)
    return str(result)


def ensure_tmp_dir(tmp_dir: Path, run_logger: RunLogger) -> None:
    """Create the temp directory if it is missing.

    Raises:
        ScriptItError: With TMP_DIR_FAILED if it cannot be created.
    """
    if tmp_dir.exists():
        return
    try:
        tmp_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ScriptItError(
            code=ScriptItErrorCode.TMP_DIR_FAILED,
            message=f"Error creating temporary directory {tmp_dir}: {e}",
            cause=e,
        ) from e
    run_logger.info(f"Created temporary directory: {tmp_dir}")


def _declared_variables(script_path: Path, run_logger: RunLogger) -> list[VariableDefinition]:
    """Pre-load a script and return its declared variables.

    Load problems are only reported: the real error surfaces when the
    script is executed.
    """
    try:
        module = load_script_module(script_path)
        declared = getattr(module, "variables", None)
        if not isinstance(declared, (list, tuple)):
            return []
        return normalize_variable_definitions(declared)
    except Exception as e:
        run_logger.warn(f"Could not pre-load script for variable checking: {e}")
        return []


async def execute_script_with_environment(
    script_path: str | Path,
    config: RunnerConfig,
    cli_env: Mapping[str, str] | None = None,
    cli_env_prompts: Iterable[str] | None = None,
    prompter: EnvironmentPrompter | None = None,
    run_logger: RunLogger | None = None,
    use_colors: bool = True,
) -> Any:
    """Run one script with environment assembly and variable prompting.

    Environment precedence (increasing): env files, process environment,
    interpolated default params, ``cli_env``, prompted values.

    Args:
        script_path: Path to the script.
        config: The effective runner configuration.
        cli_env: Variables given on the command line.
        cli_env_prompts: Extra variable names to prompt for.
        prompter: How to ask for missing variables (None disables prompting).
        run_logger: Message sinks; defaults to stdout/stderr.
        use_colors: Whether the context console emits ANSI colors.

    Returns:
        The script's main-phase result.

    Raises:
        ScriptItError: For a missing script, a temp directory failure, a
            missing entry point or a cancelled prompt.
        Exception: Anything the script raises, unchanged.
    """
    run_logger = run_logger or RunLogger()
    cli_env = dict(cli_env or {})

    path = Path(script_path).expanduser().resolve()
    if not path.is_file():
        raise ScriptItError(
            code=ScriptItErrorCode.SCRIPT_NOT_FOUND,
            message=f"Script file not found at {path}",
            script_path=path,
        )

    ensure_tmp_dir(config.tmp_dir, run_logger)

    variables = merge_variable_declarations(
        normalize_variable_definitions(cli_env_prompts),
        _declared_variables(path, run_logger),
    )

    base_env = build_base_environment(config.env_files)
    default_params = interpolate_env_vars(config.default_params, base_env)
    initial_env: dict[str, Any] = {**base_env, **default_params, **cli_env}

    prompted: dict[str, str] = {}
    if variables and prompter is not None:
        prompted = await negotiate_variables(variables, initial_env, prompter)

    full_env = {**initial_env, **prompted}

    run_logger.info(f"Running script: {path.name}")
    run_logger.info(f"Config file used: {config.loaded_config_path or 'Defaults'}")
    run_logger.info(f"Temp directory: {config.tmp_dir}")
    run_logger.info(f"Env files considered: {', '.join(config.env_files)}")
    if prompted:
        run_logger.info(f"Prompted variables: {', '.join(prompted)}")

    executor = ScriptExecutor(ConsoleInterceptionOptions(enabled=True, use_colors=use_colors))
    context = ScriptContext.build(
        env=full_env,
        tmp_dir=config.tmp_dir,
        log=lambda message: run_logger.info(f"[SCRIPT OUTPUT] {message}"),
        config_path=config.loaded_config_path,
        ambient=default_params,
    )

    result = await executor.run(path, context)
    run_logger.info(f"Script {path.name} finished successfully")
    if result is not None:
        run_logger.info(f"Script result: {format_result(result)}")

    logger.debug("script_invocation_completed", script=path.name)
    return result
