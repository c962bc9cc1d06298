"""Library surface for embedding ScriptIt.

Usage:
    from scriptit import create_script_runner

    runner = create_script_runner(scripts_dir="scripts", initial_env={"STAGE": "dev"})
    runner.on("script:log", lambda path, message: print(message))

    for script in runner.list_scripts():
        print(script)

    result = await runner.execute_script("hello.py", params={"name": "Ada"})

Classes:
    - RunnerOptions: Options accepted by create_script_runner
    - ScriptRunner: Lists and executes scripts, emits events

Functions:
    - change_working_directory: Validate and apply a working directory
    - create_script_runner: Build a ScriptRunner from options
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from scriptit.core.config import RunnerConfig, load_runner_config
from scriptit.core.context import ScriptContext
from scriptit.core.discovery import discover_scripts
from scriptit.core.environment import build_base_environment, interpolate_env_vars
from scriptit.core.executor import (
    ConsoleInterceptionOptions,
    ScriptExecutor,
    load_script_module,
)
from scriptit.core.invocation import RunLogger, ensure_tmp_dir
from scriptit.core.variables import (
    EnvironmentPrompter,
    NullPrompter,
    VariableDefinition,
    negotiate_variables,
    normalize_variable_definitions,
)
from scriptit.errors import ScriptItError, ScriptItErrorCode
from scriptit.events import (
    SCRIPT_AFTER_EXECUTE,
    SCRIPT_BEFORE_EXECUTE,
    SCRIPT_ERROR,
    SCRIPT_LOG,
    TUI_AFTER_END,
    TUI_BEFORE_START,
    EventEmitter,
    EventHandler,
)

logger = structlog.get_logger()


class RunnerOptions(BaseModel):
    """Options for create_script_runner().

    Attributes:
        config_file: Config file path (default ``runner.config.py``).
        scripts_dir: Scripts directory; overrides the config file.
        tmp_dir: Temp directory; overrides the config file.
        env_files: Env files; the config file may override them.
        exclude_patterns: Exclusion globs; the config file may override them.
        default_params: Default params; the config file may override them.
        initial_env: Variables with the highest precedence.
        working_directory: Directory to change into before anything else.
        console_interception: Settings for the context console.
        prompter: How to ask for variables scripts declare.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config_file: Path | None = None
    scripts_dir: Path | None = None
    tmp_dir: Path | None = None
    env_files: list[str] | None = None
    exclude_patterns: list[str] | None = None
    default_params: dict[str, Any] | None = None
    initial_env: dict[str, str] | None = None
    working_directory: Path | None = None
    console_interception: ConsoleInterceptionOptions = Field(
        default_factory=ConsoleInterceptionOptions
    )
    prompter: EnvironmentPrompter | None = None


def change_working_directory(directory: str | Path) -> Path:
    """Change the process working directory after validating it.

    The working directory is process-wide state: call this once, at startup,
    before any script runs.

    Raises:
        ScriptItError: With WORKING_DIRECTORY_NOT_FOUND if it does not exist.
    """
    target = Path(directory).expanduser().resolve()
    if not target.is_dir():
        raise ScriptItError(
            code=ScriptItErrorCode.WORKING_DIRECTORY_NOT_FOUND,
            message=f"Working directory does not exist: {target}",
        )
    os.chdir(target)
    logger.debug("working_directory_changed", directory=str(target))
    return target


class ScriptRunner:
    """Lists and executes scripts for library callers.

    Attributes:
        config: The effective runner configuration.
        environment: Environment snapshot shared by all executions.
    """

    def __init__(
        self,
        config: RunnerConfig,
        environment: dict[str, Any],
        default_params: dict[str, Any] | None = None,
        executor: ScriptExecutor | None = None,
        prompter: EnvironmentPrompter | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: The effective configuration.
            environment: The environment snapshot.
            default_params: Interpolated default params spread on contexts.
            executor: Executor to use (default: console interception on).
            prompter: How to ask for declared variables (default: never ask).
        """
        self.config = config
        self.environment = environment
        self._default_params = dict(default_params or {})
        self._executor = executor or ScriptExecutor(ConsoleInterceptionOptions())
        self._prompter = prompter or NullPrompter()
        self._events = EventEmitter()

    # -- events -------------------------------------------------------------

    def on(self, event_name: str, handler: EventHandler) -> ScriptRunner:
        """Register an event handler; returns the runner for chaining."""
        self._events.on(event_name, handler)
        return self

    def off(self, event_name: str, handler: EventHandler) -> ScriptRunner:
        """Remove an event handler; returns the runner for chaining."""
        self._events.off(event_name, handler)
        return self

    def emit(self, event_name: str, *args: Any) -> bool:
        """Emit an event to the registered handlers."""
        return self._events.emit(event_name, *args)

    # -- scripts ------------------------------------------------------------

    def list_scripts(self) -> list[str]:
        """List scripts as posix paths relative to the scripts directory."""
        scripts = discover_scripts(self.config.scripts_dir, self.config.exclude_patterns)
        return [path.relative_to(self.config.scripts_dir).as_posix() for path in scripts]

    def resolve_script_path(self, script_path: str | Path) -> Path:
        """Resolve a script path; relative paths are under the scripts directory."""
        path = Path(script_path).expanduser()
        if not path.is_absolute():
            path = self.config.scripts_dir / path
        return path.resolve()

    def _declared_variables(self, path: Path) -> list[VariableDefinition]:
        try:
            module = load_script_module(path)
        except Exception as e:
            # The load error is reported by the execution itself
            logger.debug("script_preload_failed", script=path.name, error=str(e))
            return []
        declared = getattr(module, "variables", None)
        if not isinstance(declared, (list, tuple)):
            return []
        return normalize_variable_definitions(declared)

    def _make_log(
        self,
        path: Path,
        custom_logger: Callable[[str], None] | None,
    ) -> Callable[[str], None]:
        def log(message: str) -> None:
            if custom_logger is not None:
                custom_logger(message)
            else:
                logger.info("script_output", script=path.name, message=message)
            self.emit(SCRIPT_LOG, str(path), message)

        return log

    async def execute_script(
        self,
        script_path: str | Path,
        *,
        params: dict[str, Any] | None = None,
        env: dict[str, Any] | None = None,
        context_overrides: dict[str, Any] | None = None,
        custom_logger: Callable[[str], None] | None = None,
    ) -> Any:
        """Execute one script and return its main-phase result.

        Args:
            script_path: Script path; relative paths resolve against the
                scripts directory.
            params: Parameters exposed as ``context.params``.
            env: Variables layered over the runner environment for this call.
            context_overrides: Extra context fields (may replace built-in
                fields such as ``tmp_dir``).
            custom_logger: Sink for the script's log lines.

        Returns:
            Whatever the script's main phase returned.

        Raises:
            ScriptItError: For a missing script, a missing entry point or a
                cancelled prompt.
            Exception: Anything the script raises, unchanged.
        """
        path = self.resolve_script_path(script_path)
        params = dict(params or {})

        if not path.is_file():
            error = ScriptItError(
                code=ScriptItErrorCode.SCRIPT_NOT_FOUND,
                message=f"Script file not found: {path}",
                script_path=path,
            )
            self.emit(SCRIPT_ERROR, str(path), error)
            raise error

        self.emit(SCRIPT_BEFORE_EXECUTE, str(path), params)
        log = self._make_log(path, custom_logger)

        try:
            ensure_tmp_dir(self.config.tmp_dir, RunLogger(info=log))

            script_env = {**self.environment, **(env or {})}
            declared = self._declared_variables(path)
            if declared:
                script_env.update(
                    await negotiate_variables(declared, script_env, self._prompter)
                )

            context = ScriptContext.build(
                env=script_env,
                tmp_dir=self.config.tmp_dir,
                log=log,
                config_path=self.config.loaded_config_path,
                params=params,
                ambient={**self._default_params, **(context_overrides or {})},
            )
            result = await self._executor.run(path, context)
        except Exception as e:
            self.emit(SCRIPT_ERROR, str(path), e)
            raise

        self.emit(SCRIPT_AFTER_EXECUTE, str(path), result)
        return result

    async def run_interactive(self) -> None:
        """Run the interactive session over this runner's configuration."""
        from scriptit.ui.interactive import InteractiveSession
        from scriptit.ui.prompter import TyperPrompter

        self.emit(TUI_BEFORE_START)
        prompter = self._prompter
        if isinstance(prompter, NullPrompter):
            prompter = TyperPrompter()
        session = InteractiveSession(self.config, prompter=prompter, cli_env=self.environment)
        await session.run()
        self.emit(TUI_AFTER_END)


def create_script_runner(**options: Any) -> ScriptRunner:
    """Create a ScriptRunner.

    Steps, in order: change the working directory (if requested), resolve
    the configuration, load the environment, build the executor.

    Args:
        **options: Fields of RunnerOptions.

    Returns:
        A ready ScriptRunner.

    Raises:
        ScriptItError: If ``working_directory`` does not exist.
        pydantic.ValidationError: If the options are invalid.
    """
    runner_options = RunnerOptions.model_validate(options)

    if runner_options.working_directory is not None:
        change_working_directory(runner_options.working_directory)

    config = load_runner_config(
        config_path=runner_options.config_file,
        cli_overrides={
            "scripts_dir": runner_options.scripts_dir,
            "tmp_dir": runner_options.tmp_dir,
        },
        defaults_override={
            "env_files": runner_options.env_files,
            "default_params": runner_options.default_params,
            "exclude_patterns": runner_options.exclude_patterns,
        },
    )

    base_env = build_base_environment(config.env_files, runner_options.initial_env)
    default_params = interpolate_env_vars(config.default_params, base_env)
    environment = {**base_env, **default_params}

    executor = ScriptExecutor(runner_options.console_interception)

    logger.debug(
        "script_runner_created",
        scripts_dir=str(config.scripts_dir),
        config=str(config.loaded_config_path) if config.loaded_config_path else None,
    )
    return ScriptRunner(
        config=config,
        environment=environment,
        default_params=default_params,
        executor=executor,
        prompter=runner_options.prompter,
    )
