"""Line-based interactive script picker.

The session shows a configuration summary and a numbered list of scripts,
then reads commands until the user quits:

    <number>  Run the script with that number
    r         Refresh the script list
    c         Show the configuration summary again
    q         Quit

Script failures are reported inline and never end the session.

Classes:
    - InteractiveSession: The picker loop
"""

import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import structlog
import typer

from scriptit.core.config import RunnerConfig
from scriptit.core.discovery import discover_scripts
from scriptit.core.invocation import RunLogger, execute_script_with_environment
from scriptit.core.variables import EnvironmentPrompter

logger = structlog.get_logger()

QUIT_COMMANDS = frozenset({"q", "quit", "exit"})
REFRESH_COMMANDS = frozenset({"r", "refresh"})
CONFIG_COMMANDS = frozenset({"c", "config"})

CHOICE_PROMPT = "Select a script number ([r]efresh, [c]onfig, [q]uit)"


def _read_choice(message: str) -> str:
    return typer.prompt(message, default="q", show_default=False)


def _display_path(path: Path) -> str:
    try:
        return os.path.relpath(path)
    except ValueError:
        return str(path)


class InteractiveSession:
    """Interactive script picker over one runner configuration.

    Attributes:
        config: The effective runner configuration.
        scripts: Scripts found by the last refresh.
    """

    def __init__(
        self,
        config: RunnerConfig,
        prompter: EnvironmentPrompter | None = None,
        cli_env: Mapping[str, Any] | None = None,
        env_prompts: list[str] | None = None,
        read_choice: Callable[[str], str] = _read_choice,
        output: Callable[[str], None] = typer.echo,
    ) -> None:
        """Initialize the session.

        Args:
            config: The effective runner configuration.
            prompter: Prompter used for declared and requested variables.
            cli_env: Variables applied to every run.
            env_prompts: Variable names to prompt for on every run.
            read_choice: Reads one command from the user.
            output: Writes one line for the user.
        """
        self.config = config
        self.scripts: list[Path] = []
        self._prompter = prompter
        self._cli_env = dict(cli_env or {})
        self._env_prompts = list(env_prompts or [])
        self._read_choice = read_choice
        self._output = output

    def _style(self, message: str, color: str) -> str:
        return typer.style(message, fg=color)

    def show_config(self) -> None:
        """Print the configuration summary."""
        config = self.config
        config_name = config.loaded_config_path.name if config.loaded_config_path else "Default"
        self._output(self._style("Configuration", typer.colors.YELLOW))
        self._output(f"  Config File: {config_name}")
        self._output(f"  Scripts Dir: {_display_path(config.scripts_dir)}")
        self._output(f"  Temp Dir: {_display_path(config.tmp_dir)}")
        self._output(f"  Env Files: {', '.join(config.env_files) or '-'}")
        if config.exclude_patterns:
            self._output(f"  Exclude: {', '.join(config.exclude_patterns)}")

    def refresh(self) -> list[Path]:
        """Re-discover scripts and print the numbered list."""
        self.scripts = discover_scripts(self.config.scripts_dir, self.config.exclude_patterns)
        if not self.scripts:
            self._output(self._style("No scripts found", typer.colors.YELLOW))
            return self.scripts

        self._output(f"Found {len(self.scripts)} scripts")
        for index, script in enumerate(self.scripts, start=1):
            relative = script.relative_to(self.config.scripts_dir).as_posix()
            self._output(self._style(f"{index:>3}. {relative}", typer.colors.CYAN))
        return self.scripts

    def _select(self, choice: str) -> Path | None:
        try:
            index = int(choice)
        except ValueError:
            self._output(self._style(f"Unknown command: {choice}", typer.colors.YELLOW))
            return None
        if not 1 <= index <= len(self.scripts):
            self._output(self._style("No script selected", typer.colors.YELLOW))
            return None
        return self.scripts[index - 1]

    async def run_script(self, script_path: Path) -> bool:
        """Run one script and report the outcome inline.

        Returns:
            True if the script succeeded.
        """
        relative = script_path.relative_to(self.config.scripts_dir).as_posix()
        self._output(self._style(f"\n=== Running {relative} ===", typer.colors.GREEN))

        run_logger = RunLogger(
            info=lambda message: self._output(f"  {message}"),
            warn=lambda message: self._output(self._style(f"  {message}", typer.colors.YELLOW)),
            error=lambda message: self._output(self._style(f"  {message}", typer.colors.RED)),
        )

        try:
            await execute_script_with_environment(
                script_path,
                self.config,
                cli_env=self._cli_env,
                cli_env_prompts=self._env_prompts,
                prompter=self._prompter,
                run_logger=run_logger,
            )
        except Exception as e:
            logger.debug("interactive_script_failed", script=relative, error=str(e))
            self._output(self._style(f"Error: {e}\n", typer.colors.RED))
            return False

        self._output(self._style(f"=== {relative} completed successfully ===\n", typer.colors.GREEN))
        return True

    async def run(self) -> None:
        """Run the picker loop until the user quits."""
        self.show_config()
        self.refresh()

        while True:
            try:
                choice = self._read_choice(CHOICE_PROMPT).strip().lower()
            except (typer.Abort, EOFError, KeyboardInterrupt):
                break

            if not choice or choice in QUIT_COMMANDS:
                break
            if choice in REFRESH_COMMANDS:
                self._output("Refreshing script list...")
                self.refresh()
                continue
            if choice in CONFIG_COMMANDS:
                self.show_config()
                continue

            script_path = self._select(choice)
            if script_path is not None:
                await self.run_script(script_path)

        logger.debug("interactive_session_ended")
