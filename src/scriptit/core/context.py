"""Script context and the colorized console facade.

Every lifecycle phase of a script receives a ScriptContext. It carries the
environment snapshot, the temp directory, the config path, a log callback,
a parameter bag and, when console interception is enabled, a ColoredConsole.
Default parameters and caller overrides are attached as extra fields that
scripts read as plain attributes (``context.api_url``) or items
(``context["api_url"]``).

Classes:
    - ColoredConsole: Five leveled logging methods routed to a log function
    - ScriptContext: Per-invocation argument passed to every phase

Functions:
    - safe_stringify: Shallow, non-recursive string conversion
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import typer

LogFunction = Callable[[str], None]

# Foreground color per console level
LEVEL_COLORS: dict[str, str] = {
    "log": "white",
    "error": "red",
    "warn": "yellow",
    "info": "blue",
    "debug": "bright_black",
}


def safe_stringify(arg: Any) -> str:
    """Convert a value to a string without traversing containers.

    Primitives print directly, exceptions print as ``Error: <message>``,
    dates as ISO-8601 and sequences as ``[Array(N)]``. Every other object
    prints as ``[Object]``, which keeps the conversion safe for circular or
    very large structures.

    Args:
        arg: Any value.

    Returns:
        The string form.
    """
    if arg is None:
        return "None"
    if isinstance(arg, str):
        return arg
    if isinstance(arg, (bool, int, float, complex)):
        return str(arg)
    if isinstance(arg, BaseException):
        return f"Error: {arg}"
    if isinstance(arg, (datetime, date, time)):
        return arg.isoformat()
    if isinstance(arg, (list, tuple)):
        return f"[Array({len(arg)})]"
    if callable(arg):
        return "[Function]"
    return "[Object]"


class ColoredConsole:
    """Console-like object that formats arguments and routes them to a log sink.

    It is attached to the script context and never replaces ``print`` or
    ``sys.stdout``.

    Example:
        console = ColoredConsole(context.log)
        console.warn("disk almost full:", 93.5)
    """

    def __init__(self, log_function: LogFunction, use_colors: bool = True) -> None:
        """Initialize the console.

        Args:
            log_function: Sink receiving each formatted line.
            use_colors: Whether to wrap lines in ANSI colors.
        """
        self._log_function = log_function
        self._use_colors = use_colors

    def _emit(self, level: str, args: tuple[Any, ...]) -> None:
        try:
            message = " ".join(safe_stringify(arg) for arg in args)
            if self._use_colors:
                message = typer.style(message, fg=LEVEL_COLORS[level])
            self._log_function(message)
        except Exception:
            self._log_function(f"[{level.upper()}] <error>")

    def log(self, *args: Any) -> None:
        self._emit("log", args)

    def error(self, *args: Any) -> None:
        self._emit("error", args)

    def warn(self, *args: Any) -> None:
        self._emit("warn", args)

    def info(self, *args: Any) -> None:
        self._emit("info", args)

    def debug(self, *args: Any) -> None:
        self._emit("debug", args)


@dataclass
class ScriptContext:
    """Per-invocation argument passed to every lifecycle phase.

    Attributes:
        env: Environment snapshot for this invocation.
        tmp_dir: Directory for temporary files.
        log: Callback receiving log lines.
        config_path: Config file in effect, if any.
        params: Caller-supplied parameters.
        console: Colorized console, present when interception is enabled.
        extras: Ambient fields (default params, overrides), also readable as
            attributes and items.
    """

    env: dict[str, Any]
    tmp_dir: Path
    log: LogFunction
    config_path: Path | None = None
    params: dict[str, Any] = field(default_factory=dict)
    console: ColoredConsole | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        env: dict[str, Any],
        tmp_dir: Path,
        log: LogFunction,
        config_path: Path | None = None,
        params: dict[str, Any] | None = None,
        ambient: dict[str, Any] | None = None,
    ) -> ScriptContext:
        """Create a context, spreading ``ambient`` over it.

        Keys of ``ambient`` naming a context field replace that field; all
        other keys become extras.
        """
        context = cls(
            env=env,
            tmp_dir=tmp_dir,
            log=log,
            config_path=config_path,
            params=dict(params or {}),
        )
        field_names = {f.name for f in dataclasses.fields(cls)} - {"extras"}
        for key, value in (ambient or {}).items():
            if key in field_names:
                setattr(context, key, value)
            else:
                context.extras[key] = value
        return context

    def __getattr__(self, name: str) -> Any:
        # Only reached when regular attribute lookup fails
        extras = self.__dict__.get("extras", {})
        if name in extras:
            return extras[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __getitem__(self, key: str) -> Any:
        if key in self.extras:
            return self.extras[key]
        if key in {f.name for f in dataclasses.fields(self)}:
            return getattr(self, key)
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return key in self.extras or key in {f.name for f in dataclasses.fields(self)}

    def get(self, key: str, default: Any = None) -> Any:
        """Return a field or extra by name, or ``default``."""
        try:
            return self[key]
        except KeyError:
            return default

    def with_console(self, console: ColoredConsole) -> ScriptContext:
        """Return a copy of this context with ``console`` attached."""
        return dataclasses.replace(self, console=console, extras=dict(self.extras))
