"""Script execution core.

This module loads a script file fresh on every call, resolves its entry
point and runs its lifecycle:

    [load] -> resolve entry point (fail if none)
           -> tearUp(context)                              if defined
           -> default|execute(context, tear_up_result)
           -> tearDown(context, main_result, tear_up_result) if defined
           -> main_result

``default`` always takes priority over ``execute``. Phases run strictly one
after another; a phase may be a plain function or a coroutine function.
Whatever a phase raises is logged and re-raised unchanged, including a
tearDown failure after a successful main phase.

Script files are Python modules. The lifecycle hooks may be spelled
``tear_up`` / ``tear_down`` or ``tearUp`` / ``tearDown``.

Classes:
    - ConsoleInterceptionOptions: Settings for the context console
    - ResolvedScript: The callables a loaded script provides
    - ScriptExecutor: Runs a script's lifecycle

Functions:
    - load_script_module: Load a script file as a fresh module
    - find_lifecycle_hooks: Collect the lifecycle callables of a module
    - resolve_script: Build a ResolvedScript or fail on a missing entry point
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog
from pydantic import BaseModel

from scriptit.core.context import ColoredConsole, LogFunction, ScriptContext
from scriptit.core.modules import load_fresh_module
from scriptit.errors import ScriptItError, ScriptItErrorCode

logger = structlog.get_logger()

# Canonical hook name -> attribute names accepted on the module, in order
HOOK_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    "tearUp": ("tear_up", "tearUp"),
    "default": ("default",),
    "execute": ("execute",),
    "tearDown": ("tear_down", "tearDown"),
}

MISSING_ENTRY_POINT_MESSAGE = (
    "must export either an 'execute' function or a 'default' function."
)


class ConsoleInterceptionOptions(BaseModel):
    """Settings for the colorized console attached to script contexts.

    Attributes:
        enabled: Whether to attach a ColoredConsole to the context.
        use_colors: Whether console lines are wrapped in ANSI colors.
        log_function: Sink for console lines; defaults to ``context.log``.
    """

    enabled: bool = True
    use_colors: bool = True
    log_function: Callable[[str], None] | None = None


@dataclass(frozen=True)
class ResolvedScript:
    """The callables a loaded script provides.

    Attributes:
        path: Absolute script path.
        main_name: ``"default"`` or ``"execute"``.
        main: The main-phase callable.
        tear_up: Optional setup callable.
        tear_down: Optional cleanup callable.
        description: The script's ``description`` string, if any.
        variables: The script's raw ``variables`` declaration, if any.
    """

    path: Path
    main_name: str
    main: Callable[..., Any]
    tear_up: Callable[..., Any] | None = None
    tear_down: Callable[..., Any] | None = None
    description: str | None = None
    variables: list[Any] | None = None


def load_script_module(script_path: str | Path) -> ModuleType:
    """Load a script file as a fresh, uncached module.

    Args:
        script_path: Path to the script.

    Returns:
        The loaded module, reflecting the file's current contents.
    """
    return load_fresh_module(script_path, prefix="scriptit_script")


def find_lifecycle_hooks(module: ModuleType) -> dict[str, Callable[..., Any]]:
    """Collect the lifecycle callables a module defines.

    Args:
        module: A loaded script module.

    Returns:
        Mapping of canonical hook name (``tearUp``, ``default``,
        ``execute``, ``tearDown``) to callable, for the hooks present.
    """
    hooks: dict[str, Callable[..., Any]] = {}
    for hook_name, attributes in HOOK_ATTRIBUTES.items():
        for attribute in attributes:
            candidate = getattr(module, attribute, None)
            if callable(candidate):
                hooks[hook_name] = candidate
                break
    return hooks


def resolve_script(module: ModuleType, script_path: Path) -> ResolvedScript:
    """Resolve a module's entry point and hooks.

    Args:
        module: A loaded script module.
        script_path: Path the module was loaded from.

    Returns:
        The ResolvedScript.

    Raises:
        ScriptItError: If the module defines neither ``default`` nor
            ``execute``.
    """
    hooks = find_lifecycle_hooks(module)

    if "default" in hooks:
        main_name = "default"
    elif "execute" in hooks:
        main_name = "execute"
    else:
        raise ScriptItError(
            code=ScriptItErrorCode.MISSING_ENTRY_POINT,
            message=f"Script {script_path} {MISSING_ENTRY_POINT_MESSAGE}",
            script_path=script_path,
        )

    description = getattr(module, "description", None)
    variables = getattr(module, "variables", None)

    return ResolvedScript(
        path=script_path,
        main_name=main_name,
        main=hooks[main_name],
        tear_up=hooks.get("tearUp"),
        tear_down=hooks.get("tearDown"),
        description=description if isinstance(description, str) else None,
        variables=list(variables) if isinstance(variables, (list, tuple)) else None,
    )


async def _call_phase(function: Callable[..., Any], *args: Any) -> Any:
    """Call a phase and await its result if it is awaitable."""
    result = function(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class ScriptExecutor:
    """Runs a script's tearUp / main / tearDown lifecycle.

    The executor is stateless with respect to scripts: every call to run()
    loads the script again, so edits on disk show up on the next call.

    Example:
        executor = ScriptExecutor(ConsoleInterceptionOptions(use_colors=False))
        context = ScriptContext(env={}, tmp_dir=Path("tmp"), log=print)
        result = await executor.run("scripts/hello.py", context)
    """

    def __init__(
        self,
        console_interception: ConsoleInterceptionOptions | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            console_interception: Console settings; None disables the
                context console.
        """
        self.console_interception = console_interception

    def _prepare_context(self, context: ScriptContext, script_name: str) -> ScriptContext:
        options = self.console_interception
        if options is None or not options.enabled:
            return context

        log_function: LogFunction = options.log_function or context.log
        logger.debug("console_interception_enabled", script=script_name)
        return context.with_console(ColoredConsole(log_function, options.use_colors))

    async def _run_lifecycle(self, script: ResolvedScript, context: ScriptContext) -> Any:
        name = script.path.name

        tear_up_result: Any = None
        if script.tear_up is not None:
            logger.debug("script_phase_started", script=name, phase="tearUp")
            context.log("Running tearUp()")
            tear_up_result = await _call_phase(script.tear_up, context)
            logger.debug("script_phase_completed", script=name, phase="tearUp")

        logger.debug("script_phase_started", script=name, phase=script.main_name)
        context.log(f"Running {script.main_name}()")
        main_result = await _call_phase(script.main, context, tear_up_result)
        logger.debug("script_phase_completed", script=name, phase=script.main_name)

        if script.tear_down is not None:
            logger.debug("script_phase_started", script=name, phase="tearDown")
            context.log("Running tearDown()")
            await _call_phase(script.tear_down, context, main_result, tear_up_result)
            logger.debug("script_phase_completed", script=name, phase="tearDown")

        return main_result

    async def run(self, script_path: str | Path, context: ScriptContext) -> Any:
        """Load a script and run its lifecycle.

        Args:
            script_path: Path to the script (relative paths resolve against
                the working directory).
            context: The context passed to every phase.

        Returns:
            Whatever the main phase returned.

        Raises:
            ScriptItError: If the file does not exist or the script has no
                entry point.
            Exception: Anything raised while loading the script or by a
                phase, unchanged.
        """
        path = Path(script_path)
        path = path if path.is_absolute() else path.resolve()

        if not path.is_file():
            raise ScriptItError(
                code=ScriptItErrorCode.SCRIPT_NOT_FOUND,
                message=f"Script file not found: {path}",
                script_path=path,
            )

        logger.debug("script_loading", script=path.name)
        run_context = self._prepare_context(context, path.name)

        try:
            module = load_script_module(path)
            script = resolve_script(module, path)
            return await self._run_lifecycle(script, run_context)
        except Exception as e:
            logger.error("script_failed", script=path.name, error=str(e))
            run_context.log(f"Error: {e}")
            raise
