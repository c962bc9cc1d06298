"""ScriptIt: run scripts with environment management and lifecycle hooks.

Core Components:
    - core: Configuration, environment, discovery, variables and execution
    - runner: The library surface (create_script_runner, ScriptRunner)
    - events: Event names and the EventEmitter
    - errors: ScriptItError and its error codes
    - ui: The interactive session and terminal prompter
    - cli: The `scriptit` command
"""

from scriptit.core.context import ScriptContext
from scriptit.core.variables import (
    EnvironmentPrompter,
    StaticPrompter,
    VariableDefinition,
    VariableType,
)
from scriptit.errors import ScriptItError, ScriptItErrorCode

__all__ = [
    "EnvironmentPrompter",
    "RunnerOptions",
    "ScriptContext",
    "ScriptItError",
    "ScriptItErrorCode",
    "ScriptRunner",
    "StaticPrompter",
    "VariableDefinition",
    "VariableType",
    "create_script_runner",
]


def __getattr__(name: str):
    """Lazy import for the runner so `import scriptit` stays light."""
    if name in ("RunnerOptions", "ScriptRunner", "create_script_runner"):
        from scriptit import runner

        return getattr(runner, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
