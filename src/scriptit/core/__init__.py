"""ScriptIt core.

This package holds everything needed to run a script, independent of any
front end:

Core Components:
    - config: Runner configuration model and resolver (RunnerConfig)
    - environment: Env file loading and ${VAR} interpolation
    - discovery: Recursive script discovery with exclusion globs
    - variables: Variable definitions and the prompt negotiator
    - context: ScriptContext and the ColoredConsole facade
    - executor: Fresh module loading and the tearUp/main/tearDown lifecycle
    - invocation: End-to-end invocation shared by the CLI and the session
"""

from scriptit.core.config import RunnerConfig, load_runner_config
from scriptit.core.context import ColoredConsole, ScriptContext, safe_stringify
from scriptit.core.discovery import describe_script, discover_scripts
from scriptit.core.environment import interpolate_env_vars, load_environment
from scriptit.core.executor import (
    ConsoleInterceptionOptions,
    ResolvedScript,
    ScriptExecutor,
)
from scriptit.core.invocation import RunLogger, execute_script_with_environment
from scriptit.core.variables import (
    EnvironmentPrompter,
    NullPrompter,
    StaticPrompter,
    VariableDefinition,
    VariableType,
    negotiate_variables,
)

__all__ = [
    "ColoredConsole",
    "ConsoleInterceptionOptions",
    "EnvironmentPrompter",
    "NullPrompter",
    "ResolvedScript",
    "RunLogger",
    "RunnerConfig",
    "ScriptContext",
    "ScriptExecutor",
    "StaticPrompter",
    "VariableDefinition",
    "VariableType",
    "describe_script",
    "discover_scripts",
    "execute_script_with_environment",
    "interpolate_env_vars",
    "load_environment",
    "load_runner_config",
    "negotiate_variables",
    "safe_stringify",
]
