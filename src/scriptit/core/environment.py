"""Environment loading and ``${VAR}`` interpolation.

The environment a script sees is assembled from several layers, in order of
increasing precedence:

    1. Env files, in the order given (later files override earlier ones)
    2. The ambient process environment (``os.environ``)
    3. Explicitly supplied variables
    4. Default parameters, interpolated against layers 1-3

Interpolation never fails: an unknown ``${NAME}`` becomes an empty string.

Functions:
    - read_env_files: Parse env files in order, later files winning
    - build_base_environment: Merge env files, os.environ and explicit vars
    - interpolate_env_vars: Recursively expand ${VAR} patterns
    - load_environment: Build the environment snapshot
"""

import os
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import structlog
from dotenv import dotenv_values

logger = structlog.get_logger()

# Environment variable expansion pattern: ${VAR_NAME}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def read_env_files(env_file_paths: Iterable[str | Path]) -> dict[str, str]:
    """Parse env files in order and merge them.

    Missing files are skipped. For a key present in several files, the
    value from the file listed last wins.

    Args:
        env_file_paths: Env file paths, resolved against the working directory.

    Returns:
        Merged mapping of the variables defined in the files.
    """
    loaded: dict[str, str] = {}

    for file_path in env_file_paths:
        path = Path(file_path).expanduser().resolve()
        if not path.is_file():
            logger.debug("env_file_missing", path=str(path))
            continue

        values = dotenv_values(path)
        # Keys declared without a value (e.g. "FLAG") parse to None
        parsed = {key: value for key, value in values.items() if value is not None}
        loaded.update(parsed)
        logger.debug("env_file_loaded", path=str(path), variables=len(parsed))

    return loaded


def interpolate_env_vars(value: Any, env: Mapping[str, Any]) -> Any:
    """Expand ${VAR} patterns anywhere inside ``value``.

    Strings are expanded; dicts, lists and tuples are walked recursively;
    other values are returned unchanged. Names missing from ``env`` (or
    mapped to an empty value) expand to an empty string.

    Args:
        value: The value to interpolate.
        env: Environment used for lookups.

    Returns:
        A new value with all ${VAR} patterns expanded.

    Example:
        >>> interpolate_env_vars({"url": "${HOST}/api"}, {"HOST": "example.com"})
        {'url': 'example.com/api'}
    """
    if isinstance(value, str):

        def replacer(match: re.Match[str]) -> str:
            env_value = env.get(match.group(1))
            return str(env_value) if env_value else ""

        return _ENV_VAR_PATTERN.sub(replacer, value)
    if isinstance(value, Mapping):
        return {key: interpolate_env_vars(item, env) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_env_vars(item, env) for item in value]
    if isinstance(value, tuple):
        return tuple(interpolate_env_vars(item, env) for item in value)
    return value


def build_base_environment(
    env_file_paths: Iterable[str | Path],
    explicit_env: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge env files, the process environment and explicit variables.

    This is the environment default params are interpolated against.
    """
    return {
        **read_env_files(env_file_paths),
        **os.environ,
        **(explicit_env or {}),
    }


def load_environment(
    env_file_paths: Iterable[str | Path],
    explicit_env: Mapping[str, Any] | None = None,
    default_params: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the environment snapshot for a runner.

    The process environment is read but never modified.

    Args:
        env_file_paths: Env files, applied in order.
        explicit_env: Caller-supplied variables (highest of the raw layers).
        default_params: Parameters to interpolate and merge on top.

    Returns:
        The merged environment with interpolated default params on top.
    """
    env = build_base_environment(env_file_paths, explicit_env)

    interpolated = interpolate_env_vars(dict(default_params or {}), env)
    env.update(interpolated)

    logger.debug(
        "environment_loaded",
        total=len(env),
        default_params=len(interpolated),
    )
    return env
