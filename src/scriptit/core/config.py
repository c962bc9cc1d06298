"""Runner configuration model and resolver.

This module provides the Pydantic model describing the effective runner
configuration and the resolver that layers built-in defaults, programmatic
defaults, an optional user config file and CLI overrides into one value.

Config files may be Python modules (``runner.config.py``) or YAML documents
(``*.yml`` / ``*.yaml``). Keys may use either the snake_case field names or
the camelCase names of the config-file contract (``scriptsDir``, ``tmpDir``,
``envFiles``, ``defaultParams``, ``excludePatterns``).

Models:
    - RunnerConfig: Effective configuration

Functions:
    - resolve_config_path: Resolve the config file location
    - read_config_file: Read the user layer from a config file
    - load_runner_config: Merge all layers into a RunnerConfig
    - debug_enabled: Whether SCRIPTIT_DEBUG asks for debug mode
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field

from scriptit.core.modules import load_fresh_module
from scriptit.errors import ScriptItErrorCode

logger = structlog.get_logger()

DEFAULT_SCRIPTS_DIR = "scripts"
DEFAULT_TMP_DIR = "tmp"
DEFAULT_CONFIG_FILE = "runner.config.py"
DEFAULT_ENV_FILES: tuple[str, ...] = (".env",)

YAML_SUFFIXES: frozenset[str] = frozenset({".yml", ".yaml"})

DEBUG_ENV_VAR = "SCRIPTIT_DEBUG"


class RunnerConfig(BaseModel):
    """Effective configuration for a script runner.

    Attributes:
        scripts_dir: Directory holding the scripts (absolute once resolved).
        tmp_dir: Directory scripts may use for temporary files.
        env_files: Env files loaded in order; later files win.
        default_params: Parameters exposed on every script context. String
            values may contain ``${VAR}`` placeholders.
        exclude_patterns: Glob patterns, relative to ``scripts_dir``, of
            entries to hide from discovery.
        loaded_config_path: Path of the config file actually loaded, if any.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    scripts_dir: Path = Field(default=Path(DEFAULT_SCRIPTS_DIR), alias="scriptsDir")
    tmp_dir: Path = Field(default=Path(DEFAULT_TMP_DIR), alias="tmpDir")
    env_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ENV_FILES),
        alias="envFiles",
    )
    default_params: dict[str, Any] = Field(default_factory=dict, alias="defaultParams")
    exclude_patterns: list[str] = Field(default_factory=list, alias="excludePatterns")
    loaded_config_path: Path | None = Field(default=None, alias="loadedConfigPath")


def _field_names_by_key() -> dict[str, str]:
    """Map every accepted key (field name or alias) to its field name."""
    mapping: dict[str, str] = {}
    for name, field_info in RunnerConfig.model_fields.items():
        mapping[name] = name
        if field_info.alias:
            mapping[field_info.alias] = name
    return mapping


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Rename alias keys to field names and drop unknown keys."""
    known = _field_names_by_key()
    return {known[key]: value for key, value in data.items() if key in known}


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Resolve the config file path against the current working directory.

    Args:
        config_path: Explicit path, or None for ``runner.config.py``.

    Returns:
        Absolute path of the config file (which may not exist).
    """
    return Path(config_path or DEFAULT_CONFIG_FILE).expanduser().resolve()


def _read_python_config(path: Path) -> Mapping[str, Any]:
    """Import a Python config module and return its configuration mapping.

    The module's ``config`` (or ``default``) attribute is used when it is a
    mapping; otherwise the module's own top-level names are used.
    """
    module = load_fresh_module(path, prefix="scriptit_config")

    for attribute in ("config", "default"):
        value = getattr(module, attribute, None)
        if isinstance(value, Mapping):
            return value

    return {
        key: value
        for key, value in vars(module).items()
        if not key.startswith("_")
    }


def _read_yaml_config(path: Path) -> Mapping[str, Any]:
    """Read a YAML config document."""
    with path.open() as f:
        data = yaml.safe_load(f)

    # Handle empty file
    if data is None:
        return {}

    if not isinstance(data, Mapping):
        raise ValueError(f"Config file must contain a mapping, got {type(data).__name__}")

    return data


def read_config_file(path: Path) -> dict[str, Any]:
    """Read the user configuration layer from a config file.

    Args:
        path: Existing config file path.

    Returns:
        Normalized mapping (field names as keys, unknown keys dropped).

    Raises:
        Exception: Whatever importing or parsing the file raises.
    """
    if path.suffix.lower() in YAML_SUFFIXES:
        data = _read_yaml_config(path)
    else:
        data = _read_python_config(path)

    return _normalize_keys(data)


def _load_user_layer(path: Path, base: dict[str, Any]) -> dict[str, Any]:
    """Load and validate the user layer, degrading to an empty layer on error."""
    try:
        user_layer = read_config_file(path)
        # Validate against the layers below so a bad value is caught here
        RunnerConfig.model_validate({**base, **user_layer})
    except Exception as e:
        logger.warning(
            "config_load_failed",
            code=ScriptItErrorCode.CONFIG_INVALID.value,
            path=str(path),
            error=str(e),
            error_type=type(e).__name__,
        )
        return {}

    logger.debug("config_loaded", path=str(path), keys=sorted(user_layer))
    return user_layer


def load_runner_config(
    config_path: str | Path | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
    defaults_override: Mapping[str, Any] | None = None,
) -> RunnerConfig:
    """Resolve the effective runner configuration.

    Merge order (later wins): built-in defaults, ``defaults_override``, the
    user config file, then ``cli_overrides``. ``None`` values in
    ``cli_overrides`` and ``defaults_override`` are ignored. Directories are
    resolved to absolute paths after merging.

    A missing config file is not an error, and neither is a config file that
    fails to import or validate: both fall back to the remaining layers with
    a diagnostic.

    Args:
        config_path: Explicit config file path (default ``runner.config.py``).
        cli_overrides: Overrides for ``scripts_dir``, ``tmp_dir`` and
            ``env_files``.
        defaults_override: Programmatic defaults sitting below the config file.

    Returns:
        The effective RunnerConfig.

    Example:
        >>> config = load_runner_config(cli_overrides={"scripts_dir": "jobs"})
        >>> config.scripts_dir.is_absolute()
        True
    """
    resolved_path = resolve_config_path(config_path)
    logger.debug("config_resolving", path=str(resolved_path))

    merged: dict[str, Any] = RunnerConfig().model_dump(exclude={"loaded_config_path"})

    if defaults_override:
        merged.update(
            {
                key: value
                for key, value in _normalize_keys(defaults_override).items()
                if value is not None
            }
        )

    loaded_config_path: Path | None = None
    if resolved_path.is_file():
        loaded_config_path = resolved_path
        merged.update(_load_user_layer(resolved_path, merged))
    else:
        logger.debug("config_not_found", path=str(resolved_path))

    if cli_overrides:
        for key, value in _normalize_keys(cli_overrides).items():
            if value is not None:
                merged[key] = value

    config = RunnerConfig.model_validate(merged)
    config.scripts_dir = config.scripts_dir.expanduser().resolve()
    config.tmp_dir = config.tmp_dir.expanduser().resolve()
    config.loaded_config_path = loaded_config_path

    if config.exclude_patterns:
        logger.debug("config_exclude_patterns", patterns=config.exclude_patterns)

    logger.debug(
        "config_resolved",
        scripts_dir=str(config.scripts_dir),
        tmp_dir=str(config.tmp_dir),
        env_files=config.env_files,
        loaded_config_path=str(loaded_config_path) if loaded_config_path else None,
    )
    return config


def debug_enabled() -> bool:
    """Return True if SCRIPTIT_DEBUG is set to 1 or true."""
    return os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in {"1", "true"}
