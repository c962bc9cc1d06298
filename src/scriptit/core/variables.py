"""Variable definitions and the prompt negotiator.

Scripts declare the environment variables they need through a module-level
``variables`` list, either as bare names or as full definitions::

    variables = [
        "API_URL",
        {"name": "API_TOKEN", "message": "API token:", "type": "password"},
    ]

Callers (the CLI ``--env-prompts`` flag, for instance) may declare more.
The negotiator decides which of them still need a value and delegates the
actual asking to an EnvironmentPrompter, so the CLI, the interactive session
and library callers share the same decision logic.

Classes:
    - VariableType: Plain or masked input
    - VariableDefinition: A declared variable
    - EnvironmentPrompter: Abstract prompting interface
    - NullPrompter: Prompter that never collects anything
    - StaticPrompter: Prompter answering from a mapping

Functions:
    - normalize_variable_definitions: Normalize mixed declarations
    - merge_variable_declarations: Deduplicate, caller declarations first
    - find_missing_variables: Select variables without a usable value
    - negotiate_variables: Collect missing values through a prompter
    - parse_env_prompts_list: Parse ``--env-prompts`` values
    - split_env_assignments: Split ``--env KEY=value`` values from malformed ones
    - parse_env_assignments: Parse ``--env KEY=value`` values
"""

import os
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

import structlog
import typer
from pydantic import BaseModel, Field, model_validator

from scriptit.errors import ScriptItError, ScriptItErrorCode

logger = structlog.get_logger()

_PROMPT_LIST_SEPARATOR = re.compile(r"[,\s]+")


class VariableType(str, Enum):
    """How a variable is read from a human.

    Attributes:
        INPUT: Plain, echoed input.
        PASSWORD: Masked input for secrets.
    """

    INPUT = "input"
    PASSWORD = "password"


class VariableDefinition(BaseModel):
    """A variable a script or caller needs before execution.

    Attributes:
        name: Environment variable name.
        message: Prompt shown to the user.
        type: Plain or masked input.
    """

    name: str = Field(..., min_length=1)
    message: str = ""
    type: VariableType = VariableType.INPUT

    @model_validator(mode="after")
    def default_message(self) -> "VariableDefinition":
        """Fill in the default prompt message."""
        if not self.message:
            self.message = f"Please enter value for {self.name}:"
        return self

    @property
    def is_secret(self) -> bool:
        """Return True for masked variables."""
        return self.type == VariableType.PASSWORD


def normalize_variable_definitions(
    variables: Iterable[str | Mapping[str, Any] | VariableDefinition] | None,
) -> list[VariableDefinition]:
    """Normalize bare names and mappings to VariableDefinition objects.

    Args:
        variables: Mixed declarations.

    Returns:
        List of VariableDefinition, in declaration order.

    Raises:
        ValueError: If an item is neither a name, a mapping nor a definition.
        pydantic.ValidationError: If a mapping is not a valid definition.
    """
    normalized: list[VariableDefinition] = []
    for variable in variables or []:
        if isinstance(variable, VariableDefinition):
            normalized.append(variable)
        elif isinstance(variable, str):
            normalized.append(VariableDefinition(name=variable))
        elif isinstance(variable, Mapping):
            normalized.append(VariableDefinition.model_validate(variable))
        else:
            raise ValueError(
                f"Invalid variable declaration: {variable!r} "
                "(expected a name or a mapping with 'name')"
            )
    return normalized


def merge_variable_declarations(
    *declarations: Iterable[VariableDefinition],
) -> list[VariableDefinition]:
    """Merge declarations, keeping the first definition of each name.

    Pass caller declarations before script declarations so the caller wins
    on conflict.
    """
    merged: dict[str, VariableDefinition] = {}
    for declaration in declarations:
        for variable in declaration:
            merged.setdefault(variable.name, variable)
    return list(merged.values())


def find_missing_variables(
    variables: Iterable[VariableDefinition],
    existing_env: Mapping[str, Any],
) -> list[VariableDefinition]:
    """Return the variables that have no non-empty value in ``existing_env``."""
    return [
        variable
        for variable in variables
        if existing_env.get(variable.name) in (None, "")
    ]


class EnvironmentPrompter(ABC):
    """Interface for obtaining variable values from a human or elsewhere.

    Implementations only decide *how* to ask. They receive the variables that
    still need a value and return whatever they collected; names they could
    not collect are simply left out.
    """

    @abstractmethod
    async def prompt_for_variables(
        self,
        variables: list[VariableDefinition],
        existing_env: Mapping[str, Any],
    ) -> dict[str, str]:
        """Collect values for ``variables``.

        Args:
            variables: Variables without a usable value.
            existing_env: The environment known so far.

        Returns:
            Mapping of variable name to collected value.
        """


class NullPrompter(EnvironmentPrompter):
    """Prompter for non-interactive callers: collects nothing."""

    async def prompt_for_variables(
        self,
        variables: list[VariableDefinition],
        existing_env: Mapping[str, Any],
    ) -> dict[str, str]:
        if variables:
            logger.debug(
                "variables_not_prompted",
                variables=[variable.name for variable in variables],
            )
        return {}


class StaticPrompter(EnvironmentPrompter):
    """Prompter answering from a fixed mapping (useful for automation)."""

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = dict(values)

    async def prompt_for_variables(
        self,
        variables: list[VariableDefinition],
        existing_env: Mapping[str, Any],
    ) -> dict[str, str]:
        return {
            variable.name: self._values[variable.name]
            for variable in variables
            if variable.name in self._values
        }


async def negotiate_variables(
    variables: Iterable[VariableDefinition],
    existing_env: Mapping[str, Any],
    prompter: EnvironmentPrompter,
) -> dict[str, str]:
    """Collect values for the declared variables that are not yet satisfied.

    Variables with a non-empty value in ``existing_env`` are never prompted
    and never overwritten. Collected values are also written to
    ``os.environ`` so scripts reading the process environment directly see
    them.

    Args:
        variables: Declared variables (already merged and deduplicated).
        existing_env: The environment known so far.
        prompter: How to ask for the missing values.

    Returns:
        Mapping of collected, non-empty values.

    Raises:
        ScriptItError: With PROMPT_CANCELLED if prompting is interrupted.
            Nothing is written to the environment in that case.
    """
    missing = find_missing_variables(variables, existing_env)
    if not missing:
        logger.debug("variables_satisfied")
        return {}

    requested = {variable.name for variable in missing}
    logger.debug("variables_prompting", variables=sorted(requested))

    try:
        collected = await prompter.prompt_for_variables(missing, existing_env)
    except (KeyboardInterrupt, EOFError, typer.Abort) as e:
        raise ScriptItError(
            code=ScriptItErrorCode.PROMPT_CANCELLED,
            message="Variable prompting was cancelled",
            cause=e if isinstance(e, Exception) else None,
        ) from e

    values = {
        name: str(value)
        for name, value in (collected or {}).items()
        if name in requested and value not in (None, "")
    }

    for name, value in values.items():
        os.environ[name] = value

    return values


def parse_env_prompts_list(values: Iterable[str] | None) -> list[str]:
    """Split comma/whitespace separated names and drop duplicates.

    Example:
        >>> parse_env_prompts_list(["API_KEY,SECRET", "TOKEN API_KEY"])
        ['API_KEY', 'SECRET', 'TOKEN']
    """
    names: list[str] = []
    for item in values or []:
        for name in _PROMPT_LIST_SEPARATOR.split(item):
            if name and name not in names:
                names.append(name)
    return names


def split_env_assignments(values: Iterable[str] | None) -> tuple[dict[str, str], list[str]]:
    """Split ``KEY=value`` strings into parsed pairs and rejected items.

    Only the first ``=`` separates key and value, so values may contain ``=``.
    Items without ``=`` or with an empty key are rejected.
    """
    result: dict[str, str] = {}
    rejected: list[str] = []
    for item in values or []:
        key, separator, value = item.partition("=")
        key = key.strip()
        if not key or not separator:
            rejected.append(item)
            continue
        result[key] = value.strip()
    return result, rejected


def parse_env_assignments(values: Iterable[str] | None) -> dict[str, str]:
    """Parse ``KEY=value`` strings; malformed items are skipped with a warning."""
    result, rejected = split_env_assignments(values)
    for item in rejected:
        logger.warning("env_assignment_malformed", value=item)
    return result
