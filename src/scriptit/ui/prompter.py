"""Terminal prompter for script variables."""

from collections.abc import Mapping
from typing import Any

import typer

from scriptit.core.variables import EnvironmentPrompter, VariableDefinition


class TyperPrompter(EnvironmentPrompter):
    """Ask for each missing variable on the terminal.

    Password variables are read without echo. An empty answer is allowed and
    simply leaves the variable unset.
    """

    async def prompt_for_variables(
        self,
        variables: list[VariableDefinition],
        existing_env: Mapping[str, Any],
    ) -> dict[str, str]:
        collected: dict[str, str] = {}
        for variable in variables:
            value = typer.prompt(
                variable.message,
                default="",
                show_default=False,
                hide_input=variable.is_secret,
                prompt_suffix=" ",
            )
            if value:
                collected[variable.name] = value
        return collected
