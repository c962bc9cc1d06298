"""ScriptIt error types and error codes.

This module defines the error hierarchy for the script runner, providing
specific error codes for the failures that end a single invocation or the
startup of a runner.

Script phases (tear_up, the main phase, tear_down) are never wrapped in these
types: whatever a script raises reaches the caller unchanged.

Classes:
    - ScriptItErrorCode: Enum of error codes for categorizing runner errors
    - ScriptItError: Base exception for all runner-raised errors
"""

from enum import Enum
from pathlib import Path


class ScriptItErrorCode(str, Enum):
    """Error codes for runner operations.

    Used to categorize errors for logging and for presentation decisions in
    the CLI, the interactive session and library callers.
    """

    # Configuration errors (recovered locally, only used in diagnostics)
    CONFIG_INVALID = "CONFIG_INVALID"

    # Startup errors
    WORKING_DIRECTORY_NOT_FOUND = "WORKING_DIRECTORY_NOT_FOUND"
    TMP_DIR_FAILED = "TMP_DIR_FAILED"

    # Invocation errors
    SCRIPT_NOT_FOUND = "SCRIPT_NOT_FOUND"
    MISSING_ENTRY_POINT = "MISSING_ENTRY_POINT"
    PROMPT_CANCELLED = "PROMPT_CANCELLED"


class ScriptItError(Exception):
    """Base exception for runner errors.

    Attributes:
        code: The error code categorizing this error.
        message: Human-readable error message.
        script_path: Path of the script involved (if applicable).
        cause: The underlying exception that caused this error (if any).

    Example:
        raise ScriptItError(
            code=ScriptItErrorCode.SCRIPT_NOT_FOUND,
            message="Script file not found: /abs/scripts/missing.py",
        )
    """

    def __init__(
        self,
        code: ScriptItErrorCode,
        message: str,
        script_path: str | Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the runner error.

        Args:
            code: The error code for this error.
            message: Human-readable error message.
            script_path: Path of the script involved (optional).
            cause: The underlying exception (optional).
        """
        self.code = code
        self.message = message
        self.script_path = str(script_path) if script_path is not None else None
        self.cause = cause

        full_message = f"[{code.value}] {message}"
        if self.script_path:
            full_message = f"[{Path(self.script_path).name}] {full_message}"

        super().__init__(full_message)
