"""Exception hierarchy for termreel.

Every fatal error carries a distinct process exit code so scripts can tell
a bad invocation from a missing tool or a renderer that died mid-stream.

Exception Hierarchy:
    TermreelError (base)
    +-- ConfigurationError (alias ConfigError)
    +-- LaunchError
    |   +-- AudioLaunchError (non-fatal)
    +-- StreamError
"""

from typing import Any, Dict, List, Optional

EXIT_OK = 0
EXIT_INTERNAL = 1
EXIT_CONFIG = 2
EXIT_LAUNCH = 3
EXIT_STREAM = 4


class TermreelError(Exception):
    """Base exception for all termreel errors.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
        cause: Original exception that caused this error (if any)
        exit_code: Process exit code used when this error ends a run
    """

    exit_code: int = EXIT_INTERNAL

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "exit_code": self.exit_code,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(TermreelError):
    """Invalid or missing playback option.

    Raised before any subprocess is started.

    Examples:
        - Input file does not exist
        - Non-positive fps or width
        - Empty custom renderer command
    """

    exit_code = EXIT_CONFIG

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        valid_values: Optional[List[Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = config_value
        if valid_values:
            details["valid_values"] = valid_values
        super().__init__(message, details=details, cause=cause)


ConfigError = ConfigurationError


class LaunchError(TermreelError):
    """A subprocess could not be started.

    Examples:
        - Renderer executable not found on PATH
        - OS refused process creation (permissions, resource limits)
        - Input file removed between validation and launch
    """

    exit_code = EXIT_LAUNCH

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        executable: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if executable:
            details["executable"] = executable
        if command:
            details["command"] = " ".join(command)
        super().__init__(message, details=details, cause=cause)


class AudioLaunchError(LaunchError):
    """The audio player could not be started.

    Never ends a run: playback degrades to silent video and the error is
    kept as a warning on the session.
    """


class StreamError(TermreelError):
    """The renderer's output stream failed before natural exhaustion.

    Examples:
        - Read error on the renderer pipe
        - Renderer exited with a non-zero status
    """

    exit_code = EXIT_STREAM

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        frames_read: Optional[int] = None,
        stderr_tail: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if returncode is not None:
            details["returncode"] = returncode
        if frames_read is not None:
            details["frames_read"] = frames_read
        if stderr_tail:
            details["stderr"] = stderr_tail
        super().__init__(message, details=details, cause=cause)


def exit_code_for(error: BaseException) -> int:
    """Map any exception to the process exit code it should produce."""
    if isinstance(error, TermreelError):
        return error.exit_code
    return EXIT_INTERNAL
