"""
Standard exit codes for sitepub commands.

Following Unix/POSIX conventions for command-line tools.
"""
import sys
from typing import Optional

from .errors import (
    ConfigValidationError,
    InvalidHostError,
    OperationCancelled,
    PublishCancelledError,
    StageError,
)

# Standard POSIX exit codes
GENERAL_ERROR = 1        # General errors

# Application-specific exit codes (64-113 are typically available)
CONFIG_ERROR = 66        # Configuration file or publish settings error
PERMISSION_ERROR = 67    # Insufficient permissions
NETWORK_ERROR = 68       # Clone or push failed; worth retrying
DATA_ERROR = 70          # Data format or validation error
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT) or cancelled

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ConnectionError': NETWORK_ERROR,
    'TimeoutError': NETWORK_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'ConfigError': CONFIG_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Publish errors are mapped by kind: bad settings are a config error,
    failed network stages are retryable network errors, cancellation
    counts as an interrupt.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    if isinstance(exc, ConfigValidationError):
        return CONFIG_ERROR
    if isinstance(exc, InvalidHostError):
        return DATA_ERROR
    if isinstance(exc, (PublishCancelledError, OperationCancelled)):
        return INTERRUPTED
    if isinstance(exc, StageError):
        return NETWORK_ERROR if exc.retryable else GENERAL_ERROR
    return EXCEPTION_EXIT_CODES.get(exc.__class__.__name__, GENERAL_ERROR)


def exit_with_code(code: int, message: Optional[str] = None):
    """
    Exit with a specific code and optional message.

    Args:
        code: Exit code
        message: Optional message to print to stderr
    """
    if message:
        print(message, file=sys.stderr)
    sys.exit(code)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when the loaded configuration cannot run a command."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)
