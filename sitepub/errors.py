"""
Error taxonomy for sitepub.

- Input errors (bad host, invalid publish config) are reported to the caller
  and never retried automatically.
- Security errors (path traversal) are always rejected and logged.
- Stage errors identify which publish stage failed so callers can decide
  whether a retry makes sense.
"""

from typing import Optional


class SitepubError(Exception):
    """Base class for sitepub errors."""


class InvalidHostError(SitepubError):
    """Host header does not match any accepted shape."""

    def __init__(self, host: str, reason: str = "host not accepted"):
        super().__init__(f"invalid host {host!r}: {reason}")
        self.host = host
        self.reason = reason


class PathTraversalError(SitepubError):
    """Requested path escapes the site root."""

    def __init__(self, path: str):
        super().__init__(f"path escapes site root: {path!r}")
        self.path = path


class ConfigValidationError(SitepubError, ValueError):
    """Publish configuration is structurally unusable."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class OperationCancelled(SitepubError):
    """A git command was interrupted by its cancel event."""

    def __init__(self, command: str):
        super().__init__(f"cancelled: {command}")
        self.command = command


class GitCommandError(SitepubError):
    """A git command exited with a non-zero status or timed out.

    ``command`` never contains credentials; URLs are redacted before the
    error is built.
    """

    def __init__(
        self,
        command: str,
        returncode: int,
        stderr: str = "",
        timed_out: bool = False,
    ):
        if timed_out:
            detail = "timed out"
        else:
            detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"git command failed ({command}): {detail}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out


class StageError(SitepubError):
    """A publish pipeline stage failed.

    Attributes:
        stage: The ``Stage`` that failed
        cause: The underlying exception
    """

    def __init__(self, stage, cause: Optional[BaseException] = None, message: str = ""):
        self.stage = stage
        self.cause = cause
        detail = message or (str(cause) if cause else "failed")
        super().__init__(f"{stage.value}: {detail}")

    @property
    def retryable(self) -> bool:
        """True when the stage talks to the network (clone, push)."""
        return self.stage.retryable


class PublishCancelledError(StageError):
    """Publish was cancelled; ``stage`` is where it stopped."""

    def __init__(self, stage, cause: Optional[BaseException] = None):
        super().__init__(stage, cause, message="cancelled")

    @property
    def retryable(self) -> bool:
        return True
