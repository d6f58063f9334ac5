"""
Defines project-specific exception classes.
"""
from typing import Optional


class IsupError(Exception):
    """Base class for all custom exceptions in isup."""
    pass


class ConfigurationError(IsupError):
    """Raised when loading or validating the configuration file fails."""
    pass


class StoreError(IsupError):
    """
    Raised when a score store cannot be reached, or when a stored
    value cannot be serialised or decoded.
    """

    def __init__(self,
                 message: str,
                 backend: Optional[str] = None,
                 orig_exc: Optional[Exception] = None):
        self.backend = backend
        self.orig_exc = orig_exc

        full_msg = "Store error"
        if backend:
            full_msg += f" (backend: {backend})"
        full_msg += f": {message}"
        if orig_exc:
            full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)


class InvalidURLError(IsupError, ValueError):
    """Raised when a probe URL cannot be parsed or is not absolute."""

    def __init__(self, url: str, reason: str = "unparsable URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL '{url}': {reason}")


class ProbeFailure(IsupError):
    """
    Describes a transport-level failure (timeout, refused connection)
    for a single probe. Absorbed by the polling cycle, never raised to
    callers of ``Service.update``.
    """

    def __init__(self, url: str, orig_exc: Optional[Exception] = None):
        self.url = url
        self.orig_exc = orig_exc
        message = f"Probe to '{url}' failed"
        if orig_exc:
            message += f": {type(orig_exc).__name__}: {orig_exc}"
        super().__init__(message)
