"""Exception taxonomy shared across procintake layers.

Failures inside the auto-save engine are *recovered* (they end up in
``SaveState.last_error``); the exceptions below are what the persistence
callbacks, the HTTP client and the draft store raise to signal them.
"""

from __future__ import annotations


class ProcintakeError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(ProcintakeError):
    """Raised when required configuration is missing or malformed."""


class ApiError(ProcintakeError):
    """A forms backend call failed.

    Parameters
    ----------
    message:
        Human-readable reason, surfaced verbatim by the save indicator.
    status:
        HTTP status code, or ``None`` when the request never reached the server.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


class DraftStoreError(ProcintakeError):
    """Raised when a local draft cannot be written or read back."""


__all__ = ["ApiError", "ConfigError", "DraftStoreError", "ProcintakeError"]
