"""Error taxonomy for provider calls, correlation and client input."""

from typing import Any


class BridgeError(Exception):
    """Base class for all bridge errors."""

    pass


class ProviderError(BridgeError):
    """Raised when a provider API request fails or returns a non-success status."""

    def __init__(self, message: str, status: int | None = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body


class ProviderNotFound(ProviderError):
    """Raised when the provider reports the resource does not exist (HTTP 404)."""

    pass


class ProviderPreconditionError(BridgeError):
    """Raised when a creation response omits an id or token we depend on."""

    pass


class InvalidPhoneNumber(BridgeError, ValueError):
    """Raised when a destination number is not a dialable US E.164 number."""

    pass


class CallRecordConflict(BridgeError):
    """Raised when a registry write would violate call record invariants."""

    pass
