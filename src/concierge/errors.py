"""Application-level exception types for Concierge."""

from __future__ import annotations


class ConciergeError(Exception):
    """Base exception for Concierge."""


class ConfigurationError(ConciergeError):
    """Raised when settings are missing or malformed."""


class CredentialsUnavailableError(ConciergeError):
    """Raised when no usable credentials exist for a user."""


class ModelCallError(ConciergeError):
    """Raised when the language model call fails or times out."""


class ServiceCallError(ConciergeError):
    """Raised when an external operation cannot be reached."""


class BusError(ConciergeError):
    """Base exception for message bus failures."""


class BusPublishError(BusError):
    """Raised when a message cannot be published to the bus."""


class ResponseTimeoutError(BusError):
    """Raised when no response arrives for a user within the wait window."""

    def __init__(self, user_id: str, timeout_seconds: float) -> None:
        super().__init__(f"no response for user {user_id} within {timeout_seconds}s")
        self.user_id = user_id
        self.timeout_seconds = timeout_seconds


class ServiceStatusError(ServiceCallError):
    """Raised when an external operation runs but reports an error status."""
