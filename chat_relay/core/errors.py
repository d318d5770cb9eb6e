"""
Error taxonomy shared by the store, the gateway and the HTTP layer.

Each error carries the HTTP status it is reported with; the handlers
registered in chat_relay.main render them as {"error": message}.
"""


class ChatRelayError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ChatRelayError):
    """A required request field is missing or blank."""

    status_code = 400


class SessionBusyError(ChatRelayError):
    """Another request holds the session lock for too long."""

    status_code = 409


class StorageError(ChatRelayError):
    """The conversation store is unavailable or rejected the operation."""


class GatewayError(ChatRelayError):
    """The model provider could not be reached or answered with an error status."""
