"""Core exceptions for the gateway."""

import copy
from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway errors.

    Every subclass carries the HTTP status it maps to; the application error
    handler serializes any ``GatewayError`` as ``{"error": message}``.
    """

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def prefixed(self, prefix: str) -> "GatewayError":
        """Return a copy of this error, same type, with ``prefix`` on the message."""
        clone = copy.copy(self)
        clone.message = f"{prefix}{self.message}"
        clone.args = (clone.message,)
        return clone


class AuthError(GatewayError):
    """Raised when the bearer credential is missing or invalid."""

    status_code = 401


class ValidationError(GatewayError):
    """Raised when an incoming request is invalid."""

    status_code = 400


class InvalidSessionError(ValidationError):
    """Raised when a conversation id was never created or is already gone."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"invalid conversation id: {conversation_id}")
        self.conversation_id = conversation_id


class UpstreamError(GatewayError):
    """Raised when the upstream fails or answers with something unusable."""

    status_code = 500


class HandshakeError(UpstreamError):
    """Raised when the per-turn token cannot be negotiated."""

    pass


class ConfigurationError(GatewayError):
    """Raised when there's an issue with the configuration."""

    pass
