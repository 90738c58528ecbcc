"""Bearer-token authentication for the gateway endpoints."""

from __future__ import annotations

import hmac
import logging

from fastapi import Request

from ..core.exceptions import AuthError

logger = logging.getLogger("chatrelay")


class BearerAuthValidator:
    """Checks ``Authorization: Bearer <key>`` against the configured key.

    With no key configured every request is accepted.
    """

    def __init__(self, api_key: str | None) -> None:
        self._api_key = api_key or None

    def is_enabled(self) -> bool:
        return self._api_key is not None

    def validate_header(self, authorization: str | None) -> None:
        """Validate a raw Authorization header value.

        Raises:
            AuthError: the header is missing, not a bearer token, or the
                token does not match.
        """
        if self._api_key is None:
            return
        if not authorization:
            logger.warning("Request rejected: missing authorization header")
            raise AuthError("authentication failed: missing authorization header")

        scheme, _, token = authorization.strip().partition(" ")
        # Use constant-time comparison to prevent timing attacks
        if scheme.lower() != "bearer" or not hmac.compare_digest(
            token.strip().encode("utf-8"), self._api_key.encode("utf-8")
        ):
            logger.warning("Request rejected: invalid API key")
            raise AuthError("authentication failed: invalid API key")

    def validate_request(self, request: Request) -> None:
        self.validate_header(request.headers.get("Authorization"))


async def require_api_key(request: Request) -> None:
    """FastAPI dependency enforcing the app's bearer validator."""
    validator: BearerAuthValidator = request.app.state.auth_validator
    validator.validate_request(request)
