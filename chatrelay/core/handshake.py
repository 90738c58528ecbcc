"""Pre-stream handshake: trade the latest user message for a per-turn cache key."""

import json
import logging
import time
import uuid
from typing import Optional

import httpx

from ..settings import SiteSettings
from .backend import build_client, build_site_headers, format_httpx_error
from .exceptions import HandshakeError

logger = logging.getLogger("chatrelay.handshake")

HANDSHAKE_ACTION = "aipkit_cache_sse_message"


def build_client_message_id(bot_id: str) -> str:
    """Per-request client message id; the upstream dedupes turns on it."""
    millis = int(time.time() * 1000)
    return f"aipkit-client-msg-{bot_id}-{millis}-{uuid.uuid4().hex[:5]}"


class HandshakeClient:
    """Negotiates the per-turn token that authorizes one streamed turn."""

    def __init__(
        self,
        site: SiteSettings,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.site = site
        self.timeout = timeout
        self.transport = transport

    def build_form(self, message: str, bot_id: str) -> dict[str, str]:
        return {
            "action": HANDSHAKE_ACTION,
            "message": message,
            "_ajax_nonce": self.site.ajax_nonce,
            "bot_id": bot_id,
            "user_client_message_id": build_client_message_id(bot_id),
        }

    async def negotiate(self, message: str, bot_id: str) -> str:
        """Submit ``message`` for ``bot_id`` and return the per-turn cache key.

        Raises:
            HandshakeError: the call failed, the body was not JSON, or the
                upstream did not report success with a cache key.
        """
        url = self.site.ajax_url
        form = self.build_form(message, bot_id)
        logger.debug("Negotiating cache key for bot %s", bot_id)
        async with build_client(self.timeout, self.transport) as client:
            try:
                resp = await client.post(url, data=form, headers=build_site_headers(self.site, stream=False))
            except httpx.HTTPError as exc:
                logger.error("Handshake request failed: %s", format_httpx_error(exc, url))
                raise HandshakeError(f"handshake request failed: {format_httpx_error(exc, url)}") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.error("Handshake returned status %s", resp.status_code)
            raise HandshakeError(f"failed to obtain cache_key: {resp.status_code}")

        try:
            payload = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise HandshakeError("failed to obtain cache_key: response is not JSON") from exc

        if not isinstance(payload, dict):
            raise HandshakeError("invalid cache_key")
        data = payload.get("data")
        cache_key = data.get("cache_key") if isinstance(data, dict) else None
        if not payload.get("success") or not isinstance(cache_key, str) or not cache_key:
            logger.error("Handshake response rejected: %s", str(payload)[:200])
            raise HandshakeError("invalid cache_key")
        return cache_key
