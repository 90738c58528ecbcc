"""Open the upstream event stream for one negotiated turn."""

import logging
import time
from typing import AsyncIterator, Optional

import httpx

from ..settings import SiteSettings
from .backend import build_client, build_site_headers, format_httpx_error
from .classifier import StreamEvent, classify_records
from .exceptions import UpstreamError
from .sse import aiter_sse_records

logger = logging.getLogger("chatrelay.event_stream")

STREAM_ACTION = "aipkit_frontend_chat_stream"


class UpstreamTurn:
    """A live upstream stream; ``events()`` drains it exactly once."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def events(self) -> AsyncIterator[StreamEvent]:
        records = aiter_sse_records(self._response.aiter_bytes())
        try:
            async for event in classify_records(records):
                yield event
        except httpx.HTTPError as exc:
            logger.error("Upstream stream broke: %s", format_httpx_error(exc))
            raise UpstreamError(f"stream read failed: {format_httpx_error(exc)}") from exc
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        await self._client.aclose()


class EventStreamClient:
    """Builds the stream query and opens the GET event stream."""

    def __init__(
        self,
        site: SiteSettings,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.site = site
        self.timeout = timeout
        self.transport = transport

    def build_params(
        self,
        cache_key: str,
        bot_id: str,
        conversation_token: str,
        continuation_id: Optional[str],
        web_search: bool,
    ) -> dict[str, str]:
        params = {
            "action": STREAM_ACTION,
            "cache_key": cache_key,
            "bot_id": bot_id,
            "session_id": self.site.session_id,
            "conversation_uuid": conversation_token,
            "post_id": self.site.post_id,
            "_ts": str(int(time.time() * 1000)),
            "_ajax_nonce": self.site.ajax_nonce,
        }
        if continuation_id:
            params["previous_openai_response_id"] = continuation_id
        if web_search:
            params["frontend_web_search_active"] = "true"
        return params

    async def open(
        self,
        cache_key: str,
        bot_id: str,
        conversation_token: str,
        continuation_id: Optional[str] = None,
        web_search: bool = False,
    ) -> UpstreamTurn:
        """Open the stream; a non-2xx answer fails before any event is read."""
        url = self.site.ajax_url
        params = self.build_params(cache_key, bot_id, conversation_token, continuation_id, web_search)
        client = build_client(self.timeout, self.transport)
        try:
            request = client.build_request(
                "GET", url, params=params, headers=build_site_headers(self.site, stream=True)
            )
            logger.debug(
                "Opening event stream bot=%s continuation=%s web_search=%s",
                bot_id,
                bool(continuation_id),
                web_search,
            )
            resp = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.error("Failed to open event stream: %s", format_httpx_error(exc, url))
            raise UpstreamError(f"stream request failed: {format_httpx_error(exc, url)}") from exc
        except Exception:
            await client.aclose()
            raise

        if resp.status_code < 200 or resp.status_code >= 300:
            await resp.aclose()
            await client.aclose()
            logger.error("Event stream returned status %s", resp.status_code)
            raise UpstreamError(f"stream request failed: {resp.status_code}")

        return UpstreamTurn(client, resp)
