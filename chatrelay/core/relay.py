"""Pass-through relay for an upstream that already speaks OpenAI chat completions."""

import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Mapping, Optional

import httpx
from fastapi.responses import JSONResponse, Response, StreamingResponse

from ..settings import RelaySettings, VirtualModel
from .backend import (
    build_client,
    filter_response_headers,
    format_httpx_error,
    safe_headers_for_log,
    strip_hop_by_hop,
)

logger = logging.getLogger("chatrelay.relay")

RELAY_ERROR_STATUS = 502


@dataclass(frozen=True)
class RelayBody:
    """The outbound body plus what was learned from parsing it."""

    content: bytes
    is_stream: bool = False
    model: Optional[str] = None
    rewritten: bool = False


def rewrite_relay_body(body: bytes, virtual_models: Mapping[str, VirtualModel]) -> RelayBody:
    """Detect streaming and rewrite virtual model aliases.

    A body that is not a JSON object is forwarded byte-for-byte.
    """
    try:
        payload = json.loads(body)
    except ValueError:
        logger.warning("Received a request with a non-JSON body. Passing through without modification.")
        return RelayBody(content=body)
    if not isinstance(payload, dict):
        return RelayBody(content=body)

    is_stream = bool(payload.get("stream"))
    model = payload.get("model")
    virtual = virtual_models.get(model) if isinstance(model, str) else None
    if virtual is None:
        return RelayBody(content=body, is_stream=is_stream, model=model if isinstance(model, str) else None)

    logger.info("Virtual model '%s' detected, rewriting to '%s'", model, virtual.model)
    payload["model"] = virtual.model
    payload.update(virtual.flags)
    content = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    logger.debug("Rewrote relay body: %s", content[:500])
    return RelayBody(content=content, is_stream=is_stream, model=virtual.model, rewritten=True)


def build_relay_headers(
    incoming: Iterable[tuple[str, str]], host: str, user_agent: str
) -> list[tuple[str, str]]:
    """Forward the caller's headers minus hop-by-hop ones, with fixed identity."""
    forced = {"host", "user-agent", "accept-encoding"}
    headers = [
        (key, value)
        for key, value in strip_hop_by_hop(incoming)
        if key.lower() not in forced
    ]
    headers.append(("host", host))
    headers.append(("user-agent", user_agent))
    # Raw chunks are relayed as-is, so they must not arrive compressed.
    headers.append(("accept-encoding", "identity"))
    return headers


def relay_error_body(message: str, error_type: str) -> bytes:
    return json.dumps({"error": {"message": message, "type": error_type}}).encode("utf-8")


class RelayAdapter:
    """Relays chat completion requests to the OpenAI-compatible upstream."""

    def __init__(
        self,
        settings: RelaySettings,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.timeout = timeout
        self.transport = transport

    async def forward(self, body: bytes, headers: Iterable[tuple[str, str]]) -> Response:
        relay_body = rewrite_relay_body(body, self.settings.virtual_models)
        outbound = build_relay_headers(headers, self.settings.host, self.settings.user_agent)
        logger.info(
            "Relaying request model=%s stream=%s", relay_body.model, relay_body.is_stream
        )
        logger.debug("Relay headers: %s", safe_headers_for_log(dict(outbound)))
        if relay_body.is_stream:
            return StreamingResponse(
                self.stream(relay_body.content, outbound),
                media_type="text/event-stream; charset=utf-8",
                headers={"Cache-Control": "no-cache"},
            )
        return await self.buffered(relay_body.content, outbound)

    async def stream(
        self, content: bytes, headers: list[tuple[str, str]]
    ) -> AsyncIterator[bytes]:
        """Yield upstream body chunks untouched.

        Failures surface as one JSON error event inside the stream since the
        response status line is already committed.
        """
        url = self.settings.chat_url
        try:
            async with build_client(self.timeout, self.transport) as client:
                async with client.stream("POST", url, content=content, headers=headers) as resp:
                    if resp.status_code < 200 or resp.status_code >= 300:
                        error_text = (await resp.aread()).decode("utf-8", errors="replace")
                        logger.error(
                            "Upstream server returned an error: %s - %s", resp.status_code, error_text[:500]
                        )
                        yield relay_error_body(
                            f"Upstream API error: {resp.status_code} - {error_text}", "upstream_error"
                        )
                        return
                    async for chunk in resp.aiter_raw():
                        yield chunk
        except httpx.HTTPError as exc:
            logger.error("Streaming relay error: %s", format_httpx_error(exc, url))
            yield relay_error_body(f"Proxy request failed: {format_httpx_error(exc, url)}", "proxy_error")

    async def buffered(self, content: bytes, headers: list[tuple[str, str]]) -> Response:
        """Return the upstream answer verbatim, or 502 when it cannot be reached."""
        url = self.settings.chat_url
        try:
            async with build_client(self.timeout, self.transport) as client:
                resp = await client.post(url, content=content, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Non-streaming relay error: %s", format_httpx_error(exc, url))
            return JSONResponse(
                {"error": {"message": format_httpx_error(exc, url), "type": "proxy_error"}},
                status_code=RELAY_ERROR_STATUS,
            )
        response = Response(content=resp.content, status_code=resp.status_code)
        for key, value in filter_response_headers(resp.headers):
            response.headers.append(key, value)
        return response
