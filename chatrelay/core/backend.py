"""Upstream header construction and httpx helpers shared by both backends."""

import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

import httpx

if TYPE_CHECKING:
    from ..settings import SiteSettings

logger = logging.getLogger("chatrelay")

# Headers that describe one hop of the exchange and never travel through.
HOP_BY_HOP_HEADERS = {
    "connection",
    "content-encoding",
    "content-length",
    "transfer-encoding",
}

SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}


def build_site_headers(site: "SiteSettings", stream: bool) -> dict[str, str]:
    """Browser-like headers the aipkit site expects on every call."""
    headers = {
        "User-Agent": site.user_agent,
        "Referer": f"{site.base_url.rstrip('/')}/",
        "Origin": site.base_url.rstrip("/"),
        "Cookie": site.cookie,
    }
    if stream:
        headers["Accept"] = "text/event-stream"
    return headers


def strip_hop_by_hop(headers: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Drop hop-by-hop headers, keeping order and duplicates of the rest."""
    return [(key, value) for key, value in headers if key.lower() not in HOP_BY_HOP_HEADERS]


def filter_response_headers(headers: httpx.Headers) -> list[tuple[str, str]]:
    """Filter upstream response headers before handing them to the caller.

    Repeated headers such as ``set-cookie`` stay separate entries.
    """
    return strip_hop_by_hop(headers.multi_items())


def safe_headers_for_log(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        key: ("***" if key.lower() in SENSITIVE_HEADERS else value)
        for key, value in headers.items()
    }


def format_httpx_error(exc: Any, url: Optional[str] = None) -> str:
    """Produce a short, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    request = None
    try:
        request = exc.request
    except (AttributeError, RuntimeError):
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url.copy_with(query=None)}")
    elif url:
        parts.append(f"url={url}")

    return "; ".join(parts)


def build_client(
    timeout: Optional[float],
    transport: Optional[httpx.AsyncBaseTransport] = None,
    follow_redirects: bool = True,
) -> httpx.AsyncClient:
    """Create an ``AsyncClient`` for one upstream call.

    ``timeout=None`` disables every httpx timeout: the upstream may take as
    long as it needs. ``transport`` replaces the network, which is how the
    in-process fakes in ``chatrelay.testing`` are wired in.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        transport=transport,
        follow_redirects=follow_redirects,
    )
