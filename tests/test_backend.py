"""Tests for the core backend helpers."""

import httpx
import pytest

from chatrelay.core.backend import (
    build_client,
    build_site_headers,
    filter_response_headers,
    format_httpx_error,
    safe_headers_for_log,
    strip_hop_by_hop,
)
from chatrelay.settings import SiteSettings


class TestSiteHeaders:
    """Tests for browser-like site headers."""

    def test_handshake_headers(self):
        site = SiteSettings(base_url="https://chat.example/", cookie="a=1", user_agent="UA/1")
        assert build_site_headers(site, stream=False) == {
            "User-Agent": "UA/1",
            "Referer": "https://chat.example/",
            "Origin": "https://chat.example",
            "Cookie": "a=1",
        }

    def test_stream_headers_accept_event_stream(self):
        headers = build_site_headers(SiteSettings(), stream=True)
        assert headers["Accept"] == "text/event-stream"


class TestHeaderFiltering:
    """Tests for hop-by-hop filtering."""

    def test_strip_keeps_order_and_duplicates(self):
        headers = [
            ("Set-Cookie", "a=1"),
            ("Transfer-Encoding", "chunked"),
            ("Set-Cookie", "b=2"),
            ("Connection", "close"),
        ]
        assert strip_hop_by_hop(headers) == [("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")]

    def test_filter_response_headers(self):
        headers = httpx.Headers(
            [
                ("content-type", "application/json"),
                ("content-length", "12"),
                ("set-cookie", "a=1"),
                ("content-encoding", "gzip"),
                ("set-cookie", "b=2"),
            ]
        )
        assert filter_response_headers(headers) == [
            ("content-type", "application/json"),
            ("set-cookie", "a=1"),
            ("set-cookie", "b=2"),
        ]

    def test_sensitive_headers_are_masked(self):
        masked = safe_headers_for_log({"Authorization": "Bearer x", "Cookie": "s=1", "Accept": "*/*"})
        assert masked == {"Authorization": "***", "Cookie": "***", "Accept": "*/*"}


class TestFormatHttpxError:
    """Tests for user-facing httpx error descriptions."""

    def test_includes_request_without_query(self):
        request = httpx.Request("GET", "http://site.local/wp-admin/admin-ajax.php?_ajax_nonce=secret")
        text = format_httpx_error(httpx.ReadTimeout("timed out", request=request))
        assert text == "ReadTimeout; timed out; request=GET http://site.local/wp-admin/admin-ajax.php"

    def test_falls_back_to_url(self):
        text = format_httpx_error(httpx.ConnectError("refused"), "http://site.local")
        assert text == "ConnectError; refused; url=http://site.local"


class TestBuildClient:
    """Tests for upstream client construction."""

    @pytest.mark.asyncio
    async def test_uses_given_transport(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="fake"))
        async with build_client(None, transport) as client:
            resp = await client.get("http://site.local/x")
        assert resp.text == "fake"

    @pytest.mark.asyncio
    async def test_none_timeout_disables_all_timeouts(self):
        async with build_client(None) as client:
            assert client.timeout == httpx.Timeout(None)

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(302, headers={"location": "http://site.local/new"})
            return httpx.Response(200, text=request.url.path)

        async with build_client(5.0, httpx.MockTransport(handler)) as client:
            resp = await client.get("http://site.local/old")
        assert resp.text == "/new"
