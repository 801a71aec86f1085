"""Tests for whisker.server.proxy — forwarding to the backend."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from whisker.server.error_page import render_unreachable_page
from whisker.server.proxy import (
    ProxyMiddleware,
    forward_headers,
    rewrite_body,
    rewrite_location,
    upstream_url,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(
    path: str = "/",
    *,
    method: str = "GET",
    query: str | bytes = "",
    headers: dict[str, str] | None = None,
    body: bytes = b"",
) -> SimpleNamespace:
    """Minimal stand-in for a Chirp request."""
    return SimpleNamespace(
        method=method,
        path=path,
        query_string=query,
        headers=headers or {},
        body=AsyncMock(return_value=body),
    )


def _text(body: str | bytes) -> str:
    return body if isinstance(body, str) else body.decode()


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestUpstreamUrl:
    """Target + path + query."""

    def test_path_and_query(self) -> None:
        assert upstream_url("http://localhost:8080", "/a/b", "x=1") == "http://localhost:8080/a/b?x=1"

    def test_trailing_slash_on_target(self) -> None:
        assert upstream_url("http://localhost:8080/", "/a") == "http://localhost:8080/a"

    def test_missing_leading_slash(self) -> None:
        assert upstream_url("http://app", "page") == "http://app/page"


class TestForwardHeaders:
    """Hop-by-hop headers are dropped."""

    def test_filters_hop_by_hop(self) -> None:
        headers = [
            ("Host", "localhost:3000"),
            ("Connection", "keep-alive"),
            ("Accept", "text/html"),
            ("Transfer-Encoding", "chunked"),
            ("Cookie", "session=1"),
            ("Content-Length", "12"),
        ]
        assert forward_headers(headers) == [("Accept", "text/html"), ("Cookie", "session=1")]


class TestRewriteLocation:
    """Redirects stay on the proxy origin."""

    def test_absolute_redirect_to_backend(self) -> None:
        assert rewrite_location("http://localhost:8080/login", "http://localhost:8080") == "/login"

    def test_backend_root(self) -> None:
        assert rewrite_location("http://localhost:8080", "http://localhost:8080") == "/"

    def test_query_only(self) -> None:
        assert rewrite_location("http://localhost:8080?next=1", "http://localhost:8080") == "/?next=1"

    def test_relative_redirect_unchanged(self) -> None:
        assert rewrite_location("/dashboard", "http://localhost:8080") == "/dashboard"

    def test_other_host_unchanged(self) -> None:
        assert rewrite_location("https://auth.test/x", "http://localhost:8080") == "https://auth.test/x"

    def test_similar_prefix_not_rewritten(self) -> None:
        assert (
            rewrite_location("http://localhost:80801/x", "http://localhost:8080")
            == "http://localhost:80801/x"
        )


class TestRewriteBody:
    """Only HTML gets the client script."""

    def test_html_injected(self) -> None:
        body = rewrite_body(b"<html><body>hi</body></html>", "text/html; charset=utf-8")
        assert b"data-whisker" in body

    def test_other_types_untouched(self) -> None:
        payload = b'{"a": "</body>"}'
        assert rewrite_body(payload, "application/json") == payload

    def test_declared_charset_respected(self) -> None:
        body = rewrite_body("<body>café</body>".encode("latin-1"), "text/html; charset=latin-1")
        assert "café".encode("latin-1") in body


class TestUnreachablePage:
    """502 page content."""

    def test_escapes_and_reloads(self) -> None:
        page = render_unreachable_page(
            ConnectionRefusedError("<refused>"),
            target="http://localhost:8080",
            method="GET",
            path="/a?b=<c>",
        )
        assert "ConnectionRefusedError" in page
        assert "&lt;refused&gt;" in page
        assert "<c>" not in page
        assert "http://localhost:8080" in page
        assert "data-whisker" in page


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class TestProxyMiddleware:
    """Routing between whisker's endpoints and the backend."""

    def test_target_normalized(self) -> None:
        assert ProxyMiddleware("http://localhost:8080/").target == "http://localhost:8080"

    @pytest.mark.asyncio
    async def test_internal_paths_not_forwarded(self) -> None:
        proxy = ProxyMiddleware("http://localhost:8080")
        sentinel = object()
        next_ = AsyncMock(return_value=sentinel)

        assert await proxy(_request("/__whisker/events"), next_) is sentinel
        next_.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_forwards_and_injects(self) -> None:
        pytest.importorskip("chirp")
        pytest.importorskip("aiohttp")
        from aiohttp import web
        from aiohttp.test_utils import TestServer

        seen: dict[str, str] = {}

        async def page(request: web.Request) -> web.Response:
            seen["query"] = request.query_string
            seen["accept"] = request.headers.get("Accept", "")
            return web.Response(text="<html><body>ok</body></html>", content_type="text/html")

        async def moved(request: web.Request) -> web.Response:
            raise web.HTTPFound(str(request.url.with_path("/page")))

        backend = web.Application()
        backend.router.add_get("/page", page)
        backend.router.add_get("/old", moved)
        server = TestServer(backend)
        await server.start_server()
        target = str(server.make_url("")).rstrip("/")
        proxy = ProxyMiddleware(target)
        try:
            response = await proxy(
                _request("/page", query="x=1", headers={"Accept": "text/html"}), AsyncMock()
            )
            assert response.status == 200
            assert "data-whisker" in _text(response.body)
            assert seen == {"query": "x=1", "accept": "text/html"}

            redirect = await proxy(_request("/old"), AsyncMock())
            assert redirect.status == 302
        finally:
            await proxy.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_unreachable_backend_returns_502(self) -> None:
        pytest.importorskip("chirp")
        pytest.importorskip("aiohttp")
        proxy = ProxyMiddleware("http://127.0.0.1:9", timeout=2.0)
        try:
            response = await proxy(_request("/page"), AsyncMock())
        finally:
            await proxy.close()

        assert response.status == 502
        assert "data-whisker" in _text(response.body)
