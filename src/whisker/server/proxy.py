"""Proxy frontend — forwards ordinary traffic to the backend application.

Everything that is not one of whisker's own endpoints goes to the proxy
target unmodified, and the response comes back unmodified except that HTML
documents get the client script injected so every page viewed through
whisker listens for updates.

The forwarding is independent of the dispatch pipeline: a slow or broken
backend never delays a reload.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from whisker.server.client import inject_client_script
from whisker.server.error_page import render_unreachable_page

if TYPE_CHECKING:
    import aiohttp
    from chirp.http.request import Request
    from chirp.http.response import Response
    from chirp.middleware.protocol import Next

    from whisker.observability.console import Reporter

INTERNAL_PREFIX = "/__whisker/"

# RFC 7230 section 6.1 plus headers the proxy recomputes.
_HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
    }
)


def upstream_url(target: str, path: str, query: str = "") -> str:
    """Join the proxy target with the request path and query string."""
    if not path.startswith("/"):
        path = "/" + path
    url = target.rstrip("/") + path
    return f"{url}?{query}" if query else url


def forward_headers(headers: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Drop hop-by-hop headers from a request or response header list."""
    return [(name, value) for name, value in headers if name.lower() not in _HOP_BY_HOP]


def rewrite_location(value: str, target: str) -> str:
    """Make redirects to the backend stay on the proxy origin."""
    base = target.rstrip("/")
    if value == base:
        return "/"
    if value.startswith(base + "/") or value.startswith(base + "?"):
        rest = value[len(base) :]
        return rest if rest.startswith("/") else "/" + rest
    return value


def rewrite_body(body: bytes, content_type: str) -> bytes:
    """Inject the client script into HTML bodies; other bodies pass through."""
    if "text/html" not in content_type.lower():
        return body
    charset = _charset(content_type)
    text = body.decode(charset, errors="replace")
    return inject_client_script(text).encode(charset, errors="replace")


def _charset(content_type: str) -> str:
    for part in content_type.split(";")[1:]:
        key, _, value = part.strip().partition("=")
        if key.lower() == "charset" and value:
            return value.strip('"')
    return "utf-8"


class ProxyMiddleware:
    """Chirp middleware that forwards non-whisker requests to *target*.

    Uses one shared ``aiohttp.ClientSession``, created on first use.
    Redirects are not followed so the browser sees them.  When the backend
    cannot be reached the browser gets a 502 page that still reloads on the
    next change.

    Args:
        target: Backend base URL (``http://localhost:8080``).
        reporter: Console reporter for upstream failures.
        timeout: Total seconds allowed for one upstream exchange.

    """

    def __init__(
        self,
        target: str,
        *,
        reporter: Reporter | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._target = target.rstrip("/")
        self._reporter = reporter
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def target(self) -> str:
        return self._target

    async def __call__(self, request: Request, next: Next) -> Any:
        if request.path.startswith(INTERNAL_PREFIX):
            return await next(request)
        return await self.forward(request)

    async def forward(self, request: Request) -> Response:
        """Send *request* upstream and build the Chirp response."""
        import aiohttp
        from chirp.http.response import Response

        query = request.query_string
        if isinstance(query, bytes):
            query = query.decode("latin-1")
        url = upstream_url(self._target, request.path, query)

        try:
            session = self._get_session()
            body = await request.body()
            async with session.request(
                request.method,
                url,
                headers=forward_headers(request.headers.items()),
                data=body or None,
                allow_redirects=False,
            ) as upstream:
                payload = await upstream.read()
                status = upstream.status
                content_type = upstream.headers.get("Content-Type", "")
                headers = [
                    (name, rewrite_location(value, self._target) if name.lower() == "location" else value)
                    for name, value in forward_headers(upstream.headers.items())
                    if name.lower() not in ("content-type", "content-encoding")
                ]
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            if self._reporter is not None:
                self._reporter.warn(f"proxy: {request.method} {request.path} -> {exc}")
            return Response(
                body=render_unreachable_page(
                    exc, target=self._target, method=request.method, path=request.path
                ),
                status=502,
                content_type="text/html; charset=utf-8",
            )

        return Response(
            body=rewrite_body(payload, content_type),
            status=status,
            content_type=content_type or "application/octet-stream",
            headers=tuple(headers),
        )

    def _get_session(self) -> aiohttp.ClientSession:
        import aiohttp

        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )
        return self._session

    async def close(self) -> None:
        """Close the upstream session (shutdown)."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
