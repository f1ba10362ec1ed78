"""Streaming reverse proxy for the daemon's HTTP audio output."""

from __future__ import annotations

import asyncio
import logging

import aiohttp
from aiohttp import hdrs, web
from multidict import CIMultiDict
from yarl import URL

logger = logging.getLogger(__name__)

# Headers that apply to a single connection and must not be forwarded
HOP_BY_HOP_HEADERS = frozenset(
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
    }
)


def _filter_headers(headers: CIMultiDict[str] | dict[str, str]) -> CIMultiDict[str]:
    filtered: CIMultiDict[str] = CIMultiDict()
    for name, value in headers.items():
        if name.lower() not in HOP_BY_HOP_HEADERS:
            filtered.add(name, value)
    return filtered


class StreamProxy:
    """Relays requests to a single upstream URL without buffering the body."""

    def __init__(self, target: URL, *, connect_timeout: float = 10.0) -> None:
        """Initialize the proxy for ``target``; the session opens in start()."""
        self.target = target
        self._timeout = aiohttp.ClientTimeout(total=None, sock_connect=connect_timeout)
        self._session: aiohttp.ClientSession | None = None

    async def start(self, _app: web.Application | None = None) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                auto_decompress=False,
            )

    async def close(self, _app: web.Application | None = None) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def upstream_url(self, request: web.Request) -> URL:
        """Upstream URL for ``request``: target path, client query string."""
        return self.target.with_query(request.rel_url.query)

    def _request_headers(self, request: web.Request) -> CIMultiDict[str]:
        headers = _filter_headers(request.headers)
        headers.popall(hdrs.HOST, None)
        peer = request.remote
        if peer:
            previous = request.headers.get("X-Forwarded-For")
            headers["X-Forwarded-For"] = f"{previous}, {peer}" if previous else peer
        headers["X-Forwarded-Host"] = request.host
        headers["X-Forwarded-Proto"] = request.scheme
        return headers

    async def handle(self, request: web.Request) -> web.StreamResponse:
        """Forward ``request`` upstream and stream the answer back."""
        if self._session is None:
            await self.start()
        url = self.upstream_url(request)
        body = request.content if request.body_exists else None

        try:
            upstream = await self._session.request(
                request.method,
                url,
                headers=self._request_headers(request),
                data=body,
                allow_redirects=False,
            )
        except (aiohttp.ClientError, TimeoutError) as err:
            logger.error("Stream proxy could not reach %s: %s", url, err)
            return web.Response(status=502, text="Bad Gateway\n")

        logger.debug("Proxying %s %s -> %s (%d)", request.method, request.path, url, upstream.status)
        response = web.StreamResponse(
            status=upstream.status,
            reason=upstream.reason,
            headers=_filter_headers(upstream.headers),
        )
        total_bytes = 0
        try:
            await response.prepare(request)
            async for chunk in upstream.content.iter_any():
                await response.write(chunk)
                total_bytes += len(chunk)
            await response.write_eof()
        except (ConnectionResetError, aiohttp.ClientConnectionError) as err:
            # Either side hung up; long-lived streams usually end this way.
            logger.debug("Stream to %s closed after %d bytes: %s", request.remote, total_bytes, err)
            upstream.close()
        except asyncio.CancelledError:
            upstream.close()
            raise
        else:
            upstream.release()
        return response
