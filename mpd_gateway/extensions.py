"""Routes layered on top of the core gateway through its extension point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from aiohttp import web

from .constants import ROUTE_EVENTS, ROUTE_HEALTH
from .encoder import encode_json, json_response
from .gateway import Gateway, Handler
from .models import ChangeEvent, HealthStatus
from .watcher import ChangeWatcher

logger = logging.getLogger(__name__)


class EventHub:
    """Pushes change-watcher events to connected WebSocket clients."""

    def __init__(self) -> None:
        """Initialize the hub with no clients."""
        self._clients: set[web.WebSocketResponse] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._release: Callable[[], None] | None = None

    @property
    def clients(self) -> int:
        return len(self._clients)

    def attach(self, watcher: ChangeWatcher) -> None:
        self._release = watcher.subscribe(self.publish)

    def detach(self) -> None:
        if self._release is not None:
            self._release()
            self._release = None

    async def handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        """WebSocket that receives a message for every daemon state change."""
        ws = web.WebSocketResponse(heartbeat=30)
        await ws.prepare(request)
        self._clients.add(ws)
        logger.info("Event client connected (%d total)", len(self._clients))
        try:
            async for _msg in ws:
                pass
        finally:
            self._clients.discard(ws)
            logger.debug("Event client disconnected")
        return ws

    def publish(self, event: ChangeEvent) -> None:
        """Send ``event`` to every open client without blocking the watcher."""
        if not self._clients:
            return
        msg = encode_json(event)
        for ws in list(self._clients):
            if ws.closed:
                continue
            task = asyncio.create_task(self._send(ws, msg))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def close(self, _app: web.Application | None = None) -> None:
        for ws in list(self._clients):
            with contextlib.suppress(ConnectionResetError):
                await ws.close()
        self._clients.clear()

    @staticmethod
    async def _send(ws: web.WebSocketResponse, msg: str) -> None:
        try:
            await ws.send_str(msg)
        except ConnectionResetError:
            logger.debug("Dropping event for a closed client")


def make_health_handler(gateway: Gateway) -> Handler:
    """Build the /health handler reporting the watcher link."""

    async def handle_health(_request: web.Request) -> web.Response:
        watcher = gateway.watcher
        connected = watcher is not None and watcher.connected
        return json_response(
            HealthStatus(
                status="ok" if connected else "degraded",
                watcher="connected" if connected else "disconnected",
                version=watcher.state.version if watcher is not None else 0,
            )
        )

    return handle_health


def register_extensions(gateway: Gateway) -> EventHub:
    """Add /events and /health to ``gateway`` before it starts serving."""
    hub = EventHub()
    if gateway.watcher is not None:
        hub.attach(gateway.watcher)
    gateway.add_route(ROUTE_EVENTS, hub.handle_ws)
    gateway.add_route(ROUTE_HEALTH, make_health_handler(gateway))
    gateway.app.on_shutdown.append(hub.close)
    return hub
