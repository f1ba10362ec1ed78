"""HTTP gateway in front of the music player daemon.

Every request goes to exactly one of three backends: the audio stream
proxy, a JSON control endpoint backed by the :class:`ControlClient`, or the
static frontend files.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

from aiohttp import hdrs, web

from .config import GatewayConfig, load_config
from .constants import (
    INDEX_FILE,
    MSG_CURRENT_FAILED,
    MSG_LIST_FAILED,
    MSG_NO_SONG,
    MSG_UNKNOWN_SONG,
    MSG_UPCOMING_FAILED,
    PARAM_SONG,
    ROUTE_ADD,
    ROUTE_CURRENT,
    ROUTE_SONGS,
    ROUTE_STREAM,
    ROUTE_UPCOMING,
)
from .control import ControlClient, MPDControlClient
from .encoder import error_response, json_response
from .exceptions import ControlError, GatewayError
from .models import AddedNote
from .stream_proxy import StreamProxy
from .watcher import ChangeWatcher

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def default_control_factory(config: GatewayConfig) -> ControlClient:
    return MPDControlClient(
        config.mpd_host, config.mpd_control_port, password=config.mpd_password
    )


def default_watcher_factory(config: GatewayConfig) -> ChangeWatcher:
    return ChangeWatcher(
        config.mpd_host,
        config.mpd_control_port,
        password=config.mpd_password,
        reconnect_delay=config.watcher_reconnect_delay,
    )


class Gateway:
    """Routes HTTP requests to the stream proxy, control handlers or static files."""

    def __init__(
        self,
        config: GatewayConfig,
        control: ControlClient,
        watcher: ChangeWatcher | None = None,
    ) -> None:
        """Initialize the gateway and register the core routes."""
        self.config = config
        self.control = control
        self.watcher = watcher
        self.proxy = StreamProxy(config.stream_url)
        self.app = web.Application()
        self.app.on_startup.append(self.proxy.start)
        self.app.on_cleanup.append(self.proxy.close)
        self._static_root = Path(config.static_directory).resolve()
        self._frozen = False
        self._runner: web.AppRunner | None = None
        self._setup_routes()

    @classmethod
    async def create(
        cls,
        config_path: str | Path,
        *,
        control_factory: Callable[[GatewayConfig], ControlClient] = default_control_factory,
        watcher_factory: Callable[[GatewayConfig], ChangeWatcher | None] = default_watcher_factory,
    ) -> Gateway:
        """Load ``config_path``, connect to the daemon and return a ready gateway.

        Raises ConfigError when the configuration is unusable (the caller may
        try another file) and ControlStartupError when the daemon cannot be
        reached; serving without a control connection is not supported.
        """
        config = load_config(config_path)
        control = control_factory(config)
        await control.startup()
        try:
            return cls(config, control, watcher_factory(config))
        except BaseException:
            await control.close()
            raise

    def _setup_routes(self) -> None:
        """Register the core routes; first match wins."""
        router = self.app.router
        router.add_route(hdrs.METH_ANY, ROUTE_STREAM, self.proxy.handle)
        router.add_get(ROUTE_SONGS, self._handle_songs)
        router.add_get(ROUTE_CURRENT, self._handle_current)
        router.add_get(ROUTE_UPCOMING, self._handle_upcoming)
        router.add_route(hdrs.METH_ANY, ROUTE_ADD, self._handle_add)

    def add_route(
        self, path: str, handler: Handler, method: str = hdrs.METH_GET
    ) -> web.AbstractRoute:
        """Register an extra route. Only allowed before serving starts."""
        if self._frozen:
            raise GatewayError(f"Cannot add route {path}: routes are frozen once serving starts")
        return self.app.router.add_route(method, path, handler)

    def freeze_routes(self) -> None:
        """Install the static fallback and reject further routes."""
        if self._frozen:
            return
        self.app.router.add_route(hdrs.METH_ANY, "/{tail:.*}", self._handle_static)
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # --- Lifecycle ---

    async def start(self) -> None:
        """Start the change watcher and begin accepting connections."""
        self.freeze_routes()
        if self.watcher is not None:
            self.watcher.start()
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(
            self._runner, self.config.server_host, self.config.server_port, reuse_address=True
        )
        await site.start()
        logger.info(
            "Starting server on %s:%s", self.config.server_host, self.config.server_port
        )

    async def stop(self) -> None:
        if self.watcher is not None:
            await self.watcher.stop()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        await self.control.close()
        logger.info("Server stopped")

    async def listen_and_serve(self) -> None:
        """Serve until cancelled. Listener errors propagate to the caller."""
        try:
            await self.start()
            await asyncio.Event().wait()
        finally:
            await self.stop()

    # --- Control handlers ---

    async def _control(self, action: str, call: Awaitable[T]) -> T:
        timeout = self.config.control_timeout
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except TimeoutError as err:
            raise ControlError(f"{action} timed out after {timeout}s") from err

    async def _handle_songs(self, request: web.Request) -> web.Response:
        """List every track known to the daemon."""
        try:
            tracks = await self._control("list tracks", self.control.list_tracks())
        except ControlError as err:
            return error_response(MSG_LIST_FAILED, err, status=502)
        return json_response(tracks)

    async def _handle_current(self, request: web.Request) -> web.Response:
        try:
            track = await self._control("current track", self.control.current_track())
        except ControlError as err:
            return error_response(MSG_CURRENT_FAILED, err, status=502)
        return json_response(track)

    async def _handle_upcoming(self, request: web.Request) -> web.Response:
        try:
            tracks = await self._control("upcoming", self.control.upcoming())
        except ControlError as err:
            return error_response(MSG_UPCOMING_FAILED, err, status=502)
        return json_response(tracks)

    async def _handle_add(self, request: web.Request) -> web.Response:
        """Queue the track named by the ``song`` form (or query) parameter."""
        song = await self._song_param(request)
        if not song:
            return error_response(MSG_NO_SONG, status=400)

        try:
            await self._control(f"enqueue {song!r}", self.control.enqueue(song))
        except ControlError as err:
            return error_response(MSG_UNKNOWN_SONG, err, status=404)
        return json_response(AddedNote.for_song(song))

    @staticmethod
    async def _song_param(request: web.Request) -> str | None:
        value: Any = None
        if request.body_exists:
            form = await request.post()
            value = form.get(PARAM_SONG)
        if not isinstance(value, str) or not value:
            value = request.query.get(PARAM_SONG)
        return value or None

    # --- Static files ---

    async def _handle_static(self, request: web.Request) -> web.FileResponse:
        """Serve a frontend file; directories resolve to their index.html."""
        root = self._static_root
        path = (root / request.match_info["tail"]).resolve()
        if not path.is_relative_to(root):
            raise web.HTTPNotFound()
        if path.is_dir():
            path = path / INDEX_FILE
        if not path.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(path)
