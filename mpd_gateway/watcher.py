"""Background watcher for daemon state changes."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

import mpd
from mpd.asyncio import MPDClient

from .constants import (
    DEFAULT_WATCHER_RECONNECT_DELAY,
    MAX_WATCHER_RECONNECT_DELAY,
    WATCHED_SUBSYSTEMS,
)
from .models import ChangeEvent, PlayerState

logger = logging.getLogger(__name__)

ChangeListener = Callable[[ChangeEvent], None]


class ChangeWatcher:
    """Keeps a cached copy of the player state fresh using MPD's idle command.

    Runs on its own connection, separate from the one serving requests, and
    reconnects with exponential backoff whenever that connection drops.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        password: str | None = None,
        reconnect_delay: float = DEFAULT_WATCHER_RECONNECT_DELAY,
        client_factory: Callable[[], MPDClient] = MPDClient,
    ) -> None:
        """Initialize the watcher."""
        self.host = host
        self.port = port
        self._password = password
        self._reconnect_delay = reconnect_delay
        self._client_factory = client_factory
        self._listeners: list[ChangeListener] = []
        self._state = PlayerState()
        self._connected = False
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, callback: ChangeListener) -> Callable[[], None]:
        """Register ``callback`` for change events; returns a release function."""
        self._listeners.append(callback)

        def release() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return release

    def start(self) -> None:
        """Run the watcher in the background. Calling it twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self.run(), name="mpd-change-watcher")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Change watcher ended with an error")

    async def run(self) -> None:
        """Watch the daemon until cancelled."""
        delay = self._reconnect_delay
        while True:
            client = self._client_factory()
            try:
                await client.connect(self.host, self.port)
                if self._password:
                    await client.password(self._password)
                await self._refresh(client)
                self._connected = True
                delay = self._reconnect_delay
                logger.info("Watching MPD at %s:%s for changes", self.host, self.port)

                async for changed in client.idle(WATCHED_SUBSYSTEMS):
                    await self._refresh(client)
                    self._notify(list(changed))
                logger.warning("MPD idle stream at %s:%s ended", self.host, self.port)
            except (mpd.MPDError, OSError) as err:
                logger.warning(
                    "Change watcher lost MPD at %s:%s: %s (retrying in %.1fs)",
                    self.host,
                    self.port,
                    err,
                    delay,
                )
            except Exception:
                logger.exception(
                    "Change watcher failed on MPD at %s:%s (retrying in %.1fs)",
                    self.host,
                    self.port,
                    delay,
                )
            finally:
                self._connected = False
                with contextlib.suppress(mpd.ConnectionError, OSError):
                    client.disconnect()

            await asyncio.sleep(delay)
            delay = min(delay * 2, MAX_WATCHER_RECONNECT_DELAY)

    async def _refresh(self, client: MPDClient) -> None:
        status = await client.status()
        current = await client.currentsong()
        self._state = PlayerState(
            status=status,
            current_song=current,
            version=self._state.version + 1,
        )

    def _notify(self, subsystems: list[str]) -> None:
        event = ChangeEvent(subsystems=subsystems, version=self._state.version)
        logger.debug("MPD changed: %s", ", ".join(subsystems))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Change listener %r failed", listener)
