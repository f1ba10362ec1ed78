"""Control-port client for the music player daemon."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

import mpd
from mpd.asyncio import MPDClient

from .exceptions import ControlError, ControlStartupError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Track = dict[str, Any]


@runtime_checkable
class ControlClient(Protocol):
    """Capabilities the gateway needs from the daemon.

    Implementations own their connection and must be safe to call from
    concurrent request handlers. Failures are raised as :class:`ControlError`.
    """

    async def startup(self) -> None: ...

    async def list_tracks(self) -> list[Track]: ...

    async def current_track(self) -> Track: ...

    async def upcoming(self) -> list[Track]: ...

    async def enqueue(self, uri: str) -> None: ...

    async def close(self) -> None: ...


class MPDControlClient:
    """ControlClient backed by a single persistent python-mpd2 connection.

    Commands are serialized by a lock; a dropped connection is re-established
    and read-only commands are retried once.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        password: str | None = None,
        client_factory: Callable[[], MPDClient] = MPDClient,
    ) -> None:
        """Initialize the client; no connection is made until startup()."""
        self.host = host
        self.port = port
        self._password = password
        self._client_factory = client_factory
        self._client: MPDClient | None = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def startup(self) -> None:
        """Connect and verify the daemon answers."""
        async with self._lock:
            try:
                await self._connect()
                await self._client.ping()
            except (mpd.MPDError, OSError) as err:
                self._drop()
                raise ControlStartupError(
                    f"Could not connect to MPD at {self.host}:{self.port}: {err}"
                ) from err
        logger.info(
            "Connected to MPD %s at %s:%s",
            getattr(self._client, "mpd_version", "?"),
            self.host,
            self.port,
        )

    async def close(self) -> None:
        async with self._lock:
            self._drop()

    async def list_tracks(self) -> list[Track]:
        """Return every file in the database, in daemon order."""

        async def op(client: MPDClient) -> list[Track]:
            entries = await client.listallinfo()
            return [entry for entry in entries if "file" in entry]

        return await self._run("listallinfo", op)

    async def current_track(self) -> Track:
        async def op(client: MPDClient) -> Track:
            return await client.currentsong()

        return await self._run("currentsong", op)

    async def upcoming(self) -> list[Track]:
        """Return the queue entries after the current song."""

        async def op(client: MPDClient) -> list[Track]:
            status = await client.status()
            playlist = await client.playlistinfo()
            if "song" not in status:
                return playlist
            current = int(status["song"])
            return [entry for entry in playlist if int(entry.get("pos", -1)) > current]

        return await self._run("playlistinfo", op)

    async def enqueue(self, uri: str) -> None:
        """Append ``uri`` to the queue and start playback if it is not playing."""

        async def op(client: MPDClient) -> None:
            await client.add(uri)
            status = await client.status()
            if status.get("state") != "play":
                await client.play()

        # Not retried: the add may already have been applied when the link dropped.
        await self._run(f"add {uri!r}", op, retry=False)
        logger.debug("Queued %s", uri)

    async def _run(
        self, action: str, op: Callable[[MPDClient], Awaitable[T]], *, retry: bool = True
    ) -> T:
        attempts = 2 if retry else 1
        async with self._lock:
            for attempt in range(1, attempts + 1):
                try:
                    if self._client is None:
                        await self._connect()
                    return await op(self._client)
                except mpd.CommandError as err:
                    raise ControlError(f"MPD rejected {action}: {err}") from err
                except (mpd.ConnectionError, OSError) as err:
                    self._drop()
                    if attempt == attempts:
                        raise ControlError(f"MPD connection failed during {action}: {err}") from err
                    logger.warning("Lost connection to MPD (%s), reconnecting", err)
                except mpd.MPDError as err:
                    self._drop()
                    raise ControlError(f"MPD error during {action}: {err}") from err
                except asyncio.CancelledError:
                    # A command may be half-sent; start over on a fresh connection.
                    self._drop()
                    raise
        raise AssertionError("unreachable")  # pragma: no cover

    async def _connect(self) -> None:
        client = self._client_factory()
        await client.connect(self.host, self.port)
        self._client = client
        if self._password:
            await client.password(self._password)

    def _drop(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        with contextlib.suppress(mpd.ConnectionError, OSError):
            client.disconnect()
