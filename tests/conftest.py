"""Fixtures for testing the MPD gateway."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from aiohttp.test_utils import TestClient, TestServer

from mpd_gateway.config import GatewayConfig, parse_config
from mpd_gateway.gateway import Gateway


async def idle_forever(batches: list[list[str]]) -> AsyncIterator[list[str]]:
    """Yield the given idle batches, then block like a quiet daemon."""
    for batch in batches:
        yield batch
    await asyncio.Event().wait()


def make_mpd_client(**overrides: Any) -> Mock:
    """Return a mock python-mpd2 asyncio client."""
    client = Mock()
    client.mpd_version = "0.23.5"
    client.connect = AsyncMock()
    client.disconnect = Mock()
    client.password = AsyncMock()
    client.ping = AsyncMock()
    client.listallinfo = AsyncMock(return_value=[])
    client.currentsong = AsyncMock(return_value={})
    client.status = AsyncMock(return_value={"state": "stop"})
    client.playlistinfo = AsyncMock(return_value=[])
    client.add = AsyncMock()
    client.play = AsyncMock()
    client.idle = Mock(side_effect=lambda *a, **k: idle_forever([]))
    for name, value in overrides.items():
        setattr(client, name, value)
    return client


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """Return a frontend directory with a couple of files."""
    web_dir = tmp_path / "web"
    (web_dir / "js").mkdir(parents=True)
    (web_dir / "index.html").write_text("<html><body>Turbo frontend</body></html>")
    (web_dir / "js" / "app.js").write_text("console.log('app');")
    (tmp_path / "secret.txt").write_text("outside the web root")
    return web_dir


@pytest.fixture
def raw_config(static_dir: Path) -> dict[str, Any]:
    """Return configuration values as they appear in the YAML file."""
    return {
        "mpd_host": "127.0.0.1",
        "mpd_control_port": 6600,
        "mpd_http_port": 8000,
        "server_port": 9000,
        "static_directory": str(static_dir),
        "control_timeout": 0.5,
    }


@pytest.fixture
def config(raw_config: dict[str, Any]) -> GatewayConfig:
    return parse_config(raw_config)


@pytest.fixture
def control_mock() -> Mock:
    """Return a mock ControlClient."""
    control = Mock()
    control.startup = AsyncMock()
    control.close = AsyncMock()
    control.list_tracks = AsyncMock(return_value=[])
    control.current_track = AsyncMock(return_value={})
    control.upcoming = AsyncMock(return_value=[])
    control.enqueue = AsyncMock()
    return control


@pytest.fixture
def gateway(config: GatewayConfig, control_mock: Mock) -> Gateway:
    """Return a gateway without a change watcher."""
    return Gateway(config, control_mock)


@pytest.fixture
async def http_client(gateway: Gateway) -> AsyncGenerator[TestClient, None]:
    """Return an aiohttp TestClient for the gateway."""
    gateway.freeze_routes()
    client = TestClient(TestServer(gateway.app))
    await client.start_server()
    yield client
    await client.close()
