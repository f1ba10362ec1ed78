"""
MPD HTTP gateway.

Exposes a music player daemon's control surface as JSON over HTTP,
reverse-proxies its audio stream and serves the web frontend.
"""

from __future__ import annotations

from pathlib import Path

from .config import GatewayConfig, load_config
from .control import ControlClient, MPDControlClient
from .exceptions import (
    ConfigError,
    ControlError,
    ControlStartupError,
    EncodingError,
    GatewayError,
)
from .extensions import EventHub, register_extensions
from .gateway import Gateway
from .watcher import ChangeWatcher

__version__ = "1.0.0"

__all__ = [
    "ChangeWatcher",
    "ConfigError",
    "ControlClient",
    "ControlError",
    "ControlStartupError",
    "EncodingError",
    "EventHub",
    "Gateway",
    "GatewayConfig",
    "GatewayError",
    "MPDControlClient",
    "load_config",
    "register_extensions",
    "setup",
]


async def setup(config_path: str | Path) -> Gateway:
    """Create a gateway from ``config_path`` with the standard extensions."""
    gateway = await Gateway.create(config_path)
    register_extensions(gateway)
    return gateway
