"""Configuration loading for the MPD gateway.

The configuration is a flat YAML mapping read once at startup::

    mpd_host: localhost
    mpd_control_port: 6600
    mpd_http_port: 8000
    server_port: 9000
    static_directory: /srv/frontend/web

Optional keys fall back to the defaults in :mod:`.constants`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from yarl import URL

from .constants import (
    DEFAULT_CONTROL_TIMEOUT,
    DEFAULT_SERVER_HOST,
    DEFAULT_STREAM_SCHEME,
    DEFAULT_WATCHER_RECONNECT_DELAY,
    REQUIRED_KEYS,
)
from .exceptions import ConfigError

logger = logging.getLogger(__name__)


class GatewayConfig(BaseModel):
    """Immutable gateway configuration."""

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    mpd_host: str = Field(min_length=1)
    mpd_control_port: int = Field(ge=1, le=65535)
    mpd_http_port: int = Field(ge=1, le=65535)
    mpd_password: str | None = None
    server_host: str = Field(DEFAULT_SERVER_HOST, min_length=1)
    server_port: int = Field(ge=1, le=65535)
    static_directory: Path
    stream_scheme: str = Field(DEFAULT_STREAM_SCHEME, pattern=r"^https?$")
    control_timeout: float = Field(DEFAULT_CONTROL_TIMEOUT, gt=0)
    watcher_reconnect_delay: float = Field(DEFAULT_WATCHER_RECONNECT_DELAY, gt=0)

    @field_validator("static_directory")
    @classmethod
    def _check_static_directory(cls, value: Path) -> Path:
        if not str(value).strip():
            raise ValueError("must not be empty")
        if not value.is_dir():
            raise ValueError(f"{value} is not a directory")
        return value

    @field_validator("mpd_password", mode="before")
    @classmethod
    def _blank_password_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def stream_url(self) -> URL:
        """Upstream URL of the daemon's HTTP audio output."""
        return URL.build(
            scheme=self.stream_scheme,
            host=self.mpd_host,
            port=self.mpd_http_port,
            path="/",
        )


def parse_config(data: Any, source: str = "<config>") -> GatewayConfig:
    """Validate a raw mapping into a :class:`GatewayConfig`."""
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a mapping of configuration keys")

    missing = [
        key for key in REQUIRED_KEYS if data.get(key) is None or str(data[key]).strip() == ""
    ]
    if missing:
        raise ConfigError(f"{source}: missing required keys: {', '.join(missing)}")

    try:
        return GatewayConfig.model_validate(data)
    except ValidationError as err:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in err.errors()
        )
        raise ConfigError(f"{source}: {problems}") from err


def load_config(path: str | Path) -> GatewayConfig:
    """Load and validate the YAML configuration file at ``path``."""
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as err:
        raise ConfigError(f"Config file not found: {path}") from err
    except OSError as err:
        raise ConfigError(f"Could not read config file {path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Invalid YAML in {path}: {err}") from err

    config = parse_config(data, str(path))
    logger.info("Config loaded from %s", path)
    return config
