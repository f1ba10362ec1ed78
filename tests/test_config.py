"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml
from pydantic import ValidationError

from mpd_gateway.config import load_config, parse_config
from mpd_gateway.constants import DEFAULT_CONTROL_TIMEOUT, DEFAULT_SERVER_HOST
from mpd_gateway.exceptions import ConfigError


def _write(tmp_path: Path, data: Any) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_load_config(tmp_path: Path, static_dir: Path) -> None:
    """Values from YAML are typed and defaults are filled in."""
    path = _write(
        tmp_path,
        {
            "mpd_host": "music.local",
            "mpd_control_port": "6600",
            "mpd_http_port": 8000,
            "server_port": "9000",
            "static_directory": str(static_dir),
            "unused_key": "ignored",
        },
    )
    config = load_config(path)
    assert config.mpd_host == "music.local"
    assert config.mpd_control_port == 6600
    assert config.server_port == 9000
    assert config.server_host == DEFAULT_SERVER_HOST
    assert config.control_timeout == DEFAULT_CONTROL_TIMEOUT
    assert config.mpd_password is None
    assert str(config.stream_url) == "http://music.local:8000/"


def test_config_is_immutable(raw_config: dict[str, Any]) -> None:
    config = parse_config(raw_config)
    with pytest.raises(ValidationError):
        config.mpd_host = "elsewhere"  # type: ignore[misc]


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("mpd_host: [unclosed\n")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


def test_not_a_mapping(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="mapping"):
        load_config(_write(tmp_path, ["mpd_host", "localhost"]))


@pytest.mark.parametrize(
    "key", ["mpd_host", "mpd_control_port", "mpd_http_port", "server_port", "static_directory"]
)
def test_missing_required_key(raw_config: dict[str, Any], key: str) -> None:
    del raw_config[key]
    with pytest.raises(ConfigError, match=key):
        parse_config(raw_config)


@pytest.mark.parametrize("key", ["mpd_host", "server_port", "static_directory"])
def test_empty_required_key(raw_config: dict[str, Any], key: str) -> None:
    raw_config[key] = "  "
    with pytest.raises(ConfigError, match=key):
        parse_config(raw_config)


@pytest.mark.parametrize("port", [0, 70000, "http"])
def test_bad_port(raw_config: dict[str, Any], port: Any) -> None:
    raw_config["mpd_http_port"] = port
    with pytest.raises(ConfigError, match="mpd_http_port"):
        parse_config(raw_config)


def test_static_directory_must_exist(raw_config: dict[str, Any], tmp_path: Path) -> None:
    raw_config["static_directory"] = str(tmp_path / "missing")
    with pytest.raises(ConfigError, match="static_directory"):
        parse_config(raw_config)


def test_blank_password_is_none(raw_config: dict[str, Any]) -> None:
    raw_config["mpd_password"] = ""
    assert parse_config(raw_config).mpd_password is None
