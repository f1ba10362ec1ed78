"""Exceptions raised by the MPD gateway."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""


class ConfigError(GatewayError):
    """Configuration could not be loaded or is incomplete."""


class ControlError(GatewayError):
    """A command to the daemon's control port failed."""


class ControlStartupError(ControlError):
    """The initial connection or handshake with the daemon failed."""


class EncodingError(GatewayError):
    """A response payload could not be represented as JSON."""
