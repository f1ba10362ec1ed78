"""Pydantic models for gateway JSON responses."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .constants import MSG_ADDED_SONG


class AddedNote(BaseModel):
    """Confirmation returned after a song was queued."""

    note: str

    @classmethod
    def for_song(cls, song: str) -> AddedNote:
        return cls(note=MSG_ADDED_SONG.format(song=song))


class PlayerState(BaseModel):
    """Daemon state cached by the change watcher."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: dict[str, Any] = Field(default_factory=dict)
    current_song: dict[str, Any] = Field(default_factory=dict, alias="currentSong")
    version: int = 0


class ChangeEvent(BaseModel):
    """Message pushed to WebSocket subscribers when the daemon state changes."""

    type: Literal["changed"] = "changed"
    subsystems: list[str]
    version: int


class HealthStatus(BaseModel):
    """Health check body."""

    status: Literal["ok", "degraded"]
    watcher: Literal["connected", "disconnected"]
    version: int
