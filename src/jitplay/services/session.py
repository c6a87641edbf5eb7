"""Playback session snapshot exposed to subscribers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

TransportState = Literal["idle", "resolving", "ready", "playing", "paused", "errored"]
ErrorKind = Literal[
    "invalid", "not_found", "transient", "playback_expired", "transport"
]

URL_BEARING_STATES: frozenset[TransportState] = frozenset(
    {"ready", "playing", "paused"}
)
SEEKABLE_STATES = URL_BEARING_STATES


@dataclass(frozen=True)
class PlaybackSession:
    """Immutable view of the controller state; replaced on every transition.

    `resolved_url` is only meaningful while `transport_state` is one of
    `URL_BEARING_STATES`; the controller clears it on every track change.
    """

    track_index: int = 0
    transport_state: TransportState = "idle"
    resolved_url: str | None = None
    position: float = 0.0
    duration: float = 0.0
    volume: float = 1.0
    token: int = 0
    error_kind: ErrorKind | None = None
    error: str | None = None

    @property
    def has_source(self) -> bool:
        return self.transport_state in URL_BEARING_STATES
