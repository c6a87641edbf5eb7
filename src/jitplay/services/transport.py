"""Transport adapter contracts and event payloads.

`SessionController` depends on this protocol to stay output-agnostic. Concrete
implementations (fake/VLC) translate engine-specific behavior into these shared
commands and events. Every event carries the `load_id` of the source it was
produced for so late events from a released source can be ignored.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

ACCESS_FAILURE_MARKERS = (
    "403",
    "401",
    "forbidden",
    "unauthorized",
    "access denied",
    "expired",
    "not allowed",
)


@dataclass(frozen=True)
class TransportEvent:
    """Marker base type for transport-originated events."""

    load_id: int


@dataclass(frozen=True)
class PositionUpdated(TransportEvent):
    """Periodic playback position update in seconds."""

    position_s: float
    duration_s: float


@dataclass(frozen=True)
class MediaChanged(TransportEvent):
    """Loaded media metadata update (currently duration only)."""

    duration_s: float


@dataclass(frozen=True)
class PlaybackEnded(TransportEvent):
    """Natural end of media for the bound source."""


@dataclass(frozen=True)
class TransportFailed(TransportEvent):
    """Output-reported failure.

    `access_denied` marks failures caused by the URL itself (expired or
    forbidden capability), which the controller answers with one re-resolve.
    """

    message: str
    access_denied: bool = False


TransportEventHandler = Callable[[TransportEvent], Awaitable[None]]


class Transport(Protocol):
    """Audio output protocol consumed by `SessionController`."""

    def set_event_handler(self, handler: TransportEventHandler) -> None: ...

    async def start(self) -> None: ...

    async def shutdown(self) -> None: ...

    async def load(self, url: str, load_id: int) -> None:
        """Bind `url` as the output source, releasing any previous source."""
        ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def release(self) -> None:
        """Stop output and drop the bound source."""
        ...

    async def seek(self, position_s: float) -> None: ...

    async def set_volume(self, volume: float) -> None: ...


def is_access_failure(message: str, code: int | None = None) -> bool:
    """Classify an output error as URL access failure.

    Media element code 4 (source not usable) and HTTP auth/forbidden markers
    both indicate an expired or revoked URL rather than a decoder problem.
    """
    if code == 4:
        return True
    lowered = message.lower()
    return any(marker in lowered for marker in ACCESS_FAILURE_MARKERS)
