"""Platform media-session integration (lock screen, media keys).

The sink is optional and best-effort. It mirrors the active track metadata and
position, and its action callbacks route to the same public controller intents
as the UI; they are not a separate control path.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal, Protocol

from jitplay.services.catalog import Track

logger = logging.getLogger(__name__)

MediaAction = Literal["play", "pause", "next", "previous", "seekto"]
MediaActionHandler = Callable[..., Awaitable[None]]
ARTWORK_SIZES = ("192x192", "512x512")
UNKNOWN_ALBUM = "Unknown album"


@dataclass(frozen=True)
class Artwork:
    src: str
    sizes: str
    type: str = "image/png"


@dataclass(frozen=True)
class MediaMetadata:
    """Metadata mirrored from the active `Track`."""

    title: str
    artist: str
    album: str
    artwork: tuple[Artwork, ...]


class MediaSessionSink(Protocol):
    """Receiver for media-session updates."""

    def set_metadata(self, metadata: MediaMetadata) -> None: ...

    def set_position_state(
        self, *, duration: float, position: float, playback_rate: float
    ) -> None: ...

    def set_action_handlers(
        self, handlers: dict[MediaAction, MediaActionHandler]
    ) -> None: ...


def metadata_for_track(track: Track) -> MediaMetadata:
    return MediaMetadata(
        title=track.title,
        artist=track.artist,
        album=UNKNOWN_ALBUM,
        artwork=tuple(
            Artwork(src=track.cover_ref, sizes=size) for size in ARTWORK_SIZES
        ),
    )


class MediaSessionBridge:
    """Forward controller updates to an optional sink, logging sink errors."""

    def __init__(self, sink: MediaSessionSink | None) -> None:
        self._sink = sink

    def publish_track(self, track: Track) -> None:
        if self._sink is None:
            return
        try:
            self._sink.set_metadata(metadata_for_track(track))
        except Exception as exc:
            logger.warning("Media session metadata update failed: %s", exc)

    def publish_position(self, *, duration: float, position: float) -> None:
        if self._sink is None:
            return
        try:
            self._sink.set_position_state(
                duration=max(0.0, duration),
                position=max(0.0, min(position, duration)) if duration > 0 else 0.0,
                playback_rate=1.0,
            )
        except Exception as exc:
            logger.warning("Media session position update failed: %s", exc)

    def register_actions(
        self, handlers: dict[MediaAction, MediaActionHandler]
    ) -> None:
        if self._sink is None:
            return
        try:
            self._sink.set_action_handlers(handlers)
        except Exception as exc:
            logger.warning("Media session action registration failed: %s", exc)


class LoggingMediaSession:
    """Sink that records updates to the log; used by the TUI."""

    def __init__(self) -> None:
        self.metadata: MediaMetadata | None = None
        self.handlers: dict[MediaAction, MediaActionHandler] = {}

    def set_metadata(self, metadata: MediaMetadata) -> None:
        self.metadata = metadata
        logger.info(
            "Media session now showing %s by %s", metadata.title, metadata.artist
        )

    def set_position_state(
        self, *, duration: float, position: float, playback_rate: float
    ) -> None:
        logger.debug(
            "Media session position %.1f/%.1f (rate %.2f)",
            position,
            duration,
            playback_rate,
        )

    def set_action_handlers(
        self, handlers: dict[MediaAction, MediaActionHandler]
    ) -> None:
        self.handlers = dict(handlers)
