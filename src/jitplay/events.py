"""Cross-module event/message models for service and UI communication.

Dataclass events are used for controller signaling, while `textual.message`
types are used for widget-level interaction routing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from textual.message import Message

if TYPE_CHECKING:
    from jitplay.services.catalog import Track
    from jitplay.services.session import PlaybackSession


@dataclass(frozen=True)
class SessionStateChanged:
    """Controller event emitted whenever the playback session changes.

    Carries the notification payload the rendering surface consumes: the active
    track plus transport state, position and duration from `session`.
    """

    session: PlaybackSession
    track: Track | None


@dataclass(frozen=True)
class TrackChanged:
    """Controller event emitted when the active catalog track changes."""

    track: Track


class TrackRowActivated(Message):
    """UI message for activation (play) of a track list row."""

    def __init__(self, index: int) -> None:
        super().__init__()
        self.index = index
