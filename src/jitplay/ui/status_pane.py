"""Status pane showing transport state, time and volume."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from jitplay.services.catalog import Track
from jitplay.services.session import PlaybackSession
from jitplay.utils.time_format import format_time_pair_s

_STATE_LABELS = {
    "idle": ("Idle", "dim"),
    "resolving": ("Resolving", "yellow"),
    "ready": ("Ready", "cyan"),
    "playing": ("Playing", "green"),
    "paused": ("Paused", "blue"),
    "errored": ("Error", "bold red"),
}


def render_status(session: PlaybackSession, track: Track | None) -> Text:
    label, style = _STATE_LABELS[session.transport_state]
    text = Text()
    text.append(f"[{label}]", style=style)
    if track is not None:
        text.append(f" {track.title} - {track.artist}")
    position, duration = format_time_pair_s(session.position, session.duration)
    text.append(f"  {position} / {duration}")
    text.append(f"  VOL {round(session.volume * 100):d}%")
    if session.transport_state == "errored" and session.error:
        text.append("\n")
        text.append(session.error, style="red")
    return text


class StatusPane(Static):
    """Passive subscriber view of the playback session."""

    def update_session(self, session: PlaybackSession, track: Track | None) -> None:
        self.update(render_status(session, track))
