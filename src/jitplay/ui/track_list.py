"""Track list widget rendering the catalog with the active row marked."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Label, ListItem, ListView

from jitplay.events import TrackRowActivated
from jitplay.services.catalog import Catalog, Track
from jitplay.services.session import TransportState

_STATE_MARKERS: dict[TransportState, str] = {
    "idle": " ",
    "resolving": "…",
    "ready": "•",
    "playing": "▶",
    "paused": "‖",
    "errored": "!",
}


def row_text(track: Track, marker: str = " ") -> Text:
    text = Text(f"{marker} ")
    text.append(track.title, style="bold")
    text.append(f"  {track.artist}", style="dim")
    return text


class TrackList(ListView):
    """Catalog rows; activating a row posts `TrackRowActivated`."""

    def __init__(self, catalog: Catalog | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._catalog = catalog or Catalog([])
        self._labels: list[Label] = []
        self._active_index: int | None = None

    async def set_catalog(self, catalog: Catalog) -> None:
        self._catalog = catalog
        self._active_index = None
        await self.clear()
        self._labels = [Label(row_text(track)) for track in catalog]
        if self._labels:
            await self.extend(ListItem(label) for label in self._labels)
            self.index = 0

    def mark_active(self, index: int | None, state: TransportState) -> None:
        if self._active_index is not None and self._active_index != index:
            self._update_row(self._active_index, " ")
        self._active_index = index
        if index is not None:
            self._update_row(index, _STATE_MARKERS[state])

    def _update_row(self, index: int, marker: str) -> None:
        if 0 <= index < len(self._labels):
            self._labels[index].update(row_text(self._catalog[index], marker))

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        event.stop()
        if self.index is not None:
            self.post_message(TrackRowActivated(self.index))
