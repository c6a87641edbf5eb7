"""Read-only track catalog loaded from the preprocessed playlist JSON.

The catalog is the fixed playlist the session controller indexes into. Entries
are immutable; resolver parameters (`source`, `default_bitrate`) travel with
each track so the controller never needs to know about upstream backends.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, overload

from jitplay.runtime_config import normalize_bitrate, normalize_source

logger = logging.getLogger(__name__)

PLACEHOLDER_COVER = "icons/icon-192x192.png"


class CatalogError(Exception):
    """Raised when the catalog file cannot be read or parsed."""


@dataclass(frozen=True)
class Track:
    """Immutable catalog entry identifying a playable song."""

    id: str
    title: str
    artist: str
    source: str
    default_bitrate: int
    cover_ref: str = PLACEHOLDER_COVER


class Catalog(Sequence[Track]):
    """Ordered, read-only list of tracks with modular index helpers."""

    def __init__(self, tracks: Sequence[Track]) -> None:
        self._tracks = tuple(tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    @overload
    def __getitem__(self, index: int) -> Track: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Track]: ...

    def __getitem__(self, index: int | slice) -> Track | Sequence[Track]:
        return self._tracks[index]

    def __iter__(self) -> Iterator[Track]:
        return iter(self._tracks)

    def wrap(self, index: int) -> int:
        """Map any integer onto a valid index; raises on an empty catalog."""
        if not self._tracks:
            raise IndexError("catalog is empty")
        return index % len(self._tracks)

    def with_source(self, source: str) -> Catalog:
        """Return a copy resolving every track through `source`."""
        normalized = normalize_source(source)
        return Catalog([replace(track, source=normalized) for track in self._tracks])


def track_from_record(record: dict[str, Any]) -> Track:
    """Build a `Track` from one catalog record.

    Accepts both the page-rendered keys (`trackId`, `cover`, `br`) and the
    Python-side names (`id`, `cover_ref`, `bitrate`).
    """
    track_id = record.get("trackId", record.get("id", ""))
    cover = record.get("cover") or record.get("cover_ref") or PLACEHOLDER_COVER
    bitrate = record.get("br", record.get("bitrate"))
    return Track(
        id=str(track_id or "").strip(),
        title=str(record.get("title") or "Unknown title"),
        artist=str(record.get("artist") or "Unknown artist"),
        source=normalize_source(record.get("source")),
        default_bitrate=normalize_bitrate(bitrate),
        cover_ref=str(cover),
    )


def parse_catalog(payload: object) -> Catalog:
    """Build a catalog from decoded JSON (`{"songs": [...]}` or a bare list)."""
    if isinstance(payload, dict):
        records = payload.get("songs")
    else:
        records = payload
    if not isinstance(records, list):
        raise CatalogError("Catalog JSON must be a list or contain a 'songs' list.")

    tracks: list[Track] = []
    seen_ids: set[str] = set()
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning("Skipping non-object catalog entry at %d", position)
            continue
        track = track_from_record(record)
        if track.id:
            if track.id in seen_ids:
                logger.warning(
                    "Skipping duplicate catalog entry %s (%s)", track.id, track.title
                )
                continue
            seen_ids.add(track.id)
        else:
            logger.warning("Catalog entry without track id: %s", track.title)
        tracks.append(track)
    return Catalog(tracks)


def load_catalog(path: Path) -> Catalog:
    """Read and parse the catalog file at `path`."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"Cannot read catalog {path}: {exc}") from exc
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Catalog {path} is not valid JSON: {exc}") from exc
    catalog = parse_catalog(payload)
    logger.info("Loaded %d tracks from %s", len(catalog), path)
    return catalog
