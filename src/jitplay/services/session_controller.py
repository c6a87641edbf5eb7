"""Playback session controller between UI intents, URL resolution and output.

`SessionController` is the single authority over which catalog track is active,
which resolved URL backs it, and the transport state. Track URLs are resolved
just-in-time and treated as short-lived capabilities:

- every resolution is tagged with a monotonically increasing token, and only
  the latest token may mutate the session; superseded results are dropped;
- transient resolver failures get exactly one automatic retry after a jittered
  delay;
- an output access failure (expired URL) triggers one re-resolution per
  track-load, after which it is surfaced as an error.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from collections.abc import Awaitable
from contextlib import suppress
from dataclasses import replace
from pathlib import Path
from typing import Callable

from jitplay.events import SessionStateChanged, TrackChanged
from jitplay.runtime_config import RETRY_DELAY_RANGE_S
from jitplay.services.catalog import Catalog, Track
from jitplay.services.download import download_track
from jitplay.services.media_session import (
    MediaAction,
    MediaActionHandler,
    MediaSessionBridge,
    MediaSessionSink,
)
from jitplay.services.resolver import (
    ResolutionError,
    ResolutionPipeline,
    TransientFailure,
)
from jitplay.services.session import (
    SEEKABLE_STATES,
    ErrorKind,
    PlaybackSession,
)
from jitplay.services.transport import (
    MediaChanged,
    PlaybackEnded,
    PositionUpdated,
    Transport,
    TransportEvent,
    TransportFailed,
)

logger = logging.getLogger(__name__)

POSITION_EMIT_THRESHOLD_S = 0.1

_ERROR_TEXT: dict[ErrorKind, tuple[str, str, str]] = {
    "invalid": (
        "Cannot resolve a playable URL for this track.",
        "Track entry is missing its id or has malformed resolver parameters.",
        "Fix the catalog entry, then reload the catalog.",
    ),
    "not_found": (
        "No playable URL is available for this track.",
        "The lookup service has no asset for this track at this source/bitrate.",
        "Pick another track or switch the resolver source.",
    ),
    "transient": (
        "Resolving the track URL failed.",
        "Lookup service is unreachable, slow, or rate limiting requests.",
        "Wait a moment, then retry.",
    ),
    "playback_expired": (
        "Playback stopped because the stream URL was rejected.",
        "The resolved URL expired or access to it was revoked.",
        "Retry to resolve a fresh URL.",
    ),
    "transport": (
        "Audio output failed.",
        "The playback backend could not open or decode the stream.",
        "Check the audio backend setup, then retry.",
    ),
}


def _format_user_error(
    *, what_failed: str, likely_cause: str, next_step: str, detail: str | None = None
) -> str:
    message = f"{what_failed}\nLikely cause: {likely_cause}\nNext step: {next_step}"
    if detail:
        message = f"{message}\nDetails: {detail}"
    return message


def describe_error(kind: ErrorKind, detail: str | None = None) -> str:
    what_failed, likely_cause, next_step = _ERROR_TEXT[kind]
    return _format_user_error(
        what_failed=what_failed,
        likely_cause=likely_cause,
        next_step=next_step,
        detail=detail,
    )


class SessionController:
    """Owns the playback session and emits events to subscribers."""

    def __init__(
        self,
        *,
        catalog: Catalog,
        pipeline: ResolutionPipeline,
        transport: Transport,
        emit_event: Callable[[object], Awaitable[None]],
        media_session: MediaSessionSink | None = None,
        bitrate: int | None = None,
        retry_delay_range_s: tuple[float, float] = RETRY_DELAY_RANGE_S,
        retry_random: random.Random | None = None,
        initial_volume: float = 1.0,
    ) -> None:
        low, high = retry_delay_range_s
        if low < 0 or high < low:
            raise ValueError("retry_delay_range_s must satisfy 0 <= low <= high")
        self._catalog = catalog
        self._pipeline = pipeline
        self._transport = transport
        self._emit_event = emit_event
        self._media = MediaSessionBridge(media_session)
        self._bitrate = bitrate
        self._retry_delay_range_s = (low, high)
        self._retry_random = retry_random or random.Random()
        self._session = PlaybackSession(volume=_clamp(initial_volume, 0.0, 1.0))
        self._lock = asyncio.Lock()
        self._token = 0
        self._autoplay = False
        self._expired_retry_used = False
        self._resolutions: set[asyncio.Task[None]] = set()
        self._transport.set_event_handler(self._handle_transport_event)

    @property
    def session(self) -> PlaybackSession:
        return self._session

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def current_track(self) -> Track | None:
        if not self._catalog:
            return None
        return self._catalog[self._session.track_index]

    async def start(self) -> None:
        """Start the transport and register media-session actions."""
        await self._transport.start()
        await self._transport.set_volume(self._session.volume)
        self._media.register_actions(self.media_actions())

    async def shutdown(self) -> None:
        """Drop outstanding resolutions and perform best-effort transport shutdown."""
        pending = list(self._resolutions)
        for task in pending:
            task.cancel()
        for task in pending:
            with suppress(asyncio.CancelledError):
                await task
        self._resolutions.clear()
        with suppress(Exception):
            await self._transport.shutdown()

    async def settle(self) -> None:
        """Wait until no resolution task is outstanding."""
        while self._resolutions:
            await asyncio.gather(*list(self._resolutions), return_exceptions=True)

    # Intents

    async def select(self, index: int, *, autoplay: bool = False) -> None:
        """Make catalog entry `index` active and start resolving its URL."""
        if not self._catalog:
            logger.info("Ignoring select(%d): catalog is empty.", index)
            return
        if not 0 <= index < len(self._catalog):
            raise IndexError(
                f"track index {index} out of range for {len(self._catalog)} tracks"
            )
        await self._begin_load(index, autoplay=autoplay, new_load=True)

    async def next(self) -> None:
        await self._step(1)

    async def previous(self) -> None:
        await self._step(-1)

    async def play_pause(self) -> None:
        async with self._lock:
            state = self._session.transport_state
            index = self._session.track_index
            if state == "resolving":
                # Play as soon as the pending resolution lands.
                self._autoplay = True
                return
        if state in {"ready", "paused"}:
            await self._start_playback()
        elif state == "playing":
            await self._pause_playback()
        elif state == "idle":
            if not self._catalog:
                logger.info("Ignoring play/pause: catalog is empty.")
                return
            await self.select(index, autoplay=True)
        elif state == "errored":
            await self.retry(autoplay=True)

    async def retry(self, *, autoplay: bool = False) -> None:
        """Re-issue resolution for the current track after a failure."""
        async with self._lock:
            if self._session.transport_state != "errored":
                return
            index = self._session.track_index
        logger.info("Retrying resolution for track index %d", index)
        await self._begin_load(index, autoplay=autoplay, new_load=False)

    async def seek(self, position_s: float) -> None:
        async with self._lock:
            if self._session.transport_state not in SEEKABLE_STATES:
                logger.debug(
                    "Seek ignored in state %s", self._session.transport_state
                )
                return
            position = _clamp(position_s, 0.0, self._session.duration)
            self._session = replace(self._session, position=position)
            duration = self._session.duration
        await self._transport.seek(position)
        self._media.publish_position(duration=duration, position=position)
        await self._emit_state()

    async def set_volume(self, volume: float) -> None:
        async with self._lock:
            self._session = replace(self._session, volume=_clamp(volume, 0.0, 1.0))
            volume = self._session.volume
        await self._transport.set_volume(volume)
        await self._emit_state()

    async def download_current(self, dest_dir: Path) -> Path:
        """Save the current track, resolving a one-off URL when none is held.

        The one-off resolution does not touch session state.
        """
        track = self.current_track
        if track is None:
            raise ValueError("No track selected.")
        async with self._lock:
            url = self._session.resolved_url if self._session.has_source else None
        if url is None:
            url = await self._pipeline.resolve(
                track.id, track.source, self._bitrate_for(track)
            )
        return await download_track(url, track, dest_dir)

    def media_actions(self) -> dict[MediaAction, MediaActionHandler]:
        """Media-session callbacks routed to the public intents."""
        return {
            "play": self._media_play,
            "pause": self._media_pause,
            "next": self.next,
            "previous": self.previous,
            "seekto": self._media_seek,
        }

    # Transitions

    async def _step(self, delta: int) -> None:
        if not self._catalog:
            logger.info("Ignoring track step (%+d): catalog is empty.", delta)
            return
        async with self._lock:
            index = self._catalog.wrap(self._session.track_index + delta)
            autoplay = self._autoplay or self._session.transport_state == "playing"
        await self._begin_load(index, autoplay=autoplay, new_load=True)

    async def _begin_load(self, index: int, *, autoplay: bool, new_load: bool) -> None:
        """Enter `resolving` for `index` with a fresh token."""
        async with self._lock:
            previous = self._session
            self._token += 1
            token = self._token
            self._autoplay = autoplay
            if new_load:
                self._expired_retry_used = False
            self._session = replace(
                previous,
                track_index=index,
                transport_state="resolving",
                resolved_url=None,
                position=0.0,
                duration=0.0,
                token=token,
                error_kind=None,
                error=None,
            )
            track = self._catalog[index]
            track_changed = (
                previous.transport_state == "idle" or previous.track_index != index
            )
        logger.debug(
            "Session %s -> resolving (index=%d token=%d)",
            previous.transport_state,
            index,
            token,
        )
        await self._release_transport()
        try:
            if track_changed:
                self._media.publish_track(track)
                await self._emit_event(TrackChanged(track))
            await self._emit_state()
        finally:
            # Resolution starts even when a subscriber raises.
            task = asyncio.create_task(self._run_resolution(token, track))
            self._resolutions.add(task)
            task.add_done_callback(self._resolutions.discard)

    async def _run_resolution(self, token: int, track: Track) -> None:
        bitrate = self._bitrate_for(track)
        attempt = 1
        while True:
            try:
                url = await self._pipeline.resolve(track.id, track.source, bitrate)
            except TransientFailure as exc:
                if attempt == 1 and self._is_live(token):
                    delay = self._retry_delay()
                    logger.info(
                        "Transient failure resolving %s (%s); retrying in %.2fs",
                        track.id,
                        exc.message,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    if not self._is_live(token):
                        logger.debug("Retry for token %d superseded", token)
                        return
                    attempt += 1
                    continue
                await self._fail_resolution(token, exc)
                return
            except ResolutionError as exc:
                await self._fail_resolution(token, exc)
                return
            await self._complete_resolution(token, url)
            return

    async def _complete_resolution(self, token: int, url: str) -> None:
        async with self._lock:
            if not self._is_live(token):
                logger.debug("Discarding stale resolution for token %d", token)
                return
            self._session = replace(
                self._session, transport_state="ready", resolved_url=url
            )
        try:
            await self._transport.load(url, token)
        except Exception as exc:
            logger.exception("Transport failed to bind resolved URL: %s", exc)
            await self._enter_error(token, "transport", str(exc))
            return
        if token != self._token:
            return
        logger.info("Resolved track index %d", self._session.track_index)
        await self._emit_state()
        if self._autoplay:
            await self._start_playback()

    async def _fail_resolution(self, token: int, exc: ResolutionError) -> None:
        if not self._is_live(token):
            logger.debug("Discarding stale resolution failure for token %d", token)
            return
        logger.warning("Resolution failed (%s): %s", exc.kind, exc.message)
        await self._enter_error(token, exc.kind, exc.message)

    async def _enter_error(self, token: int, kind: ErrorKind, detail: str) -> None:
        async with self._lock:
            if token != self._token:
                return
            self._session = replace(
                self._session,
                transport_state="errored",
                resolved_url=None,
                error_kind=kind,
                error=describe_error(kind, detail),
            )
        await self._emit_state()

    async def _start_playback(self) -> None:
        async with self._lock:
            if self._session.transport_state not in {"ready", "paused"}:
                return
            token = self._token
            self._autoplay = True
            self._session = replace(self._session, transport_state="playing")
        try:
            await self._transport.play()
        except Exception as exc:
            logger.exception("Transport failed to start playback: %s", exc)
            await self._enter_error(token, "transport", str(exc))
            return
        await self._emit_state()

    async def _pause_playback(self) -> None:
        async with self._lock:
            if self._session.transport_state != "playing":
                return
            self._autoplay = False
            self._session = replace(self._session, transport_state="paused")
        await self._transport.pause()
        await self._emit_state()

    async def _release_transport(self) -> None:
        try:
            await self._transport.release()
        except Exception as exc:
            logger.warning("Transport release failed: %s", exc)

    # Transport events

    async def _handle_transport_event(self, event: TransportEvent) -> None:
        if event.load_id != self._token:
            logger.debug(
                "Ignoring %s for superseded load %d",
                type(event).__name__,
                event.load_id,
            )
            return
        if isinstance(event, (PositionUpdated, MediaChanged)):
            await self._handle_progress(event)
        elif isinstance(event, PlaybackEnded):
            await self._handle_ended()
        elif isinstance(event, TransportFailed):
            await self._handle_failure(event)

    async def _handle_progress(self, event: PositionUpdated | MediaChanged) -> None:
        emit = False
        async with self._lock:
            if not self._session.has_source:
                return
            duration = max(0.0, event.duration_s)
            if duration != self._session.duration:
                self._session = replace(self._session, duration=duration)
                emit = True
            if isinstance(event, PositionUpdated):
                position = _clamp(event.position_s, 0.0, duration or event.position_s)
                if abs(position - self._session.position) >= POSITION_EMIT_THRESHOLD_S:
                    emit = True
                self._session = replace(self._session, position=position)
            position = self._session.position
        if emit:
            self._media.publish_position(duration=duration, position=position)
            await self._emit_state()

    async def _handle_ended(self) -> None:
        async with self._lock:
            if self._session.transport_state != "playing":
                return
            index = self._catalog.wrap(self._session.track_index + 1)
        logger.info("Track ended; advancing to index %d", index)
        await self._begin_load(index, autoplay=True, new_load=True)

    async def _handle_failure(self, event: TransportFailed) -> None:
        async with self._lock:
            if not self._session.has_source:
                return
            token = self._token
            retry = event.access_denied and not self._expired_retry_used
            autoplay = self._autoplay or self._session.transport_state == "playing"
            if retry:
                self._expired_retry_used = True
                # Synthesized failure + retry pair; not emitted on its own.
                self._session = replace(self._session, transport_state="errored")
            index = self._session.track_index
        if retry:
            logger.warning(
                "Stream URL rejected for index %d (%s); re-resolving once",
                index,
                event.message,
            )
            await self.retry(autoplay=autoplay)
            return
        kind: ErrorKind = "playback_expired" if event.access_denied else "transport"
        logger.warning("Playback failed (%s): %s", kind, event.message)
        await self._release_transport()
        await self._enter_error(token, kind, event.message)

    # Media session

    async def _media_play(self) -> None:
        if self._session.transport_state != "playing":
            await self.play_pause()

    async def _media_pause(self) -> None:
        if self._session.transport_state == "playing":
            await self.play_pause()

    async def _media_seek(self, seek_time: float | None = None) -> None:
        if seek_time is None:
            return
        await self.seek(seek_time)

    # Helpers

    def _is_live(self, token: int) -> bool:
        return (
            token == self._token and self._session.transport_state == "resolving"
        )

    def _bitrate_for(self, track: Track) -> int:
        return self._bitrate or track.default_bitrate

    def _retry_delay(self) -> float:
        low, high = self._retry_delay_range_s
        if high <= low:
            return low
        delay = low + self._retry_random.random() * (high - low)
        # Float rounding can land on `high` for draws just under 1.
        return min(delay, math.nextafter(high, low))

    async def _emit_state(self) -> None:
        await self._emit_event(SessionStateChanged(self._session, self.current_track))


def _clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(value, max_value))
