"""Fake transport for deterministic testing and offline runs."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from typing import Literal

from .transport import (
    MediaChanged,
    PlaybackEnded,
    PositionUpdated,
    TransportEvent,
    TransportEventHandler,
    TransportFailed,
    is_access_failure,
)

FakeStatus = Literal["empty", "loaded", "playing", "paused", "ended"]


@dataclass
class _OutputState:
    status: FakeStatus = "empty"
    url: str | None = None
    load_id: int = 0
    position_s: float = 0.0
    duration_s: float = 0.0
    volume: float = 1.0


class FakeTransport:
    """In-memory transport that simulates playback progress."""

    def __init__(
        self,
        *,
        tick_interval_s: float = 0.25,
        default_duration_s: float = 180.0,
    ) -> None:
        self._tick_interval_s = tick_interval_s
        self._default_duration_s = default_duration_s
        self._state = _OutputState()
        self._handler: TransportEventHandler | None = None
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self.loaded_urls: list[str] = []
        self.release_count = 0

    @property
    def status(self) -> FakeStatus:
        return self._state.status

    @property
    def url(self) -> str | None:
        return self._state.url

    @property
    def volume(self) -> float:
        return self._state.volume

    @property
    def position_s(self) -> float:
        return self._state.position_s

    def set_event_handler(self, handler: TransportEventHandler) -> None:
        self._handler = handler

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._ticker_loop())

    async def shutdown(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def load(self, url: str, load_id: int) -> None:
        await self.release()
        async with self._lock:
            self._state.status = "loaded"
            self._state.url = url
            self._state.load_id = load_id
            self._state.position_s = 0.0
            self._state.duration_s = self._default_duration_s
            duration = self._state.duration_s
        self.loaded_urls.append(url)
        await self._emit(MediaChanged(load_id, duration))

    async def play(self) -> None:
        async with self._lock:
            if self._state.status not in {"loaded", "paused"}:
                return
            self._state.status = "playing"

    async def pause(self) -> None:
        async with self._lock:
            if self._state.status == "playing":
                self._state.status = "paused"

    async def release(self) -> None:
        async with self._lock:
            if self._state.url is None:
                return
            self._state.status = "empty"
            self._state.url = None
            self._state.position_s = 0.0
            self._state.duration_s = 0.0
            self.release_count += 1

    async def seek(self, position_s: float) -> None:
        async with self._lock:
            if self._state.url is None:
                return
            pos = _clamp(position_s, 0.0, self._state.duration_s)
            self._state.position_s = pos
            load_id = self._state.load_id
            duration = self._state.duration_s
        await self._emit(PositionUpdated(load_id, pos, duration))

    async def set_volume(self, volume: float) -> None:
        async with self._lock:
            self._state.volume = _clamp(volume, 0.0, 1.0)

    async def fail(self, message: str, *, access_denied: bool | None = None) -> None:
        """Report an output failure for the bound source, as a real engine would.

        Without an explicit `access_denied`, the message is classified the way
        engine error strings are.
        """
        if access_denied is None:
            access_denied = is_access_failure(message)
        async with self._lock:
            load_id = self._state.load_id
            self._state.status = "empty"
        await self._emit(TransportFailed(load_id, message, access_denied))

    async def finish(self) -> None:
        """Jump to end of media and report natural completion."""
        async with self._lock:
            if self._state.url is None:
                return
            self._state.position_s = self._state.duration_s
            self._state.status = "ended"
            load_id = self._state.load_id
        await self._emit(PlaybackEnded(load_id))

    async def _ticker_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._tick_interval_s)
                await self._tick()
        except asyncio.CancelledError:
            pass

    async def _tick(self) -> None:
        ended = False
        async with self._lock:
            if self._state.status != "playing":
                return
            duration = self._state.duration_s
            if duration <= 0:
                return
            next_pos = self._state.position_s + self._tick_interval_s
            if next_pos >= duration:
                next_pos = duration
                self._state.status = "ended"
                ended = True
            self._state.position_s = next_pos
            load_id = self._state.load_id
        await self._emit(PositionUpdated(load_id, next_pos, duration))
        if ended:
            await self._emit(PlaybackEnded(load_id))

    async def _emit(self, event: TransportEvent) -> None:
        if self._handler is None:
            return
        await self._handler(event)


def _clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(value, max_value))
