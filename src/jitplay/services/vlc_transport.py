"""VLC transport using python-vlc to play resolved network URLs."""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, cast

from .transport import (
    MediaChanged,
    PlaybackEnded,
    PositionUpdated,
    TransportEvent,
    TransportEventHandler,
    TransportFailed,
)

logger = logging.getLogger(__name__)

STOP_TIMEOUT_S = 2.0
REMOTE_SCHEMES = ("http://", "https://")
_STREAM_ERROR = "VLC could not open or continue the media stream."


@dataclass
class _Command:
    name: str
    args: tuple[Any, ...]
    future: asyncio.Future[Any] | None


@dataclass
class _PlayerObserver:
    """Turns polled libVLC player state into transport events.

    Only changes are reported: a state edge, a new duration or a moved position.
    """

    remote: bool = False
    state: str = "idle"
    position_ms: int = -1
    duration_ms: int = -1

    def reset(self, *, remote: bool | None = None) -> None:
        self.state = "idle"
        self.position_ms = -1
        self.duration_ms = -1
        if remote is not None:
            self.remote = remote

    def observe(self, player: Any, load_id: int) -> list[TransportEvent]:
        events: list[TransportEvent] = []
        state = _map_state(player)
        if state != self.state:
            self.state = state
            if state == "ended":
                events.append(PlaybackEnded(load_id))
            elif state == "error":
                # libVLC hides HTTP status; a failing remote URL is treated
                # as expired or revoked.
                events.append(
                    TransportFailed(load_id, _STREAM_ERROR, access_denied=self.remote)
                )
        if state not in {"playing", "paused"}:
            return events
        position_ms = max(player.get_time(), 0)
        duration_ms = max(player.get_length(), 0)
        if duration_ms != self.duration_ms:
            self.duration_ms = duration_ms
            if duration_ms > 0:
                events.append(MediaChanged(load_id, duration_ms / 1000))
        if position_ms != self.position_ms:
            self.position_ms = position_ms
            events.append(
                PositionUpdated(load_id, position_ms / 1000, duration_ms / 1000)
            )
        return events


class VLCTransport:
    """Transport backed by a dedicated VLC thread.

    Every libVLC call happens on that thread; coroutines enqueue `_Command`s and
    await a future the thread settles through the event loop.
    """

    def __init__(self, *, poll_interval_ms: int = 200) -> None:
        self._poll_interval = poll_interval_ms / 1000
        self._handler: TransportEventHandler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: queue.Queue[_Command] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._load_id = 0
        self._observer = _PlayerObserver()

    def set_event_handler(self, handler: TransportEventHandler) -> None:
        self._handler = handler

    async def start(self) -> None:
        if self._thread is not None:
            return
        self._loop = asyncio.get_running_loop()
        ready: asyncio.Future[None] = self._loop.create_future()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._thread_main,
            args=(ready,),
            name="VLCTransportThread",
            daemon=True,
        )
        self._thread.start()
        await ready

    async def shutdown(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._queue.put(_Command("wake", (), None))
        self._thread.join(timeout=STOP_TIMEOUT_S)
        if self._thread.is_alive():
            raise RuntimeError(
                f"VLC transport thread did not stop within {STOP_TIMEOUT_S} seconds"
            )
        self._thread = None

    async def load(self, url: str, load_id: int) -> None:
        await self._submit("load", url, load_id)

    async def play(self) -> None:
        await self._submit("play")

    async def pause(self) -> None:
        await self._submit("pause")

    async def release(self) -> None:
        await self._submit("release")

    async def seek(self, position_s: float) -> None:
        await self._submit("seek", position_s)

    async def set_volume(self, volume: float) -> None:
        await self._submit("set_volume", volume)

    async def _submit(self, name: str, *args: Any) -> Any:
        if self._loop is None or self._thread is None or not self._thread.is_alive():
            raise RuntimeError("VLC transport not started.")
        future: asyncio.Future[Any] = self._loop.create_future()
        self._queue.put(_Command(name, args, future))
        return await future

    # VLC thread

    def _thread_main(self, ready: asyncio.Future[None]) -> None:
        try:
            import vlc

            instance = vlc.Instance("--no-video")
            player = instance.media_player_new()
        except Exception as exc:  # pragma: no cover - depends on VLC install
            logger.error("VLC startup failed: %s", exc)
            self._settle(
                ready,
                error=RuntimeError(
                    "VLC transport unavailable. Ensure VLC/libVLC is installed."
                ),
            )
            return
        self._settle(ready)

        while not self._stop_event.is_set():
            try:
                cmd: _Command | None = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                cmd = None
            if cmd is not None and cmd.name != "wake":
                self._run_command(cmd, instance, player)
            for event in self._observer.observe(player, self._load_id):
                self._emit_event(event)

        player.stop()

    def _run_command(self, cmd: _Command, instance: Any, player: Any) -> None:
        try:
            result = self._handle_command(cmd, instance, player)
        except Exception as exc:  # pragma: no cover - backend safety net
            self._settle(cmd.future, error=exc)
            return
        self._settle(cmd.future, result)

    def _handle_command(self, cmd: _Command, instance: Any, player: Any) -> Any:
        handler = getattr(self, f"_cmd_{cmd.name}", None)
        if handler is None:
            raise ValueError(f"Unknown command {cmd.name}")
        return handler(instance, player, *cmd.args)

    def _cmd_load(self, instance: Any, player: Any, url: str, load_id: int) -> None:
        player.stop()
        player.set_media(instance.media_new(url))
        self._load_id = int(load_id)
        self._observer.reset(remote=str(url).lower().startswith(REMOTE_SCHEMES))

    def _cmd_play(self, instance: Any, player: Any) -> None:
        player.play()

    def _cmd_pause(self, instance: Any, player: Any) -> None:
        player.set_pause(1)

    def _cmd_release(self, instance: Any, player: Any) -> None:
        player.stop()
        player.set_media(None)
        self._observer.reset()

    def _cmd_seek(self, instance: Any, player: Any, position_s: float) -> None:
        player.set_time(int(float(position_s) * 1000))

    def _cmd_set_volume(self, instance: Any, player: Any, volume: float) -> None:
        player.audio_set_volume(int(round(float(volume) * 100)))

    def _emit_event(self, event: TransportEvent) -> None:
        if self._handler is None or self._loop is None:
            return
        coro = self._handler(event)
        asyncio.run_coroutine_threadsafe(
            cast(Coroutine[Any, Any, None], coro), self._loop
        )

    def _settle(
        self,
        future: asyncio.Future[Any] | None,
        value: Any = None,
        *,
        error: Exception | None = None,
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(_apply_outcome, future, value, error)


def _apply_outcome(
    future: asyncio.Future[Any], value: Any, error: Exception | None
) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(value)


def _map_state(player: Any) -> str:
    try:
        state = player.get_state()
    except Exception:
        return "error"
    name = getattr(state, "name", "").lower()
    if name in {"playing", "paused", "ended", "error"}:
        return name
    if name in {"opening", "buffering"}:
        return "loading"
    return "idle"
