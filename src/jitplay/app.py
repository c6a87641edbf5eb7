"""Textual TUI app for jitplay."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Static

from . import __version__
from .events import SessionStateChanged, TrackChanged, TrackRowActivated
from .logging_utils import setup_logging
from .paths import catalog_path, downloads_dir, log_dir
from .runtime_config import (
    BACKENDS,
    DEFAULT_RESOLVER_URL,
    normalize_bitrate,
    normalize_timeout,
    resolve_log_level,
)
from .services.catalog import Catalog, Track, load_catalog
from .services.fake_transport import FakeTransport
from .services.media_session import LoggingMediaSession
from .services.resolver import HttpUrlResolver, ResolutionPipeline
from .services.session import PlaybackSession
from .services.session_controller import SessionController
from .services.vlc_transport import VLCTransport
from .ui.modals.error import ErrorModal
from .ui.status_pane import StatusPane
from .ui.track_list import TrackList
from .utils.async_utils import run_blocking
from .version import build_help_epilog

logger = logging.getLogger(__name__)
SEEK_STEP_S = 5.0
SEEK_STEP_BIG_S = 30.0
VOLUME_STEP = 0.05


class JitPlayApp(App):
    TITLE = "jitplay"
    CSS = """
    Screen {
        layout: vertical;
    }

    #main {
        height: 1fr;
    }

    #track-list {
        width: 2fr;
        background: $panel;
    }

    #now-playing {
        width: 1fr;
        border: solid white;
        padding: 1 2;
        content-align: center middle;
    }

    #status-pane {
        height: 4;
        border: solid white;
        padding: 0 1;
    }

    ModalScreen {
        align: center middle;
    }

    #modal-body {
        padding: 1 2;
        border: solid red;
        width: 60%;
        height: auto;
    }
    """
    BINDINGS = [
        ("space", "play_pause", "Play/Pause"),
        ("n", "next_track", "Next"),
        ("p", "previous_track", "Previous"),
        ("left", "seek_back", "Seek -5s"),
        ("right", "seek_forward", "Seek +5s"),
        ("shift+left", "seek_back_big", "Seek -30s"),
        ("shift+right", "seek_forward_big", "Seek +30s"),
        ("-", "volume_down", "Vol -"),
        ("+", "volume_up", "Vol +"),
        ("r", "retry", "Retry"),
        ("d", "download", "Download"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        *,
        auto_init: bool = True,
        catalog_file: Path | None = None,
        resolver_url: str = DEFAULT_RESOLVER_URL,
        source: str | None = None,
        bitrate: int | None = None,
        timeout_s: float | None = None,
        backend_name: str = "vlc",
    ) -> None:
        super().__init__()
        self._auto_init = auto_init
        self._catalog_file = catalog_file
        self._resolver_url = resolver_url
        self._source = source
        self._bitrate = normalize_bitrate(bitrate) if bitrate is not None else None
        self._timeout_s = normalize_timeout(timeout_s)
        self._backend_name = backend_name
        self.controller: SessionController | None = None
        self.session = PlaybackSession()
        self.current_track: Track | None = None
        self.startup_failed = False
        self._track_list: TrackList | None = None
        self._status_pane: StatusPane | None = None
        self._now_playing: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(
            TrackList(id="track-list"),
            Static("No track selected", id="now-playing"),
            id="main",
        )
        yield StatusPane(id="status-pane")
        yield Footer()

    def on_mount(self) -> None:
        # Held directly: queries would hit a modal screen pushed on top.
        self._track_list = self.query_one(TrackList)
        self._status_pane = self.query_one(StatusPane)
        self._now_playing = self.query_one("#now-playing", Static)
        if self._auto_init:
            asyncio.create_task(self._initialize())

    async def _initialize(self) -> None:
        try:
            catalog = await run_blocking(
                load_catalog, self._catalog_file or catalog_path()
            )
            if self._source:
                catalog = catalog.with_source(self._source)
            self.controller = await self._start_controller(catalog)
            if self._track_list is not None:
                await self._track_list.set_catalog(catalog)
                self._track_list.focus()
            self._render_session()
        except Exception as exc:
            logger.exception("Failed to initialize app: %s", exc)
            self.startup_failed = True
            await self.push_screen(
                ErrorModal(
                    "Failed to initialize jitplay.\n"
                    "Likely cause: catalog file missing/invalid or backend "
                    "startup failure.\n"
                    "Next step: check --catalog and review the log file.\n"
                    f"Details: {exc}",
                    title="Startup failed",
                )
            )

    async def _start_controller(self, catalog: Catalog) -> SessionController:
        controller = self._build_controller(catalog, self._backend_name)
        try:
            await controller.start()
            return controller
        except Exception as exc:
            if self._backend_name == "fake":
                raise
            logger.exception(
                "Failed to start %s transport: %s", self._backend_name, exc
            )
        self._backend_name = "fake"
        controller = self._build_controller(catalog, "fake")
        await controller.start()
        await self.push_screen(
            ErrorModal(
                "VLC transport unavailable; using fake transport.\n"
                "Cause: VLC/libVLC runtime is not available.\n"
                "Next step: install VLC/libVLC, then restart with --backend vlc.",
                title="Audio backend",
            )
        )
        return controller

    def _build_controller(
        self, catalog: Catalog, backend_name: str
    ) -> SessionController:
        resolver = HttpUrlResolver(self._resolver_url, timeout_s=self._timeout_s)
        return SessionController(
            catalog=catalog,
            pipeline=ResolutionPipeline(resolver, timeout_s=self._timeout_s),
            transport=_build_transport(backend_name),
            emit_event=self._handle_session_event,
            media_session=LoggingMediaSession(),
            bitrate=self._bitrate,
        )

    async def on_unmount(self) -> None:
        if self.controller is not None:
            await self.controller.shutdown()

    async def on_track_row_activated(self, event: TrackRowActivated) -> None:
        if self.controller is None:
            return
        await self.controller.select(event.index, autoplay=True)

    async def action_play_pause(self) -> None:
        if self.controller is None:
            return
        await self.controller.play_pause()

    async def action_next_track(self) -> None:
        if self.controller is None:
            return
        await self.controller.next()

    async def action_previous_track(self) -> None:
        if self.controller is None:
            return
        await self.controller.previous()

    async def action_seek_back(self) -> None:
        await self._seek_delta(-SEEK_STEP_S)

    async def action_seek_forward(self) -> None:
        await self._seek_delta(SEEK_STEP_S)

    async def action_seek_back_big(self) -> None:
        await self._seek_delta(-SEEK_STEP_BIG_S)

    async def action_seek_forward_big(self) -> None:
        await self._seek_delta(SEEK_STEP_BIG_S)

    async def action_volume_down(self) -> None:
        if self.controller is None:
            return
        await self.controller.set_volume(self.session.volume - VOLUME_STEP)

    async def action_volume_up(self) -> None:
        if self.controller is None:
            return
        await self.controller.set_volume(self.session.volume + VOLUME_STEP)

    async def action_retry(self) -> None:
        if self.controller is None:
            return
        await self.controller.retry(autoplay=True)

    async def action_download(self) -> None:
        if self.controller is None or self.current_track is None:
            return
        self.run_worker(self._download_current(), exclusive=True)

    async def action_quit(self) -> None:
        self.exit()

    async def _seek_delta(self, delta_s: float) -> None:
        if self.controller is None:
            return
        await self.controller.seek(self.session.position + delta_s)

    async def _download_current(self) -> None:
        if self.controller is None:
            return
        try:
            target = await self.controller.download_current(
                await run_blocking(downloads_dir)
            )
        except Exception as exc:
            logger.exception("Download failed: %s", exc)
            await self.push_screen(
                ErrorModal(
                    "Download failed.\n"
                    "Likely cause: URL could not be resolved or fetched.\n"
                    "Next step: retry in a moment.\n"
                    f"Details: {exc}",
                    title="Download",
                )
            )
            return
        self.notify(f"Saved {target.name}")

    async def _handle_session_event(self, event: object) -> None:
        if isinstance(event, SessionStateChanged):
            self.session = event.session
            self.current_track = event.track
            self._render_session()
        elif isinstance(event, TrackChanged):
            self.current_track = event.track
            self._update_now_playing()

    def _render_session(self) -> None:
        if self._status_pane is not None:
            self._status_pane.update_session(self.session, self.current_track)
        index = self.session.track_index if self.current_track is not None else None
        if self._track_list is not None:
            self._track_list.mark_active(index, self.session.transport_state)
        self._update_now_playing()

    def _update_now_playing(self) -> None:
        pane = self._now_playing
        if pane is None:
            return
        if self.current_track is None:
            pane.update("No track selected")
            return
        track = self.current_track
        pane.update(f"{track.title}\n{track.artist}\n\n{track.source} · {track.id}")


def _build_transport(name: str) -> FakeTransport | VLCTransport:
    logger.info("Transport selected: %s", name)
    if name == "vlc":
        return VLCTransport()
    return FakeTransport()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jitplay",
        description="Terminal player for tracks resolved just-in-time.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=build_help_epilog(resolver_url=DEFAULT_RESOLVER_URL),
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default="vlc",
        help="Audio transport to use (fake or vlc).",
    )
    add_resolver_arguments(parser)
    return parser


def add_resolver_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags shared by the TUI and headless CLI."""
    parser.add_argument("--catalog", help="Path to the preprocessed catalog JSON")
    parser.add_argument(
        "--resolver-url",
        default=DEFAULT_RESOLVER_URL,
        help="Base URL of the music lookup service.",
    )
    parser.add_argument(
        "--source", help="Override the resolver source for every track."
    )
    parser.add_argument(
        "--bitrate", type=int, help="Override the requested bitrate (kbps)."
    )
    parser.add_argument(
        "--timeout", type=float, help="Resolve timeout in seconds (default 10)."
    )


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    try:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
            console=False,
        )
        logging.getLogger(__name__).info("Starting jitplay TUI")
        app = JitPlayApp(
            catalog_file=Path(args.catalog) if args.catalog else None,
            resolver_url=args.resolver_url,
            source=args.source,
            bitrate=args.bitrate,
            timeout_s=args.timeout,
            backend_name=args.backend,
        )
        app.run()
        return 1 if getattr(app, "startup_failed", False) else 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logging.getLogger(__name__).exception("Fatal startup error: %s", exc)
        print(
            "Startup failed. Verify catalog/backend/log paths "
            "and re-run with --verbose.",
            file=sys.stderr,
        )
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
