"""Tests for saving resolved tracks to disk."""

from __future__ import annotations

import asyncio

import pytest
import requests

from jitplay.services.catalog import Track
from jitplay.services.download import (
    DownloadError,
    download_filename,
    download_track,
)


def _track(title: str = "Song", artist: str = "Band") -> Track:
    return Track(
        id="42", title=title, artist=artist, source="netease", default_bitrate=320
    )


class _StreamResponse:
    def __init__(self, chunks: list[object], status_error: Exception | None = None):
        self._chunks = chunks
        self._status_error = status_error

    def __enter__(self) -> _StreamResponse:
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def raise_for_status(self) -> None:
        if self._status_error is not None:
            raise self._status_error

    def iter_content(self, chunk_size: int):
        for chunk in self._chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


class _Session:
    def __init__(self, response: _StreamResponse) -> None:
        self.response = response
        self.calls: list[tuple[str, bool, float]] = []

    def get(self, url: str, *, stream: bool, timeout: float) -> _StreamResponse:
        self.calls.append((url, stream, timeout))
        return self.response


def test_download_filename_uses_artist_and_title() -> None:
    assert download_filename(_track()) == "Band - Song.mp3"


def test_download_filename_replaces_unsafe_characters() -> None:
    name = download_filename(_track(title='A/B: "C"?', artist="X|Y"))
    assert "/" not in name
    assert ":" not in name
    assert '"' not in name
    assert name.endswith(".mp3")
    assert name.startswith("X_Y - A_B_ _C_")


def test_download_track_streams_into_target(tmp_path) -> None:
    session = _Session(_StreamResponse([b"abc", b"", b"def"]))
    target = asyncio.run(
        download_track(
            "https://cdn/a.mp3",
            _track(),
            tmp_path / "out",
            session=session,  # type: ignore[arg-type]
            timeout_s=5.0,
        )
    )
    assert target == tmp_path / "out" / "Band - Song.mp3"
    assert target.read_bytes() == b"abcdef"
    assert session.calls == [("https://cdn/a.mp3", True, 5.0)]
    assert not (tmp_path / "out" / "Band - Song.mp3.part").exists()


def test_download_track_http_error_removes_partial(tmp_path) -> None:
    session = _Session(
        _StreamResponse([b"x"], status_error=requests.HTTPError("403 Forbidden"))
    )
    with pytest.raises(DownloadError):
        asyncio.run(
            download_track(
                "https://cdn/a.mp3",
                _track(),
                tmp_path,
                session=session,  # type: ignore[arg-type]
            )
        )
    assert list(tmp_path.iterdir()) == []


def test_download_track_interrupted_stream_removes_partial(tmp_path) -> None:
    session = _Session(
        _StreamResponse([b"abc", requests.ConnectionError("reset")])
    )
    with pytest.raises(DownloadError):
        asyncio.run(
            download_track(
                "https://cdn/a.mp3",
                _track(),
                tmp_path,
                session=session,  # type: ignore[arg-type]
            )
        )
    assert list(tmp_path.iterdir()) == []
