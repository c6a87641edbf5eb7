"""Save the audio behind a resolved URL to disk."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import requests

from jitplay.services.catalog import Track
from jitplay.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DOWNLOAD_TIMEOUT_S = 30.0
_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


class DownloadError(Exception):
    """Raised when the resolved URL cannot be fetched or written."""


def download_filename(track: Track, extension: str = ".mp3") -> str:
    """Return `"{artist} - {title}{extension}"` with unsafe characters replaced."""
    stem = f"{track.artist} - {track.title}"
    stem = _UNSAFE_CHARS.sub("_", stem).strip(" .")
    return f"{stem or track.id or 'track'}{extension}"


async def download_track(
    url: str,
    track: Track,
    dest_dir: Path,
    *,
    session: requests.Session | None = None,
    timeout_s: float = DOWNLOAD_TIMEOUT_S,
) -> Path:
    """Stream `url` into `dest_dir` and return the written path."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = dest_dir / download_filename(track)
    http = session or requests.Session()
    await run_blocking(_stream_to_file, http, url, target, timeout_s)
    logger.info("Downloaded %s to %s", track.title, target)
    return target


def _stream_to_file(
    session: requests.Session, url: str, target: Path, timeout_s: float
) -> None:
    partial = target.with_name(target.name + ".part")
    try:
        with session.get(url, stream=True, timeout=timeout_s) as response:
            response.raise_for_status()
            with partial.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
        partial.replace(target)
    except requests.RequestException as exc:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Download failed: {exc}") from exc
    except OSError as exc:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Cannot write {target}: {exc}") from exc
