"""Just-in-time URL resolution for catalog tracks.

The upstream lookup service exchanges `(track_id, source, bitrate)` for a
short-lived playable URL. `ResolutionPipeline` wraps any `UrlResolver` with
argument validation, a bounded wait, and failure classification. Retry policy
is not applied here; `SessionController` owns it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal, Protocol

import requests

from jitplay.runtime_config import (
    DEFAULT_BITRATE,
    DEFAULT_RESOLVE_TIMEOUT_S,
    DEFAULT_SOURCE,
)
from jitplay.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)

FailureKind = Literal["invalid", "not_found", "transient"]
RETRIABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})
RESOLVE_PATH = "/api/music/url"


class ResolutionError(Exception):
    """Base class for classified resolution failures."""

    kind: FailureKind = "transient"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(ResolutionError):
    """Caller error (missing track id, malformed args); never retried."""

    kind: FailureKind = "invalid"


class TrackNotFound(ResolutionError):
    """Service answered but offered no playable URL; not retried."""

    kind: FailureKind = "not_found"


class TransientFailure(ResolutionError):
    """Network error, timeout or retriable status; eligible for one retry."""

    kind: FailureKind = "transient"


class UrlResolver(Protocol):
    """Single external lookup call. Implementations raise `ResolutionError`."""

    async def resolve(self, track_id: str, source: str, bitrate: int) -> str: ...


def validate_request(track_id: str, source: str, bitrate: int) -> None:
    """Reject malformed resolver arguments before any network call."""
    if not track_id or not str(track_id).strip():
        raise InvalidRequest("Missing track id.")
    if not source or not str(source).strip():
        raise InvalidRequest("Missing resolver source.")
    if isinstance(bitrate, bool) or not isinstance(bitrate, int) or bitrate <= 0:
        raise InvalidRequest(f"Invalid bitrate: {bitrate!r}")


class ResolutionPipeline:
    """Validate, bound and classify a single resolver call."""

    def __init__(
        self,
        resolver: UrlResolver,
        *,
        timeout_s: float = DEFAULT_RESOLVE_TIMEOUT_S,
    ) -> None:
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        self._resolver = resolver
        self._timeout_s = timeout_s

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    async def resolve(self, track_id: str, source: str, bitrate: int) -> str:
        validate_request(track_id, source, bitrate)
        logger.debug(
            "Resolving track_id=%s source=%s bitrate=%s", track_id, source, bitrate
        )
        try:
            url = await asyncio.wait_for(
                self._resolver.resolve(track_id, source, bitrate),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise TransientFailure(
                f"Resolver timed out after {self._timeout_s:g}s."
            ) from exc
        except ResolutionError:
            raise
        except Exception as exc:
            # Unclassified resolver errors are treated as network-level faults.
            logger.warning("Resolver raised unclassified error: %s", exc)
            raise TransientFailure(f"Resolver error: {exc}") from exc
        if not isinstance(url, str) or not url.strip():
            raise TrackNotFound("Resolver returned no playable URL.")
        return url


class HttpUrlResolver:
    """`UrlResolver` backed by the music lookup HTTP endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        timeout_s: float = DEFAULT_RESOLVE_TIMEOUT_S,
        bitrate_param: str = "br",
        user_agent: str = "jitplay",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self._timeout_s = timeout_s
        self._bitrate_param = bitrate_param

    async def resolve(
        self,
        track_id: str,
        source: str = DEFAULT_SOURCE,
        bitrate: int = DEFAULT_BITRATE,
    ) -> str:
        validate_request(track_id, source, bitrate)
        return await run_blocking(self._resolve_sync, track_id, source, bitrate)

    def _resolve_sync(self, track_id: str, source: str, bitrate: int) -> str:
        params: dict[str, Any] = {
            "trackId": track_id,
            "source": source,
            self._bitrate_param: bitrate,
        }
        try:
            response = self.session.get(
                f"{self.base_url}{RESOLVE_PATH}",
                params=params,
                timeout=self._timeout_s,
            )
        except requests.Timeout as exc:
            raise TransientFailure(f"Resolver request timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise TransientFailure(f"Resolver request failed: {exc}") from exc
        return _url_from_response(response)


def _url_from_response(response: requests.Response) -> str:
    status = response.status_code
    if status in RETRIABLE_STATUS_CODES or status >= 500:
        raise TransientFailure(f"Resolver returned HTTP {status}.")
    if status == 400:
        raise InvalidRequest(f"Resolver rejected the request (HTTP {status}).")
    if not 200 <= status < 300:
        raise TrackNotFound(f"Resolver returned HTTP {status}.")
    try:
        data = response.json()
    except ValueError as exc:
        raise TrackNotFound("Resolver response was not JSON.") from exc
    url = data.get("url") if isinstance(data, dict) else None
    if not isinstance(url, str) or not url.strip():
        raise TrackNotFound("Resolver response carried no playable URL.")
    return url
