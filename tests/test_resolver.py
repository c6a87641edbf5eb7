"""Tests for URL resolution, validation and failure classification."""

from __future__ import annotations

import asyncio
import logging

import pytest
import requests

from jitplay.services.resolver import (
    RESOLVE_PATH,
    HttpUrlResolver,
    InvalidRequest,
    ResolutionPipeline,
    TrackNotFound,
    TransientFailure,
    validate_request,
)


class _Response:
    def __init__(self, status_code: int, payload: object = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> object:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class _Session:
    def __init__(self, result: object) -> None:
        self.headers: dict[str, str] = {}
        self.result = result
        self.calls: list[tuple[str, dict[str, object], float]] = []

    def get(self, url: str, *, params: dict[str, object], timeout: float):
        self.calls.append((url, params, timeout))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class _StaticResolver:
    def __init__(
        self, outcome: object = "https://cdn/a.mp3", delay_s: float = 0
    ) -> None:
        self.outcome = outcome
        self.delay_s = delay_s
        self.calls = 0

    async def resolve(self, track_id: str, source: str, bitrate: int) -> object:
        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _http(session: _Session, **kwargs) -> HttpUrlResolver:
    return HttpUrlResolver(
        "http://api.local", session=session, **kwargs  # type: ignore[arg-type]
    )


@pytest.mark.parametrize(
    ("track_id", "source", "bitrate"),
    [
        ("", "netease", 320),
        ("   ", "netease", 320),
        ("42", "", 320),
        ("42", "netease", 0),
        ("42", "netease", -128),
        ("42", "netease", True),
        ("42", "netease", "320"),
    ],
)
def test_validate_request_rejects_malformed_args(track_id, source, bitrate) -> None:
    with pytest.raises(InvalidRequest):
        validate_request(track_id, source, bitrate)


def test_validate_request_accepts_well_formed_args() -> None:
    validate_request("42", "netease", 320)


def test_pipeline_returns_url_on_success() -> None:
    resolver = _StaticResolver()
    pipeline = ResolutionPipeline(resolver, timeout_s=1.0)
    url = asyncio.run(pipeline.resolve("42", "netease", 320))
    assert url == "https://cdn/a.mp3"
    assert resolver.calls == 1


def test_pipeline_invalid_request_skips_resolver() -> None:
    resolver = _StaticResolver()
    pipeline = ResolutionPipeline(resolver)
    with pytest.raises(InvalidRequest):
        asyncio.run(pipeline.resolve("", "netease", 320))
    assert resolver.calls == 0


def test_pipeline_timeout_is_transient() -> None:
    pipeline = ResolutionPipeline(_StaticResolver(delay_s=1.0), timeout_s=0.05)
    with pytest.raises(TransientFailure) as excinfo:
        asyncio.run(pipeline.resolve("42", "netease", 320))
    assert excinfo.value.kind == "transient"
    assert "timed out" in excinfo.value.message


@pytest.mark.parametrize("outcome", [None, "", "   ", 17])
def test_pipeline_empty_url_is_not_found(outcome) -> None:
    pipeline = ResolutionPipeline(_StaticResolver(outcome))
    with pytest.raises(TrackNotFound):
        asyncio.run(pipeline.resolve("42", "netease", 320))


def test_pipeline_passes_classified_errors_through() -> None:
    pipeline = ResolutionPipeline(_StaticResolver(TrackNotFound("gone")))
    with pytest.raises(TrackNotFound, match="gone"):
        asyncio.run(pipeline.resolve("42", "netease", 320))


def test_pipeline_wraps_unclassified_errors(caplog) -> None:
    pipeline = ResolutionPipeline(_StaticResolver(ConnectionResetError("reset")))
    with caplog.at_level(logging.WARNING, logger="jitplay.services.resolver"):
        with pytest.raises(TransientFailure):
            asyncio.run(pipeline.resolve("42", "netease", 320))
    assert any("unclassified" in record.message for record in caplog.records)


def test_pipeline_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        ResolutionPipeline(_StaticResolver(), timeout_s=0)


def test_http_resolver_sends_expected_query() -> None:
    session = _Session(_Response(200, {"url": "https://cdn/x.mp3", "size": 1}))
    resolver = HttpUrlResolver(
        "http://api.local/", session=session, timeout_s=4.0  # type: ignore[arg-type]
    )
    url = asyncio.run(resolver.resolve("1901371647", "netease", 320))
    assert url == "https://cdn/x.mp3"
    assert session.headers["User-Agent"] == "jitplay"
    assert session.calls == [
        (
            f"http://api.local{RESOLVE_PATH}",
            {"trackId": "1901371647", "source": "netease", "br": 320},
            4.0,
        )
    ]


def test_http_resolver_bitrate_param_is_configurable() -> None:
    session = _Session(_Response(200, {"url": "https://cdn/x.mp3"}))
    resolver = HttpUrlResolver(
        "http://api.local",
        session=session,  # type: ignore[arg-type]
        bitrate_param="bitrate",
    )
    asyncio.run(resolver.resolve("1", "kugou", 128))
    assert session.calls[0][1] == {"trackId": "1", "source": "kugou", "bitrate": 128}


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (400, InvalidRequest),
        (404, TrackNotFound),
        (403, TrackNotFound),
        (408, TransientFailure),
        (429, TransientFailure),
        (500, TransientFailure),
        (503, TransientFailure),
        (599, TransientFailure),
    ],
)
def test_http_resolver_classifies_status(status, error) -> None:
    session = _Session(_Response(status, {"url": "https://cdn/x.mp3"}))
    resolver = _http(session)
    with pytest.raises(error):
        asyncio.run(resolver.resolve("1", "netease", 320))


@pytest.mark.parametrize(
    "payload",
    [{}, {"url": ""}, {"url": None}, [], ValueError("not json")],
)
def test_http_resolver_missing_url_is_not_found(payload) -> None:
    session = _Session(_Response(200, payload))
    resolver = _http(session)
    with pytest.raises(TrackNotFound):
        asyncio.run(resolver.resolve("1", "netease", 320))


@pytest.mark.parametrize(
    "exc",
    [requests.ConnectionError("refused"), requests.Timeout("slow")],
)
def test_http_resolver_network_errors_are_transient(exc) -> None:
    session = _Session(exc)
    resolver = _http(session)
    with pytest.raises(TransientFailure):
        asyncio.run(resolver.resolve("1", "netease", 320))


def test_http_resolver_validates_before_request() -> None:
    session = _Session(_Response(200, {"url": "https://cdn/x.mp3"}))
    resolver = _http(session)
    with pytest.raises(InvalidRequest):
        asyncio.run(resolver.resolve("", "netease", 320))
    assert session.calls == []
