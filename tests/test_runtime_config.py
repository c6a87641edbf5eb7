"""Tests for runtime config normalization and precedence behavior."""

from __future__ import annotations

from jitplay.app import build_parser as app_build_parser
from jitplay.cli import build_parser as cli_build_parser
from jitplay.runtime_config import (
    DEFAULT_BITRATE,
    DEFAULT_RESOLVE_TIMEOUT_S,
    DEFAULT_RESOLVER_URL,
    normalize_bitrate,
    normalize_source,
    normalize_timeout,
    resolve_log_level,
)


def test_resolve_log_level_precedence_matrix() -> None:
    assert resolve_log_level(verbose=False, quiet=False) == "INFO"
    assert resolve_log_level(verbose=True, quiet=False) == "DEBUG"
    assert resolve_log_level(verbose=False, quiet=True) == "WARNING"
    assert resolve_log_level(verbose=True, quiet=True) == "WARNING"


def test_resolver_flags_parse_consistently_across_entrypoints() -> None:
    flags = [
        "--verbose",
        "--quiet",
        "--source",
        "kugou",
        "--bitrate",
        "128",
        "--timeout",
        "2.5",
    ]
    app_args = app_build_parser().parse_args(flags)
    cli_args = cli_build_parser().parse_args([*flags, "resolve", "0"])
    for args in (app_args, cli_args):
        assert args.source == "kugou"
        assert args.bitrate == 128
        assert args.timeout == 2.5
        assert args.resolver_url == DEFAULT_RESOLVER_URL
        assert resolve_log_level(verbose=args.verbose, quiet=args.quiet) == "WARNING"


def test_normalize_source() -> None:
    assert normalize_source(None) == "netease"
    assert normalize_source("   ") == "netease"
    assert normalize_source(" KuWo ") == "kuwo"


def test_normalize_bitrate_bounds_and_fallbacks() -> None:
    assert normalize_bitrate(None) == DEFAULT_BITRATE
    assert normalize_bitrate("abc") == DEFAULT_BITRATE
    assert normalize_bitrate(0) == DEFAULT_BITRATE
    assert normalize_bitrate(-5) == DEFAULT_BITRATE
    assert normalize_bitrate(10) == 64
    assert normalize_bitrate("192") == 192
    assert normalize_bitrate(2000) == 999


def test_normalize_timeout_bounds() -> None:
    assert normalize_timeout(None) == DEFAULT_RESOLVE_TIMEOUT_S
    assert normalize_timeout(0.01) == 0.5
    assert normalize_timeout(3) == 3.0
    assert normalize_timeout(600) == 60.0
