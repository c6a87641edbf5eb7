"""Runtime configuration normalization helpers.

These helpers keep CLI flag interpretation deterministic across entrypoints.
"""

from __future__ import annotations

DEFAULT_SOURCE = "netease"
DEFAULT_BITRATE = 320
DEFAULT_RESOLVER_URL = "http://localhost:3000"
DEFAULT_RESOLVE_TIMEOUT_S = 10.0
RETRY_DELAY_RANGE_S = (1.0, 3.0)
BITRATE_MIN = 64
BITRATE_MAX = 999
BACKENDS = ("fake", "vlc")


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def normalize_source(value: str | None) -> str:
    """Normalize a resolver source name, falling back to the default backend."""
    if value is None:
        return DEFAULT_SOURCE
    normalized = value.strip().lower()
    return normalized or DEFAULT_SOURCE


def normalize_bitrate(value: object) -> int:
    """Coerce a bitrate (kbps) into the supported range.

    Non-numeric input falls back to the default rather than failing catalog load.
    """
    try:
        numeric = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return DEFAULT_BITRATE
    if numeric <= 0:
        return DEFAULT_BITRATE
    return max(BITRATE_MIN, min(numeric, BITRATE_MAX))


def normalize_timeout(value: float | None) -> float:
    """Clamp resolve timeout seconds to a sane bounded wait."""
    if value is None:
        return DEFAULT_RESOLVE_TIMEOUT_S
    return max(0.5, min(float(value), 60.0))
