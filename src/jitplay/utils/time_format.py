"""Time formatting helpers for the UI."""

from __future__ import annotations

import math


def format_time_s(seconds: float) -> str:
    """Format seconds as MM:SS or H:MM:SS when needed."""
    return _format_time_s(seconds, force_hours=False)


def format_time_pair_s(position_s: float, duration_s: float) -> tuple[str, str]:
    """Format position and duration with consistent width."""
    hours_mode = _needs_hours(position_s) or _needs_hours(duration_s)
    position = _format_time_s(position_s, force_hours=hours_mode)
    if _coerce_s(duration_s) <= 0:
        placeholder = "--:--:--" if hours_mode else "--:--"
        return position, placeholder
    duration = _format_time_s(duration_s, force_hours=hours_mode)
    return position, duration


def _needs_hours(seconds: float) -> bool:
    return _coerce_s(seconds) >= 3600


def _format_time_s(seconds: float, *, force_hours: bool) -> str:
    total_seconds = _coerce_s(seconds)
    hours = total_seconds // 3600
    if hours > 0 or force_hours:
        minutes = (total_seconds // 60) % 60
        secs = total_seconds % 60
        return f"{hours}:{minutes:02d}:{secs:02d}"
    minutes = total_seconds // 60
    secs = total_seconds % 60
    return f"{minutes:02d}:{secs:02d}"


def _coerce_s(value: float) -> int:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(numeric):
        return 0
    return max(0, int(numeric))
