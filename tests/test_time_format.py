"""Tests for time formatting helpers."""

from __future__ import annotations

from jitplay.utils.time_format import format_time_pair_s, format_time_s


def test_format_time_under_hour() -> None:
    assert format_time_s(0) == "00:00"
    assert format_time_s(59) == "00:59"
    assert format_time_s(61.9) == "01:01"
    assert format_time_s(3599) == "59:59"


def test_format_time_at_hour_and_beyond() -> None:
    assert format_time_s(3600) == "1:00:00"
    assert format_time_s(36_000) == "10:00:00"


def test_format_time_negative() -> None:
    assert format_time_s(-5) == "00:00"


def test_format_time_pair_hour_mode() -> None:
    assert format_time_pair_s(60, 3600) == ("0:01:00", "1:00:00")


def test_format_time_pair_under_hour() -> None:
    assert format_time_pair_s(60, 120) == ("01:00", "02:00")


def test_format_time_pair_unknown_duration() -> None:
    assert format_time_pair_s(60, 0) == ("01:00", "--:--")
    assert format_time_pair_s(3600, -1) == ("1:00:00", "--:--:--")


def test_format_time_non_finite_values_fall_back_to_zero() -> None:
    assert format_time_s(float("nan")) == "00:00"
    assert format_time_s(float("inf")) == "00:00"
