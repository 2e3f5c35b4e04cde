"""Tests for duration parsing and formatting helpers."""
import pytest
from datetime import datetime, timedelta, timezone

from utils.durations import parse_duration, resolve_window, DurationError
from utils.formatters import format_rfc3339, format_value, format_timestamp, time_ago


# ── Durations ───────────────────────────────────────────

@pytest.mark.parametrize("text,expected", [
    ("5m", timedelta(minutes=5)),
    ("1h", timedelta(hours=1)),
    ("30s", timedelta(seconds=30)),
    ("1h30m", timedelta(hours=1, minutes=30)),
    ("1.5h", timedelta(minutes=90)),
    ("250ms", timedelta(milliseconds=250)),
    ("2m30s", timedelta(minutes=2, seconds=30)),
    (" 10m ", timedelta(minutes=10)),
])
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "5", "m", "five minutes", "5x", "-5m", "0s", "5m garbage", None])
def test_parse_duration_rejects(text):
    with pytest.raises(DurationError):
        parse_duration(text)


def test_duration_error_is_value_error():
    assert issubclass(DurationError, ValueError)


def test_resolve_window_fallback():
    default = timedelta(minutes=5)
    assert resolve_window("5m", default) == timedelta(minutes=5)
    assert resolve_window("2h", default) == timedelta(hours=2)
    assert resolve_window("", default) == default
    assert resolve_window(None, default) == default
    assert resolve_window("soon", default) == default


# ── Formatters ──────────────────────────────────────────

def test_format_rfc3339_utc():
    dt = datetime(2026, 3, 1, 12, 0, 5, 987654, tzinfo=timezone.utc)
    assert format_rfc3339(dt) == "2026-03-01T12:00:05Z"


def test_format_rfc3339_offset():
    dt = datetime(2026, 3, 1, 12, 0, 5, tzinfo=timezone(timedelta(hours=2)))
    assert format_rfc3339(dt) == "2026-03-01T12:00:05+02:00"


def test_format_rfc3339_naive_is_utc():
    assert format_rfc3339(datetime(2026, 3, 1, 12, 0, 5)) == "2026-03-01T12:00:05Z"


def test_format_value():
    assert format_value(95.0) == "95"
    assert format_value(100.0) == "100"
    assert format_value(0.25, "%") == "0.25 %"
    assert format_value(1250.5, "ms") == "1,250.50 ms"
    assert format_value(None) == "N/A"


def test_format_timestamp():
    assert format_timestamp(None) == "N/A"
    assert format_timestamp("raw") == "raw"
    dt = datetime(2026, 3, 1, 12, 0, 5, tzinfo=timezone.utc)
    assert format_timestamp(dt) == "2026-03-01 12:00:05 UTC"


def test_time_ago():
    now = datetime.now(timezone.utc)
    assert time_ago(now - timedelta(seconds=30)).endswith("s ago")
    assert time_ago(now - timedelta(minutes=5)) == "5m ago"
    assert time_ago(now - timedelta(hours=3)) == "3h ago"
    assert time_ago(now - timedelta(days=2)) == "2d ago"
    assert time_ago(None) == "N/A"
