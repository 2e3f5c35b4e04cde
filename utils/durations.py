"""Parsing of rule lookback windows such as "5m", "1h30m" or "250ms"."""
import re
from datetime import timedelta

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class DurationError(ValueError):
    """Duration string could not be parsed."""


def parse_duration(text: str) -> timedelta:
    """Parse a sequence of decimal numbers with unit suffixes.

    Accepts the units ns, us, ms, s, m and h, combined in any order
    ("1h30m", "1.5h"). Empty, negative, zero or unitless strings raise
    DurationError.

    Unlike Go's time.ParseDuration, "0s" and signed values such as "-5m"
    are rejected rather than accepted, so a rule written that way falls
    back to the default window in `resolve_window` instead of looking back
    over an empty or future range.
    """
    s = (text or "").strip()
    if not s:
        raise DurationError("empty duration")

    seconds = 0.0
    pos = 0
    for match in _PART.finditer(s):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()

    if pos != len(s):
        raise DurationError(f"invalid duration {text!r}")
    if seconds <= 0:
        raise DurationError(f"duration must be positive: {text!r}")
    return timedelta(seconds=seconds)


def resolve_window(text, default: timedelta) -> timedelta:
    """Lookback for a rule: its own duration, or `default` when absent or bad."""
    if not text:
        return default
    try:
        return parse_duration(text)
    except DurationError:
        return default
