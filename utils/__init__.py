"""Utility modules for Lightwatch."""
from utils.logger import setup_logging
from utils.formatters import format_rfc3339, format_value, format_timestamp, time_ago
from utils.durations import parse_duration, resolve_window, DurationError
