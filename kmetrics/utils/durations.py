"""
Relative duration parsing ("30s", "1h30m", "7d").

Accepts the unit set of Flux duration literals so that a window that
InfluxDB would understand also parses here.
"""

import re
from datetime import timedelta

# Longest unit names first so "ms" is not read as "m" followed by "s".
_UNIT_RE = re.compile(r"(\d+)(ns|us|µs|ms|mo|s|m|h|d|w|y)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
    "mo": 30 * 86400,
    "y": 365 * 86400,
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a relative duration string into a timedelta.

    Args:
        value: Duration such as "1h", "90s", "1h30m". A bare integer is read as seconds.

    Returns:
        Positive timedelta

    Raises:
        ValueError: If the string is empty, malformed, or zero
    """
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValueError("duration must not be empty")

    if text.isdigit():
        seconds = float(text)
    else:
        pos = 0
        seconds = 0.0
        for match in _UNIT_RE.finditer(text):
            if match.start() != pos:
                break
            seconds += int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(text):
            raise ValueError(f"invalid duration: {value!r}")

    if seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")

    return timedelta(seconds=seconds)
