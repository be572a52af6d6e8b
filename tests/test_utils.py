"""
Tests for duration parsing and log sanitization helpers.
"""

from datetime import timedelta

import pytest

from kmetrics.utils.durations import parse_duration
from kmetrics.utils.log_sanitizer import sanitize_for_log, sanitize_label


class TestParseDuration:
    """Test parse_duration."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("30s", timedelta(seconds=30)),
            ("1m", timedelta(minutes=1)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("7d", timedelta(days=7)),
            ("2w", timedelta(weeks=2)),
            ("500ms", timedelta(milliseconds=500)),
            ("45", timedelta(seconds=45)),
            (" 1h ", timedelta(hours=1)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "h", "1x", "1h 30m", "-5m", "0", "0h", "1.5h"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)

    def test_non_string_rejected(self):
        with pytest.raises(ValueError):
            parse_duration(None)


class TestLogSanitizer:
    """Test log sanitization."""

    def test_strips_control_characters(self):
        assert sanitize_for_log("line1\nline2\r\x00") == "line1line2"

    def test_truncates(self):
        assert sanitize_for_log("a" * 150) == "a" * 100 + "..."

    def test_label(self):
        assert sanitize_label("Kube-System") == "kube-system"
        assert sanitize_label("bad\nname") == "badname"
        assert sanitize_label(None) == "*"
        assert sanitize_label("") == "*"
        assert sanitize_label("\n\n") == "?"
