"""Tests for duration string parsing."""

from datetime import timedelta

import pytest

from pgshelf.retention.durations import describe_duration, format_duration, parse_duration


class TestParseDuration:
    """Tests for parse_duration()."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("P1D", timedelta(days=1)),
            ("P14D", timedelta(days=14)),
            ("P2W", timedelta(weeks=2)),
            ("PT36H", timedelta(hours=36)),
            ("P1DT12H", timedelta(days=1, hours=12)),
            ("PT90M", timedelta(minutes=90)),
            ("p7d", timedelta(days=7)),
        ],
    )
    def test_iso_8601(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1.00:00:00", timedelta(days=1)),
            ("14.00:00:00", timedelta(days=14)),
            ("374.00:00:00", timedelta(days=374)),
            ("12:00:00", timedelta(hours=12)),
            ("2.06:30:15", timedelta(days=2, hours=6, minutes=30, seconds=15)),
        ],
    )
    def test_clock_notation(self, text, expected):
        assert parse_duration(text) == expected

    def test_bare_integer_is_days(self):
        assert parse_duration("30") == timedelta(days=30)

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_duration("  P3D ") == timedelta(days=3)

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "P", "PT", "P1M", "P1Y", "1 day", "1.25:00:00", "00:61:00", "-1.00:00:00", "soon"],
    )
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)

    @pytest.mark.parametrize("text", ["P9999999999D", "9999999999", "99999999999.00:00:00"])
    def test_out_of_range(self, text):
        with pytest.raises(ValueError, match="out of range"):
            parse_duration(text)

    def test_very_long_window_parses(self):
        assert parse_duration("P3650000D") == timedelta(days=3650000)

    def test_non_string_is_rejected(self):
        with pytest.raises(ValueError, match="must be a string"):
            parse_duration(14)


class TestFormatDuration:
    """Tests for format_duration() and describe_duration()."""

    def test_whole_days(self):
        assert format_duration(timedelta(days=14)) == "P14D"

    def test_mixed(self):
        assert format_duration(timedelta(days=1, hours=2, minutes=3, seconds=4)) == "P1DT2H3M4S"

    def test_zero(self):
        assert format_duration(timedelta(0)) == "PT0S"

    def test_format_parses_back(self):
        value = timedelta(days=3, hours=5)

        assert parse_duration(format_duration(value)) == value

    def test_describe(self):
        assert describe_duration(timedelta(days=1)) == "1 day"
        assert describe_duration(timedelta(days=9)) == "9 days"
        assert describe_duration(timedelta(hours=12)) == "12:00:00"
