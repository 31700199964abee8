"""Unit tests for parsing helpers."""

from datetime import UTC, datetime

import pytest

from blockshot.helpers.parsers import (
    format_time_remaining,
    parse_amount,
    parse_hex_int,
    parse_hex_timestamp,
    parse_rfc3339,
    parse_timestamp,
)


class TestHexParsers:
    """Test hex parsing utility functions."""

    def test_parse_hex_int_valid(self) -> None:
        """Test parsing valid hex integers."""
        assert parse_hex_int("0x10") == 16
        assert parse_hex_int("0x0") == 0
        assert parse_hex_int("0xFF") == 255

    def test_parse_hex_int_none(self) -> None:
        """Test parsing None returns default value."""
        assert parse_hex_int(None) == 0
        assert parse_hex_int(None, default=42) == 42

    def test_parse_hex_int_empty_string(self) -> None:
        """Test parsing empty string raises ValueError."""
        with pytest.raises(ValueError):
            parse_hex_int("")

    def test_parse_hex_timestamp_is_utc(self) -> None:
        """Test that hex timestamps become aware UTC datetimes."""
        result = parse_hex_timestamp(hex(1672531200))

        assert result == datetime(2023, 1, 1, tzinfo=UTC)


class TestTimestampParsers:
    """Test timestamp normalization."""

    def test_rfc3339_nanoseconds_truncated(self) -> None:
        """Test that nine fractional digits are truncated to microseconds."""
        result = parse_rfc3339("2024-05-01T12:00:00.123456789Z")

        assert result == datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=UTC)

    def test_rfc3339_short_fraction_padded(self) -> None:
        """Test that short fractions are read as the leading digits."""
        result = parse_rfc3339("2024-05-01T12:00:00.5Z")

        assert result.microsecond == 500000

    def test_rfc3339_offset_converted_to_utc(self) -> None:
        """Test that offsets are normalized to UTC."""
        result = parse_rfc3339("2024-05-01T14:00:00+02:00")

        assert result == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def test_rfc3339_invalid_raises(self) -> None:
        """Test that garbage raises ValueError."""
        with pytest.raises(ValueError):
            parse_rfc3339("next tuesday")

    @pytest.mark.parametrize(
        "value",
        [
            "2024-05-01T12:00:00Z",
            {"seconds": "1714564800", "nanos": 0},
            1714564800,
            1714564800.0,
            datetime(2024, 5, 1, 12, tzinfo=UTC),
        ],
    )
    def test_parse_timestamp_variants(self, value: object) -> None:
        """Test that every wire variant yields the same instant."""
        assert parse_timestamp(value) == datetime(2024, 5, 1, 12, tzinfo=UTC)

    def test_parse_timestamp_naive_datetime_assumed_utc(self) -> None:
        """Test that naive datetimes are treated as UTC."""
        result = parse_timestamp(datetime(2024, 5, 1, 12))

        assert result.tzinfo is UTC

    def test_parse_timestamp_protobuf_nanos(self) -> None:
        """Test that protobuf nanos are kept to microsecond precision."""
        result = parse_timestamp({"seconds": 1714564800, "nanos": 250_000_999})

        assert result.microsecond == 250000

    @pytest.mark.parametrize("value", [None, "", True, {"nanos": 1}, ["2024"]])
    def test_parse_timestamp_rejects_unknown(self, value: object) -> None:
        """Test that missing or unknown formats raise ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestAmountParser:
    """Test token amount parsing."""

    def test_parse_amount_string(self) -> None:
        """Test that integer strings parse exactly."""
        assert parse_amount("1500") == 1500
        assert parse_amount("340282366920938463463374607431768211455") == 2**128 - 1

    def test_parse_amount_zero_fraction(self) -> None:
        """Test that legacy decimal strings with a zero fraction are accepted."""
        assert parse_amount("1000.000000000000000000") == 1000

    def test_parse_amount_defaults(self) -> None:
        """Test that missing amounts use the default."""
        assert parse_amount(None) == 0
        assert parse_amount("", default=7) == 7

    @pytest.mark.parametrize("value", ["1.5", "-10", "abc"])
    def test_parse_amount_invalid(self, value: str) -> None:
        """Test that fractional, negative, or non-numeric amounts raise."""
        with pytest.raises(ValueError):
            parse_amount(value)


class TestFormatTimeRemaining:
    """Test duration rendering."""

    def test_full_breakdown(self) -> None:
        """Test a duration spanning every unit."""
        assert format_time_remaining(93784) == "1d 2h 3m 4s"

    def test_fractional_seconds_truncated(self) -> None:
        """Test that sub-second precision is dropped."""
        assert format_time_remaining(59.9) == "0d 0h 0m 59s"

    @pytest.mark.parametrize("seconds", [0, -5])
    def test_past_is_completed(self, seconds: float) -> None:
        """Test that non-positive durations render as completed."""
        assert format_time_remaining(seconds) == "Completed"
