"""Parsing utilities that normalize chain wire formats."""

from datetime import UTC, datetime, timedelta
import re

from typing import Any


_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_hex_int(hex_value: str | None, default: int = 0) -> int:
    """Parse hex string to integer.

    Args:
        hex_value: Hex-encoded string or None
        default: Default value if hex_value is None

    Returns:
        int: Parsed integer value

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if hex_value is None:
        return default
    return int(hex_value, 16)


def parse_hex_timestamp(hex_timestamp: str) -> datetime:
    """Parse Unix timestamp from hex string to datetime.

    Args:
        hex_timestamp: Hex-encoded Unix timestamp string

    Returns:
        datetime: Timezone-aware UTC datetime

    Example:
        >>> parse_hex_timestamp("0x63a1b2c3")
        datetime.datetime(2022, 12, 20, ...)
    """
    return datetime.fromtimestamp(int(hex_timestamp, 16), tz=UTC)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp with up to nanosecond precision.

    CometBFT and the Cosmos REST gateway report nine fractional digits,
    which ``datetime`` cannot hold; the fraction is truncated to
    microseconds.

    Args:
        value: Timestamp such as ``2024-05-01T12:00:00.123456789Z``

    Returns:
        datetime: Timezone-aware UTC datetime

    Raises:
        ValueError: If the string is not a valid timestamp

    Example:
        >>> parse_rfc3339("2024-05-01T12:00:00.123456789Z")
        datetime.datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=datetime.timezone.utc)
    """
    normalized = value.strip().replace("Z", "+00:00").replace("z", "+00:00")
    normalized = _FRACTION_RE.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), normalized, count=1
    )
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_timestamp(value: Any) -> datetime:
    """Normalize any chain-reported timestamp variant to an aware datetime.

    Accepted variants: ``datetime``, RFC 3339 strings, protobuf
    ``Timestamp`` mappings (``{"seconds": ..., "nanos": ...}``) and Unix
    epoch seconds as ``int``/``float``.

    Raises:
        ValueError: If the value is missing or in an unknown format
    """
    if value is None or value == "":
        msg = "Timestamp is missing"
        raise ValueError(msg)

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    if isinstance(value, bool):
        msg = f"Unknown timestamp format: {value!r}"
        raise ValueError(msg)

    if isinstance(value, int | float):
        return datetime.fromtimestamp(value, tz=UTC)

    if isinstance(value, str):
        return parse_rfc3339(value)

    if isinstance(value, dict) and value.get("seconds") is not None:
        seconds = int(value["seconds"])
        nanos = int(value.get("nanos") or 0)
        return datetime.fromtimestamp(seconds, tz=UTC) + timedelta(
            microseconds=nanos // 1000
        )

    msg = f"Unknown timestamp format: {value!r}"
    raise ValueError(msg)


def parse_amount(value: str | int | None, default: int = 0) -> int:
    """Parse an integer token amount from its decimal string form.

    Cosmos amounts are arbitrary-precision integers encoded as strings.
    Legacy decimal coin strings (``"1000.000000000000000000"``) are
    accepted when the fractional part is zero.

    Raises:
        ValueError: If the amount has a non-zero fractional part or is negative

    Example:
        >>> parse_amount("1500")
        1500
        >>> parse_amount(None)
        0
    """
    if value is None or value == "":
        return default
    if isinstance(value, int):
        amount = value
    else:
        whole, _, fraction = value.strip().partition(".")
        if fraction and fraction.strip("0"):
            msg = f"Amount is not an integer: {value}"
            raise ValueError(msg)
        amount = int(whole)
    if amount < 0:
        msg = f"Amount cannot be negative: {value}"
        raise ValueError(msg)
    return amount


def format_time_remaining(seconds: float) -> str:
    """Render a duration as ``1d 2h 3m 4s``.

    Example:
        >>> format_time_remaining(93784)
        '1d 2h 3m 4s'
        >>> format_time_remaining(-5)
        'Completed'
    """
    if seconds <= 0:
        return "Completed"
    total = int(seconds)
    days, rest = divmod(total, 86_400)
    hours, rest = divmod(rest, 3_600)
    minutes, secs = divmod(rest, 60)
    return f"{days}d {hours}h {minutes}m {secs}s"


__all__ = [
    "format_time_remaining",
    "parse_amount",
    "parse_hex_int",
    "parse_hex_timestamp",
    "parse_rfc3339",
    "parse_timestamp",
]
