"""
Duration string parsing for retention policy documents.

Two notations are accepted:

- ISO-8601 durations restricted to fixed-length units: ``P14D``, ``P2W``,
  ``PT36H``, ``P1DT12H``. Years and months are rejected because their length
  depends on the calendar.
- Clock notation ``[d.]hh:mm:ss[.fffffff]``: ``14.00:00:00``, ``12:00:00``.
  A bare integer is read as a number of days.
"""

from __future__ import annotations

import re
from datetime import timedelta

_ISO_PATTERN = re.compile(
    r"^P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$",
    re.IGNORECASE,
)

_CLOCK_PATTERN = re.compile(
    r"^(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{2}):(?P<seconds>\d{2}(?:\.\d+)?)$"
)


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration string into a timedelta.

    Args:
        text: Duration in ISO-8601 or ``[d.]hh:mm:ss`` notation

    Returns:
        Parsed duration

    Raises:
        ValueError: If the string matches neither notation
    """
    if not isinstance(text, str):
        raise ValueError(f"Duration must be a string, got {type(text).__name__}")

    value = text.strip()
    if not value:
        raise ValueError("Duration must not be empty")

    try:
        return _parse(value, text)
    except OverflowError as e:
        raise ValueError(f"Duration out of range: '{text}'") from e


def _parse(value: str, text: str) -> timedelta:
    if value.isdigit():
        return timedelta(days=int(value))

    if value[0] in "pP":
        match = _ISO_PATTERN.match(value)
        # "P" and "PT" alone match the pattern with every group empty
        if match is None or not any(match.groupdict().values()):
            raise ValueError(f"Invalid ISO-8601 duration: '{text}'")
        parts = match.groupdict()
        return timedelta(
            weeks=int(parts["weeks"] or 0),
            days=int(parts["days"] or 0),
            hours=int(parts["hours"] or 0),
            minutes=int(parts["minutes"] or 0),
            seconds=float(parts["seconds"] or 0),
        )

    match = _CLOCK_PATTERN.match(value)
    if match is None:
        raise ValueError(
            f"Invalid duration: '{text}' (expected e.g. 'P14D' or '14.00:00:00')"
        )
    parts = match.groupdict()
    hours = int(parts["hours"])
    minutes = int(parts["minutes"])
    seconds = float(parts["seconds"])
    if hours > 23 or minutes > 59 or seconds >= 60:
        raise ValueError(f"Invalid duration: '{text}' (clock field out of range)")
    return timedelta(
        days=int(parts["days"] or 0),
        hours=hours,
        minutes=minutes,
        seconds=seconds,
    )


def format_duration(value: timedelta) -> str:
    """Render a timedelta as an ISO-8601 duration (``P14D``, ``PT12H``)."""
    total_seconds = int(value.total_seconds())
    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    result = "P"
    if days:
        result += f"{days}D"
    if hours or minutes or seconds:
        result += "T"
        if hours:
            result += f"{hours}H"
        if minutes:
            result += f"{minutes}M"
        if seconds:
            result += f"{seconds}S"
    return result if result != "P" else "PT0S"


def describe_duration(value: timedelta) -> str:
    """Human-readable form used in log lines: ``1 day``, ``14 days``, ``12:00:00``."""
    if value.seconds == 0 and value.microseconds == 0:
        return f"{value.days} day" if value.days == 1 else f"{value.days} days"
    return str(value)
