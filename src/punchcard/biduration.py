"""
Signed duration parsing and formatting for clock offsets.

Offsets are written the way people say them: ``"in 1h 30m"`` and
``"1h 30m"`` point forward, ``"1h 30m ago"`` points backward.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Tuple

from .errors import PunchcardError

NANOS_PER_MICRO = 1_000
NANOS_PER_SECOND = 1_000_000_000
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3_600
SECONDS_PER_DAY = 86_400
# 30.44 and 365.25 days.
SECONDS_PER_MONTH = 2_630_016
SECONDS_PER_YEAR = 31_557_600

I64_MAX = 2**63 - 1
MAX_NANOS = (timedelta.max // timedelta(microseconds=1)) * NANOS_PER_MICRO

FORWARD_TOKEN = "in"
BACKWARD_TOKEN = "ago"

_UNIT_ALIASES = (
    (("nanos", "nsec", "ns"), 1),
    (("micros", "usec", "us"), NANOS_PER_MICRO),
    (("millis", "msec", "ms"), 1_000_000),
    (("seconds", "second", "secs", "sec", "s"), NANOS_PER_SECOND),
    (("minutes", "minute", "mins", "min", "m"), SECONDS_PER_MINUTE * NANOS_PER_SECOND),
    (("hours", "hour", "hrs", "hr", "h"), SECONDS_PER_HOUR * NANOS_PER_SECOND),
    (("days", "day", "d"), SECONDS_PER_DAY * NANOS_PER_SECOND),
    (("weeks", "week", "wks", "wk", "w"), 7 * SECONDS_PER_DAY * NANOS_PER_SECOND),
    (("months", "month", "M"), SECONDS_PER_MONTH * NANOS_PER_SECOND),
    (("years", "year", "yrs", "yr", "y"), SECONDS_PER_YEAR * NANOS_PER_SECOND),
)

UNIT_NANOS: Dict[str, int] = {
    name: nanos for names, nanos in _UNIT_ALIASES for name in names
}

_ITEM_PATTERN = re.compile(r"\s*(\d+)\s*([A-Za-z]+)")


class Direction(Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


class BiDurationParseError(PunchcardError):
    """
    Base class for offset parsing failures.

    Attributes
    ----------
    value : str
        Offset text that failed to parse.
    """

    def __init__(self, message: str, value: str) -> None:
        super().__init__(message, hint='Offsets look like "in 1h 30m" or "45m ago".')
        self.value = value


class InvalidDirectionError(BiDurationParseError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid direction: {value!r}", value)


class BothDirectionsError(BiDurationParseError):
    def __init__(self, value: str) -> None:
        super().__init__("Both forward and backward directions specified", value)


class InvalidDurationError(BiDurationParseError):
    """
    Raised when the offset body is not a positive duration.

    Attributes
    ----------
    reason : str
        Grammar failure description.
    """

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"Invalid duration: {reason}", value)
        self.reason = reason


class OutOfRangeError(BiDurationParseError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Out of range: {value!r}", value)


def parse_duration_nanos(text: str) -> int:
    """
    Parse a positive duration expression into nanoseconds.

    Parameters
    ----------
    text : str
        Sequence of ``<integer><unit>`` items, e.g. ``"1h 30m"`` or ``"1h30m"``.

    Returns
    -------
    int
        Duration in nanoseconds.

    Raises
    ------
    InvalidDurationError
        If the text is empty, a number is missing, or a unit is unknown.

    Examples
    --------
    >>> parse_duration_nanos("1m 30s") // NANOS_PER_SECOND
    90
    >>> parse_duration_nanos("2days 1h") // NANOS_PER_SECOND
    176400
    """
    body = text.strip()
    if not body:
        raise InvalidDurationError(text, "value was empty")
    total = 0
    position = 0
    while position < len(body):
        match = _ITEM_PATTERN.match(body, position)
        if match is None:
            raise InvalidDurationError(text, f"expected number at {position}")
        number, unit = match.groups()
        scale = UNIT_NANOS.get(unit)
        if scale is None:
            raise InvalidDurationError(text, f"unknown time unit {unit!r}")
        total += int(number) * scale
        position = match.end()
        while position < len(body) and body[position].isspace():
            position += 1
    return total


def format_duration_nanos(nanos: int) -> str:
    """
    Render a non-negative nanosecond count with the duration grammar.

    Examples
    --------
    >>> format_duration_nanos(0)
    '0s'
    >>> format_duration_nanos((24 * 86400 + 12 * 3600 + 6 * 60 + 3) * NANOS_PER_SECOND)
    '24days 12h 6m 3s'
    >>> format_duration_nanos(SECONDS_PER_YEAR * NANOS_PER_SECOND + 1_500_000)
    '1year 1ms 500us'
    """
    seconds, nanos = divmod(max(0, nanos), NANOS_PER_SECOND)
    if seconds == 0 and nanos == 0:
        return "0s"
    years, rest = divmod(seconds, SECONDS_PER_YEAR)
    months, rest = divmod(rest, SECONDS_PER_MONTH)
    days, rest = divmod(rest, SECONDS_PER_DAY)
    hours, rest = divmod(rest, SECONDS_PER_HOUR)
    minutes, secs = divmod(rest, SECONDS_PER_MINUTE)
    millis, rest = divmod(nanos, 1_000_000)
    micros, nanosecs = divmod(rest, NANOS_PER_MICRO)

    items: List[str] = []
    for value, name in ((years, "year"), (months, "month"), (days, "day")):
        if value:
            items.append(f"{value}{name}{'s' if value > 1 else ''}")
    for value, suffix in (
        (hours, "h"),
        (minutes, "m"),
        (secs, "s"),
        (millis, "ms"),
        (micros, "us"),
        (nanosecs, "ns"),
    ):
        if value:
            items.append(f"{value}{suffix}")
    return " ".join(items)


def format_hours_minutes(nanos: int) -> str:
    """
    Render a duration magnitude rounded to whole hours and minutes.

    The sign is dropped and the magnitude is clamped to the signed 64-bit
    nanosecond range.

    Examples
    --------
    >>> format_hours_minutes(100 * 60 * NANOS_PER_SECOND)
    '1 hour 40 minutes'
    >>> format_hours_minutes(-120 * 60 * NANOS_PER_SECOND)
    '2 hours'
    >>> format_hours_minutes(29 * NANOS_PER_SECOND)
    '0 minutes'
    >>> format_hours_minutes(30 * NANOS_PER_SECOND)
    '1 minute'
    """
    magnitude = min(abs(nanos), I64_MAX)
    minute_nanos = SECONDS_PER_MINUTE * NANOS_PER_SECOND
    total_minutes = (magnitude + minute_nanos // 2) // minute_nanos
    hours, minutes = divmod(total_minutes, 60)
    parts: List[str] = []
    if hours:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes or not hours:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    return " ".join(parts)


def _split_direction(text: str) -> Tuple[Direction, str]:
    parts = text.split()
    if not parts:
        raise InvalidDirectionError(text)
    explicit_forward = parts[0] == FORWARD_TOKEN
    backward = parts[-1] == BACKWARD_TOKEN
    if explicit_forward and backward:
        raise BothDirectionsError(text)
    if explicit_forward:
        return Direction.FORWARD, " ".join(parts[1:])
    if backward:
        return Direction.BACKWARD, " ".join(parts[:-1])
    return Direction.FORWARD, " ".join(parts)


def _timedelta_from_nanos(nanos: int) -> timedelta:
    micros = abs(nanos) // NANOS_PER_MICRO
    return timedelta(microseconds=-micros if nanos < 0 else micros)


@dataclass(frozen=True)
class BiDuration:
    """
    Duration that may point forward or backward in time.

    Attributes
    ----------
    duration : timedelta
        Signed offset; negative values point into the past.
    """

    duration: timedelta

    @classmethod
    def parse(cls, text: str) -> "BiDuration":
        """
        Parse an offset expression.

        Parameters
        ----------
        text : str
            Offset such as ``"5h 2m"``, ``"in 5h 2m"`` or ``"5h 2m ago"``.

        Returns
        -------
        BiDuration
            Parsed offset.

        Raises
        ------
        BiDurationParseError
            If the direction markers conflict, the body is not a duration, or
            the magnitude cannot be represented.

        Examples
        --------
        >>> BiDuration.parse("5h 2m 3s ago").duration
        datetime.timedelta(days=-1, seconds=68277)
        >>> BiDuration.parse("in 90s") == BiDuration.parse("1m 30s")
        True
        """
        direction, body = _split_direction(text)
        nanos = parse_duration_nanos(body)
        if nanos > MAX_NANOS:
            raise OutOfRangeError(text)
        if direction is Direction.BACKWARD:
            nanos = -nanos
        try:
            return cls(_timedelta_from_nanos(nanos))
        except OverflowError as exc:
            raise OutOfRangeError(text) from exc

    @classmethod
    def from_nanoseconds(cls, nanos: int) -> "BiDuration":
        """
        Build an offset from a signed nanosecond count, clamping to range.
        """
        return cls(_timedelta_from_nanos(max(-MAX_NANOS, min(MAX_NANOS, nanos))))

    @property
    def direction(self) -> Direction:
        if self.duration < timedelta(0):
            return Direction.BACKWARD
        return Direction.FORWARD

    @property
    def nanoseconds(self) -> int:
        return (self.duration // timedelta(microseconds=1)) * NANOS_PER_MICRO

    @property
    def magnitude_nanoseconds(self) -> int:
        return abs(self.nanoseconds)

    def relative_to(self, moment: datetime) -> datetime:
        """
        Shift a moment by this offset in elapsed time.

        Aware moments are shifted in UTC and returned in their own zone, so
        offsets across a DST change keep their real length.

        Raises
        ------
        OutOfRangeError
            If the shifted moment is outside the supported calendar.
        """
        try:
            if moment.tzinfo is None:
                return moment + self.duration
            shifted = moment.astimezone(timezone.utc) + self.duration
            return shifted.astimezone(moment.tzinfo)
        except OverflowError as exc:
            raise OutOfRangeError(self.to_friendly_string()) from exc

    def _directed(self, body: str) -> str:
        if self.direction is Direction.BACKWARD:
            return f"{body} {BACKWARD_TOKEN}"
        return f"{FORWARD_TOKEN} {body}"

    def to_exact_string(self) -> str:
        return format_duration_nanos(self.magnitude_nanoseconds)

    def to_friendly_string(self) -> str:
        """
        Render the offset with the duration grammar and a direction marker.

        Examples
        --------
        >>> BiDuration.parse("24d 12h 6m 3s").to_friendly_string()
        'in 24days 12h 6m 3s'
        >>> BiDuration.parse("24d 12h 6m 3s ago").to_friendly_string()
        '24days 12h 6m 3s ago'
        >>> BiDuration(timedelta(0)).to_friendly_string()
        'in 0s'
        """
        return self._directed(self.to_exact_string())

    def to_friendly_hours_string(self) -> str:
        return format_hours_minutes(self.nanoseconds)

    def to_friendly_relative_string(self) -> str:
        """
        Render the rounded offset with a direction marker.

        Examples
        --------
        >>> BiDuration(timedelta(minutes=-100)).to_friendly_relative_string()
        '1 hour 40 minutes ago'
        """
        return self._directed(self.to_friendly_hours_string())

    def __str__(self) -> str:
        return self.to_friendly_string()
