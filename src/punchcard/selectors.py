"""
Row-count and month selectors used by reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from enum import Enum
from typing import ClassVar, List, Optional, Sequence, TypeVar

from .errors import PunchcardError

T = TypeVar("T")

MONTH_NAMES = [
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
]


class SelectorError(PunchcardError):
    """Base class for selector parsing failures."""


class QuantityError(SelectorError):
    pass


class QuantityZeroError(QuantityError):
    def __init__(self) -> None:
        super().__init__("Quantity cannot be zero")


class QuantityUnknownError(QuantityError):
    def __init__(self, value: str) -> None:
        super().__init__(f'Unknown value {value!r}. Must be a positive integer or "all"')
        self.value = value


class MonthError(SelectorError):
    pass


class InvalidMonthNumberError(MonthError):
    def __init__(self, number: int) -> None:
        super().__init__(f"Month {number} is not a valid month number")
        self.number = number


class UnknownMonthError(MonthError):
    def __init__(self, value: str) -> None:
        super().__init__(
            f"Unknown month {value}. Expected a month number, name, "
            "or 'current', 'previous', or 'next'"
        )
        self.value = value


@dataclass(frozen=True)
class Quantity:
    """
    Either every item (``count is None``) or a positive count.
    """

    count: Optional[int] = None

    # Shared "all" instance, assigned below the class.
    ALL: ClassVar["Quantity"]

    @classmethod
    def parse(cls, value: str) -> "Quantity":
        """
        Parse ``"all"`` or a positive integer.

        Examples
        --------
        >>> Quantity.parse("ALL")
        Quantity(count=None)
        >>> Quantity.parse("50")
        Quantity(count=50)
        """
        text = value.strip()
        if text.isascii() and text.isdigit():
            number = int(text)
            if number == 0:
                raise QuantityZeroError()
            return cls(number)
        if text.lower() == "all":
            return cls(None)
        raise QuantityUnknownError(value)

    @property
    def is_all(self) -> bool:
        return self.count is None

    def tail(self, items: Sequence[T]) -> List[T]:
        """
        Return the last ``count`` items, or all of them.

        Examples
        --------
        >>> Quantity(2).tail([1, 2, 3])
        [2, 3]
        >>> Quantity().tail([1, 2, 3])
        [1, 2, 3]
        """
        if self.count is None:
            return list(items)
        return list(items[-self.count:])

    def __str__(self) -> str:
        return "all" if self.count is None else str(self.count)


Quantity.ALL = Quantity(None)


@dataclass(frozen=True)
class MonthRange:
    """
    Half-open ``[start, end)`` span of local midnights.
    """

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def _month_start(year: int, month: int, tz: tzinfo) -> datetime:
    return datetime.combine(date(year, month, 1), time(0), tzinfo=tz)


def _shift_month(year: int, month: int, delta: int) -> tuple:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


class Month(Enum):
    CURRENT = "current"
    PREVIOUS = "previous"
    NEXT = "next"
    ALL = "all"
    JANUARY = "january"
    FEBRUARY = "february"
    MARCH = "march"
    APRIL = "april"
    MAY = "may"
    JUNE = "june"
    JULY = "july"
    AUGUST = "august"
    SEPTEMBER = "september"
    OCTOBER = "october"
    NOVEMBER = "november"
    DECEMBER = "december"

    @classmethod
    def parse(cls, value: str) -> "Month":
        """
        Parse a month number, month name or relative keyword.

        Examples
        --------
        >>> Month.parse("2")
        <Month.FEBRUARY: 'february'>
        >>> Month.parse("August")
        <Month.AUGUST: 'august'>
        >>> Month.parse("previous")
        <Month.PREVIOUS: 'previous'>
        """
        text = value.strip()
        if text.isascii() and text.isdigit() and int(text) <= 255:
            number = int(text)
            if not 1 <= number <= 12:
                raise InvalidMonthNumberError(number)
            return cls(MONTH_NAMES[number - 1])
        try:
            return cls(text.lower())
        except ValueError:
            raise UnknownMonthError(value) from None

    @property
    def is_relative(self) -> bool:
        return self in (Month.CURRENT, Month.PREVIOUS, Month.NEXT)

    def year_month(self, now: datetime) -> Optional[tuple]:
        """
        Return the ``(year, month)`` this selector names relative to ``now``.

        Explicit month names resolve within the year of ``now``.
        """
        if self is Month.ALL:
            return None
        if self is Month.CURRENT:
            return now.year, now.month
        if self is Month.PREVIOUS:
            return _shift_month(now.year, now.month, -1)
        if self is Month.NEXT:
            return _shift_month(now.year, now.month, 1)
        return now.year, MONTH_NAMES.index(self.value) + 1

    def resolve(self, now: datetime) -> Optional[MonthRange]:
        """
        Resolve the selector to a local ``[start, end)`` range.

        Parameters
        ----------
        now : datetime
            Aware reference time; its tzinfo anchors the month boundaries.

        Returns
        -------
        Optional[MonthRange]
            Month span, or None for ``Month.ALL``.
        """
        resolved = self.year_month(now)
        if resolved is None:
            return None
        year, month = resolved
        next_year, next_month = _shift_month(year, month, 1)
        return MonthRange(
            start=_month_start(year, month, now.tzinfo),
            end=_month_start(next_year, next_month, now.tzinfo),
        )

    def label(self, now: datetime) -> str:
        """
        Render the selector for report headers.

        Examples
        --------
        >>> Month.CURRENT.label(datetime(2024, 5, 3))
        'May (current)'
        >>> Month.MARCH.label(datetime(2024, 5, 3))
        'March'
        """
        resolved = self.year_month(now)
        if resolved is None:
            return "all"
        name = MONTH_NAMES[resolved[1] - 1].capitalize()
        if self.is_relative:
            return f"{name} ({self.value})"
        return name

    def __str__(self) -> str:
        return self.value
