"""
Daily and weekly hour reports derived from the clock log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .config import Config
from .entry_log import Entry, EntryLog, EntryType
from .selectors import Month, MonthRange

logger = logging.getLogger(__name__)


class ReportPeriod(Enum):
    DAY = "day"
    WEEK = "week"

    @property
    def length(self) -> timedelta:
        return timedelta(days=1) if self is ReportPeriod.DAY else timedelta(weeks=1)

    def start_of(self, day: date) -> date:
        """
        Return the first day of the period containing ``day``.

        Weeks start on Monday.

        Examples
        --------
        >>> ReportPeriod.WEEK.start_of(date(2024, 5, 3))
        datetime.date(2024, 4, 29)
        >>> ReportPeriod.DAY.start_of(date(2024, 5, 3))
        datetime.date(2024, 5, 3)
        """
        if self is ReportPeriod.DAY:
            return day
        return day - timedelta(days=day.weekday())


@dataclass(frozen=True)
class Shift:
    """
    Completed clock-in/clock-out pair, in local time.
    """

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end.astimezone(timezone.utc) - self.start.astimezone(timezone.utc)


@dataclass(frozen=True)
class ReportBucket:
    """
    Aggregated shifts for one calendar period.

    Attributes
    ----------
    period_start : date
        First local day of the period.
    period_end : date
        First local day after the period.
    total_duration : timedelta
        Sum of shift durations.
    shift_count : int
        Number of shifts ending in the period.
    average_shift_duration : timedelta
        ``total_duration / shift_count``.
    """

    period_start: date
    period_end: date
    total_duration: timedelta
    shift_count: int
    average_shift_duration: timedelta


def _local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(0), tzinfo=tz)


def collect_shifts(entries: Iterable[Entry], tz: tzinfo) -> List[Shift]:
    """
    Pair every clock-out with the entry before it.

    Parameters
    ----------
    entries : Iterable[Entry]
        Log entries in any order.
    tz : tzinfo
        Zone the shifts are projected into.

    Returns
    -------
    List[Shift]
        Shifts ordered by end time. A clock-out with no earlier entry is
        skipped.
    """
    ordered = sorted(
        (Entry(entry.entry_type, entry.timestamp.astimezone(tz)) for entry in entries),
        key=lambda entry: entry.timestamp,
    )
    shifts: List[Shift] = []
    previous: Optional[Entry] = None
    for entry in ordered:
        if entry.entry_type is EntryType.CLOCK_OUT and previous is not None:
            shifts.append(Shift(start=previous.timestamp, end=entry.timestamp))
        previous = entry
    return shifts


def bucket_shifts(shifts: Iterable[Shift], period: ReportPeriod) -> List[ReportBucket]:
    """
    Group shifts by the local calendar period their end falls in.

    Parameters
    ----------
    shifts : Iterable[Shift]
        Shifts with local end times.
    period : ReportPeriod
        Day or Monday-start week.

    Returns
    -------
    List[ReportBucket]
        One bucket per period that has shifts, oldest first.
    """
    grouped: Dict[date, List[Shift]] = {}
    for shift in shifts:
        grouped.setdefault(period.start_of(shift.end.date()), []).append(shift)
    buckets: List[ReportBucket] = []
    for start in sorted(grouped):
        members = grouped[start]
        total = sum((shift.duration for shift in members), timedelta())
        buckets.append(
            ReportBucket(
                period_start=start,
                period_end=start + period.length,
                total_duration=total,
                shift_count=len(members),
                average_shift_duration=total / len(members),
            )
        )
    return buckets


def bucket_spills_into(bucket: ReportBucket, month: MonthRange, tz: tzinfo) -> bool:
    """
    Return True when a week bucket overlaps ``month``.

    A bucket is kept when it crosses the start of the month, crosses the end
    of the month, or starts inside it. Boundaries compare inclusively at the
    bucket end.
    """
    week_start = _local_midnight(bucket.period_start, tz)
    week_end = _local_midnight(bucket.period_end, tz)
    crosses_start = week_start < month.start and week_end >= month.start
    crosses_end = week_start < month.end and week_end >= month.end
    inside = month.start <= week_start < month.end
    return crosses_start or crosses_end or inside


def load_shifts(config: Config) -> List[Shift]:
    """
    Read every completed shift from the log.

    Raises
    ------
    MalformedLogError
        If the log has malformed records.
    """
    entries = EntryLog(config.log_path).read_all()
    shifts = collect_shifts(entries, config.timezone)
    logger.debug("Loaded %d shifts from %s", len(shifts), config.log_path)
    return shifts


def _local_now(config: Config, now: Optional[datetime]) -> datetime:
    return (now or datetime.now(config.timezone)).astimezone(config.timezone)


def daily_report(config: Config, now: Optional[datetime] = None) -> List[ReportBucket]:
    """
    Report each day of the current Monday-start week.

    Parameters
    ----------
    config : Config
        Runtime configuration.
    now : Optional[datetime], optional
        Reference time (default: the current time).

    Returns
    -------
    List[ReportBucket]
        Daily buckets for days with completed shifts.
    """
    local_now = _local_now(config, now)
    week_start = ReportPeriod.WEEK.start_of(local_now.date())
    week_end = week_start + ReportPeriod.WEEK.length
    shifts = [
        shift
        for shift in load_shifts(config)
        if week_start <= shift.end.date() < week_end
    ]
    return bucket_shifts(shifts, ReportPeriod.DAY)


def weekly_report(
    config: Config,
    month: Month = Month.CURRENT,
    spill_over: bool = False,
    now: Optional[datetime] = None,
) -> List[ReportBucket]:
    """
    Report Monday-start weeks for a month.

    Parameters
    ----------
    config : Config
        Runtime configuration.
    month : Month, optional
        Month selector; ``Month.ALL`` reports every week (default: current).
    spill_over : bool, optional
        Keep whole weeks that cross into or out of the month instead of
        dropping shifts outside it.
    now : Optional[datetime], optional
        Reference time that anchors relative month selectors.

    Returns
    -------
    List[ReportBucket]
        Weekly buckets, oldest first.
    """
    local_now = _local_now(config, now)
    month_range = month.resolve(local_now)
    shifts = load_shifts(config)
    if month_range is not None and not spill_over:
        shifts = [shift for shift in shifts if month_range.contains(shift.end)]
    buckets = bucket_shifts(shifts, ReportPeriod.WEEK)
    if month_range is not None and spill_over:
        buckets = [
            bucket
            for bucket in buckets
            if bucket_spills_into(bucket, month_range, config.timezone)
        ]
    logger.debug("Weekly report for %s: %d buckets", month, len(buckets))
    return buckets


def total_duration(buckets: Iterable[ReportBucket]) -> timedelta:
    return sum((bucket.total_duration for bucket in buckets), timedelta())
