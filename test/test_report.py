"""
Tests for daily and weekly report aggregation.
"""

from __future__ import annotations

import doctest
from datetime import date, datetime, timedelta, timezone

import pytest

import punchcard.report as report
from punchcard.entry_log import Entry, EntryType, MalformedLogError
from punchcard.report import (
    ReportPeriod,
    bucket_shifts,
    collect_shifts,
    daily_report,
    total_duration,
    weekly_report,
)
from punchcard.selectors import Month

from conftest import LOS_ANGELES, local, write_log


def shift(start: datetime, hours: float):
    return [("in", start), ("out", start + timedelta(hours=hours))]


def as_entries(rows):
    return [Entry(EntryType(kind), moment) for kind, moment in rows]


@pytest.mark.unit
def test_collect_shifts_pairs_outs_with_previous_entry():
    """
    Ensure each clock-out closes a shift and leading clock-outs are skipped.

    Returns
    -------
    None
        This test asserts shift pairing.
    """
    entries = [
        Entry(EntryType.CLOCK_OUT, local(2024, 5, 1, 8)),
        Entry(EntryType.CLOCK_IN, local(2024, 5, 1, 9)),
        Entry(EntryType.CLOCK_OUT, local(2024, 5, 1, 12)),
        Entry(EntryType.CLOCK_IN, local(2024, 5, 1, 13)),
    ]
    shifts = collect_shifts(entries, LOS_ANGELES)
    assert len(shifts) == 1
    assert shifts[0].start == local(2024, 5, 1, 9)
    assert shifts[0].duration == timedelta(hours=3)


@pytest.mark.unit
def test_collect_shifts_sorts_and_projects():
    """
    Ensure entries are sorted by time and projected into the report zone.

    Returns
    -------
    None
        This test asserts ordering and projection.
    """
    entries = [
        Entry(EntryType.CLOCK_OUT, datetime(2024, 5, 2, 0, 30, tzinfo=timezone.utc)),
        Entry(EntryType.CLOCK_IN, datetime(2024, 5, 1, 16, 0, tzinfo=timezone.utc)),
    ]
    shifts = collect_shifts(entries, LOS_ANGELES)
    assert shifts[0].end.tzinfo is LOS_ANGELES
    assert shifts[0].end.date() == date(2024, 5, 1)
    assert shifts[0].duration == timedelta(hours=8, minutes=30)


@pytest.mark.unit
def test_shift_duration_across_dst_uses_elapsed_time():
    """
    Ensure shifts spanning a DST change report real elapsed time.

    Returns
    -------
    None
        This test asserts elapsed durations.
    """
    entries = [
        Entry(EntryType.CLOCK_IN, local(2024, 3, 10, 0, 0)),
        Entry(EntryType.CLOCK_OUT, local(2024, 3, 10, 4, 0)),
    ]
    assert collect_shifts(entries, LOS_ANGELES)[0].duration == timedelta(hours=3)


@pytest.mark.unit
def test_bucket_shifts_totals_and_averages():
    """
    Ensure buckets total, count and average their shifts.

    Returns
    -------
    None
        This test asserts bucket aggregation.
    """
    entries = as_entries(
        shift(local(2024, 5, 28, 9), 3)
        + shift(local(2024, 5, 28, 13), 4)
        + shift(local(2024, 5, 27, 9), 8)
    )
    buckets = bucket_shifts(collect_shifts(entries, LOS_ANGELES), ReportPeriod.DAY)
    assert [bucket.period_start for bucket in buckets] == [date(2024, 5, 27), date(2024, 5, 28)]
    tuesday = buckets[1]
    assert tuesday.period_end == date(2024, 5, 29)
    assert tuesday.shift_count == 2
    assert tuesday.total_duration == timedelta(hours=7)
    assert tuesday.average_shift_duration == timedelta(hours=3, minutes=30)
    assert total_duration(buckets) == timedelta(hours=15)


@pytest.mark.unit
def test_daily_report_covers_current_week(config):
    """
    Ensure the daily report only includes the current Monday-start week.

    Returns
    -------
    None
        This test asserts the daily report window.
    """
    write_log(
        config,
        shift(local(2024, 5, 24, 9), 8)
        + shift(local(2024, 5, 27, 9), 8)
        + shift(local(2024, 5, 28, 9), 3)
        + shift(local(2024, 5, 28, 13), 4),
    )
    buckets = daily_report(config, now=local(2024, 5, 29, 12))
    assert [bucket.period_start for bucket in buckets] == [date(2024, 5, 27), date(2024, 5, 28)]
    assert [bucket.shift_count for bucket in buckets] == [1, 2]


@pytest.fixture
def month_boundary_log(config):
    write_log(
        config,
        shift(local(2024, 4, 17, 9), 8)
        + shift(local(2024, 4, 30, 9), 8)
        + shift(local(2024, 5, 2, 9), 6)
        + shift(local(2024, 5, 28, 9), 8)
        + shift(local(2024, 6, 1, 9), 2),
    )
    return config


@pytest.mark.unit
def test_weekly_report_without_spill_over(month_boundary_log):
    """
    Ensure shifts outside the month are dropped without spill-over.

    Returns
    -------
    None
        This test asserts month filtering.
    """
    buckets = weekly_report(month_boundary_log, Month.MAY, now=local(2024, 5, 15))
    assert [bucket.period_start for bucket in buckets] == [date(2024, 4, 29), date(2024, 5, 27)]
    assert [bucket.shift_count for bucket in buckets] == [1, 1]
    assert buckets[0].total_duration == timedelta(hours=6)
    assert buckets[1].period_end == date(2024, 6, 3)


@pytest.mark.unit
def test_weekly_report_with_spill_over(month_boundary_log):
    """
    Ensure whole boundary weeks are kept with spill-over.

    Returns
    -------
    None
        This test asserts spill-over weeks.
    """
    buckets = weekly_report(
        month_boundary_log,
        Month.CURRENT,
        spill_over=True,
        now=local(2024, 5, 15),
    )
    assert [bucket.period_start for bucket in buckets] == [date(2024, 4, 29), date(2024, 5, 27)]
    assert [bucket.shift_count for bucket in buckets] == [2, 2]
    assert buckets[0].total_duration == timedelta(hours=14)
    assert buckets[1].total_duration == timedelta(hours=10)


@pytest.mark.parametrize(
    ("month", "spill_over", "starts", "counts", "last_total"),
    [
        (Month.APRIL, False, [date(2024, 4, 15), date(2024, 4, 29)], [1, 1], timedelta(hours=8)),
        (Month.APRIL, True, [date(2024, 4, 15), date(2024, 4, 29)], [1, 2], timedelta(hours=14)),
        (Month.JUNE, False, [date(2024, 5, 27)], [1], timedelta(hours=2)),
        (Month.JUNE, True, [date(2024, 5, 27)], [2], timedelta(hours=10)),
    ],
)
@pytest.mark.unit
def test_weekly_report_neighbouring_months(
    month_boundary_log, month, spill_over, starts, counts, last_total
):
    """
    Ensure boundary weeks are shared correctly with the months around May.

    The week of 29 April closes April and the week of 27 May opens June, so
    each appears whole with spill-over and trimmed to the month without it.

    Returns
    -------
    None
        This test asserts spill-over at both ends of a month.
    """
    buckets = weekly_report(
        month_boundary_log,
        month,
        spill_over=spill_over,
        now=local(2024, 5, 15),
    )
    assert [bucket.period_start for bucket in buckets] == starts
    assert [bucket.shift_count for bucket in buckets] == counts
    assert buckets[-1].total_duration == last_total


@pytest.mark.unit
def test_weekly_report_all_months(month_boundary_log):
    """
    Ensure "all" reports every week with shifts.

    Returns
    -------
    None
        This test asserts unfiltered weekly reports.
    """
    buckets = weekly_report(month_boundary_log, Month.ALL, now=local(2024, 5, 15))
    assert [bucket.period_start for bucket in buckets] == [
        date(2024, 4, 15),
        date(2024, 4, 29),
        date(2024, 5, 27),
    ]


@pytest.mark.unit
def test_weekly_buckets_use_local_dates(config):
    """
    Ensure bucketing uses the local date of the shift end.

    Returns
    -------
    None
        This test asserts local calendar bucketing.
    """
    # 23:30 PDT on Sunday 10 March is already Monday in UTC.
    write_log(
        config,
        [
            ("in", datetime(2024, 3, 11, 1, 30, tzinfo=timezone.utc)),
            ("out", datetime(2024, 3, 11, 6, 30, tzinfo=timezone.utc)),
        ],
    )
    buckets = weekly_report(config, Month.ALL, now=local(2024, 3, 12))
    assert [bucket.period_start for bucket in buckets] == [date(2024, 3, 4)]


@pytest.mark.unit
def test_empty_log_reports_nothing(config):
    """
    Ensure missing logs produce empty reports.

    Returns
    -------
    None
        This test asserts empty reports.
    """
    assert weekly_report(config, now=local(2024, 5, 15)) == []
    assert daily_report(config, now=local(2024, 5, 15)) == []


@pytest.mark.unit
def test_malformed_log_fails_report(config):
    """
    Ensure reports refuse malformed logs.

    Returns
    -------
    None
        This test asserts fail-closed reports.
    """
    write_log(config, shift(local(2024, 5, 2, 9), 6) + ["in,yesterday"])
    with pytest.raises(MalformedLogError):
        weekly_report(config, now=local(2024, 5, 15))


@pytest.mark.unit
def test_report_doctest_examples():
    """
    Run doctest examples embedded in report docstrings.

    Returns
    -------
    None
        This test asserts doctest coverage for reports.
    """
    results = doctest.testmod(report)
    assert results.failed == 0
