"""
Plain-text rendering of clock status, entries and reports.
"""

from __future__ import annotations

import csv
import sys
from datetime import datetime, timezone, tzinfo
from typing import List, Optional, Sequence, Tuple

from .biduration import BiDuration
from .clock import ClockState, ClockStatus
from .entry_log import Entry
from .errors import LogAccessError
from .report import ReportBucket, ReportPeriod

PRETTY_TIME = "%I:%M:%S %p"
PRETTY_DATE = "%A, %d %B %Y"
SLIM_DATETIME = "%I:%M:%S %p %d %B %Y"
REPORT_DATE = "%d %B %Y"
STDOUT_DESTINATION = "-"

DAILY_COLUMNS = ("Date", "Total Hours", "Number of Shifts", "Avg. Shift Duration")
WEEKLY_COLUMNS = (
    "Week Of",
    "Total Hours",
    "Week End",
    "Number of Shifts",
    "Avg. Shift Duration",
)


def format_slim(value: datetime) -> str:
    return value.strftime(SLIM_DATETIME)


def format_pretty(value: datetime) -> str:
    """
    Render a timestamp with its zone abbreviation.

    Examples
    --------
    >>> format_pretty(datetime(2023, 5, 1, 9, 0, tzinfo=timezone.utc))
    '09:00:00 AM (UTC) on Monday, 01 May 2023'
    """
    return f"{value.strftime(PRETTY_TIME)} ({value.strftime('%Z')}) on {value.strftime(PRETTY_DATE)}"


def format_clocked_line(entry: Entry, offset: Optional[BiDuration] = None) -> str:
    line = f"Clocked {entry.entry_type} @ {format_pretty(entry.timestamp)}"
    if offset is not None:
        line += f" ({offset.to_friendly_string()})"
    return line


def format_entry_line(entry: Entry, tz: Optional[tzinfo] = None) -> str:
    timestamp = entry.timestamp.astimezone(tz) if tz is not None else entry.timestamp
    return f"{entry.entry_type.value:<3}  {format_slim(timestamp)}"


def format_status_lines(status: ClockStatus, now: Optional[datetime] = None) -> List[str]:
    """
    Render a clock status report.

    Parameters
    ----------
    status : ClockStatus
        Resolved status.
    now : Optional[datetime], optional
        Current time; when it differs from ``status.as_of`` the header names
        the query time and its distance from now.

    Returns
    -------
    List[str]
        Output lines.
    """
    if now is None or now == status.as_of:
        header = "Status Report:"
    else:
        elapsed = status.as_of.astimezone(timezone.utc) - now.astimezone(timezone.utc)
        distance = BiDuration(elapsed).to_friendly_relative_string()
        header = f"Status Report @ {format_slim(status.as_of)} ({distance}):"
    if status.state is ClockState.ENTRY:
        state_text = f"Clocked {status.active_kind}"
    elif status.state is ClockState.NO_ENTRIES:
        state_text = "Clocked out (no entries)"
    else:
        state_text = "Clocked out (no data file)"
    since = format_slim(status.since) if status.since else "N/A"
    until = format_slim(status.until) if status.until else "N/A"
    return [
        header,
        f"   Status: {state_text}",
        f"    Since: {since}",
        f"    Until: {until}",
    ]


def _format_span(value, exact: bool) -> str:
    offset = BiDuration(value)
    return offset.to_exact_string() if exact else offset.to_friendly_hours_string()


def report_rows(
    buckets: Sequence[ReportBucket],
    period: ReportPeriod,
    exact: bool = False,
) -> Tuple[Tuple[str, ...], List[List[str]]]:
    """
    Convert report buckets to display rows.

    Parameters
    ----------
    buckets : Sequence[ReportBucket]
        Report buckets.
    period : ReportPeriod
        Daily or weekly layout.
    exact : bool, optional
        Print exact durations instead of whole hours and minutes.

    Returns
    -------
    Tuple[Tuple[str, ...], List[List[str]]]
        Column names and string rows.
    """
    rows: List[List[str]] = []
    for bucket in buckets:
        total = _format_span(bucket.total_duration, exact)
        average = _format_span(bucket.average_shift_duration, exact)
        start = bucket.period_start.strftime(REPORT_DATE)
        if period is ReportPeriod.DAY:
            rows.append([start, total, str(bucket.shift_count), average])
        else:
            end = bucket.period_end.strftime(REPORT_DATE)
            rows.append([start, total, end, str(bucket.shift_count), average])
    columns = DAILY_COLUMNS if period is ReportPeriod.DAY else WEEKLY_COLUMNS
    return columns, rows


def format_table(columns: Sequence[str], rows: Sequence[Sequence[str]]) -> List[str]:
    """
    Render rows as an aligned text table.

    Examples
    --------
    >>> format_table(("Day", "Hours"), [["Mon", "8 hours"]])
    ['Day | Hours  ', '----+--------', 'Mon | 8 hours']
    """
    widths = [len(column) for column in columns]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))

    def render(cells: Sequence[str]) -> str:
        return " | ".join(cell.ljust(widths[index]) for index, cell in enumerate(cells))

    lines = [render(columns), "-+-".join("-" * width for width in widths)]
    lines.extend(render(row) for row in rows)
    return lines


def write_report_csv(
    columns: Sequence[str],
    rows: Sequence[Sequence[str]],
    destination: str,
) -> None:
    """
    Write report rows as CSV to a file path or ``-`` for stdout.

    Raises
    ------
    LogAccessError
        If the destination file cannot be written.
    """
    if destination == STDOUT_DESTINATION:
        writer = csv.writer(sys.stdout, lineterminator="\n")
        writer.writerow(columns)
        writer.writerows(rows)
        return
    try:
        with open(destination, "w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow(columns)
            writer.writerows(rows)
    except OSError as exc:
        raise LogAccessError(
            f"Failed to write report to {destination}: {exc.strerror or exc}",
            destination,
        ) from exc
