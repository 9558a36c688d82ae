"""
Command runners behind the punchcard CLI.

Each ``run_*`` function prints its output and returns a process exit code.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .biduration import BiDuration
from .clock import add_entry, current_time, effective_timestamp, resolve_status, toggle_entry
from .config import Config
from .display import (
    STDOUT_DESTINATION,
    format_clocked_line,
    format_entry_line,
    format_pretty,
    format_status_lines,
    format_table,
    report_rows,
    write_report_csv,
)
from .entry_log import EntryLog, EntryType, format_timestamp
from .errors import PunchcardError
from .generate import DEFAULT_COUNT, generate_entries, write_entries
from .report import ReportPeriod, daily_report, total_duration, weekly_report
from .selectors import Month, Quantity

logger = logging.getLogger(__name__)

HUMAN_TIMESTAMP = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class AppState:
    """
    Global CLI options, resolved into a Config on first use.
    """

    data_folder: Optional[Path] = None
    timezone: Optional[str] = None

    def load(self) -> Config:
        return Config.load(data_folder=self.data_folder, timezone=self.timezone)


def report_error(exc: PunchcardError) -> None:
    print(f"punchcard: {exc}", file=sys.stderr)
    if exc.hint:
        print(f"punchcard: hint: {exc.hint}", file=sys.stderr)


def _parse_offset(text: Optional[str]) -> Optional[BiDuration]:
    if text is None:
        return None
    return BiDuration.parse(text)


def run_clock(state: AppState, kind: Optional[EntryType], offset: Optional[str]) -> int:
    """
    Clock in, clock out, or toggle (``kind`` is None).
    """
    try:
        config = state.load()
        parsed = _parse_offset(offset)
        config.ensure_data_folder()
        if kind is None:
            entry = toggle_entry(config, parsed)
        else:
            entry = add_entry(config, kind, parsed)
    except PunchcardError as exc:
        report_error(exc)
        return 1
    print(format_clocked_line(entry, parsed))
    return 0


def run_status(state: AppState, offset: Optional[str]) -> int:
    try:
        config = state.load()
        parsed = _parse_offset(offset)
        now = current_time(config)
        status = resolve_status(config, effective_timestamp(config, parsed, now))
    except PunchcardError as exc:
        report_error(exc)
        return 1
    for line in format_status_lines(status, now if parsed is not None else None):
        print(line)
    return 0


def run_report(
    state: AppState,
    *,
    period: ReportPeriod,
    month: str = "current",
    spill_over: bool = False,
    output_file: Optional[str] = None,
    just_table: bool = False,
    exact: bool = False,
    num_rows: str = "10",
) -> int:
    """
    Print a daily or weekly report and optionally export it as CSV.
    """
    try:
        config = state.load()
        quantity = Quantity.parse(num_rows)
        now = current_time(config)
        if period is ReportPeriod.DAY:
            selected_month = None
            buckets = daily_report(config, now=now)
        else:
            selected_month = Month.parse(month)
            buckets = weekly_report(config, selected_month, spill_over, now=now)
    except PunchcardError as exc:
        report_error(exc)
        return 1

    columns, rows = report_rows(buckets, period, exact=exact)
    using_stdout = output_file == STDOUT_DESTINATION
    if not just_table and not using_stdout:
        print(f"Report generated at {format_pretty(now)}:")
        if selected_month is not None:
            print(f"Month: {selected_month.label(now)}")
        print()
    if not using_stdout:
        if rows:
            for line in format_table(columns, quantity.tail(rows)):
                print(line)
        else:
            print("No completed shifts found.")
        if not just_table and rows:
            print()
            print(f"Total: {BiDuration(total_duration(buckets)).to_friendly_hours_string()}")
    if output_file:
        try:
            write_report_csv(columns, rows, output_file)
        except PunchcardError as exc:
            report_error(exc)
            return 1
    return 0


def run_entries(state: AppState, num_rows: str = "10") -> int:
    try:
        config = state.load()
        quantity = Quantity.parse(num_rows)
        entries = list(EntryLog(config.log_path).read_all())
    except PunchcardError as exc:
        report_error(exc)
        return 1
    if not entries:
        print("No clock entries found.")
        return 0
    for entry in quantity.tail(entries):
        print(format_entry_line(entry, config.timezone))
    return 0


def run_now(state: AppState, human_readable: bool = False) -> int:
    try:
        config = state.load()
    except PunchcardError as exc:
        report_error(exc)
        return 1
    now = current_time(config)
    print(now.strftime(HUMAN_TIMESTAMP) if human_readable else format_timestamp(now))
    return 0


def run_generate(
    state: AppState,
    count: Optional[int] = None,
    output_file: Optional[str] = None,
    force: bool = False,
) -> int:
    """
    Write a synthetic log to the data folder or ``output_file``.
    """
    try:
        config = state.load()
        if output_file is None:
            if config.log_path.exists() and not force:
                raise PunchcardError(
                    f"Refusing to overwrite existing log {config.log_path}.",
                    hint="Pass --force or choose --output-file.",
                )
            config.ensure_data_folder()
            destination = str(config.log_path)
        else:
            destination = output_file
        entries = generate_entries(current_time(config), count or DEFAULT_COUNT)
        written = write_entries(entries, destination)
    except PunchcardError as exc:
        report_error(exc)
        return 1
    logger.debug("Generated %d entries into %s", written, destination)
    if destination != STDOUT_DESTINATION:
        print(f"Generated {written} entries in {destination}")
    return 0
