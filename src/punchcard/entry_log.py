"""
Append-only CSV storage for clock entries.

The log is a header line (``entry_type,timestamp``) followed by one
``in``/``out`` record per line. Records are kept in insertion order; the
clock commands only ever append after the chronologically last record.

There is no file locking. Two processes appending at the same moment can
interleave their writes, so the log must only be written by one process at
a time.
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from .errors import LogAccessError, LogError

logger = logging.getLogger(__name__)

HEADER = ("entry_type", "timestamp")

_TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d{1,9}))?"
    r"(Z|[+-]\d{2}:?\d{2}(?::?\d{2})?)$"
)
# Longest record text kept in a problem report.
_PROBLEM_TEXT_LIMIT = 80


class EntryType(Enum):
    CLOCK_IN = "in"
    CLOCK_OUT = "out"

    @property
    def opposite(self) -> "EntryType":
        if self is EntryType.CLOCK_IN:
            return EntryType.CLOCK_OUT
        return EntryType.CLOCK_IN

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Entry:
    """
    One clock event.

    Attributes
    ----------
    entry_type : EntryType
        Whether the event starts or ends a shift.
    timestamp : datetime
        Aware timestamp of the event.
    """

    entry_type: EntryType
    timestamp: datetime


@dataclass(frozen=True)
class LogProblem:
    """
    A record that could not be parsed.

    Attributes
    ----------
    line_number : int
        1-based line number in the log file.
    text : str
        Raw record text.
    reason : str
        Why the record was rejected.
    """

    line_number: int
    text: str
    reason: str

    def __str__(self) -> str:
        return f"line {self.line_number}: {self.reason}: {self.text!r}"


class MalformedLogError(LogError):
    """
    Raised when the log contains records that cannot be parsed.

    Attributes
    ----------
    path : Path
        Log file path.
    problems : List[LogProblem]
        Every rejected record.
    """

    def __init__(self, path: Path, problems: Sequence[LogProblem]) -> None:
        super().__init__(
            f"There are {len(problems)} malformed entries in the CSV file {path}. "
            "Please fix them manually and try again.",
            hint="If you have not manually modified this file, please report this issue.",
        )
        self.path = path
        self.problems = list(problems)


@dataclass(frozen=True)
class Boundary:
    """
    Entries around a moment, found by a single pass in file order.

    Attributes
    ----------
    entry : Optional[Entry]
        Last entry at or before the moment.
    next_entry : Optional[Entry]
        First entry strictly after the moment.
    """

    entry: Optional[Entry]
    next_entry: Optional[Entry]


def format_timestamp(value: datetime) -> str:
    """
    Format an aware datetime for storage.

    Parameters
    ----------
    value : datetime
        Aware datetime.

    Returns
    -------
    str
        Timestamp with nanosecond precision and a numeric offset.

    Examples
    --------
    >>> format_timestamp(datetime(2023, 5, 1, 9, 0, tzinfo=timezone(timedelta(hours=-7))))
    '2023-05-01T09:00:00.000000000-0700'
    """
    if value.tzinfo is None:
        raise ValueError("Log timestamps must be timezone-aware.")
    nanos = value.microsecond * 1000
    # %z adds seconds for local mean time offsets, e.g. -075258.
    return f"{value.year:04d}-{value:%m-%dT%H:%M:%S}.{nanos:09d}{value:%z}"


def parse_timestamp(text: str) -> datetime:
    """
    Parse a stored timestamp.

    Parameters
    ----------
    text : str
        Timestamp with an explicit offset; fractional seconds are optional
        and truncated to microseconds.

    Returns
    -------
    datetime
        Aware datetime carrying the stored offset.

    Raises
    ------
    ValueError
        If the text is not a valid offset timestamp.

    Examples
    --------
    >>> parse_timestamp("2023-05-01T09:00:00.123456789-0700").isoformat()
    '2023-05-01T09:00:00.123456-07:00'
    >>> parse_timestamp("2023-05-01T16:00:00Z").isoformat()
    '2023-05-01T16:00:00+00:00'
    """
    match = _TIMESTAMP_PATTERN.match(text.strip())
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    year, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    fraction = (match.group(7) or "").ljust(9, "0")
    offset_text = match.group(8)
    if offset_text == "Z":
        tz = timezone.utc
    else:
        digits = offset_text[1:].replace(":", "")
        offset = timedelta(
            hours=int(digits[:2]),
            minutes=int(digits[2:4]),
            seconds=int(digits[4:] or 0),
        )
        if offset >= timedelta(hours=24):
            raise ValueError(f"invalid offset {offset_text!r}")
        tz = timezone(-offset if offset_text[0] == "-" else offset)
    return datetime(
        year,
        month,
        day,
        hour,
        minute,
        second,
        int(fraction) // 1000,
        tzinfo=tz,
    )


def parse_record(row: Sequence[str]) -> Entry:
    """
    Parse one CSV record into an entry.

    Raises
    ------
    ValueError
        If the record does not have exactly two valid fields.
    """
    if len(row) != len(HEADER):
        raise ValueError(f"expected {len(HEADER)} fields, found {len(row)}")
    kind_text, timestamp_text = (field.strip() for field in row)
    try:
        entry_type = EntryType(kind_text)
    except ValueError:
        raise ValueError(f"unknown entry type {kind_text!r}") from None
    return Entry(entry_type=entry_type, timestamp=parse_timestamp(timestamp_text))


def _split_line(line: str) -> List[str]:
    """
    Split one physical log line into CSV fields.

    Raises
    ------
    ValueError
        If the line holds undecodable bytes or is not a readable CSV record.
    """
    try:
        line.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("line is not valid UTF-8") from None
    try:
        return next(csv.reader([line]), [])
    except csv.Error as exc:
        raise ValueError(f"unreadable CSV record: {exc}") from None


def _display_text(line: str) -> str:
    """
    Printable, clipped copy of a log line for problem reports.

    Examples
    --------
    >>> _display_text("in,\\udcff") == "in,\\ufffd"
    True
    >>> len(_display_text("x" * 500))
    83
    """
    text = line.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    if len(text) > _PROBLEM_TEXT_LIMIT:
        return text[:_PROBLEM_TEXT_LIMIT] + "..."
    return text


class LogEntries:
    """
    Lazy, restartable view over a validated log.

    Every iteration re-reads the file from the start.
    """

    def __init__(self, log: "EntryLog") -> None:
        self._log = log

    def __iter__(self) -> Iterator[Entry]:
        return self._log.iter_entries()


class EntryLog:
    """
    Append-only CSV log of clock entries.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def _iter_parsed(self) -> Iterator[Union[Entry, LogProblem]]:
        if not self.exists():
            return
        try:
            # Undecodable bytes survive as surrogates and are reported per line.
            handle = self.path.open("r", encoding="utf-8", errors="surrogateescape", newline="")
        except OSError as exc:
            raise LogAccessError(
                f"Failed to read CSV file {self.path}: {exc.strerror or exc}",
                self.path,
            ) from exc
        with handle:
            header_seen = False
            for line_number, raw in enumerate(handle, start=1):
                line = raw.rstrip("\r\n")
                text = _display_text(line)
                try:
                    row = _split_line(line)
                except ValueError as exc:
                    yield LogProblem(line_number, text, str(exc))
                    if not header_seen:
                        return
                    continue
                if not any(field.strip() for field in row):
                    continue
                if not header_seen:
                    header_seen = True
                    if tuple(field.strip() for field in row) != HEADER:
                        yield LogProblem(
                            line_number,
                            text,
                            f"expected header {','.join(HEADER)!r}",
                        )
                        return
                    continue
                try:
                    yield parse_record(row)
                except ValueError as exc:
                    yield LogProblem(line_number, text, str(exc))

    def problems(self) -> List[LogProblem]:
        """
        Return every malformed record in the log.
        """
        return [item for item in self._iter_parsed() if isinstance(item, LogProblem)]

    def validate(self) -> None:
        """
        Fail closed when the log has malformed records.

        Raises
        ------
        MalformedLogError
            If any record cannot be parsed.
        """
        problems = self.problems()
        if problems:
            logger.error("Malformed CSV entries in %s:", self.path)
            for problem in problems:
                logger.error("%s", problem)
            raise MalformedLogError(self.path, problems)

    def iter_entries(self) -> Iterator[Entry]:
        for item in self._iter_parsed():
            if isinstance(item, LogProblem):
                raise MalformedLogError(self.path, [item])
            yield item

    def read_all(self) -> LogEntries:
        """
        Validate the log and return its entries in file order.

        Returns
        -------
        LogEntries
            Restartable iterable of entries; empty when the file is missing.

        Raises
        ------
        MalformedLogError
            If any record cannot be parsed.
        """
        self.validate()
        return LogEntries(self)

    def append(self, entry: Entry) -> None:
        """
        Append one entry, creating the file and header when missing.

        Raises
        ------
        LogAccessError
            If the folder or file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            write_header = not self.exists() or self.path.stat().st_size == 0
            needs_newline = not write_header and not self._ends_with_newline()
            with self.path.open("a", encoding="utf-8", newline="") as handle:
                if needs_newline:
                    handle.write("\n")
                writer = csv.writer(handle, lineterminator="\n")
                if write_header:
                    writer.writerow(HEADER)
                writer.writerow([entry.entry_type.value, format_timestamp(entry.timestamp)])
        except OSError as exc:
            raise LogAccessError(
                f"Failed to write to CSV file {self.path}: {exc.strerror or exc}",
                self.path,
            ) from exc
        logger.debug("Appended %s entry at %s to %s", entry.entry_type, entry.timestamp, self.path)

    def _ends_with_newline(self) -> bool:
        with self.path.open("rb") as handle:
            handle.seek(-1, 2)
            return handle.read(1) in (b"\n", b"\r")

    def last_before(self, moment: datetime) -> Boundary:
        """
        Find the entries around ``moment`` in one pass over the file.

        Parameters
        ----------
        moment : datetime
            Aware query time.

        Returns
        -------
        Boundary
            Last entry at or before ``moment`` and the first entry after it.
        """
        current: Optional[Entry] = None
        for entry in self.read_all():
            if entry.timestamp > moment:
                return Boundary(entry=current, next_entry=entry)
            current = entry
        return Boundary(entry=current, next_entry=None)
