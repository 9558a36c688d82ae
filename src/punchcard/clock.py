"""
Clock status resolution and the continuity guard for new entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .biduration import BiDuration
from .config import Config
from .entry_log import Entry, EntryLog, EntryType
from .errors import PunchcardError

logger = logging.getLogger(__name__)


class ClockState(Enum):
    NO_DATA_FILE = "no data file"
    NO_ENTRIES = "no entries"
    ENTRY = "entry"


@dataclass(frozen=True)
class ClockStatus:
    """
    Clock state at a moment, derived from the log.

    Attributes
    ----------
    state : ClockState
        Whether the log is missing, has no entries before ``as_of``, or has one.
    active_kind : Optional[EntryType]
        Kind of the last entry at or before ``as_of``.
    as_of : datetime
        Query time.
    since : Optional[datetime]
        Timestamp of the last entry at or before ``as_of``.
    until : Optional[datetime]
        Timestamp of the first entry after ``as_of``.
    """

    state: ClockState
    active_kind: Optional[EntryType]
    as_of: datetime
    since: Optional[datetime] = None
    until: Optional[datetime] = None

    @property
    def is_clocked_in(self) -> bool:
        return self.active_kind is EntryType.CLOCK_IN


class ClockError(PunchcardError):
    """Base class for rejected clock entries."""


class ContinuityViolationError(ClockError):
    """
    Raised when a later entry already exists in the log.

    Attributes
    ----------
    timestamp : datetime
        Requested entry time.
    next_entry : datetime
        Timestamp of the existing later entry.
    """

    def __init__(self, timestamp: datetime, next_entry: datetime) -> None:
        super().__init__(
            "Adding this entry would violate continuity! "
            "There is an entry after the given time.\n"
            f"Time given: {timestamp.isoformat()}\n"
            f"Next entry: {next_entry.isoformat()}",
            hint="Choose an offset after the next entry.",
        )
        self.timestamp = timestamp
        self.next_entry = next_entry


class AlreadyInStateError(ClockError):
    """
    Raised when the requested kind matches the current state.

    Attributes
    ----------
    kind : EntryType
        Requested (and current) entry kind.
    since : Optional[datetime]
        When the current state began.
    """

    def __init__(self, kind: EntryType, since: Optional[datetime]) -> None:
        message = f"Already clocked {kind}"
        if since is not None:
            message += f" since {since.isoformat()}"
        super().__init__(message)
        self.kind = kind
        self.since = since


def current_time(config: Config) -> datetime:
    return datetime.now(config.timezone)


def effective_timestamp(
    config: Config,
    offset: Optional[BiDuration] = None,
    now: Optional[datetime] = None,
) -> datetime:
    """
    Return ``now`` shifted by ``offset`` in the configured timezone.

    Parameters
    ----------
    config : Config
        Runtime configuration.
    offset : Optional[BiDuration], optional
        Offset from now; omitted means exactly now.
    now : Optional[datetime], optional
        Reference time (default: the current time).

    Returns
    -------
    datetime
        Aware timestamp in ``config.timezone``.
    """
    moment = (now or current_time(config)).astimezone(config.timezone)
    if offset is None:
        return moment
    return offset.relative_to(moment).astimezone(config.timezone)


def resolve_status(config: Config, at: Optional[datetime] = None) -> ClockStatus:
    """
    Resolve the clock status at a moment.

    Parameters
    ----------
    config : Config
        Runtime configuration.
    at : Optional[datetime], optional
        Query time, past or future (default: now).

    Returns
    -------
    ClockStatus
        Derived status; the log is never modified.

    Raises
    ------
    MalformedLogError
        If the log has malformed records.
    """
    as_of = at if at is not None else current_time(config)
    log = EntryLog(config.log_path)
    if not log.exists():
        logger.debug("No log at %s", log.path)
        return ClockStatus(state=ClockState.NO_DATA_FILE, active_kind=None, as_of=as_of)

    boundary = log.last_before(as_of)
    until = boundary.next_entry.timestamp if boundary.next_entry else None
    if boundary.entry is None:
        return ClockStatus(
            state=ClockState.NO_ENTRIES,
            active_kind=None,
            as_of=as_of,
            until=until,
        )
    status = ClockStatus(
        state=ClockState.ENTRY,
        active_kind=boundary.entry.entry_type,
        as_of=as_of,
        since=boundary.entry.timestamp,
        until=until,
    )
    logger.debug("Status at %s: %s", as_of, status)
    return status


def _append_checked(
    config: Config,
    kind: EntryType,
    timestamp: datetime,
    status: ClockStatus,
) -> Entry:
    # Backdating before the latest entry would need the whole log re-checked.
    if status.until is not None:
        raise ContinuityViolationError(timestamp, status.until)
    if status.active_kind is kind:
        raise AlreadyInStateError(kind, status.since)
    entry = Entry(entry_type=kind, timestamp=timestamp)
    EntryLog(config.log_path).append(entry)
    return entry


def add_entry(
    config: Config,
    kind: EntryType,
    offset: Optional[BiDuration] = None,
    now: Optional[datetime] = None,
) -> Entry:
    """
    Clock in or out, enforcing alternation and append-only continuity.

    Parameters
    ----------
    config : Config
        Runtime configuration.
    kind : EntryType
        Entry kind to record.
    offset : Optional[BiDuration], optional
        Offset from now for the entry time.
    now : Optional[datetime], optional
        Reference time (default: the current time).

    Returns
    -------
    Entry
        The appended entry.

    Raises
    ------
    ContinuityViolationError
        If the log already has an entry after the requested time.
    AlreadyInStateError
        If the clock is already in the requested state.
    MalformedLogError
        If the log has malformed records.
    """
    timestamp = effective_timestamp(config, offset, now)
    status = resolve_status(config, timestamp)
    return _append_checked(config, kind, timestamp, status)


def clock_in(config: Config, offset: Optional[BiDuration] = None, now: Optional[datetime] = None) -> Entry:
    return add_entry(config, EntryType.CLOCK_IN, offset, now)


def clock_out(config: Config, offset: Optional[BiDuration] = None, now: Optional[datetime] = None) -> Entry:
    return add_entry(config, EntryType.CLOCK_OUT, offset, now)


def toggle_entry(
    config: Config,
    offset: Optional[BiDuration] = None,
    now: Optional[datetime] = None,
) -> Entry:
    """
    Record the opposite of the current state at the requested time.

    The status is resolved once at the effective timestamp and the same
    status is used for the continuity checks.
    """
    timestamp = effective_timestamp(config, offset, now)
    status = resolve_status(config, timestamp)
    kind = EntryType.CLOCK_OUT if status.is_clocked_in else EntryType.CLOCK_IN
    return _append_checked(config, kind, timestamp, status)
