"""
Tests for clock status resolution and guarded appends.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from punchcard.biduration import BiDuration
from punchcard.clock import (
    AlreadyInStateError,
    ClockState,
    ContinuityViolationError,
    add_entry,
    clock_in,
    clock_out,
    effective_timestamp,
    resolve_status,
    toggle_entry,
)
from punchcard.entry_log import EntryLog, EntryType, MalformedLogError

from conftest import local, write_log

T0 = local(2024, 3, 4, 9, 0)
T1 = local(2024, 3, 4, 17, 0)


@pytest.mark.unit
def test_status_without_log_file(config):
    """
    Ensure a missing log reports the no-data-file state.

    Returns
    -------
    None
        This test asserts the missing-log status.
    """
    status = resolve_status(config, T0)
    assert status.state is ClockState.NO_DATA_FILE
    assert not status.is_clocked_in
    assert status.since is None and status.until is None


@pytest.mark.unit
def test_status_with_header_only(config):
    """
    Ensure an empty log reports the no-entries state.

    Returns
    -------
    None
        This test asserts the empty-log status.
    """
    write_log(config, [])
    status = resolve_status(config, T0)
    assert status.state is ClockState.NO_ENTRIES
    assert status.active_kind is None


@pytest.mark.parametrize(
    ("at", "state", "kind", "since", "until"),
    [
        (T0 - timedelta(hours=1), ClockState.NO_ENTRIES, None, None, T0),
        (T0, ClockState.ENTRY, EntryType.CLOCK_IN, T0, T1),
        (T0 + timedelta(hours=4), ClockState.ENTRY, EntryType.CLOCK_IN, T0, T1),
        (T1, ClockState.ENTRY, EntryType.CLOCK_OUT, T1, None),
        (T1 + timedelta(days=3), ClockState.ENTRY, EntryType.CLOCK_OUT, T1, None),
    ],
)
@pytest.mark.unit
def test_status_at_moments(config, at, state, kind, since, until):
    """
    Ensure status uses the last entry at or before the query time.

    Returns
    -------
    None
        This test asserts status resolution across a shift.
    """
    write_log(config, [("in", T0), ("out", T1)])
    status = resolve_status(config, at)
    assert status.state is state
    assert status.active_kind is kind
    assert status.since == since
    assert status.until == until
    assert status.as_of == at


@pytest.mark.unit
def test_clock_in_then_out(config):
    """
    Ensure alternating entries are appended in order.

    Returns
    -------
    None
        This test asserts a full shift is recorded.
    """
    first = clock_in(config, now=T0)
    second = clock_out(config, now=T1)
    assert first.entry_type is EntryType.CLOCK_IN
    assert second.timestamp == T1
    entries = list(EntryLog(config.log_path).read_all())
    assert [entry.entry_type for entry in entries] == [EntryType.CLOCK_IN, EntryType.CLOCK_OUT]


@pytest.mark.unit
def test_double_clock_in_is_rejected(config):
    """
    Ensure clocking in twice fails and leaves the log unchanged.

    Returns
    -------
    None
        This test asserts the already-in-state guard.
    """
    clock_in(config, now=T0)
    before = config.log_path.read_text(encoding="utf-8")
    with pytest.raises(AlreadyInStateError) as excinfo:
        clock_in(config, now=T0 + timedelta(hours=1))
    assert excinfo.value.kind is EntryType.CLOCK_IN
    assert excinfo.value.since == T0
    assert config.log_path.read_text(encoding="utf-8") == before


@pytest.mark.unit
def test_clock_out_without_entries_is_allowed(config):
    """
    Ensure clocking out with no prior entries is accepted.

    Returns
    -------
    None
        This test asserts the first entry may be a clock-out.
    """
    entry = clock_out(config, now=T0)
    assert entry.entry_type is EntryType.CLOCK_OUT


@pytest.mark.unit
def test_backdating_before_latest_entry_is_rejected(config):
    """
    Ensure entries cannot be inserted before an existing later entry.

    Returns
    -------
    None
        This test asserts the continuity guard.
    """
    write_log(config, [("in", T0), ("out", T1)])
    with pytest.raises(ContinuityViolationError) as excinfo:
        add_entry(config, EntryType.CLOCK_IN, BiDuration.parse("2h ago"), now=T1)
    assert excinfo.value.next_entry == T1
    assert excinfo.value.timestamp == T1 - timedelta(hours=2)
    assert "violate continuity" in str(excinfo.value)


@pytest.mark.unit
def test_backdating_before_first_entry_is_rejected(config):
    """
    Ensure entries cannot be placed before the first entry of the log.

    Returns
    -------
    None
        This test asserts continuity when no earlier entry exists.
    """
    write_log(config, [("in", T0)])
    with pytest.raises(ContinuityViolationError):
        clock_out(config, BiDuration.parse("1d ago"), now=T0)


@pytest.mark.unit
def test_forward_offset_sets_timestamp(config):
    """
    Ensure a forward offset is applied to the entry time.

    Returns
    -------
    None
        This test asserts future-dated entries.
    """
    entry = clock_in(config, BiDuration.parse("in 15m"), now=T0)
    assert entry.timestamp == T0 + timedelta(minutes=15)
    assert entry.timestamp.tzinfo is config.timezone


@pytest.mark.unit
def test_toggle_alternates(config):
    """
    Ensure toggling flips the state each time.

    Returns
    -------
    None
        This test asserts toggle behaviour.
    """
    assert toggle_entry(config, now=T0).entry_type is EntryType.CLOCK_IN
    assert toggle_entry(config, now=T1).entry_type is EntryType.CLOCK_OUT
    assert toggle_entry(config, now=T1 + timedelta(hours=1)).entry_type is EntryType.CLOCK_IN


@pytest.mark.unit
def test_toggle_respects_continuity(config):
    """
    Ensure toggling with a backdated offset is guarded like add.

    Returns
    -------
    None
        This test asserts toggle continuity.
    """
    write_log(config, [("in", T0), ("out", T1)])
    with pytest.raises(ContinuityViolationError):
        toggle_entry(config, BiDuration.parse("1h ago"), now=T1)


@pytest.mark.unit
def test_malformed_log_blocks_clock(config):
    """
    Ensure a malformed log fails closed for status and appends.

    Returns
    -------
    None
        This test asserts malformed logs are never appended to.
    """
    write_log(config, [("in", T0), "bogus,row"])
    before = config.log_path.read_text(encoding="utf-8")
    with pytest.raises(MalformedLogError):
        resolve_status(config, T1)
    with pytest.raises(MalformedLogError):
        clock_out(config, now=T1)
    assert config.log_path.read_text(encoding="utf-8") == before


@pytest.mark.unit
def test_effective_timestamp_converts_zone(config):
    """
    Ensure effective timestamps are expressed in the configured zone.

    Returns
    -------
    None
        This test asserts timezone projection.
    """
    moment = effective_timestamp(config, None, T0.astimezone(tz=None))
    assert moment == T0
    assert moment.tzinfo is config.timezone


@pytest.mark.unit
def test_offsets_across_dst_use_elapsed_time(config):
    """
    Ensure offsets keep their real length across a DST change.

    Returns
    -------
    None
        This test asserts elapsed-time offsets.
    """
    moment = effective_timestamp(config, BiDuration.parse("in 3h"), local(2024, 3, 10, 0, 0))
    assert moment == local(2024, 3, 10, 4, 0)
    assert moment.utcoffset() == timedelta(hours=-7)


@pytest.mark.unit
def test_far_backdated_entry_keeps_log_readable(config):
    """
    Ensure an entry dated into local mean time is written in a readable form.

    Returns
    -------
    None
        This test asserts historic offsets survive the log round trip.
    """
    entry = add_entry(config, EntryType.CLOCK_IN, BiDuration.parse("150years ago"), now=T0)
    assert entry.timestamp.year == 1874
    stored = list(EntryLog(config.log_path).read_all())
    assert stored == [entry]
    assert stored[0].timestamp.utcoffset() == entry.timestamp.utcoffset()
