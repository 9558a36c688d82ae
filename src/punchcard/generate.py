"""
Synthetic clock logs for trying out reports.
"""

from __future__ import annotations

import random
import sys
from datetime import datetime, timedelta
from typing import Iterator, Optional

from .entry_log import HEADER, Entry, EntryType, format_timestamp
from .errors import LogAccessError

DEFAULT_COUNT = 10_000
# Three and a half hours.
BASE_GAP = timedelta(minutes=210)


def generate_entries(
    start: datetime,
    count: int = DEFAULT_COUNT,
    rng: Optional[random.Random] = None,
) -> Iterator[Entry]:
    """
    Yield alternating entries with random gaps of up to seven hours.

    Parameters
    ----------
    start : datetime
        Aware timestamp of the first (clock-in) entry.
    count : int, optional
        Number of entries to produce.
    rng : Optional[random.Random], optional
        Random source (default: a fresh ``random.Random``).
    """
    rng = rng or random.Random()
    timestamp = start
    for index in range(count):
        if index:
            timestamp = timestamp + BASE_GAP * rng.uniform(0.0, 2.0)
        kind = EntryType.CLOCK_IN if index % 2 == 0 else EntryType.CLOCK_OUT
        yield Entry(entry_type=kind, timestamp=timestamp)


def write_entries(entries, destination: str) -> int:
    """
    Write a complete log (header included) to a path or ``-`` for stdout.

    Returns
    -------
    int
        Number of entries written.

    Raises
    ------
    LogAccessError
        If the destination cannot be written.
    """
    lines = [",".join(HEADER)]
    lines.extend(f"{entry.entry_type.value},{format_timestamp(entry.timestamp)}" for entry in entries)
    text = "\n".join(lines) + "\n"
    if destination == "-":
        sys.stdout.write(text)
        return len(lines) - 1
    try:
        with open(destination, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
    except OSError as exc:
        raise LogAccessError(
            f"Failed to write generated entries to {destination}: {exc.strerror or exc}",
            destination,
        ) from exc
    return len(lines) - 1
