"""
Shared pytest fixtures for punchcard tests.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from punchcard.config import Config
from punchcard.entry_log import HEADER, format_timestamp

LOS_ANGELES = ZoneInfo("America/Los_Angeles")


@pytest.fixture(autouse=True)
def isolate_data_folder(tmp_path, monkeypatch) -> None:
    """
    Ensure tests do not read/write the real punchcard log.

    Parameters
    ----------
    tmp_path : pathlib.Path
        Temporary path provided by pytest.
    monkeypatch : pytest.MonkeyPatch
        Monkeypatch fixture for environment updates.
    """
    monkeypatch.setenv("PUNCHCARD_DATA_FOLDER", str(tmp_path / "data"))
    monkeypatch.setenv("PUNCHCARD_TIMEZONE", "America/Los_Angeles")
    monkeypatch.delenv("DATA_FOLDER", raising=False)
    monkeypatch.delenv("TIMEZONE", raising=False)
    monkeypatch.delenv("PUNCHCARD_LOG", raising=False)


@pytest.fixture
def config(tmp_path) -> Config:
    """
    Configuration rooted in a temporary data folder.
    """
    return Config(data_folder=tmp_path / "data", timezone=LOS_ANGELES)


def local(*args) -> datetime:
    return datetime(*args, tzinfo=LOS_ANGELES)


def write_log(config: Config, rows) -> None:
    """
    Write a log file from ``(kind, datetime)`` pairs or raw strings.
    """
    config.data_folder.mkdir(parents=True, exist_ok=True)
    lines = [",".join(HEADER)]
    for row in rows:
        if isinstance(row, str):
            lines.append(row)
        else:
            kind, moment = row
            lines.append(f"{kind},{format_timestamp(moment)}")
    config.log_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
