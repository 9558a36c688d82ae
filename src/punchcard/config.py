"""
Runtime configuration: where the log lives and which timezone to report in.
"""

from __future__ import annotations

import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import tzlocal

from .errors import LogAccessError, PunchcardError

logger = logging.getLogger(__name__)

APP_DIRNAME = "punchcard"
LOG_FILENAME = "hours.csv"
DATA_FOLDER_ENV_VARS = ("PUNCHCARD_DATA_FOLDER", "DATA_FOLDER")
TIMEZONE_ENV_VARS = ("PUNCHCARD_TIMEZONE", "TIMEZONE")


class ConfigError(PunchcardError):
    pass


def default_data_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Return the platform data directory for punchcard.

    - Windows: ``%APPDATA%\\punchcard``
    - macOS: ``~/Library/Application Support/punchcard``
    - Linux: ``$XDG_DATA_HOME/punchcard`` or ``~/.local/share/punchcard``
    """
    env = os.environ if environ is None else environ
    if os.name == "nt":
        appdata = env.get("APPDATA")
        if appdata:
            return Path(appdata) / APP_DIRNAME
        return Path.home() / "AppData" / "Roaming" / APP_DIRNAME
    xdg = env.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / APP_DIRNAME
    if platform.system().lower() == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIRNAME
    return Path.home() / ".local" / "share" / APP_DIRNAME


def _first_env(environ: Mapping[str, str], names) -> Optional[str]:
    for name in names:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return None


def load_timezone(name: Optional[str]) -> ZoneInfo:
    """
    Return the IANA zone for ``name``, or the system zone when omitted.

    Raises
    ------
    ConfigError
        If the zone name is unknown.
    """
    if not name:
        zone = tzlocal.get_localzone()
        if isinstance(zone, ZoneInfo):
            return zone
        name = tzlocal.get_localzone_name()
        if not name:
            raise ConfigError(
                "Could not determine the local timezone.",
                hint="Set PUNCHCARD_TIMEZONE to an IANA zone such as America/Los_Angeles.",
            )
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(
            f"Unknown timezone {name!r}.",
            hint="Set PUNCHCARD_TIMEZONE to an IANA zone such as America/Los_Angeles.",
        ) from exc


@dataclass(frozen=True)
class Config:
    """
    Settings shared by every core operation.

    Attributes
    ----------
    data_folder : Path
        Folder holding the log file.
    timezone : ZoneInfo
        Zone used for timestamps and report boundaries.
    """

    data_folder: Path
    timezone: ZoneInfo

    @classmethod
    def load(
        cls,
        data_folder: Optional[Path] = None,
        timezone: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """
        Build the configuration from explicit values, then the environment.

        Parameters
        ----------
        data_folder : Optional[Path], optional
            Folder override (e.g. from ``--data-folder``).
        timezone : Optional[str], optional
            IANA zone override (e.g. from ``--timezone``).
        environ : Optional[Mapping[str, str]], optional
            Environment mapping (default: ``os.environ``).

        Returns
        -------
        Config
            Resolved configuration.
        """
        env = os.environ if environ is None else environ
        if data_folder is None:
            env_folder = _first_env(env, DATA_FOLDER_ENV_VARS)
            if env_folder:
                data_folder = Path(os.path.expandvars(os.path.expanduser(env_folder)))
            else:
                data_folder = default_data_dir(env)
        zone = load_timezone(timezone or _first_env(env, TIMEZONE_ENV_VARS))
        logger.debug("Using data folder %s and timezone %s", data_folder, zone.key)
        return cls(data_folder=Path(data_folder), timezone=zone)

    @property
    def log_path(self) -> Path:
        return self.data_folder / LOG_FILENAME

    def ensure_data_folder(self) -> None:
        try:
            self.data_folder.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LogAccessError(
                f"Failed to create data folder {self.data_folder}: {exc.strerror or exc}",
                self.data_folder,
            ) from exc
