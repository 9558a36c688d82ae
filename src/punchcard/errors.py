"""
Shared error base for punchcard.
"""

from __future__ import annotations

from typing import Optional


class PunchcardError(Exception):
    """
    Base class for every error the CLI reports to the user.

    Attributes
    ----------
    hint : Optional[str]
        Remediation hint printed after the message, if any.
    """

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.hint = hint


def permissions_hint(path: object) -> str:
    """
    Return the remediation hint for file access failures.

    Examples
    --------
    >>> permissions_hint("/tmp/hours.csv")
    'Ensure you have proper permissions for /tmp/hours.csv'
    """
    return f"Ensure you have proper permissions for {path}"


class LogError(PunchcardError):
    """Base class for log storage failures."""


class LogAccessError(LogError):
    """
    Raised when the log (or an export target) cannot be read or written.

    Attributes
    ----------
    path : object
        File or folder that failed.
    """

    def __init__(self, message: str, path: object) -> None:
        super().__init__(message, hint=permissions_hint(path))
        self.path = path
