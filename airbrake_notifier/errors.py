"""Exception hierarchy for the Airbrake notifier."""

from __future__ import annotations


class AirbrakeError(Exception):
    """Base exception for all notifier errors."""

    pass


class ConfigurationError(AirbrakeError, ValueError):
    """Notifier configuration is missing or invalid."""

    pass


class ReportedError(AirbrakeError):
    """A non-exception runtime problem (e.g. a warning) carried as an exception.

    Unlike a raised exception, it knows where it happened without a
    traceback, so the backtrace starts at ``filename``:``lineno``.
    """

    def __init__(self, message: str, filename: str = "", lineno: int = 0) -> None:
        super().__init__(message)
        self.filename = filename
        self.lineno = lineno
