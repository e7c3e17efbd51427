# daily_shutdown/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Any, Dict, Optional


class DailyShutdownError(Exception):
    """
    Base exception class for errors raised by the daily shutdown package.

    :param message: Human readable description.
    :param details: Optional structured context included in ``str()``.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigurationError(DailyShutdownError, ValueError):
    """
    Raised when an effective configuration violates a programmer-level
    precondition (negative postpone interval, out-of-range trigger time).
    """


class PersistenceError(DailyShutdownError):
    """
    Raised by state stores when a cycle record cannot be read or written.
    """


class StateDecodeError(PersistenceError):
    """
    Raised when a persisted cycle record is malformed.
    """


class SystemActionError(DailyShutdownError):
    """
    Raised when the deadline action could not be launched.
    """


class QueueStoppedError(DailyShutdownError):
    """
    Raised when work is submitted to a state queue that has been stopped.
    """
