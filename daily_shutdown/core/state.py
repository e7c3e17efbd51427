# daily_shutdown/core/state.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Cycle state record and the timestamp helpers used to persist it.

A cycle runs from schedule creation to one deadline action attempt. Timestamps
are kept in their persisted ISO-8601 string form and parsed on demand, so an
unreadable record surfaces as ``None`` from the accessors rather than as an
exception at load time.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from daily_shutdown.core.clock import ensure_aware

DAY_FORMAT = "%Y-%m-%d"


def format_timestamp(moment: datetime) -> str:
    """Canonical persisted form of an instant (ISO-8601, millisecond precision)."""
    return ensure_aware(moment).isoformat(timespec="milliseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a persisted timestamp. Returns None for missing or malformed input.
    Naive values are interpreted as local time.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return ensure_aware(parsed)


def format_day(moment: datetime) -> str:
    """Calendar day string (``YYYY-MM-DD``) of an instant in its own timezone."""
    return ensure_aware(moment).strftime(DAY_FORMAT)


@dataclass
class CycleState:
    """
    Persisted record of one deadline cycle.

    :param date: Calendar day the cycle was created (``YYYY-MM-DD``).
    :param postpones_used: Number of postpones consumed in this cycle.
    :param scheduled_deadline: Current effective deadline (ISO-8601).
    :param original_deadline: Deadline first computed for the cycle (ISO-8601).
    """

    date: str
    postpones_used: int
    scheduled_deadline: str
    original_deadline: str

    @property
    def scheduled_at(self) -> Optional[datetime]:
        return parse_timestamp(self.scheduled_deadline)

    @property
    def original_at(self) -> Optional[datetime]:
        return parse_timestamp(self.original_deadline)

    def copy(self) -> "CycleState":
        """Detached copy, safe to hand outside the controller's queue."""
        return dataclasses.replace(self)

    @classmethod
    def starting(cls, now: datetime, deadline: datetime) -> "CycleState":
        """
        Fresh cycle created at ``now`` whose scheduled and original deadlines
        are both ``deadline``.
        """
        stamp = format_timestamp(deadline)
        return cls(
            date=format_day(now),
            postpones_used=0,
            scheduled_deadline=stamp,
            original_deadline=stamp,
        )
