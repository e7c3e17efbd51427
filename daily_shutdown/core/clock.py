# daily_shutdown/core/clock.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from datetime import date, datetime
from typing import Optional


class SystemClock:
    """
    Wall-clock time source. Returns timezone-aware local datetimes so that
    calendar-day comparisons follow the host's local day boundary.
    """

    def now(self) -> datetime:
        return datetime.now().astimezone()


def ensure_aware(moment: datetime) -> datetime:
    """
    Interpret a naive datetime as local time. Aware values pass through.
    """
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def calendar_day(moment: datetime, reference: Optional[datetime] = None) -> date:
    """
    Calendar day of ``moment``, expressed in the timezone of ``reference`` when
    one is given (so two instants are compared on the same local calendar).

    :param moment: The instant to classify.
    :param reference: Optional instant whose timezone defines "local".
    """
    moment = ensure_aware(moment)
    if reference is not None:
        moment = moment.astimezone(ensure_aware(reference).tzinfo)
    return moment.date()


def same_calendar_day(first: datetime, second: datetime) -> bool:
    """Whether both instants fall on the same calendar day in ``second``'s timezone."""
    return calendar_day(first, second) == calendar_day(second)


def localize(wall: datetime, reference: datetime) -> datetime:
    """
    Attach a timezone to the naive wall-clock value ``wall``, using the zone
    ``reference`` lives in.

    Host-local references are resolved through the host's zone rules, so the
    UTC offset of ``wall`` is the one in effect on that day rather than the
    offset ``reference`` carried. Any other reference timezone is attached
    as-is.
    """
    reference = ensure_aware(reference)
    if reference.tzinfo == reference.astimezone().tzinfo:
        return wall.astimezone()
    return wall.replace(tzinfo=reference.tzinfo)
