# daily_shutdown/core/policy.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from daily_shutdown.core.clock import ensure_aware, localize
from daily_shutdown.core.config import AppConfig
from daily_shutdown.core.state import CycleState, format_timestamp


@dataclass(frozen=True)
class SchedulePlan:
    """
    When the deadline fires and, optionally, when the earliest warning should
    be presented. Staged warnings beyond the primary one are derived by the
    timer scheduler from the configured offsets.
    """

    deadline: datetime
    primary_warning: Optional[datetime] = None


class ShutdownPolicy:
    """
    Pure scheduling and postponement rules. Holds no state between calls and
    performs no I/O; the controller owns the state it is handed.
    """

    def plan(self, state: CycleState, config: AppConfig, now: datetime) -> Optional[SchedulePlan]:
        """
        Compute the schedule for ``state`` at ``now``.

        :return: The plan, or None when the scheduled deadline is unparsable.
        """
        deadline = state.scheduled_at
        if deadline is None:
            return None
        warning = None
        lead = config.primary_warning_lead_seconds
        if self.can_postpone(state, config) and lead is not None:
            candidate = deadline - timedelta(seconds=lead)
            # An overdue warning is presented immediately rather than dropped.
            warning = candidate if candidate > now else now
        return SchedulePlan(deadline=deadline, primary_warning=warning)

    def can_postpone(self, state: CycleState, config: AppConfig) -> bool:
        return state.postpones_used < config.effective_max_postpones

    def apply_postpone(self, state: CycleState, config: AppConfig, now: datetime) -> bool:
        """
        Shift the scheduled deadline by one postpone interval and consume one
        postpone. Callers check ``can_postpone`` first; a violated precondition
        (or an unparsable deadline) leaves ``state`` untouched.

        :return: True if the state was mutated.
        """
        deadline = state.scheduled_at
        if deadline is None or not self.can_postpone(state, config):
            return False
        shifted = deadline + timedelta(seconds=config.effective_postpone_interval_seconds)
        state.scheduled_deadline = format_timestamp(shifted)
        state.postpones_used += 1
        return True

    def new_cycle(self, now: datetime, config: AppConfig) -> CycleState:
        """
        Start a cycle at ``now``: a one-off deadline ``relative_seconds`` ahead,
        or the next daily trigger strictly after ``now``.
        """
        now = ensure_aware(now)
        if config.relative_seconds is not None:
            return CycleState.starting(now, now + timedelta(seconds=config.relative_seconds))
        deadline = self.daily_deadline(now.date(), config, now)
        if deadline <= now:
            deadline = self.daily_deadline(now.date() + timedelta(days=1), config, now)
        return CycleState.starting(now, deadline)

    def daily_deadline(self, day: date, config: AppConfig, reference: datetime) -> datetime:
        """
        The daily trigger on calendar ``day``, as wall-clock time in the zone of
        ``reference``. Day arithmetic stays on the wall clock so a DST change
        between today and ``day`` does not shift the trigger.
        """
        wall = datetime.combine(day, time(config.daily_hour, config.daily_minute))
        return localize(wall, reference)
