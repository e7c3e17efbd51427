# daily_shutdown/runtime/timers.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Timer scheduling for deadline cycles.

``TimerScheduler`` turns a ``SchedulePlan`` plus the configured warning offsets
into one-shot timers: one for the deadline and at most one per distinct future
warning instant. Timers come from a ``TimerFactory`` so tests can capture them
instead of waiting on real threads.

Every call to ``schedule`` or ``cancel`` starts a new timer generation. A
callback from an older generation is dropped even if its thread already woke
up, so no timer belonging to a superseded plan ever reaches the delegate.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, auto
from typing import List, Optional, Sequence, Tuple

from daily_shutdown.core.clock import SystemClock
from daily_shutdown.core.policy import SchedulePlan
from daily_shutdown.core.state import format_timestamp
from daily_shutdown.interfaces.protocols import CancellableHandle, Clock, SchedulerDelegate, TimerFactory
from daily_shutdown.interfaces.types import TimerCallback
from daily_shutdown.runtime.concurrency import with_lock

# Instants closer than this are treated as the same warning.
COALESCE_TOLERANCE_SECONDS = 0.5


class TimerKind(Enum):
    """Defines what a scheduled timer notifies."""

    DEADLINE = auto()  # Deadline action is due
    WARNING = auto()  # A staged warning is due


@dataclass(frozen=True)
class ScheduledTimer:
    """Description of one armed timer, for logging and introspection."""

    kind: TimerKind
    fire_at: datetime
    delay_seconds: float


class ThreadingTimerHandle:
    """
    Handle around a ``threading.Timer``. Cancelling is idempotent and safe
    after the timer already fired.
    """

    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer
        self._lock = threading.Lock()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with with_lock(self._lock):
            if self._cancelled:
                return
            self._cancelled = True
        self._timer.cancel()


class ThreadingTimerFactory:
    """
    Timer factory backed by daemon ``threading.Timer`` threads. Callbacks run
    on the timer thread, independent of any UI or state queue.
    """

    def __init__(self, name_prefix: str = "daily-shutdown-timer") -> None:
        self._name_prefix = name_prefix
        self._counter = 0
        self._lock = threading.Lock()

    def schedule_once(self, after_seconds: float, callback: TimerCallback) -> ThreadingTimerHandle:
        with with_lock(self._lock):
            self._counter += 1
            name = f"{self._name_prefix}-{self._counter}"
        timer = threading.Timer(max(0.0, after_seconds), callback)
        timer.daemon = True
        timer.name = name
        timer.start()
        return ThreadingTimerHandle(timer)


class TimerScheduler:
    """
    Materializes schedule plans into concrete deadline and warning timers and
    owns their cancellation.

    Threading/Concurrency Guarantees:
    1. ``schedule`` and ``cancel`` may be called from any thread.
    2. At most one timer set is live at a time.
    3. Callbacks of a replaced set never reach the delegate.
    """

    def __init__(
        self,
        timer_factory: Optional[TimerFactory] = None,
        clock: Optional[Clock] = None,
        delegate: Optional[SchedulerDelegate] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        :param timer_factory: Source of one-shot timers; threads by default.
        :param clock: Time source used when ``schedule`` is not given ``now``.
        :param delegate: Receiver of ``warning_due`` / ``deadline_due``.
        :param logger: Optional logger override.
        """
        self.timer_factory: TimerFactory = timer_factory or ThreadingTimerFactory()
        self.delegate = delegate
        self._clock = clock or SystemClock()
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._handles: List[CancellableHandle] = []
        self._armed: Tuple[ScheduledTimer, ...] = ()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def armed(self) -> Tuple[ScheduledTimer, ...]:
        """Timers of the current generation, deadline first then warnings ascending."""
        return self._armed

    def schedule(
        self,
        plan: SchedulePlan,
        warning_offsets: Sequence[int],
        now: Optional[datetime] = None,
    ) -> Tuple[ScheduledTimer, ...]:
        """
        Replace any live timers with a deadline timer and one warning timer
        per distinct future instant.

        :param plan: Deadline and optional primary warning.
        :param warning_offsets: Seconds before the deadline at which to warn.
        :param now: Reference instant; read from the clock when omitted.
        :return: The armed timers.
        """
        now = now or self._clock.now()
        warnings = self.warning_instants(plan, warning_offsets, now)
        deadline_delay = max(0.0, (plan.deadline - now).total_seconds())

        with with_lock(self._lock):
            self._cancel_locked()
            generation = self._generation
            armed = [ScheduledTimer(TimerKind.DEADLINE, plan.deadline, deadline_delay)]
            self._handles.append(
                self.timer_factory.schedule_once(deadline_delay, self._callback(generation, TimerKind.DEADLINE))
            )
            for instant in warnings:
                delay = max(0.0, (instant - now).total_seconds())
                armed.append(ScheduledTimer(TimerKind.WARNING, instant, delay))
                self._handles.append(
                    self.timer_factory.schedule_once(delay, self._callback(generation, TimerKind.WARNING))
                )
            self._armed = tuple(armed)

        self._log.info(
            "Scheduler: deadline=%s in=%.2fs warnings=[%s]",
            format_timestamp(plan.deadline),
            deadline_delay,
            ", ".join(format_timestamp(w) for w in warnings),
        )
        return self._armed

    def cancel(self) -> None:
        """Cancel every live timer. Safe to call repeatedly."""
        with with_lock(self._lock):
            self._cancel_locked()

    @staticmethod
    def warning_instants(
        plan: SchedulePlan,
        warning_offsets: Sequence[int],
        now: datetime,
    ) -> List[datetime]:
        """
        Warning instants for ``plan``, ascending. Offsets landing at or before
        ``now`` are dropped. The plan's primary warning is added unless it
        coincides with an offset-derived instant; a primary warning equal to
        ``now`` is kept so an overdue warning fires immediately.
        """
        instants: List[datetime] = []
        for offset in warning_offsets:
            candidate = plan.deadline - timedelta(seconds=offset)
            if candidate > now and not _near_any(candidate, instants):
                instants.append(candidate)
        primary = plan.primary_warning
        if primary is not None and primary >= now and not _near_any(primary, instants):
            instants.append(primary)
        instants.sort()
        return instants

    def _cancel_locked(self) -> None:
        handles, self._handles = self._handles, []
        self._armed = ()
        self._generation += 1
        for handle in handles:
            handle.cancel()

    def _callback(self, generation: int, kind: TimerKind) -> TimerCallback:
        def _fire() -> None:
            self._fire(generation, kind)

        return _fire

    def _fire(self, generation: int, kind: TimerKind) -> None:
        with with_lock(self._lock):
            current = self._generation
            delegate = self.delegate
        if generation != current:
            self._log.debug("Dropping %s timer from superseded generation %d", kind.name, generation)
            return
        if delegate is None:
            self._log.debug("%s timer fired with no delegate bound", kind.name)
            return
        if kind is TimerKind.DEADLINE:
            delegate.deadline_due()
        else:
            delegate.warning_due()


def _near_any(instant: datetime, others: Sequence[datetime]) -> bool:
    return any(abs((instant - other).total_seconds()) < COALESCE_TOLERANCE_SECONDS for other in others)
