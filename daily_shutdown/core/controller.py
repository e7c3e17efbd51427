# daily_shutdown/core/controller.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
The shutdown controller: owns the live cycle state and its status, and
mediates between timer callbacks, user decisions and the deadline action.

Every public entry point only enqueues a ``ControllerEvent`` on the state
queue; handlers run one at a time on the queue's worker thread, so cycle state
is never touched concurrently. Timer-originated events re-read the clock and
the live state instead of trusting anything captured when the timer was armed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum, auto
from typing import Any, Callable, Dict, Optional

from daily_shutdown.core.clock import SystemClock, same_calendar_day
from daily_shutdown.core.config import AppConfig
from daily_shutdown.core.errors import PersistenceError, QueueStoppedError, SystemActionError
from daily_shutdown.core.policy import ShutdownPolicy
from daily_shutdown.core.state import CycleState, format_day, format_timestamp
from daily_shutdown.interfaces.protocols import (
    AlertPresenting,
    CancellableHandle,
    Clock,
    StateStore,
    SystemAction,
    TimerFactory,
)
from daily_shutdown.interfaces.types import AlertModel
from daily_shutdown.runtime.event_queue import StateQueue
from daily_shutdown.runtime.lifecycle import ExitCoordinator
from daily_shutdown.runtime.timers import TimerScheduler

DEFAULT_EXIT_GRACE_SECONDS = 2.0


class ControllerPhase(Enum):
    """Where the controller is within the current cycle."""

    SCHEDULED = auto()  # Timers armed, no warning shown yet
    WARNING_SHOWN = auto()  # Alert visible
    WARNING_DISMISSED = auto()  # Alert closed, further warnings suppressed
    AWAITING_DISMISSAL = auto()  # Cycle completed while the alert was still visible


class ControllerEvent(Enum):
    """Messages routed through the state queue."""

    START = auto()
    WARNING_DUE = auto()
    DEADLINE_DUE = auto()
    FAILSAFE_DUE = auto()
    USER_POSTPONED = auto()
    USER_ACTED_NOW = auto()
    USER_IGNORED = auto()


_ALERT_PHASES = frozenset({ControllerPhase.WARNING_SHOWN, ControllerPhase.AWAITING_DISMISSAL})


@dataclass(frozen=True)
class ControllerStatus:
    """
    Controller status as a single tagged value.

    :param phase: Current phase.
    :param alert_cycle: Original deadline of the cycle the visible alert
        belongs to; set only while an alert is visible.
    """

    phase: ControllerPhase = ControllerPhase.SCHEDULED
    alert_cycle: Optional[str] = None

    def __post_init__(self) -> None:
        if self.phase in _ALERT_PHASES and self.alert_cycle is None:
            raise ValueError(f"{self.phase.name} requires an alert cycle")
        if self.phase not in _ALERT_PHASES and self.alert_cycle is not None:
            raise ValueError(f"{self.phase.name} cannot carry an alert cycle")

    @property
    def alert_visible(self) -> bool:
        return self.phase in _ALERT_PHASES


@dataclass(frozen=True)
class ControllerSnapshot:
    """Detached view of the controller, taken on the state queue."""

    state: CycleState
    status: ControllerStatus


class ShutdownController:
    """
    Orchestrates one deadline cycle after another: creates or resumes the
    cycle state, schedules timers, presents warnings, applies postpones and
    runs the deadline action.

    Runtime Invariants:
    - All state and status mutation happens on the state queue.
    - At most one warning alert is visible, and at most one is shown per
      cycle unless a postpone creates a new schedule.
    - ``original_deadline`` never changes within a cycle and
      ``postpones_used`` never exceeds the effective maximum.

    Error Handling:
    - Persistence failures are logged and never abort a transition.
    - A failed deadline action is logged; the controller still rolls over.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        state_store: StateStore,
        actions: SystemAction,
        alert_presenter: AlertPresenting,
        clock: Optional[Clock] = None,
        policy: Optional[ShutdownPolicy] = None,
        scheduler: Optional[TimerScheduler] = None,
        timer_factory: Optional[TimerFactory] = None,
        state_queue: Optional[StateQueue] = None,
        exit_coordinator: Optional[ExitCoordinator] = None,
        logger: Optional[logging.Logger] = None,
        exit_grace_seconds: float = DEFAULT_EXIT_GRACE_SECONDS,
    ) -> None:
        """
        Initialize the cycle state (persisting it unless persistence is off)
        and bind the presenter and scheduler delegates. Nothing is scheduled
        until ``start()``.

        :param config: Effective configuration.
        :param state_store: Where cycle state is persisted.
        :param actions: The deadline side effect.
        :param alert_presenter: Warning UI; its delegate is set to this controller.
        :param clock: Time source; local wall clock by default.
        :param policy: Scheduling rules.
        :param scheduler: Timer scheduler; built from ``timer_factory`` when omitted.
        :param timer_factory: Timer source for the fail-safe (and the default scheduler).
        :param state_queue: Serialized execution context.
        :param exit_coordinator: Receives the post-action exit request, if any.
        :param logger: Optional logger override.
        :param exit_grace_seconds: Delay between a real action and process exit.
        """
        self.config = config
        self.state_store = state_store
        self.actions = actions
        self.alert_presenter = alert_presenter
        self.clock: Clock = clock or SystemClock()
        self.policy = policy or ShutdownPolicy()
        self._log = logger or logging.getLogger(__name__)
        if scheduler is None:
            scheduler = TimerScheduler(timer_factory=timer_factory, clock=self.clock, logger=self._log)
        self.scheduler = scheduler
        self.timer_factory: TimerFactory = timer_factory or scheduler.timer_factory
        self.exit_coordinator = exit_coordinator
        self.exit_grace_seconds = exit_grace_seconds
        self._queue = state_queue or StateQueue()

        self._status = ControllerStatus()
        self._failsafe: Optional[CancellableHandle] = None
        self._rearm = True
        self._handlers: Dict[ControllerEvent, Callable[..., None]] = {
            ControllerEvent.START: self._on_start,
            ControllerEvent.WARNING_DUE: self._on_warning_due,
            ControllerEvent.DEADLINE_DUE: self._on_deadline_due,
            ControllerEvent.FAILSAFE_DUE: self._on_failsafe_due,
            ControllerEvent.USER_POSTPONED: self._on_user_postponed,
            ControllerEvent.USER_ACTED_NOW: self._on_user_acted_now,
            ControllerEvent.USER_IGNORED: self._on_user_ignored,
        }

        self._state = self._initial_state(self.clock.now())
        self._persist()

        self.alert_presenter.delegate = self
        self.scheduler.delegate = self

    # Public entry points; each only enqueues.

    def start(self) -> None:
        self._post(ControllerEvent.START)

    def warning_due(self) -> None:
        self._post(ControllerEvent.WARNING_DUE, self.scheduler.generation)

    def deadline_due(self) -> None:
        self._post(ControllerEvent.DEADLINE_DUE, self.scheduler.generation)

    def user_chose_postpone(self) -> None:
        self._post(ControllerEvent.USER_POSTPONED)

    def user_chose_act_now(self) -> None:
        self._post(ControllerEvent.USER_ACTED_NOW)

    def user_ignored(self) -> None:
        self._post(ControllerEvent.USER_IGNORED)

    def snapshot(self, timeout: Optional[float] = None) -> ControllerSnapshot:
        """Return a copy of the state and status once all queued events have run."""
        return self._queue.sync(self._snapshot, timeout=timeout)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every event posted so far has been handled."""
        return self._queue.drain(timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel all timers and stop the state queue."""
        try:
            self._queue.sync(self._shutdown_timers, timeout=timeout)
        except QueueStoppedError:
            self._shutdown_timers()
        self._queue.stop(timeout)

    # Queue plumbing

    def _post(self, event: ControllerEvent, *args: Any) -> None:
        try:
            self._queue.submit(self._dispatch, event, *args)
        except QueueStoppedError:
            self._log.debug("Dropping %s; controller stopped", event.name)

    def _dispatch(self, event: ControllerEvent, *args: Any) -> None:
        self._log.debug("Handling %s in %s", event.name, self._status.phase.name)
        self._handlers[event](*args)

    def _snapshot(self) -> ControllerSnapshot:
        return ControllerSnapshot(state=self._state.copy(), status=self._status)

    def _shutdown_timers(self) -> None:
        self._rearm = False
        self._cancel_failsafe()
        self.scheduler.cancel()

    # Handlers; run on the state queue only.

    def _on_start(self) -> None:
        self._status = ControllerStatus()
        self._reschedule()
        deadline = self._state.scheduled_at
        if deadline is not None:
            self._log.info("Scheduled deadline (local) at %s", deadline.strftime("%H:%M"))

    def _on_warning_due(self, generation: int) -> None:
        if generation != self.scheduler.generation:
            self._log.debug("Warning queued before a reschedule; ignoring")
            return
        if self._status.phase is not ControllerPhase.SCHEDULED:
            self._log.debug("Warning suppressed in %s", self._status.phase.name)
            return
        now = self.clock.now()
        if self._is_stale(now):
            self._log.info("Warning fired for a past day's deadline; starting a new cycle")
            self._roll_stale(now)
            return
        scheduled = self._state.scheduled_at
        if scheduled is not None and now >= scheduled:
            self._log.debug("Warning fired after the deadline; leaving it to the deadline timer")
            return
        model = self._alert_model()
        if model is None:
            self._log.warning("Cannot present warning: unparsable deadline in %r", self._state)
            return
        self._status = ControllerStatus(ControllerPhase.WARNING_SHOWN, self._state.original_deadline)
        self._arm_failsafe(now, model.scheduled)
        self._log.info(
            "Presenting warning: deadline=%s postpones=%d/%d",
            format_timestamp(model.scheduled),
            model.postpones_used,
            model.max_postpones,
        )
        self.alert_presenter.present(model)

    def _on_deadline_due(self, generation: Optional[int] = None) -> None:
        if generation is not None and generation != self.scheduler.generation:
            self._log.debug("Deadline queued before a reschedule; ignoring")
            return
        now = self.clock.now()
        if self._is_stale(now):
            self._log.info("Woke after a past day's deadline; skipping action and starting a new cycle")
            self._roll_stale(now)
            return
        self._execute(now)

    def _on_failsafe_due(self, cycle: str) -> None:
        self._failsafe = None
        status = self._status
        if (
            status.phase is not ControllerPhase.WARNING_SHOWN
            or status.alert_cycle != cycle
            or cycle != self._state.original_deadline
        ):
            self._log.debug("Fail-safe for cycle %s no longer applies", cycle)
            return
        self._log.warning("Warning still open at the deadline; proceeding")
        self._on_deadline_due()

    def _on_user_postponed(self) -> None:
        self._cancel_failsafe()
        if self._alert_from_completed_cycle():
            self._log.info("Postpone answered an alert from a completed cycle; treating as dismissal")
            self._resume_after_dismissal()
            return
        now = self.clock.now()
        scheduled = self._state.scheduled_at
        if scheduled is None:
            self._log.warning("Postpone ignored: unparsable deadline")
            self._close_alert()
            return
        if now >= scheduled:
            self._log.warning(
                "Late postpone ignored: deadline %s already reached", self._state.scheduled_deadline
            )
            self._close_alert()
            return
        if not self.policy.can_postpone(self._state, self.config):
            self._log.info("Postpone ignored: no postpones remaining")
            self._close_alert()
            return
        self.policy.apply_postpone(self._state, self.config, now)
        self._persist()
        self._status = ControllerStatus()
        self._log.info(
            "Postponed: new time=%s uses=%d/%d",
            self._state.scheduled_deadline,
            self._state.postpones_used,
            self.config.effective_max_postpones,
        )
        self._reschedule()

    def _on_user_acted_now(self) -> None:
        self._cancel_failsafe()
        if self._alert_from_completed_cycle():
            self._log.info("Act-now answered an alert from a completed cycle; treating as dismissal")
            self._resume_after_dismissal()
            return
        self._status = ControllerStatus()
        self._log.info("User chose to act now")
        self._execute(self.clock.now())

    def _on_user_ignored(self) -> None:
        self._cancel_failsafe()
        if self._alert_from_completed_cycle():
            self._resume_after_dismissal()
            return
        if self._status.phase is ControllerPhase.WARNING_SHOWN:
            self._status = ControllerStatus(ControllerPhase.WARNING_DISMISSED)
        else:
            self._log.debug("Ignore received in %s; nothing to close", self._status.phase.name)

    # Transitions

    def _execute(self, now: datetime) -> None:
        status = self._status
        self._cancel_failsafe()
        dry_run = self.config.dry_run
        if dry_run:
            self._log.info("[dry-run] Deadline reached; skipping system action")
        else:
            self._log.info("Initiating deadline action")
            try:
                self.actions.perform_deadline_action()
            except SystemActionError as exc:
                self._log.error("Deadline action failed: %s", exc)

        self._state = self.policy.new_cycle(now, self.config)
        self._persist()
        if self.config.is_one_off and dry_run:
            self._log.info("One-off dry run complete; not re-arming")
            self._rearm = False

        if status.alert_visible:
            self._status = ControllerStatus(ControllerPhase.AWAITING_DISMISSAL, status.alert_cycle)
            self.scheduler.cancel()
        else:
            self._status = ControllerStatus()
            if self._rearm:
                self._reschedule()
            else:
                self.scheduler.cancel()

        if not dry_run and self.exit_coordinator is not None:
            self.exit_coordinator.request_exit(self.exit_grace_seconds)

    def _roll_stale(self, now: datetime) -> None:
        status = self._status
        self._cancel_failsafe()
        self._state = self.policy.new_cycle(now, self.config)
        self._persist()
        if status.alert_visible:
            self._status = ControllerStatus(ControllerPhase.AWAITING_DISMISSAL, status.alert_cycle)
            self.scheduler.cancel()
        else:
            self._status = ControllerStatus()
            self._reschedule()

    def _resume_after_dismissal(self) -> None:
        self._status = ControllerStatus()
        self._reschedule()

    def _close_alert(self) -> None:
        if self._status.phase is ControllerPhase.WARNING_SHOWN:
            self._status = ControllerStatus(ControllerPhase.WARNING_DISMISSED)

    def _reschedule(self) -> None:
        if not self._rearm:
            self._log.debug("Re-arming disabled; not scheduling")
            return
        now = self.clock.now()
        plan = self.policy.plan(self._state, self.config, now)
        if plan is None:
            self._log.warning("Cannot schedule: unparsable deadline %r", self._state.scheduled_deadline)
            return
        self.scheduler.schedule(plan, self.config.effective_warning_offsets, now=now)

    # Helpers

    def _initial_state(self, now: datetime) -> CycleState:
        if self.config.is_one_off or not self.config.persist_enabled:
            return self.policy.new_cycle(now, self.config)
        try:
            stored = self.state_store.load()
        except PersistenceError as exc:
            self._log.warning("Could not load persisted state: %s", exc)
            stored = None
        if stored is None:
            return self.policy.new_cycle(now, self.config)
        scheduled = stored.scheduled_at
        if (
            stored.date != format_day(now)
            or scheduled is None
            or scheduled <= now
            or stored.original_at != self._daily_trigger(stored.date, now)
        ):
            self._log.info("Persisted cycle from %s is not reusable; starting a new cycle", stored.date)
            return self.policy.new_cycle(now, self.config)
        limit = self.config.effective_max_postpones
        if not 0 <= stored.postpones_used <= limit:
            self._log.warning("Clamping persisted postpones %d to [0, %d]", stored.postpones_used, limit)
            stored.postpones_used = min(max(stored.postpones_used, 0), limit)
        self._log.info("Resuming persisted cycle: deadline=%s", stored.scheduled_deadline)
        return stored

    def _daily_trigger(self, day: str, now: datetime) -> Optional[datetime]:
        """Configured daily trigger on ``day``; None if ``day`` is unparsable."""
        try:
            parsed = date.fromisoformat(day)
        except ValueError:
            return None
        return self.policy.daily_deadline(parsed, self.config, now)

    def _persist(self) -> bool:
        if not self.config.persist_enabled:
            return False
        try:
            self.state_store.save(self._state)
        except PersistenceError as exc:
            self._log.warning("Failed to persist state: %s", exc)
            return False
        return True

    def _is_stale(self, now: datetime) -> bool:
        scheduled = self._state.scheduled_at
        return scheduled is not None and now > scheduled and not same_calendar_day(scheduled, now)

    def _alert_from_completed_cycle(self) -> bool:
        status = self._status
        if status.phase is ControllerPhase.AWAITING_DISMISSAL:
            return True
        return status.alert_cycle is not None and status.alert_cycle != self._state.original_deadline

    def _alert_model(self) -> Optional[AlertModel]:
        scheduled = self._state.scheduled_at
        original = self._state.original_at
        if scheduled is None or original is None:
            return None
        return AlertModel(
            scheduled=scheduled,
            original=original,
            postpones_used=self._state.postpones_used,
            max_postpones=self.config.effective_max_postpones,
            postpone_interval_seconds=self.config.effective_postpone_interval_seconds,
        )

    def _arm_failsafe(self, now: datetime, deadline: datetime) -> None:
        self._cancel_failsafe()
        cycle = self._state.original_deadline
        delay = max(0.0, (deadline - now).total_seconds())
        self._failsafe = self.timer_factory.schedule_once(
            delay, lambda: self._post(ControllerEvent.FAILSAFE_DUE, cycle)
        )

    def _cancel_failsafe(self) -> None:
        handle, self._failsafe = self._failsafe, None
        if handle is not None:
            handle.cancel()
