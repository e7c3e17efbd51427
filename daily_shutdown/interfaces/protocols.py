# daily_shutdown/interfaces/protocols.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from daily_shutdown.core.state import CycleState
from daily_shutdown.interfaces.types import AlertModel, TimerCallback


@runtime_checkable
class Clock(Protocol):
    """
    Time source protocol. Substituted with a manual clock in tests.

    Runtime Invariants:
    - ``now()`` returns a timezone-aware datetime.
    """

    def now(self) -> datetime: ...


@runtime_checkable
class StateStore(Protocol):
    """
    Persistence protocol for cycle state.

    Methods:
        load(): Return the last saved state, or None if there is none.
        save(state): Persist the state. Repeated saves of the same value are harmless.

    Error Handling:
    - ``save`` raises PersistenceError on failure. Callers treat that as
      non-fatal; the in-memory state stays authoritative.
    """

    def load(self) -> Optional[CycleState]: ...

    def save(self, state: CycleState) -> None: ...


@runtime_checkable
class SystemAction(Protocol):
    """
    The deadline side effect (for example, an OS shutdown).

    Error Handling:
    - Raises SystemActionError if the action could not be launched. Failures
      after launch are not reported.
    """

    def perform_deadline_action(self) -> None: ...


@runtime_checkable
class AlertDelegate(Protocol):
    """
    Receives exactly one outcome per presented alert.
    """

    def user_chose_postpone(self) -> None: ...

    def user_chose_act_now(self) -> None: ...

    def user_ignored(self) -> None: ...


@runtime_checkable
class AlertPresenting(Protocol):
    """
    Presents a warning alert. ``present`` must return without waiting for the
    user; the outcome is reported later through the bound delegate.
    """

    delegate: Optional[AlertDelegate]

    def present(self, model: AlertModel) -> None: ...


@runtime_checkable
class CancellableHandle(Protocol):
    """A scheduled one-shot timer. ``cancel`` is idempotent."""

    def cancel(self) -> None: ...


@runtime_checkable
class TimerFactory(Protocol):
    """
    Creates one-shot timers that invoke ``callback`` on a context independent
    of the caller after ``after_seconds``.
    """

    def schedule_once(self, after_seconds: float, callback: TimerCallback) -> CancellableHandle: ...


@runtime_checkable
class SchedulerDelegate(Protocol):
    """Receives timer notifications. Carries no payload; receivers re-read live state."""

    def warning_due(self) -> None: ...

    def deadline_due(self) -> None: ...
