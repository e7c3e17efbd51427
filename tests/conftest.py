# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

import pytest

from daily_shutdown.core.config import AppConfig
from daily_shutdown.core.controller import ShutdownController
from daily_shutdown.persistence.store import InMemoryStateStore
from tests.doubles import (
    START,
    CapturingPresenter,
    ManualClock,
    RecordingActions,
    RecordingExit,
    RecordingTimerFactory,
    make_config,
)


def pytest_configure(config):
    """Register custom marks."""
    config.addinivalue_line("markers", "property: mark test as a property-based test")
    config.addinivalue_line("markers", "integration: mark test as wiring the controller end to end")


# -----------------------------------------------------------------------------
# CONTROLLER HARNESS
# -----------------------------------------------------------------------------
@dataclass
class Harness:
    controller: ShutdownController
    clock: ManualClock
    timers: RecordingTimerFactory
    presenter: CapturingPresenter
    actions: RecordingActions
    store: object
    exits: RecordingExit
    start: datetime = field(default=START)

    def settle(self) -> None:
        assert self.controller.wait_idle(timeout=5.0)

    def snapshot(self):
        return self.controller.snapshot(timeout=5.0)

    def at(self, seconds: float) -> datetime:
        """Move the clock to ``seconds`` after the harness start."""
        self.clock.set(self.start + timedelta(seconds=seconds))
        return self.clock.now()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def timer_factory() -> RecordingTimerFactory:
    return RecordingTimerFactory()


@pytest.fixture
def make_harness():
    """Factory building a controller around recording doubles; stops every controller it built."""
    built: List[ShutdownController] = []

    def _make(
        config: Optional[AppConfig] = None,
        store=None,
        actions: Optional[RecordingActions] = None,
        start: datetime = START,
        **controller_kwargs,
    ) -> Harness:
        clock = ManualClock(start)
        timers = RecordingTimerFactory()
        presenter = CapturingPresenter()
        actions = actions or RecordingActions()
        store = store if store is not None else InMemoryStateStore()
        exits = RecordingExit()
        controller = ShutdownController(
            config=config or make_config(),
            state_store=store,
            actions=actions,
            alert_presenter=presenter,
            clock=clock,
            timer_factory=timers,
            exit_coordinator=exits,
            **controller_kwargs,
        )
        built.append(controller)
        return Harness(controller, clock, timers, presenter, actions, store, exits, start)

    yield _make
    for controller in built:
        controller.stop(timeout=5.0)
