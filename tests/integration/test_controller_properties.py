# tests/integration/test_controller_properties.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from datetime import timedelta

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from tests.doubles import make_config

pytestmark = [pytest.mark.integration, pytest.mark.property]

CONFIGS = {
    "one-off": make_config(relative_seconds=3600, postpone_interval_seconds=600, max_postpones=2),
    "daily": make_config(),
}

# ("fire", index) fires one live timer (warning, deadline or fail-safe);
# ("advance", seconds) moves the clock, 90000 crossing into another day.
STEPS = st.lists(
    st.one_of(
        st.tuples(st.just("fire"), st.integers(min_value=0, max_value=7)),
        st.tuples(st.just("advance"), st.sampled_from([60, 600, 2700, 3600, 32400, 90000])),
        st.tuples(st.sampled_from(["postpone", "act_now", "ignore"]), st.just(0)),
    ),
    max_size=25,
)


def apply_step(harness, step) -> None:
    kind, value = step
    # Every event happens strictly later than the previous one.
    harness.clock.advance(1)
    if kind == "advance":
        harness.clock.advance(value)
    elif kind == "fire":
        live = sorted(harness.timers.live(), key=lambda t: t.delay)
        if live:
            live[value % len(live)].fire()
    elif kind == "postpone":
        harness.controller.user_chose_postpone()
    elif kind == "act_now":
        harness.controller.user_chose_act_now()
    else:
        harness.controller.user_ignored()
    harness.settle()


@settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(name=st.sampled_from(sorted(CONFIGS)), steps=STEPS)
def test_cycle_invariants_hold_for_any_event_order(make_harness, name, steps):
    config = CONFIGS[name]
    limit = config.effective_max_postpones
    interval = timedelta(seconds=config.effective_postpone_interval_seconds)

    h = make_harness(config=config)
    try:
        h.controller.start()
        h.settle()
        previous = h.snapshot().state
        calls = h.actions.calls
        alerts = len(h.presenter.models)

        for step in steps:
            apply_step(h, step)
            snapshot = h.snapshot()
            state = snapshot.state
            # A new cycle starts after the deadline action or on waking into a later day.
            rolled_over = h.actions.calls > calls or state.date != previous.date

            assert 0 <= state.postpones_used <= limit
            assert h.actions.calls - calls <= 1
            assert state.scheduled_at == state.original_at + interval * state.postpones_used
            if state.original_deadline != previous.original_deadline:
                assert rolled_over
            if rolled_over:
                assert state.postpones_used == 0
                assert state.scheduled_deadline == state.original_deadline
            else:
                assert state.postpones_used >= previous.postpones_used

            assert len(h.presenter.models) - alerts <= 1
            if len(h.presenter.models) > alerts:
                assert snapshot.status.alert_cycle == state.original_deadline

            previous = state
            calls = h.actions.calls
            alerts = len(h.presenter.models)
    finally:
        h.controller.stop(timeout=5.0)
