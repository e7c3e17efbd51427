# tests/unit/core/test_policy.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import time
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest
from hypothesis import given
from hypothesis import strategies as st

from daily_shutdown.core.config import AppConfig, RuntimeOptions
from daily_shutdown.core.policy import SchedulePlan, ShutdownPolicy
from daily_shutdown.core.state import CycleState, format_timestamp

NOW = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def policy() -> ShutdownPolicy:
    return ShutdownPolicy()


def relative_config(seconds: int = 3600, **options) -> AppConfig:
    return AppConfig(options=RuntimeOptions(relative_seconds=seconds, **options))


# -----------------------------------------------------------------------------
# NEW CYCLE
# -----------------------------------------------------------------------------
def test_new_cycle_relative_deadline(policy):
    state = policy.new_cycle(NOW, relative_config(3600))
    assert state.scheduled_at == NOW + timedelta(seconds=3600)
    assert state.original_deadline == state.scheduled_deadline
    assert state.postpones_used == 0
    assert state.date == "2024-05-01"


def test_new_cycle_daily_later_today(policy):
    state = policy.new_cycle(NOW, AppConfig(daily_hour=18, daily_minute=30))
    assert state.scheduled_at == datetime(2024, 5, 1, 18, 30, tzinfo=timezone.utc)


def test_new_cycle_daily_rolls_to_tomorrow_when_passed(policy):
    now = datetime(2024, 5, 1, 19, 0, tzinfo=timezone.utc)
    state = policy.new_cycle(now, AppConfig(daily_hour=18, daily_minute=0))
    assert state.scheduled_at == datetime(2024, 5, 2, 18, 0, tzinfo=timezone.utc)
    assert state.date == "2024-05-01"


def test_new_cycle_daily_exactly_at_trigger_is_tomorrow(policy):
    now = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)
    state = policy.new_cycle(now, AppConfig())
    assert state.scheduled_at == datetime(2024, 5, 2, 18, 0, tzinfo=timezone.utc)


# -----------------------------------------------------------------------------
# PLAN
# -----------------------------------------------------------------------------
def test_plan_primary_warning_uses_largest_offset(policy):
    config = relative_config(3600, warn_offsets=(60, 900, 300))
    state = policy.new_cycle(NOW, config)
    plan = policy.plan(state, config, NOW)
    assert plan == SchedulePlan(deadline=NOW + timedelta(seconds=3600), primary_warning=NOW + timedelta(seconds=2700))


def test_plan_overdue_warning_is_clamped_to_now(policy):
    config = relative_config(300)
    state = policy.new_cycle(NOW, config)
    plan = policy.plan(state, config, NOW)
    assert plan.primary_warning == NOW


def test_plan_without_postpones_left_has_no_primary_warning(policy):
    config = relative_config(3600, max_postpones=1)
    state = policy.new_cycle(NOW, config)
    state.postpones_used = 1
    plan = policy.plan(state, config, NOW)
    assert plan.primary_warning is None
    assert plan.deadline == NOW + timedelta(seconds=3600)


def test_plan_without_offsets_has_no_primary_warning(policy):
    config = relative_config(3600, warn_offsets=())
    plan = policy.plan(policy.new_cycle(NOW, config), config, NOW)
    assert plan.primary_warning is None


def test_plan_unparsable_deadline_returns_none(policy):
    state = CycleState(date="2024-05-01", postpones_used=0, scheduled_deadline="not-a-date", original_deadline="x")
    assert policy.plan(state, AppConfig(), NOW) is None


# -----------------------------------------------------------------------------
# POSTPONE
# -----------------------------------------------------------------------------
def test_single_postpone_scenario(policy):
    """One 600 s postpone on a 3600 s deadline lands at now + 4200."""
    config = relative_config(3600, postpone_interval_seconds=600, max_postpones=3)
    state = policy.new_cycle(NOW, config)
    assert policy.plan(state, config, NOW).primary_warning == NOW + timedelta(seconds=2700)

    assert policy.apply_postpone(state, config, NOW) is True
    assert state.scheduled_at == NOW + timedelta(seconds=4200)
    assert state.original_at == NOW + timedelta(seconds=3600)
    assert state.postpones_used == 1


def test_postpone_refused_when_budget_exhausted(policy):
    config = relative_config(3600, max_postpones=0)
    state = policy.new_cycle(NOW, config)
    before = state.copy()
    assert policy.can_postpone(state, config) is False
    assert policy.apply_postpone(state, config, NOW) is False
    assert state == before


def test_postpone_with_unparsable_deadline_is_noop(policy):
    state = CycleState(date="2024-05-01", postpones_used=0, scheduled_deadline="garbage", original_deadline="garbage")
    assert policy.apply_postpone(state, AppConfig(), NOW) is False
    assert state.postpones_used == 0


@pytest.mark.property
@given(
    interval=st.integers(min_value=1, max_value=7200),
    limit=st.integers(min_value=0, max_value=10),
    attempts=st.integers(min_value=0, max_value=15),
)
def test_postpones_never_exceed_budget_and_advance_linearly(interval, limit, attempts):
    policy = ShutdownPolicy()
    config = relative_config(3600, postpone_interval_seconds=interval, max_postpones=limit)
    state = policy.new_cycle(NOW, config)
    original = state.original_deadline

    previous = state.scheduled_at
    for _ in range(attempts):
        if policy.can_postpone(state, config):
            policy.apply_postpone(state, config, NOW)
        assert state.scheduled_at >= previous
        previous = state.scheduled_at

    applied = min(attempts, limit)
    assert state.postpones_used == applied
    assert state.original_deadline == original
    assert state.scheduled_at == state.original_at + timedelta(seconds=applied * interval)


def test_postpone_preserves_timestamp_format(policy):
    config = relative_config(3600, postpone_interval_seconds=600)
    state = policy.new_cycle(NOW, config)
    policy.apply_postpone(state, config, NOW)
    assert state.scheduled_deadline == format_timestamp(NOW + timedelta(seconds=4200))


# -----------------------------------------------------------------------------
# DAYLIGHT SAVING
# -----------------------------------------------------------------------------
@pytest.fixture
def new_york(monkeypatch):
    """Run with the host timezone set to America/New_York."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    if "EST" not in time.tzname:
        monkeypatch.undo()
        time.tzset()
        pytest.skip("tz database not installed")
    yield
    monkeypatch.undo()
    time.tzset()


def test_trigger_after_spring_forward_keeps_wall_clock_time(policy, new_york):
    now = datetime(2024, 3, 9, 19, 0).astimezone()
    deadline = policy.new_cycle(now, AppConfig()).scheduled_at
    assert (deadline.day, deadline.hour, deadline.minute) == (10, 18, 0)
    assert deadline.utcoffset() == timedelta(hours=-4)


def test_trigger_after_fall_back_keeps_wall_clock_time(policy, new_york):
    now = datetime(2024, 11, 2, 19, 0).astimezone()
    deadline = policy.new_cycle(now, AppConfig()).scheduled_at
    assert (deadline.day, deadline.hour) == (3, 18)
    assert deadline.utcoffset() == timedelta(hours=-5)


def test_trigger_in_named_zone_keeps_wall_clock_time(policy):
    try:
        zone = ZoneInfo("America/New_York")
    except ZoneInfoNotFoundError:
        pytest.skip("tz database not installed")
    now = datetime(2024, 3, 9, 19, 0, tzinfo=zone)
    deadline = policy.new_cycle(now, AppConfig()).scheduled_at
    assert deadline.astimezone(zone).hour == 18
    assert deadline.utcoffset() == timedelta(hours=-4)


def test_daily_deadline_for_a_given_day(policy):
    deadline = policy.daily_deadline(date(2024, 5, 7), AppConfig(daily_hour=6, daily_minute=45), NOW)
    assert deadline == datetime(2024, 5, 7, 6, 45, tzinfo=timezone.utc)
