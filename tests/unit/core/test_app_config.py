# tests/unit/core/test_app_config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from daily_shutdown.core.config import AppConfig, RuntimeOptions, normalize_offsets
from daily_shutdown.core.errors import (
    ConfigurationError,
    DailyShutdownError,
    PersistenceError,
    QueueStoppedError,
    StateDecodeError,
    SystemActionError,
)


def test_defaults():
    config = AppConfig()
    assert (config.daily_hour, config.daily_minute) == (18, 0)
    assert config.effective_postpone_interval_seconds == 900
    assert config.effective_max_postpones == 3
    assert config.effective_warning_offsets == (900, 300, 60)
    assert config.primary_warning_lead_seconds == 900
    assert not config.is_one_off
    assert config.persist_enabled
    assert not config.dry_run


def test_runtime_options_override_defaults():
    config = AppConfig(
        options=RuntimeOptions(
            relative_seconds=120,
            warn_offsets=(30, 90),
            postpone_interval_seconds=60,
            max_postpones=1,
            dry_run=True,
            no_persist=True,
        )
    )
    assert config.effective_postpone_interval_seconds == 60
    assert config.effective_max_postpones == 1
    assert config.effective_warning_offsets == (90, 30)
    assert config.relative_seconds == 120
    assert config.is_one_off
    assert config.dry_run
    assert not config.persist_enabled


def test_empty_runtime_offsets_replace_defaults():
    config = AppConfig(options=RuntimeOptions(warn_offsets=()))
    assert config.effective_warning_offsets == ()
    assert config.primary_warning_lead_seconds is None


def test_normalize_offsets_drops_non_positive_and_sorts_descending():
    assert normalize_offsets([900, 0, 300, 300, -5]) == (900, 300)
    assert normalize_offsets([]) == ()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"daily_hour": 24},
        {"daily_hour": -1},
        {"daily_minute": 60},
        {"default_postpone_interval_seconds": -1},
        {"default_max_postpones": -1},
        {"default_warning_offsets": (900, -60)},
        {"options": RuntimeOptions(postpone_interval_seconds=-5)},
        {"options": RuntimeOptions(max_postpones=-1)},
        {"options": RuntimeOptions(relative_seconds=-10)},
    ],
)
def test_invalid_configuration_fails_fast(kwargs):
    with pytest.raises(ConfigurationError):
        AppConfig(**kwargs)


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        AppConfig(daily_hour=99)


# -----------------------------------------------------------------------------
# ERROR HIERARCHY
# -----------------------------------------------------------------------------
@pytest.mark.parametrize(
    "error_class",
    [ConfigurationError, PersistenceError, StateDecodeError, SystemActionError, QueueStoppedError],
)
def test_errors_inherit_from_base(error_class):
    assert issubclass(error_class, DailyShutdownError)


def test_state_decode_error_is_persistence_error():
    assert issubclass(StateDecodeError, PersistenceError)


def test_error_details_rendering():
    error = PersistenceError("write failed", {"path": "/tmp/x"})
    assert str(error) == "write failed (details: {'path': '/tmp/x'})"
    assert error.details == {"path": "/tmp/x"}
    assert str(PersistenceError("plain")) == "plain"
