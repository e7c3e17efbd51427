# daily_shutdown/core/__init__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Core package: cycle state, configuration, scheduling policy and the controller.

The controller lives in ``daily_shutdown.core.controller`` and is not
re-exported here because it depends on the runtime package.
"""

from .clock import SystemClock
from .config import AppConfig, RuntimeOptions
from .errors import (
    ConfigurationError,
    DailyShutdownError,
    PersistenceError,
    QueueStoppedError,
    StateDecodeError,
    SystemActionError,
)
from .policy import SchedulePlan, ShutdownPolicy
from .state import CycleState

__all__ = [
    "AppConfig",
    "ConfigurationError",
    "CycleState",
    "DailyShutdownError",
    "PersistenceError",
    "QueueStoppedError",
    "RuntimeOptions",
    "SchedulePlan",
    "ShutdownPolicy",
    "StateDecodeError",
    "SystemActionError",
    "SystemClock",
]
