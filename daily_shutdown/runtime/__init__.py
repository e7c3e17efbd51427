# daily_shutdown/runtime/__init__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Runtime package: timers, the serialized state queue and process lifecycle.
"""

from .event_queue import StateQueue
from .lifecycle import ExitCoordinator
from .timers import ScheduledTimer, ThreadingTimerFactory, TimerKind, TimerScheduler

__all__ = ["ExitCoordinator", "ScheduledTimer", "StateQueue", "ThreadingTimerFactory", "TimerKind", "TimerScheduler"]
