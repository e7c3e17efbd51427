# daily_shutdown/interfaces/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

# Callback Types
TimerCallback = Callable[[], None]
Task = Callable[..., object]


@dataclass(frozen=True)
class AlertModel:
    """
    Everything an alert presenter needs to render a warning without touching
    the controller's live cycle state.
    """

    scheduled: datetime
    original: datetime
    postpones_used: int
    max_postpones: int
    postpone_interval_seconds: int

    @property
    def postpones_remaining(self) -> int:
        return max(0, self.max_postpones - self.postpones_used)

    @property
    def can_postpone(self) -> bool:
        return self.postpones_used < self.max_postpones

    @property
    def postpone_interval_minutes(self) -> int:
        return int(round(self.postpone_interval_seconds / 60.0))
