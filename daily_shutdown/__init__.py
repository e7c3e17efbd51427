# daily_shutdown/__init__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""daily_shutdown: scheduled daily shutdown with staged warnings and bounded postpones

Responsibilities:
    - Compute each cycle's deadline and warning instants
    - Arm and cancel the timers that realize them
    - Serialize timer callbacks and user decisions through one controller
    - Persist the active cycle across restarts

Cross-cutting Concerns:
    Thread Safety:
        - Controller state is mutated only on its state queue
        - Timer and alert callbacks are enqueued, never applied in place

    Error Handling:
        - Structured error hierarchy rooted at DailyShutdownError
        - Persistence and action failures are logged, not fatal

    Logging:
        - Standard library logging, one logger per module
"""

__version__ = "0.1.0"
