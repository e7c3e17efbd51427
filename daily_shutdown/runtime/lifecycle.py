# daily_shutdown/runtime/lifecycle.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
import threading
from typing import Optional

from daily_shutdown.runtime.concurrency import with_lock

logger = logging.getLogger(__name__)


class ExitCoordinator:
    """
    Lets the controller ask the process to exit without owning the main thread.

    ``request_exit(delay)`` arms a timer; when it fires, ``wait()`` in the main
    thread returns and the application shuts down with status 0. The first
    request wins; later ones are ignored.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._requested = False
        self.exit_code = 0

    @property
    def requested(self) -> bool:
        return self._requested

    @property
    def exiting(self) -> bool:
        return self._event.is_set()

    def request_exit(self, delay: float = 0.0, exit_code: int = 0) -> None:
        """
        :param delay: Grace period in seconds before ``wait()`` is released.
        :param exit_code: Status the application should return.
        """
        with with_lock(self._lock):
            if self._requested:
                logger.debug("Exit already requested; ignoring repeat request")
                return
            self._requested = True
            self.exit_code = exit_code
            if delay <= 0:
                self._event.set()
                return
            logger.info("Exiting in %.1fs", delay)
            self._timer = threading.Timer(delay, self._event.set)
            self._timer.daemon = True
            self._timer.start()

    def exit_now(self, exit_code: int = 0) -> None:
        """Release ``wait()`` immediately, cancelling any pending grace timer."""
        with with_lock(self._lock):
            self._requested = True
            self.exit_code = exit_code
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until exit is due.

        :return: True if exit is due, False on timeout.
        """
        return self._event.wait(timeout)
