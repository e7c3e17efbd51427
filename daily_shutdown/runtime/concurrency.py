# daily_shutdown/runtime/concurrency.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional


@contextmanager
def with_lock(lock: threading.Lock, timeout: Optional[float] = None) -> Iterator[None]:
    """
    Acquire ``lock`` for the duration of the block.

    :param lock: Lock to hold.
    :param timeout: Optional bound on the wait; TimeoutError if it elapses.
    """
    acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
    if not acquired:
        raise TimeoutError("Timed out waiting for lock")
    try:
        yield
    finally:
        lock.release()


class ThreadMarker:
    """
    Remembers which thread owns a serialized context so that code running on
    it can detect re-entry instead of waiting on itself.
    """

    def __init__(self) -> None:
        self._ident: Optional[int] = None

    def claim(self) -> None:
        self._ident = threading.get_ident()

    def release(self) -> None:
        self._ident = None

    def is_current(self) -> bool:
        return self._ident is not None and self._ident == threading.get_ident()
