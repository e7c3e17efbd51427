# daily_shutdown/runtime/event_queue.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Future
from typing import Any, Deque, Optional, Tuple

from daily_shutdown.core.errors import QueueStoppedError
from daily_shutdown.interfaces.types import Task
from daily_shutdown.runtime.concurrency import ThreadMarker

logger = logging.getLogger(__name__)

_WorkItem = Tuple[Task, Tuple[Any, ...], Optional[Future]]


class StateQueue:
    """
    A serial work queue: callables submitted from any thread run one at a time,
    in submission order, on a single worker thread. All controller state is
    touched only from inside this queue.

    Runtime Invariants:
    - Tasks never run concurrently with each other.
    - A task that raises is logged; later tasks still run.
    - ``sync`` called from the worker thread runs inline instead of deadlocking.
    """

    def __init__(self, name: str = "daily-shutdown-state", autostart: bool = True) -> None:
        """
        :param name: Worker thread name.
        :param autostart: Start the worker immediately.
        """
        self._name = name
        self._items: Deque[_WorkItem] = deque()
        self._condition = threading.Condition(threading.Lock())
        self._marker = ThreadMarker()
        self._worker: Optional[threading.Thread] = None
        self._running = False
        self._stopped = False
        self._busy = False
        if autostart:
            self.start()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the worker thread. Calling it on a running queue does nothing."""
        with self._condition:
            if self._running:
                return
            if self._stopped:
                raise QueueStoppedError("State queue cannot be restarted", {"name": self._name})
            self._running = True
            self._worker = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._worker.start()

    def submit(self, fn: Task, *args: Any) -> None:
        """
        Enqueue ``fn(*args)`` without waiting for it.

        :raises QueueStoppedError: If the queue has been stopped.
        """
        self._enqueue((fn, args, None))

    def sync(self, fn: Task, *args: Any, timeout: Optional[float] = None) -> Any:
        """
        Run ``fn(*args)`` on the queue and return its result, re-raising its
        exception in the caller.

        :param timeout: Seconds to wait for the result; None waits indefinitely.
        :raises QueueStoppedError: If the queue has been stopped.
        """
        if self._marker.is_current():
            return fn(*args)
        future: Future = Future()
        self._enqueue((fn, args, future))
        return future.result(timeout=timeout)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every task submitted so far has finished.

        :return: False if ``timeout`` elapsed first.
        """
        if self._marker.is_current():
            return False
        with self._condition:
            return self._condition.wait_for(lambda: not self._items and not self._busy, timeout=timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting work, let queued tasks finish, and join the worker.
        Safe to call more than once.
        """
        with self._condition:
            self._stopped = True
            self._condition.notify_all()
            worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)

    def _enqueue(self, item: _WorkItem) -> None:
        with self._condition:
            if self._stopped:
                raise QueueStoppedError("State queue is stopped", {"name": self._name})
            self._items.append(item)
            self._condition.notify_all()

    def _run(self) -> None:
        self._marker.claim()
        try:
            while True:
                with self._condition:
                    self._condition.wait_for(lambda: self._items or self._stopped)
                    if not self._items:
                        break
                    fn, args, future = self._items.popleft()
                    self._busy = True
                try:
                    self._execute(fn, args, future)
                finally:
                    with self._condition:
                        self._busy = False
                        self._condition.notify_all()
        finally:
            self._marker.release()
            with self._condition:
                self._running = False
                self._condition.notify_all()

    @staticmethod
    def _execute(fn: Task, args: Tuple[Any, ...], future: Optional[Future]) -> None:
        if future is not None and not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args)
        except Exception as exc:
            if future is not None:
                future.set_exception(exc)
            else:
                logger.exception("State queue task %r failed", getattr(fn, "__name__", fn))
            return
        if future is not None:
            future.set_result(result)
