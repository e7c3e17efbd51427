# daily_shutdown/persistence/store.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
import os
import sys
import tempfile
import threading
from pathlib import Path
from typing import Mapping, Optional, Union

from daily_shutdown.core.errors import PersistenceError, StateDecodeError
from daily_shutdown.core.state import CycleState
from daily_shutdown.persistence.serializer import dumps_state, loads_state
from daily_shutdown.runtime.concurrency import with_lock

STATE_FILE_NAME = "state.json"
APP_DIRECTORY_NAME = "DailyShutdown"
XDG_DIRECTORY_NAME = "daily-shutdown"


def default_state_directory(
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """
    Where the state file lives by default: ``~/Library/Application Support``
    on macOS, ``$XDG_STATE_HOME`` (or ``~/.local/state``) elsewhere.
    """
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ
    home = home or Path.home()
    if platform == "darwin":
        return home / "Library" / "Application Support" / APP_DIRECTORY_NAME
    base = environ.get("XDG_STATE_HOME")
    root = Path(base) if base else home / ".local" / "state"
    return root / XDG_DIRECTORY_NAME


class FileStateStore:
    """
    Stores the cycle record as ``state.json`` in ``directory``.

    Writes go to a temporary file in the same directory followed by
    ``os.replace``, so a reader never observes a partial record.
    """

    def __init__(self, directory: Union[str, Path], logger: Optional[logging.Logger] = None) -> None:
        self.directory = Path(directory)
        self.path = self.directory / STATE_FILE_NAME
        self._lock = threading.Lock()
        self._log = logger or logging.getLogger(__name__)

    def load(self) -> Optional[CycleState]:
        """
        :return: The stored record, or None when the file is missing or malformed.
        :raises PersistenceError: If the file exists but cannot be read.
        """
        with with_lock(self._lock):
            try:
                text = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except (OSError, UnicodeDecodeError) as exc:
                raise PersistenceError("Unable to read state file", {"path": str(self.path), "error": str(exc)}) from exc
        try:
            return loads_state(text)
        except StateDecodeError as exc:
            self._log.warning("Ignoring malformed state file %s: %s", self.path, exc)
            return None

    def save(self, state: CycleState) -> None:
        """
        :raises PersistenceError: If the record could not be written.
        """
        payload = dumps_state(state)
        with with_lock(self._lock):
            tmp_name = None
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".tmp", dir=self.directory)
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.path)
                tmp_name = None
            except OSError as exc:
                raise PersistenceError("Unable to write state file", {"path": str(self.path), "error": str(exc)}) from exc
            finally:
                if tmp_name is not None:
                    try:
                        os.unlink(tmp_name)
                    except OSError:
                        self._log.debug("Could not remove temporary state file %s", tmp_name)


class InMemoryStateStore:
    """Thread-safe store that keeps the last saved record in memory."""

    def __init__(self, initial: Optional[CycleState] = None) -> None:
        self._state = initial.copy() if initial is not None else None
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self) -> Optional[CycleState]:
        with with_lock(self._lock):
            return self._state.copy() if self._state is not None else None

    def save(self, state: CycleState) -> None:
        with with_lock(self._lock):
            self._state = state.copy()
            self.save_count += 1
