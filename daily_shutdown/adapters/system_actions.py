# daily_shutdown/adapters/system_actions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
import subprocess
import sys
from typing import Callable, List, Optional, Sequence

from daily_shutdown.core.errors import SystemActionError

MACOS_SHUTDOWN = ["/usr/bin/osascript", "-e", 'tell application "System Events" to shut down']
LINUX_SHUTDOWN = ["systemctl", "poweroff"]
WINDOWS_SHUTDOWN = ["shutdown", "/s", "/t", "0"]

Runner = Callable[[List[str]], "subprocess.Popen"]


def default_shutdown_command(platform: Optional[str] = None) -> List[str]:
    """Platform shutdown command for ``platform`` (``sys.platform`` by default)."""
    platform = platform or sys.platform
    if platform == "darwin":
        return list(MACOS_SHUTDOWN)
    if platform.startswith("win"):
        return list(WINDOWS_SHUTDOWN)
    return list(LINUX_SHUTDOWN)


class CommandSystemAction:
    """
    Launches an external command as the deadline action. The command is
    started and not waited for; only a failure to launch is reported.

    :param command: Argument vector; the platform shutdown command by default.
    :param runner: Process launcher, ``subprocess.Popen`` by default.
    :param logger: Optional logger override.
    """

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        runner: Optional[Runner] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.command = list(command) if command else default_shutdown_command()
        self._runner = runner or subprocess.Popen
        self._log = logger or logging.getLogger(__name__)

    def perform_deadline_action(self) -> None:
        try:
            process = self._runner(list(self.command))
        except OSError as exc:
            raise SystemActionError(
                "Failed to launch deadline command", {"command": self.command, "error": str(exc)}
            ) from exc
        self._log.info("Launched %s pid=%s", self.command[0], getattr(process, "pid", "?"))
