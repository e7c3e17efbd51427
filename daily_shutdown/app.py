# daily_shutdown/app.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Process entry point: parse flags, load configuration, wire the controller to
its production collaborators and block the main thread until exit.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Optional, Sequence

from daily_shutdown.adapters.alerts import ConsoleAlertPresenter
from daily_shutdown.adapters.system_actions import CommandSystemAction
from daily_shutdown.config.cli import default_config_toml, effective_config_toml, parse_arguments, resolve
from daily_shutdown.core.config import AppConfig
from daily_shutdown.core.controller import ShutdownController
from daily_shutdown.interfaces.protocols import AlertPresenting, StateStore, SystemAction
from daily_shutdown.logging_setup import configure_logging
from daily_shutdown.persistence.store import FileStateStore, InMemoryStateStore, default_state_directory
from daily_shutdown.runtime.lifecycle import ExitCoordinator

logger = logging.getLogger(__name__)

# Main thread wakes this often so signal handlers run promptly.
WAIT_SLICE_SECONDS = 1.0


def build_state_store(config: AppConfig) -> StateStore:
    if not config.persist_enabled:
        return InMemoryStateStore()
    return FileStateStore(default_state_directory())


def install_signal_handlers(exit_coordinator: ExitCoordinator) -> None:
    def _handle(signum, frame) -> None:
        logger.info("Received %s; exiting", signal.Signals(signum).name)
        exit_coordinator.exit_now(0)

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run(
    config: AppConfig,
    *,
    state_store: Optional[StateStore] = None,
    actions: Optional[SystemAction] = None,
    alert_presenter: Optional[AlertPresenting] = None,
    exit_coordinator: Optional[ExitCoordinator] = None,
    install_signals: bool = True,
) -> int:
    """
    Run the controller until exit is requested.

    :return: Process exit status.
    """
    exit_coordinator = exit_coordinator or ExitCoordinator()
    controller = ShutdownController(
        config=config,
        state_store=state_store or build_state_store(config),
        actions=actions or CommandSystemAction(),
        alert_presenter=alert_presenter or ConsoleAlertPresenter(),
        exit_coordinator=exit_coordinator,
    )
    if install_signals:
        install_signal_handlers(exit_coordinator)
    logger.info(
        "Starting: mode=%s dry_run=%s persist=%s offsets=%s postpone=%ss max=%d",
        f"relative {config.relative_seconds}s" if config.is_one_off else f"daily {config.daily_hour:02d}:{config.daily_minute:02d}",
        config.dry_run,
        config.persist_enabled,
        list(config.effective_warning_offsets),
        config.effective_postpone_interval_seconds,
        config.effective_max_postpones,
    )
    controller.start()
    try:
        while not exit_coordinator.wait(WAIT_SLICE_SECONDS):
            pass
    finally:
        controller.stop(timeout=5.0)
    return exit_coordinator.exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    arguments = parse_arguments(argv)
    configure_logging(arguments.verbose)
    if arguments.print_default_config:
        sys.stdout.write(default_config_toml())
        return 0
    config = resolve(arguments)
    if arguments.print_effective_config:
        sys.stdout.write(effective_config_toml(config))
        return 0
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
