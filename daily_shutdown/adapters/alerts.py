# daily_shutdown/adapters/alerts.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
import sys
import threading
from enum import Enum
from typing import List, Optional, TextIO

from daily_shutdown.interfaces.protocols import AlertDelegate
from daily_shutdown.interfaces.types import AlertModel

ALERT_TITLE = "Scheduled System Shutdown"
TIME_FORMAT = "%H:%M"


class AlertChoice(Enum):
    """Options an alert can offer."""

    POSTPONE = "postpone"
    ACT_NOW = "act_now"
    IGNORE = "ignore"


def build_informative_text(model: AlertModel, time_format: str = TIME_FORMAT) -> str:
    """Body text of a warning alert."""
    lines = [
        f"The system is scheduled to shut down at {model.scheduled.strftime(time_format)}.",
        f"Original plan: {model.original.strftime(time_format)}.",
    ]
    if model.postpones_remaining > 0:
        lines.append(f"You may postpone up to {model.postpones_remaining} more time(s).")
    else:
        lines.append("No postpones remaining.")
    return "\n".join(lines)


def alert_choices(model: AlertModel) -> List[AlertChoice]:
    """Offered options, in display order. Postpone only while budget remains."""
    choices = [AlertChoice.ACT_NOW, AlertChoice.IGNORE]
    if model.can_postpone:
        choices.insert(0, AlertChoice.POSTPONE)
    return choices


def choice_label(choice: AlertChoice, model: AlertModel) -> str:
    if choice is AlertChoice.POSTPONE:
        return f"Postpone {model.postpone_interval_minutes} min"
    if choice is AlertChoice.ACT_NOW:
        return "Shut Down Now"
    return "Ignore"


def resolve_choice(model: AlertModel, answer: Optional[str]) -> AlertChoice:
    """
    Map a typed answer (a 1-based menu number or the start of a label) onto an
    offered choice. Anything unrecognized counts as ignoring the alert.
    """
    choices = alert_choices(model)
    text = (answer or "").strip().lower()
    if not text:
        return AlertChoice.IGNORE
    if text.isdigit():
        index = int(text) - 1
        return choices[index] if 0 <= index < len(choices) else AlertChoice.IGNORE
    for choice in choices:
        if choice_label(choice, model).lower().startswith(text):
            return choice
    return AlertChoice.IGNORE


class ConsoleAlertPresenter:
    """
    Terminal alert: prints the warning and reads one answer from ``stdin`` on
    its own daemon thread, then reports exactly one outcome to the delegate.
    ``present`` returns immediately.
    """

    def __init__(
        self,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.delegate: Optional[AlertDelegate] = None
        self._input = input_stream or sys.stdin
        self._output = output_stream or sys.stdout
        self._log = logger or logging.getLogger(__name__)
        self._thread: Optional[threading.Thread] = None

    def present(self, model: AlertModel) -> None:
        self._thread = threading.Thread(target=self._run, args=(model,), name="daily-shutdown-alert", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def render(self, model: AlertModel) -> str:
        lines = [f"*** {ALERT_TITLE} ***", build_informative_text(model)]
        for number, choice in enumerate(alert_choices(model), start=1):
            lines.append(f"  {number}) {choice_label(choice, model)}")
        lines.append("Choice: ")
        return "\n".join(lines)

    def _run(self, model: AlertModel) -> None:
        self._output.write(self.render(model))
        self._output.flush()
        try:
            answer = self._input.readline()
        except (OSError, ValueError) as exc:
            self._log.warning("Could not read alert answer: %s", exc)
            answer = ""
        else:
            if answer == "":
                self._log.debug("Alert input at end of file; treating the alert as ignored")
        self._report(resolve_choice(model, answer))

    def _report(self, choice: AlertChoice) -> None:
        delegate = self.delegate
        if delegate is None:
            self._log.warning("Alert answered (%s) with no delegate bound", choice.value)
            return
        if choice is AlertChoice.POSTPONE:
            delegate.user_chose_postpone()
        elif choice is AlertChoice.ACT_NOW:
            delegate.user_chose_act_now()
        else:
            delegate.user_ignored()
