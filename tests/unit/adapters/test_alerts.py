# tests/unit/adapters/test_alerts.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import io
import logging
from datetime import timedelta

import pytest

from daily_shutdown.adapters.alerts import (
    AlertChoice,
    ConsoleAlertPresenter,
    alert_choices,
    build_informative_text,
    choice_label,
    resolve_choice,
)
from daily_shutdown.interfaces.types import AlertModel
from tests.doubles import START


class RecordingDelegate:
    def __init__(self) -> None:
        self.calls = []

    def user_chose_postpone(self) -> None:
        self.calls.append("postpone")

    def user_chose_act_now(self) -> None:
        self.calls.append("act_now")

    def user_ignored(self) -> None:
        self.calls.append("ignore")


def model(used: int = 1, limit: int = 3) -> AlertModel:
    return AlertModel(
        scheduled=START + timedelta(minutes=15),
        original=START,
        postpones_used=used,
        max_postpones=limit,
        postpone_interval_seconds=900,
    )


def test_informative_text_mentions_times_and_budget():
    text = build_informative_text(model())
    assert "09:15" in text
    assert "Original plan: 09:00." in text
    assert "You may postpone up to 2 more time(s)." in text


def test_informative_text_when_budget_exhausted():
    assert "No postpones remaining." in build_informative_text(model(used=3))


def test_postpone_only_offered_with_budget():
    assert alert_choices(model()) == [AlertChoice.POSTPONE, AlertChoice.ACT_NOW, AlertChoice.IGNORE]
    assert alert_choices(model(used=3)) == [AlertChoice.ACT_NOW, AlertChoice.IGNORE]


def test_choice_labels():
    assert choice_label(AlertChoice.POSTPONE, model()) == "Postpone 15 min"
    assert choice_label(AlertChoice.ACT_NOW, model()) == "Shut Down Now"


@pytest.mark.parametrize(
    "answer, expected",
    [
        ("1", AlertChoice.POSTPONE),
        ("2\n", AlertChoice.ACT_NOW),
        ("post", AlertChoice.POSTPONE),
        ("shut", AlertChoice.ACT_NOW),
        ("", AlertChoice.IGNORE),
        (None, AlertChoice.IGNORE),
        ("9", AlertChoice.IGNORE),
        ("maybe", AlertChoice.IGNORE),
    ],
)
def test_resolve_choice(answer, expected):
    assert resolve_choice(model(), answer) is expected


def test_resolve_choice_cannot_pick_missing_postpone():
    assert resolve_choice(model(used=3), "postpone") is AlertChoice.IGNORE
    assert resolve_choice(model(used=3), "1") is AlertChoice.ACT_NOW


@pytest.mark.parametrize(
    "answer, expected",
    [("1\n", ["postpone"]), ("2\n", ["act_now"]), ("\n", ["ignore"]), ("", ["ignore"])],
)
def test_console_presenter_reports_one_outcome(answer, expected):
    output = io.StringIO()
    presenter = ConsoleAlertPresenter(input_stream=io.StringIO(answer), output_stream=output)
    presenter.delegate = RecordingDelegate()
    presenter.present(model())
    presenter.join(timeout=2.0)
    assert presenter.delegate.calls == expected
    assert "Scheduled System Shutdown" in output.getvalue()
    assert "1) Postpone 15 min" in output.getvalue()


def test_console_presenter_without_delegate_does_not_fail(caplog):
    presenter = ConsoleAlertPresenter(input_stream=io.StringIO("1\n"), output_stream=io.StringIO())
    presenter.present(model())
    presenter.join(timeout=2.0)
    assert "no delegate" in caplog.text


def test_console_presenter_logs_end_of_input(caplog):
    presenter = ConsoleAlertPresenter(input_stream=io.StringIO(""), output_stream=io.StringIO())
    presenter.delegate = RecordingDelegate()
    with caplog.at_level(logging.DEBUG, logger="daily_shutdown.adapters.alerts"):
        presenter.present(model())
        presenter.join(timeout=2.0)
    assert presenter.delegate.calls == ["ignore"]
    assert "end of file" in caplog.text


def test_console_presenter_blank_answer_is_not_end_of_input(caplog):
    presenter = ConsoleAlertPresenter(input_stream=io.StringIO("\n"), output_stream=io.StringIO())
    presenter.delegate = RecordingDelegate()
    with caplog.at_level(logging.DEBUG, logger="daily_shutdown.adapters.alerts"):
        presenter.present(model())
        presenter.join(timeout=2.0)
    assert presenter.delegate.calls == ["ignore"]
    assert "end of file" not in caplog.text
