# daily_shutdown/adapters/__init__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Production implementations of the alert and system action interfaces.
"""

from .alerts import ConsoleAlertPresenter, build_informative_text
from .system_actions import CommandSystemAction

__all__ = ["CommandSystemAction", "ConsoleAlertPresenter", "build_informative_text"]
