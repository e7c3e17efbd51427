# daily_shutdown/config/validation.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from daily_shutdown.core.config import normalize_offsets

WARNING_PREFIX = "Config warning:"


@dataclass(frozen=True)
class ConfigWarning:
    """
    One rejected or normalized configuration value.

    Attributes:
        key: Configuration key as written by the user
        message: What was wrong and what happened to the value
        value: The value as supplied
    """

    key: str
    message: str
    value: Any

    def __str__(self) -> str:
        return f"{WARNING_PREFIX} {self.key} {self.message} ({self.value!r})"


class ConfigValidator:
    """
    Sanitizes user-supplied configuration values. Invalid values are dropped
    (the caller falls back to defaults) and reported as ``Config warning:``
    log lines rather than raised.
    """

    def __init__(self, source: str, logger: Optional[logging.Logger] = None) -> None:
        """
        :param source: Where the values came from (a path or "command line").
        :param logger: Optional logger override.
        """
        self.source = source
        self.warnings: List[ConfigWarning] = []
        self._log = logger or logging.getLogger(__name__)

    def warn(self, key: str, message: str, value: Any) -> None:
        warning = ConfigWarning(key, message, value)
        self.warnings.append(warning)
        self._log.warning("%s [%s]", warning, self.source)

    def integer(self, key: str, value: Any) -> Optional[int]:
        if value is None:
            return None
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, int):
            self.warn(key, "must be an integer; ignoring", value)
            return None
        return value

    def in_range(self, key: str, value: Any, low: int, high: int) -> Optional[int]:
        number = self.integer(key, value)
        if number is not None and not low <= number <= high:
            self.warn(key, f"out of range {low}..{high}; using default", number)
            return None
        return number

    def positive(self, key: str, value: Any) -> Optional[int]:
        number = self.integer(key, value)
        if number is not None and number <= 0:
            self.warn(key, "must be positive; ignoring", number)
            return None
        return number

    def non_negative(self, key: str, value: Any) -> Optional[int]:
        number = self.integer(key, value)
        if number is not None and number < 0:
            self.warn(key, "must not be negative; ignoring", number)
            return None
        return number

    def flag(self, key: str, value: Any) -> Optional[bool]:
        if value is None:
            return None
        if not isinstance(value, bool):
            self.warn(key, "must be true or false; ignoring", value)
            return None
        return value

    def offsets(self, key: str, value: Any) -> Optional[Tuple[int, ...]]:
        """
        Accept a list of integers; drop non-positive values, deduplicate and
        sort descending. An empty result is dropped.
        """
        if value is None:
            return None
        if not isinstance(value, (list, tuple)):
            self.warn(key, "must be a list of integers; ignoring", value)
            return None
        numbers: List[int] = []
        for item in value:
            if isinstance(item, bool) or not isinstance(item, int):
                self.warn(key, "contains a non-integer entry; skipping it", item)
                continue
            numbers.append(item)
        normalized = normalize_offsets(numbers)
        if not normalized:
            self.warn(key, "has no positive offsets; ignoring", list(value))
            return None
        if list(normalized) != numbers:
            self.warn(key, f"normalized to {list(normalized)}", list(value))
        return normalized


def parse_offset_list(text: str) -> Sequence[int]:
    """Split ``"900,300 60"`` into integers, skipping unparsable pieces."""
    numbers = []
    for piece in text.replace(",", " ").split():
        try:
            numbers.append(int(piece))
        except ValueError:
            continue
    return numbers
