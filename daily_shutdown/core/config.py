# daily_shutdown/core/config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Effective configuration consumed by the policy, scheduler and controller.

``AppConfig`` holds the base defaults (possibly overridden by a config file)
and ``RuntimeOptions`` holds per-run overrides. The ``effective_*`` properties
are the only values the core reads. Construction fails fast on values that no
sanitizing layer should ever let through.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from daily_shutdown.core.errors import ConfigurationError

DEFAULT_DAILY_HOUR = 18
DEFAULT_DAILY_MINUTE = 0
DEFAULT_POSTPONE_INTERVAL_SECONDS = 15 * 60
DEFAULT_MAX_POSTPONES = 3
DEFAULT_WARNING_OFFSETS: Tuple[int, ...] = (15 * 60, 5 * 60, 60)


def normalize_offsets(offsets: Iterable[int]) -> Tuple[int, ...]:
    """
    Drop non-positive values, deduplicate and sort descending (earliest
    warning first).
    """
    return tuple(sorted({int(o) for o in offsets if int(o) > 0}, reverse=True))


@dataclass(frozen=True)
class RuntimeOptions:
    """
    Per-run overrides. ``None`` means "use the AppConfig default".

    :param relative_seconds: One-off deadline this many seconds after start.
    :param warn_offsets: Replacement warning offsets (seconds before deadline).
    :param dry_run: Log instead of performing the deadline action.
    :param no_persist: Neither read nor write the state store.
    :param postpone_interval_seconds: Override for the postpone interval.
    :param max_postpones: Override for the postpone budget.
    """

    relative_seconds: Optional[int] = None
    warn_offsets: Optional[Tuple[int, ...]] = None
    dry_run: bool = False
    no_persist: bool = False
    postpone_interval_seconds: Optional[int] = None
    max_postpones: Optional[int] = None


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration: base defaults plus runtime overrides.
    """

    daily_hour: int = DEFAULT_DAILY_HOUR
    daily_minute: int = DEFAULT_DAILY_MINUTE
    default_postpone_interval_seconds: int = DEFAULT_POSTPONE_INTERVAL_SECONDS
    default_max_postpones: int = DEFAULT_MAX_POSTPONES
    default_warning_offsets: Tuple[int, ...] = DEFAULT_WARNING_OFFSETS
    options: RuntimeOptions = field(default_factory=RuntimeOptions)

    def __post_init__(self) -> None:
        if not 0 <= self.daily_hour <= 23:
            raise ConfigurationError("daily_hour out of range", {"daily_hour": self.daily_hour})
        if not 0 <= self.daily_minute <= 59:
            raise ConfigurationError("daily_minute out of range", {"daily_minute": self.daily_minute})
        if self.effective_postpone_interval_seconds < 0:
            raise ConfigurationError(
                "postpone interval must be non-negative",
                {"postpone_interval_seconds": self.effective_postpone_interval_seconds},
            )
        if self.effective_max_postpones < 0:
            raise ConfigurationError(
                "max postpones must be non-negative",
                {"max_postpones": self.effective_max_postpones},
            )
        offsets = self.options.warn_offsets if self.options.warn_offsets is not None else self.default_warning_offsets
        if any(o < 0 for o in offsets):
            raise ConfigurationError("warning offsets must be non-negative", {"offsets": list(offsets)})
        if self.options.relative_seconds is not None and self.options.relative_seconds < 0:
            raise ConfigurationError(
                "relative deadline must be non-negative",
                {"relative_seconds": self.options.relative_seconds},
            )

    @property
    def effective_postpone_interval_seconds(self) -> int:
        if self.options.postpone_interval_seconds is not None:
            return self.options.postpone_interval_seconds
        return self.default_postpone_interval_seconds

    @property
    def effective_max_postpones(self) -> int:
        if self.options.max_postpones is not None:
            return self.options.max_postpones
        return self.default_max_postpones

    @property
    def effective_warning_offsets(self) -> Tuple[int, ...]:
        """Runtime offsets replace the defaults entirely; result is sorted descending."""
        source = self.options.warn_offsets if self.options.warn_offsets is not None else self.default_warning_offsets
        return normalize_offsets(source)

    @property
    def primary_warning_lead_seconds(self) -> Optional[int]:
        """Largest offset (earliest warning), or None when no warnings are configured."""
        offsets = self.effective_warning_offsets
        return offsets[0] if offsets else None

    @property
    def relative_seconds(self) -> Optional[int]:
        return self.options.relative_seconds

    @property
    def is_one_off(self) -> bool:
        return self.options.relative_seconds is not None

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    @property
    def persist_enabled(self) -> bool:
        return not self.options.no_persist
