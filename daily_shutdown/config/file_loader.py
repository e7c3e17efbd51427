# daily_shutdown/config/file_loader.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Optional TOML configuration file.

Lookup order, first hit wins:

1. ``$DAILY_SHUTDOWN_CONFIG_PATH`` (explicit; never falls through)
2. ``$XDG_CONFIG_HOME/daily-shutdown/config.toml`` (``~/.config`` when unset)
3. ``~/Library/Application Support/DailyShutdown/config.toml`` (legacy)

Every key is optional. Unknown keys are ignored, invalid values are dropped
with a ``Config warning:`` line, and an unreadable, oversized or malformed file
yields an empty ``FileConfig`` so built-in defaults apply.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

from daily_shutdown.config.validation import ConfigValidator
from daily_shutdown.core.config import (
    DEFAULT_DAILY_HOUR,
    DEFAULT_DAILY_MINUTE,
    DEFAULT_MAX_POSTPONES,
    DEFAULT_POSTPONE_INTERVAL_SECONDS,
    DEFAULT_WARNING_OFFSETS,
    AppConfig,
    RuntimeOptions,
)

CONFIG_PATH_ENV = "DAILY_SHUTDOWN_CONFIG_PATH"
CONFIG_FILE_NAME = "config.toml"
MAX_CONFIG_BYTES = 256 * 1024


@dataclass(frozen=True)
class FileConfig:
    """
    Sanitized contents of a config file. ``None`` means "not set".
    """

    daily_hour: Optional[int] = None
    daily_minute: Optional[int] = None
    default_postpone_interval_seconds: Optional[int] = None
    default_max_postpones: Optional[int] = None
    default_warning_offsets: Optional[Tuple[int, ...]] = None
    relative_seconds: Optional[int] = None
    warn_offsets: Optional[Tuple[int, ...]] = None
    dry_run: Optional[bool] = None
    no_persist: Optional[bool] = None
    postpone_interval_seconds: Optional[int] = None
    max_postpones: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], validator: ConfigValidator) -> "FileConfig":
        """
        Build from a decoded TOML table, dropping invalid values.

        :param data: Decoded top-level table.
        :param validator: Collects and logs warnings.
        """
        return cls(
            daily_hour=validator.in_range("dailyHour", data.get("dailyHour"), 0, 23),
            daily_minute=validator.in_range("dailyMinute", data.get("dailyMinute"), 0, 59),
            default_postpone_interval_seconds=validator.positive(
                "defaultPostponeIntervalSeconds", data.get("defaultPostponeIntervalSeconds")
            ),
            default_max_postpones=validator.non_negative("defaultMaxPostpones", data.get("defaultMaxPostpones")),
            default_warning_offsets=validator.offsets("defaultWarningOffsets", data.get("defaultWarningOffsets")),
            relative_seconds=validator.positive("relativeSeconds", data.get("relativeSeconds")),
            warn_offsets=validator.offsets("warnOffsets", data.get("warnOffsets")),
            dry_run=validator.flag("dryRun", data.get("dryRun")),
            no_persist=validator.flag("noPersist", data.get("noPersist")),
            postpone_interval_seconds=validator.positive("postponeIntervalSeconds", data.get("postponeIntervalSeconds")),
            max_postpones=validator.non_negative("maxPostpones", data.get("maxPostpones")),
        )

    def runtime_options(self) -> RuntimeOptions:
        return RuntimeOptions(
            relative_seconds=self.relative_seconds,
            warn_offsets=self.warn_offsets,
            dry_run=bool(self.dry_run),
            no_persist=bool(self.no_persist),
            postpone_interval_seconds=self.postpone_interval_seconds,
            max_postpones=self.max_postpones,
        )

    def to_app_config(self, options: Optional[RuntimeOptions] = None) -> AppConfig:
        """
        Layer this file over the built-in defaults.

        :param options: Runtime options to attach; the file's own when omitted.
        """
        return AppConfig(
            daily_hour=_pick(self.daily_hour, DEFAULT_DAILY_HOUR),
            daily_minute=_pick(self.daily_minute, DEFAULT_DAILY_MINUTE),
            default_postpone_interval_seconds=_pick(
                self.default_postpone_interval_seconds, DEFAULT_POSTPONE_INTERVAL_SECONDS
            ),
            default_max_postpones=_pick(self.default_max_postpones, DEFAULT_MAX_POSTPONES),
            default_warning_offsets=_pick(self.default_warning_offsets, DEFAULT_WARNING_OFFSETS),
            options=options if options is not None else self.runtime_options(),
        )


class ConfigFileLoader:
    """
    Locates and decodes the config file.

    :param environ: Environment to read paths from; ``os.environ`` by default.
    :param home: Home directory; ``Path.home()`` by default.
    :param logger: Optional logger override.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        home: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.environ = os.environ if environ is None else environ
        self.home = home or Path.home()
        self._log = logger or logging.getLogger(__name__)
        self.loaded_from: Optional[Path] = None

    def standard_paths(self) -> List[Path]:
        xdg = self.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else self.home / ".config"
        return [
            base / "daily-shutdown" / CONFIG_FILE_NAME,
            self.home / "Library" / "Application Support" / "DailyShutdown" / CONFIG_FILE_NAME,
        ]

    def load(self) -> FileConfig:
        self.loaded_from = None
        explicit = self.environ.get(CONFIG_PATH_ENV)
        if explicit:
            path = Path(explicit).expanduser()
            text = self._read(path)
            if text is None:
                self._log.warning("Config: explicit path set but not readable: %s", path)
                return FileConfig()
            return self._decode(path, text)
        for path in self.standard_paths():
            if not path.is_file():
                continue
            text = self._read(path)
            if text is None:
                self._log.warning("Config: not readable: %s", path)
                continue
            return self._decode(path, text)
        self._log.debug("Config: no config file found; using defaults")
        return FileConfig()

    def parse(self, text: str, source: str = "<string>") -> FileConfig:
        """
        Decode TOML ``text``.

        :raises tomllib.TOMLDecodeError: If ``text`` is not valid TOML.
        """
        data = tomllib.loads(text)
        return FileConfig.from_mapping(data, ConfigValidator(source, logger=self._log))

    def _read(self, path: Path) -> Optional[str]:
        """Return the file's text; None if missing, unreadable, oversized or not UTF-8."""
        try:
            size = path.stat().st_size
            if size > MAX_CONFIG_BYTES:
                self._log.warning(
                    "Config: file exceeds size cap (%d > %d bytes): %s", size, MAX_CONFIG_BYTES, path
                )
                return None
            return path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self._log.debug("Config: failed to read %s: %s", path, exc)
            return None

    def _decode(self, path: Path, text: str) -> FileConfig:
        try:
            config = self.parse(text, source=str(path))
        except tomllib.TOMLDecodeError as exc:
            self._log.warning("Config: TOML decode failed for %s: %s", path, exc)
            return FileConfig()
        self.loaded_from = path
        self._log.info("Config: loaded %s", path)
        return config


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value
