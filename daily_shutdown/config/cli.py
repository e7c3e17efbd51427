# daily_shutdown/config/cli.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional, Sequence, Tuple

from daily_shutdown.config.file_loader import ConfigFileLoader, FileConfig
from daily_shutdown.config.validation import ConfigValidator, parse_offset_list
from daily_shutdown.core.config import (
    DEFAULT_DAILY_HOUR,
    DEFAULT_DAILY_MINUTE,
    DEFAULT_MAX_POSTPONES,
    DEFAULT_POSTPONE_INTERVAL_SECONDS,
    DEFAULT_WARNING_OFFSETS,
    AppConfig,
    RuntimeOptions,
)

PROG = "daily-shutdown"

DESCRIPTION = (
    "Shut the machine down at a fixed time every day, with staged warnings "
    "and a limited number of postpones."
)

EPILOG = (
    "Configuration file: $DAILY_SHUTDOWN_CONFIG_PATH, else "
    "$XDG_CONFIG_HOME/daily-shutdown/config.toml. Command-line flags override the file."
)


@dataclass(frozen=True)
class CliArguments:
    """Parsed command line: runtime overrides plus the process-level flags."""

    options: RuntimeOptions
    print_default_config: bool = False
    print_effective_config: bool = False
    verbose: bool = False
    unknown: Tuple[str, ...] = ()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROG, description=DESCRIPTION, epilog=EPILOG)
    parser.add_argument(
        "--in-seconds",
        type=int,
        metavar="N",
        help="one-off deadline N seconds from now instead of the daily time",
    )
    parser.add_argument(
        "--warn-offsets",
        metavar="LIST",
        help='warning offsets in seconds before the deadline, e.g. "900,300,60"',
    )
    parser.add_argument("--postpone-sec", type=int, metavar="S", help="postpone interval in seconds")
    parser.add_argument("--max-postpones", type=int, metavar="K", help="maximum postpones per cycle")
    parser.add_argument("--dry-run", action="store_true", help="log instead of shutting down")
    parser.add_argument("--no-persist", action="store_true", help="neither read nor write the state file")
    parser.add_argument(
        "--print-default-config",
        action="store_true",
        help="print a default config file and exit",
    )
    parser.add_argument(
        "--print-effective-config",
        action="store_true",
        help="print the merged configuration and exit",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    return parser


def help_text() -> str:
    return build_parser().format_help()


def parse_arguments(argv: Optional[Sequence[str]] = None, logger: Optional[logging.Logger] = None) -> CliArguments:
    """
    Parse command-line flags (``sys.argv[1:]`` when ``argv`` is None).
    Unknown arguments are logged and ignored; invalid values are dropped with
    a ``Config warning:`` line, the same as config file values.
    """
    log = logger or logging.getLogger(__name__)
    namespace, unknown = build_parser().parse_known_args(argv)
    if unknown:
        log.warning("Ignoring unknown arguments: %s", " ".join(unknown))

    validator = ConfigValidator("command line", logger=log)
    warn_offsets = None
    if namespace.warn_offsets is not None:
        warn_offsets = validator.offsets("--warn-offsets", list(parse_offset_list(namespace.warn_offsets)))

    options = RuntimeOptions(
        relative_seconds=validator.positive("--in-seconds", namespace.in_seconds),
        warn_offsets=warn_offsets,
        dry_run=namespace.dry_run,
        no_persist=namespace.no_persist,
        postpone_interval_seconds=validator.positive("--postpone-sec", namespace.postpone_sec),
        max_postpones=validator.non_negative("--max-postpones", namespace.max_postpones),
    )
    return CliArguments(
        options=options,
        print_default_config=namespace.print_default_config,
        print_effective_config=namespace.print_effective_config,
        verbose=namespace.verbose,
        unknown=tuple(unknown),
    )


def merge_options(file_config: FileConfig, cli: RuntimeOptions) -> RuntimeOptions:
    """Command-line values win over config file values."""
    return RuntimeOptions(
        relative_seconds=_first(cli.relative_seconds, file_config.relative_seconds),
        warn_offsets=_first(cli.warn_offsets, file_config.warn_offsets),
        dry_run=cli.dry_run or bool(file_config.dry_run),
        no_persist=cli.no_persist or bool(file_config.no_persist),
        postpone_interval_seconds=_first(cli.postpone_interval_seconds, file_config.postpone_interval_seconds),
        max_postpones=_first(cli.max_postpones, file_config.max_postpones),
    )


def build_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    loader: Optional[ConfigFileLoader] = None,
    logger: Optional[logging.Logger] = None,
) -> AppConfig:
    """Defaults, then the config file, then the command line."""
    return resolve(parse_arguments(argv, logger=logger), environ=environ, loader=loader, logger=logger)


def resolve(
    arguments: CliArguments,
    environ: Optional[Mapping[str, str]] = None,
    loader: Optional[ConfigFileLoader] = None,
    logger: Optional[logging.Logger] = None,
) -> AppConfig:
    loader = loader or ConfigFileLoader(environ=environ, logger=logger)
    file_config = loader.load()
    return file_config.to_app_config(merge_options(file_config, arguments.options))


def default_config_toml(now: Optional[datetime] = None) -> str:
    """A commented config file holding the built-in defaults."""
    stamp = (now or datetime.now().astimezone()).isoformat(timespec="seconds")
    lines = [
        "# daily-shutdown configuration",
        f"# Generated at: {stamp}",
        "#",
        "# Location: $DAILY_SHUTDOWN_CONFIG_PATH, or",
        "# $XDG_CONFIG_HOME/daily-shutdown/config.toml (~/.config when unset).",
        "",
        "# Daily deadline (local time, 24h clock)",
        f"dailyHour = {DEFAULT_DAILY_HOUR}",
        f"dailyMinute = {DEFAULT_DAILY_MINUTE}",
        "",
        "# Seconds each postpone adds to the deadline",
        f"defaultPostponeIntervalSeconds = {DEFAULT_POSTPONE_INTERVAL_SECONDS}",
        "",
        "# Postpones allowed per cycle",
        f"defaultMaxPostpones = {DEFAULT_MAX_POSTPONES}",
        "",
        "# Warnings, in seconds before the deadline",
        f"defaultWarningOffsets = {_toml_list(DEFAULT_WARNING_OFFSETS)}",
        "",
        "# Runtime overrides (usually given on the command line)",
        "# relativeSeconds = 300",
        "# warnOffsets = [120, 30]",
        "# dryRun = true",
        "# noPersist = true",
        "# postponeIntervalSeconds = 600",
        "# maxPostpones = 1",
    ]
    return "\n".join(lines) + "\n"


def effective_config_toml(config: AppConfig) -> str:
    """The merged configuration, including runtime overrides, as TOML."""
    options = config.options
    lines = [
        "# daily-shutdown effective configuration",
        f"dailyHour = {config.daily_hour}",
        f"dailyMinute = {config.daily_minute}",
        f"defaultPostponeIntervalSeconds = {config.default_postpone_interval_seconds}",
        f"defaultMaxPostpones = {config.default_max_postpones}",
        f"defaultWarningOffsets = {_toml_list(config.default_warning_offsets)}",
        "",
        "# Runtime",
    ]
    if options.relative_seconds is not None:
        lines.append(f"relativeSeconds = {options.relative_seconds}")
    if options.warn_offsets is not None:
        lines.append(f"warnOffsets = {_toml_list(options.warn_offsets)}")
    lines.append(f"dryRun = {_toml_bool(options.dry_run)}")
    lines.append(f"noPersist = {_toml_bool(options.no_persist)}")
    if options.postpone_interval_seconds is not None:
        lines.append(f"postponeIntervalSeconds = {options.postpone_interval_seconds}")
    if options.max_postpones is not None:
        lines.append(f"maxPostpones = {options.max_postpones}")
    lines.extend(
        [
            "",
            "# Effective",
            f"# postpone interval: {config.effective_postpone_interval_seconds}s",
            f"# max postpones: {config.effective_max_postpones}",
            f"# warning offsets: {_toml_list(config.effective_warning_offsets)}",
        ]
    )
    return "\n".join(lines) + "\n"


def _first(*values):
    return next((v for v in values if v is not None), None)


def _toml_list(values: Sequence[int]) -> str:
    items: List[str] = [str(v) for v in values]
    return "[" + ", ".join(items) + "]"


def _toml_bool(value: bool) -> str:
    return "true" if value else "false"
