# daily_shutdown/config/__init__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Configuration sources: the TOML config file and the command line.
"""

from .cli import build_config, default_config_toml, effective_config_toml, help_text, parse_arguments
from .file_loader import ConfigFileLoader, FileConfig

__all__ = [
    "ConfigFileLoader",
    "FileConfig",
    "build_config",
    "default_config_toml",
    "effective_config_toml",
    "help_text",
    "parse_arguments",
]
