# daily_shutdown/persistence/__init__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Persistence package: JSON layout of the cycle record and the stores that hold it.
"""

from .serializer import dumps_state, loads_state
from .store import FileStateStore, InMemoryStateStore, default_state_directory

__all__ = ["FileStateStore", "InMemoryStateStore", "default_state_directory", "dumps_state", "loads_state"]
