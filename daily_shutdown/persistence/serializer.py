# daily_shutdown/persistence/serializer.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
JSON layout of a persisted cycle record.

Keys follow the on-disk format shared with earlier releases::

    {"date": "2024-05-01", "postponesUsed": 1,
     "scheduledShutdownISO": "...", "originalScheduledShutdownISO": "..."}

Records written before the original deadline was tracked lack
``originalScheduledShutdownISO``; it is backfilled from the scheduled deadline.
A missing ``postponesUsed`` defaults to 0.
"""

import json
from typing import Any, Dict

from daily_shutdown.core.errors import StateDecodeError
from daily_shutdown.core.state import CycleState

KEY_DATE = "date"
KEY_POSTPONES_USED = "postponesUsed"
KEY_SCHEDULED = "scheduledShutdownISO"
KEY_ORIGINAL = "originalScheduledShutdownISO"


def state_to_dict(state: CycleState) -> Dict[str, Any]:
    return {
        KEY_DATE: state.date,
        KEY_POSTPONES_USED: state.postpones_used,
        KEY_SCHEDULED: state.scheduled_deadline,
        KEY_ORIGINAL: state.original_deadline,
    }


def state_from_dict(data: Any) -> CycleState:
    """
    Build a CycleState from a decoded JSON object.

    :raises StateDecodeError: If required keys are missing or mistyped.
    """
    if not isinstance(data, dict):
        raise StateDecodeError("State record must be a JSON object", {"type": type(data).__name__})
    day = data.get(KEY_DATE)
    scheduled = data.get(KEY_SCHEDULED)
    if not isinstance(day, str) or not isinstance(scheduled, str):
        raise StateDecodeError("State record is missing date or scheduled deadline", {"keys": sorted(data)})
    original = data.get(KEY_ORIGINAL)
    if original is None:
        original = scheduled
    elif not isinstance(original, str):
        raise StateDecodeError("Original deadline must be a string", {KEY_ORIGINAL: original})
    used = data.get(KEY_POSTPONES_USED, 0)
    # bool is an int subclass
    if isinstance(used, bool) or not isinstance(used, int):
        raise StateDecodeError("postponesUsed must be an integer", {KEY_POSTPONES_USED: used})
    return CycleState(date=day, postpones_used=used, scheduled_deadline=scheduled, original_deadline=original)


def dumps_state(state: CycleState) -> str:
    return json.dumps(state_to_dict(state), indent=2, sort_keys=True)


def loads_state(text: str) -> CycleState:
    """
    :raises StateDecodeError: If ``text`` is not a valid state record.
    """
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise StateDecodeError("State record is not valid JSON", {"error": str(exc)}) from exc
    return state_from_dict(data)
