"""
Structured logging helpers for dashboard session events.

Every event is one compact JSON line with ``event`` and ``scope`` keys
(``scope`` names the emitting component, e.g. ``dashboard_session``),
followed by the event fields in key order.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return sorted(value, key=str) if isinstance(value, (set, frozenset)) else list(value)
    return str(value)


def format_event(event: str, *, scope: str, **fields: Any) -> str:
    """Render one event as the JSON line written by :func:`log_event`."""
    payload = {"event": event, "scope": scope, **fields}
    return json.dumps(payload, default=_jsonable, sort_keys=True)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    scope: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    logger.log(level, format_event(event, scope=scope, **fields))
