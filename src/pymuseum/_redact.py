"""Helpers for safe debug logging.

Request tracing may carry session tokens and exact visitor positions.
Redact them before anything reaches a DEBUG log.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_REDACTED = "<redacted>"
_MAX_DEPTH = 20

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {"password", "token", "authorization", "cookie", "accesstoken", "refreshtoken"}
)

# Positions are rounded rather than hidden so traces stay useful.
_COORDINATE_KEYS: frozenset[str] = frozenset(
    {"lat", "lng", "latitude", "longitude", "startlat", "startlng", "currentlat", "currentlng"}
)
_COORDINATE_DECIMALS = 2


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _redact_entry(key: str, value: Any, max_string: int, depth: int) -> Any:
    lowered = key.lower()
    if lowered in _SENSITIVE_VALUE_KEYS:
        return _REDACTED
    if lowered in _COORDINATE_KEYS and _is_number(value):
        return round(float(value), _COORDINATE_DECIMALS)
    return redact_for_log(value, max_string=max_string, _depth=depth + 1)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {str(k): _redact_entry(str(k), v, max_string, _depth) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return repr(value)
