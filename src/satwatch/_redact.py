"""Helpers for safe debug logging.

satwatch logs raw upstream payloads and gateway requests at DEBUG level.
Those carry API keys, outbound auth tokens and legacy gateway passwords, and
position reports locate people in the field. Everything goes through
:func:`redact_for_log` before it reaches a log record.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "apikey",
        "api_key",
        "x-api-key",
        "x-outbound-auth-token",
        "token",
        "authorization",
        "cookie",
    }
)

_COORDINATE_KEYS: frozenset[str] = frozenset({"lat", "latitude", "lon", "lng", "longitude"})

# Two decimals is roughly 1 km, enough to debug a schema problem.
_COORDINATE_PRECISION = 2


def _coarse_coordinate(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "<coordinate>"
    try:
        return round(float(value), _COORDINATE_PRECISION)
    except OverflowError:
        return "<coordinate>"


def redact_for_log(
    value: Any,
    *,
    max_string: int = 512,
    coarse_coordinates: bool = True,
    _depth: int = 0,
) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Secrets are replaced with ``<redacted>``, long strings are truncated and,
    unless *coarse_coordinates* is disabled, latitude/longitude values are
    rounded.
    """
    if _depth > 20:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            elif coarse_coordinates and lowered in _COORDINATE_KEYS:
                redacted[key] = _coarse_coordinate(v)
            else:
                redacted[key] = redact_for_log(
                    v,
                    max_string=max_string,
                    coarse_coordinates=coarse_coordinates,
                    _depth=_depth + 1,
                )
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, bytearray):
        return [
            redact_for_log(v, max_string=max_string, coarse_coordinates=coarse_coordinates, _depth=_depth + 1)
            for v in value
        ]

    return repr(value)
