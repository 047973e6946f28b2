"""Event normalizer.

Turns one raw upstream event (any of the historical schema revisions) into an
:class:`~satwatch.state.events.InboundEvent`. Field lookup is table driven:
each canonical field has an ordered tuple of :class:`ExtractionRule` evaluated
against a case-insensitive view of the payload, and the first rule that
yields a usable value wins.

:func:`normalize` never raises. A malformed field degrades to its default so
that one bad field does not discard an otherwise valid event. It also never
interprets message codes; that belongs to :mod:`satwatch.state.sos`.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from satwatch._constants import DEGENERATE_EPOCH_MS, SENTINEL_DEVICE_ID
from satwatch._redact import redact_for_log
from satwatch.models.position import PositionSample, is_valid_fix
from satwatch.state.events import InboundEvent

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool) or value == "" or value == "--":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None or math.isinf(parsed):
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    """Non-empty stripped string, or ``None``.

    Numbers are accepted because some revisions send identifiers as JSON
    numbers; containers and booleans are not.
    """
    if value is None or isinstance(value, (bool, Mapping, list, tuple)):
        return None
    try:
        text = str(value).strip()
    except ValueError:
        # int -> str conversion limit
        return None
    return text if text else None


def safe_text(value: Any) -> str | None:
    """Free text passes through verbatim (not stripped); only strings qualify."""
    if isinstance(value, str) and value:
        return value
    return None


_DOTNET_DATE_RE = re.compile(r"^/Date\((-?\d+)(?:[+-]\d{4})?\)/$")


def parse_epoch_ms(value: Any) -> int | None:
    """Parse an epoch-millisecond value.

    Accepts integers, integral floats, numeric strings and ``"/Date(ms)/"``
    strings. Returns ``None`` for anything else.
    """
    if isinstance(value, str):
        text = value.strip()
        match = _DOTNET_DATE_RE.match(text)
        if match:
            return safe_int(match.group(1))
        return safe_int(text)
    return safe_int(value)


def lower_keys(value: Any) -> Any:
    """Schema-agnostic view: recursively lower-case mapping keys."""
    if isinstance(value, Mapping):
        return {str(k).lower(): lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [lower_keys(v) for v in value]
    return value


@dataclass(frozen=True)
class ExtractionRule(Generic[T]):
    """Lower-case key path plus the coercion applied to the value found there."""

    path: tuple[str, ...]
    coerce: Callable[[Any], T | None]

    def extract(self, view: Mapping[str, Any]) -> T | None:
        node: Any = view
        for key in self.path:
            if not isinstance(node, Mapping):
                return None
            node = node.get(key)
        if node is None:
            return None
        return self.coerce(node)


def extract_first(view: Mapping[str, Any], rules: Sequence[ExtractionRule[T]]) -> T | None:
    """Evaluate *rules* in order and return the first usable value."""
    for rule in rules:
        value = rule.extract(view)
        if value is not None:
            return value
    return None


def _rules(coerce: Callable[[Any], T | None], *paths: tuple[str, ...]) -> tuple[ExtractionRule[T], ...]:
    return tuple(ExtractionRule(path, coerce) for path in paths)


DEVICE_ID_RULES: tuple[ExtractionRule[str], ...] = _rules(
    safe_str,
    ("imei",),
    ("deviceimei",),
    ("deviceid",),
    ("device", "imei"),
    ("device", "id"),
    ("device", "deviceid"),
)

EVENT_TIME_RULES: tuple[ExtractionRule[int], ...] = _rules(
    parse_epoch_ms,
    ("timestamp",),
    ("eventtime",),
    ("time",),
)

MESSAGE_CODE_RULES: tuple[ExtractionRule[int], ...] = _rules(
    safe_int,
    ("messagecode",),
    ("msgcode",),
)

FREE_TEXT_RULES: tuple[ExtractionRule[str], ...] = _rules(
    safe_text,
    ("freetext",),
    ("text",),
    ("message", "text"),
)

POSITION_KEYS: tuple[str, ...] = ("point", "position", "location", "coordinates")


class _PointPayload(BaseModel):
    """Position sub-object, over lower-cased keys."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lon", "lng"))
    altitude: float | None = Field(default=None, validation_alias=AliasChoices("altitude", "alt", "elevation"))
    speed: float | None = Field(default=None, validation_alias=AliasChoices("speed", "velocity"))
    course: float | None = Field(default=None, validation_alias=AliasChoices("course", "heading", "direction"))
    gps_fix: int | str | None = Field(default=None, validation_alias=AliasChoices("gpsfix", "gps_fix", "fix"))

    @field_validator("latitude", "longitude", "altitude", "speed", "course", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        parsed = safe_float(value)
        if parsed is None or not math.isfinite(parsed):
            return None
        return parsed

    @field_validator("gps_fix", mode="before")
    @classmethod
    def _coerce_fix(cls, value: Any) -> int | str | None:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int | str):
            return value
        return safe_int(value)


def resolve_device_id(view: Mapping[str, Any], sentinel_device_id: str = SENTINEL_DEVICE_ID) -> str:
    device_id = extract_first(view, DEVICE_ID_RULES)
    if device_id is None:
        _logger.debug("Inbound event has no device identifier; using sentinel %s", sentinel_device_id)
        return sentinel_device_id
    return device_id


def resolve_event_time(view: Mapping[str, Any], now: datetime) -> datetime:
    """Event time from the payload, or *now* for missing/placeholder values."""
    ms = extract_first(view, EVENT_TIME_RULES)
    if ms is None or ms <= 0 or ms in DEGENERATE_EPOCH_MS:
        if ms is not None:
            _logger.debug("Rejected placeholder event time %s; using ingestion time", ms)
        return now
    try:
        return datetime.fromtimestamp(ms / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        _logger.debug("Event time %s out of range; using ingestion time", ms)
        return now


def resolve_position(view: Mapping[str, Any], event_time: datetime) -> PositionSample | None:
    """First position sub-object found, if it holds a valid fix."""
    for key in POSITION_KEYS:
        candidate = view.get(key)
        if not isinstance(candidate, Mapping):
            continue
        try:
            point = _PointPayload.model_validate(candidate)
        except ValidationError:
            _logger.debug("Unparseable position under %r", key, exc_info=True)
            return None
        if not is_valid_fix(point.latitude, point.longitude):
            _logger.debug("Rejected position without a valid fix: %s", redact_for_log(candidate))
            return None
        assert point.latitude is not None and point.longitude is not None  # noqa: S101
        return PositionSample(
            lat=point.latitude,
            lon=point.longitude,
            altitude=point.altitude,
            speed=point.speed,
            course=point.course,
            gps_fix=point.gps_fix,
            timestamp=event_time,
        )
    return None


def normalize(
    raw: Any,
    *,
    sentinel_device_id: str = SENTINEL_DEVICE_ID,
    now: datetime | None = None,
) -> InboundEvent:
    """Normalize one raw upstream event.

    Parameters
    ----------
    raw
        Decoded JSON object for one event. Non-mappings degrade to an empty
        event for the sentinel asset.
    sentinel_device_id
        Identifier used when no device identifier resolves.
    now
        Ingestion wall-clock time, used when the payload time is unusable.
    """
    if now is None:
        now = datetime.now(UTC)
    original: dict[str, Any] = {str(k): v for k, v in raw.items()} if isinstance(raw, Mapping) else {}
    view = lower_keys(original)

    event_time = resolve_event_time(view, now)
    return InboundEvent(
        device_id=resolve_device_id(view, sentinel_device_id),
        event_time=event_time,
        message_code=extract_first(view, MESSAGE_CODE_RULES),
        free_text=extract_first(view, FREE_TEXT_RULES) or "",
        position=resolve_position(view, event_time),
        observed_at=now,
        raw=original,
    )


def extract_events(payload: Any) -> list[Any]:
    """Return the raw event list of an inbound delivery.

    Accepts ``{"Events": [...]}`` in any key case, or a bare list.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key, value in payload.items():
            if str(key).lower() == "events" and isinstance(value, list):
                return value
    return []


def normalize_batch(
    payload: Any,
    *,
    sentinel_device_id: str = SENTINEL_DEVICE_ID,
    now: datetime | None = None,
) -> list[InboundEvent]:
    """Normalize every event of one delivery, in delivery order.

    One ingestion time is used for the whole batch, and every event without
    an identifier resolves to the same sentinel asset.
    """
    if now is None:
        now = datetime.now(UTC)
    events: list[InboundEvent] = []
    for index, item in enumerate(extract_events(payload)):
        if not isinstance(item, Mapping):
            _logger.warning("Skipping non-object event at index %d: %r", index, type(item).__name__)
            continue
        events.append(normalize(item, sentinel_device_id=sentinel_device_id, now=now))
    return events
