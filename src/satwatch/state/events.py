"""Normalized inbound events.

Every inbound delivery is converted into an :class:`InboundEvent` by
:mod:`satwatch.ingestion.normalize`. Only the state/store layer interprets
them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from satwatch.models.position import PositionSample


class MessageCode(IntEnum):
    """Known upstream message codes.

    The upstream field is an open integer; codes without a member here fall
    through to the default rule of the SOS state machine.
    """

    POSITION_REPORT = 0
    FREE_TEXT = 2
    QUICK_TEXT = 3
    SOS_DECLARE = 4
    SOS_UPDATE = 6
    SOS_CANCEL = 7
    REFERENCE_POINT = 8
    TRACK_START = 10
    TRACK_INTERVAL = 11
    TRACK_STOP = 12
    CANNED_TEXT = 3099


class InboundEvent(BaseModel):
    """A normalized inbound event for one asset."""

    model_config = ConfigDict(frozen=True)

    device_id: str = Field(..., description="Asset identifier (or the sentinel id)")
    event_time: datetime
    message_code: int | None = Field(default=None, description="Upstream message code, verbatim")
    free_text: str = ""
    position: PositionSample | None = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    raw: dict[str, Any] = Field(default_factory=dict, description="Original payload (as received)")

    @field_validator("device_id")
    @classmethod
    def _normalize_device_id(cls, value: str) -> str:
        device_id = value.strip()
        if not device_id:
            raise ValueError("device_id must be non-empty")
        return device_id

    @field_validator("event_time", "observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
