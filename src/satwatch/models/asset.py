"""Read-side asset views returned to operators."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from satwatch.models._base import SatwatchModel, UtcDatetime
from satwatch.models.message import MessageEntry
from satwatch.models.position import PositionSample
from satwatch.models.timeline import TimelineEntry


class AssetStatus(StrEnum):
    OPEN = "open"
    CLOSED = "closed"


class AssetSummary(SatwatchModel):
    """Summary row for list views.

    Built from denormalized fields only; producing it never scans history.
    """

    id: str
    label: str
    status: AssetStatus
    is_active_sos: bool
    last_position: PositionSample | None = None
    last_position_at: UtcDatetime | None = None
    last_message_at: UtcDatetime | None = None
    last_event_at: UtcDatetime | None = None
    last_sos_event_at: UtcDatetime | None = None
    last_sos_ack_at: UtcDatetime | None = None
    last_sos_cancel_at: UtcDatetime | None = None
    closed_at: UtcDatetime | None = None


class AssetDetail(SatwatchModel):
    """Full view of one asset including its retained history (oldest first)."""

    asset: AssetSummary
    positions: list[PositionSample] = Field(default_factory=list)
    messages: list[MessageEntry] = Field(default_factory=list)
    sos_timeline: list[TimelineEntry] = Field(default_factory=list)
