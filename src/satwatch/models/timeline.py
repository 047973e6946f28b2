"""SOS/activity timeline entries."""

from __future__ import annotations

from enum import StrEnum

from satwatch.models._base import SatwatchModel, UtcDatetime


class TimelineEventType(StrEnum):
    POSITION_REPORT = "position-report"
    SOS_DECLARE = "sos-declare"
    SOS_UPDATE = "sos-update"
    SOS_CANCEL = "sos-cancel"
    SOS_ACK = "sos-ack"
    REFERENCE_POINT = "reference-point"
    TRACK_START = "track-start"
    TRACK_INTERVAL = "track-interval"
    TRACK_STOP = "track-stop"
    INBOUND_MESSAGE = "inbound-message"
    UNKNOWN = "unknown"


class TimelineEntry(SatwatchModel):
    type: TimelineEventType
    code: int | None = None
    timestamp: UtcDatetime
    text: str | None = None
