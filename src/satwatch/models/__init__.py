"""Domain models for satwatch."""

from satwatch.models._base import SatwatchModel, UtcDatetime
from satwatch.models.asset import AssetDetail, AssetStatus, AssetSummary
from satwatch.models.gateway import GatewayAck, SendResult
from satwatch.models.message import MessageDirection, MessageEntry
from satwatch.models.position import PositionSample, is_valid_fix
from satwatch.models.timeline import TimelineEntry, TimelineEventType

__all__ = [
    "AssetDetail",
    "AssetStatus",
    "AssetSummary",
    "GatewayAck",
    "MessageDirection",
    "MessageEntry",
    "PositionSample",
    "SatwatchModel",
    "SendResult",
    "TimelineEntry",
    "TimelineEventType",
    "UtcDatetime",
    "is_valid_fix",
]
