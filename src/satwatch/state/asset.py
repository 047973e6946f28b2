"""Mutable per-asset state held by the store."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime

from satwatch.models.asset import AssetDetail, AssetStatus, AssetSummary
from satwatch.models.message import MessageEntry
from satwatch.models.position import PositionSample
from satwatch.models.timeline import TimelineEntry
from satwatch.state.logs import BoundedLog


@dataclass
class DeviceAsset:
    """Canonical state of one tracked unit.

    ``last_*`` fields are denormalized so list views never scan the logs.
    Assets are never deleted; closing one only changes ``status``.
    """

    id: str
    positions: BoundedLog[PositionSample]
    messages: BoundedLog[MessageEntry]
    sos_timeline: BoundedLog[TimelineEntry]
    label: str = ""
    status: AssetStatus = AssetStatus.OPEN
    is_active_sos: bool = False
    last_position: PositionSample | None = None
    last_position_at: datetime | None = None
    last_message_at: datetime | None = None
    last_event_at: datetime | None = None
    last_sos_event_at: datetime | None = None
    last_sos_ack_at: datetime | None = None
    last_sos_cancel_at: datetime | None = None
    closed_at: datetime | None = None

    @classmethod
    def new(cls, device_id: str, *, retention: int, label: str | None = None) -> DeviceAsset:
        return cls(
            id=device_id,
            label=label or device_id,
            positions=BoundedLog(retention),
            messages=BoundedLog(retention),
            sos_timeline=BoundedLog(retention),
        )

    def copy(self) -> DeviceAsset:
        """Working copy for staged mutation; logs are copied, entries shared."""
        return dataclasses.replace(
            self,
            positions=self.positions.copy(),
            messages=self.messages.copy(),
            sos_timeline=self.sos_timeline.copy(),
        )

    def summary(self) -> AssetSummary:
        return AssetSummary(
            id=self.id,
            label=self.label,
            status=self.status,
            is_active_sos=self.is_active_sos,
            last_position=self.last_position,
            last_position_at=self.last_position_at,
            last_message_at=self.last_message_at,
            last_event_at=self.last_event_at,
            last_sos_event_at=self.last_sos_event_at,
            last_sos_ack_at=self.last_sos_ack_at,
            last_sos_cancel_at=self.last_sos_cancel_at,
            closed_at=self.closed_at,
        )

    def detail(self) -> AssetDetail:
        return AssetDetail(
            asset=self.summary(),
            positions=self.positions.all(),
            messages=self.messages.all(),
            sos_timeline=self.sos_timeline.all(),
        )
