"""Batch ingestion of upstream deliveries.

A delivery is processed best-effort: every event is normalized and applied
in delivery order, and a failure to apply one event is logged and counted
without stopping the rest of the batch.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from satwatch._constants import SENTINEL_DEVICE_ID
from satwatch._redact import redact_for_log
from satwatch.exceptions import AssetStoreError
from satwatch.ingestion.normalize import normalize_batch
from satwatch.state.store import DeviceStateStore

_logger = logging.getLogger(__name__)


class IngestReport(BaseModel):
    """Outcome of one delivery.

    ``failed`` counts events whose apply raised :class:`AssetStoreError`; an
    HTTP layer may use it to request redelivery of the whole batch, which is
    safe because re-applying events is idempotent for SOS state.
    """

    model_config = ConfigDict(frozen=True)

    accepted: int = 0
    failed: int = 0
    device_ids: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0


def ingest_batch(
    store: DeviceStateStore,
    payload: Any,
    *,
    sentinel_device_id: str = SENTINEL_DEVICE_ID,
    now: datetime | None = None,
) -> IngestReport:
    """Normalize and apply one upstream delivery."""
    if now is None:
        now = datetime.now(UTC)
    _logger.debug("Inbound delivery: %s", redact_for_log(payload))

    events = normalize_batch(payload, sentinel_device_id=sentinel_device_id, now=now)
    if not events:
        _logger.warning("Inbound delivery contained no events")
        return IngestReport()

    accepted = 0
    failed = 0
    device_ids: list[str] = []
    for event in events:
        try:
            store.apply(event)
        except AssetStoreError:
            failed += 1
            _logger.warning("Failed to apply event for %s", event.device_id, exc_info=True)
            continue
        accepted += 1
        if event.device_id not in device_ids:
            device_ids.append(event.device_id)

    _logger.debug("Delivery applied: accepted=%d failed=%d devices=%s", accepted, failed, device_ids)
    return IngestReport(accepted=accepted, failed=failed, device_ids=device_ids)
