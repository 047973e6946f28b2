"""Device state store.

This is the only component allowed to mutate assets. Every mutation runs in
a per-asset critical section, is staged on a working copy and is persisted
with a single repository ``save``; a failure at any point leaves the stored
asset untouched.
"""

from __future__ import annotations

import logging
import secrets
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TypeVar

from satwatch._constants import DEFAULT_RETENTION
from satwatch.exceptions import AssetStoreError, DeviceNotFoundError, SatwatchError
from satwatch.models.asset import AssetDetail, AssetStatus, AssetSummary
from satwatch.models.message import MessageDirection, MessageEntry
from satwatch.models.timeline import TimelineEntry, TimelineEventType
from satwatch.state.asset import DeviceAsset
from satwatch.state.events import InboundEvent
from satwatch.state.repository import AssetRepository, InMemoryAssetRepository
from satwatch.state.sos import decide

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def outbound_message_id(now: datetime) -> str:
    return f"out-{int(now.timestamp() * 1000)}-{secrets.token_hex(3)}"


class DeviceStateStore:
    """Per-asset state built from inbound events and operator actions.

    Given the same sequence of events and actions (and clock), the store
    produces the same asset state.
    """

    def __init__(
        self,
        *,
        repository: AssetRepository | None = None,
        retention: int = DEFAULT_RETENTION,
        ack_clears_sos: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository: AssetRepository = repository if repository is not None else InMemoryAssetRepository()
        self._retention = retention
        self._ack_clears_sos = ack_clears_sos
        self._clock = clock
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock(self, device_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(device_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[device_id] = lock
            return lock

    def _save(self, asset: DeviceAsset) -> None:
        try:
            self._repository.save(asset)
        except Exception as exc:
            raise AssetStoreError(f"Failed to persist asset {asset.id}: {exc}") from exc

    def _load_or_create(self, device_id: str, label: str | None = None) -> DeviceAsset:
        asset = self._repository.get(device_id)
        if asset is None:
            asset = DeviceAsset.new(device_id, retention=self._retention, label=label)
            self._save(asset)
            _logger.debug("Created asset %s", device_id)
        return asset

    def _mutate(self, device_id: str, fn: Callable[[DeviceAsset], T], *, create: bool) -> tuple[DeviceAsset, T]:
        """Run *fn* on a working copy of the asset and persist it atomically."""
        with self._lock(device_id):
            if create:
                current = self._load_or_create(device_id)
            else:
                found = self._repository.get(device_id)
                if found is None:
                    raise DeviceNotFoundError(device_id)
                current = found

            working = current.copy()
            try:
                result = fn(working)
            except SatwatchError:
                raise
            except Exception as exc:
                raise AssetStoreError(f"Failed to update asset {device_id}: {exc}") from exc
            self._save(working)
            return working, result

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def get_or_create(self, device_id: str, *, label: str | None = None) -> DeviceAsset:
        """Return the asset for *device_id*, creating it with defaults if needed.

        Idempotent: repeated calls address the same logical asset. *label*
        only applies on creation.
        """
        with self._lock(device_id):
            return self._load_or_create(device_id, label)

    def apply(self, event: InboundEvent) -> DeviceAsset:
        """Apply a normalized inbound event as one atomic update."""

        def _apply(asset: DeviceAsset) -> None:
            asset.last_event_at = event.event_time

            if event.position is not None:
                asset.positions.append(event.position)
                asset.last_position = event.position
                asset.last_position_at = event.position.timestamp

            was_active = asset.is_active_sos
            decision = decide(was_active, event.message_code, event.event_time, event.free_text)

            asset.is_active_sos = decision.is_active_sos
            if decision.sos_event_at is not None:
                asset.last_sos_event_at = decision.sos_event_at
            if decision.sos_cancel_at is not None:
                asset.last_sos_cancel_at = decision.sos_cancel_at
            if decision.reopen and asset.status == AssetStatus.CLOSED:
                asset.status = AssetStatus.OPEN
                asset.closed_at = None
                _logger.info("Asset %s reopened by SOS declare", asset.id)

            asset.sos_timeline.append(decision.timeline_entry)
            if decision.message is not None:
                asset.messages.append(decision.message)
                asset.last_message_at = decision.message.timestamp

            if was_active != decision.is_active_sos:
                _logger.info(
                    "Asset %s SOS %s (code=%s)",
                    asset.id,
                    "declared" if decision.is_active_sos else "cancelled",
                    event.message_code,
                )

        asset, _ = self._mutate(event.device_id, _apply, create=True)
        return asset

    def add_outbound_message(self, device_id: str, text: str, *, is_sos: bool = False) -> MessageEntry:
        """Record an operator-originated message (creates the asset if needed)."""

        def _record(asset: DeviceAsset) -> MessageEntry:
            now = self._clock()
            entry = MessageEntry(
                id=outbound_message_id(now),
                direction=MessageDirection.OUTBOUND,
                text=text,
                timestamp=now,
                is_sos=is_sos,
            )
            asset.messages.append(entry)
            asset.last_message_at = now
            return entry

        _, entry = self._mutate(device_id, _record, create=True)
        return entry

    def acknowledge_sos(self, device_id: str, *, text: str) -> MessageEntry:
        """Record an operator SOS acknowledgement.

        Sets ``last_sos_ack_at``, appends a ``sos-ack`` timeline entry and an
        outbound SOS message. Clears ``is_active_sos`` only when the store was
        built with ``ack_clears_sos=True``.

        Raises
        ------
        DeviceNotFoundError
            If the asset is unknown.
        """

        def _ack(asset: DeviceAsset) -> MessageEntry:
            now = self._clock()
            asset.last_sos_ack_at = now
            if self._ack_clears_sos:
                asset.is_active_sos = False
            asset.sos_timeline.append(TimelineEntry(type=TimelineEventType.SOS_ACK, timestamp=now, text=text))
            entry = MessageEntry(
                id=outbound_message_id(now),
                direction=MessageDirection.OUTBOUND,
                text=text,
                timestamp=now,
                is_sos=True,
            )
            asset.messages.append(entry)
            asset.last_message_at = now
            return entry

        _, entry = self._mutate(device_id, _ack, create=False)
        _logger.info("Asset %s SOS acknowledged", device_id)
        return entry

    def close(self, device_id: str) -> DeviceAsset:
        """Mark the asset's incident closed; all history is retained."""

        def _close(asset: DeviceAsset) -> None:
            asset.status = AssetStatus.CLOSED
            asset.closed_at = self._clock()

        asset, _ = self._mutate(device_id, _close, create=False)
        _logger.info("Asset %s closed", device_id)
        return asset

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, device_id: str) -> DeviceAsset:
        asset = self._repository.get(device_id)
        if asset is None:
            raise DeviceNotFoundError(device_id)
        return asset

    def list_assets(self) -> list[AssetSummary]:
        return [asset.summary() for asset in self._repository.all()]

    def get_asset_detail(self, device_id: str) -> AssetDetail:
        return self.get(device_id).detail()
