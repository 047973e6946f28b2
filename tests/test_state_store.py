from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest

from satwatch.exceptions import AssetStoreError, DeviceNotFoundError
from satwatch.ingestion.normalize import normalize
from satwatch.models.asset import AssetStatus
from satwatch.models.message import MessageDirection
from satwatch.models.position import PositionSample
from satwatch.models.timeline import TimelineEventType
from satwatch.state.asset import DeviceAsset
from satwatch.state.events import InboundEvent
from satwatch.state.repository import InMemoryAssetRepository
from satwatch.state.store import DeviceStateStore

_IMEI = "300234010961140"
_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _at(minutes: int) -> datetime:
    return datetime(2026, 1, 1, 8, 0, tzinfo=UTC) + timedelta(minutes=minutes)


def _event(code: int | None, minutes: int = 0, text: str = "", position: PositionSample | None = None) -> InboundEvent:
    return InboundEvent(
        device_id=_IMEI,
        event_time=_at(minutes),
        message_code=code,
        free_text=text,
        position=position,
    )


def _store(**kwargs) -> DeviceStateStore:
    return DeviceStateStore(clock=lambda: _NOW, **kwargs)


class _FailingRepository(InMemoryAssetRepository):
    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def save(self, asset: DeviceAsset) -> None:
        if self.fail:
            raise OSError("disk full")
        super().save(asset)


def test_get_or_create_is_idempotent() -> None:
    store = _store()
    first = store.get_or_create(_IMEI, label="Hiker 1")
    second = store.get_or_create(_IMEI, label="ignored")

    assert first.id == second.id == _IMEI
    assert second.label == "Hiker 1"
    assert second.status == AssetStatus.OPEN
    assert second.is_active_sos is False
    assert second.positions.all() == []
    assert len(store.list_assets()) == 1


def test_label_defaults_to_device_id() -> None:
    assert _store().get_or_create(_IMEI).label == _IMEI


def test_position_event_updates_last_position() -> None:
    store = _store()
    sample = PositionSample(lat=32.08, lon=34.78, timestamp=_at(1))

    asset = store.apply(_event(0, 1, position=sample))

    assert asset.positions.all() == [sample]
    assert asset.last_position == sample
    assert asset.last_position_at == _at(1)
    assert asset.last_event_at == _at(1)
    assert asset.is_active_sos is False
    assert asset.messages.all() == []


def test_null_island_is_not_recorded() -> None:
    store = _store()
    event = normalize({"imei": _IMEI, "messageCode": 0, "point": {"latitude": 0, "longitude": 0}}, now=_NOW)

    asset = store.apply(event)

    assert asset.positions.all() == []
    assert asset.last_position is None
    assert asset.last_event_at == _NOW


def test_null_island_keeps_prior_position() -> None:
    store = _store()
    first = PositionSample(lat=32.08, lon=34.78, timestamp=_at(0))
    store.apply(_event(0, 0, position=first))

    event = normalize(
        {"imei": _IMEI, "messageCode": 0, "timeStamp": int(_at(5).timestamp() * 1000), "point": {"lat": 0, "lon": 0}},
        now=_NOW,
    )
    asset = store.apply(event)

    assert asset.last_position == first
    assert asset.last_position_at == _at(0)
    assert asset.positions.all() == [first]
    assert asset.last_event_at == _at(5)


def test_declare_with_text_appends_single_sos_message() -> None:
    store = _store()
    sample = PositionSample(lat=32.08, lon=34.78, timestamp=_at(0))

    asset = store.apply(_event(4, 0, text="help", position=sample))

    assert asset.is_active_sos is True
    assert asset.last_sos_event_at == _at(0)
    assert asset.positions.all() == [sample]
    messages = asset.messages.all()
    assert len(messages) == 1
    assert messages[0].text == "help"
    assert messages[0].is_sos is True
    assert messages[0].direction == MessageDirection.INBOUND
    assert asset.last_message_at == _at(0)
    assert [e.type for e in asset.sos_timeline.all()] == [TimelineEventType.SOS_DECLARE]


def test_declare_update_cancel_redeclare_sequence() -> None:
    store = _store()

    store.apply(_event(4, 0))
    asset = store.apply(_event(6, 5))
    assert asset.is_active_sos is True
    assert asset.last_sos_event_at == _at(0)

    asset = store.apply(_event(7, 10))
    assert asset.is_active_sos is False
    assert asset.last_sos_cancel_at == _at(10)
    assert asset.last_sos_event_at == _at(0)

    asset = store.apply(_event(4, 15))
    assert asset.is_active_sos is True
    assert asset.last_sos_event_at == _at(15)

    assert [e.type for e in asset.sos_timeline.all()] == [
        TimelineEventType.SOS_DECLARE,
        TimelineEventType.SOS_UPDATE,
        TimelineEventType.SOS_CANCEL,
        TimelineEventType.SOS_DECLARE,
    ]


def test_repeated_declare_keeps_first_event_time() -> None:
    store = _store()
    store.apply(_event(4, 0))
    asset = store.apply(_event(4, 3))

    assert asset.is_active_sos is True
    assert asset.last_sos_event_at == _at(0)


def test_free_text_during_active_sos_is_flagged() -> None:
    store = _store()
    store.apply(_event(4, 0))
    asset = store.apply(_event(2, 1, text="ankle injury"))

    assert asset.messages.latest() is not None
    assert asset.messages.latest().is_sos is True


def test_retention_evicts_oldest_position() -> None:
    store = _store(retention=2)
    for minute in range(3):
        store.apply(_event(0, minute, position=PositionSample(lat=32.0 + minute, lon=34.0, timestamp=_at(minute))))

    positions = store.get(_IMEI).positions.all()
    assert [p.lat for p in positions] == [33.0, 34.0]


def test_close_then_declare_reopens() -> None:
    store = _store()
    store.apply(_event(4, 0))
    store.apply(_event(7, 1))

    closed = store.close(_IMEI)
    assert closed.status == AssetStatus.CLOSED
    assert closed.closed_at == _NOW
    assert len(closed.sos_timeline) == 2

    asset = store.apply(_event(2, 2, text="still here"))
    assert asset.status == AssetStatus.CLOSED

    asset = store.apply(_event(4, 3))
    assert asset.status == AssetStatus.OPEN
    assert asset.closed_at is None
    assert asset.is_active_sos is True


def test_acknowledge_keeps_sos_active_by_default() -> None:
    store = _store()
    store.apply(_event(4, 0))

    entry = store.acknowledge_sos(_IMEI, text="SOS acknowledged")
    asset = store.get(_IMEI)

    assert asset.is_active_sos is True
    assert asset.last_sos_ack_at == _NOW
    assert entry.direction == MessageDirection.OUTBOUND
    assert entry.is_sos is True
    assert asset.messages.latest() == entry
    assert asset.sos_timeline.latest() is not None
    assert asset.sos_timeline.latest().type == TimelineEventType.SOS_ACK


def test_acknowledge_can_clear_sos() -> None:
    store = _store(ack_clears_sos=True)
    store.apply(_event(4, 0))
    store.acknowledge_sos(_IMEI, text="SOS acknowledged")

    assert store.get(_IMEI).is_active_sos is False


def test_unknown_device_raises_not_found() -> None:
    store = _store()
    with pytest.raises(DeviceNotFoundError):
        store.acknowledge_sos("nope", text="x")
    with pytest.raises(DeviceNotFoundError):
        store.close("nope")
    with pytest.raises(DeviceNotFoundError):
        store.get_asset_detail("nope")
    assert store.list_assets() == []


def test_outbound_message_creates_asset() -> None:
    store = _store()
    entry = store.add_outbound_message(_IMEI, "status check")

    asset = store.get(_IMEI)
    assert entry.direction == MessageDirection.OUTBOUND
    assert entry.id.startswith("out-")
    assert entry.is_sos is False
    assert asset.messages.all() == [entry]
    assert asset.last_message_at == _NOW


def test_failed_save_leaves_asset_unchanged() -> None:
    repository = _FailingRepository()
    store = DeviceStateStore(repository=repository, clock=lambda: _NOW)
    store.apply(_event(0, 0))

    repository.fail = True
    with pytest.raises(AssetStoreError):
        store.apply(_event(4, 1, text="help", position=PositionSample(lat=1.0, lon=2.0, timestamp=_at(1))))

    asset = store.get(_IMEI)
    assert asset.is_active_sos is False
    assert asset.last_sos_event_at is None
    assert asset.positions.all() == []
    assert asset.messages.all() == []
    assert len(asset.sos_timeline) == 1
    assert asset.last_event_at == _at(0)


def test_detail_lists_logs_oldest_first() -> None:
    store = _store()
    store.apply(_event(2, 0, text="one"))
    store.apply(_event(2, 1, text="two"))

    detail = store.get_asset_detail(_IMEI)
    assert [m.text for m in detail.messages] == ["one", "two"]
    assert detail.asset.id == _IMEI
    assert detail.to_api()["asset"]["lastMessageAt"] is not None


def test_concurrent_applies_to_one_asset_are_not_lost() -> None:
    store = _store()
    workers = 8
    per_worker = 50

    def _worker(index: int) -> None:
        for n in range(per_worker):
            store.apply(_event(2, index * per_worker + n, text=f"{index}-{n}"))

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    asset = store.get(_IMEI)
    assert len(asset.messages) == workers * per_worker
    assert len(asset.sos_timeline) == workers * per_worker
