"""satwatch - Event ingestion and SOS incident state for satellite messengers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("satwatch")
except PackageNotFoundError:
    __version__ = "0+local"
from satwatch.client import SatwatchClient
from satwatch.config import GatewayConfig, SatwatchConfig
from satwatch.exceptions import (
    AssetStoreError,
    DeviceNotFoundError,
    GatewayError,
    GatewayTimeoutError,
    GatewayTransportError,
    SatwatchConfigError,
    SatwatchError,
)
from satwatch.ingestion import IngestReport, ingest_batch, normalize, normalize_batch
from satwatch.models import (
    AssetDetail,
    AssetStatus,
    AssetSummary,
    GatewayAck,
    MessageDirection,
    MessageEntry,
    PositionSample,
    SendResult,
    TimelineEntry,
    TimelineEventType,
)
from satwatch.state.events import InboundEvent, MessageCode
from satwatch.state.store import DeviceStateStore

__all__ = [
    "__version__",
    "AssetDetail",
    "AssetStatus",
    "AssetStoreError",
    "AssetSummary",
    "DeviceNotFoundError",
    "DeviceStateStore",
    "GatewayAck",
    "GatewayConfig",
    "GatewayError",
    "GatewayTimeoutError",
    "GatewayTransportError",
    "InboundEvent",
    "IngestReport",
    "MessageCode",
    "MessageDirection",
    "MessageEntry",
    "PositionSample",
    "SatwatchClient",
    "SatwatchConfig",
    "SatwatchConfigError",
    "SatwatchError",
    "SendResult",
    "TimelineEntry",
    "TimelineEventType",
    "ingest_batch",
    "normalize",
    "normalize_batch",
]
