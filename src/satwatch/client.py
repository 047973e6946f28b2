"""High-level async facade wiring ingestion, state and outbound messaging."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from satwatch._gateway import IpcGateway, OutboundGateway
from satwatch.config import SatwatchConfig
from satwatch.exceptions import SatwatchError
from satwatch.ingestion.batch import IngestReport, ingest_batch
from satwatch.models.asset import AssetDetail, AssetSummary
from satwatch.models.gateway import SendResult
from satwatch.outbound import OutboundDispatcher, OutboundMessageRecorder
from satwatch.state.repository import AssetRepository
from satwatch.state.store import DeviceStateStore

_logger = logging.getLogger(__name__)


class SatwatchClient:
    """Operator-facing entry point.

    Usage::

        async with SatwatchClient(SatwatchConfig.from_env()) as client:
            client.ingest(delivery_json)
            result = await client.send_message("300234010961140", "status check")

    Ingestion and reads are synchronous and usable outside the context
    manager; outbound actions need the dispatcher it starts.
    """

    def __init__(
        self,
        config: SatwatchConfig | None = None,
        *,
        repository: AssetRepository | None = None,
        gateway: OutboundGateway | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or SatwatchConfig()
        self._store = DeviceStateStore(
            repository=repository,
            retention=self._config.retention,
            ack_clears_sos=self._config.ack_clears_sos,
        )
        self._gateway = gateway
        self._external_session = session is not None
        self._http_session = session
        self._dispatcher: OutboundDispatcher | None = None
        self._recorder: OutboundMessageRecorder | None = None

    @property
    def config(self) -> SatwatchConfig:
        return self._config

    @property
    def store(self) -> DeviceStateStore:
        return self._store

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SatwatchClient:
        gateway = self._gateway
        if gateway is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            gateway = IpcGateway(
                self._config.gateway,
                self._http_session,
                request_timeout=self._config.gateway_timeout,
            )
        self._dispatcher = OutboundDispatcher(
            gateway,
            timeout=self._config.gateway_timeout,
            max_pending=self._config.outbound_queue_size,
        )
        self._dispatcher.start()
        self._recorder = OutboundMessageRecorder(
            self._store,
            self._dispatcher,
            sos_text_prefix=self._config.sos_text_prefix,
            ack_message_text=self._config.ack_message_text,
            soft_ack_codes=self._config.gateway.soft_ack_codes,
        )
        _logger.debug("Outbound dispatch started for tenant %s", self._config.gateway.tenant_id)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._dispatcher is not None:
            await self._dispatcher.stop()
        self._dispatcher = None
        self._recorder = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _require_recorder(self) -> OutboundMessageRecorder:
        if self._recorder is None:
            raise SatwatchError("Client not started. Use 'async with SatwatchClient(...) as client:'")
        return self._recorder

    # ------------------------------------------------------------------
    # Inbound delivery
    # ------------------------------------------------------------------

    def ingest(self, payload: Any) -> IngestReport:
        """Apply one upstream delivery (``{"Events": [...]}``)."""
        return ingest_batch(self._store, payload, sentinel_device_id=self._config.sentinel_device_id)

    # ------------------------------------------------------------------
    # Device read API
    # ------------------------------------------------------------------

    def list_assets(self) -> list[AssetSummary]:
        return self._store.list_assets()

    def get_asset_detail(self, device_id: str) -> AssetDetail:
        """Full asset view; raises :class:`~satwatch.exceptions.DeviceNotFoundError`."""
        return self._store.get_asset_detail(device_id)

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    async def send_message(self, device_id: str, text: str, *, is_sos: bool = False) -> SendResult:
        return await self._require_recorder().record_and_send(device_id, text, is_sos=is_sos)

    async def acknowledge_sos(self, device_id: str) -> SendResult:
        return await self._require_recorder().acknowledge_sos(device_id)

    def close_asset(self, device_id: str) -> AssetSummary:
        return self._store.close(device_id).summary()
