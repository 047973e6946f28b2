"""Outbound message recording and gateway dispatch.

Operator actions follow one shape: record locally first, then ask the
gateway. The local record is operator intent ("what was attempted"), so it
is never rolled back when the gateway fails.

Each gateway call runs as its own task with its own timeout, so a slow call
for one device never delays another, and inbound ingestion never waits on
any of them.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Any

from satwatch._constants import DEFAULT_SOFT_ACK_CODES
from satwatch._gateway import OutboundGateway
from satwatch.exceptions import GatewayError, GatewayTimeoutError
from satwatch.models.gateway import GatewayAck, SendResult
from satwatch.models.message import MessageEntry
from satwatch.state.store import DeviceStateStore

_logger = logging.getLogger(__name__)


class OutboundAction(StrEnum):
    SEND = "send"
    ACK_SOS = "ack-sos"


class OutboundDispatcher:
    """Runs outbound gateway calls as bounded, independent tasks.

    At most ``max_pending`` calls are in flight at once; beyond that
    :meth:`submit` fails fast instead of queueing. A call keeps running when
    the caller awaiting it is cancelled, since the action it carries has
    already been recorded.

    Usage::

        async with OutboundDispatcher(gateway, timeout=15.0) as dispatcher:
            ack = await dispatcher.submit("300234010961140", OutboundAction.SEND, "hello")
    """

    def __init__(self, gateway: OutboundGateway, *, timeout: float = 15.0, max_pending: int = 100) -> None:
        if max_pending < 1:
            raise ValueError(f"max_pending must be >= 1, got {max_pending}")
        self._gateway = gateway
        self._timeout = timeout
        self._max_pending = max_pending
        self._tasks: set[asyncio.Task[GatewayAck]] = set()
        self._running = False

    async def __aenter__(self) -> OutboundDispatcher:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Number of gateway calls currently in flight."""
        return len(self._tasks)

    def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        """Stop accepting calls and cancel the ones still in flight."""
        self._running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def submit(self, device_id: str, action: OutboundAction, text: str = "") -> GatewayAck:
        """Run one gateway call and wait for its outcome.

        Raises
        ------
        GatewayError
            If the dispatcher is not running or already at ``max_pending``,
            is stopped mid-call, or the gateway call fails or times out.
        """
        if not self._running:
            raise GatewayError("Outbound dispatcher is not running", endpoint=action)
        if len(self._tasks) >= self._max_pending:
            raise GatewayError(f"Too many pending outbound calls ({self._max_pending})", endpoint=action)

        task = asyncio.get_running_loop().create_task(
            self._call(device_id, action, text),
            name=f"satwatch-outbound-{action}-{device_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise GatewayError("Outbound dispatcher stopped", endpoint=action) from None
            raise

    def _on_done(self, task: asyncio.Task[GatewayAck]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        # Retrieve the outcome so a call whose caller went away is still reported.
        exc = task.exception()
        if exc is not None:
            _logger.debug("Outbound call %s finished with %r", task.get_name(), exc)

    async def _invoke(self, device_id: str, action: OutboundAction, text: str) -> GatewayAck:
        if action == OutboundAction.ACK_SOS:
            return await self._gateway.acknowledge_sos(device_id)
        return await self._gateway.send(device_id, text)

    async def _call(self, device_id: str, action: OutboundAction, text: str) -> GatewayAck:
        try:
            return await asyncio.wait_for(self._invoke(device_id, action, text), self._timeout)
        except TimeoutError as exc:
            raise GatewayTimeoutError(f"{action} timed out after {self._timeout}s", endpoint=action) from exc
        except GatewayError:
            raise
        except Exception as exc:
            _logger.exception("Unexpected gateway failure for %s", device_id)
            raise GatewayError(f"{action} failed: {exc}", endpoint=action) from exc


class OutboundMessageRecorder:
    """Records operator messages/acknowledgements, then dispatches them."""

    def __init__(
        self,
        store: DeviceStateStore,
        dispatcher: OutboundDispatcher,
        *,
        sos_text_prefix: str = "SOS: ",
        ack_message_text: str = "SOS acknowledged",
        soft_ack_codes: frozenset[str] = DEFAULT_SOFT_ACK_CODES,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._sos_text_prefix = sos_text_prefix
        self._ack_message_text = ack_message_text
        self._soft_ack_codes = soft_ack_codes

    @staticmethod
    def _failed(device_id: str, entry: MessageEntry, exc: GatewayError) -> SendResult:
        return SendResult(
            ok=False,
            device_id=device_id,
            entry=entry,
            error=str(exc),
            error_code=exc.code or None,
        )

    async def record_and_send(self, device_id: str, text: str, *, is_sos: bool = False) -> SendResult:
        """Record an outbound message, then send it through the gateway.

        The recorded entry is kept whatever the gateway outcome; a gateway
        failure is reported through ``SendResult.ok``.

        Raises
        ------
        ValueError
            If *text* is empty or blank.
        """
        if not text or not text.strip():
            raise ValueError("Message text is required")
        body = f"{self._sos_text_prefix}{text}" if is_sos else text

        entry = self._store.add_outbound_message(device_id, body, is_sos=is_sos)
        try:
            ack = await self._dispatcher.submit(device_id, OutboundAction.SEND, body)
        except GatewayError as exc:
            _logger.warning("Gateway send to %s failed: %s", device_id, exc)
            return self._failed(device_id, entry, exc)
        return SendResult(ok=True, device_id=device_id, entry=entry, ack=ack)

    async def acknowledge_sos(self, device_id: str) -> SendResult:
        """Record an SOS acknowledgement, then acknowledge it upstream.

        A gateway rejection whose code says a third-party emergency provider
        owns the incident is a soft success (``ok=True, soft=True``).

        Raises
        ------
        DeviceNotFoundError
            If the asset is unknown.
        """
        entry = self._store.acknowledge_sos(device_id, text=self._ack_message_text)
        try:
            ack = await self._dispatcher.submit(device_id, OutboundAction.ACK_SOS)
        except GatewayError as exc:
            if exc.code and exc.code in self._soft_ack_codes:
                _logger.info("SOS for %s is owned by the emergency provider (code=%s)", device_id, exc.code)
                return SendResult(
                    ok=True,
                    soft=True,
                    device_id=device_id,
                    entry=entry,
                    ack=GatewayAck(reason="provider-owned", raw={"code": exc.code}),
                    error_code=exc.code,
                )
            _logger.warning("Gateway SOS acknowledgement for %s failed: %s", device_id, exc)
            return self._failed(device_id, entry, exc)
        return SendResult(ok=True, device_id=device_id, entry=entry, ack=ack)
