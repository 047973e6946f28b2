"""Outbound messaging gateway.

The core only depends on the :class:`OutboundGateway` protocol. The
production implementation, :class:`IpcGateway`, talks JSON over HTTP to the
upstream inbound-messaging service: the REST channel first, then the legacy
SOAP-style JSON channel when REST is disabled or unreachable. A REST
answer carrying a provider error code is final and is not retried.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from satwatch._constants import REST_MESSAGE_PATH, REST_SOS_ACK_PATH, SOAP_MESSAGE_PATH, SOAP_SOS_ACK_PATH
from satwatch._redact import redact_for_log
from satwatch.config import GatewayConfig
from satwatch.exceptions import GatewayError, GatewayTimeoutError, GatewayTransportError
from satwatch.models.gateway import GatewayAck

_logger = logging.getLogger(__name__)


class OutboundGateway(Protocol):
    """Structural gateway interface used by the outbound dispatcher.

    Implementations raise :class:`~satwatch.exceptions.GatewayError` (with a
    provider ``code`` where one is known) on failure.
    """

    async def send(self, device_id: str, text: str) -> GatewayAck: ...

    async def acknowledge_sos(self, device_id: str) -> GatewayAck: ...


def _join_url(base: str, path: str) -> str:
    return base.rstrip("/") + path


def _logical_error_code(data: dict[str, Any]) -> str | None:
    """Return the provider error code of a JSON body, or ``None`` on success."""
    for key in ("Code", "code"):
        if key in data:
            value = data[key]
            if value in (None, 0, "0", ""):
                return None
            return str(value)
    return None


class IpcGateway:
    """HTTP gateway with REST-first delivery and legacy fallback."""

    def __init__(
        self,
        config: GatewayConfig,
        http_session: aiohttp.ClientSession,
        *,
        request_timeout: float | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=request_timeout) if request_timeout else None

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        endpoint: str,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        request_headers = {"content-type": "application/json"}
        if headers:
            request_headers.update(headers)

        _logger.debug("POST %s headers=%s body=%s", url, redact_for_log(request_headers), redact_for_log(payload))

        try:
            async with self._http.post(
                url,
                data=json.dumps(payload),
                headers=request_headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except TimeoutError as exc:
            raise GatewayTimeoutError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc
        except aiohttp.ClientError as exc:
            raise GatewayTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        try:
            decoded = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError:
            decoded = None
        data: dict[str, Any] = decoded if isinstance(decoded, dict) else {"raw": text}

        code = _logical_error_code(data)
        if not 200 <= status < 300:
            message = data.get("Message") or data.get("message") or text[:200]
            if code is not None:
                raise GatewayError(
                    f"{endpoint} failed: HTTP {status} code={code} message={message}",
                    code=code,
                    endpoint=endpoint,
                    status_code=status,
                )
            raise GatewayTransportError(f"HTTP {status} from {endpoint}: {text[:200]}", endpoint=endpoint, status_code=status)

        if code is not None:
            raise GatewayError(
                f"{endpoint} failed: code={code} message={data.get('Message', '')}",
                code=code,
                endpoint=endpoint,
                status_code=status,
            )

        _logger.debug("Gateway %s OK: %s", endpoint, redact_for_log(data))
        return data

    async def _post_rest(self, path: str, payload: dict[str, Any]) -> GatewayAck:
        data = await self._post_json(
            _join_url(self._config.rest_base_url, path),
            payload,
            endpoint=path,
            headers={"X-API-KEY": self._config.rest_api_key},
        )
        return GatewayAck(channel="rest", raw=data)

    async def _post_soap(self, path: str, payload: dict[str, Any]) -> GatewayAck:
        body = {
            "Username": self._config.soap_username,
            "Password": self._config.soap_password,
            **payload,
        }
        data = await self._post_json(_join_url(self._config.soap_base_url, path), body, endpoint=path)
        return GatewayAck(channel="soap", raw=data)

    async def _dispatch(
        self,
        *,
        rest_path: str,
        rest_payload: dict[str, Any],
        soap_path: str,
        soap_payload: dict[str, Any],
    ) -> GatewayAck:
        if self._config.rest_ready:
            try:
                return await self._post_rest(rest_path, rest_payload)
            except (GatewayTransportError, GatewayTimeoutError) as exc:
                # A provider answer carrying a code is final; only an unreachable
                # REST channel falls back.
                if exc.code or not self._config.soap_ready:
                    raise
                _logger.warning("REST %s failed, falling back to legacy channel: %s", rest_path, exc)

        if self._config.soap_ready:
            return await self._post_soap(soap_path, soap_payload)

        _logger.warning("Tenant %s has no gateway credentials; skipping %s", self._config.tenant_id, rest_path)
        return GatewayAck(skipped=True, reason="no-credentials")

    async def send(self, device_id: str, text: str) -> GatewayAck:
        """Deliver a text message to the device."""
        return await self._dispatch(
            rest_path=REST_MESSAGE_PATH,
            rest_payload={"Imei": device_id, "Text": text},
            soap_path=SOAP_MESSAGE_PATH,
            soap_payload={"Message": {"Imei": device_id, "Text": text, "SendToInbox": True}},
        )

    async def acknowledge_sos(self, device_id: str) -> GatewayAck:
        """Acknowledge the device's active emergency."""
        return await self._dispatch(
            rest_path=REST_SOS_ACK_PATH,
            rest_payload={"Imei": device_id},
            soap_path=SOAP_SOS_ACK_PATH,
            soap_payload={"Imei": device_id},
        )

