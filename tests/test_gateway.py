from __future__ import annotations

from typing import Any

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from satwatch._gateway import IpcGateway
from satwatch.config import GatewayConfig
from satwatch.exceptions import GatewayError, GatewayTransportError

_IMEI = "300234010961140"


class _Upstream:
    """In-process stand-in for the REST and legacy messaging endpoints."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str | None, dict[str, Any]]] = []
        self.responses: dict[str, tuple[int, dict[str, Any]]] = {}

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/{tail:.*}", self._handle)
        return app

    async def _handle(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.requests.append((request.path, request.headers.get("X-API-KEY"), body))
        status, payload = self.responses.get(request.path, (200, {"Code": 0}))
        return web.json_response(payload, status=status)


def _base(server: TestServer) -> str:
    return f"http://{server.host}:{server.port}"


def _config(base: str, *, rest: bool = True, soap: bool = True) -> GatewayConfig:
    return GatewayConfig(
        tenant_id="t1",
        rest_enabled=rest,
        rest_base_url=f"{base}/api" if rest else "",
        rest_api_key="k3y" if rest else "",
        soap_base_url=f"{base}/IPCInbound/V1" if soap else "",
        soap_username="user" if soap else "",
        soap_password="pw" if soap else "",
    )


@pytest.mark.asyncio
async def test_rest_send_uses_api_key_header() -> None:
    upstream = _Upstream()
    async with TestServer(upstream.app()) as server, aiohttp.ClientSession() as session:
        gateway = IpcGateway(_config(_base(server)), session)
        ack = await gateway.send(_IMEI, "status check")

    assert ack.channel == "rest"
    assert ack.skipped is False
    path, api_key, body = upstream.requests[0]
    assert path == "/api/Messaging/Message"
    assert api_key == "k3y"
    assert body == {"Imei": _IMEI, "Text": "status check"}


@pytest.mark.asyncio
async def test_rest_failure_falls_back_to_legacy_channel() -> None:
    upstream = _Upstream()
    upstream.responses["/api/Messaging/Message"] = (500, {"Message": "down"})
    async with TestServer(upstream.app()) as server, aiohttp.ClientSession() as session:
        gateway = IpcGateway(_config(_base(server)), session)
        ack = await gateway.send(_IMEI, "status check")

    assert ack.channel == "soap"
    assert [r[0] for r in upstream.requests] == ["/api/Messaging/Message", "/IPCInbound/V1/Messaging.svc/Message"]
    soap_body = upstream.requests[1][2]
    assert soap_body["Username"] == "user"
    assert soap_body["Password"] == "pw"
    assert soap_body["Message"] == {"Imei": _IMEI, "Text": "status check", "SendToInbox": True}


@pytest.mark.asyncio
async def test_legacy_only_acknowledgement() -> None:
    upstream = _Upstream()
    async with TestServer(upstream.app()) as server, aiohttp.ClientSession() as session:
        gateway = IpcGateway(_config(_base(server), rest=False), session)
        ack = await gateway.acknowledge_sos(_IMEI)

    assert ack.channel == "soap"
    path, _, body = upstream.requests[0]
    assert path == "/IPCInbound/V1/Emergency.svc/Acknowledge"
    assert body["Imei"] == _IMEI


@pytest.mark.asyncio
async def test_logical_error_code_raises_with_code() -> None:
    upstream = _Upstream()
    upstream.responses["/api/Emergency/Acknowledge"] = (200, {"Code": "EmergencyProviderOwned", "Message": "no"})
    async with TestServer(upstream.app()) as server, aiohttp.ClientSession() as session:
        gateway = IpcGateway(_config(_base(server), soap=False), session)
        with pytest.raises(GatewayError) as excinfo:
            await gateway.acknowledge_sos(_IMEI)

    assert excinfo.value.code == "EmergencyProviderOwned"
    assert excinfo.value.status_code == 200


@pytest.mark.asyncio
async def test_non_2xx_without_code_is_transport_error() -> None:
    upstream = _Upstream()
    upstream.responses["/api/Messaging/Message"] = (503, {"Message": "unavailable"})
    async with TestServer(upstream.app()) as server, aiohttp.ClientSession() as session:
        gateway = IpcGateway(_config(_base(server), soap=False), session)
        with pytest.raises(GatewayTransportError) as excinfo:
            await gateway.send(_IMEI, "x")

    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_no_credentials_skips_without_request() -> None:
    async with aiohttp.ClientSession() as session:
        gateway = IpcGateway(GatewayConfig(), session)
        ack = await gateway.send(_IMEI, "status check")

    assert ack.skipped is True
    assert ack.reason == "no-credentials"
    assert ack.channel is None


@pytest.mark.asyncio
async def test_coded_rest_rejection_is_not_retried_on_legacy_channel() -> None:
    upstream = _Upstream()
    upstream.responses["/api/Emergency/Acknowledge"] = (409, {"Code": "NotAuthoritative", "Message": "provider"})
    upstream.responses["/IPCInbound/V1/Emergency.svc/Acknowledge"] = (404, {"Message": "not found"})
    async with TestServer(upstream.app()) as server, aiohttp.ClientSession() as session:
        gateway = IpcGateway(_config(_base(server)), session)
        with pytest.raises(GatewayError) as excinfo:
            await gateway.acknowledge_sos(_IMEI)

    assert excinfo.value.code == "NotAuthoritative"
    assert excinfo.value.status_code == 409
    assert [r[0] for r in upstream.requests] == ["/api/Emergency/Acknowledge"]
