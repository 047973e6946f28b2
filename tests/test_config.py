from __future__ import annotations

import pytest

from satwatch.config import GatewayConfig, SatwatchConfig
from satwatch.exceptions import SatwatchConfigError


def test_defaults() -> None:
    config = SatwatchConfig()
    assert config.retention == 5000
    assert config.sentinel_device_id == "VIRTUAL-TEST"
    assert config.ack_clears_sos is False
    assert config.gateway.rest_ready is False
    assert config.gateway.soap_ready is False


def test_from_env_reads_satwatch_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SATWATCH_TENANT_ID", "rescue-north")
    monkeypatch.setenv("SATWATCH_REST_ENABLED", "yes")
    monkeypatch.setenv("SATWATCH_REST_BASE_URL", "https://ipc.example.test/api")
    monkeypatch.setenv("SATWATCH_REST_API_KEY", " secret ")
    monkeypatch.setenv("SATWATCH_SOFT_ACK_CODES", "NotAuthoritative, Custom ,")
    monkeypatch.setenv("SATWATCH_RETENTION", "100")
    monkeypatch.setenv("SATWATCH_GATEWAY_TIMEOUT", "2.5")
    monkeypatch.setenv("SATWATCH_ACK_CLEARS_SOS", "1")

    config = SatwatchConfig.from_env()

    assert config.retention == 100
    assert config.gateway_timeout == 2.5
    assert config.ack_clears_sos is True
    assert config.gateway.tenant_id == "rescue-north"
    assert config.gateway.rest_api_key == "secret"
    assert config.gateway.rest_ready is True
    assert config.gateway.soft_ack_codes == frozenset({"NotAuthoritative", "Custom"})


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SATWATCH_RETENTION", "100")
    monkeypatch.setenv("SATWATCH_SOAP_USERNAME", "env-user")

    config = SatwatchConfig.from_env(retention=7, gateway={"soap_password": "pw"})

    assert config.retention == 7
    assert config.gateway.soap_username == "env-user"
    assert config.gateway.soap_password == "pw"


def test_gateway_config_override_replaces_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SATWATCH_TENANT_ID", "from-env")
    config = SatwatchConfig.from_env(gateway=GatewayConfig(tenant_id="explicit"))
    assert config.gateway.tenant_id == "explicit"


def test_invalid_number_raises_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SATWATCH_RETENTION", "lots")
    with pytest.raises(SatwatchConfigError, match="SATWATCH_RETENTION"):
        SatwatchConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"retention": 0},
        {"gateway_timeout": 0},
        {"sentinel_device_id": "  "},
        {"outbound_queue_size": 0},
        {"outbound_queue_size": -5},
    ],
)
def test_invalid_values_rejected(kwargs: dict) -> None:
    with pytest.raises(SatwatchConfigError):
        SatwatchConfig(**kwargs)


def test_invalid_queue_size_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SATWATCH_OUTBOUND_QUEUE_SIZE", "0")
    with pytest.raises(SatwatchConfigError, match="outbound_queue_size"):
        SatwatchConfig.from_env()
