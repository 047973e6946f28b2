"""Runtime configuration for satwatch."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from satwatch._constants import DEFAULT_RETENTION, DEFAULT_SOFT_ACK_CODES, SENTINEL_DEVICE_ID
from satwatch.exceptions import SatwatchConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise SatwatchConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class GatewayConfig:
    """Outbound gateway tenant configuration.

    One tenant corresponds to one upstream sender account. Messages go out
    over the REST channel when it is enabled and fully configured, and fall
    back to the legacy SOAP-style JSON channel otherwise.

    Parameters
    ----------
    tenant_id : str
        Identifier of the sender account, used only for logging.
    rest_enabled : bool
        Whether the REST channel may be used.
    rest_base_url : str
        REST API base URL (``.../api``).
    rest_api_key : str
        Value for the ``X-API-KEY`` header.
    soap_base_url : str
        Legacy endpoint base URL (``.../IPCInbound/V1``).
    soap_username, soap_password : str
        Legacy endpoint credentials, sent in the request body.
    soft_ack_codes : frozenset[str]
        Provider error codes that turn a failed SOS acknowledgement into a
        soft success.
    """

    tenant_id: str = "default"
    rest_enabled: bool = False
    rest_base_url: str = ""
    rest_api_key: str = ""
    soap_base_url: str = ""
    soap_username: str = ""
    soap_password: str = ""
    soft_ack_codes: frozenset[str] = DEFAULT_SOFT_ACK_CODES

    @property
    def rest_ready(self) -> bool:
        return bool(self.rest_enabled and self.rest_base_url and self.rest_api_key)

    @property
    def soap_ready(self) -> bool:
        return bool(self.soap_base_url and self.soap_username and self.soap_password)


@dataclasses.dataclass(frozen=True)
class SatwatchConfig:
    """Service configuration.

    Parameters
    ----------
    retention : int
        Maximum number of entries kept per asset in each of the position,
        message and SOS timeline logs. Oldest entries are evicted first.
    sentinel_device_id : str
        Identifier used for inbound events that carry no device identifier.
    ack_clears_sos : bool
        Whether an operator acknowledgement also clears ``is_active_sos``.
        Defaults to ``False``: only an inbound cancel (code 7) ends an SOS.
    gateway_timeout : float
        Seconds allowed for a single outbound gateway call.
    outbound_queue_size : int
        Maximum number of outbound gateway calls in flight at once.
    sos_text_prefix : str
        Prefix applied to operator messages flagged as SOS.
    ack_message_text : str
        Text recorded in the message log when an SOS is acknowledged.
    gateway : GatewayConfig
        Outbound gateway tenant configuration.
    """

    retention: int = DEFAULT_RETENTION
    sentinel_device_id: str = SENTINEL_DEVICE_ID
    ack_clears_sos: bool = False
    gateway_timeout: float = 15.0
    outbound_queue_size: int = 100
    sos_text_prefix: str = "SOS: "
    ack_message_text: str = "SOS acknowledged"
    gateway: GatewayConfig = dataclasses.field(default_factory=GatewayConfig)

    def __post_init__(self) -> None:
        if self.retention < 1:
            raise SatwatchConfigError(f"retention must be >= 1, got {self.retention}")
        if self.gateway_timeout <= 0:
            raise SatwatchConfigError(f"gateway_timeout must be > 0, got {self.gateway_timeout}")
        if self.outbound_queue_size < 1:
            raise SatwatchConfigError(f"outbound_queue_size must be >= 1, got {self.outbound_queue_size}")
        if not self.sentinel_device_id.strip():
            raise SatwatchConfigError("sentinel_device_id must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> SatwatchConfig:
        """Create configuration from environment variables.

        Reads optional ``SATWATCH_*`` variables. Explicit keyword arguments
        override environment values; ``gateway`` may be given either as a
        :class:`GatewayConfig` or as a dict of gateway field overrides.

        Returns
        -------
        SatwatchConfig
            Populated configuration.
        """
        env = os.environ

        gateway_kwargs: dict[str, Any] = {}
        _ENV_GATEWAY_MAP = {
            "SATWATCH_TENANT_ID": "tenant_id",
            "SATWATCH_REST_BASE_URL": "rest_base_url",
            "SATWATCH_REST_API_KEY": "rest_api_key",
            "SATWATCH_SOAP_BASE_URL": "soap_base_url",
            "SATWATCH_SOAP_USERNAME": "soap_username",
            "SATWATCH_SOAP_PASSWORD": "soap_password",
        }
        for env_key, field_name in _ENV_GATEWAY_MAP.items():
            val = env.get(env_key)
            if val is not None:
                gateway_kwargs[field_name] = val.strip()

        rest_enabled = env.get("SATWATCH_REST_ENABLED")
        if rest_enabled is not None:
            gateway_kwargs["rest_enabled"] = _env_bool(rest_enabled, False)

        soft_codes = env.get("SATWATCH_SOFT_ACK_CODES")
        if soft_codes is not None:
            gateway_kwargs["soft_ack_codes"] = frozenset(c.strip() for c in soft_codes.split(",") if c.strip())

        gateway_overrides = overrides.pop("gateway", None)
        if isinstance(gateway_overrides, dict):
            gateway_kwargs.update(gateway_overrides)
        elif isinstance(gateway_overrides, GatewayConfig):
            gateway_kwargs = dataclasses.asdict(gateway_overrides)

        config_kwargs: dict[str, Any] = {"gateway": GatewayConfig(**gateway_kwargs)}

        _ENV_STR_MAP = {
            "SATWATCH_SENTINEL_DEVICE_ID": "sentinel_device_id",
            "SATWATCH_SOS_TEXT_PREFIX": "sos_text_prefix",
            "SATWATCH_ACK_MESSAGE_TEXT": "ack_message_text",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "SATWATCH_RETENTION": ("retention", int),
            "SATWATCH_GATEWAY_TIMEOUT": ("gateway_timeout", float),
            "SATWATCH_OUTBOUND_QUEUE_SIZE": ("outbound_queue_size", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        if "ack_clears_sos" not in overrides:
            config_kwargs["ack_clears_sos"] = _env_bool(env.get("SATWATCH_ACK_CLEARS_SOS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
