"""Custom exception hierarchy for satwatch."""

from __future__ import annotations


class SatwatchError(Exception):
    """Base exception for all satwatch errors."""


class SatwatchConfigError(SatwatchError):
    """Invalid or missing configuration."""


class DeviceNotFoundError(SatwatchError):
    """No asset is known under the requested identifier."""

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        super().__init__(f"Device not found: {device_id}")


class AssetStoreError(SatwatchError):
    """Storage or internal failure while mutating an asset.

    The asset is left exactly as it was before the failed operation, so the
    caller may retry the whole delivery batch.
    """


class GatewayError(SatwatchError):
    """Outbound gateway rejected or failed a request.

    ``code`` carries the provider-specific error code (if any) which callers
    interpret, e.g. to treat a provider-owned SOS acknowledgement as a soft
    success.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
        status_code: int | None = None,
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message)


class GatewayTransportError(GatewayError):
    """HTTP-level failure (network error, or non-2xx without a provider code)."""


class GatewayTimeoutError(GatewayError):
    """Gateway call exceeded the configured timeout."""
