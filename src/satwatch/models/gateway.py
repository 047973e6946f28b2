"""Outbound gateway results."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from satwatch.models._base import SatwatchModel
from satwatch.models.message import MessageEntry


class GatewayAck(SatwatchModel):
    """Successful (or skipped) gateway response.

    Parameters
    ----------
    channel : str or None
        ``"rest"`` or ``"soap"`` for a delivered request; ``None`` if skipped.
    skipped : bool
        ``True`` when no gateway channel is configured and nothing was sent.
    reason : str or None
        Why the request was skipped or soft-accepted.
    raw : dict
        Gateway response body (``{"raw": <text>}`` for non-JSON bodies).
    """

    channel: str | None = None
    skipped: bool = False
    reason: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class SendResult(SatwatchModel):
    """Outcome of an operator action that records locally then calls the gateway.

    ``entry`` is always the locally recorded message; it is kept even when
    ``ok`` is ``False``.
    """

    ok: bool
    device_id: str
    entry: MessageEntry
    ack: GatewayAck | None = None
    soft: bool = False
    error: str | None = None
    error_code: str | None = None
