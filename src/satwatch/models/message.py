"""Message log entries."""

from __future__ import annotations

from enum import StrEnum

from satwatch.models._base import SatwatchModel, UtcDatetime


class MessageDirection(StrEnum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MessageEntry(SatwatchModel):
    """A message exchanged with an asset.

    Outbound entries record what an operator attempted to send, not what the
    gateway confirmed.
    """

    id: str
    direction: MessageDirection
    text: str
    timestamp: UtcDatetime
    is_sos: bool = False
