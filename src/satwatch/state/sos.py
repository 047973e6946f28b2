"""SOS lifecycle state machine.

This module contains *no* payload parsing and no storage access. It maps an
asset's current SOS flag and one normalized inbound event onto the fields
the store must change, the timeline entry to append and, optionally, the
inbound message to record.

Processing order is authoritative: the decision only ever looks at the
asset's current flag, never at how the event time compares to earlier
events.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from satwatch.models.message import MessageDirection, MessageEntry
from satwatch.models.timeline import TimelineEntry, TimelineEventType
from satwatch.state.events import MessageCode

DEFAULT_SOS_TEXT = "SOS activated"

_TEXT_CODES: frozenset[int] = frozenset({MessageCode.FREE_TEXT, MessageCode.QUICK_TEXT, MessageCode.CANNED_TEXT})

_TIMELINE_ONLY: dict[int, TimelineEventType] = {
    MessageCode.POSITION_REPORT: TimelineEventType.POSITION_REPORT,
    MessageCode.REFERENCE_POINT: TimelineEventType.REFERENCE_POINT,
    MessageCode.TRACK_START: TimelineEventType.TRACK_START,
    MessageCode.TRACK_INTERVAL: TimelineEventType.TRACK_INTERVAL,
    MessageCode.TRACK_STOP: TimelineEventType.TRACK_STOP,
}


class SosDecision(BaseModel):
    """What applying one event changes on an asset.

    ``sos_event_at`` / ``sos_cancel_at`` are ``None`` when the corresponding
    asset field must be left untouched.
    """

    model_config = ConfigDict(frozen=True)

    is_active_sos: bool
    sos_event_at: datetime | None = None
    sos_cancel_at: datetime | None = None
    reopen: bool = False
    timeline_entry: TimelineEntry
    message: MessageEntry | None = None


def inbound_message_id(event_time: datetime, message_code: int | None) -> str:
    """Derive a message id from the event, so a redelivered event keeps its id."""
    ms = int(event_time.timestamp() * 1000)
    code = "x" if message_code is None else str(message_code)
    return f"in-{ms}-{code}"


def _inbound_message(
    text: str,
    *,
    is_sos: bool,
    event_time: datetime,
    message_code: int | None,
) -> MessageEntry:
    return MessageEntry(
        id=inbound_message_id(event_time, message_code),
        direction=MessageDirection.INBOUND,
        text=text,
        timestamp=event_time,
        is_sos=is_sos,
    )


def decide(
    is_active_sos: bool,
    message_code: int | None,
    event_time: datetime,
    free_text: str = "",
) -> SosDecision:
    """Decide the effect of one inbound event.

    Parameters
    ----------
    is_active_sos
        The asset's flag *before* this event.
    message_code
        Upstream message code, verbatim (``None`` if absent or unparseable).
    event_time
        Resolved event time.
    free_text
        Upstream free text (may be empty).
    """
    # Blank text counts as absent; anything else is kept exactly as received.
    text = free_text if free_text.strip() else ""

    def timeline(kind: TimelineEventType) -> TimelineEntry:
        return TimelineEntry(type=kind, code=message_code, timestamp=event_time, text=text or None)

    def message(body: str, *, is_sos: bool) -> MessageEntry:
        return _inbound_message(body, is_sos=is_sos, event_time=event_time, message_code=message_code)

    if message_code == MessageCode.SOS_DECLARE:
        return SosDecision(
            is_active_sos=True,
            # Re-declaring an active SOS must not move the declare time.
            sos_event_at=None if is_active_sos else event_time,
            reopen=True,
            timeline_entry=timeline(TimelineEventType.SOS_DECLARE),
            message=message(text or DEFAULT_SOS_TEXT, is_sos=True),
        )

    if message_code == MessageCode.SOS_UPDATE:
        # Never touches the declare time: acks computed against it stay valid.
        return SosDecision(
            is_active_sos=True,
            timeline_entry=timeline(TimelineEventType.SOS_UPDATE),
            message=message(text, is_sos=True) if text else None,
        )

    if message_code == MessageCode.SOS_CANCEL:
        return SosDecision(
            is_active_sos=False,
            sos_cancel_at=event_time,
            timeline_entry=timeline(TimelineEventType.SOS_CANCEL),
            message=message(text, is_sos=True) if text else None,
        )

    if message_code in _TEXT_CODES:
        return SosDecision(
            is_active_sos=is_active_sos,
            timeline_entry=timeline(TimelineEventType.INBOUND_MESSAGE),
            message=message(text, is_sos=is_active_sos) if text else None,
        )

    if message_code is not None and message_code in _TIMELINE_ONLY:
        return SosDecision(
            is_active_sos=is_active_sos,
            timeline_entry=timeline(_TIMELINE_ONLY[message_code]),
        )

    return SosDecision(
        is_active_sos=is_active_sos,
        timeline_entry=timeline(TimelineEventType.UNKNOWN),
        message=message(text, is_sos=is_active_sos) if text else None,
    )
