import enum
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Type

from callmerge.models import EventDirection, EventStatus, PartyKind

logger = logging.getLogger(__name__)


class MalformedEventError(ValueError):
    pass


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into a naive UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Unparseable timestamp %r", value)
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _enum_value(enum_cls: Type[enum.Enum], value: Any, field: str, call_id: str):
    text = _clean(value)
    if text is None:
        return None
    try:
        return enum_cls(text.lower())
    except ValueError:
        logger.warning("Call %s: unknown %s %r", call_id, field, text)
        return None


def normalize_payload(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise MalformedEventError(f"Webhook payload must be an object, got {type(payload).__name__}")
    call_id = _clean(payload.get("callId"))
    if not call_id:
        raise MalformedEventError("Missing callId")
    return {
        "call_id": call_id,
        "leg_id": _clean(payload.get("UniqueId") or payload.get("uniqueId")),
        "status": _enum_value(EventStatus, payload.get("status"), "status", call_id),
        "direction": _enum_value(EventDirection, payload.get("direction"), "direction", call_id),
        "source_kind": _enum_value(PartyKind, payload.get("sendType"), "sendType", call_id),
        "source_name": _clean(payload.get("sendName")),
        "source_number": _clean(payload.get("sendNumber")),
        "dest_kind": _enum_value(PartyKind, payload.get("destinationType"), "destinationType", call_id),
        "dest_name": _clean(payload.get("destinationName")),
        "dest_number": _clean(payload.get("destinationNumber")),
        "called_number": _clean(payload.get("calledNumber")),
        "caller_id_external": _clean(payload.get("callerIdExternal")),
        "caller_name_external": _clean(payload.get("callerNameExternal")),
        "caller_id_internal": _clean(payload.get("callerIdInternal")),
        "caller_name_internal": _clean(payload.get("callerNameInternal")),
        "event_time": parse_datetime(payload.get("startTime")),
        "call_start_time": parse_datetime(payload.get("callStartTime")),
        "raw_payload": payload,
    }
