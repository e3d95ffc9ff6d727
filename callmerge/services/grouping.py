import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from callmerge.models import CallEvent

logger = logging.getLogger(__name__)


def event_timestamp(event: CallEvent) -> Optional[datetime]:
    return event.event_time or event.call_start_time


def _sort_key(event: CallEvent) -> Tuple[bool, datetime]:
    # Events with no timestamp at all go last, in arrival order.
    timestamp = event_timestamp(event)
    return (timestamp is None, timestamp or datetime.min)


def order_events(events: Iterable[CallEvent]) -> List[CallEvent]:
    return sorted(events, key=_sort_key)


def group_events(events: Iterable[CallEvent]) -> Tuple[Dict[str, List[CallEvent]], List[CallEvent]]:
    """Partition events by call id, each group ordered by time.

    Returns the groups (in first-arrival order of their call id) and the events
    that could not be grouped because they carry no call id.
    """
    grouped: Dict[str, List[CallEvent]] = {}
    malformed: List[CallEvent] = []
    for event in events:
        call_id = (event.call_id or "").strip()
        if not call_id:
            logger.warning("Event %s has no call id; excluded from merge", event.id)
            malformed.append(event)
            continue
        grouped.setdefault(call_id, []).append(event)
    return {call_id: order_events(group) for call_id, group in grouped.items()}, malformed
