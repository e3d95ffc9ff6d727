"""Fact extraction for one ordered group of call events.

Every rule reads the ordered group independently:

  caller identity, called number, start time  first event
  IVR path                                   every non-ended event whose destination is an IVR
  hunt group                                 first event touching a hunt group
  answer                                     first ``answered`` event reaching a phone
  end time                                   last ``ended`` event
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from callmerge.config import settings
from callmerge.models import CallDirection, CallEvent, EventDirection, EventStatus, PartyKind
from callmerge.schemas import CallRecordDraft

logger = logging.getLogger(__name__)


def build_ivr_path(events: Sequence[CallEvent], mode: Optional[str] = None) -> List[str]:
    mode = mode or settings.ivr_dedup_mode
    path: List[str] = []
    for event in events:
        # An ended leg reports where the call hung up, not a new menu visit.
        if event.status == EventStatus.ENDED:
            continue
        if event.dest_kind != PartyKind.IVR or not event.dest_name:
            continue
        if path and path[-1] == event.dest_name:
            continue
        if mode == "global" and event.dest_name in path:
            continue
        path.append(event.dest_name)
    return path


def find_hunt_group(events: Sequence[CallEvent]) -> Optional[str]:
    for event in events:
        # The destination name only labels the group when the destination is the
        # hunt group; on a hunt group -> phone leg it names the agent.
        if event.dest_kind == PartyKind.HUNTGROUP and event.dest_name:
            return event.dest_name
        if event.source_kind == PartyKind.HUNTGROUP and event.source_name:
            return event.source_name
    return None


def find_answered_event(events: Sequence[CallEvent]) -> Optional[CallEvent]:
    for event in events:
        if event.status == EventStatus.ANSWERED and event.dest_kind == PartyKind.PHONE:
            return event
    return None


def find_end_time(events: Sequence[CallEvent]) -> Optional[datetime]:
    for event in reversed(events):
        if event.status == EventStatus.ENDED:
            return event.event_time
    return None


def compute_duration(answer_time: Optional[datetime], end_time: Optional[datetime]) -> int:
    if answer_time is None or end_time is None:
        return 0
    seconds = round((end_time - answer_time).total_seconds())
    return max(seconds, 0)


def infer_direction(event: CallEvent) -> CallDirection:
    if event.direction == EventDirection.OUTGOING:
        return CallDirection.OUTBOUND
    return CallDirection.INBOUND


def extract_call_facts(call_id: str, events: Sequence[CallEvent]) -> CallRecordDraft:
    """Derive the call summary from an ordered event group, leaving ``final_status`` unset."""
    if not events:
        logger.warning("Call %s: empty event group", call_id)
        return CallRecordDraft(call_id=call_id)

    first = events[0]
    ivr_nodes = build_ivr_path(events)
    answered_event = find_answered_event(events)
    answer_time = answered_event.event_time if answered_event else None
    end_time = find_end_time(events)

    return CallRecordDraft(
        call_id=call_id,
        direction=infer_direction(first),
        start_time=first.call_start_time or first.event_time,
        answer_time=answer_time,
        end_time=end_time,
        duration_seconds=compute_duration(answer_time, end_time),
        caller_number=first.caller_id_external or first.source_number,
        caller_name=first.caller_name_external or first.source_name,
        called_number=first.called_number,
        ivr_nodes=ivr_nodes,
        ivr_path=settings.ivr_path_separator.join(ivr_nodes) or None,
        hunt_group=find_hunt_group(events),
        answered=answered_event is not None,
        answered_by_name=answered_event.dest_name if answered_event else None,
        answered_by_extension=answered_event.dest_number if answered_event else None,
        event_count=len(events),
        raw_events_snapshot=[event.raw_payload or {} for event in events],
    )


def build_summary(draft: CallRecordDraft) -> str:
    parts = []
    if draft.caller_name and draft.caller_name != draft.caller_number:
        parts.append(f"From: {draft.caller_name} ({draft.caller_number})")
    else:
        parts.append(f"From: {draft.caller_number or 'unknown'}")
    if draft.ivr_path:
        parts.append(f"IVR: {draft.ivr_path}")
    if draft.hunt_group:
        parts.append(f"Hunt Group: {draft.hunt_group}")
    if draft.answered:
        parts.append(f"Answered by: {draft.answered_by_name or draft.answered_by_extension}")
        if draft.duration_seconds > 0:
            minutes, seconds = divmod(draft.duration_seconds, 60)
            parts.append(f"Duration: {minutes}m {seconds}s")
    elif draft.final_status is not None:
        parts.append(f"Status: {draft.final_status.value}")
    return " | ".join(parts)
