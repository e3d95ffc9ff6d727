from typing import Tuple

from callmerge.models import CallDirection, FinalStatus
from callmerge.schemas import CallRecordDraft


def classify(draft: CallRecordDraft) -> Tuple[FinalStatus, CallDirection]:
    # First match wins; only a phone pick-up keeps the received direction.
    if draft.answered:
        return FinalStatus.ANSWERED, draft.direction
    if draft.hunt_group:
        return FinalStatus.MISSED, CallDirection.MISSED
    if draft.ivr_nodes:
        return FinalStatus.IVR_ONLY, CallDirection.MISSED
    return FinalStatus.ABANDONED, CallDirection.MISSED


def apply_disposition(draft: CallRecordDraft) -> CallRecordDraft:
    final_status, direction = classify(draft)
    return draft.model_copy(update={"final_status": final_status, "direction": direction})
