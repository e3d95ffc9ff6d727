from callmerge.models import CallDirection, FinalStatus
from callmerge.schemas import CallRecordDraft
from callmerge.services.disposition import apply_disposition, classify
from callmerge.services.extraction import extract_call_facts
from callmerge.tests.factories import CALL_ID, answered_call_events, make_event


def test_answered_keeps_received_direction():
    draft = CallRecordDraft(call_id="x", direction=CallDirection.OUTBOUND, answered=True)
    assert classify(draft) == (FinalStatus.ANSWERED, CallDirection.OUTBOUND)


def test_hunt_group_without_answer_is_missed():
    draft = CallRecordDraft(call_id="x", hunt_group="Sales", ivr_nodes=["Day"])
    assert classify(draft) == (FinalStatus.MISSED, CallDirection.MISSED)


def test_ivr_only():
    draft = CallRecordDraft(call_id="x", ivr_nodes=["Day"])
    assert classify(draft) == (FinalStatus.IVR_ONLY, CallDirection.MISSED)


def test_nothing_reached_is_abandoned():
    draft = CallRecordDraft(call_id="x")
    assert classify(draft) == (FinalStatus.ABANDONED, CallDirection.MISSED)


def test_answer_beats_hunt_group():
    draft = apply_disposition(extract_call_facts(CALL_ID, answered_call_events()))
    assert draft.hunt_group == "talk to Madrech"
    assert draft.final_status == FinalStatus.ANSWERED
    assert draft.direction == CallDirection.INBOUND


def test_hunt_group_leg_after_ivr_without_pickup():
    events = [
        make_event(startTime="2025-12-15T15:00:00-05:00"),
        make_event(
            sendType="ivr",
            sendName="Day",
            destinationType="huntgroup",
            destinationName="Sales",
            startTime="2025-12-15T15:00:10-05:00",
        ),
        make_event(status="ended", sendType="external", startTime="2025-12-15T15:01:00-05:00"),
    ]
    draft = apply_disposition(extract_call_facts(CALL_ID, events))
    assert draft.final_status == FinalStatus.MISSED
    assert draft.direction == CallDirection.MISSED


def test_classification_is_recomputed_on_larger_group():
    events = answered_call_events()
    before = apply_disposition(extract_call_facts(CALL_ID, events[:4]))
    after = apply_disposition(extract_call_facts(CALL_ID, events))
    assert before.final_status == FinalStatus.MISSED
    assert after.final_status == FinalStatus.ANSWERED
