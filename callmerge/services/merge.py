import logging
import threading
from contextlib import contextmanager
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from callmerge.config import settings
from callmerge.models import CallEvent
from callmerge.schemas import CallRecordDraft, MergeResult, MergeSummary, PreviewItem, PreviewResponse
from callmerge.services.disposition import apply_disposition
from callmerge.services.event_store import EventStore
from callmerge.services.extraction import build_summary, extract_call_facts
from callmerge.services.grouping import group_events, order_events
from callmerge.services.record_store import CallRecordStore

logger = logging.getLogger(__name__)

# Merge passes against one store must not overlap.
_merge_lock = threading.Lock()


class MergeInProgressError(RuntimeError):
    pass


def build_call_record(call_id: str, events: Sequence[CallEvent]) -> CallRecordDraft:
    draft = apply_disposition(extract_call_facts(call_id, events))
    return draft.model_copy(update={"summary": build_summary(draft)})


def upsert_call_record(records: CallRecordStore, draft: CallRecordDraft) -> Tuple[int, str]:
    fields = draft.record_fields()
    existing = records.find_by_call_id(draft.call_id)
    if existing:
        records.update_record(existing.id, fields)
        return existing.id, "updated"
    return records.create_record(fields), "created"


class MergeOrchestrator:
    def __init__(self, db: Session, full_history: Optional[bool] = None) -> None:
        self.db = db
        self.events = EventStore(db)
        self.records = CallRecordStore(db)
        self.full_history = settings.merge_full_history if full_history is None else full_history

    def run_once(self) -> MergeSummary:
        with self._exclusive():
            return self._run_pass()

    def run_for_call_id(self, call_id: str) -> Optional[MergeResult]:
        with self._exclusive():
            events = order_events(self.events.query_events_by_call_id(call_id))
            if not events:
                logger.info("No events found for call %s", call_id)
                return None
            pending = [event for event in events if not event.consumed]
            try:
                result = self._fold(call_id, events, pending)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            logger.info("%s call record %s for call %s", result.action.capitalize(), result.record_id, call_id)
            return result

    def preview(self) -> PreviewResponse:
        groups, _ = group_events(self.events.query_unconsumed_events())
        calls: List[PreviewItem] = []
        for call_id, group in groups.items():
            draft = build_call_record(call_id, self._history(call_id, group))
            calls.append(
                PreviewItem(
                    call_id=call_id,
                    event_count=draft.event_count,
                    direction=draft.direction,
                    final_status=draft.final_status,
                    caller_number=draft.caller_number,
                    answered_by=draft.answered_by_name,
                    duration_seconds=draft.duration_seconds,
                    ivr_path=draft.ivr_path,
                )
            )
        return PreviewResponse(total_calls=len(calls), calls=calls)

    def _run_pass(self) -> MergeSummary:
        pending = self.events.query_unconsumed_events()
        groups, malformed = group_events(pending)
        summary = MergeSummary(malformed=len(malformed))
        if malformed:
            logger.warning("%s event(s) without a call id were skipped", len(malformed))
        if not groups:
            logger.info("No unconsumed events to merge")
            return summary

        logger.info("Merging %s call(s) from %s unconsumed event(s)", len(groups), len(pending))
        for call_id, group in groups.items():
            summary.groups_processed += 1
            try:
                result = self._fold(call_id, self._history(call_id, group), group)
                self.db.commit()
            except Exception as exc:
                self.db.rollback()
                summary.failed += 1
                summary.errors.append(f"{call_id}: {type(exc).__name__}: {exc}")
                logger.exception("Failed to merge call %s", call_id)
                continue
            if result.action == "created":
                summary.created += 1
            else:
                summary.updated += 1
            logger.debug(
                "Call %s: %s record %s (%s, %s events)",
                call_id,
                result.action,
                result.record_id,
                result.final_status.value,
                result.event_count,
            )

        logger.info(
            "Merge complete: %s created, %s updated, %s failed",
            summary.created,
            summary.updated,
            summary.failed,
        )
        return summary

    def _history(self, call_id: str, group: List[CallEvent]) -> List[CallEvent]:
        if not self.full_history:
            return group
        history = self.events.query_events_by_call_id(call_id)
        return order_events(history) if history else group

    def _fold(self, call_id: str, events: Sequence[CallEvent], pending: Sequence[CallEvent]) -> MergeResult:
        draft = build_call_record(call_id, events)
        record_id, action = upsert_call_record(self.records, draft)
        if pending:
            self.events.mark_consumed([event.id for event in pending], record_id)
        return MergeResult(
            call_id=call_id,
            action=action,
            record_id=record_id,
            event_count=draft.event_count,
            final_status=draft.final_status,
        )

    @contextmanager
    def _exclusive(self):
        if not _merge_lock.acquire(blocking=False):
            raise MergeInProgressError("A merge pass is already running")
        try:
            yield
        finally:
            _merge_lock.release()
