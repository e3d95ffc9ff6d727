from typing import Iterable, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from callmerge.config import settings
from callmerge.models import CallEvent


class EventStore:
    def __init__(self, db: Session, batch_size: int | None = None) -> None:
        self.db = db
        self.batch_size = batch_size or settings.mark_consumed_batch_size

    def append_event(self, fields: dict) -> int:
        if isinstance(fields.get("call_id"), str):
            fields = {**fields, "call_id": fields["call_id"].strip() or None}
        event = CallEvent(**fields)
        self.db.add(event)
        self.db.flush()
        return event.id

    def query_unconsumed_events(self) -> List[CallEvent]:
        return (
            self.db.query(CallEvent)
            .filter(CallEvent.consumed.is_(False))
            .order_by(CallEvent.id)
            .all()
        )

    def query_events_by_call_id(self, call_id: str) -> List[CallEvent]:
        return (
            self.db.query(CallEvent)
            .filter(func.trim(CallEvent.call_id) == call_id.strip())
            .order_by(CallEvent.id)
            .all()
        )

    def mark_consumed(self, event_ids: Iterable[int], linked_record_id: int) -> None:
        ids = list(event_ids)
        for start in range(0, len(ids), self.batch_size):
            chunk = ids[start : start + self.batch_size]
            self.db.query(CallEvent).filter(CallEvent.id.in_(chunk)).update(
                {
                    CallEvent.consumed: True,
                    CallEvent.linked_call_record_id: linked_record_id,
                },
                synchronize_session="fetch",
            )
        self.db.flush()

    def statistics(self) -> dict:
        total = self.db.query(func.count(CallEvent.id)).scalar() or 0
        consumed = (
            self.db.query(func.count(CallEvent.id)).filter(CallEvent.consumed.is_(True)).scalar() or 0
        )
        unique_calls = (
            self.db.query(func.count(func.distinct(CallEvent.call_id)))
            .filter(CallEvent.call_id.isnot(None))
            .scalar()
            or 0
        )
        rows = (
            self.db.query(CallEvent.status, func.count(CallEvent.id))
            .group_by(CallEvent.status)
            .all()
        )
        status_breakdown: dict[str, int] = {}
        for status, count in rows:
            key = status.value if status else "unknown"
            status_breakdown[key] = status_breakdown.get(key, 0) + count
        average = round(total / unique_calls, 2) if unique_calls else 0
        return {
            "total": total,
            "consumed": consumed,
            "unconsumed": total - consumed,
            "unique_calls": unique_calls,
            "status_breakdown": status_breakdown,
            "average_events_per_call": average,
        }
