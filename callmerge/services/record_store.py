from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.orm import Session

from callmerge.models import CallDirection, CallRecord, FinalStatus


class CallRecordStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_call_id(self, call_id: str) -> Optional[CallRecord]:
        return self.db.query(CallRecord).filter(CallRecord.call_id == call_id).first()

    def create_record(self, fields: dict) -> int:
        record = CallRecord(**fields)
        self.db.add(record)
        self.db.flush()
        return record.id

    def update_record(self, record_id: int, fields: dict) -> None:
        record = self.db.get(CallRecord, record_id)
        if record is None:
            raise LookupError(f"Call record {record_id} not found")
        for key, value in fields.items():
            if key == "call_id":
                continue
            setattr(record, key, value)
        self.db.flush()

    def list_records(
        self,
        final_status: Optional[FinalStatus] = None,
        direction: Optional[CallDirection] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 25,
    ) -> Tuple[List[CallRecord], int]:
        query = self.db.query(CallRecord)
        filters = []
        if final_status:
            filters.append(CallRecord.final_status == final_status)
        if direction:
            filters.append(CallRecord.direction == direction)
        if from_date:
            filters.append(CallRecord.start_time >= from_date)
        if to_date:
            filters.append(CallRecord.start_time <= to_date)
        if filters:
            query = query.filter(and_(*filters))
        total = query.count()
        items = (
            query.order_by(CallRecord.start_time.desc(), CallRecord.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total
