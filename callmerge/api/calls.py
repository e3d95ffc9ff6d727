from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from callmerge.database import get_db
from callmerge.models import CallDirection, FinalStatus
from callmerge.schemas import CallRecordOut, PaginatedCalls
from callmerge.services.record_store import CallRecordStore

router = APIRouter(prefix="/calls", tags=["calls"])


@router.get("", response_model=PaginatedCalls)
def list_calls(
    from_date: datetime | None = Query(default=None, alias="from"),
    to_date: datetime | None = Query(default=None, alias="to"),
    final_status: FinalStatus | None = None,
    direction: CallDirection | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
):
    items, total = CallRecordStore(db).list_records(
        final_status=final_status,
        direction=direction,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return PaginatedCalls(
        items=[CallRecordOut.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{call_id}", response_model=CallRecordOut)
def get_call(call_id: str, db: Session = Depends(get_db)):
    record = CallRecordStore(db).find_by_call_id(call_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Call not found")
    return record
