from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from callmerge.database import get_db
from callmerge.schemas import EventStatistics
from callmerge.services.event_store import EventStore

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/stats", response_model=EventStatistics)
def event_stats(db: Session = Depends(get_db)):
    return EventStatistics(**EventStore(db).statistics())
