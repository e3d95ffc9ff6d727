import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from callmerge.database import get_db
from callmerge.schemas import MergeResult, MergeSummary, PreviewResponse
from callmerge.services.merge import MergeInProgressError, MergeOrchestrator

router = APIRouter(prefix="/merge", tags=["merge"])

logger = logging.getLogger(__name__)


@router.post("/run", response_model=MergeSummary)
def run_merge(db: Session = Depends(get_db)):
    try:
        return MergeOrchestrator(db).run_once()
    except MergeInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Merge pass failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Event store unavailable"
        ) from exc


@router.post("/calls/{call_id}", response_model=MergeResult)
def merge_call(call_id: str, db: Session = Depends(get_db)):
    try:
        result = MergeOrchestrator(db).run_for_call_id(call_id)
    except MergeInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No events for call")
    return result


@router.get("/preview", response_model=PreviewResponse)
def preview_merge(db: Session = Depends(get_db)):
    return MergeOrchestrator(db).preview()
