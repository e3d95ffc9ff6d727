from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from callmerge.models import CallDirection, FinalStatus

DRAFT_ONLY_FIELDS = {"answered", "ivr_nodes"}


class CallRecordDraft(BaseModel):
    call_id: str
    direction: CallDirection = CallDirection.INBOUND
    start_time: Optional[datetime] = None
    answer_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: int = 0
    caller_number: Optional[str] = None
    caller_name: Optional[str] = None
    called_number: Optional[str] = None
    ivr_nodes: List[str] = Field(default_factory=list)
    ivr_path: Optional[str] = None
    hunt_group: Optional[str] = None
    answered: bool = False
    answered_by_name: Optional[str] = None
    answered_by_extension: Optional[str] = None
    final_status: Optional[FinalStatus] = None
    event_count: int = 0
    raw_events_snapshot: List[dict] = Field(default_factory=list)
    summary: Optional[str] = None

    def record_fields(self) -> dict:
        return self.model_dump(exclude=DRAFT_ONLY_FIELDS)


class CallRecordOut(BaseModel):
    id: int
    call_id: str
    direction: CallDirection
    start_time: Optional[datetime]
    answer_time: Optional[datetime]
    end_time: Optional[datetime]
    duration_seconds: int
    caller_number: Optional[str]
    caller_name: Optional[str]
    called_number: Optional[str]
    ivr_path: Optional[str]
    hunt_group: Optional[str]
    answered_by_name: Optional[str]
    answered_by_extension: Optional[str]
    final_status: FinalStatus
    event_count: int
    summary: Optional[str]

    class Config:
        from_attributes = True


class PaginatedCalls(BaseModel):
    items: List[CallRecordOut]
    total: int
    page: int
    page_size: int


class MergeSummary(BaseModel):
    groups_processed: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    malformed: int = 0
    errors: List[str] = Field(default_factory=list)


class MergeResult(BaseModel):
    call_id: str
    action: str
    record_id: int
    event_count: int
    final_status: FinalStatus


class PreviewItem(BaseModel):
    call_id: str
    event_count: int
    direction: CallDirection
    final_status: FinalStatus
    caller_number: Optional[str]
    answered_by: Optional[str]
    duration_seconds: int
    ivr_path: Optional[str]


class PreviewResponse(BaseModel):
    total_calls: int
    calls: List[PreviewItem]


class EventStatistics(BaseModel):
    total: int
    consumed: int
    unconsumed: int
    unique_calls: int
    status_breakdown: Dict[str, int]
    average_events_per_call: float
