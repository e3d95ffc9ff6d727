import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)

from callmerge.database import Base


class EventStatus(enum.Enum):
    RINGING = "ringing"
    ANSWERED = "answered"
    ENDED = "ended"


class EventDirection(enum.Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class PartyKind(enum.Enum):
    EXTERNAL = "external"
    IVR = "ivr"
    HUNTGROUP = "huntgroup"
    PHONE = "phone"


class CallDirection(enum.Enum):
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"
    MISSED = "Missed"


class FinalStatus(enum.Enum):
    ANSWERED = "Answered"
    MISSED = "Missed"
    IVR_ONLY = "IVR Only"
    ABANDONED = "Abandoned"


class CallEvent(Base):
    __tablename__ = "call_events"

    id = Column(Integer, primary_key=True, index=True)
    # Nullable so rows written by other producers without a call id can still be
    # flagged at grouping time instead of failing the insert.
    call_id = Column(String(128), nullable=True, index=True)
    leg_id = Column(String(128), nullable=True)
    status = Column(Enum(EventStatus), nullable=True)
    direction = Column(Enum(EventDirection), nullable=True)
    source_kind = Column(Enum(PartyKind), nullable=True)
    source_name = Column(String(255), nullable=True)
    source_number = Column(String(64), nullable=True)
    dest_kind = Column(Enum(PartyKind), nullable=True)
    dest_name = Column(String(255), nullable=True)
    dest_number = Column(String(64), nullable=True)
    called_number = Column(String(64), nullable=True)
    caller_id_external = Column(String(64), nullable=True)
    caller_name_external = Column(String(255), nullable=True)
    caller_id_internal = Column(String(64), nullable=True)
    caller_name_internal = Column(String(255), nullable=True)
    event_time = Column(DateTime, nullable=True)
    call_start_time = Column(DateTime, nullable=True)
    raw_payload = Column(JSON, nullable=False, default=dict)
    consumed = Column(Boolean, nullable=False, default=False, index=True)
    linked_call_record_id = Column(Integer, ForeignKey("call_records.id"), nullable=True)
    received_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class CallRecord(Base):
    __tablename__ = "call_records"
    __table_args__ = (UniqueConstraint("call_id"),)

    id = Column(Integer, primary_key=True, index=True)
    call_id = Column(String(128), nullable=False)
    direction = Column(Enum(CallDirection), nullable=False)
    start_time = Column(DateTime, nullable=True, index=True)
    answer_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, default=0, nullable=False)
    caller_number = Column(String(64), nullable=True, index=True)
    caller_name = Column(String(255), nullable=True)
    called_number = Column(String(64), nullable=True, index=True)
    ivr_path = Column(String(1024), nullable=True)
    hunt_group = Column(String(255), nullable=True)
    answered_by_name = Column(String(255), nullable=True)
    answered_by_extension = Column(String(64), nullable=True)
    final_status = Column(Enum(FinalStatus), nullable=False, index=True)
    event_count = Column(Integer, default=0, nullable=False)
    raw_events_snapshot = Column(JSON, nullable=False, default=list)
    summary = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
