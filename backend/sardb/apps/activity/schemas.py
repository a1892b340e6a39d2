# backend/sardb/apps/activity/schemas.py

from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .models import TrainingAttendanceStatus


class ActivityKind(str, enum.Enum):
    TRAINING = "training"
    CALLS = "calls"
    MEETINGS = "meetings"
    EVENTS = "events"


# ---------------------------------------------------------------------------
# ACTIVITIES
# ---------------------------------------------------------------------------


class ActivityCreate(BaseModel):
    """
    Shared create payload for every activity kind.

    instructor applies to training sessions only; call_type, summary and
    outcome to calls only. Fields that do not apply are ignored.
    """

    title: Optional[str] = Field(None, max_length=255)
    start_dt: Optional[datetime] = Field(None, description="Defaults to now.")
    end_dt: Optional[datetime] = None
    location_text: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    is_test: bool = False

    instructor: Optional[str] = None
    call_type: Optional[str] = None
    summary: Optional[str] = None
    outcome: Optional[str] = None


class ActivityUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    title: Optional[str] = Field(None, max_length=255)
    start_dt: Optional[datetime] = None
    end_dt: Optional[datetime] = None
    location_text: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    is_test: Optional[bool] = None

    instructor: Optional[str] = None
    call_type: Optional[str] = None
    summary: Optional[str] = None
    outcome: Optional[str] = None


class ActivityRead(BaseModel):
    id: str
    kind: ActivityKind
    title: Optional[str] = None
    start_dt: datetime
    end_dt: Optional[datetime] = None
    location_text: Optional[str] = None
    notes: Optional[str] = None
    is_test: bool = False
    created_at: datetime

    instructor: Optional[str] = None
    call_type: Optional[str] = None
    summary: Optional[str] = None
    outcome: Optional[str] = None


# ---------------------------------------------------------------------------
# ATTENDANCE
# ---------------------------------------------------------------------------


class AttendanceUpsert(BaseModel):
    member_id: str

    # training sessions
    status: Optional[TrainingAttendanceStatus] = None
    hours: Optional[float] = Field(None, ge=0)

    # calls / meetings / events
    action: Optional[Literal["arrive", "clear"]] = Field(
        None,
        description="'arrive' stamps time_in, 'clear' stamps time_out; an existing stamp is kept.",
    )
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None

    notes: Optional[str] = None


class AttendanceRead(BaseModel):
    id: str
    activity_id: str
    member_id: str
    member_name: Optional[str] = None

    status: Optional[TrainingAttendanceStatus] = None
    hours: Optional[float] = None
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None

    notes: Optional[str] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# STATS
# ---------------------------------------------------------------------------


class AttendanceCount(BaseModel):
    attended: int = 0
    total: int = 0
    pct: int = Field(0, description="Rounded percentage; 0 when total is 0.")


class ActivityStats(BaseModel):
    member_id: str
    window_days: int
    calls: AttendanceCount
    training: AttendanceCount
    meetings: AttendanceCount
    events: AttendanceCount
    overall: AttendanceCount


class ActivityHistoryItem(BaseModel):
    kind: ActivityKind
    activity_id: str
    title: Optional[str] = None
    start_dt: datetime
    status: Optional[TrainingAttendanceStatus] = None
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None


class ActivityHistory(BaseModel):
    member_id: str
    window_days: int
    items: List[ActivityHistoryItem] = []


# ---------------------------------------------------------------------------
# TRAINING TASK MAP
# ---------------------------------------------------------------------------


class TrainingTaskMapCreate(BaseModel):
    training_session_id: str
    task_id: str
    position_id: Optional[str] = None
    evaluation_method: Optional[str] = Field(None, max_length=255)


class TrainingTaskMapRead(BaseModel):
    id: str
    training_session_id: str
    task_id: str
    task_code: Optional[str] = None
    task_name: Optional[str] = None
    position_id: Optional[str] = None
    position_code: Optional[str] = None
    evaluation_method: Optional[str] = None
    created_at: datetime
