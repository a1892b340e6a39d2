# backend/sardb/apps/positions/schemas.py

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from .models import ActivityType, MemberPositionStatus, RequirementKind


# ---------------------------------------------------------------------------
# POSITIONS
# ---------------------------------------------------------------------------


class PositionBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    level: int = Field(0, description="Higher levels sort first on the roster.")


class PositionCreate(PositionBase):
    pass


class PositionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    level: Optional[int] = None
    is_active: Optional[bool] = None


class PositionRead(PositionBase):
    id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# REQUIREMENTS & GROUPS
# ---------------------------------------------------------------------------


class ReqGroupCreate(BaseModel):
    label: str = Field("Alternative Paths", max_length=255)
    min_met: int = Field(1, description="Values below 1 are stored as 1.")


class ReqGroupUpdate(BaseModel):
    label: Optional[str] = Field(None, max_length=255)
    min_met: Optional[int] = None


class ReqGroupRead(BaseModel):
    id: str
    position_id: str
    label: str
    min_met: int
    created_at: datetime

    class Config:
        from_attributes = True


class RequirementCreate(BaseModel):
    req_kind: RequirementKind
    req_group_id: Optional[str] = None

    course_id: Optional[str] = None
    required_position_id: Optional[str] = None
    task_id: Optional[str] = None

    min_count: Optional[int] = None
    activity_type: Optional[ActivityType] = None
    within_months: Optional[int] = None

    notes: Optional[str] = None


class RequirementRead(BaseModel):
    id: str
    position_id: str
    req_kind: str
    req_group_id: Optional[str] = None

    course_id: Optional[str] = None
    course_code: Optional[str] = None
    required_position_id: Optional[str] = None
    required_position_code: Optional[str] = None
    task_id: Optional[str] = None
    task_code: Optional[str] = None

    min_count: Optional[int] = None
    activity_type: Optional[str] = None
    within_months: Optional[int] = None

    notes: Optional[str] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# TASKS
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    task_code: str = Field(..., min_length=1, max_length=64)
    task_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    position_id: Optional[str] = Field(None, description="Leave empty for a global task.")


class TaskUpdate(BaseModel):
    task_code: Optional[str] = Field(None, min_length=1, max_length=64)
    task_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    position_id: Optional[str] = None
    is_active: Optional[bool] = None


class TaskRead(BaseModel):
    id: str
    task_code: str
    task_name: str
    description: Optional[str] = None
    position_id: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TaskRequirementCreate(BaseModel):
    req_kind: RequirementKind
    min_count: Optional[int] = None
    activity_type: Optional[ActivityType] = None
    within_months: Optional[int] = None
    notes: Optional[str] = None


class TaskRequirementRead(BaseModel):
    id: str
    task_id: str
    req_kind: str
    min_count: Optional[int] = None
    activity_type: Optional[str] = None
    within_months: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# MEMBER POSITIONS & SIGNOFFS
# ---------------------------------------------------------------------------


class MemberPositionCreate(BaseModel):
    member_id: str
    position_id: str
    status: MemberPositionStatus = MemberPositionStatus.TRAINEE
    notes: Optional[str] = None


class MemberPositionUpdate(BaseModel):
    status: Optional[MemberPositionStatus] = None
    awarded_at: Optional[date] = None
    expires_at: Optional[date] = None
    notes: Optional[str] = None


class MemberPositionApprove(BaseModel):
    member_id: str
    position_id: str
    awarded_at: Optional[date] = Field(None, description="Defaults to today.")
    notes: Optional[str] = None


class MemberPositionRead(BaseModel):
    id: str
    member_id: str
    position_id: str
    position_code: Optional[str] = None
    position_name: Optional[str] = None
    status: MemberPositionStatus
    awarded_at: Optional[date] = None
    expires_at: Optional[date] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime


class SignoffCreate(BaseModel):
    member_id: str
    position_id: str
    task_id: str
    call_id: Optional[str] = None
    training_session_id: Optional[str] = None
    evaluator_name: Optional[str] = None
    evaluator_position: Optional[str] = None
    notes: Optional[str] = None


class SignoffRead(BaseModel):
    id: str
    member_id: str
    position_id: Optional[str] = None
    task_id: str
    task_code: Optional[str] = None
    task_name: Optional[str] = None
    call_id: Optional[str] = None
    training_session_id: Optional[str] = None
    evaluator_name: Optional[str] = None
    evaluator_position: Optional[str] = None
    notes: Optional[str] = None
    signed_at: datetime
