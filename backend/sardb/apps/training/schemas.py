# backend/sardb/apps/training/schemas.py

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# COURSES
# ---------------------------------------------------------------------------


class CourseBase(BaseModel):
    code: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Short code like 'CPR', 'WFA', 'ICS-100'. Stored upper-case; unique.",
    )
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

    valid_months: int = Field(
        24,
        description="How long a completion stays valid. Ignored when never_expires is set.",
    )
    warning_days: int = Field(
        60,
        ge=0,
        description="Days before expiry at which a certification shows as 'expiring'.",
    )
    never_expires: bool = False


class CourseCreate(CourseBase):
    @model_validator(mode="after")
    def _check_validity(self):
        if self.never_expires:
            self.warning_days = 0
        elif self.valid_months <= 0:
            raise ValueError("valid_months must be positive unless never_expires is set")
        return self


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    valid_months: Optional[int] = None
    warning_days: Optional[int] = Field(None, ge=0)
    never_expires: Optional[bool] = None
    is_active: Optional[bool] = None


class CourseRead(CourseBase):
    id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# CERTIFICATIONS
# ---------------------------------------------------------------------------


CertificationStatus = Literal["valid", "expiring", "expired"]


class CertificationCreate(BaseModel):
    member_id: str
    course_id: str
    completed_at: date
    expires_at: Optional[date] = Field(
        None,
        description="Leave empty to derive from the course's valid_months.",
    )
    issuer: Optional[str] = None
    certificate_number: Optional[str] = None
    notes: Optional[str] = None


class CertificationRead(BaseModel):
    id: str
    member_id: str
    course_id: str
    course_code: Optional[str] = None
    course_name: Optional[str] = None
    completed_at: date
    expires_at: Optional[date] = None
    issuer: Optional[str] = None
    certificate_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    status: Optional[CertificationStatus] = Field(
        None,
        description="Only filled in 'current' mode and in the expiring report.",
    )
    days_remaining: Optional[int] = None

    class Config:
        from_attributes = True
