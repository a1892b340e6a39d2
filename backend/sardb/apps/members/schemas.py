# backend/sardb/apps/members/schemas.py

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .models import MemberStatus


class MemberBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    status: MemberStatus = MemberStatus.ACTIVE
    role: str = Field("member", description="Role name; see /auth/roles.")
    joined_on: Optional[date] = None
    notes: Optional[str] = None


class MemberCreate(MemberBase):
    password: Optional[str] = Field(
        None,
        min_length=8,
        description="Optional; members without a password cannot log in.",
    )


class MemberUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=128)
    last_name: Optional[str] = Field(None, min_length=1, max_length=128)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    status: Optional[MemberStatus] = None
    role: Optional[str] = None
    joined_on: Optional[date] = None
    notes: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8)


class MemberRead(MemberBase):
    id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RosterPosition(BaseModel):
    id: str
    code: str
    name: str
    level: int = 0


class RosterEntry(BaseModel):
    """
    One roster line: the member plus the positions they are qualified for
    whose course requirements are currently satisfied (highest level first).
    """

    member: MemberRead
    positions: List[RosterPosition] = Field(default_factory=list)
    primary_position: Optional[RosterPosition] = None
