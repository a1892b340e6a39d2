# backend/sardb/apps/qualifications/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ReadyMember(BaseModel):
    id: str
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


class ReadyPosition(BaseModel):
    id: str
    code: str
    name: str

    class Config:
        from_attributes = True


class ReadyRowRead(BaseModel):
    """
    One candidate for approval.

    existing_assignment_id / existing_status are NULL for members never
    assigned to the position; otherwise they describe the current row
    (typically status 'trainee').
    """

    member_id: str
    position_id: str
    existing_assignment_id: Optional[str] = None
    existing_status: Optional[str] = None
    existing_created_at: Optional[datetime] = None
    member: ReadyMember
    position: ReadyPosition

    class Config:
        from_attributes = True


class RequirementCheckRead(BaseModel):
    ok: bool
    unmet_labels: List[str] = Field(
        default_factory=list,
        description="One label per unmet requirement or requirement group, e.g. 'CPR', 'TASK:NAV-1', '1/2 met in \"Medical\"'.",
    )

    class Config:
        from_attributes = True
