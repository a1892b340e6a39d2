# backend/sardb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from sardb.apps.members.schemas import MemberRead

from .models import Permission


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Lifetime of the token in seconds.")
    member: MemberRead


class MeRead(MemberRead):
    permissions: List[str] = Field(default_factory=list)


class RoleRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    permission_keys: List[str] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True


class RolePermissionsUpdate(BaseModel):
    permissions: List[Permission] = Field(
        default_factory=list,
        description="Full replacement set of permission keys for the role.",
    )
    description: Optional[str] = None
