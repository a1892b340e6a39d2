# backend/sardb/apps/members/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, Index, String, Text

from sardb.database import Base
from sardb.utils.enums import enum_values
from sardb.utils.identifiers import generate_uuid7


class MemberStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PROSPECTIVE = "prospective"


class Member(Base):
    """
    One person on the unit roster.

    A member may also be a login (email + hashed_password); the role name
    maps to a row in `roles` which carries the permission keys.
    """

    __tablename__ = "members"
    __table_args__ = (
        Index("idx_members_status_name", "status", "last_name", "first_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)

    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    email = Column(String(255), nullable=True, unique=True, index=True)
    phone = Column(String(64), nullable=True)

    status = Column(
        Enum(MemberStatus, name="member_status_enum", values_callable=enum_values),
        nullable=False,
        default=MemberStatus.ACTIVE,
        index=True,
    )

    role = Column(String(64), nullable=False, default="member", index=True)
    hashed_password = Column(String(255), nullable=True)

    joined_on = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Member {self.last_name}, {self.first_name} ({self.status})>"
