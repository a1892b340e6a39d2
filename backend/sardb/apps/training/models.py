# backend/sardb/apps/training/models.py

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7


# ---------------------------------------------------------------------------
# COURSES
# ---------------------------------------------------------------------------


class Course(Base):
    """
    Certifiable training class (CPR, Wilderness First Aid, ICS-100, ...).

    - valid_months  = how long a completion stays valid
    - warning_days  = how early the roster flags a cert as expiring
    - never_expires = one-off courses; expires_at is ignored for these
    """

    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=generate_uuid7)

    code = Column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        doc="Short code like 'CPR', 'WFA', 'ICS-100'.",
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    valid_months = Column(Integer, nullable=False, default=24)
    warning_days = Column(Integer, nullable=False, default=60)
    never_expires = Column(Boolean, nullable=False, default=False)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    certifications = relationship(
        "MemberCertification", back_populates="course", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Course {self.code}>"


# ---------------------------------------------------------------------------
# MEMBER CERTIFICATIONS (COMPLETION HISTORY)
# ---------------------------------------------------------------------------


class MemberCertification(Base):
    """
    One recorded completion of a course by a member.

    Renewals add a new row; older rows stay as audit history. A
    certification counts toward requirements when the course never
    expires, expires_at is NULL, or expires_at >= today.
    """

    __tablename__ = "member_certifications"
    __table_args__ = (
        Index("idx_member_certs_member_course", "member_id", "course_id"),
        Index("idx_member_certs_expires", "expires_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)

    member_id = Column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id = Column(
        String(36),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    completed_at = Column(Date, nullable=False)
    expires_at = Column(Date, nullable=True)

    issuer = Column(String(255), nullable=True)
    certificate_number = Column(String(128), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    course = relationship("Course", back_populates="certifications", lazy="joined")

    def is_valid_on(self, today: date) -> bool:
        if self.course is not None and self.course.never_expires:
            return True
        if self.expires_at is None:
            return True
        return self.expires_at >= today

    def days_until_expiry(self, today: date) -> Optional[int]:
        if self.expires_at is None or (self.course is not None and self.course.never_expires):
            return None
        return (self.expires_at - today).days

    def __repr__(self) -> str:
        return f"<MemberCertification member={self.member_id} course={self.course_id} expires={self.expires_at}>"
