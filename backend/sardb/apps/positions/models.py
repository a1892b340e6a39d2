# backend/sardb/apps/positions/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.enums import enum_values
from ...utils.identifiers import generate_uuid7


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class RequirementKind(str, enum.Enum):
    """
    Requirement kinds understood by the evaluator.

    TEST and PHYSICAL are manual-review markers: they are stored and shown
    but never block automatic evaluation. PROFICIENCY is the task-level
    equivalent.
    """

    COURSE = "course"
    POSITION = "position"
    TASK = "task"
    TIME = "time"
    TEST = "test"
    PHYSICAL = "physical"
    PROFICIENCY = "proficiency"


POSITION_REQUIREMENT_KINDS = (
    RequirementKind.COURSE,
    RequirementKind.POSITION,
    RequirementKind.TASK,
    RequirementKind.TIME,
    RequirementKind.TEST,
    RequirementKind.PHYSICAL,
)
TASK_REQUIREMENT_KINDS = (RequirementKind.TIME, RequirementKind.PROFICIENCY)


class ActivityType(str, enum.Enum):
    TRAINING = "training"
    CALL = "call"
    ANY = "any"


class MemberPositionStatus(str, enum.Enum):
    TRAINEE = "trainee"
    QUALIFIED = "qualified"
    INACTIVE = "inactive"


# ---------------------------------------------------------------------------
# POSITIONS
# ---------------------------------------------------------------------------


class Position(Base):
    """
    A role a member can hold (Field Team Leader, Searcher, Radio Operator).

    Positions are never deleted; they are deactivated with is_active=False.
    """

    __tablename__ = "positions"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    code = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    level = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    requirements = relationship(
        "PositionRequirement",
        back_populates="position",
        foreign_keys="PositionRequirement.position_id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    req_groups = relationship(
        "PositionReqGroup",
        back_populates="position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Position {self.code}>"


class PositionReqGroup(Base):
    """
    "N of M" bucket: at least min_met of the grouped requirements must pass.
    """

    __tablename__ = "position_req_groups"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    position_id = Column(
        String(36),
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label = Column(String(255), nullable=False, default="Alternative Paths")
    min_met = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    position = relationship("Position", back_populates="req_groups")

    def __repr__(self) -> str:
        return f"<PositionReqGroup {self.label!r} min_met={self.min_met}>"


class PositionRequirement(Base):
    """
    One gating condition on a position.

    Kind-specific fields:
    - course:   course_id
    - position: required_position_id (one-hop prerequisite)
    - task:     task_id
    - time:     min_count, activity_type, within_months
    """

    __tablename__ = "position_requirements"
    __table_args__ = (
        Index("idx_position_requirements_position_kind", "position_id", "req_kind"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    position_id = Column(
        String(36),
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    req_kind = Column(String(32), nullable=False, index=True)
    req_group_id = Column(
        String(36),
        ForeignKey("position_req_groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    course_id = Column(
        String(36),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    required_position_id = Column(
        String(36),
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    task_id = Column(
        String(36),
        ForeignKey("position_tasks.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    min_count = Column(Integer, nullable=True)
    activity_type = Column(String(16), nullable=True)
    within_months = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    position = relationship(
        "Position", back_populates="requirements", foreign_keys=[position_id]
    )
    required_position = relationship(
        "Position", foreign_keys=[required_position_id], lazy="joined"
    )
    course = relationship("Course", lazy="joined")
    task = relationship("Task", lazy="joined")

    def __repr__(self) -> str:
        return f"<PositionRequirement {self.req_kind} position={self.position_id}>"


# ---------------------------------------------------------------------------
# TASKS (TASK BOOK ITEMS)
# ---------------------------------------------------------------------------


class Task(Base):
    """
    A discrete skill signed off by an evaluator.

    position_id NULL means a global task usable by any position's task book.
    """

    __tablename__ = "position_tasks"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    task_code = Column(String(64), nullable=False, index=True)
    task_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    position_id = Column(
        String(36),
        ForeignKey("positions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    requirements = relationship(
        "TaskRequirement",
        back_populates="task",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Task {self.task_code}>"


class TaskRequirement(Base):
    __tablename__ = "task_requirements"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    task_id = Column(
        String(36),
        ForeignKey("position_tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    req_kind = Column(String(32), nullable=False)

    min_count = Column(Integer, nullable=True)
    activity_type = Column(String(16), nullable=True)
    within_months = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    task = relationship("Task", back_populates="requirements")

    def __repr__(self) -> str:
        return f"<TaskRequirement {self.req_kind} task={self.task_id}>"


# ---------------------------------------------------------------------------
# QUALIFICATION RECORDS
# ---------------------------------------------------------------------------


class MemberPosition(Base):
    """
    A member's standing in a position (trainee, qualified, ...).

    Written by an admin approval; the evaluator only proposes candidates.
    """

    __tablename__ = "member_positions"
    __table_args__ = (
        UniqueConstraint("member_id", "position_id", name="uq_member_positions_member_position"),
        Index("idx_member_positions_status", "position_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    member_id = Column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position_id = Column(
        String(36),
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(
        Enum(MemberPositionStatus, name="member_position_status_enum", values_callable=enum_values),
        nullable=False,
        default=MemberPositionStatus.TRAINEE,
        index=True,
    )

    awarded_at = Column(Date, nullable=True)
    expires_at = Column(Date, nullable=True)
    approved_by = Column(
        String(36),
        ForeignKey("members.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    position = relationship("Position", lazy="joined")
    member = relationship("Member", foreign_keys=[member_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<MemberPosition member={self.member_id} position={self.position_id} status={self.status}>"


class MemberTaskSignoff(Base):
    """
    Immutable record that an evaluator watched a member demonstrate a task.
    """

    __tablename__ = "member_task_signoffs"
    __table_args__ = (
        Index("idx_member_task_signoffs_member_task", "member_id", "task_id"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    member_id = Column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_id = Column(
        String(36),
        ForeignKey("position_tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position_id = Column(
        String(36),
        ForeignKey("positions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    call_id = Column(String(36), ForeignKey("calls.id", ondelete="SET NULL"), nullable=True)
    training_session_id = Column(
        String(36),
        ForeignKey("training_sessions.id", ondelete="SET NULL"),
        nullable=True,
    )

    evaluator_name = Column(String(255), nullable=True)
    evaluator_position = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    task = relationship("Task", lazy="joined")

    def __repr__(self) -> str:
        return f"<MemberTaskSignoff member={self.member_id} task={self.task_id}>"
