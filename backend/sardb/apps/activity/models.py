# backend/sardb/apps/activity/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.enums import enum_values
from ...utils.identifiers import generate_uuid7


class TrainingAttendanceStatus(str, enum.Enum):
    ATTENDED = "attended"
    ABSENT = "absent"
    EXCUSED = "excused"


# ---------------------------------------------------------------------------
# TRAINING SESSIONS
# ---------------------------------------------------------------------------


class TrainingSession(Base):
    __tablename__ = "training_sessions"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    title = Column(String(255), nullable=False)
    start_dt = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, index=True)
    end_dt = Column(DateTime(timezone=True), nullable=True)
    location_text = Column(String(255), nullable=True)
    instructor = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    # Only test activities can be hard-deleted.
    is_test = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    attendance = relationship(
        "TrainingAttendance",
        back_populates="session",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    task_map = relationship(
        "TrainingTaskMap",
        back_populates="session",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<TrainingSession {self.title!r} {self.start_dt}>"


class TrainingAttendance(Base):
    """
    Attendance at a training session. Only status=attended rows count
    toward time-based qualification requirements.
    """

    __tablename__ = "training_attendance"
    __table_args__ = (
        UniqueConstraint("training_session_id", "member_id", name="uq_training_attendance_session_member"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    training_session_id = Column(
        String(36),
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id = Column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(
        Enum(TrainingAttendanceStatus, name="training_attendance_status_enum", values_callable=enum_values),
        nullable=False,
        default=TrainingAttendanceStatus.ATTENDED,
        index=True,
    )
    hours = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    session = relationship("TrainingSession", back_populates="attendance")


# ---------------------------------------------------------------------------
# CALLS (MISSIONS / CALL-OUTS)
# ---------------------------------------------------------------------------


class Call(Base):
    __tablename__ = "calls"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    title = Column(String(255), nullable=True)
    call_type = Column(String(64), nullable=True)
    start_dt = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, index=True)
    end_dt = Column(DateTime(timezone=True), nullable=True)
    location_text = Column(String(255), nullable=True)
    summary = Column(Text, nullable=True)
    outcome = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_test = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    attendance = relationship(
        "CallAttendance",
        back_populates="call",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Call {self.title!r} {self.start_dt}>"


class CallAttendance(Base):
    """
    A member's check-in on a call. A row with time_in set counts as one
    call activity on the date of time_in.
    """

    __tablename__ = "call_attendance"
    __table_args__ = (
        UniqueConstraint("call_id", "member_id", name="uq_call_attendance_call_member"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    call_id = Column(
        String(36),
        ForeignKey("calls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id = Column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    time_in = Column(DateTime(timezone=True), nullable=True)
    time_out = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    call = relationship("Call", back_populates="attendance")


# ---------------------------------------------------------------------------
# MEETINGS
# ---------------------------------------------------------------------------


class Meeting(Base):
    __tablename__ = "meetings"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    title = Column(String(255), nullable=False)
    start_dt = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, index=True)
    end_dt = Column(DateTime(timezone=True), nullable=True)
    location_text = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    is_test = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    attendance = relationship(
        "MeetingAttendance",
        back_populates="meeting",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class MeetingAttendance(Base):
    __tablename__ = "meeting_attendance"
    __table_args__ = (
        UniqueConstraint("meeting_id", "member_id", name="uq_meeting_attendance_meeting_member"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    meeting_id = Column(
        String(36),
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id = Column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    time_in = Column(DateTime(timezone=True), nullable=True)
    time_out = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    meeting = relationship("Meeting", back_populates="attendance")


# ---------------------------------------------------------------------------
# EVENTS (PUBLIC EDUCATION, FUNDRAISERS, STANDBYS)
# ---------------------------------------------------------------------------


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    title = Column(String(255), nullable=False)
    start_dt = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, index=True)
    end_dt = Column(DateTime(timezone=True), nullable=True)
    location_text = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    is_test = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    attendance = relationship(
        "EventAttendance",
        back_populates="event",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class EventAttendance(Base):
    __tablename__ = "event_attendance"
    __table_args__ = (
        UniqueConstraint("event_id", "member_id", name="uq_event_attendance_event_member"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    event_id = Column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id = Column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    time_in = Column(DateTime(timezone=True), nullable=True)
    time_out = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    event = relationship("Event", back_populates="attendance")


# ---------------------------------------------------------------------------
# TRAINING TASK MAP
# ---------------------------------------------------------------------------


class TrainingTaskMap(Base):
    """
    Task book tasks that are evaluated at a training session.

    position_id is optional; tasks are global skills and the position only
    narrows which task book the evaluation is meant for.
    """

    __tablename__ = "training_task_map"
    __table_args__ = (
        UniqueConstraint("training_session_id", "task_id", name="uq_training_task_map_session_task"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    training_session_id = Column(
        String(36),
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
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
    )
    evaluation_method = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    session = relationship("TrainingSession", back_populates="task_map")
    task = relationship("Task", lazy="joined")
    position = relationship("Position", lazy="joined")
