# backend/sardb/apps/activity/services.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from sardb.apps.members import models as member_models
from sardb.apps.positions import models as position_models

from . import models, schemas

logger = logging.getLogger(__name__)

try:
    ACTIVITY_STATS_WINDOW_DAYS: int = int(os.getenv("ACTIVITY_STATS_WINDOW_DAYS", "365"))
except ValueError:
    ACTIVITY_STATS_WINDOW_DAYS = 365


@dataclass(frozen=True)
class ActivityKindInfo:
    activity_model: type
    attendance_model: type
    attendance_fk: str
    # Training attendance carries a status; the others are time_in/time_out check-ins.
    has_status: bool = False


ACTIVITY_KINDS: Dict[schemas.ActivityKind, ActivityKindInfo] = {
    schemas.ActivityKind.TRAINING: ActivityKindInfo(
        models.TrainingSession, models.TrainingAttendance, "training_session_id", has_status=True
    ),
    schemas.ActivityKind.CALLS: ActivityKindInfo(models.Call, models.CallAttendance, "call_id"),
    schemas.ActivityKind.MEETINGS: ActivityKindInfo(models.Meeting, models.MeetingAttendance, "meeting_id"),
    schemas.ActivityKind.EVENTS: ActivityKindInfo(models.Event, models.EventAttendance, "event_id"),
}

_KIND_ONLY_FIELDS = {
    schemas.ActivityKind.TRAINING: ("instructor",),
    schemas.ActivityKind.CALLS: ("call_type", "summary", "outcome"),
}


class ActivityValidationError(ValueError):
    pass


# ---------------------------------------------------------------------------
# ACTIVITIES
# ---------------------------------------------------------------------------


def activity_to_read(kind: schemas.ActivityKind, row) -> schemas.ActivityRead:
    data = {
        "id": row.id,
        "kind": kind,
        "title": row.title,
        "start_dt": row.start_dt,
        "end_dt": row.end_dt,
        "location_text": row.location_text,
        "notes": row.notes,
        "is_test": bool(row.is_test),
        "created_at": row.created_at,
    }
    for field in _KIND_ONLY_FIELDS.get(kind, ()):
        data[field] = getattr(row, field)
    return schemas.ActivityRead(**data)


def list_activities(db: Session, kind: schemas.ActivityKind, *, limit: int = 200) -> list:
    model = ACTIVITY_KINDS[kind].activity_model
    return db.query(model).order_by(model.start_dt.desc()).limit(limit).all()


def get_activity(db: Session, kind: schemas.ActivityKind, activity_id: str):
    model = ACTIVITY_KINDS[kind].activity_model
    return db.query(model).filter(model.id == activity_id).first()


def create_activity(db: Session, kind: schemas.ActivityKind, data: schemas.ActivityCreate):
    model = ACTIVITY_KINDS[kind].activity_model
    title = (data.title or "").strip() or None
    if title is None and kind != schemas.ActivityKind.CALLS:
        raise ActivityValidationError("title is required")
    if data.end_dt and data.start_dt and data.end_dt < data.start_dt:
        raise ActivityValidationError("end_dt cannot be before start_dt")

    fields = {
        "title": title,
        "start_dt": data.start_dt or datetime.utcnow(),
        "end_dt": data.end_dt,
        "location_text": data.location_text,
        "notes": data.notes,
        "is_test": data.is_test,
    }
    for field in _KIND_ONLY_FIELDS.get(kind, ()):
        fields[field] = getattr(data, field)

    row = model(**fields)
    db.add(row)
    db.flush()
    return row


def update_activity(db: Session, kind: schemas.ActivityKind, row, data: schemas.ActivityUpdate):
    changes = data.model_dump(exclude_unset=True)
    allowed = {"title", "start_dt", "end_dt", "location_text", "notes", "is_test"}
    allowed.update(_KIND_ONLY_FIELDS.get(kind, ()))

    if "title" in changes:
        changes["title"] = (changes["title"] or "").strip() or None
        if changes["title"] is None and kind != schemas.ActivityKind.CALLS:
            raise ActivityValidationError("title is required")
    for field in ("start_dt", "is_test"):
        if field in changes and changes[field] is None:
            raise ActivityValidationError(f"{field} cannot be null")

    start_dt = changes.get("start_dt", row.start_dt)
    end_dt = changes.get("end_dt", row.end_dt)
    if end_dt and end_dt < start_dt:
        raise ActivityValidationError("end_dt cannot be before start_dt")

    for field, value in changes.items():
        if field in allowed:
            setattr(row, field, value)

    db.add(row)
    db.flush()
    return row


def delete_activity(db: Session, kind: schemas.ActivityKind, row) -> None:
    """Hard delete; attendance rows go with the activity."""
    if not row.is_test:
        raise ActivityValidationError("hard delete allowed only for test activities")
    db.delete(row)
    db.flush()
    logger.info(
        "Deleted test activity",
        extra={"activity_kind": kind.value, "activity_id": row.id},
    )


# ---------------------------------------------------------------------------
# ATTENDANCE
# ---------------------------------------------------------------------------


def attendance_to_read(kind: schemas.ActivityKind, row, member: Optional[member_models.Member] = None) -> schemas.AttendanceRead:
    info = ACTIVITY_KINDS[kind]
    return schemas.AttendanceRead(
        id=row.id,
        activity_id=getattr(row, info.attendance_fk),
        member_id=row.member_id,
        member_name=member.full_name if member is not None else None,
        status=row.status if info.has_status else None,
        hours=row.hours if info.has_status else None,
        time_in=None if info.has_status else row.time_in,
        time_out=None if info.has_status else row.time_out,
        notes=row.notes,
        created_at=row.created_at,
    )


def list_attendance(db: Session, kind: schemas.ActivityKind, activity_id: str) -> List[schemas.AttendanceRead]:
    info = ACTIVITY_KINDS[kind]
    model = info.attendance_model
    rows = (
        db.query(model, member_models.Member)
        .join(member_models.Member, member_models.Member.id == model.member_id)
        .filter(getattr(model, info.attendance_fk) == activity_id)
        .order_by(model.created_at.asc())
        .all()
    )
    return [attendance_to_read(kind, row, member) for row, member in rows]


def upsert_attendance(
    db: Session,
    kind: schemas.ActivityKind,
    activity_id: str,
    data: schemas.AttendanceUpsert,
    *,
    now: Optional[datetime] = None,
):
    """
    Create or update the (activity, member) attendance row.

    Training rows default to status=attended. For check-in kinds, 'arrive'
    and 'clear' only stamp time_in / time_out when still empty; explicit
    time_in / time_out values always win.
    """
    info = ACTIVITY_KINDS[kind]
    model = info.attendance_model
    now = now or datetime.utcnow()

    row = (
        db.query(model)
        .filter(
            getattr(model, info.attendance_fk) == activity_id,
            model.member_id == data.member_id,
        )
        .first()
    )
    if row is None:
        row = model(member_id=data.member_id, **{info.attendance_fk: activity_id})
        db.add(row)

    if info.has_status:
        if data.status is not None or row.status is None:
            row.status = data.status or models.TrainingAttendanceStatus.ATTENDED
        if data.hours is not None:
            row.hours = data.hours
    else:
        if data.action == "arrive" and row.time_in is None:
            row.time_in = now
        if data.action == "clear":
            if row.time_in is None:
                row.time_in = now
            if row.time_out is None:
                row.time_out = now
        if data.time_in is not None:
            row.time_in = data.time_in
        if data.time_out is not None:
            row.time_out = data.time_out
        if row.time_in and row.time_out and row.time_out < row.time_in:
            raise ActivityValidationError("time_out cannot be before time_in")

    if data.notes is not None:
        row.notes = data.notes.strip() or None

    db.flush()
    return row


def delete_attendance(db: Session, kind: schemas.ActivityKind, activity_id: str, member_id: str) -> bool:
    info = ACTIVITY_KINDS[kind]
    model = info.attendance_model
    deleted = (
        db.query(model)
        .filter(
            getattr(model, info.attendance_fk) == activity_id,
            model.member_id == member_id,
        )
        .delete(synchronize_session=False)
    )
    return bool(deleted)


# ---------------------------------------------------------------------------
# STATS
# ---------------------------------------------------------------------------


def _pct(attended: int, total: int) -> int:
    if total == 0:
        return 0
    return int(round(attended * 100.0 / total))


def _count(attended: int, total: int) -> schemas.AttendanceCount:
    return schemas.AttendanceCount(attended=attended, total=total, pct=_pct(attended, total))


def activity_stats(
    db: Session,
    *,
    member_id: str,
    window_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> schemas.ActivityStats:
    """
    Attended vs. total activities per kind over the last `window_days`.

    A training session counts as attended with status=attended; a call,
    meeting or event with a time_in stamp.
    """
    window_days = window_days or ACTIVITY_STATS_WINDOW_DAYS
    window_start = (now or datetime.utcnow()) - timedelta(days=window_days)

    counts: Dict[schemas.ActivityKind, schemas.AttendanceCount] = {}
    for kind, info in ACTIVITY_KINDS.items():
        activity_model = info.activity_model
        attendance_model = info.attendance_model

        total = (
            db.query(func.count(activity_model.id))
            .filter(activity_model.start_dt >= window_start)
            .scalar()
        ) or 0

        attended_q = (
            db.query(func.count(attendance_model.id))
            .join(activity_model, activity_model.id == getattr(attendance_model, info.attendance_fk))
            .filter(
                attendance_model.member_id == member_id,
                activity_model.start_dt >= window_start,
            )
        )
        if info.has_status:
            attended_q = attended_q.filter(
                attendance_model.status == models.TrainingAttendanceStatus.ATTENDED
            )
        else:
            attended_q = attended_q.filter(attendance_model.time_in.isnot(None))
        attended = attended_q.scalar() or 0

        counts[kind] = _count(attended, total)

    overall_attended = sum(c.attended for c in counts.values())
    overall_total = sum(c.total for c in counts.values())

    return schemas.ActivityStats(
        member_id=member_id,
        window_days=window_days,
        calls=counts[schemas.ActivityKind.CALLS],
        training=counts[schemas.ActivityKind.TRAINING],
        meetings=counts[schemas.ActivityKind.MEETINGS],
        events=counts[schemas.ActivityKind.EVENTS],
        overall=_count(overall_attended, overall_total),
    )


# ---------------------------------------------------------------------------
# HISTORY
# ---------------------------------------------------------------------------


def activity_history(
    db: Session,
    *,
    member_id: str,
    window_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> schemas.ActivityHistory:
    """Every attendance row of a member within the window, newest activity first."""
    window_days = window_days or ACTIVITY_STATS_WINDOW_DAYS
    window_start = (now or datetime.utcnow()) - timedelta(days=window_days)

    items: List[schemas.ActivityHistoryItem] = []
    for kind, info in ACTIVITY_KINDS.items():
        activity_model = info.activity_model
        attendance_model = info.attendance_model
        rows = (
            db.query(attendance_model, activity_model)
            .join(activity_model, activity_model.id == getattr(attendance_model, info.attendance_fk))
            .filter(
                attendance_model.member_id == member_id,
                activity_model.start_dt >= window_start,
            )
            .all()
        )
        for attendance, activity in rows:
            items.append(
                schemas.ActivityHistoryItem(
                    kind=kind,
                    activity_id=activity.id,
                    title=activity.title,
                    start_dt=activity.start_dt,
                    status=attendance.status if info.has_status else None,
                    time_in=None if info.has_status else attendance.time_in,
                    time_out=None if info.has_status else attendance.time_out,
                )
            )

    items.sort(key=lambda item: (item.start_dt, item.activity_id), reverse=True)
    return schemas.ActivityHistory(member_id=member_id, window_days=window_days, items=items)


# ---------------------------------------------------------------------------
# TRAINING TASK MAP
# ---------------------------------------------------------------------------


def task_map_to_read(row: models.TrainingTaskMap) -> schemas.TrainingTaskMapRead:
    return schemas.TrainingTaskMapRead(
        id=row.id,
        training_session_id=row.training_session_id,
        task_id=row.task_id,
        task_code=row.task.task_code if row.task else None,
        task_name=row.task.task_name if row.task else None,
        position_id=row.position_id,
        position_code=row.position.code if row.position else None,
        evaluation_method=row.evaluation_method,
        created_at=row.created_at,
    )


def list_task_map(db: Session, training_session_id: str) -> List[models.TrainingTaskMap]:
    return (
        db.query(models.TrainingTaskMap)
        .filter(models.TrainingTaskMap.training_session_id == training_session_id)
        .order_by(models.TrainingTaskMap.created_at.asc(), models.TrainingTaskMap.id.asc())
        .all()
    )


def get_task_map_entry(db: Session, training_session_id: str, task_id: str) -> Optional[models.TrainingTaskMap]:
    return (
        db.query(models.TrainingTaskMap)
        .filter(
            models.TrainingTaskMap.training_session_id == training_session_id,
            models.TrainingTaskMap.task_id == task_id,
        )
        .first()
    )


def map_task_to_session(
    db: Session,
    *,
    session: models.TrainingSession,
    task: position_models.Task,
    position: Optional[position_models.Position] = None,
    evaluation_method: Optional[str] = None,
) -> models.TrainingTaskMap:
    row = models.TrainingTaskMap(
        training_session_id=session.id,
        task_id=task.id,
        position_id=position.id if position is not None else None,
        evaluation_method=(evaluation_method or "").strip() or None,
    )
    db.add(row)
    db.flush()
    return row
