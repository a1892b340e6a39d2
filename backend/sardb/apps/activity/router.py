# backend/sardb/apps/activity/router.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...database import get_db, get_read_db
from ...security import get_current_active_member, permissions_for_role, require_permission
from ...utils.identifiers import is_uuid
from ..accounts.models import Permission
from ..audit import services as audit_services
from ..members import models as member_models
from ..positions import models as position_models
from . import models, schemas, services

router = APIRouter(prefix="/activity", tags=["activity"])

_manage_activities = require_permission(Permission.MANAGE_ACTIVITIES)


def _check_uuid(value: str, name: str) -> str:
    value = (value or "").strip()
    if not is_uuid(value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"bad {name}")
    return value


def _get_activity_or_404(db: Session, kind: schemas.ActivityKind, activity_id: str):
    activity_id = _check_uuid(activity_id, "activity id")
    activity = services.get_activity(db, kind, activity_id)
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found.")
    return activity


def _target_member_id(db: Session, current_member: member_models.Member, member_id: Optional[str]) -> str:
    """The current member, or another one when the caller holds read_all."""
    if not member_id or member_id == current_member.id:
        return current_member.id
    if Permission.READ_ALL.value not in permissions_for_role(db, current_member.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Permission denied: requires 'read_all'",
        )
    return _check_uuid(member_id, "member_id")


# ---------------------------------------------------------------------------
# STATS
# ---------------------------------------------------------------------------


@router.get(
    "/stats",
    response_model=schemas.ActivityStats,
    summary="Attendance percentages per activity type",
)
def get_activity_stats(
    member_id: Optional[str] = None,
    window_days: Optional[int] = Query(None, ge=1, le=3650),
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    """
    Defaults to the current member. Looking at someone else needs read_all.
    """
    target_id = _target_member_id(db, current_member, member_id)
    return services.activity_stats(db, member_id=target_id, window_days=window_days)


# ---------------------------------------------------------------------------
# HISTORY
# ---------------------------------------------------------------------------


@router.get(
    "/history",
    response_model=schemas.ActivityHistory,
    summary="A member's attendance across every activity type",
)
def get_activity_history(
    member_id: Optional[str] = None,
    window_days: Optional[int] = Query(None, ge=1, le=3650),
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    target_id = _target_member_id(db, current_member, member_id)
    return services.activity_history(db, member_id=target_id, window_days=window_days)


# ---------------------------------------------------------------------------
# TRAINING TASK MAP
# ---------------------------------------------------------------------------


@router.get("/training-task-map", response_model=List[schemas.TrainingTaskMapRead])
def list_training_task_map(
    training_session_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    session_id = _check_uuid(training_session_id, "training_session_id")
    return [services.task_map_to_read(row) for row in services.list_task_map(db, session_id)]


@router.post(
    "/training-task-map",
    response_model=schemas.TrainingTaskMapRead,
    status_code=status.HTTP_201_CREATED,
    summary="Mark a task as evaluated at a training session",
)
def create_training_task_map(
    payload: schemas.TrainingTaskMapCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_activities),
):
    session = _get_activity_or_404(db, schemas.ActivityKind.TRAINING, payload.training_session_id)
    task_id = _check_uuid(payload.task_id, "task_id")
    task = db.query(position_models.Task).filter(position_models.Task.id == task_id).first()
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")

    position = None
    if payload.position_id:
        position_id = _check_uuid(payload.position_id, "position_id")
        position = db.query(position_models.Position).filter(position_models.Position.id == position_id).first()
        if position is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Position not found.")

    if services.get_task_map_entry(db, session.id, task.id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Task is already mapped to this training session.",
        )

    row = services.map_task_to_session(
        db,
        session=session,
        task=task,
        position=position,
        evaluation_method=payload.evaluation_method,
    )
    db.commit()
    db.refresh(row)
    return services.task_map_to_read(row)


@router.delete("/training-task-map/{map_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_training_task_map(
    map_id: str,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_activities),
):
    map_id = _check_uuid(map_id, "id")
    row = db.query(models.TrainingTaskMap).filter(models.TrainingTaskMap.id == map_id).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task map entry not found.")
    db.delete(row)
    db.commit()


# ---------------------------------------------------------------------------
# ACTIVITIES
# ---------------------------------------------------------------------------


@router.get("/{kind}", response_model=List[schemas.ActivityRead])
def list_activities(
    kind: schemas.ActivityKind,
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    return [services.activity_to_read(kind, row) for row in services.list_activities(db, kind, limit=limit)]


@router.post(
    "/{kind}",
    response_model=schemas.ActivityRead,
    status_code=status.HTTP_201_CREATED,
)
def create_activity(
    kind: schemas.ActivityKind,
    payload: schemas.ActivityCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_activities),
):
    try:
        row = services.create_activity(db, kind, payload)
    except services.ActivityValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    db.commit()
    db.refresh(row)
    return services.activity_to_read(kind, row)


@router.get("/{kind}/{activity_id}", response_model=schemas.ActivityRead)
def get_activity(
    kind: schemas.ActivityKind,
    activity_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    return services.activity_to_read(kind, _get_activity_or_404(db, kind, activity_id))


@router.patch("/{kind}/{activity_id}", response_model=schemas.ActivityRead)
def update_activity(
    kind: schemas.ActivityKind,
    activity_id: str,
    payload: schemas.ActivityUpdate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_activities),
):
    activity = _get_activity_or_404(db, kind, activity_id)
    try:
        row = services.update_activity(db, kind, activity, payload)
    except services.ActivityValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    db.commit()
    db.refresh(row)
    return services.activity_to_read(kind, row)


@router.delete(
    "/{kind}/{activity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Hard-delete a test activity and its attendance",
)
def delete_activity(
    kind: schemas.ActivityKind,
    activity_id: str,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_activities),
):
    activity = _get_activity_or_404(db, kind, activity_id)
    deleted_id = activity.id
    try:
        services.delete_activity(db, kind, activity)
    except services.ActivityValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    audit_services.log_event(
        db,
        actor_member_id=current_member.id,
        entity_type=f"activity_{kind.value}",
        entity_id=deleted_id,
        action="delete",
    )
    db.commit()


# ---------------------------------------------------------------------------
# ATTENDANCE
# ---------------------------------------------------------------------------


@router.get("/{kind}/{activity_id}/attendance", response_model=List[schemas.AttendanceRead])
def list_attendance(
    kind: schemas.ActivityKind,
    activity_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    activity = _get_activity_or_404(db, kind, activity_id)
    return services.list_attendance(db, kind, activity.id)


@router.post(
    "/{kind}/{activity_id}/attendance",
    response_model=schemas.AttendanceRead,
    summary="Record attendance (creates or updates the member's row)",
)
def upsert_attendance(
    kind: schemas.ActivityKind,
    activity_id: str,
    payload: schemas.AttendanceUpsert,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_activities),
):
    activity = _get_activity_or_404(db, kind, activity_id)
    member_id = _check_uuid(payload.member_id, "member_id")
    member = db.query(member_models.Member).filter(member_models.Member.id == member_id).first()
    if member is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found.")

    try:
        row = services.upsert_attendance(db, kind, activity.id, payload)
    except services.ActivityValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    db.commit()
    db.refresh(row)
    return services.attendance_to_read(kind, row, member)


@router.delete(
    "/{kind}/{activity_id}/attendance/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_attendance(
    kind: schemas.ActivityKind,
    activity_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_activities),
):
    activity = _get_activity_or_404(db, kind, activity_id)
    member_id = _check_uuid(member_id, "member_id")
    if not services.delete_attendance(db, kind, activity.id, member_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attendance not found.")
    db.commit()
