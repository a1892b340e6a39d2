# backend/sardb/apps/qualifications/router.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...database import get_read_db
from ...security import get_current_active_member, require_permission
from ...utils.identifiers import is_uuid
from ..accounts.models import Permission
from ..members import models as member_models
from ..positions import models as position_models
from . import schemas, services
from .store import RequirementStoreError

router = APIRouter(prefix="/qualifications", tags=["qualifications"])


def _store_failure(exc: RequirementStoreError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(exc) or "Could not load qualification data.",
    )


def _require_member(db: Session, member_id: str) -> member_models.Member:
    member_id = (member_id or "").strip()
    if not is_uuid(member_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="bad member_id")
    member = db.query(member_models.Member).filter(member_models.Member.id == member_id).first()
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found.")
    return member


@router.get(
    "/ready",
    response_model=List[schemas.ReadyRowRead],
    summary="Members who meet every requirement of a position they are not yet qualified for",
)
def list_ready(
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(
        require_permission(Permission.APPROVE_POSITIONS)
    ),
):
    """
    Ordering: members already assigned to the position (e.g. trainees)
    first, then brand-new candidates; each bucket by last name, first name.
    """
    try:
        return services.scan_readiness(db)
    except RequirementStoreError as exc:
        raise _store_failure(exc)


@router.get(
    "/check",
    response_model=schemas.RequirementCheckRead,
    summary="Explain which requirements of a position a member does not meet",
)
def check_position(
    member_id: str,
    position_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    member = _require_member(db, member_id)

    position_id = (position_id or "").strip()
    if not is_uuid(position_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="bad position_id")
    position = (
        db.query(position_models.Position)
        .filter(position_models.Position.id == position_id)
        .first()
    )
    if not position:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Position not found.")

    try:
        return services.check_position_requirements(
            db, member_id=member.id, position_id=position.id
        )
    except RequirementStoreError as exc:
        raise _store_failure(exc)


@router.get(
    "/check-task",
    response_model=schemas.RequirementCheckRead,
    summary="Explain which requirements of a task a member does not meet",
)
def check_task(
    member_id: str,
    task_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    member = _require_member(db, member_id)

    task_id = (task_id or "").strip()
    if not is_uuid(task_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="bad task_id")
    task = db.query(position_models.Task).filter(position_models.Task.id == task_id).first()
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")

    try:
        return services.check_task_requirements(db, member_id=member.id, task_id=task.id)
    except RequirementStoreError as exc:
        raise _store_failure(exc)
