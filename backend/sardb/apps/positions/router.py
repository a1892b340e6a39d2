# backend/sardb/apps/positions/router.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...database import get_db, get_read_db
from ...security import get_current_active_member, require_permission
from ...utils.identifiers import is_uuid
from ..accounts.models import Permission
from ..audit import services as audit_services
from ..members import models as member_models
from ..qualifications.store import RequirementStoreError
from . import models, schemas, services

router = APIRouter(prefix="/positions", tags=["positions"])
tasks_router = APIRouter(prefix="/tasks", tags=["positions"])
member_positions_router = APIRouter(prefix="/member-positions", tags=["positions"])
signoffs_router = APIRouter(prefix="/member-task-signoffs", tags=["positions"])

_manage_positions = require_permission(Permission.MANAGE_POSITIONS)
_approve_positions = require_permission(Permission.APPROVE_POSITIONS)


def _check_uuid(value: str, name: str) -> str:
    value = (value or "").strip()
    if not is_uuid(value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"bad {name}")
    return value


def _get_or_404(db: Session, model, obj_id: str, label: str):
    obj_id = _check_uuid(obj_id, f"{label.lower()} id")
    obj = db.query(model).filter(model.id == obj_id).first()
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found.")
    return obj


def _bad_requirement(exc: services.RequirementValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# ---------------------------------------------------------------------------
# POSITIONS
# ---------------------------------------------------------------------------


@router.get("", response_model=List[schemas.PositionRead], summary="List positions")
def list_positions(
    include_inactive: bool = False,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    q = db.query(models.Position)
    if not include_inactive:
        q = q.filter(models.Position.is_active.is_(True))
    return q.order_by(models.Position.level.desc(), models.Position.code.asc()).all()


@router.get("/{position_id}", response_model=schemas.PositionRead)
def get_position(
    position_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    return _get_or_404(db, models.Position, position_id, "Position")


@router.post(
    "",
    response_model=schemas.PositionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a position",
)
def create_position(
    payload: schemas.PositionCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    code = payload.code.strip().upper()
    if db.query(models.Position).filter(models.Position.code == code).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A position with this code already exists.",
        )
    position = models.Position(
        code=code,
        name=payload.name.strip(),
        description=payload.description,
        level=payload.level,
        is_active=True,
    )
    db.add(position)
    db.commit()
    db.refresh(position)
    return position


@router.put(
    "/{position_id}",
    response_model=schemas.PositionRead,
    summary="Update a position (set is_active=false to retire it)",
)
def update_position(
    position_id: str,
    payload: schemas.PositionUpdate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    position = _get_or_404(db, models.Position, position_id, "Position")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(position, field, value)
    db.add(position)
    db.commit()
    db.refresh(position)
    return position


# ---------------------------------------------------------------------------
# REQUIREMENTS
# ---------------------------------------------------------------------------


@router.get("/{position_id}/requirements", response_model=List[schemas.RequirementRead])
def list_requirements(
    position_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    position = _get_or_404(db, models.Position, position_id, "Position")
    rows = (
        db.query(models.PositionRequirement)
        .filter(models.PositionRequirement.position_id == position.id)
        .order_by(models.PositionRequirement.created_at.asc())
        .all()
    )
    return [services.requirement_to_read(r) for r in rows]


@router.post(
    "/{position_id}/requirements",
    response_model=schemas.RequirementRead,
    status_code=status.HTTP_201_CREATED,
)
def add_requirement(
    position_id: str,
    payload: schemas.RequirementCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    position = _get_or_404(db, models.Position, position_id, "Position")
    try:
        requirement = services.build_position_requirement(db, position=position, data=payload)
    except services.RequirementValidationError as exc:
        raise _bad_requirement(exc)

    db.add(requirement)
    db.commit()
    db.refresh(requirement)
    return services.requirement_to_read(requirement)


@router.delete(
    "/{position_id}/requirements/{requirement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_requirement(
    position_id: str,
    requirement_id: str,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    requirement = _get_or_404(db, models.PositionRequirement, requirement_id, "Requirement")
    if requirement.position_id != position_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Requirement not found.")
    db.delete(requirement)
    db.commit()


# ---------------------------------------------------------------------------
# REQUIREMENT GROUPS
# ---------------------------------------------------------------------------


@router.get("/{position_id}/req-groups", response_model=List[schemas.ReqGroupRead])
def list_req_groups(
    position_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    position = _get_or_404(db, models.Position, position_id, "Position")
    return (
        db.query(models.PositionReqGroup)
        .filter(models.PositionReqGroup.position_id == position.id)
        .order_by(models.PositionReqGroup.created_at.asc())
        .all()
    )


@router.post(
    "/{position_id}/req-groups",
    response_model=schemas.ReqGroupRead,
    status_code=status.HTTP_201_CREATED,
)
def create_req_group(
    position_id: str,
    payload: schemas.ReqGroupCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    position = _get_or_404(db, models.Position, position_id, "Position")
    group = models.PositionReqGroup(
        position_id=position.id,
        label=(payload.label or "").strip() or "Alternative Paths",
        min_met=max(1, payload.min_met),
    )
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@router.put("/{position_id}/req-groups/{group_id}", response_model=schemas.ReqGroupRead)
def update_req_group(
    position_id: str,
    group_id: str,
    payload: schemas.ReqGroupUpdate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    group = _get_or_404(db, models.PositionReqGroup, group_id, "Requirement group")
    if group.position_id != position_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Requirement group not found.")
    if payload.label is not None:
        group.label = payload.label.strip() or "Alternative Paths"
    if payload.min_met is not None:
        group.min_met = max(1, payload.min_met)
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@router.delete(
    "/{position_id}/req-groups/{group_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a group; its requirements become standalone",
)
def delete_req_group(
    position_id: str,
    group_id: str,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    group = _get_or_404(db, models.PositionReqGroup, group_id, "Requirement group")
    if group.position_id != position_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Requirement group not found.")
    services.delete_requirement_group(db, group)
    db.commit()


# ---------------------------------------------------------------------------
# TASKS
# ---------------------------------------------------------------------------


@tasks_router.get("", response_model=List[schemas.TaskRead], summary="List tasks")
def list_tasks(
    position_id: Optional[str] = None,
    include_global: bool = True,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    q = db.query(models.Task).filter(models.Task.is_active.is_(True))
    if position_id:
        position_id = _check_uuid(position_id, "position_id")
        if include_global:
            q = q.filter((models.Task.position_id == position_id) | models.Task.position_id.is_(None))
        else:
            q = q.filter(models.Task.position_id == position_id)
    return q.order_by(models.Task.task_code.asc()).all()


@tasks_router.post(
    "",
    response_model=schemas.TaskRead,
    status_code=status.HTTP_201_CREATED,
)
def create_task(
    payload: schemas.TaskCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    if payload.position_id:
        _get_or_404(db, models.Position, payload.position_id, "Position")
    task = models.Task(
        task_code=payload.task_code.strip().upper(),
        task_name=payload.task_name.strip(),
        description=payload.description,
        position_id=payload.position_id or None,
        is_active=True,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@tasks_router.put("/{task_id}", response_model=schemas.TaskRead)
def update_task(
    task_id: str,
    payload: schemas.TaskUpdate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    task = _get_or_404(db, models.Task, task_id, "Task")
    update_data = payload.model_dump(exclude_unset=True)
    if "task_code" in update_data and update_data["task_code"]:
        update_data["task_code"] = update_data["task_code"].strip().upper()
    if update_data.get("position_id"):
        _get_or_404(db, models.Position, update_data["position_id"], "Position")
    for field, value in update_data.items():
        setattr(task, field, value)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@tasks_router.get("/{task_id}/requirements", response_model=List[schemas.TaskRequirementRead])
def list_task_requirements(
    task_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    task = _get_or_404(db, models.Task, task_id, "Task")
    return (
        db.query(models.TaskRequirement)
        .filter(models.TaskRequirement.task_id == task.id)
        .order_by(models.TaskRequirement.created_at.asc())
        .all()
    )


@tasks_router.post(
    "/{task_id}/requirements",
    response_model=schemas.TaskRequirementRead,
    status_code=status.HTTP_201_CREATED,
)
def add_task_requirement(
    task_id: str,
    payload: schemas.TaskRequirementCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    task = _get_or_404(db, models.Task, task_id, "Task")
    try:
        requirement = services.build_task_requirement(task=task, data=payload)
    except services.RequirementValidationError as exc:
        raise _bad_requirement(exc)
    db.add(requirement)
    db.commit()
    db.refresh(requirement)
    return requirement


@tasks_router.delete(
    "/{task_id}/requirements/{requirement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_task_requirement(
    task_id: str,
    requirement_id: str,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    requirement = _get_or_404(db, models.TaskRequirement, requirement_id, "Task requirement")
    if requirement.task_id != task_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task requirement not found.")
    db.delete(requirement)
    db.commit()


# ---------------------------------------------------------------------------
# MEMBER POSITIONS
# ---------------------------------------------------------------------------


@member_positions_router.get(
    "",
    response_model=List[schemas.MemberPositionRead],
    summary="A member's position assignments, newest first",
)
def list_member_positions(
    member_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    member_id = _check_uuid(member_id, "member_id")
    rows = (
        db.query(models.MemberPosition)
        .filter(models.MemberPosition.member_id == member_id)
        .order_by(models.MemberPosition.created_at.desc())
        .all()
    )
    return [services.member_position_to_read(r) for r in rows]


@member_positions_router.post(
    "",
    response_model=schemas.MemberPositionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a member to a position (trainee by default)",
)
def assign_member_position(
    payload: schemas.MemberPositionCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    member = _get_or_404(db, member_models.Member, payload.member_id, "Member")
    position = _get_or_404(db, models.Position, payload.position_id, "Position")
    if services.get_member_position(db, member_id=member.id, position_id=position.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Member is already assigned to this position.",
        )

    row = models.MemberPosition(
        member_id=member.id,
        position_id=position.id,
        status=payload.status,
        notes=payload.notes,
    )
    db.add(row)
    db.flush()
    audit_services.log_event(
        db,
        actor_member_id=current_member.id,
        entity_type="member_position",
        entity_id=row.id,
        action="assign",
        after={"member_id": member.id, "position_id": position.id, "status": row.status.value},
    )
    db.commit()
    db.refresh(row)
    return services.member_position_to_read(row)


@member_positions_router.post(
    "/approve",
    response_model=schemas.MemberPositionRead,
    summary="Approve a member as qualified for a position",
)
def approve_member_position(
    payload: schemas.MemberPositionApprove,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_approve_positions),
):
    member = _get_or_404(db, member_models.Member, payload.member_id, "Member")
    position = _get_or_404(db, models.Position, payload.position_id, "Position")
    row = services.approve_member_position(
        db,
        member_id=member.id,
        position_id=position.id,
        approver=current_member,
        awarded_at=payload.awarded_at,
        notes=payload.notes,
    )
    db.commit()
    db.refresh(row)
    return services.member_position_to_read(row)


@member_positions_router.put("/{assignment_id}", response_model=schemas.MemberPositionRead)
def update_member_position(
    assignment_id: str,
    payload: schemas.MemberPositionUpdate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    row = _get_or_404(db, models.MemberPosition, assignment_id, "Assignment")
    before = {"status": row.status.value}
    changes = payload.model_dump(exclude_unset=True)
    if "status" in changes and changes["status"] is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="status cannot be null")
    for field, value in changes.items():
        setattr(row, field, value)
    db.add(row)
    db.flush()
    audit_services.log_event(
        db,
        actor_member_id=current_member.id,
        entity_type="member_position",
        entity_id=row.id,
        action="update",
        before=before,
        after={"status": row.status.value},
    )
    db.commit()
    db.refresh(row)
    return services.member_position_to_read(row)


@member_positions_router.delete(
    "/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unassign a member from a position",
)
def unassign_member_position(
    assignment_id: str,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    row = _get_or_404(db, models.MemberPosition, assignment_id, "Assignment")
    audit_services.log_event(
        db,
        actor_member_id=current_member.id,
        entity_type="member_position",
        entity_id=row.id,
        action="unassign",
        before={"member_id": row.member_id, "position_id": row.position_id, "status": row.status.value},
    )
    db.delete(row)
    db.commit()


# ---------------------------------------------------------------------------
# TASK SIGNOFFS
# ---------------------------------------------------------------------------


@signoffs_router.get("", response_model=List[schemas.SignoffRead])
def list_signoffs(
    member_id: str,
    position_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    member_id = _check_uuid(member_id, "member_id")
    position_id = _check_uuid(position_id, "position_id")
    rows = services.list_signoffs(db, member_id=member_id, position_id=position_id)
    return [services.signoff_to_read(r) for r in rows]


@signoffs_router.post(
    "",
    response_model=schemas.SignoffRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record a task signoff (PTB completion is gated on requirements)",
)
def create_signoff(
    payload: schemas.SignoffCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(_manage_positions),
):
    _get_or_404(db, member_models.Member, payload.member_id, "Member")
    _get_or_404(db, models.Position, payload.position_id, "Position")
    task = _get_or_404(db, models.Task, payload.task_id, "Task")

    try:
        signoff = services.record_task_signoff(
            db,
            task=task,
            data=payload,
            actor=current_member,
        )
    except services.RequirementsNotMet as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "unmet_labels": exc.unmet_labels},
        )
    except RequirementStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc) or "Could not check position requirements.",
        )

    db.commit()
    db.refresh(signoff)
    return services.signoff_to_read(signoff)
