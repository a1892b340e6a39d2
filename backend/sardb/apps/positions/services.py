# backend/sardb/apps/positions/services.py

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from sardb.apps.audit import services as audit_services
from sardb.apps.members import models as member_models
from sardb.apps.qualifications.services import check_position_requirements
from sardb.apps.training import models as training_models

from . import models, schemas

logger = logging.getLogger(__name__)

PTB_COMPLETE_TASK_CODES = frozenset({"PTB-COMPLETE", "PTB_COMPLETE", "PTB-COMPLETED"})


class RequirementValidationError(ValueError):
    """A requirement row is missing or has inconsistent kind-specific fields."""


class RequirementsNotMet(Exception):
    """The member does not meet the position's requirements."""

    def __init__(self, message: str, *, unmet_labels: Sequence[str]) -> None:
        super().__init__(message)
        self.unmet_labels = list(unmet_labels)


# ---------------------------------------------------------------------------
# REQUIREMENT VALIDATION
# ---------------------------------------------------------------------------


def _check_time_fields(
    min_count: Optional[int],
    activity_type: Optional[models.ActivityType],
    within_months: Optional[int],
) -> dict:
    if min_count is None or min_count < 1:
        raise RequirementValidationError("time requirements need min_count >= 1")
    if within_months is not None and within_months <= 0:
        raise RequirementValidationError("within_months must be positive when set")
    return {
        "min_count": min_count,
        "activity_type": (activity_type or models.ActivityType.ANY).value,
        "within_months": within_months,
    }


def build_position_requirement(
    db: Session,
    *,
    position: models.Position,
    data: schemas.RequirementCreate,
) -> models.PositionRequirement:
    """
    Validate kind-specific fields and return an unsaved requirement row.

    Fields that do not apply to the kind are dropped.
    """
    kind = data.req_kind
    if kind not in models.POSITION_REQUIREMENT_KINDS:
        raise RequirementValidationError(f"'{kind.value}' is not a position requirement kind")

    fields = {}
    if kind == models.RequirementKind.COURSE:
        if not data.course_id:
            raise RequirementValidationError("course requirements need course_id")
        exists = db.query(training_models.Course.id).filter(training_models.Course.id == data.course_id).first()
        if not exists:
            raise RequirementValidationError("course_id does not reference a course")
        fields["course_id"] = data.course_id

    elif kind == models.RequirementKind.POSITION:
        if not data.required_position_id:
            raise RequirementValidationError("position requirements need required_position_id")
        if data.required_position_id == position.id:
            raise RequirementValidationError("a position cannot require itself")
        exists = db.query(models.Position.id).filter(models.Position.id == data.required_position_id).first()
        if not exists:
            raise RequirementValidationError("required_position_id does not reference a position")
        fields["required_position_id"] = data.required_position_id

    elif kind == models.RequirementKind.TASK:
        if not data.task_id:
            raise RequirementValidationError("task requirements need task_id")
        exists = db.query(models.Task.id).filter(models.Task.id == data.task_id).first()
        if not exists:
            raise RequirementValidationError("task_id does not reference a task")
        fields["task_id"] = data.task_id

    elif kind == models.RequirementKind.TIME:
        fields.update(_check_time_fields(data.min_count, data.activity_type, data.within_months))

    if data.req_group_id:
        group = (
            db.query(models.PositionReqGroup)
            .filter(models.PositionReqGroup.id == data.req_group_id)
            .first()
        )
        if group is None or group.position_id != position.id:
            raise RequirementValidationError("req_group_id must belong to the same position")
        fields["req_group_id"] = group.id

    return models.PositionRequirement(
        position_id=position.id,
        req_kind=kind.value,
        notes=data.notes,
        **fields,
    )


def build_task_requirement(
    *,
    task: models.Task,
    data: schemas.TaskRequirementCreate,
) -> models.TaskRequirement:
    kind = data.req_kind
    if kind not in models.TASK_REQUIREMENT_KINDS:
        raise RequirementValidationError(f"'{kind.value}' is not a task requirement kind")

    fields = {}
    if kind == models.RequirementKind.TIME:
        fields.update(_check_time_fields(data.min_count, data.activity_type, data.within_months))

    return models.TaskRequirement(
        task_id=task.id,
        req_kind=kind.value,
        notes=data.notes,
        **fields,
    )


def requirement_to_read(row: models.PositionRequirement) -> schemas.RequirementRead:
    return schemas.RequirementRead(
        id=row.id,
        position_id=row.position_id,
        req_kind=row.req_kind,
        req_group_id=row.req_group_id,
        course_id=row.course_id,
        course_code=row.course.code if row.course is not None else None,
        required_position_id=row.required_position_id,
        required_position_code=row.required_position.code if row.required_position is not None else None,
        task_id=row.task_id,
        task_code=row.task.task_code if row.task is not None else None,
        min_count=row.min_count,
        activity_type=row.activity_type,
        within_months=row.within_months,
        notes=row.notes,
        created_at=row.created_at,
    )


def delete_requirement_group(db: Session, group: models.PositionReqGroup) -> None:
    """Delete a group; its requirements become standalone."""
    (
        db.query(models.PositionRequirement)
        .filter(models.PositionRequirement.req_group_id == group.id)
        .update({models.PositionRequirement.req_group_id: None}, synchronize_session=False)
    )
    db.delete(group)
    db.flush()


# ---------------------------------------------------------------------------
# MEMBER POSITIONS
# ---------------------------------------------------------------------------


def member_position_to_read(row: models.MemberPosition) -> schemas.MemberPositionRead:
    return schemas.MemberPositionRead(
        id=row.id,
        member_id=row.member_id,
        position_id=row.position_id,
        position_code=row.position.code if row.position is not None else None,
        position_name=row.position.name if row.position is not None else None,
        status=row.status,
        awarded_at=row.awarded_at,
        expires_at=row.expires_at,
        approved_by=row.approved_by,
        approved_at=row.approved_at,
        notes=row.notes,
        created_at=row.created_at,
    )


def get_member_position(
    db: Session,
    *,
    member_id: str,
    position_id: str,
) -> Optional[models.MemberPosition]:
    return (
        db.query(models.MemberPosition)
        .filter(
            models.MemberPosition.member_id == member_id,
            models.MemberPosition.position_id == position_id,
        )
        .first()
    )


def approve_member_position(
    db: Session,
    *,
    member_id: str,
    position_id: str,
    approver: member_models.Member,
    awarded_at: Optional[date] = None,
    notes: Optional[str] = None,
) -> models.MemberPosition:
    """
    Mark a member qualified for a position, creating the assignment when
    there is none. The audit event is written as critical: if it fails the
    approval fails with it.
    """
    row = get_member_position(db, member_id=member_id, position_id=position_id)
    before = None
    if row is None:
        row = models.MemberPosition(member_id=member_id, position_id=position_id)
        db.add(row)
    else:
        before = {
            "status": row.status.value if row.status else None,
            "approved_at": row.approved_at.isoformat() if row.approved_at else None,
        }

    row.status = models.MemberPositionStatus.QUALIFIED
    row.approved_at = datetime.utcnow()
    row.approved_by = approver.id
    row.awarded_at = awarded_at or row.awarded_at or date.today()
    if notes is not None:
        row.notes = notes
    db.flush()

    audit_services.log_event(
        db,
        actor_member_id=approver.id,
        entity_type="member_position",
        entity_id=row.id,
        action="approve",
        before=before,
        after={
            "member_id": member_id,
            "position_id": position_id,
            "status": row.status.value,
            "awarded_at": row.awarded_at.isoformat(),
        },
        critical=True,
    )
    return row


# ---------------------------------------------------------------------------
# TASK SIGNOFFS
# ---------------------------------------------------------------------------


def is_ptb_complete_task_code(code: Optional[str]) -> bool:
    """True for the task code that marks a position task book as complete."""
    normalised = re.sub(r"\s+", "-", (code or "").upper())
    return normalised in PTB_COMPLETE_TASK_CODES


def signoff_to_read(row: models.MemberTaskSignoff) -> schemas.SignoffRead:
    return schemas.SignoffRead(
        id=row.id,
        member_id=row.member_id,
        position_id=row.position_id,
        task_id=row.task_id,
        task_code=row.task.task_code if row.task is not None else None,
        task_name=row.task.task_name if row.task is not None else None,
        call_id=row.call_id,
        training_session_id=row.training_session_id,
        evaluator_name=row.evaluator_name,
        evaluator_position=row.evaluator_position,
        notes=row.notes,
        signed_at=row.signed_at,
    )


def list_signoffs(db: Session, *, member_id: str, position_id: str) -> List[models.MemberTaskSignoff]:
    return (
        db.query(models.MemberTaskSignoff)
        .filter(
            models.MemberTaskSignoff.member_id == member_id,
            models.MemberTaskSignoff.position_id == position_id,
        )
        .order_by(models.MemberTaskSignoff.signed_at.desc())
        .all()
    )


def record_task_signoff(
    db: Session,
    *,
    task: models.Task,
    data: schemas.SignoffCreate,
    actor: Optional[member_models.Member] = None,
    today: Optional[date] = None,
) -> models.MemberTaskSignoff:
    """
    Record that an evaluator signed a member off on a task.

    Signing off the PTB-complete task first re-checks every requirement of
    the position: RequirementsNotMet when any is unmet, and
    RequirementStoreError (propagated) when they cannot be read.
    """
    if is_ptb_complete_task_code(task.task_code):
        check = check_position_requirements(
            db,
            member_id=data.member_id,
            position_id=data.position_id,
            today=today,
        )
        if not check.ok:
            logger.info(
                "PTB completion rejected",
                extra={
                    "member_id": data.member_id,
                    "position_id": data.position_id,
                    "unmet": check.unmet_labels,
                },
            )
            raise RequirementsNotMet(
                "PTB cannot be marked complete until requirements are met.",
                unmet_labels=check.unmet_labels,
            )

    signoff = models.MemberTaskSignoff(
        member_id=data.member_id,
        position_id=data.position_id,
        task_id=task.id,
        call_id=data.call_id,
        training_session_id=data.training_session_id,
        evaluator_name=data.evaluator_name,
        evaluator_position=data.evaluator_position,
        notes=data.notes,
    )
    signoff.task = task
    db.add(signoff)
    db.flush()

    audit_services.log_event(
        db,
        actor_member_id=actor.id if actor is not None else None,
        entity_type="member_task_signoff",
        entity_id=signoff.id,
        action="create",
        after={
            "member_id": data.member_id,
            "position_id": data.position_id,
            "task_code": task.task_code,
        },
    )
    return signoff
