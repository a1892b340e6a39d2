# backend/sardb/apps/members/router.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...database import get_db, get_read_db
from ...security import get_password_hash, require_permission
from ...utils.identifiers import is_uuid
from ..accounts.models import Permission
from ..audit import services as audit_services
from . import models, schemas, services

router = APIRouter(prefix="/members", tags=["members"])


def _get_member_or_404(db: Session, member_id: str) -> models.Member:
    if not is_uuid(member_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="bad member id")
    member = db.query(models.Member).filter(models.Member.id == member_id).first()
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found.")
    return member


@router.get(
    "",
    response_model=List[schemas.MemberRead],
    summary="List members (roster order: last name, first name)",
)
def list_members(
    status_filter: Optional[models.MemberStatus] = None,
    db: Session = Depends(get_read_db),
    current_member: models.Member = Depends(require_permission(Permission.READ_ALL)),
):
    q = db.query(models.Member)
    if status_filter is not None:
        q = q.filter(models.Member.status == status_filter)
    return q.order_by(models.Member.last_name.asc(), models.Member.first_name.asc()).all()


@router.get(
    "/roster",
    response_model=List[schemas.RosterEntry],
    summary="Roster with each member's currently valid positions",
)
def get_roster(
    db: Session = Depends(get_read_db),
    current_member: models.Member = Depends(require_permission(Permission.READ_ALL)),
):
    return services.build_roster(db)


@router.get("/{member_id}", response_model=schemas.MemberRead)
def get_member(
    member_id: str,
    db: Session = Depends(get_read_db),
    current_member: models.Member = Depends(require_permission(Permission.READ_ALL)),
):
    return _get_member_or_404(db, member_id)


@router.post(
    "",
    response_model=schemas.MemberRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member to the roster",
)
def create_member(
    payload: schemas.MemberCreate,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(require_permission(Permission.MANAGE_MEMBERS)),
):
    email = services._normalise_email(payload.email)
    if services.email_in_use(db, email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A member with this email already exists.",
        )

    member = models.Member(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=email,
        phone=payload.phone,
        status=payload.status,
        role=payload.role.strip() or "member",
        joined_on=payload.joined_on,
        notes=payload.notes,
        hashed_password=get_password_hash(payload.password) if payload.password else None,
    )
    db.add(member)
    db.flush()

    audit_services.log_event(
        db,
        actor_member_id=current_member.id,
        entity_type="member",
        entity_id=member.id,
        action="create",
        after={"status": member.status.value, "role": member.role},
    )
    db.commit()
    db.refresh(member)
    return member


@router.put("/{member_id}", response_model=schemas.MemberRead)
def update_member(
    member_id: str,
    payload: schemas.MemberUpdate,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(require_permission(Permission.MANAGE_MEMBERS)),
):
    member = _get_member_or_404(db, member_id)
    before = {"status": member.status.value, "role": member.role}

    update_data = payload.model_dump(exclude_unset=True)
    password = update_data.pop("password", None)

    if "email" in update_data:
        update_data["email"] = services._normalise_email(update_data["email"])
        if services.email_in_use(db, update_data["email"], exclude_member_id=member.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A member with this email already exists.",
            )

    for field, value in update_data.items():
        setattr(member, field, value)
    if password:
        member.hashed_password = get_password_hash(password)

    db.add(member)
    db.flush()
    audit_services.log_event(
        db,
        actor_member_id=current_member.id,
        entity_type="member",
        entity_id=member.id,
        action="update",
        before=before,
        after={"status": member.status.value, "role": member.role},
    )
    db.commit()
    db.refresh(member)
    return member
