# backend/sardb/apps/training/router.py

from __future__ import annotations

from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...database import get_db, get_read_db
from ...security import get_current_active_member, require_permission
from ...utils.identifiers import is_uuid
from ..accounts.models import Permission
from ..audit import services as audit_services
from ..members import models as member_models
from . import models, schemas, services

router = APIRouter(prefix="/training", tags=["training"])


def _get_course_or_404(db: Session, course_id: str) -> models.Course:
    if not is_uuid(course_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="bad course id")
    course = db.query(models.Course).filter(models.Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
    return course


# ---------------------------------------------------------------------------
# COURSES
# ---------------------------------------------------------------------------


@router.get(
    "/courses",
    response_model=List[schemas.CourseRead],
    summary="List courses",
)
def list_courses(
    include_inactive: bool = False,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    q = db.query(models.Course)
    if not include_inactive:
        q = q.filter(models.Course.is_active.is_(True))
    return q.order_by(models.Course.code.asc()).all()


@router.get("/courses/{course_id}", response_model=schemas.CourseRead)
def get_course(
    course_id: str,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    return _get_course_or_404(db, course_id)


@router.post(
    "/courses",
    response_model=schemas.CourseRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a course (training officers only)",
)
def create_course(
    payload: schemas.CourseCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(require_permission(Permission.MANAGE_TRAINING)),
):
    # Normalise code (trim + upper-case)
    code = payload.code.strip().upper()

    existing = db.query(models.Course).filter(models.Course.code == code).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A course with this code already exists.",
        )

    course = models.Course(
        code=code,
        name=payload.name.strip(),
        description=payload.description,
        valid_months=payload.valid_months,
        warning_days=payload.warning_days,
        never_expires=payload.never_expires,
        is_active=True,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


@router.put("/courses/{course_id}", response_model=schemas.CourseRead)
def update_course(
    course_id: str,
    payload: schemas.CourseUpdate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(require_permission(Permission.MANAGE_TRAINING)),
):
    course = _get_course_or_404(db, course_id)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(course, field, value)

    if course.never_expires:
        course.warning_days = 0
    elif not course.valid_months or course.valid_months <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="valid_months must be positive unless never_expires is set.",
        )

    db.add(course)
    db.commit()
    db.refresh(course)
    return course


# ---------------------------------------------------------------------------
# CERTIFICATIONS
# ---------------------------------------------------------------------------


@router.get(
    "/certifications/expiring",
    response_model=List[schemas.CertificationRead],
    summary="Certifications inside their course's warning window",
)
def list_expiring(
    include_expired: bool = False,
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(require_permission(Permission.READ_ALL)),
):
    return services.list_expiring_certifications(db, include_expired=include_expired)


@router.get(
    "/members/{member_id}/certifications",
    response_model=List[schemas.CertificationRead],
    summary="A member's certifications (full history or current status per course)",
)
def list_member_certifications(
    member_id: str,
    mode: Literal["history", "current"] = Query("history"),
    db: Session = Depends(get_read_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    if not is_uuid(member_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="bad member id")
    return services.list_member_certifications(db, member_id=member_id, mode=mode)


@router.post(
    "/certifications",
    response_model=schemas.CertificationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record a course completion",
)
def create_certification(
    payload: schemas.CertificationCreate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(require_permission(Permission.MANAGE_TRAINING)),
):
    if not is_uuid(payload.member_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="bad member_id")
    member = db.query(member_models.Member).filter(member_models.Member.id == payload.member_id).first()
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found.")
    course = _get_course_or_404(db, payload.course_id)

    if payload.expires_at and payload.expires_at < payload.completed_at:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="expires_at cannot be before completed_at.",
        )

    cert = services.record_certification(db, course=course, data=payload)
    audit_services.log_event(
        db,
        actor_member_id=current_member.id,
        entity_type="member_certification",
        entity_id=cert.id,
        action="create",
        after={
            "member_id": member.id,
            "course": course.code,
            "completed_at": cert.completed_at.isoformat(),
            "expires_at": cert.expires_at.isoformat() if cert.expires_at else None,
        },
    )
    db.commit()
    db.refresh(cert)
    return services.to_read(cert)
