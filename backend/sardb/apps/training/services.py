# backend/sardb/apps/training/services.py

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from sardb.utils.dates import add_months

from . import models, schemas


def derive_expiry(course: models.Course, completed_at: date) -> Optional[date]:
    """
    Expiry of a completion recorded without an explicit expires_at.

    Never-expiring courses (and courses without a validity period) give None.
    """
    if course.never_expires or not course.valid_months:
        return None
    return add_months(completed_at, course.valid_months)


def certification_status(
    cert: models.MemberCertification,
    *,
    today: date,
) -> str:
    """valid / expiring (inside the course warning window) / expired."""
    days = cert.days_until_expiry(today)
    if days is None:
        return "valid"
    if days < 0:
        return "expired"
    warning_days = cert.course.warning_days if cert.course is not None else 0
    if days <= (warning_days or 0):
        return "expiring"
    return "valid"


def to_read(
    cert: models.MemberCertification,
    *,
    today: Optional[date] = None,
) -> schemas.CertificationRead:
    item = schemas.CertificationRead.model_validate(cert)
    if cert.course is not None:
        item.course_code = cert.course.code
        item.course_name = cert.course.name
    if today is not None:
        item.status = certification_status(cert, today=today)
        item.days_remaining = cert.days_until_expiry(today)
    return item


def record_certification(
    db: Session,
    *,
    course: models.Course,
    data: schemas.CertificationCreate,
) -> models.MemberCertification:
    expires_at = data.expires_at
    if course.never_expires:
        expires_at = None
    elif expires_at is None:
        expires_at = derive_expiry(course, data.completed_at)

    cert = models.MemberCertification(
        member_id=data.member_id,
        course_id=course.id,
        completed_at=data.completed_at,
        expires_at=expires_at,
        issuer=data.issuer,
        certificate_number=data.certificate_number,
        notes=data.notes,
    )
    cert.course = course
    db.add(cert)
    db.flush()
    return cert


def list_member_certifications(
    db: Session,
    *,
    member_id: str,
    mode: str = "history",
    today: Optional[date] = None,
) -> List[schemas.CertificationRead]:
    """
    history: every recorded completion, newest first.
    current: the latest completion per course, with status.
    """
    today = today or date.today()
    rows = (
        db.query(models.MemberCertification)
        .filter(models.MemberCertification.member_id == member_id)
        .order_by(
            models.MemberCertification.completed_at.desc(),
            models.MemberCertification.created_at.desc(),
        )
        .all()
    )
    if mode != "current":
        return [to_read(c) for c in rows]

    latest: Dict[str, models.MemberCertification] = {}
    for cert in rows:
        latest.setdefault(cert.course_id, cert)
    items = [to_read(c, today=today) for c in latest.values()]
    items.sort(key=lambda i: ((i.course_code or "").lower(), i.course_id))
    return items


def list_expiring_certifications(
    db: Session,
    *,
    today: Optional[date] = None,
    include_expired: bool = False,
) -> List[schemas.CertificationRead]:
    """
    Latest certification per (member, course) that is inside its course's
    warning window (and optionally already expired), soonest first.
    """
    today = today or date.today()
    rows = (
        db.query(models.MemberCertification)
        .join(models.Course, models.Course.id == models.MemberCertification.course_id)
        .filter(
            models.Course.never_expires.is_(False),
            models.MemberCertification.expires_at.isnot(None),
        )
        .order_by(
            models.MemberCertification.completed_at.desc(),
            models.MemberCertification.created_at.desc(),
        )
        .all()
    )

    latest: Dict[tuple, models.MemberCertification] = {}
    for cert in rows:
        latest.setdefault((cert.member_id, cert.course_id), cert)

    wanted = {"expiring", "expired"} if include_expired else {"expiring"}
    items = [
        to_read(c, today=today)
        for c in latest.values()
        if certification_status(c, today=today) in wanted
    ]
    items.sort(key=lambda i: (i.expires_at, i.member_id, i.course_id))
    return items
