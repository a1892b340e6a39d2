from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Set

from sqlalchemy.orm import Session

from sardb.apps.positions import models as position_models
from sardb.apps.qualifications.store import RequirementStore

from . import models, schemas


def _normalise_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def email_in_use(db: Session, email: Optional[str], *, exclude_member_id: Optional[str] = None) -> bool:
    email = _normalise_email(email)
    if not email:
        return False
    q = db.query(models.Member).filter(models.Member.email == email)
    if exclude_member_id:
        q = q.filter(models.Member.id != exclude_member_id)
    return db.query(q.exists()).scalar()


def build_roster(db: Session, *, today: Optional[date] = None) -> List[schemas.RosterEntry]:
    """
    Roster with each member's currently valid positions.

    A position counts when the member holds it (status qualified, or
    approved/awarded) and holds valid certifications for every course-kind
    requirement of that position.
    """
    today = today or date.today()
    store = RequirementStore(db)

    members = (
        db.query(models.Member)
        .order_by(models.Member.last_name.asc(), models.Member.first_name.asc())
        .all()
    )
    certs = store.list_valid_certifications_by_member(today=today)

    held = (
        db.query(position_models.MemberPosition)
        .filter(
            (position_models.MemberPosition.status == position_models.MemberPositionStatus.QUALIFIED)
            | position_models.MemberPosition.approved_at.isnot(None)
            | position_models.MemberPosition.awarded_at.isnot(None)
        )
        .all()
    )
    required_courses = store.list_course_requirements_by_position({mp.position_id for mp in held})

    by_member: Dict[str, List[schemas.RosterPosition]] = {}
    seen: Set[tuple] = set()
    for mp in held:
        if (mp.member_id, mp.position_id) in seen or mp.position is None:
            continue
        seen.add((mp.member_id, mp.position_id))
        member_certs = certs.get(mp.member_id, frozenset())
        if not all(cid in member_certs for cid in required_courses.get(mp.position_id, [])):
            continue
        by_member.setdefault(mp.member_id, []).append(
            schemas.RosterPosition(
                id=mp.position.id,
                code=mp.position.code,
                name=mp.position.name,
                level=mp.position.level or 0,
            )
        )

    entries: List[schemas.RosterEntry] = []
    for member in members:
        positions = sorted(by_member.get(member.id, []), key=lambda p: (-p.level, p.code))
        entries.append(
            schemas.RosterEntry(
                member=schemas.MemberRead.model_validate(member),
                positions=positions,
                primary_position=positions[0] if positions else None,
            )
        )
    return entries
