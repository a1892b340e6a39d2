from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from sardb.apps.positions.models import MemberPositionStatus

from .evaluator import (
    MemberContext,
    evaluate_position,
    evaluate_task,
)
from .store import (
    ActivityDates,
    MemberRecord,
    PositionRecord,
    QualificationSnapshot,
    RequirementStore,
    build_snapshot,
    has_time_requirements,
    prerequisite_position_ids,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadyRow:
    """
    A (member, position) pair that meets every requirement but is not yet
    qualified. existing_* is set when the member already has a row for the
    position (usually status=trainee).
    """

    member_id: str
    position_id: str
    member: MemberRecord
    position: PositionRecord
    existing_assignment_id: Optional[str] = None
    existing_status: Optional[str] = None
    existing_created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RequirementCheck:
    ok: bool
    unmet_labels: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# BATCH READINESS SCAN
# ---------------------------------------------------------------------------


def _ready_sort_key(row: ReadyRow):
    return (
        0 if row.existing_assignment_id else 1,
        (row.member.last_name or "").lower(),
        (row.member.first_name or "").lower(),
        (row.position.code or "").lower(),
        row.member_id,
        row.position_id,
    )


def member_context_for(snapshot: QualificationSnapshot, member_id: str) -> MemberContext:
    return snapshot.member_context(member_id)


def find_ready(snapshot: QualificationSnapshot) -> List[ReadyRow]:
    """
    Evaluate every active member against every active position.

    Positions with no requirements are skipped: an empty requirement set
    never makes anyone "ready". Members already qualified for a position
    are skipped for that position.
    """
    contexts = {m.id: member_context_for(snapshot, m.id) for m in snapshot.members}
    ready: List[ReadyRow] = []

    for position in snapshot.positions:
        requirements = snapshot.requirements_by_position.get(position.id)
        if not requirements:
            continue
        groups = snapshot.groups_by_position.get(position.id, [])

        for member in snapshot.members:
            existing = snapshot.assignments.get((member.id, position.id))
            if existing is not None and existing.status == MemberPositionStatus.QUALIFIED.value:
                continue

            result = evaluate_position(
                requirements,
                groups,
                contexts[member.id],
                today=snapshot.today,
                prerequisite_courses=snapshot.prerequisite_courses,
            )
            if not result.met:
                continue

            ready.append(
                ReadyRow(
                    member_id=member.id,
                    position_id=position.id,
                    member=member,
                    position=position,
                    existing_assignment_id=existing.id if existing else None,
                    existing_status=existing.status if existing else None,
                    existing_created_at=existing.created_at if existing else None,
                )
            )

    ready.sort(key=_ready_sort_key)
    return ready


def scan_readiness(db: Session, *, today: Optional[date] = None) -> List[ReadyRow]:
    """
    Members who newly meet a position's requirements, for admin review.

    Read-only; approving a row is a separate admin action.
    """
    today = today or date.today()
    snapshot = build_snapshot(RequirementStore(db), today=today)
    ready = find_ready(snapshot)
    logger.info(
        "Readiness scan complete",
        extra={
            "positions": len(snapshot.positions),
            "members": len(snapshot.members),
            "ready": len(ready),
        },
    )
    return ready


# ---------------------------------------------------------------------------
# SINGLE-MEMBER CHECKS
# ---------------------------------------------------------------------------


def _member_context(
    store: RequirementStore,
    *,
    member_id: str,
    today: date,
    include_activity: bool,
    include_signoffs: bool = True,
) -> MemberContext:
    certs = store.list_valid_certifications_by_member(today=today, member_id=member_id)
    signed_off = frozenset()
    if include_signoffs:
        signed_off = frozenset(task_id for _, task_id in store.list_task_signoffs(member_id=member_id))
    activity = ActivityDates()
    if include_activity:
        activity = store.list_timed_activity_dates(member_id=member_id).get(member_id, ActivityDates())

    return MemberContext(
        member_id=member_id,
        valid_course_ids=certs.get(member_id, frozenset()),
        signed_off_task_ids=signed_off,
        training_dates=activity.training_dates,
        call_dates=activity.call_dates,
    )


def check_position_requirements(
    db: Session,
    *,
    member_id: str,
    position_id: str,
    today: Optional[date] = None,
) -> RequirementCheck:
    """
    Explain which requirements of one position a member does not meet.

    Every failing standalone requirement and every failing group adds one
    label. Store failures raise RequirementStoreError; there is no
    "assume ok" fallback.
    """
    today = today or date.today()
    store = RequirementStore(db)

    requirements = store.list_requirements(position_id=position_id)
    groups = store.list_requirement_groups(position_id=position_id)
    context = _member_context(
        store,
        member_id=member_id,
        today=today,
        include_activity=has_time_requirements(requirements),
    )
    prerequisite_courses = store.list_course_requirements_by_position(
        prerequisite_position_ids(requirements)
    )

    result = evaluate_position(
        requirements,
        groups,
        context,
        today=today,
        prerequisite_courses=prerequisite_courses,
        explain=True,
    )
    return RequirementCheck(ok=result.met, unmet_labels=list(result.unmet_labels))


def check_task_requirements(
    db: Session,
    *,
    member_id: str,
    task_id: str,
    today: Optional[date] = None,
) -> RequirementCheck:
    today = today or date.today()
    store = RequirementStore(db)

    requirements = store.list_task_requirements(task_id)
    context = _member_context(
        store,
        member_id=member_id,
        today=today,
        include_activity=has_time_requirements(requirements),
        include_signoffs=False,
    )
    result = evaluate_task(requirements, context, today=today, explain=True)
    return RequirementCheck(ok=result.met, unmet_labels=list(result.unmet_labels))
