# backend/sardb/apps/qualifications/store.py
"""
Read side for the qualification engine.

`RequirementStore` turns ORM rows into the plain values the evaluator
works on. Any database failure surfaces as RequirementStoreError so
callers fail closed with a single error instead of a partial answer.

`build_snapshot` runs one round of queries for a whole readiness scan,
so scan cost grows with (members + positions), not their product.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sardb.apps.activity import models as activity_models
from sardb.apps.members import models as member_models
from sardb.apps.positions import models as position_models
from sardb.apps.training import models as training_models

from .evaluator import (
    KIND_COURSE,
    KIND_POSITION,
    KIND_TIME,
    MemberContext,
    RequirementGroupSpec,
    RequirementSpec,
)

logger = logging.getLogger(__name__)


class RequirementStoreError(Exception):
    """Requirement data could not be read."""


# ---------------------------------------------------------------------------
# RECORDS
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PositionRecord:
    id: str
    code: str
    name: str
    level: int = 0


@dataclass(frozen=True)
class MemberRecord:
    id: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class AssignmentRecord:
    id: str
    status: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ActivityDates:
    training_dates: Tuple[date, ...] = ()
    call_dates: Tuple[date, ...] = ()


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def _status_value(status) -> str:
    return status.value if hasattr(status, "value") else str(status)


def _store_read(what: str):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError as exc:
                logger.warning(
                    "Requirement store read failed",
                    extra={"what": what, "error": str(exc)},
                )
                raise RequirementStoreError(f"Could not load {what}.") from exc

        return wrapper

    return decorator


def _requirement_spec(row: position_models.PositionRequirement) -> RequirementSpec:
    return RequirementSpec(
        kind=row.req_kind,
        id=row.id,
        owner_id=row.position_id,
        group_id=row.req_group_id,
        course_id=row.course_id,
        course_code=row.course.code if row.course is not None else None,
        required_position_id=row.required_position_id,
        required_position_code=(
            row.required_position.code if row.required_position is not None else None
        ),
        task_id=row.task_id,
        task_code=row.task.task_code if row.task is not None else None,
        min_count=row.min_count,
        activity_type=row.activity_type,
        within_months=row.within_months,
    )


def _task_requirement_spec(row: position_models.TaskRequirement) -> RequirementSpec:
    return RequirementSpec(
        kind=row.req_kind,
        id=row.id,
        owner_id=row.task_id,
        min_count=row.min_count,
        activity_type=row.activity_type,
        within_months=row.within_months,
    )


# ---------------------------------------------------------------------------
# STORE
# ---------------------------------------------------------------------------


class RequirementStore:
    def __init__(self, db: Session):
        self.db = db

    @_store_read("positions")
    def list_active_positions(self) -> List[PositionRecord]:
        rows = (
            self.db.query(position_models.Position)
            .filter(position_models.Position.is_active.is_(True))
            .order_by(position_models.Position.code.asc())
            .all()
        )
        return [PositionRecord(id=p.id, code=p.code, name=p.name, level=p.level or 0) for p in rows]

    @_store_read("members")
    def list_active_members(self) -> List[MemberRecord]:
        rows = (
            self.db.query(member_models.Member)
            .filter(member_models.Member.status == member_models.MemberStatus.ACTIVE)
            .order_by(member_models.Member.last_name.asc(), member_models.Member.first_name.asc())
            .all()
        )
        return [MemberRecord(id=m.id, first_name=m.first_name, last_name=m.last_name) for m in rows]

    @_store_read("position requirements")
    def list_requirements(self, position_id: Optional[str] = None) -> List[RequirementSpec]:
        q = self.db.query(position_models.PositionRequirement)
        if position_id is not None:
            q = q.filter(position_models.PositionRequirement.position_id == position_id)
        rows = q.order_by(
            position_models.PositionRequirement.created_at.asc(),
            position_models.PositionRequirement.id.asc(),
        ).all()
        return [_requirement_spec(r) for r in rows]

    @_store_read("requirement groups")
    def list_requirement_groups(self, position_id: Optional[str] = None) -> List[RequirementGroupSpec]:
        q = self.db.query(position_models.PositionReqGroup)
        if position_id is not None:
            q = q.filter(position_models.PositionReqGroup.position_id == position_id)
        rows = q.order_by(
            position_models.PositionReqGroup.created_at.asc(),
            position_models.PositionReqGroup.id.asc(),
        ).all()
        return [
            RequirementGroupSpec(
                id=g.id,
                label=g.label,
                min_met=max(1, g.min_met or 1),
                position_id=g.position_id,
            )
            for g in rows
        ]

    @_store_read("certifications")
    def list_valid_certifications_by_member(
        self,
        *,
        today: date,
        member_id: Optional[str] = None,
    ) -> Dict[str, FrozenSet[str]]:
        """
        Course ids each member holds a valid certification for.

        Valid means the course never expires, expires_at is empty, or
        expires_at >= today (still valid on the expiry date itself).
        """
        q = (
            self.db.query(
                training_models.MemberCertification.member_id,
                training_models.MemberCertification.course_id,
            )
            .join(
                training_models.Course,
                training_models.Course.id == training_models.MemberCertification.course_id,
            )
            .filter(
                or_(
                    training_models.Course.never_expires.is_(True),
                    training_models.MemberCertification.expires_at.is_(None),
                    training_models.MemberCertification.expires_at >= today,
                )
            )
        )
        if member_id is not None:
            q = q.filter(training_models.MemberCertification.member_id == member_id)

        by_member: Dict[str, Set[str]] = {}
        for cert_member_id, course_id in q.all():
            by_member.setdefault(cert_member_id, set()).add(course_id)
        return {k: frozenset(v) for k, v in by_member.items()}

    @_store_read("task signoffs")
    def list_task_signoffs(self, member_id: Optional[str] = None) -> FrozenSet[Tuple[str, str]]:
        """(member_id, task_id) pairs. A signoff counts for any position."""
        q = self.db.query(
            position_models.MemberTaskSignoff.member_id,
            position_models.MemberTaskSignoff.task_id,
        )
        if member_id is not None:
            q = q.filter(position_models.MemberTaskSignoff.member_id == member_id)
        return frozenset((m, t) for m, t in q.all())

    @_store_read("activity attendance")
    def list_timed_activity_dates(self, member_id: Optional[str] = None) -> Dict[str, ActivityDates]:
        """
        Dates of attended training sessions and call check-ins per member.
        """
        training_q = (
            self.db.query(
                activity_models.TrainingAttendance.member_id,
                activity_models.TrainingSession.start_dt,
            )
            .join(
                activity_models.TrainingSession,
                activity_models.TrainingSession.id
                == activity_models.TrainingAttendance.training_session_id,
            )
            .filter(
                activity_models.TrainingAttendance.status
                == activity_models.TrainingAttendanceStatus.ATTENDED
            )
        )
        call_q = self.db.query(
            activity_models.CallAttendance.member_id,
            activity_models.CallAttendance.time_in,
        ).filter(activity_models.CallAttendance.time_in.isnot(None))

        if member_id is not None:
            training_q = training_q.filter(activity_models.TrainingAttendance.member_id == member_id)
            call_q = call_q.filter(activity_models.CallAttendance.member_id == member_id)

        training: Dict[str, List[date]] = {}
        for row_member_id, start_dt in training_q.all():
            day = _as_date(start_dt)
            if day is not None:
                training.setdefault(row_member_id, []).append(day)

        calls: Dict[str, List[date]] = {}
        for row_member_id, time_in in call_q.all():
            day = _as_date(time_in)
            if day is not None:
                calls.setdefault(row_member_id, []).append(day)

        return {
            mid: ActivityDates(
                training_dates=tuple(sorted(training.get(mid, ()))),
                call_dates=tuple(sorted(calls.get(mid, ()))),
            )
            for mid in set(training) | set(calls)
        }

    @_store_read("prerequisite course requirements")
    def list_course_requirements_by_position(
        self, position_ids: Iterable[str]
    ) -> Dict[str, List[str]]:
        ids = sorted(set(position_ids))
        if not ids:
            return {}
        rows = (
            self.db.query(
                position_models.PositionRequirement.position_id,
                position_models.PositionRequirement.course_id,
            )
            .filter(
                position_models.PositionRequirement.position_id.in_(ids),
                position_models.PositionRequirement.req_kind == KIND_COURSE,
                position_models.PositionRequirement.course_id.isnot(None),
            )
            .order_by(position_models.PositionRequirement.created_at.asc())
            .all()
        )
        courses: Dict[str, List[str]] = {}
        for position_id, course_id in rows:
            courses.setdefault(position_id, []).append(course_id)
        return courses

    @_store_read("member positions")
    def list_existing_assignments(
        self, member_id: Optional[str] = None
    ) -> Dict[Tuple[str, str], AssignmentRecord]:
        q = self.db.query(position_models.MemberPosition)
        if member_id is not None:
            q = q.filter(position_models.MemberPosition.member_id == member_id)
        return {
            (mp.member_id, mp.position_id): AssignmentRecord(
                id=mp.id,
                status=_status_value(mp.status),
                created_at=mp.created_at,
            )
            for mp in q.all()
        }

    @_store_read("task requirements")
    def list_task_requirements(self, task_id: str) -> List[RequirementSpec]:
        rows = (
            self.db.query(position_models.TaskRequirement)
            .filter(position_models.TaskRequirement.task_id == task_id)
            .order_by(
                position_models.TaskRequirement.created_at.asc(),
                position_models.TaskRequirement.id.asc(),
            )
            .all()
        )
        return [_task_requirement_spec(r) for r in rows]


# ---------------------------------------------------------------------------
# SNAPSHOT
# ---------------------------------------------------------------------------


def prerequisite_position_ids(requirements: Iterable[RequirementSpec]) -> Set[str]:
    return {
        r.required_position_id
        for r in requirements
        if r.normalized_kind == KIND_POSITION and r.required_position_id
    }


def has_time_requirements(requirements: Iterable[RequirementSpec]) -> bool:
    return any(r.normalized_kind == KIND_TIME for r in requirements)


@dataclass
class QualificationSnapshot:
    """
    Every input a readiness scan needs, fetched once.

    Treated as read-only once built.
    """

    today: date
    positions: List[PositionRecord] = field(default_factory=list)
    members: List[MemberRecord] = field(default_factory=list)
    requirements_by_position: Dict[str, List[RequirementSpec]] = field(default_factory=dict)
    groups_by_position: Dict[str, List[RequirementGroupSpec]] = field(default_factory=dict)
    certifications_by_member: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    signoffs_by_member: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    activity_by_member: Dict[str, ActivityDates] = field(default_factory=dict)
    prerequisite_courses: Dict[str, List[str]] = field(default_factory=dict)
    assignments: Dict[Tuple[str, str], AssignmentRecord] = field(default_factory=dict)

    def member_context(self, member_id: str) -> MemberContext:
        activity = self.activity_by_member.get(member_id, ActivityDates())
        return MemberContext(
            member_id=member_id,
            valid_course_ids=self.certifications_by_member.get(member_id, frozenset()),
            signed_off_task_ids=self.signoffs_by_member.get(member_id, frozenset()),
            training_dates=activity.training_dates,
            call_dates=activity.call_dates,
        )


def _group_by_owner(items: Sequence, attr: str) -> Dict[str, list]:
    grouped: Dict[str, list] = {}
    for item in items:
        grouped.setdefault(getattr(item, attr), []).append(item)
    return grouped


def _signoffs_by_member(pairs: Iterable[Tuple[str, str]]) -> Dict[str, FrozenSet[str]]:
    by_member: Dict[str, Set[str]] = {}
    for member_id, task_id in pairs:
        by_member.setdefault(member_id, set()).add(task_id)
    return {k: frozenset(v) for k, v in by_member.items()}


def build_snapshot(store: RequirementStore, *, today: date) -> QualificationSnapshot:
    requirements = store.list_requirements()
    groups = store.list_requirement_groups()

    activity: Dict[str, ActivityDates] = {}
    if has_time_requirements(requirements):
        activity = store.list_timed_activity_dates()

    return QualificationSnapshot(
        today=today,
        positions=store.list_active_positions(),
        members=store.list_active_members(),
        requirements_by_position=_group_by_owner(requirements, "owner_id"),
        groups_by_position=_group_by_owner(groups, "position_id"),
        certifications_by_member=store.list_valid_certifications_by_member(today=today),
        signoffs_by_member=_signoffs_by_member(store.list_task_signoffs()),
        activity_by_member=activity,
        prerequisite_courses=store.list_course_requirements_by_position(
            prerequisite_position_ids(requirements)
        ),
        assignments=store.list_existing_assignments(),
    )
