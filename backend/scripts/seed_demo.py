from __future__ import annotations

from datetime import date, datetime, timedelta

from create_initial_admin import ensure_admin
from sardb.database import WriteSessionLocal
from sardb.apps.activity import models as activity_models
from sardb.apps.members import models as member_models
from sardb.apps.positions import models as position_models
from sardb.apps.training import models as training_models
from sardb.apps.training import schemas as training_schemas
from sardb.apps.training import services as training_services

DEMO_ADMIN_EMAIL = "admin@demo-sar.example"

COURSES = [
    ("CPR", "CPR / AED", 24, False),
    ("WFA", "Wilderness First Aid", 24, False),
    ("WFR", "Wilderness First Responder", 36, False),
    ("ICS-100", "Introduction to the Incident Command System", 0, True),
]

MEMBERS = [
    ("Avery", "Lind", "field_member@demo-sar.example"),
    ("Blake", "Moreno", None),
    ("Casey", "Nakamura", None),
]


def _get_or_create_course(db, code: str, name: str, valid_months: int, never_expires: bool) -> training_models.Course:
    course = db.query(training_models.Course).filter(training_models.Course.code == code).first()
    if course:
        return course
    course = training_models.Course(
        code=code,
        name=name,
        valid_months=valid_months or 24,
        warning_days=0 if never_expires else 60,
        never_expires=never_expires,
    )
    db.add(course)
    db.flush()
    return course


def _get_or_create_position(db, code: str, name: str, level: int) -> tuple[position_models.Position, bool]:
    position = db.query(position_models.Position).filter(position_models.Position.code == code).first()
    if position:
        return position, False
    position = position_models.Position(code=code, name=name, level=level)
    db.add(position)
    db.flush()
    return position, True


def _get_or_create_member(db, first: str, last: str, email: str | None, **kwargs) -> member_models.Member:
    member = (
        db.query(member_models.Member)
        .filter(member_models.Member.first_name == first, member_models.Member.last_name == last)
        .first()
    )
    if member:
        return member
    member = member_models.Member(first_name=first, last_name=last, email=email, joined_on=date.today(), **kwargs)
    db.add(member)
    db.flush()
    return member


def _seed_positions(db, courses: dict) -> dict:
    searcher, created = _get_or_create_position(db, "SEARCHER", "Searcher", 1)
    if created:
        for code in ("CPR", "ICS-100"):
            db.add(position_models.PositionRequirement(position_id=searcher.id, req_kind="course", course_id=courses[code].id))

    leader, created = _get_or_create_position(db, "FTL", "Field Team Leader", 3)
    if created:
        medical = position_models.PositionReqGroup(position_id=leader.id, label="Medical", min_met=1)
        db.add(medical)
        db.flush()
        ptb = position_models.Task(task_code="PTB-COMPLETE", task_name="Position task book complete", position_id=leader.id)
        nav = position_models.Task(task_code="NAV-1", task_name="Map and compass navigation")
        db.add_all([ptb, nav])
        db.flush()
        db.add_all(
            [
                position_models.PositionRequirement(
                    position_id=leader.id, req_kind="position", required_position_id=searcher.id
                ),
                position_models.PositionRequirement(position_id=leader.id, req_kind="task", task_id=nav.id),
                position_models.PositionRequirement(
                    position_id=leader.id, req_kind="course", course_id=courses["WFA"].id, req_group_id=medical.id
                ),
                position_models.PositionRequirement(
                    position_id=leader.id, req_kind="course", course_id=courses["WFR"].id, req_group_id=medical.id
                ),
                position_models.PositionRequirement(
                    position_id=leader.id,
                    req_kind="time",
                    min_count=2,
                    activity_type="call",
                    within_months=12,
                ),
                position_models.PositionRequirement(position_id=leader.id, req_kind="physical"),
            ]
        )
    db.flush()
    return {"SEARCHER": searcher, "FTL": leader}


def _certify(db, member: member_models.Member, course: training_models.Course, completed_at: date) -> None:
    exists = (
        db.query(training_models.MemberCertification)
        .filter(
            training_models.MemberCertification.member_id == member.id,
            training_models.MemberCertification.course_id == course.id,
        )
        .first()
    )
    if exists:
        return
    training_services.record_certification(
        db,
        course=course,
        data=training_schemas.CertificationCreate(
            member_id=member.id,
            course_id=course.id,
            completed_at=completed_at,
            issuer="Demo County SAR",
        ),
    )


def seed_demo(db, *, today: date | None = None) -> dict:
    """Create a small demo roster; safe to run more than once."""
    today = today or date.today()
    admin, _ = ensure_admin(db, email=DEMO_ADMIN_EMAIL, password="ChangeMe123!")

    courses = {
        code: _get_or_create_course(db, code, name, valid_months, never_expires)
        for code, name, valid_months, never_expires in COURSES
    }
    positions = _seed_positions(db, courses)

    members = [_get_or_create_member(db, first, last, email) for first, last, email in MEMBERS]
    avery, blake, _ = members

    # Avery meets every Searcher requirement; Blake lets CPR lapse.
    _certify(db, avery, courses["CPR"], today - timedelta(days=200))
    _certify(db, avery, courses["ICS-100"], date(2019, 5, 1))
    _certify(db, avery, courses["WFA"], today - timedelta(days=90))
    _certify(db, blake, courses["CPR"], today - timedelta(days=800))
    _certify(db, blake, courses["ICS-100"], date(2020, 3, 1))

    call = db.query(activity_models.Call).filter(activity_models.Call.title == "Demo: overdue hikers").first()
    if call is None:
        started = datetime.combine(today - timedelta(days=30), datetime.min.time()).replace(hour=19)
        call = activity_models.Call(title="Demo: overdue hikers", call_type="search", start_dt=started)
        db.add(call)
        db.flush()
        db.add(activity_models.CallAttendance(call_id=call.id, member_id=avery.id, time_in=started + timedelta(minutes=40)))

    db.commit()
    return {"admin": admin, "members": members, "courses": courses, "positions": positions}


def main() -> None:
    db = WriteSessionLocal()
    try:
        seeded = seed_demo(db)
        print(f"Seeded {len(seeded['members'])} members, {len(seeded['courses'])} courses, {len(seeded['positions'])} positions.")
        print(f"Admin login: {DEMO_ADMIN_EMAIL} / ChangeMe123!")
    finally:
        db.close()


if __name__ == "__main__":
    main()
