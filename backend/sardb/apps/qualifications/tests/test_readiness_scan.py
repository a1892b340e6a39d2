from __future__ import annotations

from datetime import date, datetime

from sardb.apps.activity import models as activity_models
from sardb.apps.members import models as member_models
from sardb.apps.positions import models as position_models
from sardb.apps.qualifications import services as qualification_services
from sardb.apps.qualifications.store import RequirementStore, build_snapshot
from sardb.apps.training import models as training_models

TODAY = date(2026, 3, 15)


def _member(db, first: str, last: str, *, status=member_models.MemberStatus.ACTIVE) -> member_models.Member:
    member = member_models.Member(first_name=first, last_name=last, status=status)
    db.add(member)
    db.commit()
    return member


def _course(db, code: str, *, never_expires: bool = False) -> training_models.Course:
    course = training_models.Course(code=code, name=code, never_expires=never_expires)
    db.add(course)
    db.commit()
    return course


def _certify(db, member, course, *, expires_at=None, completed_at=date(2025, 1, 1)):
    cert = training_models.MemberCertification(
        member_id=member.id,
        course_id=course.id,
        completed_at=completed_at,
        expires_at=expires_at,
    )
    db.add(cert)
    db.commit()
    return cert


def _position(db, code: str, *, level: int = 0, is_active: bool = True) -> position_models.Position:
    position = position_models.Position(code=code, name=code.title(), level=level, is_active=is_active)
    db.add(position)
    db.commit()
    return position


def _require_course(db, position, course, *, group=None):
    req = position_models.PositionRequirement(
        position_id=position.id,
        req_kind="course",
        course_id=course.id,
        req_group_id=group.id if group else None,
    )
    db.add(req)
    db.commit()
    return req


def _assign(db, member, position, status):
    row = position_models.MemberPosition(member_id=member.id, position_id=position.id, status=status)
    db.add(row)
    db.commit()
    return row


def test_scan_returns_members_meeting_requirements(db_session):
    cpr = _course(db_session, "CPR")
    searcher = _position(db_session, "SEARCHER")
    _require_course(db_session, searcher, cpr)

    alice = _member(db_session, "Alice", "Zimmer")
    bob = _member(db_session, "Bob", "Young")
    _certify(db_session, alice, cpr, expires_at=date(2027, 1, 1))
    _certify(db_session, bob, cpr, expires_at=date(2026, 3, 14))  # expired yesterday

    rows = qualification_services.scan_readiness(db_session, today=TODAY)

    assert [(r.member_id, r.position_id) for r in rows] == [(alice.id, searcher.id)]
    assert rows[0].existing_assignment_id is None
    assert rows[0].member.last_name == "Zimmer"
    assert rows[0].position.code == "SEARCHER"


def test_certification_valid_on_expiry_date_and_for_never_expiring_courses(db_session):
    cpr = _course(db_session, "CPR")
    orientation = _course(db_session, "ORIENT", never_expires=True)
    position = _position(db_session, "SEARCHER")
    _require_course(db_session, position, cpr)
    _require_course(db_session, position, orientation)

    member = _member(db_session, "Casey", "Jones")
    _certify(db_session, member, cpr, expires_at=TODAY)
    _certify(db_session, member, orientation, expires_at=date(2020, 1, 1))

    certs = RequirementStore(db_session).list_valid_certifications_by_member(today=TODAY)
    assert certs[member.id] == frozenset({cpr.id, orientation.id})

    rows = qualification_services.scan_readiness(db_session, today=TODAY)
    assert [r.member_id for r in rows] == [member.id]


def test_scan_skips_positions_without_requirements(db_session):
    _position(db_session, "NO-REQS")
    _member(db_session, "Dana", "Smith")

    assert qualification_services.scan_readiness(db_session, today=TODAY) == []


def test_scan_excludes_already_qualified_and_inactive(db_session):
    cpr = _course(db_session, "CPR")
    position = _position(db_session, "SEARCHER")
    retired = _position(db_session, "RETIRED", is_active=False)
    _require_course(db_session, position, cpr)
    _require_course(db_session, retired, cpr)

    qualified = _member(db_session, "Erin", "Adams")
    trainee = _member(db_session, "Finn", "Baker")
    inactive = _member(db_session, "Gail", "Cole", status=member_models.MemberStatus.INACTIVE)
    for member in (qualified, trainee, inactive):
        _certify(db_session, member, cpr)

    _assign(db_session, qualified, position, position_models.MemberPositionStatus.QUALIFIED)
    existing = _assign(db_session, trainee, position, position_models.MemberPositionStatus.TRAINEE)

    rows = qualification_services.scan_readiness(db_session, today=TODAY)

    assert [(r.member_id, r.position_id) for r in rows] == [(trainee.id, position.id)]
    assert rows[0].existing_assignment_id == existing.id
    assert rows[0].existing_status == "trainee"


def test_scan_orders_existing_assignments_first_then_by_name(db_session):
    cpr = _course(db_session, "CPR")
    position = _position(db_session, "SEARCHER")
    _require_course(db_session, position, cpr)

    zed = _member(db_session, "Zed", "Young")
    amy = _member(db_session, "amy", "adams")
    bea = _member(db_session, "Bea", "Adams")
    trainee = _member(db_session, "Tom", "Zulu")
    for member in (zed, amy, bea, trainee):
        _certify(db_session, member, cpr)
    _assign(db_session, trainee, position, position_models.MemberPositionStatus.TRAINEE)

    rows = qualification_services.scan_readiness(db_session, today=TODAY)

    assert [r.member_id for r in rows] == [trainee.id, amy.id, bea.id, zed.id]


def test_scan_is_repeatable(db_session):
    cpr = _course(db_session, "CPR")
    wfa = _course(db_session, "WFA")
    searcher = _position(db_session, "SEARCHER")
    medic = _position(db_session, "MEDIC")
    _require_course(db_session, searcher, cpr)
    _require_course(db_session, medic, wfa)

    for first, last in (("Ann", "Lee"), ("Ben", "Kim"), ("Cal", "Kim")):
        member = _member(db_session, first, last)
        _certify(db_session, member, cpr)
        _certify(db_session, member, wfa)

    first = qualification_services.scan_readiness(db_session, today=TODAY)
    second = qualification_services.scan_readiness(db_session, today=TODAY)

    assert len(first) == 6
    assert first == second


def test_scan_handles_groups_prerequisites_and_time(db_session):
    cpr = _course(db_session, "CPR")
    emr = _course(db_session, "EMR")
    wfr = _course(db_session, "WFR")

    searcher = _position(db_session, "SEARCHER")
    _require_course(db_session, searcher, cpr)

    leader = _position(db_session, "FTL", level=2)
    db_session.add(
        position_models.PositionRequirement(
            position_id=leader.id,
            req_kind="position",
            required_position_id=searcher.id,
        )
    )
    group = position_models.PositionReqGroup(position_id=leader.id, label="Medical", min_met=1)
    db_session.add(group)
    db_session.commit()
    _require_course(db_session, leader, emr, group=group)
    _require_course(db_session, leader, wfr, group=group)
    db_session.add(
        position_models.PositionRequirement(
            position_id=leader.id,
            req_kind="time",
            min_count=1,
            activity_type="call",
            within_months=12,
        )
    )
    db_session.commit()

    ready = _member(db_session, "Hal", "North")
    not_ready = _member(db_session, "Ivy", "South")
    for member in (ready, not_ready):
        _certify(db_session, member, cpr)
        _certify(db_session, member, wfr)

    call = activity_models.Call(title="Lost hiker", start_dt=datetime(2026, 2, 1, 8, 0))
    db_session.add(call)
    db_session.commit()
    db_session.add(
        activity_models.CallAttendance(call_id=call.id, member_id=ready.id, time_in=datetime(2026, 2, 1, 8, 30))
    )
    db_session.add(activity_models.CallAttendance(call_id=call.id, member_id=not_ready.id, time_in=None))
    db_session.commit()

    rows = qualification_services.scan_readiness(db_session, today=TODAY)
    leader_rows = [r.member_id for r in rows if r.position_id == leader.id]

    assert leader_rows == [ready.id]


def test_snapshot_skips_activity_when_no_time_requirements(db_session, monkeypatch):
    cpr = _course(db_session, "CPR")
    _require_course(db_session, _position(db_session, "SEARCHER"), cpr)

    def _fail(*args, **kwargs):
        raise AssertionError("activity should not be loaded")

    monkeypatch.setattr(RequirementStore, "list_timed_activity_dates", _fail)

    snapshot = build_snapshot(RequirementStore(db_session), today=TODAY)
    assert snapshot.activity_by_member == {}
