from __future__ import annotations

from datetime import datetime

import pytest

from sardb.apps.activity import models as activity_models
from sardb.apps.activity import schemas as activity_schemas
from sardb.apps.activity import services as activity_services
from sardb.apps.members import models as member_models

NOW = datetime(2026, 3, 15, 12, 0)
TRAINING = activity_schemas.ActivityKind.TRAINING
CALLS = activity_schemas.ActivityKind.CALLS
MEETINGS = activity_schemas.ActivityKind.MEETINGS


def _create_member(db_session, first: str = "Kit", last: str = "Marsh") -> member_models.Member:
    member = member_models.Member(first_name=first, last_name=last)
    db_session.add(member)
    db_session.commit()
    return member


def _create(db_session, kind, title="Drill", start_dt=datetime(2026, 3, 1, 18, 0)):
    row = activity_services.create_activity(
        db_session,
        kind,
        activity_schemas.ActivityCreate(title=title, start_dt=start_dt),
    )
    db_session.commit()
    return row


def test_create_activity_requires_title_except_for_calls(db_session):
    with pytest.raises(activity_services.ActivityValidationError):
        activity_services.create_activity(db_session, TRAINING, activity_schemas.ActivityCreate(title="  "))

    call = activity_services.create_activity(
        db_session,
        CALLS,
        activity_schemas.ActivityCreate(start_dt=NOW, call_type="search", instructor="ignored"),
    )
    read = activity_services.activity_to_read(CALLS, call)
    assert read.title is None
    assert read.call_type == "search"
    assert read.instructor is None


def test_create_activity_rejects_end_before_start(db_session):
    with pytest.raises(activity_services.ActivityValidationError):
        activity_services.create_activity(
            db_session,
            MEETINGS,
            activity_schemas.ActivityCreate(
                title="Board", start_dt=datetime(2026, 3, 1, 19, 0), end_dt=datetime(2026, 3, 1, 18, 0)
            ),
        )


def test_training_attendance_defaults_to_attended(db_session):
    member = _create_member(db_session)
    session = _create(db_session, TRAINING)

    row = activity_services.upsert_attendance(
        db_session, TRAINING, session.id, activity_schemas.AttendanceUpsert(member_id=member.id, hours=2.5)
    )
    assert row.status == activity_models.TrainingAttendanceStatus.ATTENDED
    assert row.hours == 2.5

    row = activity_services.upsert_attendance(
        db_session,
        TRAINING,
        session.id,
        activity_schemas.AttendanceUpsert(member_id=member.id, status="excused"),
    )
    db_session.commit()
    assert row.status == activity_models.TrainingAttendanceStatus.EXCUSED
    assert row.hours == 2.5
    assert db_session.query(activity_models.TrainingAttendance).count() == 1


def test_call_arrive_and_clear_keep_existing_stamps(db_session):
    member = _create_member(db_session)
    call = _create(db_session, CALLS, title="Overdue hiker")
    arrived = datetime(2026, 3, 1, 18, 30)
    cleared = datetime(2026, 3, 1, 23, 0)

    row = activity_services.upsert_attendance(
        db_session,
        CALLS,
        call.id,
        activity_schemas.AttendanceUpsert(member_id=member.id, action="arrive"),
        now=arrived,
    )
    assert row.time_in == arrived
    assert row.time_out is None

    row = activity_services.upsert_attendance(
        db_session,
        CALLS,
        call.id,
        activity_schemas.AttendanceUpsert(member_id=member.id, action="arrive"),
        now=datetime(2026, 3, 1, 19, 0),
    )
    assert row.time_in == arrived

    row = activity_services.upsert_attendance(
        db_session,
        CALLS,
        call.id,
        activity_schemas.AttendanceUpsert(member_id=member.id, action="clear"),
        now=cleared,
    )
    db_session.commit()
    assert (row.time_in, row.time_out) == (arrived, cleared)

    listed = activity_services.list_attendance(db_session, CALLS, call.id)
    assert [(a.member_name, a.status) for a in listed] == [("Kit Marsh", None)]


def test_explicit_times_must_be_ordered(db_session):
    member = _create_member(db_session)
    meeting = _create(db_session, MEETINGS, title="Monthly")

    with pytest.raises(activity_services.ActivityValidationError):
        activity_services.upsert_attendance(
            db_session,
            MEETINGS,
            meeting.id,
            activity_schemas.AttendanceUpsert(
                member_id=member.id,
                time_in=datetime(2026, 3, 1, 20, 0),
                time_out=datetime(2026, 3, 1, 19, 0),
            ),
        )


def test_delete_attendance_reports_whether_a_row_existed(db_session):
    member = _create_member(db_session)
    meeting = _create(db_session, MEETINGS, title="Monthly")
    activity_services.upsert_attendance(
        db_session, MEETINGS, meeting.id, activity_schemas.AttendanceUpsert(member_id=member.id, action="arrive")
    )
    db_session.commit()

    assert activity_services.delete_attendance(db_session, MEETINGS, meeting.id, member.id) is True
    assert activity_services.delete_attendance(db_session, MEETINGS, meeting.id, member.id) is False


def test_activity_stats_counts_attendance_inside_window(db_session):
    member = _create_member(db_session)
    other = _create_member(db_session, "Lou", "Ng")

    trainings = [_create(db_session, TRAINING, title=f"T{i}", start_dt=datetime(2026, 1, 10 + i, 18, 0)) for i in range(3)]
    old_training = _create(db_session, TRAINING, title="Old", start_dt=datetime(2024, 1, 1, 18, 0))
    calls = [_create(db_session, CALLS, title=f"C{i}", start_dt=datetime(2026, 2, 1 + i, 8, 0)) for i in range(2)]

    for session, status in zip(trainings, ("attended", "absent", "attended")):
        activity_services.upsert_attendance(
            db_session, TRAINING, session.id, activity_schemas.AttendanceUpsert(member_id=member.id, status=status)
        )
    activity_services.upsert_attendance(
        db_session, TRAINING, old_training.id, activity_schemas.AttendanceUpsert(member_id=member.id)
    )
    activity_services.upsert_attendance(
        db_session, CALLS, calls[0].id, activity_schemas.AttendanceUpsert(member_id=member.id, action="arrive"), now=NOW
    )
    # rostered but never checked in
    activity_services.upsert_attendance(
        db_session, CALLS, calls[1].id, activity_schemas.AttendanceUpsert(member_id=member.id, notes="on standby")
    )
    activity_services.upsert_attendance(
        db_session, CALLS, calls[1].id, activity_schemas.AttendanceUpsert(member_id=other.id, action="arrive"), now=NOW
    )
    db_session.commit()

    stats = activity_services.activity_stats(db_session, member_id=member.id, window_days=365, now=NOW)

    assert stats.window_days == 365
    assert (stats.training.attended, stats.training.total, stats.training.pct) == (2, 3, 67)
    assert (stats.calls.attended, stats.calls.total, stats.calls.pct) == (1, 2, 50)
    assert (stats.meetings.attended, stats.meetings.total, stats.meetings.pct) == (0, 0, 0)
    assert (stats.overall.attended, stats.overall.total, stats.overall.pct) == (3, 5, 60)
