from __future__ import annotations

import importlib
from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from sardb.apps.activity import models as activity_models
from sardb.apps.activity import schemas as activity_schemas
from sardb.apps.activity import services as activity_services
from sardb.apps.audit import models as audit_models
from sardb.apps.members import models as member_models
from sardb.apps.positions import models as position_models
from sardb.utils.identifiers import generate_uuid7

activity_router = importlib.import_module("sardb.apps.activity.router")

NOW = datetime(2026, 3, 15, 12, 0)
TRAINING = activity_schemas.ActivityKind.TRAINING
CALLS = activity_schemas.ActivityKind.CALLS
MEETINGS = activity_schemas.ActivityKind.MEETINGS
EVENTS = activity_schemas.ActivityKind.EVENTS


def _member(db_session, first="Rae", last="Quill", role="member") -> member_models.Member:
    member = member_models.Member(first_name=first, last_name=last, role=role)
    db_session.add(member)
    db_session.commit()
    return member


def _activity(db_session, kind, title="Drill", start_dt=datetime(2026, 3, 1, 18, 0), is_test=False):
    row = activity_services.create_activity(
        db_session,
        kind,
        activity_schemas.ActivityCreate(title=title, start_dt=start_dt, is_test=is_test),
    )
    db_session.commit()
    return row


# ---------------------------------------------------------------------------
# update / delete
# ---------------------------------------------------------------------------


def test_update_activity_applies_only_sent_fields(db_session):
    session = _activity(db_session, TRAINING, title="Rope rescue")

    activity_services.update_activity(
        db_session,
        TRAINING,
        session,
        activity_schemas.ActivityUpdate(location_text="Quarry", instructor="Dana", call_type="ignored"),
    )
    db_session.commit()

    read = activity_services.activity_to_read(TRAINING, session)
    assert read.title == "Rope rescue"
    assert read.location_text == "Quarry"
    assert read.instructor == "Dana"
    assert read.call_type is None


def test_update_activity_validation(db_session):
    meeting = _activity(db_session, MEETINGS, title="Monthly")
    call = _activity(db_session, CALLS, title="Lost dog walker")

    with pytest.raises(activity_services.ActivityValidationError):
        activity_services.update_activity(db_session, MEETINGS, meeting, activity_schemas.ActivityUpdate(title=" "))
    with pytest.raises(activity_services.ActivityValidationError):
        activity_services.update_activity(db_session, MEETINGS, meeting, activity_schemas.ActivityUpdate(start_dt=None))
    with pytest.raises(activity_services.ActivityValidationError):
        activity_services.update_activity(
            db_session, MEETINGS, meeting, activity_schemas.ActivityUpdate(end_dt=datetime(2026, 2, 1, 9, 0))
        )

    activity_services.update_activity(db_session, CALLS, call, activity_schemas.ActivityUpdate(title=None))
    assert call.title is None


def test_only_test_activities_can_be_deleted(db_session):
    officer = _member(db_session, "Ops", "Lead", role="admin")
    member = _member(db_session)
    real = _activity(db_session, EVENTS, title="County fair")
    scratch = _activity(db_session, EVENTS, title="Scratch", is_test=True)
    activity_services.upsert_attendance(
        db_session, EVENTS, scratch.id, activity_schemas.AttendanceUpsert(member_id=member.id, action="arrive")
    )
    db_session.commit()

    with pytest.raises(HTTPException) as excinfo:
        activity_router.delete_activity(EVENTS, real.id, db=db_session, current_member=officer)
    assert excinfo.value.status_code == 400

    activity_router.delete_activity(EVENTS, scratch.id, db=db_session, current_member=officer)

    assert db_session.query(activity_models.Event).count() == 1
    assert db_session.query(activity_models.EventAttendance).count() == 0
    event = db_session.query(audit_models.AuditEvent).one()
    assert (event.entity_type, event.entity_id, event.action) == ("activity_events", scratch.id, "delete")


def test_patch_route_maps_validation_to_400(db_session):
    officer = _member(db_session, "Ops", "Lead", role="admin")
    session = _activity(db_session, TRAINING)

    with pytest.raises(HTTPException) as excinfo:
        activity_router.update_activity(
            TRAINING,
            session.id,
            payload=activity_schemas.ActivityUpdate(title=""),
            db=db_session,
            current_member=officer,
        )
    assert excinfo.value.status_code == 400

    read = activity_router.update_activity(
        TRAINING,
        session.id,
        payload=activity_schemas.ActivityUpdate(notes="Bring harnesses", is_test=True),
        db=db_session,
        current_member=officer,
    )
    assert read.notes == "Bring harnesses"
    assert read.is_test is True


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


def test_history_lists_attendance_newest_first(db_session):
    member = _member(db_session)
    training = _activity(db_session, TRAINING, title="Nav", start_dt=datetime(2026, 1, 10, 18, 0))
    call = _activity(db_session, CALLS, title="Overdue kayaker", start_dt=datetime(2026, 2, 20, 6, 0))
    old = _activity(db_session, MEETINGS, title="AGM", start_dt=datetime(2024, 11, 1, 19, 0))

    activity_services.upsert_attendance(
        db_session, TRAINING, training.id, activity_schemas.AttendanceUpsert(member_id=member.id, status="absent")
    )
    activity_services.upsert_attendance(
        db_session,
        CALLS,
        call.id,
        activity_schemas.AttendanceUpsert(member_id=member.id, action="arrive"),
        now=datetime(2026, 2, 20, 6, 45),
    )
    activity_services.upsert_attendance(
        db_session, MEETINGS, old.id, activity_schemas.AttendanceUpsert(member_id=member.id, action="arrive")
    )
    db_session.commit()

    history = activity_services.activity_history(db_session, member_id=member.id, window_days=365, now=NOW)

    assert [(item.kind, item.title) for item in history.items] == [
        (CALLS, "Overdue kayaker"),
        (TRAINING, "Nav"),
    ]
    assert history.items[0].time_in == datetime(2026, 2, 20, 6, 45)
    assert history.items[1].status == activity_models.TrainingAttendanceStatus.ABSENT
    assert history.items[1].time_in is None


def test_history_of_another_member_needs_read_all(db_session):
    member = _member(db_session)
    other = _member(db_session, "Sol", "Vance")
    recent = _activity(db_session, TRAINING, start_dt=datetime.utcnow() - timedelta(days=3))
    activity_services.upsert_attendance(
        db_session, TRAINING, recent.id, activity_schemas.AttendanceUpsert(member_id=other.id)
    )
    db_session.commit()

    with pytest.raises(HTTPException) as excinfo:
        activity_router.get_activity_history(
            member_id=other.id, window_days=None, db=db_session, current_member=member
        )
    assert excinfo.value.status_code == 403

    own = activity_router.get_activity_history(member_id=None, window_days=None, db=db_session, current_member=other)
    assert [item.activity_id for item in own.items] == [recent.id]


# ---------------------------------------------------------------------------
# training task map
# ---------------------------------------------------------------------------


def _task(db_session, code="NAV-1"):
    searcher = position_models.Position(code="SEARCHER", name="Searcher")
    task = position_models.Task(task_code=code, task_name="Map and compass")
    db_session.add_all([searcher, task])
    db_session.commit()
    return searcher, task


def test_map_task_to_training_session(db_session):
    officer = _member(db_session, "Ops", "Lead", role="admin")
    session = _activity(db_session, TRAINING, title="Nav night")
    searcher, task = _task(db_session)

    read = activity_router.create_training_task_map(
        payload=activity_schemas.TrainingTaskMapCreate(
            training_session_id=session.id,
            task_id=task.id,
            position_id=searcher.id,
            evaluation_method=" practical ",
        ),
        db=db_session,
        current_member=officer,
    )
    assert (read.task_code, read.position_code, read.evaluation_method) == ("NAV-1", "SEARCHER", "practical")

    listed = activity_router.list_training_task_map(session.id, db=db_session, current_member=officer)
    assert [row.id for row in listed] == [read.id]

    with pytest.raises(HTTPException) as excinfo:
        activity_router.create_training_task_map(
            payload=activity_schemas.TrainingTaskMapCreate(training_session_id=session.id, task_id=task.id),
            db=db_session,
            current_member=officer,
        )
    assert excinfo.value.status_code == 409

    activity_router.delete_training_task_map(read.id, db=db_session, current_member=officer)
    assert activity_services.list_task_map(db_session, session.id) == []


def test_task_map_rejects_unknown_references(db_session):
    officer = _member(db_session, "Ops", "Lead", role="admin")
    session = _activity(db_session, TRAINING)
    _, task = _task(db_session)

    cases = [
        (dict(training_session_id=generate_uuid7(), task_id=task.id), 404),
        (dict(training_session_id=session.id, task_id=generate_uuid7()), 404),
        (dict(training_session_id=session.id, task_id=task.id, position_id=generate_uuid7()), 404),
        (dict(training_session_id=session.id, task_id="nav"), 400),
    ]
    for fields, expected in cases:
        with pytest.raises(HTTPException) as excinfo:
            activity_router.create_training_task_map(
                payload=activity_schemas.TrainingTaskMapCreate(**fields),
                db=db_session,
                current_member=officer,
            )
        assert excinfo.value.status_code == expected

    with pytest.raises(HTTPException) as excinfo:
        activity_router.list_training_task_map("not-a-uuid", db=db_session, current_member=officer)
    assert excinfo.value.status_code == 400


def test_deleting_test_session_removes_its_task_map(db_session):
    session = _activity(db_session, TRAINING, is_test=True)
    _, task = _task(db_session)
    activity_services.map_task_to_session(db_session, session=session, task=task)
    db_session.commit()

    activity_services.delete_activity(db_session, TRAINING, session)
    db_session.commit()

    assert db_session.query(activity_models.TrainingTaskMap).count() == 0
