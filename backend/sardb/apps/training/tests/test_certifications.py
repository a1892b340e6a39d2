from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from sardb.apps.members import models as member_models
from sardb.apps.training import models as training_models
from sardb.apps.training import schemas as training_schemas
from sardb.apps.training import services as training_services

TODAY = date(2026, 3, 15)


def _create_member(db_session) -> member_models.Member:
    member = member_models.Member(first_name="Rae", last_name="Hollis")
    db_session.add(member)
    db_session.commit()
    return member


def _create_course(db_session, code: str, **kwargs) -> training_models.Course:
    course = training_models.Course(code=code, name=code, **kwargs)
    db_session.add(course)
    db_session.commit()
    return course


def test_derive_expiry_uses_calendar_months():
    course = training_models.Course(code="CPR", name="CPR", valid_months=24, never_expires=False)
    assert training_services.derive_expiry(course, date(2024, 2, 29)) == date(2026, 2, 28)

    forever = training_models.Course(code="ORIENT", name="Orientation", valid_months=24, never_expires=True)
    assert training_services.derive_expiry(forever, date(2024, 2, 29)) is None


def test_course_create_rejects_non_positive_validity():
    with pytest.raises(ValidationError):
        training_schemas.CourseCreate(code="CPR", name="CPR", valid_months=0)

    forever = training_schemas.CourseCreate(
        code="ORIENT", name="Orientation", valid_months=0, never_expires=True, warning_days=30
    )
    assert forever.warning_days == 0


def test_record_certification_derives_or_clears_expiry(db_session):
    member = _create_member(db_session)
    cpr = _create_course(db_session, "CPR", valid_months=12)
    orientation = _create_course(db_session, "ORIENT", never_expires=True)

    derived = training_services.record_certification(
        db_session,
        course=cpr,
        data=training_schemas.CertificationCreate(
            member_id=member.id, course_id=cpr.id, completed_at=date(2025, 6, 30)
        ),
    )
    explicit = training_services.record_certification(
        db_session,
        course=cpr,
        data=training_schemas.CertificationCreate(
            member_id=member.id,
            course_id=cpr.id,
            completed_at=date(2025, 7, 1),
            expires_at=date(2025, 12, 31),
        ),
    )
    cleared = training_services.record_certification(
        db_session,
        course=orientation,
        data=training_schemas.CertificationCreate(
            member_id=member.id,
            course_id=orientation.id,
            completed_at=date(2020, 1, 1),
            expires_at=date(2021, 1, 1),
        ),
    )
    db_session.commit()

    assert derived.expires_at == date(2026, 6, 30)
    assert explicit.expires_at == date(2025, 12, 31)
    assert cleared.expires_at is None
    assert cleared.is_valid_on(TODAY)


def test_certification_status_boundaries(db_session):
    member = _create_member(db_session)
    course = _create_course(db_session, "WFA", valid_months=24, warning_days=30)

    def _status(expires_at):
        cert = training_models.MemberCertification(
            member_id=member.id, course_id=course.id, completed_at=date(2024, 1, 1), expires_at=expires_at
        )
        cert.course = course
        return training_services.certification_status(cert, today=TODAY)

    assert _status(None) == "valid"
    assert _status(date(2026, 4, 15)) == "valid"
    assert _status(date(2026, 4, 14)) == "expiring"
    assert _status(TODAY) == "expiring"
    assert _status(date(2026, 3, 14)) == "expired"


def test_current_mode_keeps_latest_completion_per_course(db_session):
    member = _create_member(db_session)
    wfa = _create_course(db_session, "WFA", valid_months=24, warning_days=60)
    cpr = _create_course(db_session, "CPR", valid_months=24, warning_days=60)
    db_session.add_all(
        [
            training_models.MemberCertification(
                member_id=member.id, course_id=wfa.id, completed_at=date(2022, 1, 1), expires_at=date(2024, 1, 1)
            ),
            training_models.MemberCertification(
                member_id=member.id, course_id=wfa.id, completed_at=date(2024, 5, 1), expires_at=date(2026, 5, 1)
            ),
            training_models.MemberCertification(
                member_id=member.id, course_id=cpr.id, completed_at=date(2023, 1, 1), expires_at=date(2025, 1, 1)
            ),
        ]
    )
    db_session.commit()

    history = training_services.list_member_certifications(db_session, member_id=member.id, today=TODAY)
    assert [c.completed_at for c in history] == [date(2024, 5, 1), date(2023, 1, 1), date(2022, 1, 1)]
    assert all(c.status is None for c in history)

    current = training_services.list_member_certifications(
        db_session, member_id=member.id, mode="current", today=TODAY
    )
    assert [(c.course_code, c.status) for c in current] == [("CPR", "expired"), ("WFA", "expiring")]
    assert current[1].days_remaining == 47


def test_expiring_report_ignores_superseded_and_never_expiring(db_session):
    member = _create_member(db_session)
    wfa = _create_course(db_session, "WFA", valid_months=24, warning_days=60)
    cpr = _create_course(db_session, "CPR", valid_months=24, warning_days=60)
    orientation = _create_course(db_session, "ORIENT", never_expires=True, warning_days=0)
    db_session.add_all(
        [
            # superseded by the 2026 renewal
            training_models.MemberCertification(
                member_id=member.id, course_id=wfa.id, completed_at=date(2024, 4, 1), expires_at=date(2026, 4, 1)
            ),
            training_models.MemberCertification(
                member_id=member.id, course_id=wfa.id, completed_at=date(2026, 3, 1), expires_at=date(2028, 3, 1)
            ),
            training_models.MemberCertification(
                member_id=member.id, course_id=cpr.id, completed_at=date(2024, 3, 1), expires_at=date(2026, 3, 1)
            ),
            training_models.MemberCertification(
                member_id=member.id,
                course_id=orientation.id,
                completed_at=date(2020, 1, 1),
                expires_at=date(2026, 3, 20),
            ),
        ]
    )
    db_session.commit()

    assert training_services.list_expiring_certifications(db_session, today=TODAY) == []

    with_expired = training_services.list_expiring_certifications(
        db_session, today=TODAY, include_expired=True
    )
    assert [(c.course_code, c.status) for c in with_expired] == [("CPR", "expired")]
