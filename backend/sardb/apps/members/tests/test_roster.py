from __future__ import annotations

from datetime import date

from sardb.apps.members import models as member_models
from sardb.apps.members import services as member_services
from sardb.apps.positions import models as position_models
from sardb.apps.training import models as training_models

TODAY = date(2026, 3, 15)


def _seed(db_session):
    cpr = training_models.Course(code="CPR", name="CPR")
    searcher = position_models.Position(code="SEARCHER", name="Searcher", level=1)
    leader = position_models.Position(code="FTL", name="Field Team Leader", level=3)
    radio = position_models.Position(code="RADIO", name="Radio Operator", level=1)
    db_session.add_all([cpr, searcher, leader, radio])
    db_session.commit()
    db_session.add(
        position_models.PositionRequirement(position_id=searcher.id, req_kind="course", course_id=cpr.id)
    )
    db_session.commit()
    return cpr, searcher, leader, radio


def test_roster_lists_currently_valid_positions_highest_level_first(db_session):
    cpr, searcher, leader, radio = _seed(db_session)
    alex = member_models.Member(first_name="Alex", last_name="Bell")
    dana = member_models.Member(first_name="Dana", last_name="Avery")
    db_session.add_all([alex, dana])
    db_session.commit()

    db_session.add_all(
        [
            position_models.MemberPosition(
                member_id=alex.id, position_id=searcher.id, status=position_models.MemberPositionStatus.QUALIFIED
            ),
            position_models.MemberPosition(
                member_id=alex.id, position_id=leader.id, status=position_models.MemberPositionStatus.QUALIFIED
            ),
            position_models.MemberPosition(
                member_id=alex.id, position_id=radio.id, status=position_models.MemberPositionStatus.TRAINEE
            ),
            training_models.MemberCertification(
                member_id=alex.id, course_id=cpr.id, completed_at=date(2025, 1, 1), expires_at=date(2027, 1, 1)
            ),
        ]
    )
    db_session.commit()

    roster = member_services.build_roster(db_session, today=TODAY)

    assert [e.member.last_name for e in roster] == ["Avery", "Bell"]
    assert roster[0].positions == []
    assert roster[0].primary_position is None
    assert [p.code for p in roster[1].positions] == ["FTL", "SEARCHER"]
    assert roster[1].primary_position.code == "FTL"


def test_roster_drops_position_when_course_lapses(db_session):
    cpr, searcher, _, _ = _seed(db_session)
    member = member_models.Member(first_name="Robin", last_name="Hale")
    db_session.add(member)
    db_session.commit()
    db_session.add_all(
        [
            position_models.MemberPosition(
                member_id=member.id, position_id=searcher.id, awarded_at=date(2024, 1, 1)
            ),
            training_models.MemberCertification(
                member_id=member.id, course_id=cpr.id, completed_at=date(2024, 1, 1), expires_at=date(2026, 1, 1)
            ),
        ]
    )
    db_session.commit()

    assert member_services.build_roster(db_session, today=date(2025, 6, 1))[0].positions[0].code == "SEARCHER"
    assert member_services.build_roster(db_session, today=TODAY)[0].positions == []


def test_email_in_use_is_case_insensitive(db_session):
    member = member_models.Member(first_name="Jo", last_name="Ray", email="jo@example.org")
    db_session.add(member)
    db_session.commit()

    assert member_services.email_in_use(db_session, " JO@example.org ") is True
    assert member_services.email_in_use(db_session, "jo@example.org", exclude_member_id=member.id) is False
    assert member_services.email_in_use(db_session, "") is False
