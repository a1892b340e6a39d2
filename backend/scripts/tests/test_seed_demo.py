from __future__ import annotations

from datetime import date

from scripts.seed_demo import seed_demo
from sardb.apps.members import models as member_models
from sardb.apps.positions import models as position_models
from sardb.apps.qualifications import check_position_requirements, scan_readiness

TODAY = date(2026, 3, 15)


def test_seed_demo_is_repeatable_and_yields_one_candidate(db_session):
    first = seed_demo(db_session, today=TODAY)
    seed_demo(db_session, today=TODAY)

    assert db_session.query(member_models.Member).count() == 4
    assert db_session.query(position_models.Position).count() == 2

    avery = first["members"][0]
    searcher = first["positions"]["SEARCHER"]
    leader = first["positions"]["FTL"]

    rows = scan_readiness(db_session, today=TODAY)
    assert [(r.member_id, r.position_id) for r in rows] == [(avery.id, searcher.id)]

    check = check_position_requirements(db_session, member_id=avery.id, position_id=leader.id, today=TODAY)
    assert check.ok is False
    assert sorted(check.unmet_labels) == ["1/2 call within 12 months", "TASK:NAV-1"]
