from __future__ import annotations

from datetime import date

from sardb.apps.qualifications.evaluator import (
    MemberContext,
    RequirementGroupSpec,
    RequirementSpec,
    evaluate_position,
    evaluate_task,
    meets_requirement,
    requirement_label,
)
from sardb.utils.dates import add_months, subtract_months

TODAY = date(2026, 3, 15)


def _course(course_id: str, code: str = None, group_id: str = None) -> RequirementSpec:
    return RequirementSpec(kind="course", course_id=course_id, course_code=code, group_id=group_id)


def _time(min_count=2, activity_type="training", within_months=6) -> RequirementSpec:
    return RequirementSpec(
        kind="time",
        min_count=min_count,
        activity_type=activity_type,
        within_months=within_months,
    )


# ---------------------------------------------------------------------------
# single requirements
# ---------------------------------------------------------------------------


def test_course_requirement_needs_valid_certification():
    req = _course("c-cpr", "CPR")

    assert meets_requirement(req, MemberContext("m1", valid_course_ids=frozenset({"c-cpr"})), today=TODAY)
    assert not meets_requirement(req, MemberContext("m1", valid_course_ids=frozenset({"c-wfa"})), today=TODAY)


def test_course_requirement_without_course_id_passes():
    assert meets_requirement(RequirementSpec(kind="course"), MemberContext("m1"), today=TODAY)


def test_prerequisite_position_resolves_one_hop_through_course_requirements():
    req = RequirementSpec(kind="position", required_position_id="pos-a", required_position_code="SAR-TECH")
    prereqs = {"pos-a": ["c1", "c2"]}

    holder = MemberContext("m1", valid_course_ids=frozenset({"c1", "c2"}))
    partial = MemberContext("m2", valid_course_ids=frozenset({"c1"}))

    # Holding the courses is enough; being assigned position A is not looked at
    assert meets_requirement(req, holder, today=TODAY, prerequisite_courses=prereqs)
    assert not meets_requirement(req, partial, today=TODAY, prerequisite_courses=prereqs)


def test_prerequisite_position_without_course_requirements_passes():
    req = RequirementSpec(kind="position", required_position_id="pos-empty")

    assert meets_requirement(req, MemberContext("m1"), today=TODAY, prerequisite_courses={})
    assert meets_requirement(req, MemberContext("m1"), today=TODAY, prerequisite_courses=None)


def test_task_requirement_needs_signoff():
    req = RequirementSpec(kind="task", task_id="t-nav", task_code="NAV-1")

    assert meets_requirement(req, MemberContext("m1", signed_off_task_ids=frozenset({"t-nav"})), today=TODAY)
    assert not meets_requirement(req, MemberContext("m1"), today=TODAY)


def test_time_requirement_window_boundary():
    req = _time(min_count=2, activity_type="training", within_months=6)
    cutoff = subtract_months(TODAY, 6)
    assert cutoff == date(2025, 9, 15)

    two_in_window = MemberContext(
        "m1",
        training_dates=(cutoff, date(2026, 1, 10), date(2025, 3, 1)),
    )
    one_in_window = MemberContext(
        "m2",
        training_dates=(date(2026, 1, 10), date(2025, 9, 14)),
    )

    assert meets_requirement(req, two_in_window, today=TODAY)
    assert not meets_requirement(req, one_in_window, today=TODAY)


def test_time_requirement_activity_type_filters_dates():
    ctx = MemberContext(
        "m1",
        training_dates=(date(2026, 2, 1),),
        call_dates=(date(2026, 2, 2), date(2026, 2, 3)),
    )

    assert not meets_requirement(_time(2, "training"), ctx, today=TODAY)
    assert meets_requirement(_time(2, "call"), ctx, today=TODAY)
    assert meets_requirement(_time(3, "any"), ctx, today=TODAY)
    assert meets_requirement(_time(3, None), ctx, today=TODAY)


def test_time_requirement_without_window_counts_everything():
    ctx = MemberContext("m1", call_dates=(date(2001, 1, 1),))

    assert meets_requirement(_time(1, "call", within_months=None), ctx, today=TODAY)
    assert meets_requirement(_time(1, "call", within_months=0), ctx, today=TODAY)


def test_time_requirement_min_count_defaults_to_one():
    req = RequirementSpec(kind="time", activity_type="training")

    assert not meets_requirement(req, MemberContext("m1"), today=TODAY)
    assert meets_requirement(req, MemberContext("m1", training_dates=(TODAY,)), today=TODAY)


def test_manual_review_and_unknown_kinds_always_pass():
    empty = MemberContext("m1")
    for kind in ("test", "physical", "proficiency", "swim-test", ""):
        assert meets_requirement(RequirementSpec(kind=kind), empty, today=TODAY)


def test_kind_is_case_insensitive():
    req = RequirementSpec(kind=" Course ", course_id="c1")
    assert not meets_requirement(req, MemberContext("m1"), today=TODAY)


# ---------------------------------------------------------------------------
# labels
# ---------------------------------------------------------------------------


def test_requirement_labels():
    ctx = MemberContext("m1", training_dates=(date(2026, 1, 1),))

    assert requirement_label(_course("c1", "CPR"), ctx, today=TODAY) == "CPR"
    assert requirement_label(_course("c1"), ctx, today=TODAY) == "c1"
    assert (
        requirement_label(
            RequirementSpec(kind="position", required_position_id="p1", required_position_code="FTL"),
            ctx,
            today=TODAY,
        )
        == "FTL"
    )
    assert requirement_label(RequirementSpec(kind="task", task_id="t1", task_code="NAV-1"), ctx, today=TODAY) == "TASK:NAV-1"
    assert requirement_label(_time(2, "training", 6), ctx, today=TODAY) == "1/2 training within 6 months"
    assert requirement_label(_time(4, "call", None), ctx, today=TODAY) == "0/4 call"


# ---------------------------------------------------------------------------
# positions
# ---------------------------------------------------------------------------


def test_group_n_of_m():
    group = RequirementGroupSpec(id="g1", label="Medical", min_met=2)
    reqs = [
        _course("c1", "EMR", group_id="g1"),
        _course("c2", "WFR", group_id="g1"),
        _course("c3", "EMT", group_id="g1"),
    ]

    two_of_three = MemberContext("m1", valid_course_ids=frozenset({"c1", "c3"}))
    one_of_three = MemberContext("m2", valid_course_ids=frozenset({"c2"}))

    assert evaluate_position(reqs, [group], two_of_three, today=TODAY).met

    result = evaluate_position(reqs, [group], one_of_three, today=TODAY, explain=True)
    assert not result.met
    assert result.unmet_labels == ('1/2 met in "Medical"',)


def test_explain_mode_collects_every_failure():
    group = RequirementGroupSpec(id="g1", label="Alternative Paths", min_met=1)
    reqs = [
        _course("c-cpr", "CPR"),
        RequirementSpec(kind="task", task_id="t1", task_code="NAV-1"),
        _course("c-ok", "ICS-100"),
        _course("c-a", "A", group_id="g1"),
        _course("c-b", "B", group_id="g1"),
    ]
    ctx = MemberContext("m1", valid_course_ids=frozenset({"c-ok"}))

    result = evaluate_position(reqs, [group], ctx, today=TODAY, explain=True)

    assert result.met is False
    assert list(result.unmet_labels) == ["CPR", "TASK:NAV-1", '0/1 met in "Alternative Paths"']


def test_scan_mode_stops_at_first_failure():
    reqs = [_course("c1", "CPR"), _course("c2", "WFA")]

    result = evaluate_position(reqs, [], MemberContext("m1"), today=TODAY)

    assert result.met is False
    assert result.unmet_labels == ("CPR",)


def test_requirement_in_unknown_group_is_standalone():
    reqs = [_course("c1", "CPR", group_id="gone")]

    result = evaluate_position(reqs, [], MemberContext("m1"), today=TODAY, explain=True)

    assert result.unmet_labels == ("CPR",)


def test_group_without_requirements_is_ignored():
    group = RequirementGroupSpec(id="g-empty", label="Empty", min_met=3)
    reqs = [_course("c1", "CPR")]
    ctx = MemberContext("m1", valid_course_ids=frozenset({"c1"}))

    assert evaluate_position(reqs, [group], ctx, today=TODAY, explain=True).met


def test_same_inputs_same_result():
    reqs = [_course("c1", "CPR"), _time(1, "any", 12)]
    ctx = MemberContext("m1", valid_course_ids=frozenset({"c1"}), call_dates=(date(2026, 1, 1),))

    first = evaluate_position(reqs, [], ctx, today=TODAY, explain=True)
    second = evaluate_position(reqs, [], ctx, today=TODAY, explain=True)

    assert first == second
    assert first.met


def test_task_evaluation_uses_same_rules():
    reqs = [
        RequirementSpec(kind="time", min_count=3, activity_type="call", within_months=12),
        RequirementSpec(kind="proficiency"),
    ]
    ctx = MemberContext("m1", call_dates=(date(2025, 6, 1), date(2025, 12, 1)))

    result = evaluate_task(reqs, ctx, today=TODAY)

    assert not result.met
    assert result.unmet_labels == ("2/3 call within 12 months",)


# ---------------------------------------------------------------------------
# month arithmetic
# ---------------------------------------------------------------------------


def test_expiry_months_clamp_to_month_end():
    assert add_months(date(2026, 3, 31), -1) == date(2026, 2, 28)
    assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
    assert add_months(date(2025, 8, 31), 6) == date(2026, 2, 28)
    assert add_months(date(2025, 1, 10), 0) == date(2025, 1, 10)


def test_window_start_rolls_past_month_end():
    assert subtract_months(date(2026, 3, 31), 1) == date(2026, 3, 3)
    assert subtract_months(date(2024, 3, 31), 1) == date(2024, 3, 2)
    assert subtract_months(date(2026, 8, 31), 6) == date(2026, 3, 3)
    assert subtract_months(date(2026, 1, 15), 13) == date(2024, 12, 15)
    assert subtract_months(date(2026, 5, 20), 0) == date(2026, 5, 20)


def test_time_window_at_month_end_excludes_late_february():
    req = _time(min_count=1, activity_type="training", within_months=6)
    today = date(2026, 8, 31)

    assert not meets_requirement(req, MemberContext("m1", training_dates=(date(2026, 2, 28),)), today=today)
    assert not meets_requirement(req, MemberContext("m1", training_dates=(date(2026, 3, 2),)), today=today)
    assert meets_requirement(req, MemberContext("m1", training_dates=(date(2026, 3, 3),)), today=today)
