# backend/sardb/apps/qualifications/evaluator.py
"""
Qualification evaluation engine.

Decides whether a member meets a position's (or a task's) requirements,
given lookup values that were fetched beforehand. Nothing in this module
performs I/O or reads the clock: "today" is always passed in, which keeps
the result deterministic for a given snapshot and lets the batch scan and
the single-member check share one implementation.

Evaluation rules:
- Requirements without a group are mandatory ("all of").
- Requirements in a group pass the group when at least `min_met` of them
  pass individually ("N of M").
- course:   the member holds a valid certification for course_id.
- position: the member holds valid certifications for every course-kind
            requirement of the prerequisite position. Resolution is one
            hop only; the prerequisite's own position/task/time
            requirements are not looked at.
- task:     the member has a signoff for task_id.
- time:     at least min_count attended training / call dates fall on or
            after today - within_months (no lower bound when unset).
- Every other kind (test, physical, proficiency, unknown) needs human
  judgement and always passes here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from sardb.utils.dates import subtract_months

KIND_COURSE = "course"
KIND_POSITION = "position"
KIND_TASK = "task"
KIND_TIME = "time"

ACTIVITY_TRAINING = "training"
ACTIVITY_CALL = "call"
ACTIVITY_ANY = "any"


# ---------------------------------------------------------------------------
# INPUT VALUES
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequirementSpec:
    """
    One requirement row, flattened with the display codes used for labels.

    owner_id is the position id (or task id for task-level requirements).
    """

    kind: str
    id: Optional[str] = None
    owner_id: Optional[str] = None
    group_id: Optional[str] = None

    course_id: Optional[str] = None
    course_code: Optional[str] = None

    required_position_id: Optional[str] = None
    required_position_code: Optional[str] = None

    task_id: Optional[str] = None
    task_code: Optional[str] = None

    min_count: Optional[int] = None
    activity_type: Optional[str] = None
    within_months: Optional[int] = None

    @property
    def normalized_kind(self) -> str:
        return (self.kind or "").strip().lower()


@dataclass(frozen=True)
class RequirementGroupSpec:
    id: str
    label: str
    min_met: int = 1
    position_id: Optional[str] = None


@dataclass(frozen=True)
class MemberContext:
    """Everything the engine needs to know about one member."""

    member_id: str
    valid_course_ids: FrozenSet[str] = frozenset()
    signed_off_task_ids: FrozenSet[str] = frozenset()
    training_dates: Tuple[date, ...] = ()
    call_dates: Tuple[date, ...] = ()


@dataclass(frozen=True)
class EvaluationResult:
    met: bool
    unmet_labels: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# SINGLE REQUIREMENTS
# ---------------------------------------------------------------------------


def _time_window_start(requirement: RequirementSpec, today: date) -> Optional[date]:
    if not requirement.within_months:
        return None
    return subtract_months(today, requirement.within_months)


def _count_since(dates: Sequence[date], cutoff: Optional[date]) -> int:
    if cutoff is None:
        return len(dates)
    return sum(1 for d in dates if d >= cutoff)


def count_timed_activities(
    requirement: RequirementSpec,
    context: MemberContext,
    *,
    today: date,
) -> int:
    """
    Number of dated activities that count toward a time requirement.

    activity_type "training" counts only training dates, "call" only call
    dates, anything else counts both.
    """
    activity_type = (requirement.activity_type or ACTIVITY_ANY).strip().lower()
    cutoff = _time_window_start(requirement, today)

    count = 0
    if activity_type != ACTIVITY_CALL:
        count += _count_since(context.training_dates, cutoff)
    if activity_type != ACTIVITY_TRAINING:
        count += _count_since(context.call_dates, cutoff)
    return count


def _min_count(requirement: RequirementSpec) -> int:
    if requirement.min_count is None:
        return 1
    return requirement.min_count


def meets_requirement(
    requirement: RequirementSpec,
    context: MemberContext,
    *,
    today: date,
    prerequisite_courses: Optional[Mapping[str, Sequence[str]]] = None,
) -> bool:
    kind = requirement.normalized_kind

    if kind == KIND_COURSE:
        if not requirement.course_id:
            return True
        return requirement.course_id in context.valid_course_ids

    if kind == KIND_POSITION:
        if not requirement.required_position_id:
            return True
        courses = (prerequisite_courses or {}).get(requirement.required_position_id, ())
        return all(course_id in context.valid_course_ids for course_id in courses)

    if kind == KIND_TASK:
        if not requirement.task_id:
            return True
        return requirement.task_id in context.signed_off_task_ids

    if kind == KIND_TIME:
        count = count_timed_activities(requirement, context, today=today)
        return count >= _min_count(requirement)

    # test / physical / proficiency / unknown: manual review only
    return True


def requirement_label(
    requirement: RequirementSpec,
    context: MemberContext,
    *,
    today: date,
) -> str:
    """Short human-readable name for an unmet requirement."""
    kind = requirement.normalized_kind

    if kind == KIND_COURSE:
        return requirement.course_code or str(requirement.course_id)

    if kind == KIND_POSITION:
        return requirement.required_position_code or str(requirement.required_position_id)

    if kind == KIND_TASK:
        return f"TASK:{requirement.task_code or requirement.task_id}"

    if kind == KIND_TIME:
        count = count_timed_activities(requirement, context, today=today)
        activity_type = (requirement.activity_type or ACTIVITY_ANY).strip().lower()
        label = f"{count}/{_min_count(requirement)} {activity_type}"
        if requirement.within_months:
            label += f" within {requirement.within_months} months"
        return label

    return kind or "requirement"


# ---------------------------------------------------------------------------
# POSITIONS / TASKS
# ---------------------------------------------------------------------------


def partition_requirements(
    requirements: Sequence[RequirementSpec],
    groups: Sequence[RequirementGroupSpec],
) -> Tuple[List[RequirementSpec], Dict[str, List[RequirementSpec]]]:
    """
    Split requirements into (standalone, grouped-by-group-id).

    A requirement pointing at a group that is not one of `groups` counts
    as standalone.
    """
    known_groups = {group.id for group in groups}
    standalone: List[RequirementSpec] = []
    grouped: Dict[str, List[RequirementSpec]] = {}
    for requirement in requirements:
        if requirement.group_id and requirement.group_id in known_groups:
            grouped.setdefault(requirement.group_id, []).append(requirement)
        else:
            standalone.append(requirement)
    return standalone, grouped


def evaluate_position(
    requirements: Sequence[RequirementSpec],
    groups: Sequence[RequirementGroupSpec],
    context: MemberContext,
    *,
    today: date,
    prerequisite_courses: Optional[Mapping[str, Sequence[str]]] = None,
    explain: bool = False,
) -> EvaluationResult:
    """
    Evaluate a member against one position.

    explain=False stops at the first failure (readiness scans);
    explain=True collects a label for every failing standalone requirement
    and every failing group.
    """
    standalone, grouped = partition_requirements(requirements, groups)
    unmet: List[str] = []

    for requirement in standalone:
        if meets_requirement(
            requirement,
            context,
            today=today,
            prerequisite_courses=prerequisite_courses,
        ):
            continue
        unmet.append(requirement_label(requirement, context, today=today))
        if not explain:
            return EvaluationResult(met=False, unmet_labels=tuple(unmet))

    for group in groups:
        members = grouped.get(group.id)
        if not members:
            continue
        met_count = sum(
            1
            for requirement in members
            if meets_requirement(
                requirement,
                context,
                today=today,
                prerequisite_courses=prerequisite_courses,
            )
        )
        if met_count >= group.min_met:
            continue
        unmet.append(f'{met_count}/{group.min_met} met in "{group.label}"')
        if not explain:
            return EvaluationResult(met=False, unmet_labels=tuple(unmet))

    return EvaluationResult(met=not unmet, unmet_labels=tuple(unmet))


def evaluate_task(
    requirements: Sequence[RequirementSpec],
    context: MemberContext,
    *,
    today: date,
    explain: bool = True,
) -> EvaluationResult:
    """Task requirements are ungrouped and never reference other positions."""
    return evaluate_position(requirements, (), context, today=today, explain=explain)
