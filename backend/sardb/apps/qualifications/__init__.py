"""
Qualifications app

Responsible for:
- The requirement evaluation engine (evaluator.py, pure)
- Reading requirement / certification / signoff / attendance data (store.py)
- The batch readiness scan and the single-member requirement checks
"""

from .evaluator import EvaluationResult, MemberContext, evaluate_position, meets_requirement  # noqa: F401
from .services import (  # noqa: F401
    ReadyRow,
    RequirementCheck,
    check_position_requirements,
    check_task_requirements,
    member_context_for,
    scan_readiness,
)
from .store import RequirementStoreError  # noqa: F401

__all__ = [
    "EvaluationResult",
    "MemberContext",
    "ReadyRow",
    "RequirementCheck",
    "RequirementStoreError",
    "check_position_requirements",
    "check_task_requirements",
    "evaluate_position",
    "meets_requirement",
    "member_context_for",
    "scan_readiness",
]
