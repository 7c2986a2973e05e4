import logging
from typing import List, Optional

from chronoplan.engine.context import SchedulingContext
from chronoplan.engine.feasibility import FeasibilityChecker
from chronoplan.graph.conflict_graph import overlapping_pairs
from chronoplan.models.entities import ConstraintViolation, Schedule, ValidationReport
from chronoplan.utils.scoring import score_schedule

logger = logging.getLogger(__name__)


def find_overlaps(schedule: Schedule) -> List[ConstraintViolation]:
    return [
        ConstraintViolation(
            type="overlap",
            severity="high",
            description=f"Tasks {a.task_id} and {b.task_id} overlap on {', '.join(shared)}",
        )
        for a, b, shared in overlapping_pairs(schedule.slots)
    ]


def find_hard_violations(schedule: Schedule, context: SchedulingContext) -> List[ConstraintViolation]:
    checker = FeasibilityChecker(context)
    violations: List[ConstraintViolation] = []
    for slot in schedule.slots:
        task = context.tasks.get(slot.task_id)
        if task is None:
            continue
        if not checker.resources_available(slot):
            violations.append(
                ConstraintViolation(
                    type="availability",
                    severity="high",
                    description=f"Task {slot.task_id} is booked while a resource is unavailable",
                )
            )
        others = [o for o in schedule.slots if o.task_id != slot.task_id]
        for v in checker.hard_violations(task, slot, others):
            violations.append(
                ConstraintViolation(
                    type="hard_constraint",
                    severity="critical",
                    description=f"Task {slot.task_id}: {v.description}",
                )
            )
    return violations


def validate_schedule(schedule: Schedule, context: Optional[SchedulingContext] = None) -> ValidationReport:
    """
    Check a finished schedule without modifying it.

    Always reports resource-sharing slots that overlap in time. With a
    context, also re-checks availability and every hard constraint.
    """
    violations = find_overlaps(schedule)
    resource_ids = ()
    if context is not None:
        violations += find_hard_violations(schedule, context)
        resource_ids = context.resources.keys()

    if violations:
        logger.warning("Schedule has %d violations", len(violations))
    return ValidationReport(
        is_valid=not violations,
        violations=violations,
        score=score_schedule(schedule, resource_ids),
    )
