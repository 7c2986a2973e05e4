import logging
from typing import List

from chronoplan.engine.context import SchedulingContext
from chronoplan.engine.custom_constraints import evaluate_constraint
from chronoplan.engine.slots import passes_time_filters
from chronoplan.models.entities import ConstraintViolation, ScheduledSlot, Task

logger = logging.getLogger(__name__)


class FeasibilityChecker:
    """
    Rejects candidate slots that break a hard constraint.

    Always enforced, whether or not a matching constraint record exists:
    - every resource of the slot is available (weekly windows, blackouts)
    - no overlap with a placed slot on a shared resource
    Then every active hard constraint that applies to the task.

    Resources are booked exclusively whatever their capacity, so no separate
    capacity check is needed; a capacity constraint can only tighten this.
    """

    def __init__(self, context: SchedulingContext):
        self.context = context

    def resources_available(self, slot: ScheduledSlot) -> bool:
        availability = self.context.availability
        return all(availability.is_available(r_id, slot.start, slot.end) for r_id in slot.resource_ids)

    def conflicts(self, slot: ScheduledSlot, placed: List[ScheduledSlot]) -> bool:
        for other in placed:
            if other.task_id != slot.task_id and slot.shares_resource(other) and slot.overlaps(other):
                return True
        return False

    def hard_violations(self, task: Task, slot: ScheduledSlot, placed: List[ScheduledSlot]) -> List[ConstraintViolation]:
        others = [o for o in placed if o.task_id != slot.task_id]
        violations = []
        for constraint in self.context.constraints_for(task.id, hard=True):
            violation = evaluate_constraint(constraint, task, slot, others, self.context)
            if violation:
                violations.append(violation)
        return violations

    def is_feasible(self, task: Task, slot: ScheduledSlot, placed: List[ScheduledSlot]) -> bool:
        if not self.resources_available(slot):
            return False
        if self.conflicts(slot, placed):
            return False
        return not self.hard_violations(task, slot, placed)

    def is_admissible(self, task: Task, slot: ScheduledSlot, placed: List[ScheduledSlot]) -> bool:
        """Full check for a moved slot: range, the task's own bounds, then feasibility."""
        if not self.context.time_range.contains(slot.start, slot.end):
            return False
        if not passes_time_filters(task, slot.start, slot.end):
            return False
        return self.is_feasible(task, slot, placed)
