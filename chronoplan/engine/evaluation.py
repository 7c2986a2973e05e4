from dataclasses import replace
from typing import List, Tuple

from chronoplan.engine.context import SchedulingContext
from chronoplan.engine.custom_constraints import evaluate_constraint, nearest_gap_minutes
from chronoplan.engine.feasibility import FeasibilityChecker
from chronoplan.models.constraints import Constraint
from chronoplan.models.entities import ConstraintViolation, Schedule, ScheduledSlot, Task
from chronoplan.utils.scoring import score_schedule

MAX_SLOT_SCORE = 2.0
OPTIONAL_RESOURCE_BONUS = 0.1


class SlotScorer:
    """
    Soft-constraint heuristic for one candidate slot, in [0, 2].

    Base 1.0, plus the weight of the best preferred window containing the slot,
    plus a small bonus for attaching an optional resource, plus a compactness
    bonus for sitting close to a same-day slot on a shared resource; minus
    ``category weight * constraint weight`` for each violated soft constraint.
    """

    def __init__(self, context: SchedulingContext):
        self.context = context
        self.weights = context.options.soft_constraint_weights

    def soft_violations(self, task: Task, slot: ScheduledSlot, others: List[ScheduledSlot]) -> List[Tuple[Constraint, ConstraintViolation]]:
        results = []
        for constraint in self.context.constraints_for(task.id, hard=False):
            violation = evaluate_constraint(constraint, task, slot, others, self.context)
            if violation:
                results.append((constraint, violation))
        return results

    def score(self, task: Task, slot: ScheduledSlot, others: List[ScheduledSlot]) -> Tuple[float, List[ConstraintViolation]]:
        score = 1.0
        containing = [w.weight for w in task.preferred_windows if w.contains(slot.start, slot.end)]
        if containing:
            score += max(containing)

        if set(slot.resource_ids) - set(task.required_resources):
            score += OPTIONAL_RESOURCE_BONUS

        gap = nearest_gap_minutes(slot, others)
        if gap is not None:
            score += self.weights.business_optimization * 0.5 / (1.0 + gap / 60)

        violated = self.soft_violations(task, slot, others)
        for constraint, _ in violated:
            score -= self.weights.for_category(constraint.category.value) * constraint.weight

        return min(max(score, 0.0), MAX_SLOT_SCORE), [v for _, v in violated]


class ConstraintEvaluator:
    """Recomputes slot annotations and the schedule score from scratch."""

    def __init__(self, context: SchedulingContext):
        self.context = context
        self.slot_scorer = SlotScorer(context)
        self.checker = FeasibilityChecker(context)

    def annotate(self, schedule: Schedule) -> Schedule:
        """Return a copy whose slots carry current violations, scores and confidence."""
        annotated = schedule.copy()
        slots = []
        for slot in schedule.slots:
            task = self.context.tasks.get(slot.task_id)
            if task is None:
                slots.append(slot)
                continue
            others = [o for o in schedule.slots if o.task_id != slot.task_id]
            slot_score, violations = self.slot_scorer.score(task, slot, others)
            violations = violations + self.checker.hard_violations(task, slot, others)
            slots.append(
                replace(
                    slot,
                    constraint_violations=violations,
                    optimization_score=slot_score / 2.0,
                    confidence=max(0.0, 1.0 - 0.1 * len(violations)),
                )
            )
        annotated.slots = slots
        annotated.optimization_score = self.score(annotated)
        return annotated

    def score(self, schedule: Schedule) -> float:
        return score_schedule(schedule, self.context.resources.keys())
