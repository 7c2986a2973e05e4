"""
Greedy Constructor

Builds the initial schedule in one pass over the tasks in priority order.

For each task:
1. Generate candidate windows across the time range (earliest first)
2. Keep the ones the feasibility checker accepts against the slots placed so far
3. Score the survivors with the soft-constraint slot heuristic
4. Commit the best; ties keep the earliest candidate

A task with no feasible candidate is reported as unscheduled. That is an
outcome, not an error.

Complexity: O(n * c * n) where:
    n = number of tasks
    c = candidates per task (days * 1440 / granularity * resource variants)
"""

import logging
from dataclasses import replace
from typing import List, Optional

from chronoplan.engine.context import SchedulingContext
from chronoplan.engine.evaluation import ConstraintEvaluator, SlotScorer
from chronoplan.engine.feasibility import FeasibilityChecker
from chronoplan.engine.slots import generate_candidate_slots
from chronoplan.models.entities import Schedule, ScheduledSlot, Task

logger = logging.getLogger(__name__)


class GreedyConstructor:
    def __init__(self, context: SchedulingContext, granularity: Optional[int] = None):
        self.context = context
        self.granularity = granularity or context.options.effective_granularity
        self.checker = FeasibilityChecker(context)
        self.slot_scorer = SlotScorer(context)
        self.evaluator = ConstraintEvaluator(context)

    def best_slot(self, task: Task, placed: List[ScheduledSlot]) -> Optional[ScheduledSlot]:
        """
        Highest-scoring feasible candidate for ``task``, or None.

        Only a strictly better score replaces the current best, so among equal
        scores the first generated (earliest) candidate wins.
        """
        best: Optional[ScheduledSlot] = None
        best_score = -1.0
        checked = 0
        for candidate in generate_candidate_slots(task, self.context.time_range, self.granularity):
            checked += 1
            if not self.checker.is_feasible(task, candidate, placed):
                continue
            score, _ = self.slot_scorer.score(task, candidate, placed)
            if score > best_score:
                best, best_score = candidate, score

        logger.debug("Task %s: %d candidates checked, best score %.3f", task.id, checked, max(best_score, 0.0))
        if best is None:
            return None
        return replace(best, optimization_score=best_score / 2.0)

    def construct(self, ranked_tasks: List[Task], schedule: Schedule) -> Schedule:
        """Place ``ranked_tasks`` in order into ``schedule`` and return it annotated."""
        for task in ranked_tasks:
            slot = self.best_slot(task, schedule.slots)
            if slot is None:
                logger.warning("No feasible slot for task %s; leaving it unscheduled", task.id)
                schedule.unscheduled_tasks.append(task.id)
                continue
            schedule.slots.append(slot)
            logger.debug("Placed task %s at %s on %s", task.id, slot.start, slot.resource_ids)

        return self.evaluator.annotate(schedule)
