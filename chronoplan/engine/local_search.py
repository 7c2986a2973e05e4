"""
Local Search Optimization Module.

Refines a constructed schedule with simulated annealing.

Algorithm:
- Start from the annotated greedy schedule (warm start)
- Each iteration draws one move uniformly: swap, shift or reassign
- Better neighbours are always accepted, worse ones with probability
  exp((new - old) / temperature) (Metropolis criterion)
- Geometric cooling: temperature *= cooling_rate after every iteration
- The best schedule ever seen is returned, wherever the walk ends up

Moves:
- swap: exchange the start times of two scheduled tasks
- shift: move one slot by a random offset within +/- max_shift_minutes
- reassign: give one slot a different optional resource of its task

A move that leaves the time range or breaks a hard constraint is discarded;
the iteration still counts. Each move builds a new schedule, so the current
and best schedules are never mutated.

Budget:
- iteration budget from the caller
- wall-clock budget checked every iteration through the injected clock
- optional cancellation event, checked between iterations

Complexity:
- O(iterations * n^2 * k) where n = scheduled slots, k = active constraints
  (each accepted candidate is re-annotated from scratch)
"""

import logging
import math
import random
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from chronoplan.engine.context import SchedulingContext
from chronoplan.engine.evaluation import ConstraintEvaluator
from chronoplan.engine.feasibility import FeasibilityChecker
from chronoplan.models.entities import Schedule, ScheduledSlot
from chronoplan.utils.clock import Clock, elapsed_ms

logger = logging.getLogger(__name__)


class SimulatedAnnealingOptimizer:
    def __init__(
        self,
        context: SchedulingContext,
        rng: random.Random,
        clock: Clock,
        initial_temperature: float = 100.0,
        cooling_rate: float = 0.95,
        max_shift_minutes: int = 120,
    ):
        self.context = context
        self.rng = rng
        self.clock = clock
        self.initial_temperature = initial_temperature
        self.cooling_rate = cooling_rate
        self.max_shift_minutes = max_shift_minutes
        self.checker = FeasibilityChecker(context)
        self.evaluator = ConstraintEvaluator(context)
        self._moves: List[Callable[[Schedule], Optional[Schedule]]] = [
            self.swap_random_tasks,
            self.shift_random_task,
            self.reassign_random_resources,
        ]

    def optimize(
        self,
        initial: Schedule,
        iterations: int,
        budget_ms: float,
        started_at: datetime,
        cancel_event: Optional[threading.Event] = None,
    ) -> Tuple[Schedule, int]:
        """
        Anneal from ``initial``.

        Returns:
            (best schedule seen, iterations performed)
        """
        current = self.evaluator.annotate(initial)
        current_score = current.optimization_score
        best, best_score = current, current_score
        temperature = self.initial_temperature
        performed = 0

        for _ in range(iterations):
            if elapsed_ms(self.clock, started_at) > budget_ms:
                logger.info("Computation budget of %.0f ms exhausted after %d iterations", budget_ms, performed)
                break
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Optimization cancelled after %d iterations", performed)
                break
            performed += 1

            move = self.rng.choice(self._moves)
            neighbour = move(current)
            if neighbour is not None:
                neighbour = self.evaluator.annotate(neighbour)
                score = neighbour.optimization_score
                if self._accept(score - current_score, temperature):
                    current, current_score = neighbour, score
                    if current_score > best_score:
                        best, best_score = current, current_score
                        logger.debug("New best score %.4f at iteration %d", best_score, performed)

            temperature *= self.cooling_rate

        return best, performed

    def _accept(self, delta: float, temperature: float) -> bool:
        if delta > 0:
            return True
        if temperature <= 0:
            return False
        return self.rng.random() < math.exp(delta / temperature)

    def _replace(self, schedule: Schedule, changes: dict) -> Schedule:
        candidate = schedule.copy()
        candidate.slots = [changes.get(i, slot) for i, slot in enumerate(schedule.slots)]
        return candidate

    def _others(self, schedule: Schedule, *exclude: int) -> List[ScheduledSlot]:
        return [s for i, s in enumerate(schedule.slots) if i not in exclude]

    def swap_random_tasks(self, schedule: Schedule) -> Optional[Schedule]:
        if len(schedule.slots) < 2:
            return None
        i, j = self.rng.sample(range(len(schedule.slots)), 2)
        first, second = schedule.slots[i], schedule.slots[j]
        moved_first = first.moved_to(second.start)
        moved_second = second.moved_to(first.start)

        others = self._others(schedule, i, j)
        if not self.checker.is_admissible(self.context.tasks[first.task_id], moved_first, others):
            return None
        if not self.checker.is_admissible(self.context.tasks[second.task_id], moved_second, others + [moved_first]):
            return None
        return self._replace(schedule, {i: moved_first, j: moved_second})

    def shift_random_task(self, schedule: Schedule) -> Optional[Schedule]:
        if not schedule.slots:
            return None
        i = self.rng.randrange(len(schedule.slots))
        slot = schedule.slots[i]
        offset = self.rng.randint(-self.max_shift_minutes, self.max_shift_minutes)
        if offset == 0:
            return None
        moved = slot.moved_to(slot.start + timedelta(minutes=offset))

        if not self.context.time_range.contains(moved.start, moved.end):
            logger.debug("Shift of %s by %d min leaves the time range; discarded", slot.task_id, offset)
            return None
        if not self.checker.is_admissible(self.context.tasks[slot.task_id], moved, self._others(schedule, i)):
            return None
        return self._replace(schedule, {i: moved})

    def reassign_random_resources(self, schedule: Schedule) -> Optional[Schedule]:
        if not schedule.slots:
            return None
        i = self.rng.randrange(len(schedule.slots))
        slot = schedule.slots[i]
        task = self.context.tasks[slot.task_id]
        unused = [r for r in self.context.eligible_resources(task) if r not in slot.resource_ids]
        if not unused:
            return None
        resource_id = self.rng.choice(unused)
        moved = slot.with_resources(list(task.required_resources) + [resource_id])

        if not self.checker.is_admissible(task, moved, self._others(schedule, i)):
            return None
        return self._replace(schedule, {i: moved})
