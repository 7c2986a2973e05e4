"""
Scheduling pipeline.

    Preprocess -> Construct -> [Optimize] -> PostProcess -> Done

Preprocess raises every fatal input error before a slot is generated.
Optimize runs only for the ``optimal`` and ``balanced`` algorithms.
PostProcess re-annotates the schedule (buffers and soft violations), runs
the final validation and recomputes the score.
"""

import logging
import random
import threading
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from chronoplan.config.settings import SchedulerOptions
from chronoplan.engine.context import SchedulingContext, validate_time_range
from chronoplan.engine.evaluation import ConstraintEvaluator, SlotScorer
from chronoplan.engine.feasibility import FeasibilityChecker
from chronoplan.engine.local_search import SimulatedAnnealingOptimizer
from chronoplan.engine.priority import PriorityRanker
from chronoplan.engine.slots import generate_candidate_slots
from chronoplan.engine.solver import GreedyConstructor
from chronoplan.engine.validator import validate_schedule
from chronoplan.exceptions import ValidationError
from chronoplan.graph.conflict_graph import overlapping_pairs
from chronoplan.models.constraints import Constraint
from chronoplan.models.entities import (
    AvailableSlot,
    ConstraintViolation,
    Resource,
    Schedule,
    ScheduleMetadata,
    Task,
    TimeWindow,
    ValidationReport,
)
from chronoplan.utils.clock import Clock, SystemClock, elapsed_ms
from chronoplan.utils.metrics import ScheduleMetrics, get_schedule_metrics

logger = logging.getLogger(__name__)

_QUERY_TASK_ID = "__available_slot_query__"


class Scheduler:
    def __init__(
        self,
        options: Optional[SchedulerOptions] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.options = options or SchedulerOptions.from_settings()
        self.clock = clock
        self.rng = rng

    def _clock_for(self, time_range: TimeWindow) -> Clock:
        return self.clock or SystemClock(time_range.start.tzinfo)

    def _random(self) -> random.Random:
        return self.rng or random.Random(self.options.random_seed)

    def generate_schedule(
        self,
        tasks: List[Task],
        resources: List[Resource],
        constraints: List[Constraint],
        time_range: TimeWindow,
        cancel_event: Optional[threading.Event] = None,
    ) -> Schedule:
        clock = self._clock_for(time_range)
        started = clock.now()
        logger.info(
            "Generating schedule for %d tasks on %d resources (algorithm=%s)",
            len(tasks), len(resources), self.options.algorithm.value,
        )

        context = SchedulingContext.build(tasks, resources, constraints, time_range, self.options)
        ranked = PriorityRanker(context.graph, clock).rank(list(context.tasks.values()))

        schedule = self._initialize_schedule(context, started)
        schedule = GreedyConstructor(context).construct(ranked, schedule)

        iterations = 0
        budget = self.options.effective_iterations
        if budget > 0:
            optimizer = SimulatedAnnealingOptimizer(context, self._random(), clock)
            schedule, iterations = optimizer.optimize(
                schedule, budget, self.options.max_computation_time_ms, started, cancel_event
            )

        schedule = self._post_process(schedule, context)
        schedule.metadata.iterations_performed = iterations
        schedule.metadata.computation_time_ms = elapsed_ms(clock, started)
        logger.info(
            "Schedule ready: %d placed, %d unscheduled, score %.3f, %.0f ms",
            len(schedule.slots), len(schedule.unscheduled_tasks),
            schedule.optimization_score, schedule.metadata.computation_time_ms,
        )
        return schedule

    def optimize_schedule(
        self,
        schedule: Schedule,
        tasks: List[Task],
        resources: List[Resource],
        constraints: List[Constraint],
        iterations: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Schedule:
        """Run the annealing pass again on an existing schedule. The input is left untouched."""
        clock = self._clock_for(schedule.time_range)
        started = clock.now()
        context = SchedulingContext.build(tasks, resources, constraints, schedule.time_range, self.options)
        unknown = [s.task_id for s in schedule.slots if s.task_id not in context.tasks]
        if unknown:
            raise ValidationError(f"schedule references unknown tasks: {', '.join(unknown)}")

        budget = self.options.optimization_iterations if iterations is None else iterations
        optimizer = SimulatedAnnealingOptimizer(context, self._random(), clock)
        optimized, performed = optimizer.optimize(
            schedule.copy(), budget, self.options.max_computation_time_ms, started, cancel_event
        )

        optimized = self._post_process(optimized, context)
        optimized.metadata.iterations_performed = schedule.metadata.iterations_performed + performed
        optimized.metadata.computation_time_ms = schedule.metadata.computation_time_ms + elapsed_ms(clock, started)
        logger.info("Re-optimized schedule: score %.3f -> %.3f", schedule.optimization_score, optimized.optimization_score)
        return optimized

    def validate_schedule(
        self,
        schedule: Schedule,
        tasks: Optional[List[Task]] = None,
        resources: Optional[List[Resource]] = None,
        constraints: Optional[List[Constraint]] = None,
    ) -> ValidationReport:
        context = None
        if tasks is not None:
            context = SchedulingContext.build(
                tasks, resources or [], constraints or [], schedule.time_range, self.options
            )
        return validate_schedule(schedule, context)

    def get_schedule_metrics(self, schedule: Schedule) -> ScheduleMetrics:
        return get_schedule_metrics(schedule)

    def find_available_slots(
        self,
        resources: List[Resource],
        duration: int,
        constraints: List[Constraint],
        time_range: TimeWindow,
        count: int = 5,
    ) -> List[AvailableSlot]:
        """
        Free windows where every given resource could take a ``duration``-minute
        booking, best first (score, then earliest). Nothing is committed.
        """
        validate_time_range(time_range)
        if count <= 0:
            return []

        query = Task(id=_QUERY_TASK_ID, duration=duration, required_resources=[r.id for r in resources])
        context = SchedulingContext.build([query], resources, constraints, time_range, self.options)
        checker = FeasibilityChecker(context)
        slot_scorer = SlotScorer(context)

        found: List[AvailableSlot] = []
        for candidate in generate_candidate_slots(query, time_range, self.options.effective_granularity):
            if not checker.is_feasible(query, candidate, []):
                continue
            score, _ = slot_scorer.score(query, candidate, [])
            found.append(AvailableSlot(candidate.start, candidate.end, duration, score / 2.0))

        found.sort(key=lambda s: (-s.score, s.start))
        return found[:count]

    def _initialize_schedule(self, context: SchedulingContext, generated_at: datetime) -> Schedule:
        return Schedule(
            start_date=context.time_range.start,
            end_date=context.time_range.end,
            metadata=ScheduleMetadata(generated_at=generated_at, algorithm=self.options.algorithm.value),
            constraints={
                "hard": [c.id for c in context.hard_constraints],
                "soft": [c.id for c in context.soft_constraints],
            },
        )

    def _post_process(self, schedule: Schedule, context: SchedulingContext) -> Schedule:
        evaluator = ConstraintEvaluator(context)
        schedule = evaluator.annotate(schedule)

        # Final validation; overlaps are attached to both slots involved.
        report = validate_schedule(schedule, context)
        if not report.is_valid:
            logger.error("Final validation found %d violations", len(report.violations))
            extra = {}
            for a, b, shared in overlapping_pairs(schedule.slots):
                for slot, other in ((a, b), (b, a)):
                    extra.setdefault(slot.task_id, []).append(
                        ConstraintViolation(
                            type="overlap",
                            severity="high",
                            description=f"Overlaps task {other.task_id} on {', '.join(shared)}",
                        )
                    )
            schedule.slots = [
                replace(s, constraint_violations=s.constraint_violations + extra[s.task_id])
                if s.task_id in extra else s
                for s in schedule.slots
            ]

        placed = [s.task_id for s in schedule.slots]
        covered = set(placed) | set(schedule.unscheduled_tasks)
        if covered != set(context.tasks) or len(placed) + len(schedule.unscheduled_tasks) != len(context.tasks):
            logger.error("Schedule does not cover the task set exactly once")

        schedule.optimization_score = evaluator.score(schedule)
        return schedule
