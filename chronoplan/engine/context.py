import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from chronoplan.config.settings import SchedulerOptions
from chronoplan.engine.availability import ResourceAvailabilityIndex
from chronoplan.engine.slots import iter_window_starts, passes_time_filters
from chronoplan.exceptions import DuplicateTaskError, InvalidConstraintError, InvalidTimeRangeError
from chronoplan.graph.dependency_graph import DependencyGraph
from chronoplan.models.constraints import Constraint
from chronoplan.models.entities import Resource, Task, TimeWindow

logger = logging.getLogger(__name__)


def validate_time_range(time_range: TimeWindow) -> None:
    if time_range.end <= time_range.start:
        raise InvalidTimeRangeError(
            f"time range must end after it starts (start={time_range.start}, end={time_range.end})"
        )


def validate_constraints(constraints: List[Constraint]) -> None:
    for constraint in constraints:
        if constraint.is_hard and constraint.weight != 1.0:
            raise InvalidConstraintError(
                constraint.id, f"hard constraint must have weight 1.0, got {constraint.weight}"
            )


@dataclass
class SchedulingContext:
    """
    Derived, read-only structures for one scheduling invocation.

    Built by ``SchedulingContext.build``, which is the preprocessing stage:
    every fatal input error is raised there, before any slot is generated.
    """

    tasks: Dict[str, Task]
    resources: Dict[str, Resource]
    constraints: List[Constraint]
    time_range: TimeWindow
    options: SchedulerOptions
    graph: DependencyGraph
    availability: ResourceAvailabilityIndex
    _earliest_finish: Dict[str, Optional[datetime]] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def build(
        cls,
        tasks: List[Task],
        resources: List[Resource],
        constraints: List[Constraint],
        time_range: TimeWindow,
        options: Optional[SchedulerOptions] = None,
    ) -> "SchedulingContext":
        options = options or SchedulerOptions()
        validate_time_range(time_range)

        by_id: Dict[str, Task] = {}
        for task in tasks:
            if task.id in by_id:
                raise DuplicateTaskError(task.id)
            by_id[task.id] = task

        graph = DependencyGraph.build(tasks)
        graph.detect_cycles()

        availability = ResourceAvailabilityIndex(resources)
        validate_constraints(constraints)

        active = [c for c in constraints if c.is_active]
        logger.debug(
            "Preprocessed %d tasks, %d resources, %d active constraints",
            len(by_id), len(resources), len(active),
        )
        return cls(
            tasks=by_id,
            resources={r.id: r for r in resources},
            constraints=active,
            time_range=time_range,
            options=options,
            graph=graph,
            availability=availability,
        )

    @property
    def hard_constraints(self) -> List[Constraint]:
        return [c for c in self.constraints if c.is_hard]

    @property
    def soft_constraints(self) -> List[Constraint]:
        return [c for c in self.constraints if not c.is_hard]

    def constraints_for(self, task_id: str, hard: bool) -> List[Constraint]:
        return [c for c in self.constraints if c.is_hard == hard and c.parameters.applies_to(task_id)]

    def eligible_resources(self, task: Task) -> List[str]:
        return [r for r in task.optional_resources if r not in task.required_resources]

    def earliest_finish(self, task_id: str) -> Optional[datetime]:
        """
        Earliest end of ``task_id`` placed on its own, after the earliest
        finish of each of its predecessors.

        Only the task's own bounds and resource availability are considered,
        not slots already placed. Predecessors that fit nowhere are ignored.
        Returns None when the task itself fits nowhere.
        """
        if task_id in self._earliest_finish:
            return self._earliest_finish[task_id]

        task = self.tasks[task_id]
        not_before = self.time_range.start
        for pred_id in self.graph.predecessors(task_id):
            pred_finish = self.earliest_finish(pred_id)
            if pred_finish is not None:
                not_before = max(not_before, pred_finish)

        finish = None
        length = timedelta(minutes=task.duration)
        for start in iter_window_starts(self.time_range, task.duration, self.options.effective_granularity):
            end = start + length
            if start < not_before or not passes_time_filters(task, start, end):
                continue
            if all(self.availability.is_available(r_id, start, end) for r_id in task.required_resources):
                finish = end
                break

        self._earliest_finish[task_id] = finish
        return finish
