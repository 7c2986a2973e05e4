import random
from dataclasses import dataclass
from typing import Iterable, List, Optional

from chronoplan.config.settings import SchedulerOptions
from chronoplan.engine.scheduler import Scheduler
from chronoplan.models.constraints import Constraint
from chronoplan.models.entities import Algorithm, Resource, Task, TimeWindow
from chronoplan.utils.clock import Clock
from chronoplan.utils.metrics import get_schedule_metrics


@dataclass
class BenchmarkResult:
    algorithm: str
    time_ms: float
    score: float
    completion_rate: float
    num_tasks: int


def benchmark_algorithms(
    tasks: List[Task],
    resources: List[Resource],
    constraints: List[Constraint],
    time_range: TimeWindow,
    algorithms: Iterable[Algorithm] = tuple(Algorithm),
    options: Optional[SchedulerOptions] = None,
    seed: int = 0,
    clock: Optional[Clock] = None,
) -> List[BenchmarkResult]:
    """
    Run every algorithm mode on the same instance with the same seed.
    Returns one BenchmarkResult per mode, in the order given.
    """
    base = options or SchedulerOptions.from_settings()
    results = []
    for algorithm in algorithms:
        run_options = base.model_copy(update={"algorithm": Algorithm(algorithm)})
        scheduler = Scheduler(run_options, clock=clock, rng=random.Random(seed))
        schedule = scheduler.generate_schedule(tasks, resources, constraints, time_range)
        metrics = get_schedule_metrics(schedule)
        results.append(BenchmarkResult(
            algorithm=metrics.algorithm,
            time_ms=metrics.computation_time_ms,
            score=metrics.optimization_score,
            completion_rate=metrics.completion_rate,
            num_tasks=metrics.total_tasks,
        ))
    return results
