from dataclasses import asdict, dataclass
from typing import Any, Dict

from chronoplan.models.entities import Schedule


@dataclass(frozen=True)
class ScheduleMetrics:
    total_tasks: int
    scheduled_tasks: int
    unscheduled_tasks: int
    completion_rate: float
    total_duration: int  # minutes
    utilization: float
    optimization_score: float
    computation_time_ms: float
    algorithm: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_schedule_metrics(schedule: Schedule) -> ScheduleMetrics:
    """Summary statistics derived only from the finished schedule."""
    scheduled = len(schedule.slots)
    total = scheduled + len(schedule.unscheduled_tasks)
    total_duration = sum(slot.actual_duration for slot in schedule.slots)
    schedule_minutes = (schedule.end_date - schedule.start_date).total_seconds() / 60

    return ScheduleMetrics(
        total_tasks=total,
        scheduled_tasks=scheduled,
        unscheduled_tasks=len(schedule.unscheduled_tasks),
        completion_rate=scheduled / total if total > 0 else 0.0,
        total_duration=total_duration,
        utilization=total_duration / schedule_minutes if schedule_minutes > 0 else 0.0,
        optimization_score=schedule.optimization_score,
        computation_time_ms=schedule.metadata.computation_time_ms,
        algorithm=schedule.metadata.algorithm,
    )
