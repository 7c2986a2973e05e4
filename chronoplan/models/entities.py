from dataclasses import dataclass, field, replace
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Dict, List, Optional, Union


class DependencyKind(str, Enum):
    BEFORE = "before"
    AFTER = "after"
    SIMULTANEOUS = "simultaneous"


class Algorithm(str, Enum):
    GREEDY = "greedy"
    OPTIMAL = "optimal"
    BALANCED = "balanced"
    FAST = "fast"


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def _parse_time(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(value)


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open interval overlap: [start1, end1) and [start2, end2)."""
    return start1 < end2 and start2 < end1


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return _minutes(self.end - self.start)

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end

    def overlaps(self, other: "TimeWindow") -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)


@dataclass(frozen=True)
class PreferredWindow:
    start: datetime
    end: datetime
    weight: float = 0.5

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError("preferred window must end after it starts")
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError("preferred window weight must be in [0, 1]")

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end


@dataclass(frozen=True)
class WeeklyWindow:
    """Recurring availability: day_of_week 0 = Sunday ... 6 = Saturday."""

    day_of_week: int
    start: time
    end: time

    def __post_init__(self):
        object.__setattr__(self, "start", _parse_time(self.start))
        object.__setattr__(self, "end", _parse_time(self.end))


@dataclass(frozen=True)
class Dependency:
    task_id: str
    kind: DependencyKind = DependencyKind.AFTER

    def __post_init__(self):
        object.__setattr__(self, "kind", DependencyKind(self.kind))


@dataclass(frozen=True)
class DurationFlexibility:
    min: int
    max: int


@dataclass(frozen=True)
class Task:
    id: str
    duration: int  # minutes
    priority: int = 5
    deadline: Optional[datetime] = None
    earliest_start: Optional[datetime] = None
    latest_end: Optional[datetime] = None
    preferred_windows: List[PreferredWindow] = field(default_factory=list)
    required_resources: List[str] = field(default_factory=list)
    optional_resources: List[str] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    duration_flexibility: Optional[DurationFlexibility] = None
    title: Optional[str] = None

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"task {self.id}: duration must be positive")
        if not 1 <= self.priority <= 10:
            raise ValueError(f"task {self.id}: priority must be between 1 and 10")


@dataclass(frozen=True)
class Resource:
    id: str
    capacity: int = 1
    availability: List[WeeklyWindow] = field(default_factory=list)
    unavailable: List[TimeWindow] = field(default_factory=list)  # blackout intervals
    name: Optional[str] = None
    type: Optional[str] = None  # person, room, equipment, virtual

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError(f"resource {self.id}: capacity must be at least 1")


@dataclass(frozen=True)
class ConstraintViolation:
    type: str
    severity: str  # low, medium, high, critical
    description: str


@dataclass(frozen=True)
class ScheduledSlot:
    task_id: str
    resource_ids: List[str]
    start: datetime
    end: datetime
    actual_duration: int  # minutes
    confidence: float = 1.0
    constraint_violations: List[ConstraintViolation] = field(default_factory=list)
    optimization_score: float = 0.0

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"slot for {self.task_id} must end after it starts")
        if self.actual_duration != _minutes(self.end - self.start):
            raise ValueError(f"slot for {self.task_id}: actual_duration does not match start/end")

    @classmethod
    def at(cls, task_id: str, resource_ids: List[str], start: datetime, duration: int) -> "ScheduledSlot":
        return cls(
            task_id=task_id,
            resource_ids=list(resource_ids),
            start=start,
            end=start + timedelta(minutes=duration),
            actual_duration=duration,
        )

    def overlaps(self, other: "ScheduledSlot") -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)

    def shares_resource(self, other: "ScheduledSlot") -> bool:
        return bool(set(self.resource_ids) & set(other.resource_ids))

    def moved_to(self, start: datetime) -> "ScheduledSlot":
        return replace(self, start=start, end=start + timedelta(minutes=self.actual_duration))

    def with_resources(self, resource_ids: List[str]) -> "ScheduledSlot":
        return replace(self, resource_ids=list(resource_ids))


@dataclass
class ScheduleMetadata:
    generated_at: datetime
    algorithm: str = Algorithm.GREEDY.value
    computation_time_ms: float = 0.0
    iterations_performed: int = 0
    version: str = "1.0"


@dataclass
class Schedule:
    start_date: datetime
    end_date: datetime
    metadata: ScheduleMetadata
    slots: List[ScheduledSlot] = field(default_factory=list)
    unscheduled_tasks: List[str] = field(default_factory=list)
    optimization_score: float = 0.0
    constraints: Dict[str, List[str]] = field(default_factory=lambda: {"hard": [], "soft": []})
    status: str = "draft"

    @property
    def time_range(self) -> TimeWindow:
        return TimeWindow(self.start_date, self.end_date)

    def copy(self) -> "Schedule":
        """Copy with its own slot list; slots themselves are immutable and shared."""
        return replace(
            self,
            slots=list(self.slots),
            unscheduled_tasks=list(self.unscheduled_tasks),
            constraints={k: list(v) for k, v in self.constraints.items()},
            metadata=replace(self.metadata),
        )

    def slot_for(self, task_id: str) -> Optional[ScheduledSlot]:
        for slot in self.slots:
            if slot.task_id == task_id:
                return slot
        return None


@dataclass(frozen=True)
class ValidationReport:
    is_valid: bool
    violations: List[ConstraintViolation]
    score: float


@dataclass(frozen=True)
class AvailableSlot:
    start: datetime
    end: datetime
    duration: int
    score: float
