"""
Candidate Slot Generator.

Walks the request time range day by day and, within each day, from midnight
at the configured granularity, producing ``[start, start + duration)``
windows. A window is dropped here, before any feasibility check, when it
violates the task's own temporal bounds: earliest start, latest end,
deadline, or (when the task declares any) its preferred windows.
"""

from datetime import datetime, timedelta
from typing import Iterator, List

from chronoplan.models.entities import ScheduledSlot, Task, TimeWindow


def passes_time_filters(task: Task, start: datetime, end: datetime) -> bool:
    if task.earliest_start and start < task.earliest_start:
        return False
    if task.latest_end and end > task.latest_end:
        return False
    if task.deadline and end > task.deadline:
        return False
    if task.preferred_windows and not any(w.contains(start, end) for w in task.preferred_windows):
        return False
    return True


def iter_window_starts(time_range: TimeWindow, duration: int, granularity: int) -> Iterator[datetime]:
    """Clock-aligned starts whose ``duration``-minute window fits in ``time_range``."""
    step = timedelta(minutes=granularity)
    length = timedelta(minutes=duration)
    day = time_range.start.replace(hour=0, minute=0, second=0, microsecond=0)
    while day < time_range.end:
        next_day = day + timedelta(days=1)
        start = day
        while start < next_day:
            if start >= time_range.start and start + length <= time_range.end:
                yield start
            start += step
        day = next_day


def resource_variants(task: Task) -> List[List[str]]:
    """Required resources plus one optional resource each, then required alone."""
    required = list(task.required_resources)
    variants = [required + [r] for r in task.optional_resources if r not in required]
    variants.append(required)
    return variants


def generate_candidate_slots(task: Task, time_range: TimeWindow, granularity: int) -> Iterator[ScheduledSlot]:
    """Candidates in generation order: earliest first, optional-resource variants first."""
    length = timedelta(minutes=task.duration)
    variants = resource_variants(task)
    for start in iter_window_starts(time_range, task.duration, granularity):
        if not passes_time_filters(task, start, start + length):
            continue
        for resource_ids in variants:
            yield ScheduledSlot.at(task.id, resource_ids, start, task.duration)
