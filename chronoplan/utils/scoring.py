"""
Schedule quality score.

    score = 0.4 * completion + 0.3 * constraint_satisfaction
          + 0.2 * resource_balance + 0.1 * compactness

Every term is normalized to [0, 1]; higher is better.
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List

from chronoplan.models.entities import Schedule, ScheduledSlot

SCORE_WEIGHTS = {
    "completion": 0.4,
    "constraint_satisfaction": 0.3,
    "resource_balance": 0.2,
    "compactness": 0.1,
}


def completion_rate(schedule: Schedule) -> float:
    total = len(schedule.slots) + len(schedule.unscheduled_tasks)
    if total == 0:
        return 1.0
    return len(schedule.slots) / total


def constraint_satisfaction(slots: List[ScheduledSlot]) -> float:
    checked = len(slots)
    violating = sum(1 for s in slots if s.constraint_violations)
    if violating == 0:
        return 1.0
    return (checked - violating) / checked


def resource_balance(slots: List[ScheduledSlot], resource_ids: Iterable[str] = ()) -> float:
    """1 / (1 + coefficient of variation) of booked minutes per resource."""
    load: Dict[str, float] = {r_id: 0.0 for r_id in resource_ids}
    for slot in slots:
        for r_id in slot.resource_ids:
            load[r_id] = load.get(r_id, 0.0) + slot.actual_duration

    values = list(load.values())
    if not values or sum(values) == 0:
        return 1.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return 1.0 / (1.0 + math.sqrt(variance) / mean)


def compactness(slots: List[ScheduledSlot]) -> float:
    """1 / (1 + average idle hours between consecutive same-day slots per resource)."""
    by_resource_day: Dict[tuple, List[ScheduledSlot]] = defaultdict(list)
    for slot in slots:
        for r_id in slot.resource_ids:
            by_resource_day[(r_id, slot.start.date())].append(slot)

    gaps: List[float] = []
    for day_slots in by_resource_day.values():
        day_slots.sort(key=lambda s: s.start)
        for prev, nxt in zip(day_slots, day_slots[1:]):
            gaps.append(max(0.0, (nxt.start - prev.end).total_seconds() / 60))

    if not gaps:
        return 1.0
    average = sum(gaps) / len(gaps)
    return 1.0 / (1.0 + average / 60)


def score_components(schedule: Schedule, resource_ids: Iterable[str] = ()) -> Dict[str, float]:
    return {
        "completion": completion_rate(schedule),
        "constraint_satisfaction": constraint_satisfaction(schedule.slots),
        "resource_balance": resource_balance(schedule.slots, resource_ids),
        "compactness": compactness(schedule.slots),
    }


def score_schedule(schedule: Schedule, resource_ids: Iterable[str] = ()) -> float:
    components = score_components(schedule, resource_ids)
    return sum(SCORE_WEIGHTS[name] * value for name, value in components.items())
