"""
Constraint rules, one per constraint category.

A rule inspects one slot against the slots already placed for other tasks and
returns a violation description, or ``None`` when the slot satisfies it. The
same rule serves hard and soft constraints: the feasibility checker rejects a
candidate on a hard violation, the evaluator records a soft one on the slot.
"""

from abc import ABC, abstractmethod
from datetime import datetime, time
from typing import TYPE_CHECKING, Dict, List, Optional

from chronoplan.engine.availability import day_of_week
from chronoplan.models.constraints import (
    BusinessOptimizationParameters,
    BusinessRulesParameters,
    CapacityParameters,
    Constraint,
    ConstraintCategory,
    DependencyParameters,
    PersonalPreferencesParameters,
    ResourceOptimizationParameters,
    TemporalParameters,
    TimePreferencesParameters,
)
from chronoplan.models.entities import ConstraintViolation, ScheduledSlot, Task

if TYPE_CHECKING:
    from chronoplan.engine.context import SchedulingContext


def _minutes_between(a: ScheduledSlot, b: ScheduledSlot) -> float:
    """Idle minutes between two slots; negative when they overlap."""
    if a.start <= b.start:
        return (b.start - a.end).total_seconds() / 60
    return (a.start - b.end).total_seconds() / 60


def sharing_resource(slot: ScheduledSlot, others: List[ScheduledSlot], resources: Optional[List[str]] = None) -> List[ScheduledSlot]:
    wanted = set(slot.resource_ids)
    if resources:
        wanted &= set(resources)
    return [o for o in others if o.task_id != slot.task_id and wanted & set(o.resource_ids)]


def nearest_gap_minutes(slot: ScheduledSlot, others: List[ScheduledSlot]) -> Optional[float]:
    """Smallest idle gap to a same-day, non-overlapping slot on a shared resource."""
    gaps = [
        _minutes_between(slot, o)
        for o in sharing_resource(slot, others)
        if o.start.date() == slot.start.date() and not o.overlaps(slot)
    ]
    return min(gaps) if gaps else None


def within_daily_window(slot: ScheduledSlot, start: time, end: time) -> bool:
    if slot.end.date() != slot.start.date():
        return False
    return start <= slot.start.time() and slot.end.time() <= end


def _overlaps_daily_window(slot: ScheduledSlot, start: time, end: time) -> bool:
    day = slot.start.date()
    tz = slot.start.tzinfo
    win_start = datetime.combine(day, start, tzinfo=tz)
    win_end = datetime.combine(day, end, tzinfo=tz)
    return slot.start < win_end and win_start < slot.end


class ConstraintRule(ABC):
    category: ConstraintCategory

    @abstractmethod
    def evaluate(
        self,
        params,
        task: Task,
        slot: ScheduledSlot,
        others: List[ScheduledSlot],
        context: "SchedulingContext",
    ) -> Optional[str]:
        """Return a violation description, or None when satisfied."""
        pass


class TemporalRule(ConstraintRule):
    category = ConstraintCategory.TEMPORAL

    def evaluate(self, params: TemporalParameters, task, slot, others, context):
        if params.rule == "business_hours":
            if not within_daily_window(slot, params.start, params.end):
                return f"outside business hours {params.start:%H:%M}-{params.end:%H:%M}"
            return None

        neighbours = sharing_resource(slot, others, params.resources)
        if params.rule == "no_overlap":
            for other in neighbours:
                if other.overlaps(slot):
                    return f"overlaps task {other.task_id}"
            return None

        buffer = params.duration if params.duration is not None else context.options.buffer_time_minutes_default
        for other in neighbours:
            gap = _minutes_between(slot, other)
            if gap < buffer:
                return f"only {max(gap, 0):.0f} min from task {other.task_id}, buffer is {buffer} min"
        return None


class CapacityRule(ConstraintRule):
    category = ConstraintCategory.CAPACITY

    def evaluate(self, params: CapacityParameters, task, slot, others, context):
        resource_ids = [params.resource_id] if params.resource_id else slot.resource_ids
        for r_id in resource_ids:
            if r_id not in slot.resource_ids:
                continue
            concurrent = sum(1 for o in others if r_id in o.resource_ids and o.overlaps(slot))
            if concurrent >= params.max_count:
                return f"resource {r_id} already has {concurrent} concurrent bookings (max {params.max_count})"
        return None


class DependencyRule(ConstraintRule):
    """Predecessors end before successors start; an unplaced predecessor keeps its earliest window free."""

    category = ConstraintCategory.DEPENDENCY

    def evaluate(self, params: DependencyParameters, task, slot, others, context):
        tid = slot.task_id
        if params.task_id is not None:
            pairs = [(params.predecessor_id, params.task_id)]
        else:
            pairs = [(p, tid) for p in context.graph.predecessors(tid)]
            pairs += [(tid, s) for s in context.graph.successors(tid)]

        placed: Dict[str, ScheduledSlot] = {o.task_id: o for o in others}
        placed[tid] = slot
        for first, then in pairs:
            if tid not in (first, then):
                continue
            first_slot, then_slot = placed.get(first), placed.get(then)
            if first_slot and then_slot:
                if first_slot.end > then_slot.start:
                    return f"task {first} must finish before task {then} starts"
            elif tid == then and first in context.tasks:
                # predecessor not placed yet: leave room for it
                lead = context.earliest_finish(first)
                if lead is not None and slot.start < lead:
                    return f"task {then} starts before task {first} can finish"
        return None


class BusinessRulesRule(ConstraintRule):
    category = ConstraintCategory.BUSINESS_RULES

    def evaluate(self, params: BusinessRulesParameters, task, slot, others, context):
        if params.rule == "business_hours":
            if not within_daily_window(slot, params.start, params.end):
                return f"outside business hours {params.start:%H:%M}-{params.end:%H:%M}"
            return None

        limit = params.max_hours * 60
        for r_id in slot.resource_ids:
            day_slots = sorted(
                [o for o in others if r_id in o.resource_ids and o.start.date() == slot.start.date()] + [slot],
                key=lambda s: s.start,
            )
            run_start, run_end, in_run = day_slots[0].start, day_slots[0].end, day_slots[0] is slot
            for current in day_slots[1:]:
                if (current.start - run_end).total_seconds() / 60 < params.break_minutes:
                    run_end = max(run_end, current.end)
                else:
                    if in_run:
                        break
                    run_start, run_end = current.start, current.end
                in_run = in_run or current is slot
            span = (run_end - run_start).total_seconds() / 60
            if in_run and span > limit:
                return f"resource {r_id} works {span / 60:.1f}h without a {params.break_minutes} min break"
        return None


class TimePreferencesRule(ConstraintRule):
    category = ConstraintCategory.TIME_PREFERENCES

    def evaluate(self, params: TimePreferencesParameters, task, slot, others, context):
        if params.days and day_of_week(slot.start) not in params.days:
            return "scheduled on a non-preferred day"
        if not within_daily_window(slot, params.start, params.end):
            return f"outside preferred hours {params.start:%H:%M}-{params.end:%H:%M}"
        return None


class ResourceOptimizationRule(ConstraintRule):
    category = ConstraintCategory.RESOURCE_OPTIMIZATION

    def evaluate(self, params: ResourceOptimizationParameters, task, slot, others, context):
        if params.preferred_resources and not set(slot.resource_ids) & set(params.preferred_resources):
            return "uses none of the preferred resources"
        return None


class PersonalPreferencesRule(ConstraintRule):
    category = ConstraintCategory.PERSONAL_PREFERENCES

    def evaluate(self, params: PersonalPreferencesParameters, task, slot, others, context):
        if day_of_week(slot.start) in params.avoid_days:
            return "scheduled on an avoided day"
        if params.avoid_start is not None and _overlaps_daily_window(slot, params.avoid_start, params.avoid_end):
            return f"overlaps avoided hours {params.avoid_start:%H:%M}-{params.avoid_end:%H:%M}"
        return None


class BusinessOptimizationRule(ConstraintRule):
    category = ConstraintCategory.BUSINESS_OPTIMIZATION

    def evaluate(self, params: BusinessOptimizationParameters, task, slot, others, context):
        gap = nearest_gap_minutes(slot, others)
        if gap is not None and gap > params.max_gap_minutes:
            return f"leaves a {gap:.0f} min gap (max {params.max_gap_minutes})"
        return None


RULES: Dict[ConstraintCategory, ConstraintRule] = {
    rule.category: rule
    for rule in (
        TemporalRule(),
        CapacityRule(),
        DependencyRule(),
        BusinessRulesRule(),
        TimePreferencesRule(),
        ResourceOptimizationRule(),
        PersonalPreferencesRule(),
        BusinessOptimizationRule(),
    )
}

_missing = set(ConstraintCategory) - set(RULES)
if _missing:
    raise RuntimeError(f"no rule registered for categories: {sorted(c.value for c in _missing)}")


def severity_for(constraint: Constraint) -> str:
    if constraint.is_hard:
        return "critical"
    return "medium" if constraint.weight >= 0.7 else "low"


def evaluate_constraint(
    constraint: Constraint,
    task: Task,
    slot: ScheduledSlot,
    others: List[ScheduledSlot],
    context: "SchedulingContext",
) -> Optional[ConstraintViolation]:
    if not constraint.applies_to(task.id):
        return None
    description = RULES[constraint.category].evaluate(constraint.parameters, task, slot, others, context)
    if description is None:
        return None
    return ConstraintViolation(
        type=constraint.category.value,
        severity=severity_for(constraint),
        description=f"{constraint.name or constraint.id}: {description}",
    )
