import random
import threading
from datetime import timedelta

import pytest

from conftest import MONDAY, at, build_context

from chronoplan.engine.local_search import SimulatedAnnealingOptimizer
from chronoplan.engine.priority import PriorityRanker
from chronoplan.engine.solver import GreedyConstructor
from chronoplan.models.constraints import Constraint
from chronoplan.models.entities import (
    Dependency,
    PreferredWindow,
    Resource,
    Schedule,
    ScheduledSlot,
    ScheduleMetadata,
    Task,
    TimeWindow,
)
from chronoplan.utils.clock import FixedClock


def _empty_schedule(context):
    return Schedule(
        start_date=context.time_range.start,
        end_date=context.time_range.end,
        metadata=ScheduleMetadata(generated_at=MONDAY),
    )


def _construct(tasks, resources, constraints=(), **options):
    context = build_context(tasks, resources, constraints, **options)
    ranked = PriorityRanker(context.graph, FixedClock(MONDAY)).rank(tasks)
    return GreedyConstructor(context).construct(ranked, _empty_schedule(context)), context


class TestGreedyConstructor:
    """Unit tests for the greedy construction pass."""

    def test_simple_task_placed_at_opening(self, simple_task, simple_resource):
        """Single task lands on the first feasible window."""
        schedule, _ = _construct([simple_task], [simple_resource])

        slot = schedule.slot_for("task-1")
        assert slot.start == at(9)
        assert slot.end == at(10)
        assert slot.resource_ids == ["resource-1"]
        assert schedule.unscheduled_tasks == []

    def test_no_overlap_on_shared_resource(self, conflicting_tasks, simple_resources):
        schedule, _ = _construct(conflicting_tasks, simple_resources)

        first, second = schedule.slot_for("task-1"), schedule.slot_for("task-2")
        assert first.start == at(9)
        assert second.start == at(10)
        assert not first.overlaps(second)

    def test_time_bounds_respected(self, simple_resource):
        task = Task(id="bounded", duration=30, required_resources=["resource-1"],
                    earliest_start=at(13), latest_end=at(14))

        schedule, _ = _construct([task], [simple_resource])

        assert schedule.slot_for("bounded").start == at(13)

    def test_preferred_windows_filter_candidates(self, simple_resource):
        task = Task(id="t", duration=60, required_resources=["resource-1"],
                    preferred_windows=[PreferredWindow(at(14), at(16), 0.5)])

        schedule, _ = _construct([task], [simple_resource])

        assert schedule.slot_for("t").start == at(14)

    def test_infeasible_task_left_unscheduled(self, simple_resource):
        task = Task(id="t", duration=120, required_resources=["resource-1"],
                    earliest_start=at(10), latest_end=at(11))

        schedule, _ = _construct([task], [simple_resource])

        assert schedule.slots == []
        assert schedule.unscheduled_tasks == ["t"]

    def test_optional_resource_attached(self):
        task = Task(id="t", duration=60, required_resources=["alice"], optional_resources=["room-a", "room-b"])

        schedule, _ = _construct([task], [Resource(id="alice"), Resource(id="room-a"), Resource(id="room-b")])

        assert schedule.slot_for("t").resource_ids == ["alice", "room-a"]

    def test_hard_business_hours(self, simple_task, simple_resource):
        c = Constraint(id="bh", type="hard", category="temporal",
                       parameters={"rule": "business_hours", "start": "10:00", "end": "12:00"})

        schedule, _ = _construct([simple_task], [simple_resource], [c])

        assert schedule.slot_for("task-1").start == at(10)

    def test_soft_time_preference_steers_placement(self, simple_task, simple_resource):
        c = Constraint(id="pm", type="soft", category="time_preferences", weight=1.0,
                       parameters={"start": "14:00", "end": "16:00"})

        schedule, _ = _construct([simple_task], [simple_resource], [c])

        slot = schedule.slot_for("task-1")
        assert slot.start == at(14)
        assert slot.constraint_violations == []

    def test_buffer_time_between_tasks(self, simple_resources):
        tasks = [
            Task(id="a", duration=60, priority=9, required_resources=["room-a"]),
            Task(id="b", duration=60, priority=1, required_resources=["room-a"]),
        ]
        c = Constraint(id="buf", type="hard", category="temporal",
                       parameters={"rule": "buffer_time", "duration": 15})

        schedule, _ = _construct(tasks, simple_resources, [c])

        assert schedule.slot_for("a").start == at(9)
        assert schedule.slot_for("b").start == at(10, 15)

    def test_hard_dependency_orders_tasks(self, simple_resources):
        tasks = [
            Task(id="draft", duration=120, priority=10, required_resources=["room-a"]),
            Task(id="review", duration=60, priority=1, required_resources=["room-b"],
                 dependencies=[Dependency("draft")]),
        ]
        c = Constraint(id="deps", type="hard", category="dependency")

        schedule, _ = _construct(tasks, simple_resources, [c])

        assert schedule.slot_for("draft").start == at(9)
        assert schedule.slot_for("review").start == at(11)

    def test_soft_dependency_leaves_room_for_predecessor(self, simple_resources):
        tasks = [
            Task(id="draft", duration=60, priority=1, required_resources=["room-a"]),
            Task(id="review", duration=60, priority=10, required_resources=["room-a"],
                 dependencies=[Dependency("draft")]),
        ]
        c = Constraint(id="deps", type="soft", category="dependency", weight=0.5)

        schedule, _ = _construct(tasks, simple_resources, [c])

        assert schedule.slot_for("review").start == at(10)
        assert schedule.slot_for("draft").start == at(9)
        assert all(slot.constraint_violations == [] for slot in schedule.slots)

    def test_soft_dependency_records_violation(self, simple_resources):
        tasks = [
            Task(id="draft", duration=60, priority=1, required_resources=["room-a"], earliest_start=at(13)),
            Task(id="review", duration=60, priority=10, required_resources=["room-a"],
                 latest_end=at(12), dependencies=[Dependency("draft")]),
        ]
        c = Constraint(id="deps", type="soft", category="dependency", weight=0.5)

        schedule, _ = _construct(tasks, simple_resources, [c])

        assert schedule.slot_for("review").start == at(9)
        assert schedule.slot_for("draft").start == at(13)
        for slot in schedule.slots:
            assert [v.type for v in slot.constraint_violations] == ["dependency"]
            assert slot.confidence == pytest.approx(0.9)

    def test_hard_dependency_chain_with_equal_priorities(self, simple_resources):
        """Each task keeps the earliest window free for the tasks it depends on."""
        tasks = [
            Task(id="a", duration=60, required_resources=["room-a"]),
            Task(id="b", duration=60, required_resources=["room-a"], dependencies=[Dependency("a")]),
            Task(id="c", duration=60, required_resources=["room-a"], dependencies=[Dependency("b")]),
        ]
        c = Constraint(id="deps", type="hard", category="dependency")

        schedule, _ = _construct(tasks, simple_resources, [c])

        assert schedule.unscheduled_tasks == []
        assert [schedule.slot_for(t).start for t in ("a", "b", "c")] == [at(9), at(10), at(11)]

    def test_fast_granularity(self, simple_resource):
        task = Task(id="t", duration=30, required_resources=["resource-1"], earliest_start=at(9, 10))

        schedule, _ = _construct([task], [simple_resource], algorithm="fast")

        assert schedule.slot_for("t").start == at(10)

    def test_construct_annotates_scores(self, complex_scenario):
        tasks, resources = complex_scenario

        schedule, _ = _construct(tasks, resources)

        assert len(schedule.slots) == len(tasks)
        assert 0.0 < schedule.optimization_score <= 1.0
        for slot in schedule.slots:
            assert 0.0 <= slot.optimization_score <= 1.0


class TestSimulatedAnnealing:
    """Unit tests for the annealing refinement."""

    def _optimizer(self, context, seed=0, clock=None):
        return SimulatedAnnealingOptimizer(context, random.Random(seed), clock or FixedClock(MONDAY))

    def test_never_worse_than_start(self, complex_scenario):
        tasks, resources = complex_scenario
        schedule, context = _construct(tasks, resources)

        best, performed = self._optimizer(context).optimize(schedule, 200, 30000, MONDAY)

        assert performed == 200
        assert best.optimization_score >= schedule.optimization_score - 1e-12
        assert {s.task_id for s in best.slots} == {s.task_id for s in schedule.slots}

    def test_input_schedule_untouched(self, complex_scenario):
        tasks, resources = complex_scenario
        schedule, context = _construct(tasks, resources)
        before = list(schedule.slots)

        self._optimizer(context).optimize(schedule, 100, 30000, MONDAY)

        assert schedule.slots == before

    def test_same_seed_same_result(self, complex_scenario):
        tasks, resources = complex_scenario
        schedule, context = _construct(tasks, resources)

        first, _ = self._optimizer(context, seed=42).optimize(schedule, 150, 30000, MONDAY)
        second, _ = self._optimizer(context, seed=42).optimize(schedule, 150, 30000, MONDAY)

        assert [(s.task_id, s.start, s.resource_ids) for s in first.slots] == \
            [(s.task_id, s.start, s.resource_ids) for s in second.slots]

    def test_budget_stops_iterations(self, complex_scenario):
        tasks, resources = complex_scenario
        schedule, context = _construct(tasks, resources)
        clock = FixedClock(MONDAY, tick=timedelta(milliseconds=10))

        _, performed = self._optimizer(context, clock=clock).optimize(schedule, 1000, 50, MONDAY)

        assert performed < 1000

    def test_cancellation(self, complex_scenario):
        tasks, resources = complex_scenario
        schedule, context = _construct(tasks, resources)
        cancel = threading.Event()
        cancel.set()

        best, performed = self._optimizer(context).optimize(schedule, 100, 30000, MONDAY, cancel)

        assert performed == 0
        assert [s.start for s in best.slots] == [s.start for s in schedule.slots]

    def test_swap_exchanges_start_times(self):
        tasks = [
            Task(id="a", duration=60, required_resources=["r1"]),
            Task(id="b", duration=30, required_resources=["r2"]),
        ]
        context = build_context(tasks, [Resource(id="r1"), Resource(id="r2")])
        schedule = _empty_schedule(context)
        schedule.slots = [ScheduledSlot.at("a", ["r1"], at(9), 60), ScheduledSlot.at("b", ["r2"], at(13), 30)]

        swapped = self._optimizer(context).swap_random_tasks(schedule)

        assert swapped.slot_for("a").start == at(13)
        assert swapped.slot_for("a").actual_duration == 60
        assert swapped.slot_for("b").start == at(9)
        assert swapped.slot_for("b").end == at(9, 30)

    def test_shift_outside_range_discarded(self, simple_task):
        window = TimeWindow(at(10), at(11))
        context = build_context([simple_task], [], time_range=window)
        schedule = _empty_schedule(context)
        schedule.slots = [ScheduledSlot.at("task-1", ["resource-1"], at(10), 60)]
        optimizer = self._optimizer(context)

        for _ in range(20):
            assert optimizer.shift_random_task(schedule) is None

    def test_shift_preserves_duration_and_bounds(self, simple_task, simple_resource):
        context = build_context([simple_task], [simple_resource])
        schedule = _empty_schedule(context)
        schedule.slots = [ScheduledSlot.at("task-1", ["resource-1"], at(12), 60)]
        optimizer = self._optimizer(context, seed=3)

        for _ in range(50):
            shifted = optimizer.shift_random_task(schedule)
            if shifted is None:
                continue
            slot = shifted.slots[0]
            assert slot.actual_duration == 60
            assert abs((slot.start - at(12)).total_seconds()) <= 120 * 60
            assert at(9) <= slot.start and slot.end <= at(17)

    def test_reassign_uses_unused_optional_resource(self):
        task = Task(id="t", duration=60, required_resources=["alice"], optional_resources=["room-a", "room-b"])
        context = build_context([task], [Resource(id="alice"), Resource(id="room-a"), Resource(id="room-b")])
        schedule = _empty_schedule(context)
        schedule.slots = [ScheduledSlot.at("t", ["alice", "room-a"], at(9), 60)]

        moved = self._optimizer(context).reassign_random_resources(schedule)

        assert moved.slots[0].resource_ids == ["alice", "room-b"]
        assert schedule.slots[0].resource_ids == ["alice", "room-a"]

    def test_reassign_without_optional_resources(self, simple_task, simple_resource):
        context = build_context([simple_task], [simple_resource])
        schedule = _empty_schedule(context)
        schedule.slots = [ScheduledSlot.at("task-1", ["resource-1"], at(9), 60)]

        assert self._optimizer(context).reassign_random_resources(schedule) is None
