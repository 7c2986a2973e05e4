"""
Example: scheduling a week of work with hard and soft constraints

Shows how constraint records of different categories shape the schedule,
and how to read back validation and metrics.
"""

from datetime import datetime, timedelta

from chronoplan.config.settings import SchedulerOptions
from chronoplan.engine.scheduler import Scheduler
from chronoplan.models.constraints import Constraint
from chronoplan.models.entities import Dependency, Resource, Task, TimeWindow, WeeklyWindow
from chronoplan.utils.logging_config import setup_logging

setup_logging()

monday = datetime(2026, 10, 19)
week = TimeWindow(monday, monday + timedelta(days=5))

# 1. Resources: a person with the default business week and a room open mornings only
resources = [
    Resource(id="alice", name="Alice"),
    Resource(
        id="room-a",
        name="Conference Room A",
        availability=[WeeklyWindow(day, "08:00", "13:00") for day in range(1, 6)],
    ),
    Resource(id="room-b", name="Conference Room B"),
]

# 2. Tasks: the review must follow the draft, so the draft is ranked above it
tasks = [
    Task(id="draft", duration=120, priority=9, required_resources=["alice"]),
    Task(
        id="review",
        duration=60,
        priority=5,
        required_resources=["alice"],
        optional_resources=["room-a", "room-b"],
        dependencies=[Dependency("draft", "after")],
    ),
    Task(
        id="client-call",
        duration=45,
        priority=9,
        deadline=monday + timedelta(days=2),
        required_resources=["alice"],
    ),
]

# 3. Constraints: dependencies are enforced, mornings are preferred, lunch is protected
constraints = [
    Constraint(id="deps", type="hard", category="dependency"),
    Constraint(id="buffer", type="soft", category="temporal", weight=0.5,
               parameters={"rule": "buffer_time", "duration": 15}),
    Constraint(id="mornings", type="soft", category="time_preferences", weight=0.6,
               parameters={"start": "09:00", "end": "12:00"}),
    Constraint(id="lunch", type="soft", category="personal_preferences", weight=0.8,
               parameters={"avoid_start": "12:00", "avoid_end": "13:00"}),
]

# 4. Schedule with the annealing pass, reproducibly
scheduler = Scheduler(SchedulerOptions(algorithm="optimal", random_seed=7))
schedule = scheduler.generate_schedule(tasks, resources, constraints, week)

for slot in sorted(schedule.slots, key=lambda s: s.start):
    print(f"{slot.start:%a %H:%M}-{slot.end:%H:%M}  {slot.task_id:12} {', '.join(slot.resource_ids)}")
    for violation in slot.constraint_violations:
        print(f"    [{violation.severity}] {violation.description}")

report = scheduler.validate_schedule(schedule, tasks, resources, constraints)
metrics = scheduler.get_schedule_metrics(schedule)
print(f"valid={report.is_valid} score={metrics.optimization_score:.3f} "
      f"completion={metrics.completion_rate:.0%} utilization={metrics.utilization:.1%}")

# 5. Ask for free slots without committing anything
for free in scheduler.find_available_slots(resources[:2], 30, constraints, week, count=3):
    print(f"free: {free.start:%a %H:%M}-{free.end:%H:%M} score={free.score:.2f}")
