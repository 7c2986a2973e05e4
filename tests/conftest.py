from datetime import datetime, timedelta

import pytest

from chronoplan.config.settings import SchedulerOptions
from chronoplan.engine.context import SchedulingContext
from chronoplan.engine.scheduler import Scheduler
from chronoplan.models.entities import Resource, Task, TimeWindow
from chronoplan.utils.clock import FixedClock

# 2026-10-19 is a Monday
MONDAY = datetime(2026, 10, 19)


def at(hour, minute=0, day=0):
    """Datetime on the test week: ``day`` days after Monday."""
    return MONDAY + timedelta(days=day, hours=hour, minutes=minute)


def build_context(tasks, resources, constraints=(), time_range=None, **options):
    time_range = time_range or TimeWindow(MONDAY, MONDAY + timedelta(days=1))
    return SchedulingContext.build(
        list(tasks), list(resources), list(constraints), time_range, SchedulerOptions(**options)
    )


@pytest.fixture
def monday():
    return MONDAY


@pytest.fixture
def workday():
    """Monday, midnight to midnight."""
    return TimeWindow(MONDAY, MONDAY + timedelta(days=1))


@pytest.fixture
def week():
    return TimeWindow(MONDAY, MONDAY + timedelta(days=5))


@pytest.fixture
def fixed_clock():
    """Clock frozen at Monday midnight; budgets never run out."""
    return FixedClock(MONDAY)


@pytest.fixture
def simple_task():
    """Single one-hour task on one resource."""
    return Task(id="task-1", duration=60, required_resources=["resource-1"])


@pytest.fixture
def simple_resource():
    """Single resource with the default business week."""
    return Resource(id="resource-1")


@pytest.fixture
def conflicting_tasks():
    """Two tasks sharing a resource."""
    return [
        Task(id="task-1", duration=60, required_resources=["room-a"]),
        Task(id="task-2", duration=30, required_resources=["room-a"]),
    ]


@pytest.fixture
def simple_resources():
    return [Resource(id="room-a"), Resource(id="room-b")]


@pytest.fixture
def complex_scenario():
    """Multi-task, multi-resource scheduling problem."""
    tasks = [
        Task(id="interview-1", duration=60, priority=8, required_resources=["room-a", "alice"]),
        Task(id="interview-2", duration=30, priority=6, required_resources=["room-a", "bob"]),
        Task(id="interview-3", duration=45, priority=5, required_resources=["charlie"],
             optional_resources=["room-b"]),
        Task(id="debrief", duration=30, priority=4, required_resources=["alice", "bob"]),
        Task(id="prep", duration=90, priority=3, required_resources=["charlie"],
             earliest_start=at(13)),
    ]
    resources = [
        Resource(id="room-a", type="room"),
        Resource(id="room-b", type="room"),
        Resource(id="alice", type="person"),
        Resource(id="bob", type="person"),
        Resource(id="charlie", type="person"),
    ]
    return tasks, resources


@pytest.fixture
def scheduler(fixed_clock):
    """Greedy scheduler with a frozen clock."""
    return Scheduler(SchedulerOptions(algorithm="greedy", random_seed=0), clock=fixed_clock)
