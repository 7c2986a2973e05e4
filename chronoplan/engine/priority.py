"""
Priority Ranker.

Composite urgency per task:

    score = priority + deadline_bonus + 2 * dependency_depth + constraint_complexity

The descending, stable order of this score is the only sequence the greedy
constructor uses, so ties keep input order.
"""

from datetime import datetime
from typing import List, Tuple

from chronoplan.graph.dependency_graph import DependencyGraph
from chronoplan.models.entities import Task
from chronoplan.utils.clock import Clock

# (days to deadline strictly below, bonus)
DEADLINE_BONUSES: List[Tuple[float, int]] = [(1, 10), (3, 5), (7, 2)]


def deadline_bonus(task: Task, now: datetime) -> int:
    if task.deadline is None:
        return 0
    days = (task.deadline - now).total_seconds() / 86400.0
    for threshold, bonus in DEADLINE_BONUSES:
        if days < threshold:
            return bonus
    return 0


def constraint_complexity(task: Task) -> float:
    complexity = 2 * len(task.required_resources) + len(task.preferred_windows)
    if task.duration_flexibility:
        flex = task.duration_flexibility.max - task.duration_flexibility.min
        complexity += min(5.0, flex / 30)
    return complexity


class PriorityRanker:
    def __init__(self, graph: DependencyGraph, clock: Clock):
        self.graph = graph
        self.clock = clock

    def score(self, task: Task, now: datetime = None) -> float:
        now = now or self.clock.now()
        return (
            task.priority
            + deadline_bonus(task, now)
            + 2 * self.graph.depth(task.id)
            + constraint_complexity(task)
        )

    def rank(self, tasks: List[Task]) -> List[Task]:
        now = self.clock.now()
        scores = {t.id: self.score(t, now) for t in tasks}
        return sorted(tasks, key=lambda t: -scores[t.id])
