import logging
from typing import Dict, Iterable, List, Optional

from chronoplan.exceptions import CircularDependencyError
from chronoplan.models.entities import DependencyKind, Task

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Ordering relations between the tasks of one request.

    ``forward[a]`` lists tasks that must follow ``a``; ``reverse[a]`` lists
    tasks ``a`` must follow. ``simultaneous`` links are accepted but carry no
    ordering.
    """

    def __init__(self, task_ids: Iterable[str]):
        self.forward: Dict[str, List[str]] = {}
        self.reverse: Dict[str, List[str]] = {}
        for tid in task_ids:
            self.forward[tid] = []
            self.reverse[tid] = []
        self._depth: Dict[str, int] = {}

    @classmethod
    def build(cls, tasks: List[Task]) -> "DependencyGraph":
        graph = cls(t.id for t in tasks)
        for task in tasks:
            for dep in task.dependencies:
                if dep.task_id not in graph.forward:
                    logger.warning("Task %s depends on unknown task %s; ignoring", task.id, dep.task_id)
                    continue
                if dep.kind == DependencyKind.AFTER:
                    graph.add_edge(dep.task_id, task.id)
                elif dep.kind == DependencyKind.BEFORE:
                    graph.add_edge(task.id, dep.task_id)
        return graph

    def add_edge(self, first: str, then: str) -> None:
        """Record that ``then`` must follow ``first``."""
        if then not in self.forward[first]:
            self.forward[first].append(then)
            self.reverse[then].append(first)
        self._depth.clear()

    def predecessors(self, task_id: str) -> List[str]:
        return self.reverse.get(task_id, [])

    def successors(self, task_id: str) -> List[str]:
        return self.forward.get(task_id, [])

    def detect_cycles(self) -> None:
        """
        Depth-first search over the reverse graph with a recursion stack.

        Raises:
            CircularDependencyError: naming the first cycle found.
        """
        visited = set()
        stack: List[str] = []
        on_stack = set()

        def dfs(task_id: str) -> Optional[List[str]]:
            if task_id in on_stack:
                return stack[stack.index(task_id):] + [task_id]
            if task_id in visited:
                return None
            visited.add(task_id)
            stack.append(task_id)
            on_stack.add(task_id)
            for dep_id in self.reverse[task_id]:
                cycle = dfs(dep_id)
                if cycle:
                    return cycle
            stack.pop()
            on_stack.discard(task_id)
            return None

        for task_id in self.reverse:
            cycle = dfs(task_id)
            if cycle:
                raise CircularDependencyError(cycle)

    def depth(self, task_id: str) -> int:
        """Length of the longest chain of predecessors feeding into ``task_id``."""
        if task_id in self._depth:
            return self._depth[task_id]
        guard = set()

        def longest(tid: str) -> int:
            if tid in self._depth:
                return self._depth[tid]
            if tid in guard:
                raise CircularDependencyError([tid, tid])
            guard.add(tid)
            value = max((longest(p) + 1 for p in self.reverse.get(tid, [])), default=0)
            guard.discard(tid)
            self._depth[tid] = value
            return value

        return longest(task_id)
