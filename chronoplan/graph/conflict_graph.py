from collections import defaultdict
from typing import Dict, Iterator, List, Set, Tuple

from chronoplan.models.entities import ScheduledSlot


def build_conflict_graph(slots: List[ScheduledSlot]) -> Dict[int, Set[int]]:
    """Edges between slot indices whose slots share at least one resource."""
    by_resource: Dict[str, List[int]] = defaultdict(list)
    for i, slot in enumerate(slots):
        for r_id in set(slot.resource_ids):
            by_resource[r_id].append(i)

    graph: Dict[int, Set[int]] = defaultdict(set)
    for indices in by_resource.values():
        for pos, i in enumerate(indices):
            for j in indices[pos + 1:]:
                graph[i].add(j)
                graph[j].add(i)
    return graph


def overlapping_pairs(slots: List[ScheduledSlot]) -> Iterator[Tuple[ScheduledSlot, ScheduledSlot, List[str]]]:
    """Each resource-sharing pair that overlaps in time, once, in slot order."""
    graph = build_conflict_graph(slots)
    for i in sorted(graph):
        for j in sorted(graph[i]):
            if j <= i:
                continue
            a, b = slots[i], slots[j]
            if a.overlaps(b):
                shared = sorted(set(a.resource_ids) & set(b.resource_ids))
                yield a, b, shared
