"""
Resource Availability Index.

Merges each resource's recurring weekly windows with its blackout intervals
so candidate slots can be checked per day. Resources without weekly windows
get the default business week: Monday to Friday, 09:00 to 17:00.
"""

import logging
from collections import defaultdict
from datetime import datetime, time, timedelta
from typing import Dict, List, Tuple

from chronoplan.exceptions import InvalidResourceAvailabilityError
from chronoplan.models.entities import Resource, TimeWindow, WeeklyWindow

logger = logging.getLogger(__name__)

# A window ending at or after this time runs to midnight.
END_OF_DAY = time(23, 59)

DEFAULT_WEEKLY_AVAILABILITY = [
    WeeklyWindow(day_of_week=day, start=time(9, 0), end=time(17, 0)) for day in range(1, 6)
]


def day_of_week(moment) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (moment.weekday() + 1) % 7


class ResourceAvailabilityIndex:
    def __init__(self, resources: List[Resource]):
        self._weekly: Dict[str, Dict[int, List[Tuple[time, time]]]] = {}
        self._blackouts: Dict[str, List[TimeWindow]] = {}
        for resource in resources:
            self._add(resource)

    def _add(self, resource: Resource) -> None:
        windows = resource.availability or DEFAULT_WEEKLY_AVAILABILITY
        per_day: Dict[int, List[Tuple[time, time]]] = defaultdict(list)
        for win in windows:
            if not 0 <= win.day_of_week <= 6:
                raise InvalidResourceAvailabilityError(
                    resource.id, f"day_of_week {win.day_of_week} outside 0-6"
                )
            if win.end <= win.start:
                raise InvalidResourceAvailabilityError(
                    resource.id, f"weekly window {win.start}-{win.end} must end after it starts"
                )
            per_day[win.day_of_week].append((win.start, win.end))
        for day in per_day:
            per_day[day].sort()

        blackouts = sorted(resource.unavailable, key=lambda w: w.start)
        for window in blackouts:
            if window.end <= window.start:
                raise InvalidResourceAvailabilityError(resource.id, "unavailable interval must end after it starts")
        for i, first in enumerate(blackouts):
            for second in blackouts[i + 1:]:
                if first.overlaps(second):
                    raise InvalidResourceAvailabilityError(
                        resource.id, f"overlapping unavailable intervals {first.start} and {second.start}"
                    )

        self._weekly[resource.id] = dict(per_day)
        self._blackouts[resource.id] = blackouts
        logger.debug("Indexed resource %s: %d weekly windows, %d blackouts", resource.id, len(windows), len(blackouts))

    def __contains__(self, resource_id: str) -> bool:
        return resource_id in self._weekly

    def windows_for(self, resource_id: str, day: int) -> List[Tuple[time, time]]:
        """Sorted (start, end) windows of ``resource_id`` on ``day`` (0 = Sunday)."""
        return list(self._weekly.get(resource_id, {}).get(day, []))

    def is_available(self, resource_id: str, start: datetime, end: datetime) -> bool:
        """
        True when [start, end) lies inside one weekly window of its weekday and
        touches no blackout. Resources that were never indexed are unconstrained.

        A slot may end exactly at midnight when its window ends at 23:59 or later.
        """
        if resource_id not in self._weekly:
            return True
        start_t = start.time()
        day_windows = self.windows_for(resource_id, day_of_week(start))
        if end.date() == start.date():
            end_t = end.time()
            fits = any(w_start <= start_t and end_t <= w_end for w_start, w_end in day_windows)
        elif end.time() == time(0, 0) and end.date() == start.date() + timedelta(days=1):
            fits = any(w_start <= start_t and w_end >= END_OF_DAY for w_start, w_end in day_windows)
        else:
            return False
        if not fits:
            return False
        for blackout in self._blackouts[resource_id]:
            if blackout.start >= end:
                break
            if start < blackout.end and blackout.start < end:
                return False
        return True
