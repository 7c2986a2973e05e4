"""Exceptions raised by the scheduling engine.

Every exception here is fatal for the request that raised it: the engine
aborts before generating any slot and no partial schedule is returned.
Recoverable outcomes (unplaceable tasks, discarded perturbations) are never
raised; they are reported inside the returned schedule.
"""

from typing import List, Optional


class SchedulingError(Exception):
    """Base exception for all engine errors."""

    pass


class ValidationError(SchedulingError):
    """Raised when the scheduling input is inconsistent."""

    pass


class CircularDependencyError(ValidationError):
    """Raised when task dependencies form a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(f"Circular dependency detected in tasks: {' -> '.join(self.cycle)}")


class InvalidResourceAvailabilityError(ValidationError):
    """Raised when a resource's availability windows or blackouts are malformed."""

    def __init__(self, resource_id: str, message: str):
        self.resource_id = resource_id
        super().__init__(f"Resource {resource_id}: {message}")


class InvalidConstraintError(ValidationError):
    """Raised when a constraint record is inconsistent (e.g. hard weight != 1.0)."""

    def __init__(self, constraint_id: str, message: str):
        self.constraint_id = constraint_id
        super().__init__(f"Constraint {constraint_id}: {message}")


class InvalidTimeRangeError(ValidationError):
    """Raised when a time range does not end after it starts."""

    pass


class DuplicateTaskError(ValidationError):
    """Raised when the same task id is supplied more than once."""

    def __init__(self, task_id: str, message: Optional[str] = None):
        self.task_id = task_id
        super().__init__(message or f"Task {task_id} supplied more than once")
