from datetime import datetime, timedelta, tzinfo
from typing import Optional, Protocol


class Clock(Protocol):
    """Source of "now" for deadline urgency and computation budgets."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock. Pass ``tz`` to get aware datetimes matching the request."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """
    Manually driven clock for deterministic runs.

    ``tick`` advances the clock on every ``now()`` call, which lets tests
    exercise the computation-budget path without sleeping.
    """

    def __init__(self, current: datetime, tick: timedelta = timedelta(0)):
        self.current = current
        self.tick = tick

    def now(self) -> datetime:
        value = self.current
        self.current = self.current + self.tick
        return value

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta


def elapsed_ms(clock: Clock, since: datetime) -> float:
    return (clock.now() - since).total_seconds() * 1000.0
