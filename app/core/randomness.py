import random
from datetime import datetime
from typing import Optional, Protocol, Sequence, TypeVar
from zoneinfo import ZoneInfo

T = TypeVar("T")


class RandomSource(Protocol):
    """Everything non-deterministic in pricing draws from one of these.

    ``random.Random`` satisfies it; tests pass a seeded instance or a stub.
    """

    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, seq: Sequence[T]) -> T: ...


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def __init__(self, timezone: str = "Asia/Kolkata"):
        self.tz = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)


def make_random_source(seed: Optional[int] = None) -> RandomSource:
    return random.Random(seed)
