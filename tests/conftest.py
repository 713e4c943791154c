"""
Shared fixtures: a fixed clock, a scripted random source and Delhi test locations.
"""
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from app.core.pricing_config import build_pricing_config
from app.schemas.schemas import Location, RouteInfo
from app.services.providers import QuoteRequest

IST = ZoneInfo("Asia/Kolkata")

# Monday 15 January 2024, 15:00 IST: outside every peak/shoulder window
OFF_PEAK = datetime(2024, 1, 15, 15, 0, tzinfo=IST)
NIGHT = datetime(2024, 1, 15, 23, 0, tzinfo=IST)


class FixedClock:
    def __init__(self, when: datetime = OFF_PEAK):
        self.when = when

    def now(self) -> datetime:
        return self.when


class StubRandom:
    """
    Deterministic RandomSource. ``random()`` returns ``value`` (0.99 by default,
    so no probability-gated event fires), ``uniform`` the midpoint, ``randint``
    the lower bound and ``choice`` the first element.
    """

    def __init__(self, value: float = 0.99):
        self.value = value

    def random(self):
        return self.value

    def uniform(self, a, b):
        return (a + b) / 2

    def randint(self, a, b):
        return a

    def choice(self, seq):
        return seq[0]


@pytest.fixture
def config():
    return build_pricing_config()


@pytest.fixture
def stub_rng():
    return StubRandom()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def pickup():
    return Location(address="Connaught Place, New Delhi", lat=28.6315, lng=77.2167)


@pytest.fixture
def dropoff():
    return Location(address="India Gate, New Delhi", lat=28.6129, lng=77.2295)


def make_request(config, pickup, dropoff, city="delhi", distance_m=0.0, duration=0.0,
                 shared_surge=1.0, when=OFF_PEAK, traffic="Light") -> QuoteRequest:
    return QuoteRequest(
        pickup=pickup,
        dropoff=dropoff,
        route=RouteInfo(distance_meters=distance_m, duration_minutes=duration, traffic_level=traffic),
        city=config.city(city),
        shared_surge=shared_surge,
        now=when,
    )
