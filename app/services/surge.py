import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

from app.core.pricing_config import CityProfile, ProviderProfile, SurgeRules
from app.core.randomness import RandomSource
from app.services.pricing import round_multiplier

logger = logging.getLogger(__name__)


def in_window(hour: int, window: Tuple[int, int]) -> bool:
    start, end = window
    return start <= hour <= end


@dataclass(frozen=True)
class SurgeContext:
    hour_of_day: int
    day_of_week: int  # datetime.weekday(), Monday == 0
    traffic_level: str
    distance_km: float
    city: CityProfile

    @classmethod
    def at(cls, when: datetime, traffic_level: str, distance_km: float, city: CityProfile) -> "SurgeContext":
        return cls(when.hour, when.weekday(), traffic_level, distance_km, city)


class SurgeModel:
    """
    Time, traffic, city and weather based surge.

    The shared surge is computed once per search (one weather roll for every
    provider); each provider then damps the part above 1.0 by its own factor.
    """

    def __init__(self, rules: SurgeRules, rng: RandomSource):
        self.rules = rules
        self.rng = rng

    def base_surge(self, ctx: SurgeContext) -> float:
        """Deterministic part of the surge: time windows, traffic, city, distance."""
        rules = self.rules
        surge = 1.0

        if any(in_window(ctx.hour_of_day, w) for w in rules.peak_windows):
            surge *= rules.peak_factor
        elif any(in_window(ctx.hour_of_day, w) for w in rules.shoulder_windows):
            surge *= rules.shoulder_factor

        if ctx.day_of_week in rules.weekend_night_days and ctx.hour_of_day >= rules.weekend_night_start:
            surge *= rules.weekend_night_factor

        surge *= rules.traffic_factors.get(ctx.traffic_level, 1.0)
        surge *= ctx.city.surge_factor

        # Long trips surge less
        for threshold_km, factor in rules.long_distance_steps:
            if ctx.distance_km > threshold_km:
                surge *= factor

        return surge

    def shared_surge(self, ctx: SurgeContext) -> float:
        surge = self.base_surge(ctx)
        if self.rng.random() < self.rules.weather_probability:
            logger.debug(f"Weather event in {ctx.city.name}, surge x{self.rules.weather_factor}")
            surge *= self.rules.weather_factor
        return surge

    def for_provider(self, shared: float, damping: float, class_scale: float = 1.0) -> float:
        jitter = self.rules.jitter
        noisy = shared * self.rng.uniform(1 - jitter, 1 + jitter) if jitter else shared
        damped = 1.0 + (noisy - 1.0) * damping * class_scale
        return max(round_multiplier(damped), self.rules.floor)

    def surge_multiplier(self, ctx: SurgeContext, provider: ProviderProfile) -> float:
        return self.for_provider(self.shared_surge(ctx), provider.surge_damping)

    def peak_multiplier(self, hour: int) -> float:
        if any(in_window(hour, w) for w in self.rules.peak_windows):
            return self.rules.peak_fare_multiplier
        return 1.0
