from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple, Union

from app.core.pricing_config import Tariff
from app.schemas.schemas import PriceRange

Number = Union[int, float, Decimal]

NIGHT_WINDOW = (22, 6)


def _d(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round_half_up(value: Number) -> int:
    """Round to the nearest whole rupee, halves away from zero."""
    return int(_d(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_multiplier(value: Number) -> float:
    return float(_d(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def is_night(hour: int, window: Tuple[int, int] = NIGHT_WINDOW) -> bool:
    """True when ``hour`` falls in a window that may wrap past midnight."""
    start, end = window
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def base_fare_for(tariff: Tariff, night: bool) -> float:
    if night and tariff.night_base_fare is not None:
        return tariff.night_base_fare
    return tariff.base_fare


def per_km_for(tariff: Tariff, night: bool) -> float:
    if night and tariff.night_per_km is not None:
        return tariff.night_per_km
    if not night and tariff.day_per_km is not None:
        return tariff.day_per_km
    return tariff.per_km


def minimum_fare(tariff: Tariff, city_multiplier: Number = 1.0) -> Decimal:
    return _d(tariff.minimum_fare) * _d(city_multiplier)


def calculate_fare(tariff: Tariff, distance_km: Number, duration_minutes: Number,
                   surge: Number = 1.0, peak: Number = 1.0, city_multiplier: Number = 1.0,
                   night: bool = False) -> Decimal:
    """
    Central fare estimate before the variance band.

    subtotal = base + km * per_km + minutes * per_minute
    fare     = ((subtotal * city * surge * peak) + booking_fee) * (1 + tax)
    floored at the city-scaled minimum fare.
    """
    subtotal = (
        _d(base_fare_for(tariff, night))
        + _d(distance_km) * _d(per_km_for(tariff, night))
        + _d(duration_minutes) * _d(tariff.per_minute)
    )
    fare = subtotal * _d(city_multiplier) * _d(surge) * _d(peak)
    fare = (fare + _d(tariff.booking_fee)) * (1 + _d(tariff.tax_rate))
    return max(fare, minimum_fare(tariff, city_multiplier))


def price(tariff: Tariff, distance_km: Number, duration_minutes: Number,
          surge: Number = 1.0, peak: Number = 1.0, city_multiplier: Number = 1.0,
          night: bool = False, variance: Number = 0.10) -> PriceRange:
    """Price range around the central fare; ``min`` never drops below the minimum fare."""
    fare = calculate_fare(tariff, distance_km, duration_minutes, surge, peak, city_multiplier, night)
    floor = minimum_fare(tariff, city_multiplier)
    band = fare * _d(variance)
    return PriceRange(
        min=round_half_up(max(fare - band, floor)),
        max=round_half_up(fare + band),
    )
