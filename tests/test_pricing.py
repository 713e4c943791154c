from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.core.pricing_config import DEFAULT_TARIFFS, Tariff
from app.schemas.schemas import PriceRange
from app.services.pricing import (
    calculate_fare, is_night, per_km_for, price, round_half_up, round_multiplier,
)

UBER_GO = DEFAULT_TARIFFS["uber"]["go"]
RAPIDO_BIKE = DEFAULT_TARIFFS["rapido"]["bike"]


class TestRounding:
    def test_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(Decimal("96.49")) == 96

    def test_multiplier_one_decimal(self):
        assert round_multiplier(1.25) == 1.3
        assert round_multiplier(1.04) == 1.0


class TestNightWindow:
    @pytest.mark.parametrize("hour", [22, 23, 0, 3, 5])
    def test_night_hours(self, hour):
        assert is_night(hour)

    @pytest.mark.parametrize("hour", [6, 12, 21])
    def test_day_hours(self, hour):
        assert not is_night(hour)

    def test_non_wrapping_window(self):
        assert is_night(2, (1, 4))
        assert not is_night(4, (1, 4))


class TestFareCalculation:
    def test_standard_fare(self):
        fare = calculate_fare(UBER_GO, distance_km=10, duration_minutes=20)
        # (50 + 10*12 + 20*2 + 5) * 1.05
        assert fare == Decimal("225.75")

    def test_price_band(self):
        fare = price(UBER_GO, 10, 20)
        assert fare.min == 203
        assert fare.max == 248

    def test_zero_distance_hits_city_minimum(self):
        # Delhi multiplier 1.2: minimum 80 * 1.2 = 96
        fare = price(UBER_GO, 0, 0, city_multiplier=1.2)
        assert fare.min == 96
        assert fare.max == 106

    def test_min_never_below_minimum_fare(self):
        fare = price(UBER_GO, 0.5, 1, city_multiplier=1.0, variance=0.5)
        assert fare.min >= UBER_GO.minimum_fare

    def test_surge_monotonic(self):
        low = price(UBER_GO, 12, 30, surge=1.2)
        high = price(UBER_GO, 12, 30, surge=1.5)
        assert high.min >= low.min
        assert high.max >= low.max

    def test_peak_raises_fare(self):
        assert calculate_fare(UBER_GO, 8, 20, peak=1.15) > calculate_fare(UBER_GO, 8, 20)

    def test_night_tariff(self):
        day = calculate_fare(RAPIDO_BIKE, 10, 0, night=False)
        night = calculate_fare(RAPIDO_BIKE, 10, 0, night=True)
        # (20 + 10*15.5 + 5) * 1.05 and (25 + 10*18.35 + 5) * 1.05
        assert day == Decimal("189.00")
        assert night == Decimal("224.175")

    def test_per_km_for_split(self):
        assert per_km_for(RAPIDO_BIKE, night=True) == 18.35
        assert per_km_for(RAPIDO_BIKE, night=False) == 15.5
        assert per_km_for(UBER_GO, night=True) == 12


class TestValidation:
    def test_minimum_fare_must_be_positive(self):
        with pytest.raises(ValidationError):
            Tariff(base_fare=10, per_km=5, minimum_fare=0)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationError):
            Tariff(base_fare=10, per_km=-1, minimum_fare=20)

    def test_price_range_ordered(self):
        with pytest.raises(ValidationError):
            PriceRange(min=120, max=100)

    def test_tariff_is_frozen(self):
        with pytest.raises(ValidationError):
            UBER_GO.base_fare = 1
