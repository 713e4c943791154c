"""
Per-provider quote generation.

A ProviderQuoteGenerator turns one ProviderProfile plus the shared pricing
tables into quotes for three of the fallback tiers: an official-structure
estimate, a market simulation and a deterministic static-rate quote. The
first two are simulators and draw from the injected RandomSource; the static
quote draws nothing.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional, Tuple

from app.core.errors import UpstreamUnavailableError
from app.core.pricing_config import CityProfile, PricingConfig, ProviderProfile, Tariff, VehicleClassProfile
from app.core.randomness import RandomSource
from app.schemas.raw import MarketResponse, MarketRide, OfficialEstimate, OfficialPromo, OfficialResponse
from app.schemas.schemas import FareQuote, Location, PriceRange, RideOption, RouteInfo
from app.services import pricing
from app.services.pricing import round_half_up
from app.services.surge import SurgeModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteRequest:
    """Everything a tier needs to quote one search. Built once per search."""
    pickup: Location
    dropoff: Location
    route: RouteInfo
    city: CityProfile
    shared_surge: float
    now: datetime

    @property
    def distance_km(self) -> float:
        return self.route.distance_km


class ProviderQuoteGenerator:
    def __init__(self, provider: ProviderProfile, config: PricingConfig, surge_model: SurgeModel,
                 rng: RandomSource):
        self.provider = provider
        self.config = config
        self.surge_model = surge_model
        self.rng = rng

    # ─── Helpers ──────────────────────────────────────────────────────────────

    def _classes(self, city: CityProfile) -> Iterator[Tuple[VehicleClassProfile, Tariff]]:
        for vehicle in self.provider.vehicle_classes:
            if not vehicle.offered_in(city.name):
                continue
            tariff = self.config.tariff(self.provider.provider_id, vehicle.class_id)
            if tariff is None:
                logger.debug(f"No tariff for {self.provider.provider_id}/{vehicle.class_id}, skipping")
                continue
            yield vehicle, tariff

    def _booking_url(self, request: QuoteRequest) -> str:
        return self.provider.booking_link(
            request.pickup.lat, request.pickup.lng, request.dropoff.lat, request.dropoff.lng
        )

    def _availability(self, city: CityProfile) -> str:
        chance = self.provider.limited_probability
        if chance is None:
            chance = self.config.limited_probability_by_tier.get(city.tier, 0.15)
        return "limited" if self.rng.random() < chance else "available"

    def _eta(self, request: QuoteRequest, vehicle: VehicleClassProfile) -> int:
        base = round_half_up(request.route.duration_minutes * vehicle.speed_factor * request.city.eta_factor)
        return max(1, base + self.rng.randint(0, vehicle.eta_jitter))

    def _wait(self, request: QuoteRequest, vehicle: VehicleClassProfile) -> int:
        return max(1, round_half_up(self.rng.randint(*vehicle.wait_range) * request.city.wait_factor))

    def _reviews(self, review_range: Tuple[int, int], city: CityProfile) -> int:
        return round_half_up(self.rng.randint(*review_range) * city.demand_factor)

    def _rating(self, rating_range: Tuple[float, float]) -> float:
        return round(self.rng.uniform(*rating_range), 1)

    def _discount(self, vehicle: VehicleClassProfile) -> Optional[int]:
        rule = vehicle.discount
        if rule is None or self.rng.random() >= rule.probability:
            return None
        return self.rng.randint(rule.min_percent, rule.max_percent)

    def _price(self, request: QuoteRequest, vehicle: VehicleClassProfile, tariff: Tariff,
               surge: float, night: bool, variance: float) -> PriceRange:
        return pricing.price(
            tariff,
            request.distance_km,
            request.route.duration_minutes,
            surge=surge,
            peak=self.surge_model.peak_multiplier(request.now.hour),
            city_multiplier=request.city.multiplier * vehicle.city_scale,
            night=night,
            variance=variance,
        )

    def _promo(self) -> Optional[OfficialPromo]:
        rule = self.provider.promo
        if rule is None or self.rng.random() >= rule.probability:
            return None
        code = self.rng.choice(rule.codes)
        if self.rng.choice(("percentage", "flat")) == "percentage":
            return OfficialPromo(code=code, discount_type="percentage",
                                 discount_percentage=self.rng.randint(*rule.percent_range))
        return OfficialPromo(code=code, discount_type="flat", discount_amount=self.rng.randint(*rule.flat_range))

    # ─── Tiers ────────────────────────────────────────────────────────────────

    def official(self, request: QuoteRequest) -> OfficialResponse:
        """Official-structure estimate: per-class surge, night tariffs, promos."""
        provider = self.provider
        city = request.city
        if provider.official_cities is not None and city.name not in provider.official_cities:
            raise UpstreamUnavailableError(f"{provider.name} official pricing does not serve {city.name}")

        night = provider.night_tariffs and pricing.is_night(request.now.hour, self.config.night_window)
        variance = provider.price_variance if provider.price_variance is not None else self.config.price_variance

        estimates = []
        for vehicle, tariff in self._classes(city):
            surge = self.surge_model.for_provider(request.shared_surge, provider.surge_damping, vehicle.surge_scale)
            fare = self._price(request, vehicle, tariff, surge, night, variance)
            estimates.append(OfficialEstimate(
                vehicle_type=vehicle.class_id,
                display_name=vehicle.display_name,
                low_estimate=fare.min,
                high_estimate=fare.max,
                duration_seconds=self._eta(request, vehicle) * 60,
                pickup_eta_minutes=self._wait(request, vehicle),
                surge_multiplier=surge,
                surge_active=surge > vehicle.surge_threshold,
                driver_rating=self._rating(vehicle.rating_range),
                review_count=self._reviews(vehicle.review_range, city),
                features=list(vehicle.features),
                discount_percentage=self._discount(vehicle),
                night_fare_active=night if provider.night_tariffs else None,
                per_km_rate=pricing.per_km_for(tariff, night) if provider.night_tariffs else None,
                booking_fee=round_half_up(tariff.booking_fee) if provider.night_tariffs else None,
                availability=vehicle.availability,
            ))

        if not estimates:
            raise UpstreamUnavailableError(f"{provider.name} official pricing has no classes in {city.name}")

        logger.debug(f"{provider.name} official: {len(estimates)} classes in {city.name} (night={night})")
        return OfficialResponse(
            provider=provider.provider_id,
            city=city.name,
            currency=self.config.currency,
            availability=self._availability(city),
            booking_url=self._booking_url(request),
            estimates=estimates,
            promo=self._promo(),
        )

    def market(self, request: QuoteRequest) -> MarketResponse:
        """Market simulation: one provider-wide surge and generic metadata."""
        provider = self.provider
        city = request.city
        surge = self.surge_model.for_provider(request.shared_surge, provider.surge_damping)

        rides = []
        for vehicle, tariff in self._classes(city):
            fare = self._price(request, vehicle, tariff, surge, False, self.config.price_variance)
            rides.append(MarketRide(
                name=vehicle.display_name,
                fare_min=fare.min,
                fare_max=fare.max,
                eta=self._eta(request, vehicle),
                rating=self._rating(provider.market_rating_range),
                reviews=self._reviews(provider.market_review_range, city),
                features=list(vehicle.features),
            ))

        if not rides:
            raise UpstreamUnavailableError(f"{provider.name} market simulation has no classes in {city.name}")

        return MarketResponse(
            provider=provider.provider_id,
            surge_multiplier=surge,
            availability=self._availability(city),
            booking_url=self._booking_url(request),
            rides=rides,
        )

    def static(self, request: QuoteRequest) -> FareQuote:
        """
        Last-resort quote from the static per-km table. No randomness and no
        network: the same request always gets the same quote.
        """
        provider = self.provider
        city = request.city
        km = request.distance_km
        base = self.config.static_base_fare

        rides = []
        for vehicle, tariff in self._classes(city):
            rate = self.config.static_rate(provider.provider_id, vehicle.class_id)
            if rate is None:
                continue
            scale = rate.class_multiplier * city.multiplier
            floor = pricing.minimum_fare(tariff, city.multiplier)
            low = max((base + km * rate.per_km_low) * scale, floor)
            high = max((base + km * rate.per_km_high) * scale, floor)
            rides.append(RideOption(
                vehicle_class=vehicle.display_name,
                price_range=PriceRange(min=round_half_up(low), max=round_half_up(high)),
                eta_minutes=max(1, round_half_up(request.route.duration_minutes * vehicle.speed_factor)),
                rating=round(sum(vehicle.rating_range) / 2, 1),
                review_count=vehicle.review_range[0],
                features=list(vehicle.features),
            ))

        if not rides:
            raise UpstreamUnavailableError(f"No static rates for {provider.name} in {city.name}")

        return FareQuote(
            provider_name=provider.name,
            logo=provider.logo,
            booking_url=self._booking_url(request),
            rides=rides,
            source="static",
        )
