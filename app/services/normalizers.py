import logging
from typing import Callable, Dict, Optional

from app.core.errors import UpstreamUnavailableError
from app.core.pricing_config import ProviderProfile, VehicleClassProfile
from app.schemas.raw import MarketResponse, OfficialPromo, OfficialResponse, ScrapeResponse
from app.schemas.schemas import FareQuote, PriceRange, RideOption, RouteInfo
from app.services.pricing import round_half_up

logger = logging.getLogger(__name__)


def promo_percent(promo: Optional[OfficialPromo], fare_min: int) -> Optional[int]:
    """Express a promo as a percentage of the low fare. Cashback is not a discount."""
    if promo is None:
        return None
    if promo.discount_type == "percentage" and promo.discount_percentage > 0:
        return promo.discount_percentage
    if promo.discount_type == "flat" and promo.discount_amount > 0 and fare_min > 0:
        return min(100, round_half_up(promo.discount_amount / fare_min * 100))
    return None


def _find_class(profile: ProviderProfile, name: str) -> Optional[VehicleClassProfile]:
    key = name.strip().lower()
    for vehicle in profile.vehicle_classes:
        if key in (vehicle.display_name.lower(), vehicle.class_id):
            return vehicle
    return None


def normalize_official(raw: OfficialResponse, profile: ProviderProfile, route: RouteInfo) -> FareQuote:
    rides = []
    for est in raw.estimates:
        discount = est.discount_percentage
        if discount is None:
            discount = promo_percent(raw.promo, est.low_estimate)
        rides.append(RideOption(
            vehicle_class=est.display_name,
            price_range=PriceRange(min=est.low_estimate, max=est.high_estimate),
            eta_minutes=max(1, round_half_up(est.duration_seconds / 60)),
            surge_active=est.surge_active,
            surge_multiplier=est.surge_multiplier,
            rating=round(est.driver_rating, 1),
            review_count=est.review_count,
            features=list(est.features),
            wait_time_minutes=est.pickup_eta_minutes,
            discount_percent=discount,
            night_fare_active=est.night_fare_active,
            availability=est.availability,
            per_km_rate=est.per_km_rate,
            booking_fee=est.booking_fee,
        ))
    return FareQuote(
        provider_name=profile.name,
        logo=profile.logo,
        availability=raw.availability,
        booking_url=raw.booking_url,
        rides=rides,
        source="official",
    )


def normalize_market(raw: MarketResponse, profile: ProviderProfile, route: RouteInfo) -> FareQuote:
    rides = [
        RideOption(
            vehicle_class=ride.name,
            price_range=PriceRange(min=ride.fare_min, max=ride.fare_max),
            eta_minutes=ride.eta,
            surge_active=raw.surge_multiplier > 1.0,
            surge_multiplier=raw.surge_multiplier,
            rating=round(ride.rating, 1),
            review_count=ride.reviews,
            features=list(ride.features),
        )
        for ride in raw.rides
    ]
    return FareQuote(
        provider_name=profile.name,
        logo=profile.logo,
        availability=raw.availability,
        booking_url=raw.booking_url,
        rides=rides,
        source="market",
    )


def normalize_scrape(raw: ScrapeResponse, profile: ProviderProfile, route: RouteInfo) -> FareQuote:
    """
    Scraped fares carry prices and little else, so ratings, reviews and
    features come from the vehicle class profile when the name is known.
    """
    rides = []
    for product in raw.products:
        low, high = sorted((product.fare_min, product.fare_max))
        if low <= 0:
            logger.debug(f"Dropping scraped product {product.name!r} with non-positive fare")
            continue
        vehicle = _find_class(profile, product.name)
        speed_factor = vehicle.speed_factor if vehicle else 1.0
        eta = product.eta_minutes
        if eta is None:
            eta = max(1, round_half_up(route.duration_minutes * speed_factor))
        surge = max(product.surge_multiplier or 1.0, 1.0)
        rides.append(RideOption(
            vehicle_class=vehicle.display_name if vehicle else product.name,
            price_range=PriceRange(min=low, max=high),
            eta_minutes=eta,
            surge_active=surge > 1.0,
            surge_multiplier=surge,
            rating=round(sum(vehicle.rating_range) / 2, 1) if vehicle else 4.0,
            review_count=vehicle.review_range[0] if vehicle else 0,
            features=list(vehicle.features) if vehicle else [],
        ))
    if not rides:
        raise UpstreamUnavailableError(f"{raw.strategy} scrape for {profile.name} yielded no usable fares")
    return FareQuote(
        provider_name=profile.name,
        logo=profile.logo,
        availability="available",
        booking_url=raw.source_url,
        rides=rides,
        source="scrape",
    )


_NORMALIZERS: Dict[str, Callable[..., FareQuote]] = {
    "official": normalize_official,
    "market": normalize_market,
    "scrape": normalize_scrape,
}


def normalize(raw, profile: ProviderProfile, route: RouteInfo) -> FareQuote:
    """Convert any ProviderRawResponse variant into the canonical FareQuote."""
    return _NORMALIZERS[raw.kind](raw, profile, route)
