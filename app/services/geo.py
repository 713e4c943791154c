import math
from typing import Iterable

from app.core.pricing_config import CityProfile

DEFAULT_CITY = "default"
EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate straight-line distance in km between two coordinates."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_km(a, b) -> float:
    """Haversine distance between two objects exposing ``lat``/``lng``."""
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def estimate_duration_minutes(dist_km: float, speed_kmh: float = 25.0) -> float:
    return (dist_km / speed_kmh) * 60


def detect_city(address: str, cities: Iterable[CityProfile]) -> str:
    """
    Match the address against each city's keyword list, in table order.
    The first city with a matching keyword wins.
    """
    text = (address or "").lower()
    for city in cities:
        if any(keyword in text for keyword in city.keywords):
            return city.name
    return DEFAULT_CITY


def detect_city_from_coords(lat: float, lng: float, cities: Iterable[CityProfile]) -> str:
    """Closest configured city centre within that city's radius (in degrees)."""
    best, best_dist = DEFAULT_CITY, None
    for city in cities:
        if city.center is None:
            continue
        dist = math.hypot(lat - city.center[0], lng - city.center[1])
        if dist <= city.radius_deg and (best_dist is None or dist < best_dist):
            best, best_dist = city.name, dist
    return best


def resolve_city(location, cities: Iterable[CityProfile]) -> str:
    cities = tuple(cities)
    city = detect_city(location.address, cities)
    if city == DEFAULT_CITY:
        city = detect_city_from_coords(location.lat, location.lng, cities)
    return city


def city_multiplier(city: str, cities: Iterable[CityProfile], default: float = 0.9) -> float:
    for profile in cities:
        if profile.name == city:
            return profile.multiplier
    return default
