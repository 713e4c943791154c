import logging
from typing import Optional

import httpx

from app.core.errors import UpstreamUnavailableError
from app.core.randomness import RandomSource
from app.schemas.schemas import Location, RouteInfo
from app.services.geo import distance_km, estimate_duration_minutes

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"


def traffic_level(factor: float) -> str:
    if factor > 1.3:
        return "Heavy"
    if factor > 1.15:
        return "Moderate"
    return "Light"


class RouteResolver:
    """
    Distance, duration and traffic for a pickup/dropoff pair.

    Asks the Google Distance Matrix API when a key is configured and falls
    back to a Haversine estimate otherwise, or when the API call fails.
    """

    def __init__(self, rng: RandomSource, http_client: Optional[httpx.AsyncClient] = None,
                 api_key: Optional[str] = None, speed_kmh: float = 25.0):
        self.rng = rng
        self.http_client = http_client
        self.api_key = api_key
        self.speed_kmh = speed_kmh

    async def resolve(self, pickup: Location, dropoff: Location) -> RouteInfo:
        if self.api_key and self.http_client is not None:
            try:
                return await self._distance_matrix(pickup, dropoff)
            except (httpx.HTTPError, UpstreamUnavailableError, KeyError, IndexError, ValueError) as e:
                logger.warning(f"Distance Matrix lookup failed, using estimate: {e}")
        return self.estimate(pickup, dropoff)

    def estimate(self, pickup: Location, dropoff: Location) -> RouteInfo:
        km = distance_km(pickup, dropoff)
        factor = self.rng.uniform(1.0, 1.5)
        return RouteInfo(
            distance_meters=round(km * 1000),
            duration_minutes=round(estimate_duration_minutes(km, self.speed_kmh) * factor, 1),
            traffic_level=traffic_level(factor),
        )

    async def _distance_matrix(self, pickup: Location, dropoff: Location) -> RouteInfo:
        resp = await self.http_client.get(DISTANCE_MATRIX_URL, params={
            "origins": _coords(pickup),
            "destinations": _coords(dropoff),
            "departure_time": "now",
            "traffic_model": "best_guess",
            "key": self.api_key,
        })
        resp.raise_for_status()
        data = resp.json()
        if data.get("status") != "OK":
            raise UpstreamUnavailableError(f"Distance Matrix status {data.get('status')}")

        element = data["rows"][0]["elements"][0]
        if element.get("status") != "OK":
            raise UpstreamUnavailableError(f"Distance Matrix element status {element.get('status')}")

        duration = element["duration"]["value"]
        in_traffic = element.get("duration_in_traffic", {}).get("value", duration)
        factor = in_traffic / duration if duration else 1.0
        return RouteInfo(
            distance_meters=element["distance"]["value"],
            duration_minutes=round(in_traffic / 60, 1),
            traffic_level=traffic_level(factor),
        )


def _coords(location: Location) -> str:
    return f"{location.lat},{location.lng}"
