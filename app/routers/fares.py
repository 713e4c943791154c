import newrelic.agent
from fastapi import APIRouter, Depends, Request

from app.core.config import get_settings
from app.core.connections import get_redis
from app.core.errors import InvalidFareRequestError, NoFaresAvailableError
from app.schemas.schemas import ErrorResponse, FareRequest, FareResponse, RouteInfo
from app.services.aggregator import FareAggregator
from app.services.fare_cache import FareCache
from app.services.routing import RouteResolver

router = APIRouter(prefix="/v1/fares", tags=["Fares"])


def get_fare_aggregator(request: Request) -> FareAggregator:
    return request.app.state.fare_aggregator


def get_route_resolver(request: Request) -> RouteResolver:
    return request.app.state.route_resolver


async def get_fare_cache() -> FareCache:
    return FareCache(await get_redis(), get_settings().fare_cache_ttl_seconds)


async def _route_for(payload: FareRequest, resolver: RouteResolver) -> RouteInfo:
    """Use caller-supplied distance/duration when present, resolve the rest."""
    if payload.distance is not None and payload.duration is not None:
        return RouteInfo(
            distance_meters=payload.distance,
            duration_minutes=payload.duration,
            traffic_level=payload.traffic or "Light",
        )

    route = await resolver.resolve(payload.pickup, payload.dropoff)
    overrides = {}
    if payload.distance is not None:
        overrides["distance_meters"] = payload.distance
    if payload.duration is not None:
        overrides["duration_minutes"] = payload.duration
    if payload.traffic:
        overrides["traffic_level"] = payload.traffic
    return route.model_copy(update=overrides) if overrides else route


@router.post(
    "",
    response_model=FareResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def compare_fares(
    payload: FareRequest,
    aggregator: FareAggregator = Depends(get_fare_aggregator),
    resolver: RouteResolver = Depends(get_route_resolver),
    cache: FareCache = Depends(get_fare_cache),
):
    """
    Compare fares across providers for one pickup/dropoff pair.
    Returns every provider that produced a quote plus the cheapest and fastest ride.
    """
    if payload.pickup is None or payload.dropoff is None:
        raise InvalidFareRequestError("Pickup and dropoff locations are required")

    key = cache.key(payload)
    cached = await cache.get(key)
    if cached:
        newrelic.agent.add_custom_attribute("fares.cache_hit", True)
        return cached

    route = await _route_for(payload, resolver)
    result = await aggregator.aggregate(payload.pickup, payload.dropoff, route)

    newrelic.agent.add_custom_attribute("fares.city", result.city)
    newrelic.agent.add_custom_attribute("fares.providers", len(result.quotes))

    if not result.quotes:
        raise NoFaresAvailableError("No fares available for this route")

    response = FareResponse(fares=result.quotes, cheapest=result.cheapest, fastest=result.fastest)
    await cache.set(key, response)
    return response
