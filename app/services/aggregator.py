"""
Fare aggregation across providers.

Every provider runs its own fallback pipeline concurrently; results are
sorted by provider name and providers whose every tier failed are dropped.
An empty result is a normal outcome here; the HTTP layer decides it is a 503.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import httpx
import newrelic.agent

from app.core.config import Settings
from app.core.errors import ProviderExhaustedError
from app.core.pricing_config import PricingConfig
from app.core.randomness import Clock, RandomSource
from app.schemas.schemas import BestOption, FareQuote, Location, RouteInfo
from app.services import best_option
from app.services.fallback import (
    MarketTier, OfficialTier, ProviderOutcome, ProviderPipeline, ScrapeTier, StaticTier,
)
from app.services.geo import resolve_city
from app.services.providers import ProviderQuoteGenerator, QuoteRequest
from app.services.scraper import FareScraper
from app.services.surge import SurgeContext, SurgeModel

logger = logging.getLogger(__name__)


@dataclass
class AggregatedResult:
    quotes: List[FareQuote]
    cheapest: Optional[BestOption] = None
    fastest: Optional[BestOption] = None
    outcomes: List[ProviderOutcome] = field(default_factory=list)
    city: str = ""


class FareAggregator:
    def __init__(self, config: PricingConfig, surge_model: SurgeModel,
                 pipelines: Sequence[ProviderPipeline], clock: Clock):
        self.config = config
        self.surge_model = surge_model
        self.pipelines = pipelines
        self.clock = clock

    def build_request(self, pickup: Location, dropoff: Location, route: RouteInfo) -> QuoteRequest:
        city = self.config.city(resolve_city(pickup, self.config.cities))
        now = self.clock.now()
        ctx = SurgeContext.at(now, route.traffic_level, route.distance_km, city)
        return QuoteRequest(
            pickup=pickup,
            dropoff=dropoff,
            route=route,
            city=city,
            shared_surge=self.surge_model.shared_surge(ctx),
            now=now,
        )

    @newrelic.agent.function_trace()
    async def aggregate(self, pickup: Location, dropoff: Location, route: RouteInfo) -> AggregatedResult:
        request = self.build_request(pickup, dropoff, route)
        logger.info(
            f"Aggregating fares in {request.city.name}: {route.distance_km:.1f}km, "
            f"{route.duration_minutes:.0f}min, {route.traffic_level} traffic, surge {request.shared_surge:.2f}"
        )

        outcomes = await asyncio.gather(*(p.run(request) for p in self.pipelines))
        outcomes = sorted(outcomes, key=lambda o: o.provider)

        quotes = []
        for outcome in outcomes:
            if outcome.quote is None:
                logger.error(str(ProviderExhaustedError(outcome.provider, outcome.attempts)))
                continue
            quotes.append(outcome.quote)

        cheapest, fastest = best_option.select(quotes)
        return AggregatedResult(quotes, cheapest, fastest, list(outcomes), request.city.name)


def build_pipelines(settings: Settings, config: PricingConfig, surge_model: SurgeModel,
                    http_client: Optional[httpx.AsyncClient], rng: RandomSource) -> List[ProviderPipeline]:
    scraper = FareScraper(http_client, config.scrape_targets, timeout=settings.scrape_timeout_seconds)
    pipelines = []
    for provider in config.providers:
        generator = ProviderQuoteGenerator(provider, config, surge_model, rng)
        tiers = [
            OfficialTier(generator, latency=settings.official_latency_seconds),
            MarketTier(generator),
            ScrapeTier(scraper, generator),
            StaticTier(generator),
        ]
        pipelines.append(ProviderPipeline(provider.name, tiers, timeout=settings.tier_timeout_seconds))
    return pipelines


def build_fare_aggregator(settings: Settings, config: PricingConfig, http_client: Optional[httpx.AsyncClient],
                          rng: RandomSource, clock: Clock) -> FareAggregator:
    surge_model = SurgeModel(config.surge, rng)
    pipelines = build_pipelines(settings, config, surge_model, http_client, rng)
    return FareAggregator(config, surge_model, pipelines, clock)
