"""
Fallback chain for one provider.

Tiers run in order (official -> market -> scrape -> static), each under its
own timeout. The first tier that returns a FareQuote wins; every attempt is
recorded as a TierOutcome so the caller can tell a primary answer from a
degraded one.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence, Tuple

from app.schemas.schemas import FareQuote
from app.services.normalizers import normalize
from app.services.providers import ProviderQuoteGenerator, QuoteRequest
from app.services.scraper import FareScraper

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["success", "degraded", "failed"]


@dataclass
class TierOutcome:
    tier: str
    ok: bool
    error: Optional[str] = None
    elapsed_ms: float = 0.0


@dataclass
class ProviderOutcome:
    provider: str
    status: OutcomeStatus
    quote: Optional[FareQuote] = None
    attempts: List[TierOutcome] = field(default_factory=list)


# ─── Tiers ────────────────────────────────────────────────────────────────────

class FareTier:
    """A source of quotes for one provider. ``timeout`` overrides the pipeline default."""
    name = "tier"
    timeout: Optional[float] = None

    async def fetch(self, request: QuoteRequest) -> FareQuote:
        raise NotImplementedError


class OfficialTier(FareTier):
    name = "official"

    def __init__(self, generator: ProviderQuoteGenerator, latency: float = 0.0):
        self.generator = generator
        self.latency = latency

    async def fetch(self, request):
        if self.latency:
            await asyncio.sleep(self.latency)
        raw = self.generator.official(request)
        return normalize(raw, self.generator.provider, request.route)


class MarketTier(FareTier):
    name = "market"

    def __init__(self, generator: ProviderQuoteGenerator):
        self.generator = generator

    async def fetch(self, request):
        raw = self.generator.market(request)
        return normalize(raw, self.generator.provider, request.route)


class ScrapeTier(FareTier):
    name = "scrape"

    def __init__(self, scraper: FareScraper, generator: ProviderQuoteGenerator):
        self.scraper = scraper
        self.generator = generator
        self.timeout = scraper.budget

    async def fetch(self, request):
        raw = await self.scraper.scrape(self.generator.provider, request)
        return normalize(raw, self.generator.provider, request.route)


class StaticTier(FareTier):
    name = "static"

    def __init__(self, generator: ProviderQuoteGenerator):
        self.generator = generator

    async def fetch(self, request):
        return self.generator.static(request)


# ─── Combinator ───────────────────────────────────────────────────────────────

async def first_success(tiers: Sequence[FareTier], request: QuoteRequest,
                        timeout: float, provider: str = "") -> Tuple[Optional[FareQuote], List[TierOutcome]]:
    """
    Run tiers in order until one returns a quote.

    Any exception from a tier (including a timeout) is recorded and the next
    tier runs. Cancellation is not caught.
    """
    attempts = []
    for tier in tiers:
        limit = tier.timeout if tier.timeout is not None else timeout
        start = time.perf_counter()
        try:
            quote = await asyncio.wait_for(tier.fetch(request), limit)
        except asyncio.TimeoutError:
            error = f"timed out after {limit:g}s"
        except Exception as e:
            error = str(e) or type(e).__name__
        else:
            attempts.append(TierOutcome(tier.name, True, elapsed_ms=(time.perf_counter() - start) * 1000))
            return quote, attempts

        elapsed = (time.perf_counter() - start) * 1000
        logger.warning(f"{provider} {tier.name} tier failed ({elapsed:.0f}ms): {error}")
        attempts.append(TierOutcome(tier.name, False, error=error, elapsed_ms=elapsed))
    return None, attempts


class ProviderPipeline:
    def __init__(self, provider: str, tiers: Sequence[FareTier], timeout: float = 3.0):
        self.provider = provider
        self.tiers = tiers
        self.timeout = timeout

    async def run(self, request: QuoteRequest) -> ProviderOutcome:
        quote, attempts = await first_success(self.tiers, request, self.timeout, self.provider)
        if quote is None:
            return ProviderOutcome(self.provider, "failed", None, attempts)
        status = "success" if len(attempts) == 1 else "degraded"
        if status == "degraded":
            logger.info(f"{self.provider} served from {attempts[-1].tier} tier after {len(attempts) - 1} failure(s)")
        return ProviderOutcome(self.provider, status, quote, attempts)
