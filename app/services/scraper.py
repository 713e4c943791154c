"""
Scrape tier: a chain of HTTP strategies tried in order, first success wins.

Target URLs come from PricingConfig.scrape_targets and may use the
placeholders {provider}, {city}, {pickup_lat}, {pickup_lng}, {drop_lat} and
{drop_lng}. A strategy without a URL for the provider is skipped.
"""
import asyncio
import json
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

import httpx

from app.core.errors import UpstreamUnavailableError
from app.core.pricing_config import ProviderProfile, ScrapeTarget
from app.schemas.raw import ScrapedProduct, ScrapeResponse

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
COLLECTION_KEYS = ("estimates", "fares", "products")
NAME_KEYS = ("display_name", "name", "vehicle_type", "type")
LOW_KEYS = ("low_estimate", "fare_min", "min_fare", "min")
HIGH_KEYS = ("high_estimate", "fare_max", "max_fare", "max")

SCRIPT_RE = re.compile(r"<script[^>]*>(.*?)</script>", re.IGNORECASE | re.DOTALL)
ASSIGNED_JSON_RE = re.compile(r"=\s*(\{.*\})\s*;?\s*$", re.DOTALL)
RUPEE_RE = re.compile(r"₹\s*([\d,]+)")


# ─── Parsing helpers ──────────────────────────────────────────────────────────

def _first(item: dict, keys: Sequence[str]):
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def _to_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(round(float(str(value).replace(",", "").replace("₹", "").strip())))
    except ValueError:
        return None


def product_from_item(item: dict) -> Optional[ScrapedProduct]:
    """Map one loosely-shaped fare dict onto a ScrapedProduct, or None if unusable."""
    if not isinstance(item, dict):
        return None
    name = _first(item, NAME_KEYS)
    low, high = _first(item, LOW_KEYS), _first(item, HIGH_KEYS)
    price_range = item.get("price_range") or item.get("priceRange")
    if isinstance(price_range, dict):
        low = price_range.get("min", low)
        high = price_range.get("max", high)
    low, high = _to_int(low), _to_int(high)
    if not name or low is None:
        return None
    return ScrapedProduct(
        name=str(name),
        fare_min=low,
        fare_max=high if high is not None else low,
        eta_minutes=_to_int(_first(item, ("eta_minutes", "eta"))),
        surge_multiplier=item.get("surge_multiplier"),
    )


def products_from_payload(payload) -> List[ScrapedProduct]:
    if not isinstance(payload, dict):
        return []
    for key in COLLECTION_KEYS:
        items = payload.get(key)
        if isinstance(items, list):
            return [p for p in (product_from_item(i) for i in items) if p is not None]
    return []


def products_from_html(html: str, class_names: Iterable[str]) -> List[ScrapedProduct]:
    """
    Look for fare JSON embedded in <script> tags first. Failing that, pair
    consecutive rupee amounts as (min, max) onto the provider's classes in order.
    """
    for body in SCRIPT_RE.findall(html):
        body = body.strip()
        match = ASSIGNED_JSON_RE.search(body)
        candidate = match.group(1) if match else body
        try:
            payload = json.loads(candidate)
        except ValueError:
            continue
        products = products_from_payload(payload)
        if products:
            return products

    prices = [int(p.replace(",", "")) for p in RUPEE_RE.findall(html)]
    pairs = zip(prices[0::2], prices[1::2])
    return [
        ScrapedProduct(name=name, fare_min=low, fare_max=high)
        for name, (low, high) in zip(class_names, pairs)
    ]


# ─── Strategies ───────────────────────────────────────────────────────────────

class ScrapeStrategy:
    name = "base"

    def url_for(self, target: ScrapeTarget) -> Optional[str]:
        raise NotImplementedError

    async def fetch(self, client: httpx.AsyncClient, url: str, profile: ProviderProfile,
                    request) -> List[ScrapedProduct]:
        raise NotImplementedError


class StructuredApiStrategy(ScrapeStrategy):
    name = "api"

    def url_for(self, target: ScrapeTarget) -> Optional[str]:
        return target.api_url

    async def fetch(self, client, url, profile, request):
        resp = await client.get(url, headers={"Accept": "application/json", "User-Agent": USER_AGENT})
        resp.raise_for_status()
        return products_from_payload(resp.json())


class HtmlPatternStrategy(ScrapeStrategy):
    name = "html"

    def url_for(self, target: ScrapeTarget) -> Optional[str]:
        return target.page_url

    async def fetch(self, client, url, profile, request):
        resp = await client.get(url, headers={"Accept": "text/html", "User-Agent": USER_AGENT})
        resp.raise_for_status()
        city = request.city.name
        names = [v.display_name for v in profile.vehicle_classes if v.offered_in(city)]
        return products_from_html(resp.text, names)


class AggregatorStrategy(ScrapeStrategy):
    """Third-party comparison endpoint listing fares for several providers."""
    name = "aggregator"

    def url_for(self, target: ScrapeTarget) -> Optional[str]:
        return target.aggregator_url

    async def fetch(self, client, url, profile, request):
        resp = await client.get(url, headers={"Accept": "application/json", "User-Agent": USER_AGENT})
        resp.raise_for_status()
        payload = resp.json()
        fares = payload.get("fares", []) if isinstance(payload, dict) else []
        wanted = {profile.provider_id, profile.name.lower()}
        items = [
            item for item in fares
            if isinstance(item, dict) and str(item.get("provider", "")).lower() in wanted
        ]
        return products_from_payload({"fares": items})


DEFAULT_STRATEGIES = (StructuredApiStrategy(), HtmlPatternStrategy(), AggregatorStrategy())


class FareScraper:
    def __init__(self, client: Optional[httpx.AsyncClient], targets: Dict[str, ScrapeTarget],
                 timeout: float = 2.0, strategies: Sequence[ScrapeStrategy] = DEFAULT_STRATEGIES):
        self.client = client
        self.targets = targets
        self.timeout = timeout
        self.strategies = strategies

    @property
    def budget(self) -> float:
        """Worst-case time for the whole chain: every strategy runs to its timeout."""
        return self.timeout * len(self.strategies)

    @staticmethod
    def render(template: str, profile: ProviderProfile, request) -> str:
        return template.format(
            provider=profile.provider_id,
            city=request.city.name,
            pickup_lat=request.pickup.lat,
            pickup_lng=request.pickup.lng,
            drop_lat=request.dropoff.lat,
            drop_lng=request.dropoff.lng,
        )

    async def scrape(self, profile: ProviderProfile, request) -> ScrapeResponse:
        target = self.targets.get(profile.provider_id)
        if target is None or self.client is None:
            raise UpstreamUnavailableError(f"No scrape target configured for {profile.name}")

        errors = []
        for strategy in self.strategies:
            template = strategy.url_for(target)
            if not template:
                continue
            url = self.render(template, profile, request)
            try:
                products = await asyncio.wait_for(strategy.fetch(self.client, url, profile, request), self.timeout)
            except asyncio.TimeoutError:
                errors.append(f"{strategy.name}: timed out")
                continue
            except (httpx.HTTPError, ValueError) as e:
                errors.append(f"{strategy.name}: {e}")
                continue

            if products:
                logger.info(f"Scraped {len(products)} {profile.name} fares via {strategy.name}")
                return ScrapeResponse(provider=profile.provider_id, strategy=strategy.name,
                                      source_url=url, products=products)
            errors.append(f"{strategy.name}: no fares found")

        raise UpstreamUnavailableError(f"Scraping failed for {profile.name}: {'; '.join(errors) or 'no strategies'}")
