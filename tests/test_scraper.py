import asyncio

import httpx
import pytest

from app.core.errors import UpstreamUnavailableError
from app.core.pricing_config import ScrapeTarget
from app.services.scraper import FareScraper, product_from_item, products_from_html

from conftest import make_request

TARGET = ScrapeTarget(
    api_url="https://fares.test/api/{provider}?from={pickup_lat},{pickup_lng}",
    page_url="https://fares.test/page/{provider}/{city}",
    aggregator_url="https://compare.test/fares",
)


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestParsing:
    def test_item_with_price_range(self):
        product = product_from_item({"type": "Ola Mini", "priceRange": {"min": "₹1,020", "max": 1200}})
        assert (product.name, product.fare_min, product.fare_max) == ("Ola Mini", 1020, 1200)

    def test_item_without_price_is_skipped(self):
        assert product_from_item({"name": "UberGo"}) is None

    def test_html_script_json(self):
        html = '<html><script>window.__STATE__ = {"fares": [{"name": "Ola Mini", "min": 99, "max": 120}]};</script></html>'
        products = products_from_html(html, ["Ola Mini"])
        assert [(p.name, p.fare_min, p.fare_max) for p in products] == [("Ola Mini", 99, 120)]

    def test_html_rupee_pairs(self):
        html = "<div>₹120 - ₹150</div><div>₹180 – ₹220</div><div>₹999</div>"
        products = products_from_html(html, ["UberGo", "UberX", "UberXL"])
        assert [(p.name, p.fare_min, p.fare_max) for p in products] == [
            ("UberGo", 120, 150), ("UberX", 180, 220),
        ]


@pytest.mark.asyncio
class TestFareScraper:
    async def test_structured_api_first(self, config, pickup, dropoff):
        seen = []

        def handler(request):
            seen.append((request.url.path, request.url.params["from"]))
            return httpx.Response(200, json={"estimates": [
                {"display_name": "UberGo", "low_estimate": 120, "high_estimate": 150, "eta": 6},
            ]})

        async with client_for(handler) as client:
            scraper = FareScraper(client, {"uber": TARGET})
            result = await scraper.scrape(config.provider("uber"), make_request(config, pickup, dropoff))

        assert result.strategy == "api"
        assert result.products[0].eta_minutes == 6
        assert seen == [("/api/uber", "28.6315,77.2167")]

    async def test_falls_through_to_html(self, config, pickup, dropoff):
        def handler(request):
            if request.url.path.startswith("/api"):
                return httpx.Response(503)
            return httpx.Response(200, text="<p>Rapido Bike ₹45 - ₹60</p>")

        async with client_for(handler) as client:
            scraper = FareScraper(client, {"rapido": TARGET})
            result = await scraper.scrape(config.provider("rapido"), make_request(config, pickup, dropoff))

        assert result.strategy == "html"
        assert result.source_url == "https://fares.test/page/rapido/delhi"
        assert result.products[0].name == "Rapido Bike"

    async def test_html_pairs_skip_classes_not_offered_in_city(self, config, pickup, dropoff):
        html = "<div>₹90 - ₹110</div><div>₹130 - ₹160</div><div>₹220 - ₹260</div>"

        def handler(request):
            if request.url.path.startswith("/api"):
                return httpx.Response(404)
            return httpx.Response(200, text=html)

        async with client_for(handler) as client:
            scraper = FareScraper(client, {"uber": TARGET})
            request = make_request(config, pickup, dropoff, city="pune")
            result = await scraper.scrape(config.provider("uber"), request)

        assert result.source_url == "https://fares.test/page/uber/pune"
        assert [p.name for p in result.products] == ["UberGo", "UberX"]

    async def test_aggregator_filters_provider(self, config, pickup, dropoff):
        def handler(request):
            if request.url.host == "compare.test":
                return httpx.Response(200, json={"fares": [
                    {"provider": "Uber", "name": "UberGo", "min": 130, "max": 160},
                    {"provider": "Ola", "name": "Ola Mini", "min": 110, "max": 140},
                ]})
            return httpx.Response(404)

        async with client_for(handler) as client:
            scraper = FareScraper(client, {"ola": TARGET})
            result = await scraper.scrape(config.provider("ola"), make_request(config, pickup, dropoff))

        assert result.strategy == "aggregator"
        assert [p.name for p in result.products] == ["Ola Mini"]

    async def test_strategy_timeout(self, config, pickup, dropoff):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={})

        async with client_for(handler) as client:
            scraper = FareScraper(client, {"uber": ScrapeTarget(api_url="https://fares.test/api")}, timeout=0.05)
            with pytest.raises(UpstreamUnavailableError, match="timed out"):
                await scraper.scrape(config.provider("uber"), make_request(config, pickup, dropoff))

    async def test_no_target_configured(self, config, pickup, dropoff):
        async with client_for(lambda request: httpx.Response(200)) as client:
            scraper = FareScraper(client, {})
            with pytest.raises(UpstreamUnavailableError):
                await scraper.scrape(config.provider("uber"), make_request(config, pickup, dropoff))

    async def test_all_strategies_fail(self, config, pickup, dropoff):
        async with client_for(lambda request: httpx.Response(500)) as client:
            scraper = FareScraper(client, {"uber": TARGET})
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await scraper.scrape(config.provider("uber"), make_request(config, pickup, dropoff))
        assert all(f"{name}:" in str(exc_info.value) for name in ("api", "html", "aggregator"))
