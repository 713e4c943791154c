import pytest
from pydantic import TypeAdapter

from app.core.errors import UpstreamUnavailableError
from app.schemas.raw import (
    MarketResponse, MarketRide, OfficialPromo, ProviderRawResponse, ScrapedProduct, ScrapeResponse,
)
from app.schemas.schemas import RouteInfo
from app.services.normalizers import normalize, promo_percent

ROUTE = RouteInfo(distance_meters=6000, duration_minutes=20)


class TestPromoPercent:
    def test_percentage(self):
        promo = OfficialPromo(code="SAVE30", discount_type="percentage", discount_percentage=30)
        assert promo_percent(promo, 150) == 30

    def test_flat_converted_to_percent(self):
        promo = OfficialPromo(code="RIDE50", discount_type="flat", discount_amount=30)
        assert promo_percent(promo, 120) == 25

    def test_cashback_is_not_a_discount(self):
        promo = OfficialPromo(code="MONSOON", discount_type="cashback", cashback=40)
        assert promo_percent(promo, 120) is None

    def test_no_promo(self):
        assert promo_percent(None, 120) is None


class TestMarket:
    def test_surge_flag_follows_multiplier(self, config):
        raw = MarketResponse(
            provider="uber", surge_multiplier=1.3, booking_url="https://m.uber.com/looking",
            rides=[MarketRide(name="UberGo", fare_min=140, fare_max=170, eta=9, rating=4.34,
                              reviews=900, features=["AC"])],
        )
        quote = normalize(raw, config.provider("uber"), ROUTE)
        ride = quote.rides[0]
        assert quote.source == "market"
        assert ride.surge_active is True
        assert ride.rating == 4.3
        assert ride.wait_time_minutes is None


class TestScrape:
    def scrape(self, *products):
        return ScrapeResponse(provider="rapido", strategy="html", source_url="https://example.test/rapido",
                              products=list(products))

    def test_known_class_gets_profile_metadata(self, config):
        raw = self.scrape(ScrapedProduct(name="rapido bike", fare_min=60, fare_max=75))
        quote = normalize(raw, config.provider("rapido"), ROUTE)
        ride = quote.rides[0]
        assert ride.vehicle_class == "Rapido Bike"
        assert "Helmet Provided" in ride.features
        assert ride.review_count == 2000
        assert ride.eta_minutes == 12  # 20 min * 0.6 speed factor
        assert quote.source == "scrape"
        assert quote.booking_url == "https://example.test/rapido"

    def test_unknown_class_kept(self, config):
        raw = self.scrape(ScrapedProduct(name="Rapido Parcel", fare_min=40, fare_max=30, eta_minutes=7))
        ride = normalize(raw, config.provider("rapido"), ROUTE).rides[0]
        assert ride.vehicle_class == "Rapido Parcel"
        assert (ride.price_range.min, ride.price_range.max) == (30, 40)
        assert ride.eta_minutes == 7

    def test_surge_below_one_is_floored(self, config):
        raw = self.scrape(ScrapedProduct(name="Rapido Bike", fare_min=60, fare_max=75, surge_multiplier=0.7))
        ride = normalize(raw, config.provider("rapido"), ROUTE).rides[0]
        assert ride.surge_multiplier == 1.0
        assert ride.surge_active is False

    def test_zero_fares_dropped(self, config):
        raw = self.scrape(ScrapedProduct(name="Rapido Auto", fare_min=0, fare_max=0))
        with pytest.raises(UpstreamUnavailableError):
            normalize(raw, config.provider("rapido"), ROUTE)


def test_raw_union_discriminates_on_kind():
    adapter = TypeAdapter(ProviderRawResponse)
    raw = adapter.validate_python({
        "kind": "scrape", "provider": "ola", "strategy": "api", "source_url": "https://example.test",
        "products": [{"name": "Ola Mini", "fare_min": 90, "fare_max": 110}],
    })
    assert isinstance(raw, ScrapeResponse)
