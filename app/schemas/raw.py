"""
Raw provider response shapes.

Each fallback tier speaks its own dialect; ``ProviderRawResponse`` is the
tagged union over them, discriminated by ``kind``. Normalizers in
app.services.normalizers turn any variant into a FareQuote.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


# ─── Official-structure estimate ─────────────────────────────────────────────

class OfficialEstimate(BaseModel):
    vehicle_type: str
    display_name: str
    low_estimate: int
    high_estimate: int
    duration_seconds: int
    pickup_eta_minutes: int
    surge_multiplier: float
    surge_active: bool
    driver_rating: float
    review_count: int
    features: List[str]
    discount_percentage: Optional[int] = None
    night_fare_active: Optional[bool] = None
    per_km_rate: Optional[float] = None
    booking_fee: Optional[int] = None
    availability: Optional[Literal["high", "medium", "low"]] = None


class OfficialPromo(BaseModel):
    code: str
    discount_type: Literal["percentage", "flat", "cashback"]
    discount_percentage: int = 0
    discount_amount: int = 0
    cashback: int = 0


class OfficialResponse(BaseModel):
    kind: Literal["official"] = "official"
    provider: str
    city: str
    currency: str = "INR"
    availability: Literal["available", "limited", "unavailable"] = "available"
    booking_url: str
    estimates: List[OfficialEstimate]
    promo: Optional[OfficialPromo] = None


# ─── Market simulation ────────────────────────────────────────────────────────

class MarketRide(BaseModel):
    name: str
    fare_min: int
    fare_max: int
    eta: int
    rating: float
    reviews: int
    features: List[str]


class MarketResponse(BaseModel):
    kind: Literal["market"] = "market"
    provider: str
    surge_multiplier: float
    availability: Literal["available", "limited", "unavailable"] = "available"
    booking_url: str
    rides: List[MarketRide]


# ─── Scraped ──────────────────────────────────────────────────────────────────

class ScrapedProduct(BaseModel):
    name: str
    fare_min: int
    fare_max: int
    eta_minutes: Optional[int] = None
    surge_multiplier: Optional[float] = None


class ScrapeResponse(BaseModel):
    kind: Literal["scrape"] = "scrape"
    provider: str
    strategy: Literal["api", "html", "aggregator"]
    source_url: str
    products: List[ScrapedProduct]


ProviderRawResponse = Annotated[
    Union[OfficialResponse, MarketResponse, ScrapeResponse],
    Field(discriminator="kind"),
]
