from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional

TrafficLevel = Literal["Light", "Moderate", "Heavy"]
ProviderAvailability = Literal["available", "limited", "unavailable"]
ClassAvailability = Literal["high", "medium", "low"]
QuoteSource = Literal["official", "market", "scrape", "static"]


class CamelModel(BaseModel):
    """Serialized with camelCase keys; accepts either casing on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Route Schemas ────────────────────────────────────────────────────────────

class Location(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    address: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    place_id: str = ""
    description: Optional[str] = None


class RouteInfo(CamelModel):
    distance_meters: float = Field(..., ge=0)
    duration_minutes: float = Field(..., ge=0)
    traffic_level: TrafficLevel = "Light"

    @property
    def distance_km(self) -> float:
        return self.distance_meters / 1000


# ─── Fare Schemas ─────────────────────────────────────────────────────────────

class PriceRange(CamelModel):
    min: int = Field(..., gt=0)
    max: int = Field(..., gt=0)

    @model_validator(mode="after")
    def _ordered(self):
        if self.min > self.max:
            raise ValueError("priceRange.min must not exceed priceRange.max")
        return self


class RideOption(CamelModel):
    vehicle_class: str
    price_range: PriceRange
    eta_minutes: int = Field(..., ge=0)
    surge_active: bool = False
    surge_multiplier: float = 1.0
    rating: float = Field(..., ge=1, le=5)
    review_count: int = Field(..., ge=0)
    features: List[str] = []
    wait_time_minutes: Optional[int] = None
    discount_percent: Optional[int] = None
    night_fare_active: Optional[bool] = None
    availability: Optional[ClassAvailability] = None
    per_km_rate: Optional[float] = None
    booking_fee: Optional[int] = None


class FareQuote(CamelModel):
    provider_name: str
    logo: str
    availability: ProviderAvailability = "available"
    booking_url: str
    rides: List[RideOption]
    source: Optional[QuoteSource] = None


class BestOption(RideOption):
    provider_name: str


# ─── API Schemas ──────────────────────────────────────────────────────────────

class FareRequest(CamelModel):
    """
    Pickup and dropoff are optional at the schema level so a missing location
    is reported as a single 400 rather than a field-by-field 422.
    """
    pickup: Optional[Location] = None
    dropoff: Optional[Location] = None
    distance: Optional[float] = Field(None, ge=0, description="Route distance in meters")
    duration: Optional[float] = Field(None, ge=0, description="Route duration in minutes")
    traffic: Optional[TrafficLevel] = None

    @field_validator("traffic", mode="before")
    @classmethod
    def _normalize_traffic(cls, v):
        if isinstance(v, str):
            v = v.strip().capitalize()
            return v or None
        return v


class FareResponse(CamelModel):
    fares: List[FareQuote]
    cheapest: Optional[BestOption] = None
    fastest: Optional[BestOption] = None


class ErrorResponse(BaseModel):
    error: str
