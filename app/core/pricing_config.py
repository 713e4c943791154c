"""
Static pricing configuration.

Every table the pricing engine reads lives here: city keywords and multipliers,
per (provider, vehicle class) tariffs, provider/vehicle metadata, surge rules
and the static fallback rates. A single PricingConfig is built at start-up
and handed to each component; nothing reads these tables as module globals.

All money values are INR.
"""
from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.config import Settings

Availability = Literal["high", "medium", "low"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ─── Cities ───────────────────────────────────────────────────────────────────

class CityProfile(_Frozen):
    name: str
    keywords: Tuple[str, ...] = ()
    multiplier: float = Field(0.9, gt=0)
    surge_factor: float = 1.0
    tier: int = 3
    center: Optional[Tuple[float, float]] = None
    radius_deg: float = 0.3
    # Congestion applied to ETAs and demand applied to review counts / waits
    eta_factor: float = 1.1
    demand_factor: float = 1.0
    wait_factor: float = 1.0


# ─── Tariffs ──────────────────────────────────────────────────────────────────

class Tariff(_Frozen):
    base_fare: float = Field(..., ge=0)
    per_km: float = Field(..., ge=0)
    per_minute: float = Field(0.0, ge=0)
    minimum_fare: float = Field(..., gt=0)
    booking_fee: float = Field(0.0, ge=0)
    tax_rate: float = Field(0.0, ge=0)
    night_base_fare: Optional[float] = Field(None, ge=0)
    night_per_km: Optional[float] = Field(None, ge=0)
    day_per_km: Optional[float] = Field(None, ge=0)

    @property
    def has_night_split(self) -> bool:
        return self.night_per_km is not None or self.night_base_fare is not None


class StaticRate(_Frozen):
    """Flat per-km band used when every live/simulated source has failed."""
    per_km_low: float = Field(..., ge=0)
    per_km_high: float = Field(..., ge=0)
    class_multiplier: float = Field(1.0, gt=0)

    @model_validator(mode="after")
    def _ordered(self):
        if self.per_km_low > self.per_km_high:
            raise ValueError("per_km_low must not exceed per_km_high")
        return self


# ─── Providers ────────────────────────────────────────────────────────────────

class DiscountRule(_Frozen):
    probability: float = Field(..., ge=0, le=1)
    min_percent: int = Field(..., ge=0)
    max_percent: int = Field(..., ge=0)


class PromoRule(_Frozen):
    """Provider-wide promo offered by the official estimate endpoint."""
    probability: float = Field(..., ge=0, le=1)
    codes: Tuple[str, ...]
    percent_range: Tuple[int, int] = (10, 35)
    flat_range: Tuple[int, int] = (20, 60)


class VehicleClassProfile(_Frozen):
    class_id: str
    display_name: str
    speed_factor: float = Field(..., gt=0)
    eta_jitter: int = Field(4, ge=0)
    rating_range: Tuple[float, float]
    review_range: Tuple[int, int]
    features: Tuple[str, ...]
    wait_range: Tuple[int, int]
    discount: Optional[DiscountRule] = None
    # Scales the surge excess over 1.0 and the city multiplier for this class
    surge_scale: float = 1.0
    surge_threshold: float = 1.0
    city_scale: float = 1.0
    availability: Optional[Availability] = None
    # None means offered everywhere
    cities: Optional[Tuple[str, ...]] = None

    def offered_in(self, city: str) -> bool:
        return self.cities is None or city in self.cities


class ProviderProfile(_Frozen):
    provider_id: str
    name: str
    logo: str
    booking_url: str
    surge_damping: float = Field(1.0, ge=0)
    price_variance: Optional[float] = None
    vehicle_classes: Tuple[VehicleClassProfile, ...]
    # Cities the official-structure endpoint serves; None means all
    official_cities: Optional[Tuple[str, ...]] = None
    night_tariffs: bool = False
    promo: Optional[PromoRule] = None
    limited_probability: Optional[float] = None
    market_rating_range: Tuple[float, float] = (4.0, 4.4)
    market_review_range: Tuple[int, int] = (500, 2500)

    def booking_link(self, pickup_lat: float, pickup_lng: float, drop_lat: float, drop_lng: float) -> str:
        return self.booking_url.format(
            pickup_lat=pickup_lat, pickup_lng=pickup_lng, drop_lat=drop_lat, drop_lng=drop_lng
        )


# ─── Surge & scraping ─────────────────────────────────────────────────────────

class SurgeRules(_Frozen):
    peak_windows: Tuple[Tuple[int, int], ...] = ((8, 10), (17, 20))
    peak_factor: float = 1.3
    shoulder_windows: Tuple[Tuple[int, int], ...] = ((11, 14), (21, 23))
    shoulder_factor: float = 1.1
    # datetime.weekday(): Friday=4, Saturday=5
    weekend_night_days: Tuple[int, ...] = (4, 5)
    weekend_night_start: int = 20
    weekend_night_factor: float = 1.2
    traffic_factors: Dict[str, float] = {"Light": 1.0, "Moderate": 1.1, "Heavy": 1.2}
    weather_probability: float = Field(0.15, ge=0, le=1)
    weather_factor: float = 1.3
    jitter: float = Field(0.05, ge=0)
    long_distance_steps: Tuple[Tuple[float, float], ...] = ((15.0, 0.95), (25.0, 0.9))
    floor: float = 1.0
    peak_fare_multiplier: float = 1.15


class ScrapeTarget(_Frozen):
    """URL templates for the scrape tier. Unset strategies are skipped."""
    api_url: Optional[str] = None
    page_url: Optional[str] = None
    aggregator_url: Optional[str] = None


class PricingConfig(_Frozen):
    cities: Tuple[CityProfile, ...]
    default_city: CityProfile
    tariffs: Dict[str, Dict[str, Tariff]]
    providers: Tuple[ProviderProfile, ...]
    static_rates: Dict[str, Dict[str, StaticRate]]
    static_base_fare: float = 50.0
    surge: SurgeRules = SurgeRules()
    night_window: Tuple[int, int] = (22, 6)
    price_variance: float = Field(0.10, ge=0, lt=1)
    average_speed_kmh: float = Field(25.0, gt=0)
    # Chance a provider reports "limited" availability, keyed by city tier
    limited_probability_by_tier: Dict[int, float] = {1: 0.05, 2: 0.10, 3: 0.15}
    scrape_targets: Dict[str, ScrapeTarget] = {}
    currency: str = "INR"

    def city(self, name: str) -> CityProfile:
        for profile in self.cities:
            if profile.name == name:
                return profile
        return self.default_city

    def tariff(self, provider_id: str, class_id: str) -> Optional[Tariff]:
        return self.tariffs.get(provider_id, {}).get(class_id)

    def static_rate(self, provider_id: str, class_id: str) -> Optional[StaticRate]:
        return self.static_rates.get(provider_id, {}).get(class_id)

    def provider(self, provider_id: str) -> ProviderProfile:
        for profile in self.providers:
            if profile.provider_id == provider_id:
                return profile
        raise KeyError(provider_id)


# ─── Default tables ───────────────────────────────────────────────────────────

_METROS = ("mumbai", "delhi", "bangalore")


def _metro(name, keywords, multiplier, surge_factor, center, radius):
    return CityProfile(
        name=name, keywords=keywords, multiplier=multiplier, surge_factor=surge_factor,
        tier=1, center=center, radius_deg=radius, eta_factor=1.3, demand_factor=2.0, wait_factor=1.5,
    )


DEFAULT_CITIES = (
    _metro("mumbai", ("mumbai", "bombay", "andheri", "bandra", "juhu", "worli", "colaba", "powai"),
           1.3, 1.1, (19.076, 72.8777), 0.5),
    _metro("delhi", ("delhi", "new delhi", "connaught", "karol bagh", "lajpat", "dwarka", "rohini",
                     "gurgaon", "gurugram", "noida", "faridabad", "ghaziabad"),
           1.2, 1.05, (28.6139, 77.209), 0.5),
    _metro("bangalore", ("bangalore", "bengaluru", "koramangala", "whitefield", "electronic city",
                         "indiranagar", "jayanagar"),
           1.25, 1.08, (12.9716, 77.5946), 0.3),
    CityProfile(name="hyderabad", keywords=("hyderabad", "secunderabad", "hitech city", "gachibowli",
                                             "jubilee hills", "banjara hills"),
                multiplier=1.15, surge_factor=1.03, tier=1, center=(17.385, 78.4867)),
    CityProfile(name="pune", keywords=("pune", "pimpri", "chinchwad", "hinjewadi", "kothrud", "viman nagar"),
                multiplier=1.1, surge_factor=1.02, tier=1, center=(18.5204, 73.8567)),
    CityProfile(name="chennai", keywords=("chennai", "madras", "anna nagar", "velachery", "tambaram", "adyar"),
                multiplier=1.15, surge_factor=1.05, tier=1, center=(13.0827, 80.2707)),
    CityProfile(name="kolkata", keywords=("kolkata", "calcutta", "salt lake", "park street", "howrah"),
                multiplier=1.05, tier=2, center=(22.5726, 88.3639)),
    CityProfile(name="ahmedabad", keywords=("ahmedabad", "gandhinagar"), multiplier=1.0, tier=2),
    CityProfile(name="jaipur", keywords=("jaipur", "pink city"), multiplier=0.95, tier=2),
    CityProfile(name="surat", keywords=("surat",), multiplier=0.9, tier=2),
    CityProfile(name="lucknow", keywords=("lucknow",), multiplier=0.9, tier=2),
    CityProfile(name="kanpur", keywords=("kanpur",), multiplier=0.85, tier=2),
    CityProfile(name="nagpur", keywords=("nagpur",), multiplier=0.9, tier=2),
    CityProfile(name="indore", keywords=("indore",), multiplier=0.9, tier=2),
    CityProfile(name="thane", keywords=("thane",), multiplier=1.2),
    CityProfile(name="bhopal", keywords=("bhopal",), multiplier=0.85),
    CityProfile(name="visakhapatnam", keywords=("visakhapatnam", "vizag"), multiplier=0.9),
    CityProfile(name="patna", keywords=("patna",), multiplier=0.8),
    CityProfile(name="vadodara", keywords=("vadodara", "baroda"), multiplier=0.9),
    CityProfile(name="ludhiana", keywords=("ludhiana",), multiplier=0.85),
    CityProfile(name="agra", keywords=("agra",), multiplier=0.8),
    CityProfile(name="nashik", keywords=("nashik",), multiplier=0.85),
    CityProfile(name="meerut", keywords=("meerut",), multiplier=0.8),
    CityProfile(name="rajkot", keywords=("rajkot",), multiplier=0.85),
)

DEFAULT_CITY = CityProfile(name="default", multiplier=0.9)

DEFAULT_TARIFFS = {
    "uber": {
        "go": Tariff(base_fare=50, per_km=12, per_minute=2, minimum_fare=80, booking_fee=5, tax_rate=0.05),
        "x": Tariff(base_fare=60, per_km=15, per_minute=2.5, minimum_fare=100, booking_fee=8, tax_rate=0.05),
        "xl": Tariff(base_fare=80, per_km=18, per_minute=3, minimum_fare=150, booking_fee=10, tax_rate=0.05),
        "premier": Tariff(base_fare=100, per_km=22, per_minute=3.5, minimum_fare=200, booking_fee=15, tax_rate=0.05),
    },
    "ola": {
        "mini": Tariff(base_fare=45, per_km=10, per_minute=1.8, minimum_fare=75, booking_fee=4, tax_rate=0.05),
        "prime": Tariff(base_fare=55, per_km=13, per_minute=2.2, minimum_fare=95, booking_fee=6, tax_rate=0.05),
        "auto": Tariff(base_fare=20, per_km=7, per_minute=1.2, minimum_fare=35, booking_fee=2, tax_rate=0.03),
        "lux": Tariff(base_fare=90, per_km=20, per_minute=3.2, minimum_fare=180, booking_fee=12, tax_rate=0.05),
    },
    "rapido": {
        "bike": Tariff(base_fare=20, per_km=15.5, minimum_fare=30, booking_fee=5, tax_rate=0.05,
                       night_base_fare=25, night_per_km=18.35, day_per_km=15.5),
        "auto": Tariff(base_fare=30, per_km=24.5, minimum_fare=45, booking_fee=8, tax_rate=0.05,
                       night_base_fare=35, night_per_km=28.78, day_per_km=24.5),
        "cab_ac": Tariff(base_fare=45, per_km=30.0, minimum_fare=80, booking_fee=12, tax_rate=0.05,
                         night_base_fare=50, night_per_km=35.42, day_per_km=30.0),
    },
}

DEFAULT_STATIC_RATES = {
    "uber": {
        "go": StaticRate(per_km_low=12, per_km_high=15, class_multiplier=1.0),
        "x": StaticRate(per_km_low=12, per_km_high=15, class_multiplier=1.3),
        "xl": StaticRate(per_km_low=12, per_km_high=15, class_multiplier=1.8),
    },
    "ola": {
        "mini": StaticRate(per_km_low=10, per_km_high=13, class_multiplier=0.9),
        "prime": StaticRate(per_km_low=10, per_km_high=13, class_multiplier=1.2),
        "auto": StaticRate(per_km_low=8, per_km_high=10, class_multiplier=0.8),
    },
    "rapido": {
        "bike": StaticRate(per_km_low=6, per_km_high=8, class_multiplier=0.7),
        "auto": StaticRate(per_km_low=9, per_km_high=11, class_multiplier=0.85),
    },
}

_BASE_FEATURES = ("AC", "GPS Tracking", "Digital Payment")

DEFAULT_PROVIDERS = (
    ProviderProfile(
        provider_id="uber", name="Uber", logo="🚗", booking_url="https://m.uber.com/looking",
        surge_damping=1.0, market_rating_range=(4.2, 4.5), market_review_range=(500, 2500),
        vehicle_classes=(
            VehicleClassProfile(
                class_id="go", display_name="UberGo", speed_factor=0.8,
                rating_range=(4.0, 4.5), review_range=(500, 3000), wait_range=(2, 8),
                features=_BASE_FEATURES + ("4 Seats", "Economy"),
                discount=DiscountRule(probability=0.3, min_percent=5, max_percent=20),
            ),
            VehicleClassProfile(
                class_id="x", display_name="UberX", speed_factor=0.9,
                rating_range=(4.3, 4.7), review_range=(300, 2000), wait_range=(3, 10),
                features=_BASE_FEATURES + ("4 Seats", "Premium", "Professional Driver"),
            ),
            VehicleClassProfile(
                class_id="xl", display_name="UberXL", speed_factor=1.1,
                rating_range=(4.2, 4.6), review_range=(200, 1200), wait_range=(4, 12),
                features=_BASE_FEATURES + ("6 Seats", "SUV", "Extra Space"), cities=_METROS,
            ),
            VehicleClassProfile(
                class_id="premier", display_name="Uber Premier", speed_factor=0.95,
                rating_range=(4.5, 4.9), review_range=(100, 800), wait_range=(4, 12),
                features=_BASE_FEATURES + ("4 Seats", "Luxury Sedan", "Top-rated Driver"), cities=_METROS,
            ),
        ),
    ),
    ProviderProfile(
        provider_id="ola", name="Ola", logo="🟢", booking_url="https://book.olacabs.com",
        surge_damping=0.9, market_rating_range=(4.0, 4.4), market_review_range=(800, 4000),
        official_cities=("mumbai", "delhi", "bangalore", "hyderabad", "pune", "chennai", "kolkata"),
        vehicle_classes=(
            VehicleClassProfile(
                class_id="mini", display_name="Ola Mini", speed_factor=0.85,
                rating_range=(3.8, 4.3), review_range=(800, 5000), wait_range=(2, 9),
                features=("AC", "4 Seats", "Economy", "Digital Payment"),
                discount=DiscountRule(probability=0.4, min_percent=10, max_percent=30),
            ),
            VehicleClassProfile(
                class_id="prime", display_name="Ola Prime", speed_factor=0.95,
                rating_range=(4.1, 4.5), review_range=(400, 3000), wait_range=(3, 11),
                features=("Premium", "AC", "4 Seats", "Sedan"),
            ),
            VehicleClassProfile(
                class_id="auto", display_name="Ola Auto", speed_factor=0.7,
                rating_range=(3.6, 4.1), review_range=(1000, 6000), wait_range=(1, 6),
                features=("3 Wheeler", "Open Air", "Quick", "Affordable"),
                surge_scale=0.9, surge_threshold=1.2, city_scale=0.9,
            ),
            VehicleClassProfile(
                class_id="lux", display_name="Ola Lux", speed_factor=0.95,
                rating_range=(4.4, 4.8), review_range=(100, 700), wait_range=(5, 14),
                features=("Luxury", "AC", "4 Seats", "Professional Driver"), cities=_METROS,
            ),
        ),
    ),
    ProviderProfile(
        provider_id="rapido", name="Rapido", logo="🏍️",
        booking_url="https://rapido.bike/ride?pickup_lat={pickup_lat}&pickup_lng={pickup_lng}"
                    "&drop_lat={drop_lat}&drop_lng={drop_lng}",
        surge_damping=0.8, price_variance=0.08, night_tariffs=True, limited_probability=0.03,
        market_rating_range=(4.1, 4.4), market_review_range=(2000, 8000),
        promo=PromoRule(probability=0.6, codes=("RIDE50", "NEWUSER", "WEEKEND20", "SAVE30", "MONSOON", "FIRST100")),
        vehicle_classes=(
            VehicleClassProfile(
                class_id="bike", display_name="Rapido Bike", speed_factor=0.6, eta_jitter=3,
                rating_range=(4.1, 4.4), review_range=(2000, 8000), wait_range=(1, 5),
                features=("Fast", "Eco-friendly", "Beat Traffic", "Helmet Provided", "GPS Tracking"),
                discount=DiscountRule(probability=0.5, min_percent=15, max_percent=35),
                surge_threshold=1.1, availability="high",
            ),
            VehicleClassProfile(
                class_id="auto", display_name="Rapido Auto", speed_factor=0.75,
                rating_range=(3.8, 4.2), review_range=(800, 4000), wait_range=(2, 7),
                features=("3 Wheeler", "Affordable", "Quick", "Digital Payment", "GPS Tracking"),
                surge_scale=0.95, surge_threshold=1.1, availability="medium",
            ),
            VehicleClassProfile(
                class_id="cab_ac", display_name="Rapido Cab AC", speed_factor=0.9, eta_jitter=5,
                rating_range=(4.2, 4.5), review_range=(300, 1500), wait_range=(3, 10),
                features=("AC", "4 Seats", "Comfortable", "Digital Payment", "GPS Tracking",
                          "Professional Driver"),
                surge_threshold=1.1, availability="low",
            ),
        ),
    ),
)


def build_pricing_config(settings: Optional[Settings] = None) -> PricingConfig:
    """Build the process-wide pricing tables, applying tunables from Settings."""
    config = PricingConfig(
        cities=DEFAULT_CITIES,
        default_city=DEFAULT_CITY,
        tariffs=DEFAULT_TARIFFS,
        providers=DEFAULT_PROVIDERS,
        static_rates=DEFAULT_STATIC_RATES,
    )
    if settings is None:
        return config
    surge = config.surge.model_copy(update={"weather_probability": settings.weather_event_probability})
    return config.model_copy(update={
        "surge": surge,
        "price_variance": settings.price_variance,
        "average_speed_kmh": settings.average_city_speed_kmh,
    })
