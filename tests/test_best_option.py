from app.schemas.schemas import FareQuote, PriceRange, RideOption
from app.services.best_option import select


def ride(name, low, eta):
    return RideOption(vehicle_class=name, price_range=PriceRange(min=low, max=low + 30),
                      eta_minutes=eta, rating=4.1, review_count=100)


def fare(provider, *rides):
    return FareQuote(provider_name=provider, logo="", booking_url="https://example.test", rides=list(rides))


class TestSelect:
    def test_empty(self):
        assert select([]) == (None, None)

    def test_quotes_without_rides(self):
        assert select([fare("Uber")]) == (None, None)

    def test_cheapest_and_fastest(self):
        quotes = [
            fare("Ola", ride("Ola Mini", 110, 8), ride("Ola Auto", 60, 5)),
            fare("Uber", ride("UberGo", 130, 3)),
        ]
        cheapest, fastest = select(quotes)
        assert (cheapest.provider_name, cheapest.vehicle_class) == ("Ola", "Ola Auto")
        assert (fastest.provider_name, fastest.vehicle_class) == ("Uber", "UberGo")

    def test_first_encountered_wins_ties(self):
        quotes = [
            fare("Ola", ride("Ola Mini", 100, 4)),
            fare("Rapido", ride("Rapido Auto", 100, 4)),
        ]
        cheapest, fastest = select(quotes)
        assert cheapest.provider_name == "Ola"
        assert fastest.provider_name == "Ola"

    def test_serializes_camel_case(self):
        cheapest, _ = select([fare("Uber", ride("UberGo", 130, 3))])
        data = cheapest.model_dump(by_alias=True)
        assert data["providerName"] == "Uber"
        assert data["priceRange"] == {"min": 130, "max": 160}
