from typing import Iterable, Optional, Tuple

from app.schemas.schemas import BestOption, FareQuote


def _best(quote: FareQuote, ride) -> BestOption:
    return BestOption(**ride.model_dump(), provider_name=quote.provider_name)


def select(quotes: Iterable[FareQuote]) -> Tuple[Optional[BestOption], Optional[BestOption]]:
    """
    Cheapest (lowest priceRange.min) and fastest (lowest etaMinutes) ride across
    all quotes. On a tie the first ride encountered wins.
    """
    cheapest = fastest = None
    for quote in quotes:
        for ride in quote.rides:
            if cheapest is None or ride.price_range.min < cheapest[1].price_range.min:
                cheapest = (quote, ride)
            if fastest is None or ride.eta_minutes < fastest[1].eta_minutes:
                fastest = (quote, ride)

    return (
        _best(*cheapest) if cheapest else None,
        _best(*fastest) if fastest else None,
    )
