"""
Fare service exceptions.

Only InvalidFareRequestError and NoFaresAvailableError ever reach the HTTP
layer; the rest are recovered inside a provider's fallback chain.
"""


class FareServiceError(Exception):
    """Base exception for fare comparison errors"""
    status_code = 500


class InvalidFareRequestError(FareServiceError):
    """Pickup or dropoff missing or unusable"""
    status_code = 400


class UpstreamUnavailableError(FareServiceError):
    """One fallback tier could not produce a quote"""
    status_code = 502


class ProviderExhaustedError(FareServiceError):
    """Every fallback tier for a provider failed"""
    status_code = 502

    def __init__(self, provider: str, attempts: list):
        self.provider = provider
        self.attempts = attempts
        tiers = ", ".join(f"{a.tier}: {a.error}" for a in attempts)
        super().__init__(f"All fare sources failed for {provider} ({tiers})")


class NoFaresAvailableError(FareServiceError):
    """No provider returned a quote"""
    status_code = 503
