"""
Currency conversion rates for price normalization.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

# Units of the reference currency (USD) per one unit of the keyed currency.
DEFAULT_RATES_TO_USD: dict[str, float] = {
    "USD": 1.0,
    "GBP": 1.27,
    "EUR": 1.09,
    "CAD": 0.74,
    "AUD": 0.66,
    "ZAR": 0.055,
}


class RateProvider(ABC):
    """
    Source of conversion rates into a single reference currency.
    """

    reference_currency: str = "USD"

    @abstractmethod
    def rate_for(self, currency: str) -> float | None:
        """
        Return the multiplier converting `currency` to the reference currency,
        or None when the currency is unknown.
        """


class StaticRateProvider(RateProvider):
    def __init__(
        self,
        rates: Mapping[str, float] | None = None,
        *,
        reference_currency: str = "USD",
    ) -> None:
        self.reference_currency = reference_currency.strip().upper()
        if rates is None:
            # Rebase the USD table onto the configured reference currency.
            base = DEFAULT_RATES_TO_USD.get(self.reference_currency)
            if base is None:
                raise ValueError(f"No default rate for reference currency '{self.reference_currency}'.")
            rates = {code: rate / base for code, rate in DEFAULT_RATES_TO_USD.items()}
        self._rates = {code.strip().upper(): float(rate) for code, rate in rates.items()}
        self._rates.setdefault(self.reference_currency, 1.0)

    def rate_for(self, currency: str) -> float | None:
        return self._rates.get(currency.strip().upper())
