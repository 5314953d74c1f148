"""Exchange rate table — an immutable snapshot replaced as a whole."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

# Returned by conversions that cannot be computed
UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ExchangeRateTable:
    """Rates of one base asset against fiat currencies.

    Attributes:
        base_asset: Provider id of the base asset (e.g. ``ethereum``).
        rates: Lower-case currency code → price of one base unit.
        stale: True when the table is the hardcoded fallback.
        fetched_at: Unix timestamp the table was installed.
    """

    base_asset: str
    rates: Mapping[str, Decimal]
    stale: bool = False
    fetched_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        frozen = MappingProxyType({k.lower(): Decimal(v) for k, v in self.rates.items()})
        object.__setattr__(self, "rates", frozen)

    def rate(self, currency: str) -> Decimal | None:
        """Return the rate for *currency* (case-insensitive), or None."""
        return self.rates.get(currency.lower())

    @classmethod
    def from_provider(
        cls,
        data: dict[str, Any],
        base_asset: str,
        currencies: Iterable[str],
    ) -> ExchangeRateTable:
        """Build a live table from a ``simple/price`` response.

        Raises:
            ValueError: If the payload carries no usable rate for *base_asset*.
        """
        prices = data.get(base_asset)
        if not isinstance(prices, dict):
            msg = f"No prices for {base_asset!r} in rate response"
            raise ValueError(msg)
        rates: dict[str, Decimal] = {}
        for currency in currencies:
            value = prices.get(currency.lower())
            if value is None or isinstance(value, bool):
                continue
            try:
                rates[currency.lower()] = Decimal(str(value))
            except InvalidOperation:
                continue
        if not rates:
            msg = f"No usable rates for {base_asset!r} in rate response"
            raise ValueError(msg)
        return cls(base_asset=base_asset, rates=rates, stale=False)
