"""Rates — fiat exchange rates for display conversion."""

from wallet_ledger.rates.models import UNAVAILABLE, ExchangeRateTable
from wallet_ledger.rates.service import RateCache

__all__ = ["UNAVAILABLE", "ExchangeRateTable", "RateCache"]
