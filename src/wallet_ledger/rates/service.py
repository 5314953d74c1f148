"""Rate cache — live fiat rates with an atomic fallback.

Fetches ``GET {url}/simple/price?ids=<base>&vs_currencies=<a,b,c>`` and
keeps the latest :class:`ExchangeRateTable`. When the provider fails, the
configured fallback table is installed in one assignment with
``stale=True``; nothing is merged.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

import httpx

from wallet_ledger.errors.external_errors import RatesError
from wallet_ledger.notifications.events import RatesStaleEvent
from wallet_ledger.rates.models import UNAVAILABLE, ExchangeRateTable
from wallet_ledger.utils.units import parse_amount

if TYPE_CHECKING:
    from wallet_ledger.config.settings import RatesConfig
    from wallet_ledger.metrics.collector import WalletMetrics
    from wallet_ledger.notifications.service import NotificationService

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


class RateCache:
    """Holds the current exchange rate table.

    Usage::

        rates = RateCache(config.rates)
        await rates.connect()
        table = await rates.get_rates()
        rates.convert("0.5", "usd")   # "1500.00"
    """

    def __init__(
        self,
        config: RatesConfig,
        *,
        notifications: NotificationService | None = None,
        metrics: WalletMetrics | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._notifications = notifications
        self._metrics = metrics
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._table: ExchangeRateTable | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers={"Accept": "application/json"},
            timeout=self._config.timeout,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def table(self) -> ExchangeRateTable | None:
        """The installed table, or None before the first refresh."""
        return self._table

    @property
    def is_stale(self) -> bool:
        return self._table is not None and self._table.stale

    async def get_rates(self) -> ExchangeRateTable:
        """Fetch live rates, falling back to the hardcoded table on failure.

        Never raises: a failed fetch installs the fallback with ``stale=True``
        and publishes a ``rates_stale`` event.
        """
        try:
            table = await self._fetch()
        except RatesError as exc:
            logger.warning("Exchange rate fetch failed, using fallback table: %s", exc.message)
            table = self.fallback_table()
            if self._metrics:
                self._metrics.record_rate_fallback()
            if self._notifications:
                await self._notifications.notify(RatesStaleEvent(reason=exc.message))
        self._table = table
        return table

    def fallback_table(self) -> ExchangeRateTable:
        """Build the configured fallback table, marked stale."""
        return ExchangeRateTable(
            base_asset=self._config.base_asset,
            rates=dict(self._config.fallback_rates),
            stale=True,
        )

    def convert(self, amount: str | int | Decimal, currency: str) -> str:
        """Convert a display amount of the base asset into *currency*.

        Returns a two-decimal string, or ``UNAVAILABLE`` when there is no
        table, no rate for *currency*, or the amount is not numeric.
        """
        if self._table is None:
            return UNAVAILABLE
        rate = self._table.rate(currency)
        if rate is None:
            return UNAVAILABLE
        try:
            value = parse_amount(amount)
        except ValueError:
            return UNAVAILABLE
        return format((value * rate).quantize(_CENTS, rounding=ROUND_HALF_UP), "f")

    async def _fetch(self) -> ExchangeRateTable:
        if self._client is None:
            msg = "Rate cache not connected. Call connect() first."
            raise RatesError(msg, status_code=500)

        params = {
            "ids": self._config.base_asset,
            "vs_currencies": ",".join(self._config.vs_currencies),
        }
        try:
            response = await self._client.get("/simple/price", params=params)
        except httpx.HTTPError as exc:
            raise RatesError(f"Rate provider unreachable: {exc}") from exc

        if response.status_code != 200:
            raise RatesError(
                f"Rate provider failed ({response.status_code})",
                status_code=response.status_code,
            )
        try:
            data = response.json()
            return ExchangeRateTable.from_provider(
                data if isinstance(data, dict) else {},
                self._config.base_asset,
                self._config.vs_currencies,
            )
        except ValueError as exc:
            raise RatesError(f"Invalid rate payload: {exc}") from exc
