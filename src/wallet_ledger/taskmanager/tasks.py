"""Background task definitions — cron job handlers.

- ``refresh_rates`` (``task.rates_refresh_period``): keep display rates warm
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wallet_ledger.engine.client import WalletLedgerEngine

logger = logging.getLogger(__name__)


async def task_refresh_rates(engine: WalletLedgerEngine) -> None:
    """Re-fetch exchange rates; the rate cache installs the fallback on failure."""
    table = await engine.rates.get_rates()
    if table.stale:
        logger.debug("Rate refresh fell back to the stale table")
