"""Transaction history reconciler — normalize backend records for display."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wallet_ledger.errors.external_errors import LedgerError
from wallet_ledger.notifications.events import SessionExpiredEvent
from wallet_ledger.payments.models import HistoryEntry, HistoryResult, StatusCategory
from wallet_ledger.utils.units import from_smallest_unit

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wallet_ledger.ledger.client import LedgerClient
    from wallet_ledger.ledger.models import LedgerRecord, Session
    from wallet_ledger.metrics.collector import WalletMetrics
    from wallet_ledger.notifications.service import NotificationService

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5


def normalize_records(
    records: Iterable[LedgerRecord],
    *,
    decimals: int,
    limit: int = DEFAULT_LIMIT,
) -> tuple[HistoryEntry, ...]:
    """Convert raw records to display entries, keeping backend order.

    Each raw amount is scaled exactly once. Records with an unparsable amount
    are skipped. At most *limit* entries are returned.
    """
    entries: list[HistoryEntry] = []
    for record in records:
        if len(entries) >= limit:
            break
        try:
            display = from_smallest_unit(record.amount, decimals)
        except ValueError:
            logger.warning("Skipping ledger record %s with amount %r", record.id, record.amount)
            continue
        entries.append(
            HistoryEntry(
                record=record,
                display_amount=display,
                category=StatusCategory.for_status(record.status),
            )
        )
    return tuple(entries)


class HistoryReconciler:
    """Fetches the ledger's payment history and keeps the latest display copy."""

    def __init__(
        self,
        ledger: LedgerClient,
        *,
        decimals: int = 18,
        limit: int = DEFAULT_LIMIT,
        notifications: NotificationService | None = None,
        metrics: WalletMetrics | None = None,
    ) -> None:
        self._ledger = ledger
        self._decimals = decimals
        self._limit = limit
        self._notifications = notifications
        self._metrics = metrics
        self._last = HistoryResult()

    @property
    def last_result(self) -> HistoryResult:
        return self._last

    def clear(self) -> None:
        self._last = HistoryResult()

    async def refresh(self, session: Session | None) -> HistoryResult:
        """Fetch and normalize the most recent records.

        On any backend failure the cached sequence is discarded and an empty
        result with ``fetch_failed=True`` is returned.

        Raises:
            WalletError: ``ErrMissingSession`` when there is no credential.
        """
        try:
            records = await self._ledger.list_payments(session)
        except LedgerError as exc:
            logger.warning("Payment history fetch failed: %s", exc.message)
            self._last = HistoryResult(fetch_failed=True)
            if self._metrics:
                self._metrics.record_history_failure()
            if exc.is_unauthorized and self._notifications:
                await self._notifications.notify(SessionExpiredEvent(operation="payment_history"))
            return self._last

        self._last = HistoryResult(
            entries=normalize_records(records, decimals=self._decimals, limit=self._limit)
        )
        return self._last
