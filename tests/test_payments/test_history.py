"""Tests for transaction history normalization and the history reconciler."""

from __future__ import annotations

from decimal import Decimal

import pytest

from wallet_ledger.errors import definitions as defs
from wallet_ledger.errors.external_errors import LedgerError
from wallet_ledger.ledger.models import LedgerRecord, LedgerStatus
from wallet_ledger.payments.history import HistoryReconciler, normalize_records
from wallet_ledger.payments.models import StatusCategory


def _record(i: int, amount: str = "1000000000000000000", status: str = "completed") -> dict:
    return {
        "id": i,
        "transaction_hash": f"0x{i:064x}",
        "from_address": "0x" + "a" * 40,
        "to_address": "0x" + "b" * 40,
        "amount": amount,
        "currency": "ETH",
        "description": f"payment {i}",
        "status": status,
        "created_at": f"2026-10-{i:02d}",
    }


@pytest.fixture
def reconciler(ledger, notifier, metrics) -> HistoryReconciler:
    return HistoryReconciler(ledger, notifications=notifier, metrics=metrics)


# ---------------------------------------------------------------------------
# normalize_records
# ---------------------------------------------------------------------------


class TestNormalizeRecords:
    def test_converts_once(self) -> None:
        records = [LedgerRecord.from_dict(_record(1, amount="1500000000000000000"))]
        (entry,) = normalize_records(records, decimals=18)
        assert entry.display_amount == Decimal("1.5")
        assert entry.amount_text == "1.5"
        assert entry.record.amount == "1500000000000000000"

    def test_keeps_backend_order_and_truncates(self) -> None:
        records = [LedgerRecord.from_dict(_record(i)) for i in (9, 3, 7, 1, 5, 2, 8)]
        entries = normalize_records(records, decimals=18, limit=5)
        assert [e.record.id for e in entries] == ["9", "3", "7", "1", "5"]

    def test_skips_unparsable_amounts_before_truncating(self) -> None:
        records = [
            LedgerRecord.from_dict(_record(1, amount="1.5")),
            LedgerRecord.from_dict(_record(2)),
            LedgerRecord.from_dict(_record(3, amount="")),
            LedgerRecord.from_dict(_record(4)),
        ]
        entries = normalize_records(records, decimals=18, limit=2)
        assert [e.record.id for e in entries] == ["2", "4"]

    @pytest.mark.parametrize(
        ("status", "category"),
        [
            ("completed", StatusCategory.SUCCESS),
            ("pending", StatusCategory.PENDING),
            ("failed", StatusCategory.FAILURE),
            ("cancelled", StatusCategory.FAILURE),
            ("mystery", StatusCategory.UNKNOWN),
        ],
    )
    def test_status_category(self, status: str, category: StatusCategory) -> None:
        (entry,) = normalize_records([LedgerRecord.from_dict(_record(1, status=status))], decimals=18)
        assert entry.category is category

    def test_for_status(self) -> None:
        assert StatusCategory.for_status(LedgerStatus.UNKNOWN) is StatusCategory.UNKNOWN


# ---------------------------------------------------------------------------
# HistoryReconciler
# ---------------------------------------------------------------------------


class TestHistoryReconciler:
    async def test_refresh(self, reconciler, ledger, session):
        ledger.records = [_record(i) for i in range(1, 8)]
        result = await reconciler.refresh(session)
        assert result.fetch_failed is False
        assert len(result.entries) == 5
        assert reconciler.last_result is result

    async def test_custom_limit(self, ledger, session):
        ledger.records = [_record(i) for i in range(1, 8)]
        reconciler = HistoryReconciler(ledger, limit=2)
        assert len((await reconciler.refresh(session)).entries) == 2

    async def test_custom_decimals(self, ledger, session):
        ledger.records = [_record(1, amount="250")]
        reconciler = HistoryReconciler(ledger, decimals=2)
        (entry,) = (await reconciler.refresh(session)).entries
        assert entry.amount_text == "2.5"

    async def test_fetch_failure_discards_cache(self, reconciler, ledger, session, metrics):
        ledger.records = [_record(1)]
        await reconciler.refresh(session)

        ledger.list_error = LedgerError("boom", status_code=503)
        result = await reconciler.refresh(session)

        assert result.entries == ()
        assert result.fetch_failed is True
        assert reconciler.last_result.entries == ()
        assert metrics.registry.get_sample_value("wallet_ledger_history_fetch_failures_total") == 1.0

    async def test_expired_session_is_published(self, reconciler, ledger, session, notifier):
        ledger.list_error = LedgerError("expired", status_code=401)
        result = await reconciler.refresh(session)
        assert result.fetch_failed is True
        assert [e.operation for e in notifier.of_type("session_expired")] == ["payment_history"]

    async def test_missing_session_propagates(self, reconciler, ledger):
        ledger.list_error = defs.ErrMissingSession
        with pytest.raises(type(defs.ErrMissingSession)):
            await reconciler.refresh(None)

    async def test_clear(self, reconciler, ledger, session):
        ledger.records = [_record(1)]
        await reconciler.refresh(session)
        reconciler.clear()
        assert reconciler.last_result.entries == ()
