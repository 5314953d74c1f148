"""Payments — lifecycle coordination and ledger history."""

from wallet_ledger.payments.coordinator import PaymentCoordinator
from wallet_ledger.payments.history import HistoryReconciler, normalize_records
from wallet_ledger.payments.models import (
    HistoryEntry,
    HistoryResult,
    InvalidTransitionError,
    PaymentIntent,
    PaymentOutcome,
    PaymentStatus,
    StatusCategory,
)

__all__ = [
    "HistoryEntry",
    "HistoryReconciler",
    "HistoryResult",
    "InvalidTransitionError",
    "PaymentCoordinator",
    "PaymentIntent",
    "PaymentOutcome",
    "PaymentStatus",
    "StatusCategory",
    "normalize_records",
]
