"""Backend ledger — authoritative wallet bindings and payment records."""

from wallet_ledger.ledger.client import LedgerClient
from wallet_ledger.ledger.models import (
    ConnectWalletResponse,
    LedgerRecord,
    LedgerStatus,
    PaymentRecordResponse,
    PaymentTransaction,
    Session,
)

__all__ = [
    "ConnectWalletResponse",
    "LedgerClient",
    "LedgerRecord",
    "LedgerStatus",
    "PaymentRecordResponse",
    "PaymentTransaction",
    "Session",
]
