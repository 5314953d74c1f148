"""Backend ledger data models — session, records, responses.

Response parsers accept both the snake_case and camelCase spellings the
backend has used for the same fields.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Session:
    """Authenticated backend session.

    Passed explicitly into every backend-calling operation; there is no
    ambient "current credential".
    """

    access_token: str
    username: str = ""
    email: str = ""
    phone_number: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def __repr__(self) -> str:
        return f"Session(username={self.username!r}, email={self.email!r})"


class LedgerStatus(enum.StrEnum):
    """Backend status of a payment record."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str | None) -> LedgerStatus:
        """Parse a status string, returning UNKNOWN for unrecognised values."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class LedgerRecord:
    """A payment record owned by the backend ledger.

    Attributes:
        amount: Raw smallest-unit integer string, exactly as the backend
            stores it.
    """

    id: str
    transaction_hash: str
    from_address: str
    to_address: str
    amount: str
    currency: str
    description: str
    status: LedgerStatus
    created_at: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerRecord:
        """Create a LedgerRecord from a ``GET /payments`` item."""
        return cls(
            id=str(data.get("id", "")),
            transaction_hash=data.get("transaction_hash", data.get("transactionHash", "")),
            from_address=data.get("from_address", data.get("fromAddress", "")),
            to_address=data.get("to_address", data.get("toAddress", "")),
            amount=str(data.get("amount", "")),
            currency=data.get("currency", ""),
            description=data.get("description", "") or "",
            status=LedgerStatus.from_string(data.get("status")),
            created_at=data.get("created_at", data.get("createdAt", "")),
        )


@dataclass(frozen=True)
class ConnectWalletResponse:
    """Response of ``POST /wallet/connect``."""

    message: str
    wallet_address: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConnectWalletResponse:
        return cls(
            message=data.get("message", ""),
            wallet_address=data.get("walletAddress", data.get("wallet_address", "")),
        )


@dataclass(frozen=True)
class PaymentRecordResponse:
    """Response of ``POST /payments``."""

    transaction_hash: str
    status: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaymentRecordResponse:
        return cls(
            transaction_hash=data.get("transaction_hash", data.get("transactionHash", "")),
            status=data.get("status", ""),
        )


@dataclass(frozen=True)
class PaymentTransaction:
    """Public transaction lookup, ``GET /payments/tx/{hash}``."""

    tx_hash: str
    amount: str
    status: LedgerStatus
    timestamp: str
    sender: str
    receiver: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaymentTransaction:
        return cls(
            tx_hash=data.get("txHash", data.get("tx_hash", "")),
            amount=str(data.get("amount", "")),
            status=LedgerStatus.from_string(data.get("status")),
            timestamp=data.get("timestamp", ""),
            sender=data.get("sender", ""),
            receiver=data.get("receiver", ""),
        )
