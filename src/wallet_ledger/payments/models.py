"""Payment intent, outcome and history models."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wallet_ledger.errors.wallet_errors import WalletError
from wallet_ledger.ledger.models import LedgerStatus
from wallet_ledger.utils.units import format_amount

if TYPE_CHECKING:
    import asyncio
    from decimal import Decimal

    from wallet_ledger.ledger.models import LedgerRecord


class PaymentStatus(enum.StrEnum):
    """Lifecycle of one payment.

    Draft → Signing → Broadcast → Confirmed → (RecordFailed)
    with Failed reachable from any state before Confirmed.
    """

    DRAFT = "Draft"
    SIGNING = "Signing"
    BROADCAST = "Broadcast"
    CONFIRMED = "Confirmed"
    RECORD_FAILED = "RecordFailed"
    FAILED = "Failed"


_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.DRAFT: frozenset({PaymentStatus.SIGNING, PaymentStatus.FAILED}),
    PaymentStatus.SIGNING: frozenset({PaymentStatus.BROADCAST, PaymentStatus.FAILED}),
    PaymentStatus.BROADCAST: frozenset({PaymentStatus.CONFIRMED, PaymentStatus.FAILED}),
    PaymentStatus.CONFIRMED: frozenset({PaymentStatus.RECORD_FAILED}),
    PaymentStatus.RECORD_FAILED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}


class InvalidTransitionError(WalletError):
    """A payment was asked to move to a status it cannot reach."""

    def __init__(self, current: PaymentStatus, target: PaymentStatus) -> None:
        super().__init__(
            f"Invalid payment transition {current} -> {target}",
            status_code=500,
            code="invalid-transition",
        )
        self.current = current
        self.target = target


@dataclass
class PaymentIntent:
    """One user-initiated payment, advanced only by the coordinator.

    Attributes:
        amount: Display amount as entered.
        value: Exact transfer value in smallest units.
        failure_code: Error code when ``status`` is Failed.
        recorded: True once the ledger accepted the record.
        record_error: Ledger failure message when ``status`` is RecordFailed.
        settled: True once post-confirmation work has finished.
    """

    recipient: str
    amount: Decimal
    value: int
    description: str = ""
    status: PaymentStatus = PaymentStatus.DRAFT
    tx_hash: str = ""
    failure_code: str = ""
    recorded: bool = False
    record_error: str = ""
    settled: bool = False

    def advance(self, target: PaymentStatus) -> None:
        """Move to *target*.

        Raises:
            InvalidTransitionError: If the lifecycle does not allow it.
        """
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status, target)
        self.status = target

    def fail(self, code: str) -> None:
        self.advance(PaymentStatus.FAILED)
        self.failure_code = code

    @property
    def on_chain_succeeded(self) -> bool:
        """True once value has moved, whatever happened to the ledger record."""
        return self.status in (PaymentStatus.CONFIRMED, PaymentStatus.RECORD_FAILED)

    @property
    def is_terminal(self) -> bool:
        if self.status in (PaymentStatus.FAILED, PaymentStatus.RECORD_FAILED):
            return True
        return self.status is PaymentStatus.CONFIRMED and self.settled


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of :meth:`PaymentCoordinator.pay`.

    ``pay`` returns once the transfer is confirmed on-chain. ``settlement``
    is the background task that records the payment and refreshes balance
    and history; await :meth:`settled` to observe its final status.
    """

    intent: PaymentIntent
    settlement: asyncio.Task[PaymentIntent | None]

    async def settled(self) -> PaymentIntent:
        await self.settlement
        return self.intent


class StatusCategory(enum.StrEnum):
    """Presentation category derived from a ledger status."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILURE = "failure"
    UNKNOWN = "unknown"

    @classmethod
    def for_status(cls, status: LedgerStatus) -> StatusCategory:
        return _CATEGORIES.get(status, cls.UNKNOWN)


_CATEGORIES = {
    LedgerStatus.COMPLETED: StatusCategory.SUCCESS,
    LedgerStatus.PENDING: StatusCategory.PENDING,
    LedgerStatus.FAILED: StatusCategory.FAILURE,
    LedgerStatus.CANCELLED: StatusCategory.FAILURE,
}


@dataclass(frozen=True)
class HistoryEntry:
    """A ledger record with its amount converted to display units."""

    record: LedgerRecord
    display_amount: Decimal
    category: StatusCategory

    @property
    def amount_text(self) -> str:
        return format_amount(self.display_amount)


@dataclass(frozen=True)
class HistoryResult:
    """Outcome of a history refresh. Empty with ``fetch_failed`` on transport failure."""

    entries: tuple[HistoryEntry, ...] = ()
    fetch_failed: bool = False
