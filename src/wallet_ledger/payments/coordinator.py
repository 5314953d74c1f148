"""Payment coordinator — sign → broadcast → confirm → record.

Drives one payment at a time:

1. Check preconditions locally (no external call).
2. Scale the display amount to smallest units exactly.
3. Ask the signer to broadcast; await its confirmation receipt.
4. In the background, record the payment in the ledger keyed by the
   transaction hash. A failure here is a partial success (``RecordFailed``),
   never a payment failure, and is never thrown back to the caller.
5. Refresh balance and history exactly once, after step 4.

Nothing is rolled back once the transfer is broadcast.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from wallet_ledger.errors.definitions import (
    ErrIdentityMissing,
    ErrInvalidAddress,
    ErrInvalidAmount,
    ErrMissingSession,
    ErrPaymentInProgress,
    ErrTransferReverted,
)
from wallet_ledger.errors.external_errors import LedgerError, SignerUnavailableError
from wallet_ledger.errors.wallet_errors import WalletError
from wallet_ledger.notifications.events import PaymentEvent, SessionExpiredEvent
from wallet_ledger.payments.models import PaymentIntent, PaymentOutcome, PaymentStatus
from wallet_ledger.utils.address import is_valid_address
from wallet_ledger.utils.units import parse_amount, to_smallest_unit

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from decimal import Decimal

    from wallet_ledger.ledger.client import LedgerClient
    from wallet_ledger.ledger.models import Session
    from wallet_ledger.metrics.collector import WalletMetrics
    from wallet_ledger.notifications.events import RawEvent
    from wallet_ledger.notifications.service import NotificationService
    from wallet_ledger.signer.base import Signer
    from wallet_ledger.taskmanager.manager import TaskManager
    from wallet_ledger.wallet.state import WalletState

logger = logging.getLogger(__name__)


class PaymentCoordinator:
    """Runs at most one payment at a time.

    Usage::

        outcome = await coordinator.pay(session, "0xabc...", "0.25", "rent")
        final = await outcome.settled()   # Confirmed or RecordFailed
    """

    def __init__(
        self,
        state: WalletState,
        ledger: LedgerClient,
        tasks: TaskManager,
        *,
        signer: Signer | None,
        refresh_balance: Callable[[], Awaitable[Any]],
        refresh_history: Callable[[Session], Awaitable[Any]],
        currency: str = "ETH",
        decimals: int = 18,
        notifications: NotificationService | None = None,
        metrics: WalletMetrics | None = None,
    ) -> None:
        self._state = state
        self._ledger = ledger
        self._tasks = tasks
        self._signer = signer
        self._refresh_balance = refresh_balance
        self._refresh_history = refresh_history
        self._currency = currency
        self._decimals = decimals
        self._notifications = notifications
        self._metrics = metrics
        self._busy = False
        self._intent: PaymentIntent | None = None

    @property
    def is_busy(self) -> bool:
        """True from the start of ``pay`` until settlement finishes."""
        return self._busy

    @property
    def current_intent(self) -> PaymentIntent | None:
        """The payment shown as in progress, if any."""
        return self._intent

    async def pay(
        self,
        session: Session | None,
        recipient: str,
        amount: str | int | Decimal,
        description: str = "",
    ) -> PaymentOutcome:
        """Send a payment and return once it is confirmed on-chain.

        Raises:
            WalletError: ``ErrPaymentInProgress`` or a precondition error
                before any external call; ``ErrTransferReverted`` when the
                transfer executes unsuccessfully.
            SignerUnavailableError: No usable signer.
            UserRejectedError: The user declined the transfer.
            InsufficientFundsError: The account cannot cover the transfer.
        """
        if self._busy:
            raise ErrPaymentInProgress
        intent = self._prepare(session, recipient, amount, description)
        assert session is not None

        self._busy = True
        self._intent = intent
        try:
            await self._transfer(intent)
        except asyncio.CancelledError:
            self._abort(intent, "cancelled")
            raise
        except WalletError as exc:
            self._abort(intent, exc.code)
            await self._notify(
                PaymentEvent(tx_hash=intent.tx_hash, status=intent.status, reason=exc.code)
            )
            raise
        except Exception:
            self._abort(intent, "unexpected-error")
            raise

        logger.info("Payment %s confirmed on-chain", intent.tx_hash)
        await self._notify(PaymentEvent(tx_hash=intent.tx_hash, status=intent.status))
        settlement = self._tasks.spawn(f"settle {intent.tx_hash}", self._settle(session, intent))
        # Released on any completion, including cancellation before the first step
        settlement.add_done_callback(lambda _: self._release(intent))
        return PaymentOutcome(intent=intent, settlement=settlement)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _prepare(
        self,
        session: Session | None,
        recipient: str,
        amount: str | int | Decimal,
        description: str,
    ) -> PaymentIntent:
        """Check every precondition locally and build the draft intent."""
        if session is None or not session.is_authenticated:
            raise ErrMissingSession
        if self._state.identity is None:
            raise ErrIdentityMissing
        if not is_valid_address(recipient):
            raise ErrInvalidAddress
        try:
            display = parse_amount(amount)
            value = to_smallest_unit(display, self._decimals)
        except ValueError as exc:
            raise ErrInvalidAmount from exc
        if display <= 0 or value <= 0:
            raise ErrInvalidAmount
        if self._signer is None or not self._signer.is_available:
            raise SignerUnavailableError
        return PaymentIntent(recipient=recipient, amount=display, value=value, description=description)

    async def _transfer(self, intent: PaymentIntent) -> None:
        assert self._signer is not None
        intent.advance(PaymentStatus.SIGNING)
        if self._metrics:
            with self._metrics.track_payment():
                await self._broadcast_and_confirm(intent)
        else:
            await self._broadcast_and_confirm(intent)

    async def _broadcast_and_confirm(self, intent: PaymentIntent) -> None:
        assert self._signer is not None
        intent.tx_hash = await self._signer.send_transfer(intent.recipient, intent.value)
        intent.advance(PaymentStatus.BROADCAST)
        logger.info("Payment %s broadcast, awaiting confirmation", intent.tx_hash)

        receipt = await self._signer.wait_for_receipt(intent.tx_hash)
        if not receipt.succeeded:
            logger.warning("Payment %s executed unsuccessfully on-chain", intent.tx_hash)
            raise ErrTransferReverted
        intent.advance(PaymentStatus.CONFIRMED)

    async def _settle(self, session: Session, intent: PaymentIntent) -> PaymentIntent:
        """Record the confirmed payment, then refresh balance and history once."""
        await self._record(session, intent)
        self._intent = None
        if self._metrics:
            self._metrics.record_payment("recorded" if intent.recorded else "record_failed")
        await self._notify(
            PaymentEvent(tx_hash=intent.tx_hash, status=intent.status, reason=intent.record_error)
        )
        await asyncio.gather(
            self._tasks.spawn(f"refresh balance {intent.tx_hash}", self._refresh_balance()),
            self._tasks.spawn(f"refresh history {intent.tx_hash}", self._refresh_history(session)),
        )
        return intent

    def _release(self, intent: PaymentIntent) -> None:
        intent.settled = True
        if self._intent is intent:
            self._intent = None
        self._busy = False

    async def _record(self, session: Session, intent: PaymentIntent) -> None:
        try:
            await self._ledger.create_payment(
                session,
                amount=str(intent.value),
                currency=self._currency,
                description=intent.description,
                to_address=intent.recipient,
                transaction_hash=intent.tx_hash,
            )
        except LedgerError as exc:
            if exc.is_conflict:
                logger.info("Payment %s was already recorded", intent.tx_hash)
                intent.recorded = True
                return
            logger.warning(
                "Payment %s succeeded on-chain but ledger recording failed: %s",
                intent.tx_hash,
                exc.message,
            )
            intent.record_error = exc.message
            intent.advance(PaymentStatus.RECORD_FAILED)
            if exc.is_unauthorized:
                await self._notify(SessionExpiredEvent(operation="record_payment"))
            return
        except Exception as exc:
            logger.exception("Payment %s ledger recording failed unexpectedly", intent.tx_hash)
            intent.record_error = str(exc) or type(exc).__name__
            intent.advance(PaymentStatus.RECORD_FAILED)
            return
        intent.recorded = True

    def _abort(self, intent: PaymentIntent, code: str) -> None:
        """Fail a payment that never reached confirmation and release the slot."""
        if not intent.is_terminal:
            intent.fail(code)
        self._intent = None
        self._busy = False
        if self._metrics:
            self._metrics.record_payment(code)
        logger.info("Payment to %s failed before confirmation: %s", intent.recipient, code)

    async def _notify(self, event: RawEvent) -> None:
        if self._notifications:
            await self._notifications.notify(event)
