"""Signature binding — prove address ownership to the backend.

``Idle → ChallengeIssued → Signed → Submitted → {Bound, Rejected}``

A binding attempt is only allowed while no canonical address exists. The
challenge embeds the requesting account name so a signature cannot be
replayed against another account. On success the canonical address is the
address that produced the signature; the backend's echoed address is only
cross-checked.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from wallet_ledger.errors.definitions import (
    ErrAddressAlreadyBound,
    ErrBindingFailed,
    ErrBindingInProgress,
    ErrMissingSession,
    ErrSessionExpired,
    ErrWalletAlreadyConnected,
)
from wallet_ledger.errors.external_errors import (
    LedgerError,
    SignerError,
    SignerUnavailableError,
    UserRejectedError,
)
from wallet_ledger.notifications.events import IdentityEvent, SessionExpiredEvent
from wallet_ledger.utils.address import same_address
from wallet_ledger.wallet.models import (
    BindingState,
    IdentitySource,
    SignatureBinding,
    WalletIdentity,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from wallet_ledger.ledger.client import LedgerClient
    from wallet_ledger.ledger.models import Session
    from wallet_ledger.metrics.collector import WalletMetrics
    from wallet_ledger.notifications.events import RawEvent
    from wallet_ledger.notifications.service import NotificationService
    from wallet_ledger.signer.base import Signer
    from wallet_ledger.wallet.state import WalletState

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[BindingState, frozenset[BindingState]] = {
    BindingState.IDLE: frozenset({BindingState.CHALLENGE_ISSUED, BindingState.REJECTED}),
    BindingState.CHALLENGE_ISSUED: frozenset(
        {BindingState.SIGNED, BindingState.IDLE, BindingState.REJECTED}
    ),
    BindingState.SIGNED: frozenset({BindingState.SUBMITTED}),
    BindingState.SUBMITTED: frozenset({BindingState.BOUND, BindingState.REJECTED}),
    BindingState.BOUND: frozenset({BindingState.IDLE}),
    BindingState.REJECTED: frozenset({BindingState.IDLE}),
}


def build_challenge(account: str, address: str, issued_at: datetime) -> str:
    """Return the ownership challenge text for *account* and *address*."""
    return (
        f"Link wallet {address} to account {account}.\n"
        f"Issued at: {issued_at.isoformat()}"
    )


class BindingProtocol:
    """Runs the challenge/signature handshake, one attempt at a time."""

    def __init__(
        self,
        state: WalletState,
        ledger: LedgerClient,
        *,
        signer: Signer | None = None,
        notifications: NotificationService | None = None,
        metrics: WalletMetrics | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._state = state
        self._ledger = ledger
        self._signer = signer
        self._notifications = notifications
        self._metrics = metrics
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._status = BindingState.IDLE
        self._binding: SignatureBinding | None = None

    @property
    def status(self) -> BindingState:
        """State of the current (or last) attempt."""
        return self._status

    @property
    def last_binding(self) -> SignatureBinding | None:
        return self._binding

    async def bind(self, session: Session | None) -> WalletIdentity:
        """Bind the signer's active account to the session's user.

        Returns:
            The new canonical identity (``source=signer``, verified).

        Raises:
            WalletError: ``ErrMissingSession``, ``ErrWalletAlreadyConnected``
                or ``ErrBindingInProgress`` before any challenge is issued;
                ``ErrSessionExpired``, ``ErrAddressAlreadyBound`` or
                ``ErrBindingFailed`` when the backend refuses.
            SignerUnavailableError: No signer or no active account.
            UserRejectedError: The user declined to sign.
        """
        if session is None or not session.is_authenticated:
            raise ErrMissingSession
        account = session.username or session.email
        if not account:
            raise ErrMissingSession

        async with self._state.lock:
            if self._state.identity is not None:
                self._record("refused")
                raise ErrWalletAlreadyConnected
            if self._state.binding_active:
                self._record("refused")
                raise ErrBindingInProgress
            self._state.begin_binding()

        try:
            return await self._attempt(session, account)
        finally:
            self._state.end_binding()

    async def _attempt(self, session: Session, account: str) -> WalletIdentity:
        self._status = BindingState.IDLE
        self._binding = None

        signer = self._signer
        if signer is None or not signer.is_available:
            self._record("signer_unavailable")
            raise SignerUnavailableError
        address = await self._active_account(signer)

        binding = SignatureBinding(
            challenge_message=build_challenge(account, address, self._clock()),
            signing_address=address,
        )
        self._binding = binding
        self._transition(BindingState.CHALLENGE_ISSUED)

        try:
            binding.signature = await signer.sign_message(binding.challenge_message, address)
        except UserRejectedError:
            self._transition(BindingState.IDLE)
            self._record("declined")
            raise
        except SignerError:
            self._transition(BindingState.REJECTED)
            self._record("signer_error")
            raise
        self._transition(BindingState.SIGNED)

        message, signature = binding.consume()
        self._transition(BindingState.SUBMITTED)
        try:
            response = await self._ledger.connect_wallet(session, message, signature)
        except LedgerError as exc:
            self._transition(BindingState.REJECTED)
            if exc.is_unauthorized:
                self._record("session_expired")
                await self._notify(SessionExpiredEvent(operation="bind_wallet"))
                raise ErrSessionExpired from exc
            if exc.is_conflict:
                self._record("conflict")
                raise ErrAddressAlreadyBound from exc
            self._record("failed")
            logger.warning("Wallet binding rejected by backend: %s", exc.message)
            raise ErrBindingFailed from exc

        if response.wallet_address and not same_address(response.wallet_address, address):
            logger.warning(
                "Backend echoed %s for binding signed by %s; keeping the signing address",
                response.wallet_address,
                address,
            )

        identity = WalletIdentity(
            address=address,
            source=IdentitySource.SIGNER,
            verified=True,
            signer_address=address,
        )
        async with self._state.lock:
            if self._state.identity is not None:
                # Another source resolved a wallet while we were suspended
                self._transition(BindingState.REJECTED)
                self._record("refused")
                raise ErrWalletAlreadyConnected
            await self._state.install(identity)
        self._transition(BindingState.BOUND)
        self._record("bound")
        logger.info("Wallet %s bound to account %s", address, account)
        await self._notify(IdentityEvent(address=address, source=IdentitySource.SIGNER))
        return identity

    async def _active_account(self, signer: Signer) -> str:
        try:
            address = await signer.get_active_account()
        except SignerUnavailableError:
            self._record("signer_unavailable")
            raise
        if not address:
            self._record("signer_unavailable")
            raise SignerUnavailableError("wallet signer exposes no account")
        return address

    def _transition(self, target: BindingState) -> None:
        if target not in _TRANSITIONS[self._status]:
            msg = f"Invalid binding transition {self._status} -> {target}"
            raise RuntimeError(msg)
        self._status = target

    def _record(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.record_binding(outcome)

    async def _notify(self, event: RawEvent) -> None:
        if self._notifications:
            await self._notifications.notify(event)
