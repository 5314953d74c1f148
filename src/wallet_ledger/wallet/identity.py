"""Wallet identity reconciler — one canonical address from three sources.

Precedence:
1. Backend-known address, when a session exists and the backend answers.
2. Persisted address, only while there is no session.
3. The signer's active account never becomes canonical; it is compared
   case-insensitively and a mismatch is reported as a warning.

Resolution is fail-closed: a backend error clears the identity and cached
balance instead of falling back to a possibly stale persisted address.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wallet_ledger.errors.definitions import ErrSessionExpired
from wallet_ledger.errors.external_errors import LedgerError, SignerError
from wallet_ledger.notifications.events import IdentityEvent, SessionExpiredEvent
from wallet_ledger.utils.address import is_valid_address, same_address
from wallet_ledger.utils.units import format_amount, from_smallest_unit
from wallet_ledger.wallet.models import IdentitySource, WalletIdentity

if TYPE_CHECKING:
    from wallet_ledger.ledger.client import LedgerClient
    from wallet_ledger.ledger.models import Session
    from wallet_ledger.metrics.collector import WalletMetrics
    from wallet_ledger.notifications.service import NotificationService
    from wallet_ledger.signer.base import Signer
    from wallet_ledger.wallet.state import WalletState

logger = logging.getLogger(__name__)

_MISMATCH_WARNING = "active signer account differs from the connected wallet"


class IdentityReconciler:
    """Resolves, caches and clears the canonical wallet identity."""

    def __init__(
        self,
        state: WalletState,
        ledger: LedgerClient,
        *,
        signer: Signer | None = None,
        decimals: int = 18,
        notifications: NotificationService | None = None,
        metrics: WalletMetrics | None = None,
    ) -> None:
        self._state = state
        self._ledger = ledger
        self._signer = signer
        self._decimals = decimals
        self._notifications = notifications
        self._metrics = metrics

    @property
    def current(self) -> WalletIdentity | None:
        return self._state.identity

    async def resolve(self, session: Session | None) -> WalletIdentity | None:
        """Resolve the canonical identity and persist (or clear) it.

        Args:
            session: Backend session, or None when logged out.

        Returns:
            The canonical identity, or None if no address resolves.

        Raises:
            WalletError: ``ErrSessionExpired`` when the backend answers 401;
                identity and balance are cleared first.
        """
        signer_address = await self._signer_account()
        previous = self._state.identity
        expired: LedgerError | None = None

        async with self._state.lock:
            address: str | None = None
            source = IdentitySource.PERSISTED
            if session is not None and session.is_authenticated:
                source = IdentitySource.BACKEND
                try:
                    addresses = await self._ledger.get_wallet_addresses(session)
                except LedgerError as exc:
                    logger.warning("Identity resolution failed, clearing wallet: %s", exc.message)
                    if exc.is_unauthorized:
                        expired = exc
                    addresses = []
                address = self._first_valid(addresses)
            else:
                persisted = await self._state.load_persisted_address()
                if persisted and is_valid_address(persisted):
                    address = persisted
                elif persisted:
                    logger.warning("Discarding malformed persisted address %r", persisted)

            if address is None:
                await self._state.clear()
                identity = None
            else:
                identity = WalletIdentity(
                    address=address,
                    source=source,
                    verified=source is IdentitySource.BACKEND,
                    signer_address=signer_address,
                )
                await self._state.install(identity)

        if self._metrics:
            self._metrics.record_resolution(identity.source if identity else "none")
        if expired is not None:
            await self._notify(SessionExpiredEvent(operation="resolve_identity"))
            raise ErrSessionExpired from expired
        await self._report(previous, identity)
        return identity

    @staticmethod
    def _first_valid(addresses: list[str]) -> str | None:
        for candidate in addresses:
            if is_valid_address(candidate):
                return candidate
            logger.warning("Skipping malformed backend address %r", candidate)
        return None

    async def refresh_balance(self) -> str | None:
        """Read the canonical address's balance from the signer and cache it.

        Returns:
            The balance in display units, or None when no wallet is connected
            or no signer is available.
        """
        identity = self._state.identity
        if identity is None:
            async with self._state.lock:
                await self._state.clear_balance()
            return None
        if self._signer is None or not self._signer.is_available:
            return None

        raw = await self._signer.get_balance(identity.address)
        balance = format_amount(from_smallest_unit(raw, self._decimals))
        async with self._state.lock:
            current = self._state.identity
            if current is None or not same_address(current.address, identity.address):
                # Identity changed while the balance was in flight
                return None
            await self._state.set_balance(balance)
        return balance

    async def cached_balance(self) -> str | None:
        return await self._state.get_balance()

    async def disconnect(self) -> None:
        """Forget the wallet locally: identity, persisted address and balance."""
        previous = self._state.identity
        async with self._state.lock:
            await self._state.clear()
        await self._report(previous, None)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _signer_account(self) -> str | None:
        if self._signer is None or not self._signer.is_available:
            return None
        try:
            return await self._signer.get_active_account()
        except SignerError as exc:
            logger.debug("Signer account unavailable: %s", exc.message)
            return None

    async def _report(self, previous: WalletIdentity | None, identity: WalletIdentity | None) -> None:
        old = previous.address if previous else None
        new = identity.address if identity else None
        if (old or new) and not same_address(old, new):
            logger.info("Canonical wallet changed: %s -> %s", old, new)
            await self._notify(
                IdentityEvent(
                    address=new or "",
                    source=identity.source if identity else "",
                )
            )

        if identity is not None and identity.signer_mismatch:
            logger.warning(
                "Signer account %s differs from canonical wallet %s",
                identity.signer_address,
                identity.address,
            )
            await self._notify(
                IdentityEvent(
                    address=identity.address,
                    source=identity.source,
                    signer_address=identity.signer_address or "",
                    warning=_MISMATCH_WARNING,
                )
            )

    async def _notify(self, event: IdentityEvent | SessionExpiredEvent) -> None:
        if self._notifications:
            await self._notifications.notify(event)
