"""WalletState: single owner of the canonical identity and its persisted fields.

The identity reconciler and the binding protocol both mutate this state.
Every read-modify-write goes through :attr:`WalletState.lock`; the mutating
methods assert the lock is held.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wallet_ledger.cache.client import CacheClient
    from wallet_ledger.wallet.models import WalletIdentity

ADDRESS_KEY = "address"
BALANCE_KEY = "balance"


class WalletState:
    """In-memory canonical identity backed by the persisted cache."""

    def __init__(self, cache: CacheClient) -> None:
        self._cache = cache
        self._lock = asyncio.Lock()
        self._identity: WalletIdentity | None = None
        self._binding_active = False

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    @property
    def identity(self) -> WalletIdentity | None:
        """The canonical identity, or None when no wallet is connected."""
        return self._identity

    @property
    def binding_active(self) -> bool:
        return self._binding_active

    def begin_binding(self) -> None:
        self._assert_owned()
        self._binding_active = True

    def end_binding(self) -> None:
        self._binding_active = False

    async def load_persisted_address(self) -> str | None:
        return await self._cache.get(ADDRESS_KEY)

    async def install(self, identity: WalletIdentity) -> None:
        """Make *identity* canonical and persist its address."""
        self._assert_owned()
        self._identity = identity
        await self._cache.set(ADDRESS_KEY, identity.address)

    async def clear(self) -> None:
        """Drop the identity, the persisted address and the cached balance."""
        self._assert_owned()
        self._identity = None
        await self._cache.delete(ADDRESS_KEY, BALANCE_KEY)

    async def get_balance(self) -> str | None:
        """Cached balance in display units."""
        return await self._cache.get(BALANCE_KEY)

    async def set_balance(self, balance: str) -> None:
        self._assert_owned()
        await self._cache.set(BALANCE_KEY, balance)

    async def clear_balance(self) -> None:
        self._assert_owned()
        await self._cache.delete(BALANCE_KEY)

    def _assert_owned(self) -> None:
        if not self._lock.locked():
            msg = "WalletState mutated without holding its lock"
            raise RuntimeError(msg)
