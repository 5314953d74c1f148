"""Shared test fixtures for the wallet-ledger test suite."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from wallet_ledger.config.settings import CacheConfig, CacheEngine
from wallet_ledger.ledger.models import (
    ConnectWalletResponse,
    LedgerRecord,
    PaymentRecordResponse,
    Session,
)
from wallet_ledger.signer.base import TransferReceipt

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

ADDR_A = "0x" + "a" * 40
ADDR_B = "0x" + "b" * 40
ADDR_C = "0x" + "c" * 40
TX_HASH = "0x" + "1" * 64


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSigner:
    """In-memory signer implementing the ``Signer`` protocol.

    Set ``*_error`` attributes to make a call raise. Set ``hold_receipt`` to
    an ``asyncio.Event`` to suspend ``wait_for_receipt`` until it is set.
    """

    def __init__(self, account: str | None = ADDR_A, *, balance: int = 0) -> None:
        self.available = True
        self.account = account
        self.balance = balance
        self.receipt_status = 1
        self.tx_hash = TX_HASH
        self.sign_error: Exception | None = None
        self.send_error: Exception | None = None
        self.balance_error: Exception | None = None
        self.hold_receipt: asyncio.Event | None = None
        self.hold_sign: asyncio.Event | None = None
        self.signed: list[tuple[str, str]] = []
        self.transfers: list[tuple[str, int]] = []
        self.balance_reads: list[str] = []

    @property
    def is_available(self) -> bool:
        return self.available

    async def get_active_account(self) -> str | None:
        return self.account

    async def sign_message(self, message: str, address: str) -> str:
        if self.hold_sign is not None:
            await self.hold_sign.wait()
        if self.sign_error is not None:
            raise self.sign_error
        self.signed.append((message, address))
        return "0x" + "5" * 130

    async def send_transfer(self, to_address: str, value: int) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.transfers.append((to_address, value))
        return self.tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> TransferReceipt:
        if self.hold_receipt is not None:
            await self.hold_receipt.wait()
        return TransferReceipt(tx_hash=tx_hash, status=self.receipt_status, block_number=7)

    async def get_balance(self, address: str) -> int:
        self.balance_reads.append(address)
        if self.balance_error is not None:
            raise self.balance_error
        return self.balance


class FakeLedger:
    """In-memory stand-in for ``LedgerClient`` used by workflow tests."""

    def __init__(self) -> None:
        self.addresses: list[str] = []
        self.addresses_error: Exception | None = None
        self.connect_error: Exception | None = None
        self.connect_echo: str | None = None
        self.create_error: Exception | None = None
        self.records: list[dict[str, Any]] = []
        self.list_error: Exception | None = None
        self.calls: list[str] = []
        self.created: list[dict[str, Any]] = []
        self.connected: list[tuple[str, str]] = []

    async def get_wallet_addresses(self, session: Session | None) -> list[str]:
        self.calls.append("get_wallet_addresses")
        if self.addresses_error is not None:
            raise self.addresses_error
        return list(self.addresses)

    async def connect_wallet(
        self, session: Session | None, message: str, signature: str
    ) -> ConnectWalletResponse:
        self.calls.append("connect_wallet")
        if self.connect_error is not None:
            raise self.connect_error
        self.connected.append((message, signature))
        return ConnectWalletResponse(message="ok", wallet_address=self.connect_echo or "")

    async def create_payment(self, session: Session | None, **kwargs: Any) -> PaymentRecordResponse:
        self.calls.append("create_payment")
        if self.create_error is not None:
            raise self.create_error
        self.created.append(kwargs)
        return PaymentRecordResponse(transaction_hash=kwargs["transaction_hash"], status="completed")

    async def list_payments(self, session: Session | None) -> list[LedgerRecord]:
        self.calls.append("list_payments")
        if self.list_error is not None:
            raise self.list_error
        return [LedgerRecord.from_dict(r) for r in self.records]


class RecordingNotifier:
    """Synchronous stand-in for ``NotificationService`` that keeps every event."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    async def notify(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[Any]:
        return [e for e in self.events if e.type == event_type]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config():
    """Provide a test AppConfig with safe defaults (memory cache, no cron jobs)."""
    from wallet_ledger.config.settings import AppConfig, TaskConfig

    return AppConfig(
        debug=True,
        cache=CacheConfig(engine=CacheEngine.MEMORY),
        task=TaskConfig(enabled=False),
    )


@pytest.fixture
async def cache() -> AsyncIterator:
    """Provide a connected in-memory CacheClient."""
    from wallet_ledger.cache.client import CacheClient

    client = CacheClient(CacheConfig(engine=CacheEngine.MEMORY))
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def state(cache):
    from wallet_ledger.wallet.state import WalletState

    return WalletState(cache)


@pytest.fixture
def session() -> Session:
    return Session(access_token="token-123", username="alice", email="alice@example.com")


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def metrics():
    from wallet_ledger.metrics.collector import WalletMetrics

    return WalletMetrics()
