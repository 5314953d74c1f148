"""Engine: owns the clients, wallet state and workflows of one wallet session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    import httpx

    from wallet_ledger.cache.client import CacheClient
    from wallet_ledger.config.settings import AppConfig
    from wallet_ledger.ledger.client import LedgerClient
    from wallet_ledger.ledger.models import PaymentTransaction, Session
    from wallet_ledger.metrics.collector import WalletMetrics
    from wallet_ledger.notifications.service import NotificationService
    from wallet_ledger.payments.coordinator import PaymentCoordinator
    from wallet_ledger.payments.history import HistoryReconciler
    from wallet_ledger.rates.service import RateCache
    from wallet_ledger.signer.base import Signer
    from wallet_ledger.taskmanager.manager import TaskManager
    from wallet_ledger.wallet.binding import BindingProtocol
    from wallet_ledger.wallet.identity import IdentityReconciler
    from wallet_ledger.wallet.state import WalletState

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _require(component: T | None) -> T:
    if component is None:
        msg = "Engine not initialized. Call initialize() first."
        raise RuntimeError(msg)
    return component


class WalletLedgerEngine:
    """Central engine that owns all services and infrastructure.

    The signer is an external capability: the engine uses it but does not
    open or close it.

    Usage::

        engine = WalletLedgerEngine(AppConfig(), signer=my_signer)
        await engine.initialize()
        session = await engine.login("me@example.com", "secret")
        identity = await engine.identity.resolve(session)
        outcome = await engine.payments.pay(session, "0x...", "0.1")
        await engine.close()
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        signer: Signer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration.
            signer: External signing capability, if one is installed.
            transport: Optional httpx transport for the ledger and rate
                clients (used by tests).
        """
        self._config = config
        self._signer = signer
        self._transport = transport
        self._initialized = False

        # Infrastructure components
        self._cache: CacheClient | None = None
        self._ledger: LedgerClient | None = None
        self._metrics: WalletMetrics | None = None
        self._notifications: NotificationService | None = None
        self._task_manager: TaskManager | None = None

        # Services
        self._state: WalletState | None = None
        self._rates: RateCache | None = None
        self._identity: IdentityReconciler | None = None
        self._binding: BindingProtocol | None = None
        self._history: HistoryReconciler | None = None
        self._payments: PaymentCoordinator | None = None

    async def initialize(self) -> None:
        """Connect clients, wire services and start background jobs.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        from functools import partial

        from wallet_ledger.cache.client import CacheClient
        from wallet_ledger.ledger.client import LedgerClient
        from wallet_ledger.metrics.collector import WalletMetrics
        from wallet_ledger.notifications.service import NotificationService
        from wallet_ledger.payments.coordinator import PaymentCoordinator
        from wallet_ledger.payments.history import HistoryReconciler
        from wallet_ledger.rates.service import RateCache
        from wallet_ledger.taskmanager.manager import CronJob, TaskManager
        from wallet_ledger.taskmanager.tasks import task_refresh_rates
        from wallet_ledger.wallet.binding import BindingProtocol
        from wallet_ledger.wallet.identity import IdentityReconciler
        from wallet_ledger.wallet.state import WalletState

        config = self._config

        self._cache = CacheClient(config.cache)
        await self._cache.connect()

        self._ledger = LedgerClient(config.backend, transport=self._transport)
        await self._ledger.connect()

        if config.metrics.enabled:
            self._metrics = WalletMetrics()

        if config.notifications.enabled:
            self._notifications = NotificationService()
            await self._notifications.start()

        self._task_manager = TaskManager(metrics=self._metrics)

        self._rates = RateCache(
            config.rates,
            notifications=self._notifications,
            metrics=self._metrics,
            transport=self._transport,
        )
        await self._rates.connect()

        self._state = WalletState(self._cache)
        shared = {"notifications": self._notifications, "metrics": self._metrics}
        self._identity = IdentityReconciler(
            self._state,
            self._ledger,
            signer=self._signer,
            decimals=config.chain.decimals,
            **shared,
        )
        self._binding = BindingProtocol(self._state, self._ledger, signer=self._signer, **shared)
        self._history = HistoryReconciler(
            self._ledger,
            decimals=config.chain.decimals,
            limit=config.history.limit,
            **shared,
        )
        self._payments = PaymentCoordinator(
            self._state,
            self._ledger,
            self._task_manager,
            signer=self._signer,
            refresh_balance=self._identity.refresh_balance,
            refresh_history=self._history.refresh,
            currency=config.chain.currency,
            decimals=config.chain.decimals,
            **shared,
        )

        if config.task.enabled:
            self._task_manager.register(
                "refresh_rates",
                CronJob(
                    handler=partial(task_refresh_rates, self),
                    period=config.task.rates_refresh_period,
                ),
            )
            await self._task_manager.start()

        self._initialized = True
        logger.info("Wallet ledger engine initialized")

    async def close(self) -> None:
        """Stop background work, then close clients in reverse order of opening.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return
        self._initialized = False

        # Settlements in flight finish before the ledger closes
        if self._task_manager is not None:
            await self._task_manager.stop()
        if self._notifications is not None:
            await self._notifications.stop()
        for client in (self._rates, self._ledger, self._cache):
            if client is not None:
                await client.close()

        self._task_manager = None
        self._notifications = None
        self._metrics = None
        self._payments = self._history = self._binding = self._identity = self._state = None
        self._rates = self._ledger = self._cache = None
        logger.info("Wallet ledger engine shut down")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def signer(self) -> Signer | None:
        return self._signer

    @property
    def cache(self) -> CacheClient:
        return _require(self._cache)

    @property
    def ledger(self) -> LedgerClient:
        return _require(self._ledger)

    @property
    def state(self) -> WalletState:
        return _require(self._state)

    @property
    def rates(self) -> RateCache:
        return _require(self._rates)

    @property
    def identity(self) -> IdentityReconciler:
        return _require(self._identity)

    @property
    def binding(self) -> BindingProtocol:
        return _require(self._binding)

    @property
    def history(self) -> HistoryReconciler:
        return _require(self._history)

    @property
    def payments(self) -> PaymentCoordinator:
        return _require(self._payments)

    @property
    def task_manager(self) -> TaskManager:
        return _require(self._task_manager)

    @property
    def metrics(self) -> WalletMetrics | None:
        """Engine metrics (None if disabled or not initialized)."""
        return self._metrics

    @property
    def notification_service(self) -> NotificationService | None:
        """Notification service (None if disabled or not initialized)."""
        return self._notifications

    # ------------------------------------------------------------------
    # Account helpers
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Session:
        """Log in and resolve the account's wallet.

        Returns:
            The new session.
        """
        session = await self.ledger.login(email, password)
        await self.identity.resolve(session)
        return session

    async def signup(self, username: str, email: str, phone_number: str, password: str) -> Session:
        session = await self.ledger.signup(username, email, phone_number, password)
        await self.identity.resolve(session)
        return session

    async def logout(self) -> None:
        """Drop everything derived from the session: identity, balance and history.

        The session itself is held by the caller and simply discarded.
        """
        await self.identity.disconnect()
        self.history.clear()
        logger.info("Logged out")

    async def disconnect_wallet(self) -> None:
        """Forget the connected wallet locally (persisted address and balance)."""
        await self.identity.disconnect()

    async def lookup_recipient(self, session: Session | None, phone_number: str) -> str | None:
        """Return the first address bound to the user registered under *phone_number*."""
        addresses = await self.ledger.get_addresses_by_phone(session, phone_number)
        return addresses[0] if addresses else None

    async def transaction_details(self, transaction_hash: str) -> PaymentTransaction | None:
        return await self.ledger.get_transaction(transaction_hash)

    async def health_check(self) -> dict[str, str]:
        """Check health status of all engine components.

        Returns:
            Dictionary with component statuses ('ok', 'error', 'not_initialized',
            'stale', 'unavailable').
        """
        if not self._initialized:
            return {"engine": "not_initialized"}

        status = {"engine": "ok"}
        status["cache"] = "ok" if self._cache and self._cache.is_connected else "error"
        status["ledger"] = "ok" if self._ledger and self._ledger.is_connected else "error"
        if self._rates is None or self._rates.table is None:
            status["rates"] = "not_initialized"
        else:
            status["rates"] = "stale" if self._rates.is_stale else "ok"
        status["signer"] = (
            "ok" if self._signer is not None and self._signer.is_available else "unavailable"
        )
        return status
