"""Notifications — asyncio fan-out of wallet and payment events."""

from wallet_ledger.notifications.events import (
    IdentityEvent,
    PaymentEvent,
    RatesStaleEvent,
    RawEvent,
    SessionExpiredEvent,
)
from wallet_ledger.notifications.service import NotificationService

__all__ = [
    "IdentityEvent",
    "NotificationService",
    "PaymentEvent",
    "RatesStaleEvent",
    "RawEvent",
    "SessionExpiredEvent",
]
