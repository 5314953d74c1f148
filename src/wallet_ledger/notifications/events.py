"""Event types published to subscribers.

- ``RawEvent``: envelope with type string + JSON content
- ``PaymentEvent``: payment status change (including partial success)
- ``IdentityEvent``: canonical address change or signer divergence
- ``SessionExpiredEvent``: backend rejected the bearer credential
- ``RatesStaleEvent``: fallback exchange rates installed
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class RawEvent:
    """Generic event envelope sent to subscribers."""

    type: str
    content: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict."""
        return asdict(self)


@dataclass(frozen=True)
class PaymentEvent(RawEvent):
    """Emitted when a payment reaches a new status."""

    type: str = "payment"
    tx_hash: str = ""
    status: str = ""
    reason: str = ""


@dataclass(frozen=True)
class IdentityEvent(RawEvent):
    """Emitted when the canonical address changes or the signer diverges from it."""

    type: str = "identity"
    address: str = ""
    source: str = ""
    signer_address: str = ""
    warning: str = ""


@dataclass(frozen=True)
class SessionExpiredEvent(RawEvent):
    """Emitted when the backend answers 401; the caller must re-authenticate."""

    type: str = "session_expired"
    operation: str = ""


@dataclass(frozen=True)
class RatesStaleEvent(RawEvent):
    """Emitted when live rates could not be fetched and the fallback table is in use."""

    type: str = "rates_stale"
    reason: str = ""
