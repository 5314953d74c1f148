"""Prometheus metrics for wallet flows.

All series carry the ``wallet_ledger_`` prefix:

- ``payments_total{outcome}``: payments by final outcome
- ``bindings_total{outcome}``: binding attempts by outcome
- ``identity_resolutions_total{source}``: which source won a resolve
- ``rate_fallbacks_total``: fallback rate table installs
- ``history_fetch_failures_total``
- ``background_failures_total``: spawned tasks that raised
- ``payment_duration_seconds``: transfer request to confirmation
- ``cron_duration_seconds{job_name}`` / ``cron_last_run_timestamp_seconds{job_name}``
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator

_PREFIX = "wallet_ledger_"


class WalletMetrics:
    """Counters and timers for identity, binding, payment and rate flows.

    Each instance registers its series in its own ``CollectorRegistry``
    unless one is passed in, so several engines can live in one process.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        self._payments = self._counter("payments_total", "Payments by final outcome", "outcome")
        self._bindings = self._counter(
            "bindings_total", "Wallet binding attempts by outcome", "outcome"
        )
        self._resolutions = self._counter(
            "identity_resolutions_total", "Identity resolutions by winning source", "source"
        )
        self._rate_fallbacks = self._counter(
            "rate_fallbacks_total", "Fallback exchange rate table installs"
        )
        self._history_failures = self._counter(
            "history_fetch_failures_total", "Failed transaction history fetches"
        )
        self._background_failures = self._counter(
            "background_failures_total", "Spawned background tasks that raised"
        )
        self._payment_duration = Histogram(
            _PREFIX + "payment_duration_seconds",
            "Transfer request to on-chain confirmation",
            registry=self.registry,
        )
        self._cron_duration = Histogram(
            _PREFIX + "cron_duration_seconds",
            "Cron job run time",
            ("job_name",),
            registry=self.registry,
        )
        self._cron_last_run = Gauge(
            _PREFIX + "cron_last_run_timestamp_seconds",
            "Unix time a cron job last finished",
            ("job_name",),
            registry=self.registry,
        )

    def _counter(self, name: str, doc: str, *labels: str) -> Counter:
        return Counter(_PREFIX + name, doc, labels, registry=self.registry)

    def record_payment(self, outcome: str) -> None:
        self._payments.labels(outcome=outcome).inc()

    def record_binding(self, outcome: str) -> None:
        self._bindings.labels(outcome=outcome).inc()

    def record_resolution(self, source: str) -> None:
        self._resolutions.labels(source=source).inc()

    def record_rate_fallback(self) -> None:
        self._rate_fallbacks.inc()

    def record_history_failure(self) -> None:
        self._history_failures.inc()

    def record_background_failure(self) -> None:
        self._background_failures.inc()

    @contextmanager
    def track_payment(self) -> Iterator[None]:
        """Time a payment up to confirmation, including failed ones."""
        with self._payment_duration.time():
            yield

    @contextmanager
    def track_cron(self, job_name: str) -> Iterator[None]:
        try:
            with self._cron_duration.labels(job_name=job_name).time():
                yield
        finally:
            self._cron_last_run.labels(job_name=job_name).set(time.time())
