"""Notification service: deliver wallet events to subscribers.

Outcomes that land after the originating call has returned (a ledger
recording failure during background settlement, a fallback rate table, an
expired session) are published here. Each subscriber owns a bounded queue and
may restrict itself to a set of event types.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wallet_ledger.notifications.events import RawEvent

logger = logging.getLogger(__name__)

_INPUT_BUFFER = 100


@dataclass
class _Subscription:
    queue: asyncio.Queue[RawEvent]
    event_types: frozenset[str] | None

    def wants(self, event: RawEvent) -> bool:
        return self.event_types is None or event.type in self.event_types


class NotificationService:
    """Publishes events from one inbox to every interested subscriber.

    Usage::

        svc = NotificationService()
        payments = svc.add_subscriber("ui", event_types=["payment"])
        await svc.start()
        await svc.notify(PaymentEvent(tx_hash="0x..", status="RecordFailed"))
        event = await payments.get()
        await svc.stop()

    Events published before ``start`` wait in the inbox. ``stop`` hands any
    still-queued events to subscribers before returning.
    """

    def __init__(self) -> None:
        self._inbox: asyncio.Queue[RawEvent] = asyncio.Queue(maxsize=_INPUT_BUFFER)
        self._subscriptions: dict[str, _Subscription] = {}
        self._worker: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._worker is not None

    @property
    def pending(self) -> int:
        """Number of published events not yet delivered."""
        return self._inbox.qsize()

    def add_subscriber(
        self,
        key: str,
        *,
        event_types: Iterable[str] | None = None,
        buffer: int = _INPUT_BUFFER,
    ) -> asyncio.Queue[RawEvent]:
        """Register *key* and return the queue its events arrive on.

        Args:
            key: Subscriber name; registering the same key again replaces it.
            event_types: Only deliver events whose ``type`` is listed.
                ``None`` subscribes to everything.
            buffer: Queue capacity. Events for a full queue are dropped.
        """
        queue: asyncio.Queue[RawEvent] = asyncio.Queue(maxsize=buffer)
        types = frozenset(event_types) if event_types is not None else None
        self._subscriptions[key] = _Subscription(queue, types)
        return queue

    def remove_subscriber(self, key: str) -> None:
        self._subscriptions.pop(key, None)

    async def notify(self, event: RawEvent) -> None:
        """Publish *event*. Never blocks; a full inbox drops it."""
        try:
            self._inbox.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Notification inbox full, dropping %s event", event.type)

    async def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop delivering in the background, flushing what is already queued."""
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker
        while not self._inbox.empty():
            self._deliver(self._inbox.get_nowait())

    async def _run(self) -> None:
        while True:
            self._deliver(await self._inbox.get())

    def _deliver(self, event: RawEvent) -> None:
        for key, sub in list(self._subscriptions.items()):
            if not sub.wants(event):
                continue
            try:
                sub.queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Subscriber %s queue full, dropping %s event", key, event.type)
