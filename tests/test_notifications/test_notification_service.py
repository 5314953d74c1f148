"""Tests for notification events and the fan-out service."""

from __future__ import annotations

import asyncio

from wallet_ledger.notifications.events import (
    IdentityEvent,
    PaymentEvent,
    RatesStaleEvent,
    RawEvent,
    SessionExpiredEvent,
)
from wallet_ledger.notifications.service import NotificationService


class TestEvents:
    def test_types(self) -> None:
        assert PaymentEvent().type == "payment"
        assert IdentityEvent().type == "identity"
        assert SessionExpiredEvent().type == "session_expired"
        assert RatesStaleEvent().type == "rates_stale"

    def test_to_dict(self) -> None:
        event = PaymentEvent(tx_hash="0x1", status="RecordFailed", reason="timeout")
        data = event.to_dict()
        assert data["type"] == "payment"
        assert data["tx_hash"] == "0x1"
        assert data["status"] == "RecordFailed"
        assert data["reason"] == "timeout"

    def test_raw_event(self) -> None:
        assert RawEvent(type="custom", content={"a": 1}).to_dict() == {
            "type": "custom",
            "content": {"a": 1},
        }


class TestNotificationService:
    async def test_fan_out(self) -> None:
        svc = NotificationService()
        first = svc.add_subscriber("first")
        second = svc.add_subscriber("second")
        await svc.start()

        event = PaymentEvent(tx_hash="0x1", status="Confirmed")
        await svc.notify(event)

        assert await asyncio.wait_for(first.get(), timeout=1) is event
        assert await asyncio.wait_for(second.get(), timeout=1) is event
        await svc.stop()

    async def test_remove_subscriber(self) -> None:
        svc = NotificationService()
        gone = svc.add_subscriber("gone")
        kept = svc.add_subscriber("kept")
        svc.remove_subscriber("gone")
        await svc.start()

        await svc.notify(RatesStaleEvent(reason="down"))
        await asyncio.wait_for(kept.get(), timeout=1)
        assert gone.empty()
        await svc.stop()

    async def test_full_subscriber_drops(self) -> None:
        svc = NotificationService()
        q = svc.add_subscriber("slow", buffer=1)
        await svc.start()

        await svc.notify(RawEvent(type="a"))
        await svc.notify(RawEvent(type="b"))
        await asyncio.sleep(0.01)

        assert q.qsize() == 1
        assert q.get_nowait().type == "a"
        await svc.stop()

    async def test_start_stop_idempotent(self) -> None:
        svc = NotificationService()
        await svc.start()
        await svc.start()
        assert svc.is_running
        await svc.stop()
        await svc.stop()
        assert not svc.is_running

    async def test_notify_before_start_is_buffered(self) -> None:
        svc = NotificationService()
        q = svc.add_subscriber("late")
        await svc.notify(RawEvent(type="early"))
        await svc.start()
        assert (await asyncio.wait_for(q.get(), timeout=1)).type == "early"
        await svc.stop()

    async def test_event_type_filter(self) -> None:
        svc = NotificationService()
        payments = svc.add_subscriber("payments", event_types=["payment"])
        everything = svc.add_subscriber("all")
        await svc.start()

        await svc.notify(RatesStaleEvent(reason="down"))
        await svc.notify(PaymentEvent(tx_hash="0x1", status="Confirmed"))

        assert (await asyncio.wait_for(everything.get(), timeout=1)).type == "rates_stale"
        assert (await asyncio.wait_for(everything.get(), timeout=1)).type == "payment"
        assert (await asyncio.wait_for(payments.get(), timeout=1)).type == "payment"
        assert payments.empty()
        await svc.stop()

    async def test_stop_flushes_queued_events(self) -> None:
        svc = NotificationService()
        q = svc.add_subscriber("ui")
        await svc.start()
        # No suspension point before stop, so the worker never runs.
        await svc.notify(RawEvent(type="late"))
        assert svc.pending == 1

        await svc.stop()
        assert svc.pending == 0
        assert q.get_nowait().type == "late"

    async def test_pending_counts_undelivered(self) -> None:
        svc = NotificationService()
        await svc.notify(RawEvent(type="a"))
        await svc.notify(RawEvent(type="b"))
        assert svc.pending == 2
