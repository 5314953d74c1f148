"""Background work: periodic cron jobs and one-shot spawned tasks.

Cron jobs sleep for their period, run, and repeat until ``stop``; a failing
run is logged and the loop carries on. Spawned tasks run once. Their
exceptions are logged and kept in ``failures`` so they never reach whoever
started them.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Coroutine

    from wallet_ledger.metrics.collector import WalletMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_FAILURES = 100


@dataclass(frozen=True)
class CronJob:
    """A handler to run every *period* seconds."""

    handler: Callable[[], Awaitable[None]]
    period: float
    name: str = ""


@dataclass(frozen=True)
class TaskFailure:
    """Exception raised by a spawned task."""

    name: str
    error: BaseException


class TaskManager:
    """Owns the cron loops and spawned tasks of one engine.

    Usage::

        tm = TaskManager(metrics=wallet_metrics)
        tm.register("refresh_rates", CronJob(handler=refresh, period=60))
        await tm.start()
        tm.spawn("settle 0xabc", settle())
        await tm.stop()
    """

    def __init__(self, *, metrics: WalletMetrics | None = None) -> None:
        self._metrics = metrics
        self._jobs: dict[str, CronJob] = {}
        self._loops: dict[str, asyncio.Task[None]] = {}
        self._spawned: set[asyncio.Task[Any]] = set()
        self._failures: deque[TaskFailure] = deque(maxlen=_MAX_FAILURES)
        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started

    @property
    def jobs(self) -> dict[str, CronJob]:
        return dict(self._jobs)

    @property
    def failures(self) -> list[TaskFailure]:
        """Most recent spawned-task failures, oldest first."""
        return list(self._failures)

    @property
    def pending(self) -> int:
        """Spawned tasks that have not finished yet."""
        return len(self._spawned)

    def register(self, name: str, job: CronJob) -> None:
        """Add a cron job under *name*; it starts at once if the manager is running."""
        job = replace(job, name=name)
        self._jobs[name] = job
        if self._started:
            self._launch(job)

    def spawn(self, name: str, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T | None]:
        """Run *coro* in the background.

        The returned task resolves to the coroutine's result, or to None if it
        raised. Cancellation is not swallowed.
        """
        task = asyncio.create_task(self._guarded(name, coro), name=name)
        self._spawned.add(task)
        task.add_done_callback(self._spawned.discard)
        # Closes a coroutine cancelled before its first step; finished ones ignore it
        task.add_done_callback(lambda _: coro.close())
        return task

    async def drain(self) -> None:
        """Wait until every spawned task, including ones spawned meanwhile, is done."""
        while self._spawned:
            await asyncio.wait(set(self._spawned))

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        for job in self._jobs.values():
            self._launch(job)
        logger.info("TaskManager started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        """Let spawned tasks finish, then cancel the cron loops."""
        await self.drain()
        if not self._started:
            return
        self._started = False
        loops = list(self._loops.values())
        self._loops.clear()
        for loop in loops:
            loop.cancel()
        await asyncio.gather(*loops, return_exceptions=True)
        logger.info("TaskManager stopped")

    def _launch(self, job: CronJob) -> None:
        self._loops[job.name] = asyncio.create_task(self._cron(job), name=f"cron {job.name}")

    async def _guarded(self, name: str, coro: Coroutine[Any, Any, T]) -> T | None:
        try:
            return await coro
        except Exception as exc:
            logger.exception("Background task %r failed", name)
            self._failures.append(TaskFailure(name=name, error=exc))
            if self._metrics is not None:
                self._metrics.record_background_failure()
            return None

    async def _cron(self, job: CronJob) -> None:
        while True:
            await asyncio.sleep(job.period)
            try:
                if self._metrics is None:
                    await job.handler()
                else:
                    with self._metrics.track_cron(job.name):
                        await job.handler()
            except Exception:
                logger.exception("Cron job %r failed", job.name)
