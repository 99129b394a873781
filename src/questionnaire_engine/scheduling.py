"""Cancellable periodic tasks for the autosave coordinator.

Two schedulers implement the same interface:

  - ``AsyncioScheduler`` fires on the running event loop's real clock
  - ``ManualScheduler`` keeps a virtual clock that only moves when
    :meth:`ManualScheduler.advance` is awaited, so timing-dependent
    behaviour can be driven deterministically

Each firing runs the callback as its own task and does not wait for the
previous firing to finish, the same way a browser interval timer behaves.
Overlap protection is the callback's responsibility.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[object]]


async def _run_safely(callback: Callback) -> None:
    try:
        await callback()
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Scheduled callback %r failed", callback)


class ScheduledTask(ABC):
    """Handle for a periodic callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop future firings.  Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        ...


class Scheduler(ABC):
    """Factory for periodic tasks."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callback) -> ScheduledTask:
        """Invoke *callback* every *interval* seconds until cancelled."""
        ...


# ----------------------------------------------------------------------
# Real clock
# ----------------------------------------------------------------------

class _AsyncioTask(ScheduledTask):
    def __init__(self, interval: float, callback: Callback) -> None:
        self._interval = interval
        self._callback = callback
        self._firings: set[asyncio.Task] = set()
        self._cancelled = False
        self._loop_task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            firing = asyncio.create_task(_run_safely(self._callback))
            self._firings.add(firing)
            firing.add_done_callback(self._firings.discard)

    def cancel(self) -> None:
        self._cancelled = True
        self._loop_task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """Schedules on the running asyncio event loop."""

    def call_every(self, interval: float, callback: Callback) -> ScheduledTask:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        return _AsyncioTask(interval, callback)


# ----------------------------------------------------------------------
# Virtual clock
# ----------------------------------------------------------------------

class _ManualTask(ScheduledTask):
    def __init__(self, interval: float, callback: Callback, first_run: float) -> None:
        self.interval = interval
        self.callback = callback
        self.next_run = first_run
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler.

    Usage::

        scheduler = ManualScheduler()
        task = scheduler.call_every(30, tick)
        await scheduler.advance(30)   # fires tick once
        await scheduler.settle()      # wait for fired callbacks to finish
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._tasks: list[_ManualTask] = []
        self._pending: set[asyncio.Task] = set()

    def call_every(self, interval: float, callback: Callback) -> ScheduledTask:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        task = _ManualTask(interval, callback, self.now + interval)
        self._tasks.append(task)
        return task

    @property
    def active_tasks(self) -> int:
        """Number of scheduled tasks that have not been cancelled."""
        return sum(1 for t in self._tasks if not t.cancelled)

    async def advance(self, seconds: float) -> int:
        """Move the clock forward, starting every callback that falls due.

        Each started callback gets one event-loop turn before the clock moves
        on.  Returns the number of firings.
        """
        target = self.now + seconds
        fired = 0
        while True:
            live = [t for t in self._tasks if not t.cancelled]
            self._tasks = live
            due = [t for t in live if t.next_run <= target]
            if not due:
                break
            task = min(due, key=lambda t: t.next_run)
            self.now = task.next_run
            task.next_run += task.interval
            firing = asyncio.create_task(_run_safely(task.callback))
            self._pending.add(firing)
            firing.add_done_callback(self._pending.discard)
            fired += 1
            await asyncio.sleep(0)
        self.now = target
        return fired

    async def settle(self) -> None:
        """Wait until every callback started by :meth:`advance` has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
