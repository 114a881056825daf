#!/usr/bin/env python3
"""
Delay scheduler: deferred callbacks as cancellable asyncio tasks.

Each entry sleeps on the engine's Timebase and then calls back into the
engine on the event-loop thread, so deferred fires are serialised with every
other engine call instead of racing them.
"""

import asyncio
from asyncio import Task
from dataclasses import dataclass
from typing import Any, Callable, Optional, Set
import logging

from sporangia.common.timebase import Timebase, MonotonicClock
from sporangia.exceptions import SchedulerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledFire:
    """A pending entry, as reported by DelayScheduler.pending()"""
    label: str
    due: float


class DelayScheduler:
    """Owns every pending delayed callback for one engine"""

    def __init__(self, timebase: Optional[Timebase] = None):
        self.timebase = timebase or MonotonicClock()
        self._tasks: Set[Task] = set()
        self._entries: dict = {}
        self._closed = False

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any, label: str = "") -> Task:
        """Run `callback(*args)` once `delay` has elapsed on the timebase."""
        if self._closed:
            raise SchedulerError(f"Scheduler is closed; cannot schedule {label or callback}")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SchedulerError(
                f"Delayed fire {label or callback} needs a running event loop"
            ) from e

        label = label or getattr(callback, "__name__", repr(callback))
        task = loop.create_task(self._run(delay, callback, args, label))
        self._tasks.add(task)
        self._entries[task] = ScheduledFire(label, self.timebase.now() + delay)
        task.add_done_callback(self._forget)
        logger.debug("[delay] scheduled %s in %s", label, delay)
        return task

    async def _run(self, delay: float, callback: Callable[..., Any], args: tuple, label: str):
        try:
            await self.timebase.sleep(delay)
        except asyncio.CancelledError:
            logger.debug("[delay] cancelled %s", label)
            raise
        try:
            callback(*args)
        except Exception:
            logger.exception("[delay] %s failed", label)

    def _forget(self, task: Task):
        self._tasks.discard(task)
        self._entries.pop(task, None)

    def pending(self) -> list:
        """Pending entries in scheduling order"""
        return [self._entries[t] for t in list(self._entries) if not t.done()]

    def __len__(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def cancel_all(self) -> int:
        """Cancel every pending entry. Returns how many were cancelled."""
        count = 0
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
                count += 1
        if count:
            logger.debug("[delay] cancelled %d pending fire(s)", count)
        return count

    async def drain(self):
        """Cancel everything and wait until the cancelled tasks have finished."""
        tasks = list(self._tasks)
        self.cancel_all()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def aclose(self):
        self._closed = True
        await self.drain()
