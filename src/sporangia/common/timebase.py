#!/usr/bin/env python3
"""
Time sources for the delay scheduler.

The engine never calls ``asyncio.sleep`` directly; every delayed fire waits on
a Timebase so that tests and demos can drive simulated time by hand.
"""

from abc import ABC, abstractmethod
from time import monotonic
import asyncio


class Timebase(ABC):
    @abstractmethod
    def now(self) -> float:
        pass

    @abstractmethod
    async def sleep(self, duration: float):
        pass

    def advance(self, delta: float = 1.0):
        pass

    def set(self, val: float):
        pass

    def reset(self):
        pass


class MonotonicClock(Timebase):
    """Real time, in seconds."""

    def now(self) -> float:
        return monotonic()

    async def sleep(self, duration: float):
        await asyncio.sleep(max(0.0, duration))


class ManualClock(Timebase):
    """Simulated time that only moves when told to.

    Sleepers block until ``advance()``/``set()`` has pushed the clock past
    their deadline. A zero (or negative) duration still yields once to the
    event loop, so a zero-delay fire never runs inline with its scheduler.
    """

    def __init__(self, initial: float = 0.0, stepsize: float = 1.0):
        super().__init__()
        self.value = initial
        self._initial = initial
        self._stepsize = stepsize
        self._tick_evt = asyncio.Event()

    def now(self) -> float:
        return self.value

    async def sleep(self, duration: float):
        if duration <= 0:
            await asyncio.sleep(0)
            return
        target = self.value + duration
        while self.value < target:
            await self._tick_evt.wait()

    def advance(self, delta: float = None):
        self.set(self.value + (self._stepsize if delta is None else delta))

    def set(self, val: float):
        self.value = val

        # Pulse the event to wake up sleepers
        self._tick_evt.set()
        self._tick_evt.clear()

    def reset(self):
        self.value = self._initial
