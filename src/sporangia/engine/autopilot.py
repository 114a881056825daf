#!/usr/bin/env python3
"""
Auto mode: periodic batch firing while the engine's `auto_mode` flag is set.
"""

from typing import Optional
import logging

from .runtime import IrrigationEngine

logger = logging.getLogger(__name__)

TICK_LABEL = "autopilot"


class AutoPilot:
    """Calls `fire_all_enabled()` every `interval` timebase units.

    Ticks are scheduled on the engine's own DelayScheduler, so closing or
    resetting the engine stops the autopilot too. The flag is read on every
    tick; clearing `auto_mode` pauses firing without stopping the ticks.
    """

    def __init__(self, engine: IrrigationEngine, interval: Optional[float] = None):
        self.engine = engine
        self.interval = engine.config.autopilot_interval if interval is None else interval
        if self.interval <= 0:
            raise ValueError(f"Autopilot interval must be positive, got {self.interval}")
        self.ticks = 0
        self.fired = 0
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._schedule()

    def stop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _schedule(self):
        self._task = self.engine.scheduler.schedule(self.interval, self._tick, label=TICK_LABEL)

    def _tick(self):
        self._task = None
        if self.engine.closed:
            return
        self.ticks += 1
        if self.engine.state.auto_mode:
            count = self.engine.fire_all_enabled()
            self.fired += count
            logger.debug("[autopilot] tick %d fired %d", self.ticks, count)
        self._schedule()
