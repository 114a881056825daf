#!/usr/bin/env python3
"""
Sporangia - Runtime Layer

Runtime objects that execute a net specification: they own the marking,
keep the enabled-transition cache current, fire transitions singly or in
priority-ordered batches, and run delayed follow-up fires.

All mutation happens synchronously on the event-loop thread. Delayed fires
come back through the same `fire()` path, so `fire()` and
`fire_all_enabled()` never interleave.
"""

import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional, Set
import logging

from pydantic import ValidationError

from sporangia.common.timebase import Timebase
from sporangia.config import EngineConfig, IrrigationState
from sporangia.exceptions import ConfigurationError, EngineClosedError
from sporangia.net.marking import Marking
from sporangia.net.specs import NetSpec
from sporangia.pnml import export_document as write_pnml
from sporangia.net.irrigation import (
    RESERVOIR,
    EMERGENCY,
    build_irrigation_net,
    soil_dry,
    soil_wet,
    pump_on,
    watering,
    start_pump,
)
from .enabling import can_fire
from .scheduler import DelayScheduler
from .stages import Stage, stage_of, follow_up

logger = logging.getLogger(__name__)

Listener = Callable[[Optional[str], Dict[str, int]], Any]


class NetRuntime:
    """Runtime execution of a net"""

    def __init__(
        self,
        net: NetSpec,
        marking: Optional[Mapping[str, int]] = None,
        config: Optional[EngineConfig] = None,
        timebase: Optional[Timebase] = None,
    ):
        self.net = net
        self.config = config or EngineConfig()
        self.marking = Marking(net.initial_marking() if marking is None else marking)
        self.scheduler = DelayScheduler(timebase)
        self.enabled: Dict[str, bool] = {}
        self._listeners: List[Listener] = []
        self._closed = False
        self._generation = 0
        self._refresh_enabled()

    @property
    def timebase(self) -> Timebase:
        return self.scheduler.timebase

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Queries ---

    def get_marking(self) -> Dict[str, int]:
        """Copy of the current token counts"""
        return self.marking.snapshot()

    def can_fire(self, transition_id: str) -> bool:
        """Evaluate the enabling rule directly, bypassing the cache"""
        return can_fire(self.net, self.marking, transition_id)

    def is_enabled(self, transition_id: str) -> bool:
        return self.enabled.get(transition_id, False)

    def enabled_ids(self) -> List[str]:
        return [tid for tid, on in self.enabled.items() if on]

    def priority(self, transition_id: str) -> Stage:
        """Batch ordering key; lower fires first"""
        return stage_of(transition_id)

    def export_document(self) -> str:
        return write_pnml(self.net, self.marking)

    # --- Firing ---

    def fire(self, transition_id: str) -> bool:
        """Fire one transition if it is enabled.

        Returns False, without touching the marking, when the transition is
        unknown or not enabled right now.
        """
        self._check_open()

        if transition_id not in self.net.transitions:
            logger.debug("[fire] unknown transition %s", transition_id)
            return False

        if not self.can_fire(transition_id):
            logger.debug("[fire] %s not enabled", transition_id)
            return False

        changed = self._apply(transition_id)
        self._refresh_enabled()
        self._after_fire(transition_id, changed)
        logger.debug("[fire] %s changed=%s", transition_id, sorted(changed))
        self._notify(transition_id)
        return True

    def _apply(self, transition_id: str) -> Set[str]:
        changed: Set[str] = set()

        for arc in self.net.input_arcs(transition_id):
            if arc.is_inhibitor:
                continue
            if arc.source not in self.net.places:
                logger.debug("[fire] %s: skipping dangling arc %s", transition_id, arc.id)
                continue
            self.marking.take(arc.source, arc.weight)
            changed.add(arc.source)

        for arc in self.net.output_arcs(transition_id):
            if arc.target not in self.net.places:
                logger.debug("[fire] %s: skipping dangling arc %s", transition_id, arc.id)
                continue
            self.marking.give(arc.target, arc.weight)
            changed.add(arc.target)

        return changed

    def _after_fire(self, transition_id: str, changed: Set[str]):
        """Hook for subclasses; runs after the marking and cache are updated"""

    def set_tokens(self, place_id: str, tokens: int):
        """Overwrite one place's count outside of any firing (derived or mirrored places)"""
        self._check_open()
        if place_id not in self.net.places:
            raise KeyError(f"Place {place_id} not found")
        self.marking[place_id] = tokens
        self._refresh_enabled()
        self._notify(None)

    def fire_all_enabled(self) -> int:
        """Fire enabled transitions one per round, highest priority first.

        Each round looks at the first `candidate_window` enabled transitions
        in priority order and fires the first that is still enabled. Stops
        when a round fires nothing or after `max_batch_iterations` rounds.
        Returns the number of fires, never more than the round cap.

        The cache is refreshed after every fire, so the window only matters
        when the marking was written directly and the cache is stale.
        """
        self._check_open()
        cap = self.config.max_batch_iterations
        window = self.config.candidate_window
        fired = 0

        for _ in range(cap):
            # sorted() is stable, so equal priorities keep net order
            candidates = sorted(self.enabled_ids(), key=self.priority)[:window]
            if not any(self.fire(tid) for tid in candidates):
                logger.debug("[batch] settled after %d fire(s)", fired)
                return fired
            fired += 1

        logger.warning("[batch] stopped at iteration cap %d", cap)
        return fired

    def schedule_fire(self, transition_id: str, delay: float):
        """Fire `transition_id` after `delay` on the timebase.

        Enabling is checked when the delay expires, not now; a fire that is
        no longer enabled by then is dropped.
        """
        return self.scheduler.schedule(
            delay, self._delayed_fire, transition_id, self._generation, label=transition_id
        )

    def _delayed_fire(self, transition_id: str, generation: int):
        if self._closed or generation != self._generation:
            logger.debug("[delay] dropping stale fire of %s", transition_id)
            return
        if not self.fire(transition_id):
            logger.debug("[delay] %s no longer enabled; chain stalls", transition_id)

    # --- Notifications ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(transition_id, marking)` after every state change.

        `transition_id` is None for changes that did not come from a fire.
        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, transition_id: Optional[str]):
        if not self._listeners:
            return
        snapshot = self.marking.snapshot()
        for listener in list(self._listeners):
            try:
                listener(transition_id, dict(snapshot))
            except Exception:
                logger.exception("[notify] listener %r failed", listener)

    # --- Lifecycle ---

    def _refresh_enabled(self):
        self.enabled = {tid: self.can_fire(tid) for tid in self.net.transitions}

    def _check_open(self):
        if self._closed:
            raise EngineClosedError(f"{self.net.name} runtime is closed")

    def cancel_pending(self) -> int:
        """Cancel all delayed fires; later callbacks from them are ignored"""
        self._generation += 1
        return self.scheduler.cancel_all()

    async def close(self):
        """Cancel every delayed fire and refuse further firing"""
        self._closed = True
        self._generation += 1
        await self.scheduler.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


class IrrigationEngine(NetRuntime):
    """Runs the irrigation net and keeps IrrigationState in step with it.

    Firing a zone's start, irrigate or stop transition schedules that zone's
    next stage after the configured delay.
    """

    def __init__(
        self,
        zones: Optional[int] = None,
        config: Optional[EngineConfig] = None,
        timebase: Optional[Timebase] = None,
    ):
        config = config or EngineConfig()
        if zones is not None:
            config = _with_zones(config, zones)
        self.state = IrrigationState(zones=config.zones, reservoir_level=config.reservoir_level)
        super().__init__(self._build_net(config), config=config, timebase=timebase)

    def _build_net(self, config: EngineConfig) -> NetSpec:
        return build_irrigation_net(
            self.state.zones,
            reservoir_level=self.state.reservoir_level,
            emergency=self.state.emergency,
            reservoir_draw=config.reservoir_draw,
        )

    @property
    def zones(self) -> int:
        return self.state.zones

    def get_state(self) -> IrrigationState:
        return self.state.model_copy(deep=True)

    def delay_after(self, stage: Stage) -> float:
        """How long after `stage` fires its follow-up is due"""
        if stage is Stage.START:
            return self.config.start_delay
        if stage is Stage.ACTIVE:
            return self.config.irrigation_delay
        if stage is Stage.STOP:
            return self.config.drying_delay
        raise ValueError(f"Stage {stage.name} has no follow-up")

    # --- External state ---

    def update_external_state(self, **fields) -> IrrigationState:
        """Merge `fields` into the external state and resync the mirrored places.

        Raises ConfigurationError, leaving everything unchanged, for unknown
        fields, invalid values, or an attempt to change the zone count.
        """
        self._check_open()
        if "zones" in fields and fields["zones"] != self.state.zones:
            raise ConfigurationError("Changing the zone count needs reset(zones=...)")
        try:
            new_state = IrrigationState.model_validate({**self.state.model_dump(), **fields})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid external state: {e}") from e

        self.state = new_state
        self._sync_places()
        self._refresh_enabled()
        self._notify(None)
        return self.get_state()

    def _sync_places(self):
        self.marking[RESERVOIR] = self.state.reservoir_level
        self.marking[EMERGENCY] = 1 if self.state.emergency else 0
        for zone, dry in enumerate(self.state.soil_dry):
            self._set_soil(zone, dry)

    def _set_soil(self, zone: int, dry: bool):
        if (self.marking[soil_dry(zone)] > 0) == dry:
            return
        if dry:
            self.marking[soil_dry(zone)] = 1
            self.marking[soil_wet(zone)] = 0
        else:
            self.marking[soil_dry(zone)] = 0
            # mid-cycle, the stop stage will wet the soil
            if self.marking[pump_on(zone)] == 0 and self.marking[watering(zone)] == 0:
                self.marking[soil_wet(zone)] = max(1, self.marking[soil_wet(zone)])

    def _write_back(self, changed: Set[str]):
        updates: Dict[str, Any] = {}
        if RESERVOIR in changed:
            updates["reservoir_level"] = self.marking[RESERVOIR]
        if EMERGENCY in changed:
            updates["emergency"] = self.marking[EMERGENCY] > 0
        if any(soil_dry(z) in changed for z in range(self.zones)):
            updates["soil_dry"] = [self.marking[soil_dry(z)] > 0 for z in range(self.zones)]
        if updates:
            self.state = self.state.model_copy(update=updates)

    # --- Firing ---

    def _after_fire(self, transition_id: str, changed: Set[str]):
        self._write_back(changed)

        nxt = follow_up(transition_id)
        if nxt is None:
            return
        next_stage, next_id = nxt
        if next_id not in self.net.transitions:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("[cascade] no running event loop; %s not scheduled", next_id)
            return
        self.schedule_fire(next_id, self.delay_after(stage_of(transition_id)))

    def start_all_pumps(self) -> int:
        """Mark every zone's soil dry (where it is not already) and start its pump.

        Returns how many start transitions fired.
        """
        self._check_open()
        flags = [self.marking[soil_dry(z)] > 0 for z in range(self.zones)]
        if not all(flags):
            self.update_external_state(soil_dry=[True] * self.zones)
        return sum(1 for z in range(self.zones) if self.fire(start_pump(z)))

    def reset(self, zones: Optional[int] = None, config: Optional[EngineConfig] = None):
        """Cancel pending fires, then rebuild the net and state from scratch"""
        self._check_open()
        self.cancel_pending()

        config = config or self.config
        if zones is not None:
            config = _with_zones(config, zones)
        self.config = config
        self.state = IrrigationState(zones=config.zones, reservoir_level=config.reservoir_level)
        self.net = self._build_net(config)
        self.marking = Marking(self.net.initial_marking())
        self._refresh_enabled()
        self._notify(None)


def _with_zones(config: EngineConfig, zones: int) -> EngineConfig:
    try:
        return EngineConfig.model_validate({**config.model_dump(), "zones": zones})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid zone count {zones!r}: {e}") from e
