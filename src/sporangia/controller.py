#!/usr/bin/env python3
"""
Two-zone pump controller.

A single pump alternates between two zones: it starts from rest (drawing one
unit from the tank), irrigates whichever zone's turn it is, hands the turn to
the other zone, and the system then returns to rest. The tank can be topped
up or drained by hand and an emergency stop blocks the pump.

Every action is a transition of a small Petri net. `apply_transition` checks
named preconditions first so that callers learn *why* an action is refused,
then fires through the ordinary NetRuntime machinery.
"""

from typing import Callable, Dict, List, Optional, Set, Tuple
import logging

from sporangia.config import EngineConfig
from sporangia.engine.runtime import NetRuntime
from sporangia.exceptions import GuardCondition, GuardError
from sporangia.net.builder import NetBuilder
from sporangia.net.specs import NetSpec

logger = logging.getLogger(__name__)

AT_REST = "p_atRest"
PUMP_BUSY = "p_pumpBusy"
ZONE1 = "p_zone1"
ZONE2 = "p_zone2"
TANK = "p_reservoir"
EMERGENCY = "p_emergency"
TURN_ZONE1 = "turnZone1"
TURN_ZONE2 = "turnZone2"
RESERVOIR_OK = "reservoirOk"

DEFAULT_TANK_LEVEL = 2

# Domain action -> net transitions it fires
ACTIONS: Dict[str, Tuple[str, ...]] = {
    "inc_tank": ("t_incTank",),
    "dec_tank": ("t_decTank",),
    "toggle_emergency": ("t_emergencyOn", "t_emergencyOff"),
    "start_pump": ("t_startPump",),
    "irrigate_zone1": ("t_irrig1",),
    "irrigate_zone2": ("t_irrig2",),
    "to_rest": ("t_toRest1", "t_toRest2"),
}

# Actions that fire every enabled transition in their list, not just the first
FIRE_EVERY = {"to_rest"}

# Transition-style names accepted as well as the action names
ALIASES = {
    "t_incTank": "inc_tank",
    "t_decTank": "dec_tank",
    "toggleEmergency": "toggle_emergency",
    "t_startPump": "start_pump",
    "t_irrig1": "irrigate_zone1",
    "t_irrig2": "irrigate_zone2",
    "t_toRest": "to_rest",
}


def build_controller_net(tank_level: int = DEFAULT_TANK_LEVEL, emergency: bool = False) -> NetSpec:
    b = NetBuilder("pump_controller")

    b.place(AT_REST, "At Rest", tokens=1, position=(100, 200))
    b.place(PUMP_BUSY, "Pump Busy", position=(300, 200))
    b.place(ZONE1, "Zone 1 Watered", position=(500, 120))
    b.place(ZONE2, "Zone 2 Watered", position=(500, 280))
    b.place(TANK, "Reservoir", tokens=tank_level, position=(100, 60))
    b.place(EMERGENCY, "Emergency", tokens=1 if emergency else 0, position=(300, 60))
    b.place(TURN_ZONE1, "Turn Zone 1", tokens=1, position=(400, 40))
    b.place(TURN_ZONE2, "Turn Zone 2", position=(400, 360))
    b.place(RESERVOIR_OK, "Reservoir OK", tokens=1 if tank_level > 0 else 0, position=(200, 60))

    b.transition("t_startPump", "Start Pump", position=(200, 200))
    b.arc(AT_REST, "t_startPump").arc(PUMP_BUSY)
    b.arc(TANK, "t_startPump")
    b.read_arc(RESERVOIR_OK, "t_startPump")
    b.inhibitor(EMERGENCY, "t_startPump")

    b.transition("t_irrig1", "Irrigate Zone 1", position=(400, 120))
    b.arc(PUMP_BUSY, "t_irrig1").arc(ZONE1)
    b.arc(TURN_ZONE1, "t_irrig1").arc(TURN_ZONE2)

    b.transition("t_irrig2", "Irrigate Zone 2", position=(400, 280))
    b.arc(PUMP_BUSY, "t_irrig2").arc(ZONE2)
    b.arc(TURN_ZONE2, "t_irrig2").arc(TURN_ZONE1)

    b.transition("t_toRest1", "Zone 1 To Rest", position=(600, 160))
    b.arc(ZONE1, "t_toRest1").arc(AT_REST)
    b.transition("t_toRest2", "Zone 2 To Rest", position=(600, 240))
    b.arc(ZONE2, "t_toRest2").arc(AT_REST)

    b.transition("t_incTank", "Fill Tank", position=(40, 20))
    b.arc("t_incTank", TANK)
    b.transition("t_decTank", "Drain Tank", position=(160, 20))
    b.arc(TANK, "t_decTank")

    b.transition("t_emergencyOn", "Emergency On", position=(260, 20))
    b.arc("t_emergencyOn", EMERGENCY)
    b.inhibitor(EMERGENCY, "t_emergencyOn")
    b.transition("t_emergencyOff", "Emergency Off", position=(340, 20))
    b.arc(EMERGENCY, "t_emergencyOff")

    return b.build()


class ControllerRuntime(NetRuntime):
    """NetRuntime that keeps reservoirOk in step with the tank after every fire"""

    def _after_fire(self, transition_id: str, changed: Set[str]):
        ok = 1 if self.marking[TANK] > 0 else 0
        if self.marking[RESERVOIR_OK] != ok:
            self.marking[RESERVOIR_OK] = ok
            self._refresh_enabled()


class PumpController:
    """Named-precondition front end over a NetRuntime"""

    def __init__(self, tank_level: int = DEFAULT_TANK_LEVEL, emergency: bool = False,
                 config: Optional[EngineConfig] = None):
        if tank_level < 0:
            raise ValueError(f"Tank level cannot be negative, got {tank_level}")
        self.runtime = ControllerRuntime(build_controller_net(tank_level, emergency), config=config)
        self._guards: Dict[str, Callable[[], None]] = {
            "inc_tank": lambda: None,
            "dec_tank": self._guard_dec_tank,
            "toggle_emergency": lambda: None,
            "start_pump": self._guard_start_pump,
            "irrigate_zone1": lambda: self._guard_irrigate(TURN_ZONE1, "irrigate_zone1"),
            "irrigate_zone2": lambda: self._guard_irrigate(TURN_ZONE2, "irrigate_zone2"),
            "to_rest": self._guard_to_rest,
        }

    def __getitem__(self, place_id: str) -> int:
        return self.runtime.marking[place_id]

    def get_marking(self) -> Dict[str, int]:
        return self.runtime.get_marking()

    def export_document(self) -> str:
        return self.runtime.export_document()

    def subscribe(self, listener):
        return self.runtime.subscribe(listener)

    @staticmethod
    def resolve(name: str) -> str:
        """Canonical action name for `name`, accepting transition-style aliases"""
        action = ALIASES.get(name, name)
        if action not in ACTIONS:
            raise GuardError(GuardCondition.UNKNOWN_TRANSITION, name)
        return action

    # --- Guards ---

    def _guard_start_pump(self):
        if self[EMERGENCY] > 0:
            raise GuardError(GuardCondition.EMERGENCY_ACTIVE, "start_pump")
        if self[PUMP_BUSY] > 0:
            raise GuardError(GuardCondition.PUMP_BUSY, "start_pump")
        if self[AT_REST] == 0:
            raise GuardError(GuardCondition.NOT_AT_REST, "start_pump")
        if self[RESERVOIR_OK] == 0 or self[TANK] == 0:
            raise GuardError(GuardCondition.RESERVOIR_EMPTY, "start_pump")

    def _guard_irrigate(self, turn_place: str, action: str):
        if self[turn_place] == 0:
            raise GuardError(GuardCondition.NOT_ZONE_TURN, action)
        if self[PUMP_BUSY] == 0:
            raise GuardError(GuardCondition.PUMP_IDLE, action)

    def _guard_dec_tank(self):
        if self[TANK] == 0:
            raise GuardError(GuardCondition.RESERVOIR_EMPTY, "dec_tank")

    def _guard_to_rest(self):
        if self[ZONE1] == 0 and self[ZONE2] == 0:
            raise GuardError(GuardCondition.NOTHING_TO_RETURN, "to_rest")

    # --- Commands ---

    def apply_transition(self, name: str) -> Dict[str, int]:
        """Apply a named domain action and return the new marking.

        Raises GuardError naming the violated precondition; in that case the
        marking is exactly what it was before the call.
        """
        action = self.resolve(name)
        self._guards[action]()

        fired = []
        for tid in ACTIONS[action]:
            if self.runtime.fire(tid):
                fired.append(tid)
                if action not in FIRE_EVERY:
                    break
        if not fired:
            raise GuardError(GuardCondition.TRANSITION_DISABLED, action)

        logger.debug("[controller] %s fired %s", action, fired)
        return self.get_marking()

    def next_step(self) -> Optional[Tuple[str, Dict[str, int]]]:
        """Advance the cycle by one action, as the "next" button does.

        Starts the pump from rest, irrigates the zone whose turn it is while
        the pump is busy, otherwise returns watered zones to rest. Returns
        (action, marking), or None when there is nothing to do.
        """
        if self[AT_REST] > 0:
            action = "start_pump"
        elif self[PUMP_BUSY] > 0:
            action = "irrigate_zone1" if self[TURN_ZONE1] > 0 else "irrigate_zone2"
        elif self[ZONE1] > 0 or self[ZONE2] > 0:
            action = "to_rest"
        else:
            return None
        return action, self.apply_transition(action)

    def available_actions(self) -> List[str]:
        """Actions whose guards currently pass"""
        ok = []
        for action, guard in self._guards.items():
            try:
                guard()
            except GuardError:
                continue
            if any(self.runtime.can_fire(tid) for tid in ACTIONS[action]):
                ok.append(action)
        return ok
