#!/usr/bin/env python3
"""
The irrigation net: a shared reservoir and emergency stop feeding N zones,
each running a four-stage start -> irrigate -> stop -> dry cycle.
"""

from .builder import NetBuilder
from .specs import NetSpec

RESERVOIR = "reservoir"
EMERGENCY = "emergency"

# Per-zone transition id prefixes; the zone index is appended
START_PREFIX = "start_pump_"
ACTIVE_PREFIX = "irrigate_"
STOP_PREFIX = "stop_pump_"
DRYING_PREFIX = "dry_soil_"

DEFAULT_RESERVOIR_LEVEL = 50
DEFAULT_RESERVOIR_DRAW = 10


def soil_dry(zone: int) -> str:
    return f"soil_dry_{zone}"


def pump_on(zone: int) -> str:
    return f"pump_on_{zone}"


def watering(zone: int) -> str:
    return f"watering_{zone}"


def soil_wet(zone: int) -> str:
    return f"soil_wet_{zone}"


def start_pump(zone: int) -> str:
    return f"{START_PREFIX}{zone}"


def irrigate(zone: int) -> str:
    return f"{ACTIVE_PREFIX}{zone}"


def stop_pump(zone: int) -> str:
    return f"{STOP_PREFIX}{zone}"


def dry_soil(zone: int) -> str:
    return f"{DRYING_PREFIX}{zone}"


def build_irrigation_net(
    zones: int = 1,
    reservoir_level: int = DEFAULT_RESERVOIR_LEVEL,
    emergency: bool = False,
    reservoir_draw: int = DEFAULT_RESERVOIR_DRAW,
) -> NetSpec:
    """Build the net for `zones` independent irrigation zones.

    Soil starts wet in every zone: ``soil_wet_i`` is marked and ``soil_dry_i``
    is empty. The start stage only becomes enabled once a zone's soil-dry
    place is marked, by the drying stage or by the caller.
    """
    if zones < 1:
        raise ValueError(f"An irrigation net needs at least one zone, got {zones}")

    b = NetBuilder("irrigation_net")
    b.place(RESERVOIR, "Reservoir", tokens=reservoir_level, position=(100, 100))
    b.place(EMERGENCY, "Emergency", tokens=1 if emergency else 0, position=(300, 50))

    for i in range(zones):
        y = 150 + i * 100
        b.place(soil_dry(i), f"Soil Dry {i + 1}", position=(200, y))
        b.place(pump_on(i), f"Pump On {i + 1}", position=(300, y + 40))
        b.place(watering(i), f"Watering {i + 1}", position=(400, y))
        b.place(soil_wet(i), f"Soil Wet {i + 1}", tokens=1, position=(600, y))

        b.transition(start_pump(i), f"Start Pump {i + 1}", position=(300, y))
        b.transition(irrigate(i), f"Irrigate {i + 1}", position=(350, y + 40))
        b.transition(stop_pump(i), f"Stop Pump {i + 1}", position=(500, y))
        b.transition(dry_soil(i), f"Dry Soil {i + 1}", position=(700, y))

        # start: draw from the reservoir, needs dry soil, blocked by emergency
        b.arc(RESERVOIR, start_pump(i), weight=reservoir_draw)
        b.arc(soil_dry(i), start_pump(i)).arc(pump_on(i))
        b.inhibitor(EMERGENCY, start_pump(i))

        # active: pump pressure reaches the zone, also halted by emergency
        b.arc(pump_on(i), irrigate(i)).arc(watering(i))
        b.inhibitor(EMERGENCY, irrigate(i))

        # stop: watering ends, soil is wet
        b.arc(watering(i), stop_pump(i)).arc(soil_wet(i))

        # drying: wet soil dries out and asks for water again
        b.arc(soil_wet(i), dry_soil(i)).arc(soil_dry(i))

    return b.build()
