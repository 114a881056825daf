#!/usr/bin/env python3
"""
Irrigation Demo
- Two zones sharing one reservoir
- Zone 2 starts three time units after zone 1
- Emergency stop raised before zone 2 begins irrigating, stalling it
- Print every fire as it happens
"""

import asyncio
import logging

from sporangia import EngineConfig, IrrigationEngine
from sporangia.common.timebase import ManualClock


async def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    clock = ManualClock()
    engine = IrrigationEngine(zones=2, config=EngineConfig(drying_delay=6), timebase=clock)

    def on_change(transition_id, marking):
        if transition_id:
            print(f"[t={clock.now():>4}] fired {transition_id:<14} reservoir={marking['reservoir']}")

    engine.subscribe(on_change)

    print("Starting Irrigation Demo")
    print("=" * 50)

    async with engine:
        engine.update_external_state(soil_dry=[True, True])
        engine.fire("start_pump_0")
        await asyncio.sleep(0)

        for t in range(1, 20):
            clock.advance()
            for _ in range(5):
                await asyncio.sleep(0)
            if t == 3:
                engine.fire("start_pump_1")
            if t == 6:
                print(f"[t={clock.now():>4}] EMERGENCY")
                engine.update_external_state(emergency=True)

        print("=" * 50)
        state = engine.get_state()
        print(f"Reservoir: {state.reservoir_level}")
        print(f"Emergency: {state.emergency}")
        for zone, dry in enumerate(state.soil_dry):
            print(f"  zone {zone + 1}: {'dry' if dry else 'wet'}")
        print(f"Pending fires: {[e.label for e in engine.scheduler.pending()]}")

    print("\nPNML export:")
    print(engine.export_document())


if __name__ == "__main__":
    asyncio.run(main())
