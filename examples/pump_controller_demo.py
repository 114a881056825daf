#!/usr/bin/env python3
"""
Pump Controller Demo

Steps the two-zone alternating controller through a few cycles, then shows
the guard errors callers get back when an action is refused.
"""

from sporangia import GuardError, PumpController


def show(label, marking):
    busy = "busy" if marking["p_pumpBusy"] else "idle"
    turn = "zone 1" if marking["turnZone1"] else "zone 2"
    print(f"{label:<16} tank={marking['p_reservoir']} pump={busy} next turn={turn}")


def main():
    controller = PumpController(tank_level=2)

    while True:
        try:
            step = controller.next_step()
        except GuardError as e:
            print(f"refused: {e}")
            break
        if step is None:
            break
        show(*step)

    for action in ("irrigate_zone2", "toggle_emergency", "inc_tank", "start_pump", "flood"):
        try:
            show(action, controller.apply_transition(action))
        except GuardError as e:
            print(f"{action:<16} refused: {e.condition.value}")


if __name__ == "__main__":
    main()
