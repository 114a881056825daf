#!/usr/bin/env python3
"""
Tests for the two-zone PumpController and its named guards.

Run with: pytest tests/test_controller.py -v
"""

import pytest

from sporangia.controller import PumpController, ACTIONS, ALIASES
from sporangia.exceptions import GuardCondition, GuardError


@pytest.fixture
def controller():
    return PumpController(tank_level=5)


def assert_refused(controller, name, condition):
    before = controller.get_marking()
    with pytest.raises(GuardError) as info:
        controller.apply_transition(name)
    assert info.value.condition is condition
    assert controller.get_marking() == before


# =============================================================================
# Scenarios
# =============================================================================


def test_start_pump_from_rest(controller):
    marking = controller.apply_transition("start_pump")
    assert marking["p_pumpBusy"] == 1
    assert marking["p_atRest"] == 0
    assert marking["p_reservoir"] == 4
    assert marking["reservoirOk"] == 1


def test_irrigate_out_of_turn(controller):
    controller.apply_transition("start_pump")
    controller.apply_transition("irrigate_zone1")
    controller.apply_transition("to_rest")
    controller.apply_transition("start_pump")
    assert controller["turnZone2"] == 1

    assert_refused(controller, "irrigate_zone1", GuardCondition.NOT_ZONE_TURN)


def test_emergency_blocks_start(controller):
    controller.apply_transition("toggle_emergency")
    assert controller["p_emergency"] == 1
    assert_refused(controller, "start_pump", GuardCondition.EMERGENCY_ACTIVE)

    controller.apply_transition("toggle_emergency")
    assert controller["p_emergency"] == 0
    controller.apply_transition("start_pump")


def test_emergency_checked_before_other_guards(controller):
    controller.apply_transition("start_pump")
    controller.apply_transition("toggle_emergency")
    assert_refused(controller, "start_pump", GuardCondition.EMERGENCY_ACTIVE)


def test_empty_tank_blocks_start():
    controller = PumpController(tank_level=2)
    controller.apply_transition("dec_tank")
    marking = controller.apply_transition("dec_tank")
    assert marking["p_reservoir"] == 0
    assert marking["reservoirOk"] == 0
    assert_refused(controller, "start_pump", GuardCondition.RESERVOIR_EMPTY)
    assert_refused(controller, "dec_tank", GuardCondition.RESERVOIR_EMPTY)

    marking = controller.apply_transition("inc_tank")
    assert marking["reservoirOk"] == 1
    controller.apply_transition("start_pump")


def test_last_unit_clears_reservoir_ok():
    controller = PumpController(tank_level=1)
    marking = controller.apply_transition("start_pump")
    assert marking["p_reservoir"] == 0
    assert marking["reservoirOk"] == 0


# =============================================================================
# Other guards
# =============================================================================


def test_pump_busy(controller):
    controller.apply_transition("start_pump")
    assert_refused(controller, "start_pump", GuardCondition.PUMP_BUSY)


def test_not_at_rest(controller):
    controller.apply_transition("start_pump")
    controller.apply_transition("irrigate_zone1")
    assert_refused(controller, "start_pump", GuardCondition.NOT_AT_REST)


def test_irrigate_needs_running_pump(controller):
    assert_refused(controller, "irrigate_zone1", GuardCondition.PUMP_IDLE)


def test_nothing_to_return(controller):
    assert_refused(controller, "to_rest", GuardCondition.NOTHING_TO_RETURN)


def test_unknown_name(controller):
    assert_refused(controller, "open_floodgates", GuardCondition.UNKNOWN_TRANSITION)


def test_guard_error_message():
    err = GuardError(GuardCondition.NOT_ZONE_TURN, "irrigate_zone1")
    assert str(err) == "irrigate_zone1: not this zone's turn"


# =============================================================================
# Cycle
# =============================================================================


def test_turns_alternate(controller):
    for zone in ("irrigate_zone1", "irrigate_zone2", "irrigate_zone1"):
        controller.apply_transition("start_pump")
        controller.apply_transition(zone)
        controller.apply_transition("to_rest")
    assert controller["p_atRest"] == 1
    assert controller["turnZone2"] == 1
    assert controller["p_reservoir"] == 2


def test_aliases_match_actions(controller):
    assert set(ALIASES.values()) == set(ACTIONS)
    marking = controller.apply_transition("t_startPump")
    assert marking["p_pumpBusy"] == 1


def test_next_step_walks_cycle(controller):
    steps = [controller.next_step()[0] for _ in range(6)]
    assert steps == [
        "start_pump", "irrigate_zone1", "to_rest",
        "start_pump", "irrigate_zone2", "to_rest",
    ]


def test_next_step_propagates_guard():
    controller = PumpController(tank_level=0)
    with pytest.raises(GuardError) as info:
        controller.next_step()
    assert info.value.condition is GuardCondition.RESERVOIR_EMPTY


def test_available_actions(controller):
    assert set(controller.available_actions()) == {"inc_tank", "dec_tank", "toggle_emergency", "start_pump"}
    controller.apply_transition("start_pump")
    assert "irrigate_zone1" in controller.available_actions()
    assert "irrigate_zone2" not in controller.available_actions()


def test_listeners_see_each_fire(controller):
    seen = []
    controller.subscribe(lambda tid, m: seen.append(tid))
    controller.apply_transition("start_pump")
    assert seen == ["t_startPump"]


def test_export(controller):
    doc = controller.export_document()
    assert 'id="t_startPump"' in doc
    assert "<text>inhibitor</text>" in doc


def test_negative_tank_rejected():
    with pytest.raises(ValueError):
        PumpController(tank_level=-1)


def test_listeners_never_see_stale_reservoir_ok():
    controller = PumpController(tank_level=1)
    seen = []
    controller.subscribe(lambda tid, m: seen.append((tid, m["p_reservoir"], m["reservoirOk"])))

    actions = ["start_pump", "irrigate_zone1", "to_rest", "inc_tank", "dec_tank"]
    for action in actions:
        controller.apply_transition(action)

    assert [tid for tid, _, _ in seen] == ["t_startPump", "t_irrig1", "t_toRest1", "t_incTank", "t_decTank"]
    assert all((tank > 0) == (ok == 1) for _, tank, ok in seen)
    assert seen[0][1:] == (0, 0)
    assert seen[-1][1:] == (0, 0)


def test_reservoir_ok_refreshes_enabled_cache():
    controller = PumpController(tank_level=1)
    controller.apply_transition("dec_tank")
    assert not controller.runtime.is_enabled("t_startPump")
    controller.apply_transition("inc_tank")
    assert controller.runtime.is_enabled("t_startPump")
