#!/usr/bin/env python3
"""
Tests for NetRuntime: single fires, the enabled cache, batch firing.

Run with: pytest tests/engine/test_net_runtime.py -v
"""

import pytest
from hypothesis import given, settings, strategies as st

from sporangia.config import EngineConfig, MAX_BATCH_ITERATIONS
from sporangia.engine.runtime import NetRuntime, IrrigationEngine
from sporangia.engine.stages import Stage
from sporangia.exceptions import EngineClosedError
from sporangia.net import NetBuilder, NetSpec
from sporangia.net.specs import ArcSpec, TransitionSpec


def transfer_net(tokens: int = 3, weight: int = 2) -> NetSpec:
    b = NetBuilder("transfer")
    b.place("src", tokens=tokens)
    b.place("dst")
    b.transition("move")
    b.arc("src", "move", weight=weight).arc("dst", weight=weight)
    return b.build()


def staged_net() -> NetSpec:
    """One independent transition per stage, each with a single token to spend"""
    b = NetBuilder("staged")
    b.place("sink")
    for tid in ("other_x", "start_pump_0", "dry_soil_0", "stop_pump_0", "irrigate_0"):
        b.place(f"in_{tid}", tokens=1)
        b.transition(tid)
        b.arc(f"in_{tid}", tid).arc("sink")
    return b.build()


# =============================================================================
# Single fire
# =============================================================================


class TestFire:
    def test_moves_tokens(self):
        rt = NetRuntime(transfer_net())
        assert rt.fire("move") is True
        assert rt.get_marking() == {"src": 1, "dst": 2}

    def test_conserves_tokens_for_equal_weights(self):
        rt = NetRuntime(transfer_net(tokens=7, weight=3))
        before = rt.marking.total()
        rt.fire("move")
        rt.fire("move")
        assert rt.marking.total() == before

    def test_disabled_fire_changes_nothing(self):
        rt = NetRuntime(transfer_net(tokens=1, weight=2))
        seen = []
        rt.subscribe(lambda tid, m: seen.append(tid))
        assert rt.fire("move") is False
        assert rt.get_marking() == {"src": 1, "dst": 0}
        assert seen == []

    def test_unknown_transition_is_false(self):
        rt = NetRuntime(transfer_net())
        assert rt.fire("nope") is False

    def test_inhibitor_not_consumed(self):
        b = NetBuilder("inh")
        b.place("guard")
        b.place("out")
        b.transition("t")
        b.inhibitor("guard", "t")
        b.arc("t", "out")
        rt = NetRuntime(b.build())
        assert rt.fire("t")
        assert rt.get_marking() == {"guard": 0, "out": 1}
        rt.set_tokens("guard", 1)
        assert rt.fire("t") is False
        assert rt.marking["guard"] == 1

    def test_dangling_arcs_skipped_when_firing(self):
        net = transfer_net()
        net.arcs.append(ArcSpec("ghost_in", "ghost", "move"))
        net.arcs.append(ArcSpec("ghost_out", "move", "ghost2"))
        rt = NetRuntime(net)
        assert rt.fire("move")
        assert set(rt.get_marking()) == {"src", "dst"}

    def test_get_marking_is_a_copy(self):
        rt = NetRuntime(transfer_net())
        snap = rt.get_marking()
        snap["src"] = 100
        assert rt.marking["src"] == 3

    def test_listener_sees_complete_marking(self):
        rt = NetRuntime(transfer_net())
        seen = []
        unsubscribe = rt.subscribe(lambda tid, m: seen.append((tid, m)))
        rt.fire("move")
        assert seen == [("move", {"src": 1, "dst": 2})]
        unsubscribe()
        rt.set_tokens("src", 4)
        assert len(seen) == 1

    def test_failing_listener_does_not_break_fire(self):
        rt = NetRuntime(transfer_net())

        def boom(tid, m):
            raise RuntimeError("listener bug")

        rt.subscribe(boom)
        assert rt.fire("move")
        assert rt.marking["dst"] == 2

    def test_set_tokens_unknown_place(self):
        rt = NetRuntime(transfer_net())
        with pytest.raises(KeyError):
            rt.set_tokens("ghost", 1)


# =============================================================================
# Enabled cache
# =============================================================================


class TestEnabledCache:
    def test_cache_tracks_marking(self):
        rt = NetRuntime(transfer_net(tokens=2, weight=2))
        assert rt.is_enabled("move")
        rt.fire("move")
        assert not rt.is_enabled("move")

    @settings(max_examples=50, deadline=None)
    @given(st.lists(st.integers(min_value=0, max_value=11), max_size=40))
    def test_cache_matches_direct_evaluation(self, picks):
        engine = IrrigationEngine(zones=3)
        engine.update_external_state(soil_dry=[True, False, True])
        ids = list(engine.net.transitions)
        for pick in picks:
            engine.fire(ids[pick % len(ids)])
            assert engine.enabled == {tid: engine.can_fire(tid) for tid in ids}


# =============================================================================
# Batch firing
# =============================================================================


class TestFireAllEnabled:
    def test_priority_order(self):
        rt = NetRuntime(staged_net())
        order = []
        rt.subscribe(lambda tid, m: order.append(tid))
        assert rt.fire_all_enabled() == 5
        assert order == ["irrigate_0", "stop_pump_0", "dry_soil_0", "start_pump_0", "other_x"]

    def test_priority_keys(self):
        rt = NetRuntime(staged_net())
        assert rt.priority("irrigate_3") < rt.priority("stop_pump_3") < rt.priority("dry_soil_3")
        assert rt.priority("dry_soil_3") < rt.priority("start_pump_3") < rt.priority("anything")
        assert rt.priority("anything") is Stage.OTHER

    def test_equal_priority_keeps_net_order(self):
        b = NetBuilder("ties")
        b.place("p", tokens=1)
        b.place("out")
        for tid in ("zeta", "alpha"):
            b.transition(tid)
            b.arc("p", tid).arc("out")
        rt = NetRuntime(b.build())
        order = []
        rt.subscribe(lambda tid, m: order.append(tid))
        assert rt.fire_all_enabled() == 1
        assert order == ["zeta"]

    def test_settled_net_fires_nothing(self):
        rt = NetRuntime(transfer_net(tokens=0))
        assert rt.fire_all_enabled() == 0

    def test_cyclic_net_stops_at_cap(self, cyclic_net):
        rt = NetRuntime(cyclic_net)
        assert rt.fire_all_enabled() == MAX_BATCH_ITERATIONS
        assert rt.get_marking() == {"p": 1}

    def test_custom_cap(self, cyclic_net, caplog):
        rt = NetRuntime(cyclic_net, config=EngineConfig(max_batch_iterations=7))
        with caplog.at_level("WARNING"):
            assert rt.fire_all_enabled() == 7
        assert any("iteration cap" in r.getMessage() for r in caplog.records)

    def test_window_limits_candidates(self):
        b = NetBuilder("window")
        b.place("sink")
        for tid in ("a", "b", "c", "d"):
            b.place(f"in_{tid}", tokens=1)
            b.transition(tid)
            b.arc(f"in_{tid}", tid).arc("sink")
        net = b.build()

        def stale(window):
            rt = NetRuntime(net, config=EngineConfig(candidate_window=window))
            # written straight into the marking, so the enabled cache still lists a..d
            for tid in ("a", "b", "c"):
                rt.marking[f"in_{tid}"] = 0
            return rt

        narrow = stale(3)
        assert narrow.fire_all_enabled() == 0
        assert narrow.marking["sink"] == 0

        wide = stale(4)
        assert wide.fire_all_enabled() == 1
        assert wide.marking["sink"] == 1
        assert wide.marking["in_d"] == 0


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    async def test_closed_runtime_refuses_fire(self):
        rt = NetRuntime(transfer_net())
        await rt.close()
        assert rt.closed
        with pytest.raises(EngineClosedError):
            rt.fire("move")
        with pytest.raises(EngineClosedError):
            rt.fire_all_enabled()

    async def test_async_context_manager_closes(self):
        async with NetRuntime(transfer_net()) as rt:
            rt.fire("move")
        assert rt.closed

    def test_transition_without_inputs(self):
        net = NetSpec("gen")
        net.transitions["gen"] = TransitionSpec("gen", "Gen")
        rt = NetRuntime(net)
        assert rt.is_enabled("gen")
        assert rt.fire("gen")
