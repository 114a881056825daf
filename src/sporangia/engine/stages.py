#!/usr/bin/env python3
"""
Stage classification of irrigation transitions.

Batch firing drains cycles that are already under way before it starts new
ones, so the stage a transition belongs to doubles as its priority.
"""

from enum import IntEnum
from typing import Optional, Tuple

from sporangia.net.irrigation import (
    START_PREFIX,
    ACTIVE_PREFIX,
    STOP_PREFIX,
    DRYING_PREFIX,
)


class Stage(IntEnum):
    """Lower value fires first"""
    ACTIVE = 0
    STOP = 1
    DRYING = 2
    START = 3
    OTHER = 4


_PREFIXES = (
    (ACTIVE_PREFIX, Stage.ACTIVE),
    (STOP_PREFIX, Stage.STOP),
    (DRYING_PREFIX, Stage.DRYING),
    (START_PREFIX, Stage.START),
)

# stage -> next stage in the per-zone cycle; DRYING ends the cycle
_NEXT = {
    Stage.START: Stage.ACTIVE,
    Stage.ACTIVE: Stage.STOP,
    Stage.STOP: Stage.DRYING,
}


def split_stage(transition_id: str) -> Tuple[Stage, Optional[str]]:
    """Return (stage, zone suffix). Unrecognised ids are (OTHER, None)."""
    for prefix, stage in _PREFIXES:
        if transition_id.startswith(prefix):
            return stage, transition_id[len(prefix):]
    return Stage.OTHER, None


def stage_of(transition_id: str) -> Stage:
    return split_stage(transition_id)[0]


def prefix_of(stage: Stage) -> str:
    for prefix, s in _PREFIXES:
        if s is stage:
            return prefix
    raise ValueError(f"Stage {stage.name} has no transition prefix")


def follow_up(transition_id: str) -> Optional[Tuple[Stage, str]]:
    """The (stage, transition id) that follows `transition_id` in its zone's cycle.

    None when the transition ends a cycle or is not part of one.
    """
    stage, zone = split_stage(transition_id)
    nxt = _NEXT.get(stage)
    if nxt is None:
        return None
    return nxt, f"{prefix_of(nxt)}{zone}"
