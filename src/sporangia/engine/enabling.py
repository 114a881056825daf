#!/usr/bin/env python3
"""
Enabling rule for place/transition nets with inhibitor arcs.
"""

import logging
from typing import Mapping

from sporangia.net.specs import NetSpec

logger = logging.getLogger(__name__)


def can_fire(net: NetSpec, marking: Mapping[str, int], transition_id: str) -> bool:
    """Whether `transition_id` may fire under `marking`.

    A normal input arc blocks while its place holds fewer than `weight`
    tokens. An inhibitor arc blocks while its place holds any token at all;
    its weight is ignored. A transition without input arcs is always enabled.
    Arcs from places that do not exist are skipped. Never mutates anything.
    """
    for arc in net.input_arcs(transition_id):
        if arc.source not in net.places:
            logger.debug("[enabling] %s: skipping dangling arc %s", transition_id, arc.id)
            continue

        tokens = marking.get(arc.source, 0)
        if arc.is_inhibitor:
            if tokens > 0:
                return False
        elif tokens < arc.weight:
            return False

    return True


def enabled_transitions(net: NetSpec, marking: Mapping[str, int]) -> list:
    """Ids of every enabled transition, in net order"""
    return [tid for tid in net.transitions if can_fire(net, marking, tid)]
