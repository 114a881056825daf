#!/usr/bin/env python3
"""
Sporangia - Builder Layer

NetBuilder provides the API for declaratively constructing net specifications.
"""

from typing import Optional, Tuple, Union
from .specs import (
    NetSpec,
    PlaceSpec,
    TransitionSpec,
    ArcSpec,
    ArcKind,
)


class ArcChain:
    """Fluent interface for chaining arc definitions"""

    def __init__(self, builder: "NetBuilder", last_id: str):
        self.builder = builder
        self.last_id = last_id

    def arc(self, target: str, weight: int = 1, arc_id: Optional[str] = None) -> "ArcChain":
        """Chain another normal arc from the last element to target"""
        return self.builder.arc(self.last_id, target, weight=weight, arc_id=arc_id)


class NetBuilder:
    """Builder for constructing Petri net specifications

    Example:
        builder = NetBuilder("demo")
        builder.place("p_in", tokens=1)
        builder.place("p_out")
        builder.transition("t_move")
        builder.arc("p_in", "t_move").arc("p_out")
        net = builder.build()
    """

    def __init__(self, name: str):
        self.spec = NetSpec(name)

    def place(
        self,
        place_id: str,
        name: Optional[str] = None,
        tokens: int = 0,
        position: Tuple[float, float] = (0.0, 0.0),
    ) -> str:
        """Declare a place. Returns its id for use in arcs."""
        if self.spec.has_node(place_id):
            raise ValueError(f"Node {place_id} already exists")
        if tokens < 0:
            raise ValueError(f"Place {place_id} cannot start with {tokens} tokens")
        self.spec.places[place_id] = PlaceSpec(place_id, name or place_id, tokens, position)
        return place_id

    def transition(
        self,
        transition_id: str,
        name: Optional[str] = None,
        position: Tuple[float, float] = (0.0, 0.0),
    ) -> str:
        """Declare a transition. Returns its id for use in arcs."""
        if self.spec.has_node(transition_id):
            raise ValueError(f"Node {transition_id} already exists")
        self.spec.transitions[transition_id] = TransitionSpec(transition_id, name or transition_id, position)
        return transition_id

    def arc(
        self,
        source: str,
        target: str,
        weight: int = 1,
        kind: Union[ArcKind, str] = ArcKind.NORMAL,
        arc_id: Optional[str] = None,
    ) -> ArcChain:
        """Connect a place to a transition or a transition to a place."""
        kind = ArcKind(kind)
        if weight < 1:
            raise ValueError(f"Arc weight must be >= 1, got {weight}")

        source_is_place = source in self.spec.places
        target_is_place = target in self.spec.places
        if source_is_place == target_is_place and self.spec.has_node(source) and self.spec.has_node(target):
            node_kind = "place" if source_is_place else "transition"
            raise ValueError(
                f"Cannot connect {node_kind} {source} to {node_kind} {target} directly. "
                f"Arcs must alternate between places and transitions."
            )
        if kind is ArcKind.INHIBITOR and not source_is_place:
            raise ValueError(f"Inhibitor arc {source} -> {target} must start at a place")

        arc_id = arc_id or f"arc_{source}_{target}"
        if any(a.id == arc_id for a in self.spec.arcs):
            raise ValueError(f"Arc {arc_id} already exists")

        self.spec.arcs.append(ArcSpec(arc_id, source, target, weight, kind))
        return ArcChain(self, target)

    def inhibitor(self, place: str, transition: str, arc_id: Optional[str] = None) -> None:
        """Block `transition` while `place` holds any token"""
        self.arc(place, transition, kind=ArcKind.INHIBITOR, arc_id=arc_id or f"arc_{place}_inhibits_{transition}")

    def read_arc(self, place: str, transition: str, weight: int = 1) -> None:
        """Require `weight` tokens in `place` without keeping them (consume and give back)"""
        self.arc(place, transition, weight=weight)
        self.arc(transition, place, weight=weight)

    def build(self) -> NetSpec:
        return self.spec
