#!/usr/bin/env python3
"""
Sporangia - Net Definition Layer

Static data structures describing a place/transition net with weighted
normal and inhibitor arcs. Live token counts are not stored here; see
``sporangia.net.marking``.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Iterator
from enum import Enum


class ArcKind(Enum):
    """How an arc participates in enabling and firing"""
    NORMAL = "normal"  # Consumes/produces `weight` tokens
    INHIBITOR = "inhibitor"  # Blocks while the source holds any token


@dataclass
class PlaceSpec:
    """Specification for a place in the Petri net"""
    id: str
    name: str
    tokens: int = 0  # Initial marking
    position: Tuple[float, float] = (0.0, 0.0)  # Layout only


@dataclass
class TransitionSpec:
    """Specification for a transition in the Petri net"""
    id: str
    name: str
    position: Tuple[float, float] = (0.0, 0.0)


@dataclass
class ArcSpec:
    """Specification for an arc connecting places and transitions"""
    id: str
    source: str
    target: str
    weight: int = 1
    kind: ArcKind = ArcKind.NORMAL

    @property
    def is_inhibitor(self) -> bool:
        return self.kind is ArcKind.INHIBITOR


@dataclass
class NetSpec:
    """Complete specification of a Petri net.

    Places and transitions are kept in insertion order; that order is the
    tie-breaker wherever the engine has to choose between equals.
    """
    name: str
    places: Dict[str, PlaceSpec] = field(default_factory=dict)
    transitions: Dict[str, TransitionSpec] = field(default_factory=dict)
    arcs: List[ArcSpec] = field(default_factory=list)

    # Arc indexes, rebuilt lazily when `arcs` changes length
    _inputs: Dict[str, List[ArcSpec]] = field(default_factory=dict, init=False, repr=False)
    _outputs: Dict[str, List[ArcSpec]] = field(default_factory=dict, init=False, repr=False)
    _indexed: int = field(default=-1, init=False, repr=False)

    def _reindex(self):
        if self._indexed == len(self.arcs):
            return
        self._inputs = {}
        self._outputs = {}
        for arc in self.arcs:
            self._inputs.setdefault(arc.target, []).append(arc)
            self._outputs.setdefault(arc.source, []).append(arc)
        self._indexed = len(self.arcs)

    def input_arcs(self, node_id: str) -> List[ArcSpec]:
        """Arcs whose target is `node_id`"""
        self._reindex()
        return self._inputs.get(node_id, [])

    def output_arcs(self, node_id: str) -> List[ArcSpec]:
        """Arcs whose source is `node_id`"""
        self._reindex()
        return self._outputs.get(node_id, [])

    def has_node(self, node_id: str) -> bool:
        return node_id in self.places or node_id in self.transitions

    def initial_marking(self) -> Dict[str, int]:
        return {pid: place.tokens for pid, place in self.places.items()}

    def dangling_arcs(self) -> Iterator[ArcSpec]:
        """Arcs with an endpoint that resolves to nothing.

        The engine skips these silently; this is here for diagnostics.
        """
        for arc in self.arcs:
            if not (self.has_node(arc.source) and self.has_node(arc.target)):
                yield arc

    def to_mermaid(self) -> str:
        """Generate Mermaid diagram of the net"""
        lines = ["graph TD"]
        for pid, place in self.places.items():
            lines.append(f"    {pid}((\"{place.name}\"))")
        for tid, transition in self.transitions.items():
            lines.append(f"    {tid}[\"{transition.name}\"]")
        for arc in self.arcs:
            label = f"|weight={arc.weight}|" if arc.weight > 1 else ""
            edge = "--o" if arc.is_inhibitor else "-->"
            lines.append(f"    {arc.source} {edge}{label} {arc.target}")
        return "\n".join(lines)
