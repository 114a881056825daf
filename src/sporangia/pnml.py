#!/usr/bin/env python3
"""
PNML-style interchange documents.

`export_document` writes the net structure together with the current marking
(written as each place's initialMarking). `parse_document` reads such a
document back. Neither validates against the PNML schema.
"""

from typing import Dict, Mapping, Optional, Tuple
import xml.etree.ElementTree as ET

from sporangia.net.specs import NetSpec, PlaceSpec, TransitionSpec, ArcSpec, ArcKind

NET_TYPE = "P/T net"


def _text_child(parent: ET.Element, tag: str, text) -> ET.Element:
    elem = ET.SubElement(parent, tag)
    ET.SubElement(elem, "text").text = str(text)
    return elem


def _position(parent: ET.Element, position: Tuple[float, float]):
    graphics = ET.SubElement(parent, "graphics")
    x, y = position
    ET.SubElement(graphics, "position", x=_num(x), y=_num(y))


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def export_document(net: NetSpec, marking: Optional[Mapping[str, int]] = None,
                    title: str = "Irrigation Petri Net") -> str:
    """Serialise `net` with `marking` (default: the net's initial marking)."""
    marking = net.initial_marking() if marking is None else marking

    root = ET.Element("pnml")
    net_elem = ET.SubElement(root, "net", id=net.name, type=NET_TYPE)
    _text_child(net_elem, "name", title)

    for pid, place in net.places.items():
        elem = ET.SubElement(net_elem, "place", id=pid)
        _text_child(elem, "name", place.name)
        _text_child(elem, "initialMarking", marking.get(pid, 0))
        _position(elem, place.position)

    for tid, transition in net.transitions.items():
        elem = ET.SubElement(net_elem, "transition", id=tid)
        _text_child(elem, "name", transition.name)
        _position(elem, transition.position)

    for arc in net.arcs:
        elem = ET.SubElement(net_elem, "arc", id=arc.id, source=arc.source, target=arc.target)
        _text_child(elem, "inscription", arc.weight)
        _text_child(elem, "type", arc.kind.value)

    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


# ---------- Reading ----------

def _strip_namespace(elem: ET.Element):
    if "}" in elem.tag:
        elem.tag = elem.tag.split("}", 1)[1]
    for child in elem:
        _strip_namespace(child)


def _read_text(parent: ET.Element, tag: str) -> Optional[str]:
    elem = parent.find(tag)
    if elem is None:
        return None
    text = elem.findtext("text")
    if text is None:
        text = elem.text
    return text.strip() if text and text.strip() else None


def _read_int(parent: ET.Element, tag: str, default: int) -> int:
    text = _read_text(parent, tag)
    if text is None:
        return default
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"<{parent.tag} id={parent.get('id')!r}> has non-integer {tag} {text!r}")


def _read_position(parent: ET.Element) -> Tuple[float, float]:
    pos = parent.find("graphics/position")
    if pos is None:
        return (0.0, 0.0)
    return (float(pos.get("x", 0)), float(pos.get("y", 0)))


def parse_document(text: str) -> Tuple[NetSpec, Dict[str, int]]:
    """Parse a document into (net, marking).

    Raises ValueError for malformed XML, a missing <net>, nodes without ids,
    duplicate ids, unknown arc types, negative markings, or arc
    weights below 1.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ValueError(f"Malformed document: {e}") from e
    _strip_namespace(root)

    net_elem = root if root.tag == "net" else root.find("net")
    if net_elem is None:
        raise ValueError("No <net> element found")

    net = NetSpec(net_elem.get("id") or "net")
    marking: Dict[str, int] = {}

    for elem in net_elem.iter("place"):
        pid = elem.get("id")
        if not pid:
            raise ValueError("Found <place> without an id")
        if net.has_node(pid):
            raise ValueError(f"Duplicate node id: {pid}")
        tokens = _read_int(elem, "initialMarking", 0)
        if tokens < 0:
            raise ValueError(f"Place {pid} has negative initialMarking {tokens}")
        net.places[pid] = PlaceSpec(pid, _read_text(elem, "name") or pid, tokens, _read_position(elem))
        marking[pid] = tokens

    for elem in net_elem.iter("transition"):
        tid = elem.get("id")
        if not tid:
            raise ValueError("Found <transition> without an id")
        if net.has_node(tid):
            raise ValueError(f"Duplicate node id: {tid}")
        net.transitions[tid] = TransitionSpec(tid, _read_text(elem, "name") or tid, _read_position(elem))

    seen = set()
    for elem in net_elem.iter("arc"):
        aid = elem.get("id") or f"arc_{elem.get('source')}_{elem.get('target')}"
        if aid in seen:
            raise ValueError(f"Duplicate arc id: {aid}")
        seen.add(aid)
        kind_text = (_read_text(elem, "type") or ArcKind.NORMAL.value).lower()
        try:
            kind = ArcKind(kind_text)
        except ValueError:
            raise ValueError(f"Arc {aid} has unknown type {kind_text!r}") from None
        weight = _read_int(elem, "inscription", 1)
        if weight < 1:
            raise ValueError(f"Arc {aid} weight must be >= 1, got {weight}")
        net.arcs.append(ArcSpec(aid, elem.get("source", ""), elem.get("target", ""), weight, kind))

    return net, marking
