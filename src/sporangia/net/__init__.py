#!/usr/bin/env python3
"""
sporangia.net - Petri net definitions and the marking store
"""

from .specs import (
    ArcKind,
    PlaceSpec,
    TransitionSpec,
    ArcSpec,
    NetSpec,
)

from .marking import Marking

from .builder import NetBuilder, ArcChain

from .irrigation import build_irrigation_net

__all__ = [
    # Specification types
    'ArcKind',
    'PlaceSpec',
    'TransitionSpec',
    'ArcSpec',
    'NetSpec',

    # Marking store
    'Marking',

    # Builder
    'NetBuilder',
    'ArcChain',
    'build_irrigation_net',
]
