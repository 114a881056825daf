#!/usr/bin/env python3
"""
sporangia - a Petri net engine for irrigation controllers

Places hold token counts, transitions move them along weighted normal and
inhibitor arcs. IrrigationEngine runs a multi-zone timed irrigation net;
PumpController is the two-zone alternating controller with named guards.
"""

import logging

from .exceptions import (
    SporangiaError,
    GuardError,
    GuardCondition,
    ConfigurationError,
    EngineClosedError,
    SchedulerError,
)
from .config import EngineConfig, IrrigationState, MAX_BATCH_ITERATIONS, CANDIDATE_WINDOW
from .net import ArcKind, NetSpec, NetBuilder, Marking, build_irrigation_net
from .engine import can_fire, NetRuntime, IrrigationEngine, AutoPilot, Stage
from .controller import PumpController
from .pnml import export_document, parse_document

# Library does not configure handlers by default. Callers may configure logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Errors
    "SporangiaError",
    "GuardError",
    "GuardCondition",
    "ConfigurationError",
    "EngineClosedError",
    "SchedulerError",
    # Config
    "EngineConfig",
    "IrrigationState",
    "MAX_BATCH_ITERATIONS",
    "CANDIDATE_WINDOW",
    # Net
    "ArcKind",
    "NetSpec",
    "NetBuilder",
    "Marking",
    "build_irrigation_net",
    # Engine
    "can_fire",
    "NetRuntime",
    "IrrigationEngine",
    "AutoPilot",
    "Stage",
    "PumpController",
    # Interchange
    "export_document",
    "parse_document",
]
