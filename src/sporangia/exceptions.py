#!/usr/bin/env python3
"""
Sporangia exceptions.

All Sporangia exceptions inherit from SporangiaError for easy catching.
"""

from enum import Enum
from typing import Optional


class GuardCondition(Enum):
    """Named preconditions a domain-level transition can violate."""
    UNKNOWN_TRANSITION = "unknown transition name"
    EMERGENCY_ACTIVE = "emergency active"
    PUMP_BUSY = "pump busy"
    NOT_AT_REST = "system not at rest"
    RESERVOIR_EMPTY = "reservoir empty"
    NOT_ZONE_TURN = "not this zone's turn"
    PUMP_IDLE = "pump not running"
    NOTHING_TO_RETURN = "no zone to return from"
    TRANSITION_DISABLED = "transition not enabled"


class SporangiaError(Exception):
    """Base exception for all Sporangia errors."""


class GuardError(SporangiaError):
    """A transition's guard failed. The marking was left untouched."""

    def __init__(self, condition: GuardCondition, transition: Optional[str] = None):
        self.condition = condition
        self.transition = transition
        if transition:
            message = f"{transition}: {condition.value}"
        else:
            message = condition.value
        super().__init__(message)


class ConfigurationError(SporangiaError):
    """Invalid engine configuration or external state update."""


class EngineClosedError(SporangiaError):
    """The engine was closed and can no longer fire transitions."""


class SchedulerError(SporangiaError):
    """A delayed fire could not be scheduled."""
