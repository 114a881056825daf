#!/usr/bin/env python3
"""
sporangia.engine - enabling, firing, batch firing and delayed cascades
"""

from .enabling import can_fire, enabled_transitions

from .stages import Stage, stage_of, follow_up

from .scheduler import DelayScheduler, ScheduledFire

from .runtime import NetRuntime, IrrigationEngine

from .autopilot import AutoPilot

__all__ = [
    # Enabling
    'can_fire',
    'enabled_transitions',

    # Stages
    'Stage',
    'stage_of',
    'follow_up',

    # Scheduling
    'DelayScheduler',
    'ScheduledFire',

    # Runtime
    'NetRuntime',
    'IrrigationEngine',
    'AutoPilot',
]
