#!/usr/bin/env python3
"""
Engine configuration and the externally visible irrigation state.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sporangia.net.irrigation import DEFAULT_RESERVOIR_LEVEL, DEFAULT_RESERVOIR_DRAW

# Safety caps for batch firing
MAX_BATCH_ITERATIONS = 100  # rounds per fire_all_enabled() call
CANDIDATE_WINDOW = 3  # highest-priority candidates tried per round

# Stage delays, in timebase units
START_DELAY = 5.0  # start -> irrigate
IRRIGATION_DELAY = 5.0  # irrigate -> stop
DRYING_DELAY = 10.0  # stop -> dry


class EngineConfig(BaseModel):
    """Tunables for an IrrigationEngine"""
    model_config = ConfigDict(frozen=True, extra="forbid")

    zones: int = Field(default=1, ge=1)
    reservoir_level: int = Field(default=DEFAULT_RESERVOIR_LEVEL, ge=0)
    reservoir_draw: int = Field(default=DEFAULT_RESERVOIR_DRAW, ge=1)

    start_delay: float = Field(default=START_DELAY, ge=0)
    irrigation_delay: float = Field(default=IRRIGATION_DELAY, ge=0)
    drying_delay: float = Field(default=DRYING_DELAY, ge=0)

    max_batch_iterations: int = Field(default=MAX_BATCH_ITERATIONS, ge=1)
    candidate_window: int = Field(default=CANDIDATE_WINDOW, ge=1)

    autopilot_interval: float = Field(default=1.0, gt=0)


class IrrigationState(BaseModel):
    """Domain-facing view of the mirrored places.

    `reservoir_level`, `emergency` and `soil_dry` mirror the `reservoir`,
    `emergency` and `soil_dry_<i>` places. `auto_mode` is not backed by any
    place; it only tells an AutoPilot whether to run.
    """
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    zones: int = Field(default=1, ge=1)
    reservoir_level: int = Field(default=DEFAULT_RESERVOIR_LEVEL, ge=0)
    emergency: bool = False
    soil_dry: List[bool] = Field(default_factory=list)
    auto_mode: bool = False

    @model_validator(mode="after")
    def _fit_soil_flags(self):
        if not self.soil_dry:
            # bypass validate_assignment, which would re-enter this validator
            object.__setattr__(self, "soil_dry", [False] * self.zones)
        elif len(self.soil_dry) != self.zones:
            raise ValueError(
                f"soil_dry has {len(self.soil_dry)} flags for {self.zones} zones"
            )
        return self
