from .timebase import Timebase, MonotonicClock, ManualClock

__all__ = ["Timebase", "MonotonicClock", "ManualClock"]
