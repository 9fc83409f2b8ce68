"""
Drawing Layer
=============

Bounded Context: Turning pointer input into region geometry.

Responsibilities:
- Collecting vertices (RegionDrawingController)
- Auto-finalize timing (CancelableTimer over an injectable Scheduler)
"""

from isotherm_zone.drawing.controller import (
    DEFAULT_FINALIZE_DELAY_S,
    DrawingState,
    RegionDrawingController,
)
from isotherm_zone.drawing.timer import CancelableTimer, LoopScheduler, Scheduler

__all__ = [
    "DEFAULT_FINALIZE_DELAY_S",
    "DrawingState",
    "RegionDrawingController",
    "CancelableTimer",
    "LoopScheduler",
    "Scheduler",
]
