"""
Isotherm Zone
=============

Bounded Context: Region definition, drawing and classification.

Architecture:

    isotherm_zone/
    ├── geometry/          # Pure geometry (immutable, stateless)
    │   └── shapes.py      # RegionGeometry, BoundingBox
    │
    ├── drawing/           # Pointer input -> geometry (stateful)
    │   ├── controller.py  # RegionDrawingController
    │   └── timer.py       # CancelableTimer, LoopScheduler
    │
    └── analytics/         # Aggregation & classification (pure)
        ├── aggregator.py  # TemporalWindow, TemporalWindowAggregator
        └── rules.py       # ColorRule, ColorRuleEngine

Usage:

    from isotherm_zone import RegionGeometry, TemporalWindow, ColorRuleEngine
    from isotherm_zone import default_rules, window_mean

    geometry = RegionGeometry.from_points([(22.5, 88.3), (22.6, 88.3), (22.6, 88.4)])
    value = window_mean([8, 12, 30], TemporalWindow(0, 2))
    color = ColorRuleEngine.classify(value, default_rules())
"""

# Geometry Layer (immutable, stateless)
from isotherm_zone.geometry.shapes import (
    BoundingBox,
    InvalidGeometryError,
    RegionGeometry,
)

# Drawing Layer (stateful)
from isotherm_zone.drawing.controller import DrawingState, RegionDrawingController
from isotherm_zone.drawing.timer import CancelableTimer, LoopScheduler

# Analytics Layer (pure)
from isotherm_zone.analytics.aggregator import (
    TemporalWindow,
    TemporalWindowAggregator,
    is_defined,
    window_mean,
)
from isotherm_zone.analytics.rules import (
    DEFAULT_COLOR,
    ColorRule,
    ColorRuleEngine,
    RuleOperator,
    default_rules,
)

__all__ = [
    # Geometry
    "BoundingBox",
    "InvalidGeometryError",
    "RegionGeometry",
    # Drawing
    "DrawingState",
    "RegionDrawingController",
    "CancelableTimer",
    "LoopScheduler",
    # Analytics
    "TemporalWindow",
    "TemporalWindowAggregator",
    "is_defined",
    "window_mean",
    "DEFAULT_COLOR",
    "ColorRule",
    "ColorRuleEngine",
    "RuleOperator",
    "default_rules",
]

__version__ = "1.0.0"
