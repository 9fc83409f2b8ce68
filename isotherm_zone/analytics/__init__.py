"""
Analytics Layer
===============

Bounded Context: Series aggregation and classification.

Responsibilities:
- Reduce a series slice to a scalar (TemporalWindowAggregator)
- Map a scalar to a color through ordered rules (ColorRuleEngine)

Design Philosophy:
- Pure functions over immutable inputs
- Undefined aggregates are values (NaN), not errors
"""

from isotherm_zone.analytics.aggregator import (
    DEFAULT_HORIZON,
    TemporalWindow,
    TemporalWindowAggregator,
    is_defined,
    window_mean,
)
from isotherm_zone.analytics.rules import (
    DEFAULT_COLOR,
    EQUALITY_TOLERANCE,
    ColorRule,
    ColorRuleEngine,
    RuleOperator,
    default_rules,
    normalize_color,
    parse_rules,
    rules_to_dicts,
)

__all__ = [
    "DEFAULT_HORIZON",
    "TemporalWindow",
    "TemporalWindowAggregator",
    "is_defined",
    "window_mean",
    "DEFAULT_COLOR",
    "EQUALITY_TOLERANCE",
    "ColorRule",
    "ColorRuleEngine",
    "RuleOperator",
    "default_rules",
    "normalize_color",
    "parse_rules",
    "rules_to_dicts",
]
