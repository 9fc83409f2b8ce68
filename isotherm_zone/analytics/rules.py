"""
Color Rule Module
=================

Ordered threshold rules mapping a scalar to a display color.

Design:
- ColorRule is an immutable value object (frozen dataclass)
- ColorRuleEngine is stateless; rules are passed in as an immutable snapshot
- First matching rule wins; order is significant
- Colors validated and normalized through supervision.Color
"""

import math
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import supervision as sv

DEFAULT_COLOR = "#808080"
EQUALITY_TOLERANCE = 0.1


class RuleOperator(str, Enum):
    """Comparison operator of a color rule."""
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    EQ = "="


def normalize_color(color: str) -> str:
    """
    Normalize a hex color to lowercase ``#rrggbb``.

    Raises:
        ValueError: If color is not a valid hex string
    """
    try:
        return sv.Color.from_hex(color).as_hex()
    except (AttributeError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid color: {color!r}") from e


def _new_rule_id() -> str:
    return f"rule_{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class ColorRule:
    """
    Single threshold test and the color assigned when it matches.

    Attributes:
        rule_id: Rule identifier
        operator: Comparison operator
        threshold: Threshold in the metric's native unit
        color: Hex color (normalized to lowercase #rrggbb)

    Example:
        >>> rule = ColorRule(rule_id="cold", operator=RuleOperator.LT,
        ...                  threshold=10, color="#0066CC")
        >>> rule.color
        '#0066cc'
    """

    rule_id: str
    operator: RuleOperator
    threshold: float
    color: str

    def __post_init__(self):
        try:
            operator = RuleOperator(self.operator)
        except ValueError as e:
            raise ValueError(
                f"Invalid operator: {self.operator!r}. "
                f"Must be one of {[op.value for op in RuleOperator]}"
            ) from e

        threshold = float(self.threshold)
        if not math.isfinite(threshold):
            raise ValueError(f"threshold must be finite, got {self.threshold}")

        object.__setattr__(self, 'operator', operator)
        object.__setattr__(self, 'threshold', threshold)
        object.__setattr__(self, 'color', normalize_color(self.color))

    @classmethod
    def create(cls, operator: str, threshold: float, color: str) -> 'ColorRule':
        """Create a rule with a generated id."""
        return cls(rule_id=_new_rule_id(), operator=operator, threshold=threshold, color=color)

    def with_changes(self, **changes) -> 'ColorRule':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rule_id': self.rule_id,
            'operator': self.operator.value,
            'threshold': self.threshold,
            'color': self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ColorRule':
        """
        Deserialize from dict.

        Accepts ``value`` as an alias of ``threshold``; ``rule_id`` is
        generated when missing.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            threshold = data['threshold'] if 'threshold' in data else data['value']
            return cls(
                rule_id=str(data.get('rule_id') or _new_rule_id()),
                operator=data['operator'],
                threshold=threshold,
                color=data['color'],
            )
        except KeyError as e:
            raise ValueError(f"Missing required ColorRule field: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid ColorRule data: {e}")


def parse_rules(data: Iterable[Dict[str, Any]]) -> Tuple[ColorRule, ...]:
    """Build an ordered rule tuple from a list of dicts."""
    return tuple(ColorRule.from_dict(item) for item in data)


def default_rules() -> Tuple[ColorRule, ...]:
    """
    Default rule set assigned to new regions (first match wins).

    rule2 (>= 10) sits before the warmer rules, so 25 and 40 classify as
    #00cc66; reorder warmest-first for banded colors.
    """
    return (
        ColorRule(rule_id="rule1", operator=RuleOperator.LT, threshold=10, color="#0066cc"),
        ColorRule(rule_id="rule2", operator=RuleOperator.GE, threshold=10, color="#00cc66"),
        ColorRule(rule_id="rule3", operator=RuleOperator.GE, threshold=25, color="#cc6600"),
        ColorRule(rule_id="rule4", operator=RuleOperator.GE, threshold=35, color="#cc0000"),
    )


class ColorRuleEngine:
    """
    Stateless classifier: scalar + ordered rules -> color.

    All methods are static. Same value and same rule content/order always
    yield the same color.
    """

    @staticmethod
    def matches(rule: ColorRule, value: float) -> bool:
        """
        Test one rule against a value.

        ``=`` matches within EQUALITY_TOLERANCE; other operators are exact.
        """
        if rule.operator is RuleOperator.LT:
            return value < rule.threshold
        if rule.operator is RuleOperator.GT:
            return value > rule.threshold
        if rule.operator is RuleOperator.LE:
            return value <= rule.threshold
        if rule.operator is RuleOperator.GE:
            return value >= rule.threshold
        return abs(value - rule.threshold) < EQUALITY_TOLERANCE

    @staticmethod
    def first_match(value: Optional[float], rules: Iterable[ColorRule]) -> Optional[ColorRule]:
        """Return the first matching rule, or None (also for undefined values)."""
        if value is None or math.isnan(value):
            return None
        for rule in tuple(rules):
            if ColorRuleEngine.matches(rule, value):
                return rule
        return None

    @staticmethod
    def classify(
        value: Optional[float],
        rules: Iterable[ColorRule],
        default: str = DEFAULT_COLOR
    ) -> str:
        """
        Map a scalar to a display color.

        Args:
            value: Aggregated metric value (None/NaN means undefined)
            rules: Ordered rules, evaluated first to last
            default: Color when nothing matches

        Returns:
            Hex color string
        """
        rule = ColorRuleEngine.first_match(value, rules)
        return rule.color if rule is not None else default


def rules_to_dicts(rules: Iterable[ColorRule]) -> List[Dict[str, Any]]:
    return [rule.to_dict() for rule in rules]
