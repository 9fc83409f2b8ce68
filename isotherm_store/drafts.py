"""
Rule Drafts
===========

Uncommitted copy of a region's rule list while it is being edited.

The committed Region keeps its rules untouched until the store commits the
draft; discarding the draft leaves nothing behind.
"""

from typing import List, Optional, Tuple

from isotherm_zone.analytics.rules import DEFAULT_COLOR, ColorRule, RuleOperator


class RuleDraft:
    """
    Editable rule list for one region.

    Usage:
        draft = store.begin_rule_edit(region_id)
        draft.add_rule()
        draft.update_rule(4, threshold=40, color="#ff0000")
        draft.move_rule(4, 0)
        store.commit_rule_edit(region_id)
    """

    def __init__(self, region_id: str, rules: Tuple[ColorRule, ...]):
        self.region_id = region_id
        self._rules: List[ColorRule] = list(rules)

    def __len__(self) -> int:
        return len(self._rules)

    def snapshot(self) -> Tuple[ColorRule, ...]:
        """Immutable copy of the current draft order."""
        return tuple(self._rules)

    def add_rule(
        self,
        operator: str = RuleOperator.GE,
        threshold: float = 0.0,
        color: str = DEFAULT_COLOR,
    ) -> ColorRule:
        """Append a rule (default: >= 0 -> neutral gray)."""
        rule = ColorRule.create(operator=operator, threshold=threshold, color=color)
        self._rules.append(rule)
        return rule

    def update_rule(
        self,
        index: int,
        operator: Optional[str] = None,
        threshold: Optional[float] = None,
        color: Optional[str] = None,
    ) -> ColorRule:
        """
        Replace fields of the rule at index.

        Raises:
            IndexError: If index is out of range
            ValueError: If a new value is invalid
        """
        rule = self._rules[self._check_index(index)]
        changes = {}
        if operator is not None:
            changes['operator'] = operator
        if threshold is not None:
            changes['threshold'] = threshold
        if color is not None:
            changes['color'] = color

        updated = rule.with_changes(**changes)
        self._rules[index] = updated
        return updated

    def remove_rule(self, index: int) -> ColorRule:
        return self._rules.pop(self._check_index(index))

    def move_rule(self, index: int, new_index: int) -> None:
        """Move a rule to a new position (evaluation order)."""
        rule = self._rules.pop(self._check_index(index))
        new_index = max(0, min(new_index, len(self._rules)))
        self._rules.insert(new_index, rule)

    def _check_index(self, index: int) -> int:
        if not 0 <= index < len(self._rules):
            raise IndexError(
                f"Rule index {index} out of range for draft with {len(self._rules)} rules"
            )
        return index

    def __repr__(self) -> str:
        return f"RuleDraft(region_id={self.region_id!r}, rules={len(self._rules)})"
