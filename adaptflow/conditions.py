"""Evaluation of step entry conditions."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .contracts import Condition, ConditionOperator

logger = logging.getLogger(__name__)


def get_nested_value(data: Any, path: str) -> Any:
    """Resolve a dotted ``path`` inside ``data``; missing segments yield ``None``."""
    current = data
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, (list, tuple)) and key.lstrip("-").isdigit():
            index = int(key)
            current = current[index] if -len(current) <= index < len(current) else None
        else:
            return None
    return current


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _stringify(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _strict_equals(left: Any, right: Any) -> bool:
    # Booleans never equal numbers
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def evaluate_condition(condition: Condition, data: Any) -> bool:
    value = get_nested_value(data, condition.field)
    op = condition.operator

    if op == ConditionOperator.EQUALS:
        return _strict_equals(value, condition.value)
    if op == ConditionOperator.NOT_EQUALS:
        return not _strict_equals(value, condition.value)
    if op == ConditionOperator.CONTAINS:
        return _stringify(condition.value) in _stringify(value)
    if op == ConditionOperator.NOT_CONTAINS:
        return _stringify(condition.value) not in _stringify(value)
    if op in (ConditionOperator.GREATER, ConditionOperator.LESS):
        left, right = _as_number(value), _as_number(condition.value)
        # Non-numeric comparisons never pass
        if left is None or right is None:
            return False
        return left > right if op == ConditionOperator.GREATER else left < right
    if op == ConditionOperator.EXISTS:
        return value is not None

    logger.warning(f"Unsupported condition operator: {op}")
    return False


def evaluate_conditions(conditions: Iterable[Condition], data: Any) -> bool:
    """Return ``True`` when every condition holds (an empty list always holds)."""
    return all(evaluate_condition(condition, data) for condition in conditions)
