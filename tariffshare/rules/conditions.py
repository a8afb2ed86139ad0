"""Rule condition evaluation against a calculation context.

Evaluation never raises: unknown fields, unknown operators, missing
context values and malformed literals all evaluate to False so that one
badly configured rule cannot abort the evaluation of others.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

from .models import CalculationContext, Condition, ConditionGroup, ConditionNode

logger = logging.getLogger(__name__)

GENDER_ALIASES = {
    "m": "male",
    "male": "male",
    "man": "male",
    "f": "female",
    "female": "female",
    "woman": "female",
}

FieldGetter = Callable[[CalculationContext], Any]

FIELD_GETTERS: dict[str, FieldGetter] = {
    "service_amount": lambda ctx: ctx.service.amount,
    "service_id": lambda ctx: ctx.service.service_id,
    "service_category": lambda ctx: ctx.service.category_id,
    "patient_age": lambda ctx: ctx.patient_age,
    "patient_gender": lambda ctx: _normalize_gender(ctx.patient.gender),
    "insurance_plan": lambda ctx: ctx.plan.plan_id,
    "plan_coverage_percent": lambda ctx: ctx.plan.coverage_percent,
    "plan_deductible": lambda ctx: ctx.plan.deductible,
}

SUPPORTED_FIELDS = frozenset(FIELD_GETTERS)
SUPPORTED_OPERATORS = frozenset(
    {
        "equals",
        "not_equals",
        "greater_than",
        "greater_than_or_equal",
        "less_than",
        "less_than_or_equal",
        "between",
        "in",
        "not_in",
    }
)


def _normalize_gender(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip().lower()
    return GENDER_ALIASES.get(text, text)


def _as_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _matches(actual: Any, expected: Any, field: str) -> bool:
    """Equality with numeric comparison where both sides are numbers."""
    actual_num = _as_decimal(actual)
    expected_num = _as_decimal(expected)
    if actual_num is not None and expected_num is not None:
        return actual_num == expected_num
    if field == "patient_gender":
        return actual == _normalize_gender(expected)
    return str(actual).strip().lower() == str(expected).strip().lower()


def _as_list(value: Any) -> list[Any] | None:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return None


def _bounds(value: Any) -> tuple[Decimal | None, Decimal | None] | None:
    """Parse a ``between`` literal: "min,max", [min, max] or {min, max}."""
    if isinstance(value, dict):
        low = _as_decimal(value.get("min")) if value.get("min") is not None else None
        high = _as_decimal(value.get("max")) if value.get("max") is not None else None
        if (value.get("min") is not None and low is None) or (
            value.get("max") is not None and high is None
        ):
            return None
        if low is None and high is None:
            return None
        return low, high
    parts = _as_list(value)
    if not parts or len(parts) != 2:
        return None
    low, high = _as_decimal(parts[0]), _as_decimal(parts[1])
    if low is None or high is None:
        return None
    return low, high


def _compare(actual: Any, expected: Any, predicate: Callable[[Decimal, Decimal], bool]) -> bool:
    actual_num = _as_decimal(actual)
    expected_num = _as_decimal(expected)
    if actual_num is None or expected_num is None:
        return False
    return predicate(actual_num, expected_num)


def evaluate_condition(condition: Condition, context: CalculationContext) -> bool:
    """Evaluate a single ``{field, operator, value}`` leaf."""
    getter = FIELD_GETTERS.get(condition.field)
    if getter is None:
        logger.debug(f"Unknown condition field: {condition.field}")
        return False

    actual = getter(context)
    if actual is None:
        return False

    operator = condition.operator
    expected = condition.value

    if operator == "equals":
        return _matches(actual, expected, condition.field)
    if operator == "not_equals":
        return not _matches(actual, expected, condition.field)
    if operator == "greater_than":
        return _compare(actual, expected, lambda a, b: a > b)
    if operator == "greater_than_or_equal":
        return _compare(actual, expected, lambda a, b: a >= b)
    if operator == "less_than":
        return _compare(actual, expected, lambda a, b: a < b)
    if operator == "less_than_or_equal":
        return _compare(actual, expected, lambda a, b: a <= b)
    if operator == "between":
        bounds = _bounds(expected)
        actual_num = _as_decimal(actual)
        if bounds is None or actual_num is None:
            return False
        low, high = bounds
        if low is not None and actual_num < low:
            return False
        if high is not None and actual_num > high:
            return False
        return True
    if operator in ("in", "not_in"):
        options = _as_list(expected)
        if options is None:
            return False
        found = any(_matches(actual, option, condition.field) for option in options)
        return found if operator == "in" else not found

    logger.debug(f"Unknown condition operator: {operator}")
    return False


def evaluate(node: ConditionNode, context: CalculationContext) -> bool:
    """Evaluate a condition tree. An empty ``all`` group is always true."""
    if isinstance(node, Condition):
        return evaluate_condition(node, context)
    if isinstance(node, ConditionGroup):
        results = (evaluate(child, context) for child in node.children)
        if node.mode == "any":
            return any(results)
        if node.mode == "all":
            return all(results)
    return False
