"""Parse stored rule payloads into typed conditions and actions.

Two persisted shapes are accepted for each payload:

- list form: ``conditions: [{field, operator, value}, ...]`` and
  ``actions: [{type, value}, ...]``; condition lists may nest
  ``{"all": [...]}`` / ``{"any": [...]}`` groups.
- mapping form: ``{"patient_age": {"min": 60}, "patient_gender": "Female"}``
  and ``{"set_coverage_percent": 90}``.
"""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any

from .models import (
    ApplyDiscount,
    BusinessRule,
    Condition,
    ConditionGroup,
    ConditionNode,
    DISCOUNT_RULE_TYPES,
    ParsedRule,
    PaymentCeiling,
    RuleAction,
    RuleConfigurationError,
    RuleType,
    SetCoveragePercent,
    SetDeductible,
    SupplementaryTerms,
)

PAYMENT_LIMIT_TARGETS = frozenset({"insurer", "patient", "service_amount"})

ACTION_ALIASES = {
    "set_coverage_percent": "coverage_percent",
    "set_supplementary_coverage_percent": "supplementary_coverage_percent",
    "set_deductible": "deductible",
    "validate_payment_limit": "payment_limit",
    "set_payment_limit": "payment_limit",
    "set_max_payment": "max_payment",
    "set_supplementary_applicable": "supplementary_applicable",
    "apply_discount": "discount",
    "set_discount_percent": "discount",
}

ALLOWED_ACTIONS: dict[RuleType, frozenset[str]] = {
    RuleType.COVERAGE_PERCENT: frozenset({"coverage_percent"}),
    RuleType.DEDUCTIBLE: frozenset({"deductible"}),
    RuleType.PAYMENT_LIMIT: frozenset({"payment_limit", "max_payment"}),
    RuleType.SUPPLEMENTARY_INSURANCE: frozenset(
        {"coverage_percent", "supplementary_coverage_percent", "max_payment", "supplementary_applicable"}
    ),
    RuleType.CUSTOM_RULE: frozenset(
        {
            "coverage_percent",
            "supplementary_coverage_percent",
            "deductible",
            "payment_limit",
            "supplementary_applicable",
            "discount",
        }
    ),
}
for _discount_type in DISCOUNT_RULE_TYPES:
    ALLOWED_ACTIONS[_discount_type] = frozenset({"discount"})


MAX_CONDITION_DEPTH = 32


def _decode(rule: BusinessRule, payload: Any, label: str) -> Any:
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RuleConfigurationError(rule.rule_id, f"{label} is not valid UTF-8") from e
    if isinstance(payload, str):
        if not payload.strip():
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise RuleConfigurationError(rule.rule_id, f"{label} is not valid JSON: {e.msg}") from e
        except RecursionError as e:
            raise RuleConfigurationError(rule.rule_id, f"{label} is nested too deeply") from e
    return payload


def _decimal(rule: BusinessRule, value: Any, label: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise RuleConfigurationError(rule.rule_id, f"{label} must be a number, got {value!r}")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise RuleConfigurationError(rule.rule_id, f"{label} must be a number, got {value!r}") from e
    if not number.is_finite():
        raise RuleConfigurationError(rule.rule_id, f"{label} must be finite, got {value!r}")
    return number


def _percent(rule: BusinessRule, value: Any, label: str) -> Decimal:
    number = _decimal(rule, value, label)
    if number < 0 or number > 100:
        raise RuleConfigurationError(rule.rule_id, f"{label} must be between 0 and 100, got {number}")
    return number


def _amount(rule: BusinessRule, value: Any, label: str) -> Decimal:
    number = _decimal(rule, value, label)
    if number < 0:
        raise RuleConfigurationError(rule.rule_id, f"{label} cannot be negative, got {number}")
    return number


def _boolean(rule: BusinessRule, value: Any, label: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    raise RuleConfigurationError(rule.rule_id, f"{label} must be a boolean, got {value!r}")


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

_LEGACY_BOUND_OPERATORS = {
    "min": "greater_than_or_equal",
    "max": "less_than_or_equal",
    "equals": "equals",
}


def _parse_legacy_mapping(rule: BusinessRule, mapping: dict[str, Any]) -> list[ConditionNode]:
    nodes: list[ConditionNode] = []
    for field_name, expected in mapping.items():
        if isinstance(expected, dict):
            unknown = set(expected) - set(_LEGACY_BOUND_OPERATORS)
            if unknown or not expected:
                raise RuleConfigurationError(
                    rule.rule_id, f"unsupported bounds for {field_name}: {sorted(unknown) or 'empty'}"
                )
            for key, bound in expected.items():
                nodes.append(Condition(str(field_name).lower(), _LEGACY_BOUND_OPERATORS[key], bound))
        else:
            nodes.append(Condition(str(field_name).lower(), "equals", expected))
    return nodes


def _parse_node(rule: BusinessRule, raw: Any, depth: int = 0) -> ConditionNode:
    if depth > MAX_CONDITION_DEPTH:
        raise RuleConfigurationError(
            rule.rule_id, f"conditions are nested deeper than {MAX_CONDITION_DEPTH} levels"
        )
    if isinstance(raw, list):
        return ConditionGroup("all", tuple(_parse_node(rule, item, depth + 1) for item in raw))
    if not isinstance(raw, dict):
        raise RuleConfigurationError(rule.rule_id, f"condition must be an object, got {type(raw).__name__}")

    group_keys = {"all", "any"} & set(raw)
    if group_keys:
        if len(raw) != 1:
            raise RuleConfigurationError(rule.rule_id, "condition group must contain only 'all' or 'any'")
        mode = group_keys.pop()
        children = raw[mode]
        if not isinstance(children, list):
            raise RuleConfigurationError(rule.rule_id, f"'{mode}' group must be a list")
        return ConditionGroup(mode, tuple(_parse_node(rule, item, depth + 1) for item in children))

    if "field" in raw:
        if "operator" not in raw or "value" not in raw:
            raise RuleConfigurationError(rule.rule_id, "condition requires field, operator and value")
        return Condition(
            field=str(raw["field"]).strip().lower(),
            operator=str(raw["operator"]).strip().lower(),
            value=raw["value"],
        )

    return ConditionGroup("all", tuple(_parse_legacy_mapping(rule, raw)))


def parse_conditions(rule: BusinessRule) -> ConditionGroup:
    raw = _decode(rule, rule.conditions, "conditions")
    if raw is None or raw == [] or raw == {}:
        return ConditionGroup("all", ())
    node = _parse_node(rule, raw)
    if isinstance(node, ConditionGroup):
        return node
    return ConditionGroup("all", (node,))


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def _action_items(rule: BusinessRule, raw: Any) -> list[dict[str, Any]]:
    if isinstance(raw, list):
        items = []
        for item in raw:
            if not isinstance(item, dict) or "type" not in item:
                raise RuleConfigurationError(rule.rule_id, "each action requires a 'type'")
            items.append(item)
        return items
    if isinstance(raw, dict):
        return [{"type": key, "value": value} for key, value in raw.items()]
    raise RuleConfigurationError(rule.rule_id, f"actions must be a list or object, got {type(raw).__name__}")


def _build_action(rule: BusinessRule, kind: str, item: dict[str, Any]) -> RuleAction:
    if "value" not in item:
        raise RuleConfigurationError(rule.rule_id, f"action '{item['type']}' requires a value")
    value = item["value"]
    supplementary_context = rule.rule_type == RuleType.SUPPLEMENTARY_INSURANCE

    if kind == "coverage_percent" and not supplementary_context:
        return SetCoveragePercent(_percent(rule, value, "coverage percent"))
    if kind in ("coverage_percent", "supplementary_coverage_percent"):
        return SupplementaryTerms(coverage_percent=_percent(rule, value, "supplementary coverage percent"))
    if kind == "deductible":
        return SetDeductible(_amount(rule, value, "deductible"))
    if kind == "max_payment" and supplementary_context:
        return SupplementaryTerms(max_payment=_amount(rule, value, "max payment"))
    if kind in ("payment_limit", "max_payment"):
        applies_to = str(item.get("applies_to", "insurer")).strip().lower()
        if applies_to not in PAYMENT_LIMIT_TARGETS:
            raise RuleConfigurationError(rule.rule_id, f"unknown payment limit target: {applies_to}")
        return PaymentCeiling(limit=_amount(rule, value, "payment limit"), applies_to=applies_to)
    if kind == "supplementary_applicable":
        return SupplementaryTerms(applicable=_boolean(rule, value, "supplementary applicable"))
    if kind == "discount":
        return ApplyDiscount(_percent(rule, value, "discount percent"))
    raise RuleConfigurationError(rule.rule_id, f"unsupported action: {item['type']}")


def _merge_supplementary(actions: list[RuleAction]) -> list[RuleAction]:
    """Fold all supplementary terms of one rule into a single action."""
    terms = [a for a in actions if isinstance(a, SupplementaryTerms)]
    if len(terms) <= 1:
        return actions
    merged = SupplementaryTerms(
        coverage_percent=next((t.coverage_percent for t in terms if t.coverage_percent is not None), None),
        max_payment=next((t.max_payment for t in terms if t.max_payment is not None), None),
        applicable=next((t.applicable for t in terms if t.applicable is not None), None),
    )
    others = [a for a in actions if not isinstance(a, SupplementaryTerms)]
    return [*others, merged]


def parse_actions(rule: BusinessRule) -> tuple[RuleAction, ...]:
    raw = _decode(rule, rule.actions, "actions")
    if not raw:
        raise RuleConfigurationError(rule.rule_id, "rule has no actions")

    allowed = ALLOWED_ACTIONS[rule.rule_type]
    actions: list[RuleAction] = []
    for item in _action_items(rule, raw):
        action_type = str(item["type"]).strip().lower()
        kind = ACTION_ALIASES.get(action_type)
        if kind is None:
            raise RuleConfigurationError(rule.rule_id, f"unsupported action: {item['type']}")
        if kind not in allowed:
            raise RuleConfigurationError(
                rule.rule_id, f"action '{action_type}' is not valid for {rule.rule_type.value} rules"
            )
        actions.append(_build_action(rule, kind, item))
    return tuple(_merge_supplementary(actions))


def parse_rule(rule: BusinessRule) -> ParsedRule:
    """Parse a stored rule.

    Raises:
        RuleConfigurationError: conditions or actions are malformed
    """
    return ParsedRule(rule=rule, condition=parse_conditions(rule), actions=parse_actions(rule))
