"""Rule catalog and validation routes.

These let the administration tooling discover which actions each rule
type accepts and check a rule definition before saving it.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter

from tariffshare.repository.files import rule_from_mapping
from tariffshare.rules import RuleConfigurationError, default_registry, parse_rule
from tariffshare.rules.models import ConditionGroup, ConditionNode, RuleAction
from tariffshare.rules.parser import ALLOWED_ACTIONS
from tariffshare.schemas import RuleDefinition, RuleTypeInfo, RuleValidationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rules", tags=["rules"])


def _count_conditions(node: ConditionNode) -> int:
    if isinstance(node, ConditionGroup):
        return sum(_count_conditions(child) for child in node.children)
    return 1


def _describe_action(action: RuleAction) -> dict[str, Any]:
    described: dict[str, Any] = {"action": type(action).__name__}
    for key, value in asdict(action).items():
        if value is None:
            continue
        described[key] = value if isinstance(value, (bool, str)) else str(value)
    return described


@router.get("/types", response_model=list[RuleTypeInfo])
async def list_rule_types():
    """List rule types in evaluation order with the actions each accepts."""
    return [
        RuleTypeInfo(
            rule_type=handler.rule_type.value,
            application_mode=handler.mode.value,
            description=handler.description,
            allowed_actions=sorted(ALLOWED_ACTIONS[handler.rule_type]),
        )
        for handler in default_registry.handlers()
    ]


@router.post("/validate", response_model=RuleValidationResponse)
async def validate_rule(definition: RuleDefinition):
    """Parse a rule definition and report configuration errors."""
    try:
        rule = rule_from_mapping(definition.model_dump())
    except ValueError as e:
        return RuleValidationResponse(valid=False, errors=[str(e)])

    try:
        parsed = parse_rule(rule)
    except RuleConfigurationError as e:
        logger.info(f"Rule definition {definition.id} failed validation: {e}")
        return RuleValidationResponse(valid=False, rule_type=rule.rule_type.value, errors=[str(e)])

    return RuleValidationResponse(
        valid=True,
        rule_type=rule.rule_type.value,
        condition_count=_count_conditions(parsed.condition),
        actions=[_describe_action(action) for action in parsed.actions],
    )
