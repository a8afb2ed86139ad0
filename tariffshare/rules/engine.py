"""Business rule engine.

For every registered rule type the engine fetches the active rules,
orders them by priority (lower number first, ties by rule id), parses
them into typed form, evaluates their conditions and applies the actions
of matching rules to a running set of effective parameters.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from tariffshare.calculator.rounding import to_decimal

from . import conditions
from .models import (
    AppliedPaymentCeiling,
    ApplyDiscount,
    BusinessRule,
    CalculationContext,
    EffectiveParameters,
    ParsedRule,
    PaymentCeiling,
    RuleAction,
    RuleConfigurationError,
    RuleType,
    SetCoveragePercent,
    SetDeductible,
    SupplementaryTerms,
)
from .parser import parse_rule
from .registry import ApplicationMode, RuleTypeRegistry, default_registry

if TYPE_CHECKING:
    from tariffshare.repository.base import AsyncRuleRepository, RuleRepository

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
HUNDRED = Decimal(100)

RulesByType = dict[RuleType, list[BusinessRule]]


def base_parameters(context: CalculationContext) -> EffectiveParameters:
    """Effective parameters when no rule matches."""
    params = EffectiveParameters(
        coverage_percent=to_decimal(context.plan.coverage_percent),
        deductible=to_decimal(context.plan.deductible),
        supplementary_coverage_percent=context.supplementary_coverage_percent,
        supplementary_max_payment=context.supplementary_max_payment,
        supplementary_applicable=context.supplementary_coverage_percent is not None,
    )
    if not context.plan.is_active:
        params.coverage_percent = ZERO
        params.deductible = ZERO
        params.warnings.append(f"Insurance plan {context.plan.plan_id} is inactive; no coverage applied")
    return params


def order_rules(rules: list[BusinessRule]) -> list[BusinessRule]:
    return sorted(rules, key=lambda rule: (rule.priority, rule.rule_id))


def _compose_discount(current: Decimal, extra: Decimal) -> Decimal:
    remaining = (HUNDRED - current) * (HUNDRED - extra) / HUNDRED
    return min(HUNDRED, max(ZERO, HUNDRED - remaining))


def apply_action(params: EffectiveParameters, action: RuleAction, rule_name: str) -> None:
    """Fold one typed action into the running parameters."""
    if isinstance(action, SetCoveragePercent):
        params.coverage_percent = action.percent
    elif isinstance(action, SetDeductible):
        params.deductible = action.amount
    elif isinstance(action, PaymentCeiling):
        params.payment_ceilings.append(
            AppliedPaymentCeiling(rule_name=rule_name, limit=action.limit, applies_to=action.applies_to)
        )
    elif isinstance(action, SupplementaryTerms):
        if action.coverage_percent is not None:
            params.supplementary_coverage_percent = action.coverage_percent
        if action.max_payment is not None:
            params.supplementary_max_payment = action.max_payment
        if action.applicable is not None:
            params.supplementary_applicable = action.applicable
        elif action.coverage_percent is not None:
            params.supplementary_applicable = True
    elif isinstance(action, ApplyDiscount):
        params.discount_percent = _compose_discount(params.discount_percent, action.percent)
    else:
        raise TypeError(f"Unsupported rule action: {type(action).__name__}")


class BusinessRuleEngine:
    """Resolves effective calculation parameters from business rules."""

    def __init__(
        self,
        repository: RuleRepository | None = None,
        async_repository: AsyncRuleRepository | None = None,
        registry: RuleTypeRegistry | None = None,
    ) -> None:
        self.repository = repository
        self.async_repository = async_repository
        self.registry = registry or default_registry

    # -- fetch ---------------------------------------------------------------

    def fetch_rules(self, context: CalculationContext) -> RulesByType:
        """Fetch rules for every registered type.

        Raises:
            RuleStoreUnavailable: If the store cannot be read
        """
        if self.repository is None:
            raise RuntimeError("BusinessRuleEngine has no synchronous rule repository")
        return {
            handler.rule_type: self.repository.get_active_rules(
                handler.rule_type,
                context.plan.plan_id,
                context.service.category_id,
                context.calculation_date,
            )
            for handler in self.registry.handlers()
        }

    async def fetch_rules_async(self, context: CalculationContext) -> RulesByType:
        if self.async_repository is None:
            raise RuntimeError("BusinessRuleEngine has no asynchronous rule repository")
        fetched: RulesByType = {}
        for handler in self.registry.handlers():
            fetched[handler.rule_type] = await self.async_repository.get_active_rules(
                handler.rule_type,
                context.plan.plan_id,
                context.service.category_id,
                context.calculation_date,
            )
        return fetched

    # -- evaluate ------------------------------------------------------------

    def evaluate(self, context: CalculationContext) -> EffectiveParameters:
        return self.resolve(context, self.fetch_rules(context))

    async def evaluate_async(self, context: CalculationContext) -> EffectiveParameters:
        return self.resolve(context, await self.fetch_rules_async(context))

    def _applicable(self, rule: BusinessRule, rule_type: RuleType, context: CalculationContext) -> bool:
        return (
            rule.rule_type == rule_type
            and rule.is_active
            and rule.in_window(context.calculation_date)
            and rule.in_scope(
                plan_id=context.plan.plan_id,
                category_id=context.service.category_id,
                service_id=context.service.service_id,
            )
        )

    def _parse(self, rule: BusinessRule, params: EffectiveParameters) -> ParsedRule | None:
        try:
            return parse_rule(rule)
        except RuleConfigurationError as e:
            logger.warning(f"Ignoring misconfigured business rule '{rule.name}': {e}")
            params.warnings.append(f"Rule {rule.rule_id} ({rule.name}) ignored: {e}")
            return None

    def resolve(self, context: CalculationContext, rules_by_type: RulesByType) -> EffectiveParameters:
        """Apply already-fetched rules to the context's base values."""
        params = base_parameters(context)

        for handler in self.registry.handlers():
            candidates = [
                rule
                for rule in rules_by_type.get(handler.rule_type, [])
                if self._applicable(rule, handler.rule_type, context)
            ]
            for rule in order_rules(candidates):
                parsed = self._parse(rule, params)
                if parsed is None or not conditions.evaluate(parsed.condition, context):
                    continue

                for action in parsed.actions:
                    apply_action(params, action, rule.name)
                params.applied_rules.append(parsed.label)
                logger.info(
                    f"Applied business rule '{rule.name}' ({handler.rule_type.value}, priority {rule.priority})"
                )

                if handler.mode == ApplicationMode.FIRST_MATCH:
                    break

        params.coverage_percent = min(HUNDRED, max(ZERO, params.coverage_percent))
        params.deductible = max(ZERO, params.deductible)
        return params
