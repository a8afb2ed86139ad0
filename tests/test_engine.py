"""Tests for the business rule engine."""

from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from tariffshare.repository import (
    AsyncInMemoryRuleRepository,
    InMemoryRuleRepository,
    RuleRepository,
    RuleStoreUnavailable,
)
from tariffshare.rules import BusinessRuleEngine, RuleType, default_registry
from tariffshare.rules.registry import ApplicationMode

SENIOR = [{"field": "patient_age", "operator": "greater_than_or_equal", "value": 65}]


class BrokenRepository(RuleRepository):
    def get_active_rules(self, rule_type, plan_id=None, category_id=None, as_of=None):
        raise RuleStoreUnavailable("connection refused")


def _engine(*rules) -> BusinessRuleEngine:
    return BusinessRuleEngine(repository=InMemoryRuleRepository(rules))


class TestBaseParameters:
    def test_no_rules_uses_plan_values(self, make_context):
        params = _engine().evaluate(make_context(coverage_percent=70, deductible=50_000))

        assert params.coverage_percent == Decimal(70)
        assert params.deductible == Decimal(50_000)
        assert params.discount_percent == Decimal(0)
        assert params.applied_rules == []

    def test_inactive_plan_gives_no_coverage(self, make_context):
        params = _engine().evaluate(make_context(plan_active=False, coverage_percent=70, deductible=1000))

        assert params.coverage_percent == Decimal(0)
        assert params.deductible == Decimal(0)
        assert len(params.warnings) == 1

    def test_context_supplementary_is_applicable(self, make_context):
        params = _engine().evaluate(
            make_context(supplementary_coverage_percent=40, supplementary_max_payment=1000)
        )

        assert params.effective_supplementary_percent == Decimal(40)
        assert params.effective_supplementary_max_payment == Decimal(1000)


class TestRulePriority:
    """Lower priority numbers are evaluated first."""

    def test_priority_one_wins(self, make_context, make_rule):
        engine = _engine(
            make_rule(2, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 50}, SENIOR, priority=5),
            make_rule(1, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 90}, SENIOR, priority=1),
        )

        params = engine.evaluate(make_context(age=70))

        assert params.coverage_percent == Decimal(90)
        assert params.applied_rules == ["CoveragePercent:1:rule-1"]

    def test_ties_broken_by_rule_id(self, make_context, make_rule):
        engine = _engine(
            make_rule(8, RuleType.DEDUCTIBLE, {"set_deductible": 8000}, priority=3),
            make_rule(4, RuleType.DEDUCTIBLE, {"set_deductible": 4000}, priority=3),
        )

        assert engine.evaluate(make_context()).deductible == Decimal(4000)

    def test_non_matching_rule_is_skipped(self, make_context, make_rule):
        engine = _engine(
            make_rule(1, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 90}, SENIOR, priority=1),
            make_rule(2, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 60}, priority=2),
        )

        assert engine.evaluate(make_context(age=30)).coverage_percent == Decimal(60)

    def test_custom_rule_overrides_typed_rules(self, make_context, make_rule):
        engine = _engine(
            make_rule(1, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 80}, priority=1),
            make_rule(2, RuleType.CUSTOM_RULE, [{"type": "set_coverage_percent", "value": 60}], priority=99),
        )

        params = engine.evaluate(make_context())

        assert params.coverage_percent == Decimal(60)
        assert params.applied_rules == ["CoveragePercent:1:rule-1", "CustomRule:2:rule-2"]


class TestMalformedRules:
    def test_malformed_rule_is_ignored(self, make_context, make_rule):
        """Test a broken higher-priority rule does not stop the next one."""
        engine = _engine(
            make_rule(1, RuleType.COVERAGE_PERCENT, "{oops", priority=1),
            make_rule(2, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 85}, priority=2),
        )

        params = engine.evaluate(make_context())

        assert params.coverage_percent == Decimal(85)
        assert params.applied_rules == ["CoveragePercent:2:rule-2"]
        assert any("rule-1" in warning for warning in params.warnings)

    @pytest.mark.parametrize(
        "conditions",
        ["[" * 5000 + "]" * 5000, "[" * 600 + "]" * 600, b"\xff\xfe"],
        ids=["nested-json-5000", "nested-json-600", "invalid-utf8"],
    )
    def test_undecodable_conditions_are_ignored(self, make_context, make_rule, conditions):
        """Test deeply nested or undecodable conditions only disable their own rule."""
        engine = _engine(
            make_rule(1, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 100}, conditions, priority=1),
            make_rule(2, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 85}, priority=2),
        )

        params = engine.evaluate(make_context())

        assert params.coverage_percent == Decimal(85)
        assert params.applied_rules == ["CoveragePercent:2:rule-2"]
        assert any("rule-1" in warning for warning in params.warnings)

    def test_unknown_condition_field_never_matches(self, make_context, make_rule):
        engine = _engine(
            make_rule(
                1,
                RuleType.COVERAGE_PERCENT,
                {"set_coverage_percent": 100},
                [{"field": "blood_type", "operator": "equals", "value": "O+"}],
            )
        )

        assert engine.evaluate(make_context()).coverage_percent == Decimal(70)


class TestAccumulatingRules:
    def test_discounts_compose(self, make_context, make_rule):
        """Test 10% and 20% discounts combine to 28%, not 30%."""
        engine = _engine(
            make_rule(1, RuleType.AGE_BASED_DISCOUNT, {"apply_discount": 10}, SENIOR),
            make_rule(2, RuleType.GENDER_BASED_DISCOUNT, {"apply_discount": 20}, {"patient_gender": "female"}),
        )

        params = engine.evaluate(make_context(age=70, gender="F"))

        assert params.discount_percent == Decimal(28)
        assert len(params.applied_rules) == 2

    def test_payment_ceilings_accumulate(self, make_context, make_rule):
        engine = _engine(
            make_rule(1, RuleType.PAYMENT_LIMIT, [{"type": "validate_payment_limit", "value": 500}]),
            make_rule(
                2,
                RuleType.PAYMENT_LIMIT,
                [{"type": "set_payment_limit", "value": 900, "applies_to": "patient"}],
            ),
        )

        ceilings = engine.evaluate(make_context()).payment_ceilings

        assert [(c.limit, c.applies_to) for c in ceilings] == [
            (Decimal(500), "insurer"),
            (Decimal(900), "patient"),
        ]

    def test_supplementary_rule(self, make_context, make_rule):
        engine = _engine(
            make_rule(
                1,
                RuleType.SUPPLEMENTARY_INSURANCE,
                [{"type": "set_coverage_percent", "value": 50}, {"type": "set_max_payment", "value": 100000}],
            )
        )

        params = engine.evaluate(make_context())

        assert params.effective_supplementary_percent == Decimal(50)
        assert params.effective_supplementary_max_payment == Decimal(100000)

    def test_supplementary_can_be_switched_off(self, make_context, make_rule):
        engine = _engine(
            make_rule(1, RuleType.SUPPLEMENTARY_INSURANCE, {"set_supplementary_applicable": False})
        )

        params = engine.evaluate(make_context(supplementary_coverage_percent=40))

        assert params.effective_supplementary_percent == Decimal(0)


class TestRuleScope:
    def test_rule_for_other_plan_is_ignored(self, make_context, make_rule):
        engine = _engine(make_rule(1, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 95}, insurance_plan_id=2))

        assert engine.evaluate(make_context(plan_id=1)).coverage_percent == Decimal(70)
        assert engine.evaluate(make_context(plan_id=2)).coverage_percent == Decimal(95)

    def test_rule_for_other_service_is_ignored(self, make_context, make_rule):
        engine = _engine(make_rule(1, RuleType.DEDUCTIBLE, {"set_deductible": 0}, service_id=999))

        assert engine.evaluate(make_context(service_id=101, deductible=5000)).deductible == Decimal(5000)

    def test_expired_rule_is_ignored(self, make_context, make_rule):
        engine = _engine(
            make_rule(
                1,
                RuleType.COVERAGE_PERCENT,
                {"set_coverage_percent": 95},
                start_date=date(2024, 1, 1),
                end_date=date(2024, 12, 31),
            )
        )

        assert engine.evaluate(make_context(calculation_date=date(2025, 6, 1))).coverage_percent == Decimal(70)
        assert engine.evaluate(make_context(calculation_date=date(2024, 12, 31))).coverage_percent == Decimal(95)

    def test_inactive_rule_is_ignored(self, make_context, make_rule):
        engine = _engine(make_rule(1, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 95}, is_active=False))

        assert engine.evaluate(make_context()).coverage_percent == Decimal(70)


class TestRuleStore:
    def test_store_failure_propagates(self, make_context):
        engine = BusinessRuleEngine(repository=BrokenRepository())

        with pytest.raises(RuleStoreUnavailable):
            engine.evaluate(make_context())

    def test_missing_repository(self, make_context):
        with pytest.raises(RuntimeError):
            BusinessRuleEngine().evaluate(make_context())

    def test_async_evaluation(self, make_context, make_rule):
        engine = BusinessRuleEngine(
            async_repository=AsyncInMemoryRuleRepository(
                [make_rule(1, RuleType.COVERAGE_PERCENT, {"set_coverage_percent": 90})]
            )
        )

        params = asyncio.run(engine.evaluate_async(make_context()))

        assert params.coverage_percent == Decimal(90)


class TestRegistry:
    def test_evaluation_order(self):
        order = [handler.rule_type for handler in default_registry.handlers()]

        assert order[:3] == [RuleType.COVERAGE_PERCENT, RuleType.DEDUCTIBLE, RuleType.SUPPLEMENTARY_INSURANCE]
        assert order[-2:] == [RuleType.CUSTOM_RULE, RuleType.PAYMENT_LIMIT]
        assert len(order) == len(RuleType)

    def test_application_modes(self):
        assert default_registry.get(RuleType.COVERAGE_PERCENT).mode == ApplicationMode.FIRST_MATCH
        assert default_registry.get(RuleType.AGE_BASED_DISCOUNT).mode == ApplicationMode.ACCUMULATE
