"""Pytest configuration and fixtures."""

from __future__ import annotations

import atexit
import os
import tempfile
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any

import pytest

# Set test database path before importing the app
_temp_db = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_temp_db_path = _temp_db.name
_temp_db.close()
os.environ["DB_PATH"] = _temp_db_path
os.environ["RULES_FILE"] = ""
os.environ.pop("RULE_CACHE_TTL_SECONDS", None)
os.environ.pop("RULE_STORE_FAILURE_POLICY", None)

from tariffshare.rules.models import (  # noqa: E402
    BusinessRule,
    CalculationContext,
    InsurancePlanInfo,
    PatientInfo,
    RuleType,
    ServiceInfo,
)

CALCULATION_DATE = date(2025, 6, 1)


def _cleanup_test_db() -> None:
    """Clean up temporary test database file."""
    if os.path.exists(_temp_db_path):
        try:
            os.unlink(_temp_db_path)
        except OSError:
            pass  # File may already be deleted or locked


atexit.register(_cleanup_test_db)


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_db() -> None:
    """Pytest fixture to ensure test database cleanup after session."""
    yield
    _cleanup_test_db()


@pytest.fixture
def test_db_path() -> str:
    return _temp_db_path


@pytest.fixture
def make_context() -> Callable[..., CalculationContext]:
    """Factory for calculation contexts with sensible outpatient defaults."""

    def _make(
        amount: int | Decimal = 1_000_000,
        coverage_percent: int | Decimal = 70,
        deductible: int | Decimal = 0,
        age: int | None = 40,
        gender: str | None = "male",
        birth_date: date | None = None,
        service_id: int = 101,
        category_id: int | None = 3,
        plan_id: int = 1,
        plan_active: bool = True,
        calculation_date: date = CALCULATION_DATE,
        patient_share_percent: int | Decimal | None = None,
        insurer_share_percent: int | Decimal | None = None,
        supplementary_coverage_percent: int | Decimal | None = None,
        supplementary_max_payment: int | Decimal | None = None,
    ) -> CalculationContext:
        def _dec(value: Any) -> Decimal | None:
            return None if value is None else Decimal(value)

        return CalculationContext(
            patient=PatientInfo(age=age, gender=gender, birth_date=birth_date),
            service=ServiceInfo(service_id=service_id, amount=Decimal(amount), category_id=category_id),
            plan=InsurancePlanInfo(
                plan_id=plan_id,
                coverage_percent=Decimal(coverage_percent),
                deductible=Decimal(deductible),
                is_active=plan_active,
            ),
            calculation_date=calculation_date,
            patient_share_percent=_dec(patient_share_percent),
            insurer_share_percent=_dec(insurer_share_percent),
            supplementary_coverage_percent=_dec(supplementary_coverage_percent),
            supplementary_max_payment=_dec(supplementary_max_payment),
        )

    return _make


@pytest.fixture
def make_rule() -> Callable[..., BusinessRule]:
    """Factory for stored business rules."""

    def _make(
        rule_id: int,
        rule_type: RuleType,
        actions: Any,
        conditions: Any = None,
        priority: int = 50,
        name: str | None = None,
        **kwargs: Any,
    ) -> BusinessRule:
        return BusinessRule(
            rule_id=rule_id,
            name=name or f"rule-{rule_id}",
            rule_type=rule_type,
            priority=priority,
            conditions=conditions,
            actions=actions,
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_rule_definitions() -> list[dict[str, Any]]:
    """Rule definitions as they appear in a YAML/JSON rule file."""
    return [
        {
            "id": 1,
            "name": "Senior coverage",
            "rule_type": "CoveragePercent",
            "priority": 1,
            "conditions": [{"field": "patient_age", "operator": "greater_than_or_equal", "value": 65}],
            "actions": [{"type": "set_coverage_percent", "value": 90}],
        },
        {
            "id": 2,
            "name": "Insurer ceiling",
            "rule_type": "PaymentLimit",
            "priority": 10,
            "actions": [{"type": "validate_payment_limit", "value": 10_000_000}],
        },
        {
            "id": 3,
            "name": "Pediatric discount",
            "rule_type": "AgeBasedDiscount",
            "conditions": {"patient_age": {"max": 12}},
            "actions": {"apply_discount": 10},
            "start_date": "2025-01-01",
            "end_date": "2025-12-31",
        },
    ]
