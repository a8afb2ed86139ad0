"""Data models for the business rule engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Union


class RuleConfigurationError(ValueError):
    """Raised when a stored rule's conditions or actions cannot be parsed."""

    def __init__(self, rule_id: Any, message: str):
        super().__init__(f"Rule {rule_id}: {message}")
        self.rule_id = rule_id


class RuleType(str, Enum):
    COVERAGE_PERCENT = "CoveragePercent"
    DEDUCTIBLE = "Deductible"
    PAYMENT_LIMIT = "PaymentLimit"
    SUPPLEMENTARY_INSURANCE = "SupplementaryInsurance"
    AGE_BASED_DISCOUNT = "AgeBasedDiscount"
    GENDER_BASED_DISCOUNT = "GenderBasedDiscount"
    SERVICE_BASED_DISCOUNT = "ServiceBasedDiscount"
    INSURANCE_BASED_DISCOUNT = "InsuranceBasedDiscount"
    CUSTOM_RULE = "CustomRule"


DISCOUNT_RULE_TYPES = frozenset(
    {
        RuleType.AGE_BASED_DISCOUNT,
        RuleType.GENDER_BASED_DISCOUNT,
        RuleType.SERVICE_BASED_DISCOUNT,
        RuleType.INSURANCE_BASED_DISCOUNT,
    }
)


# ---------------------------------------------------------------------------
# Calculation context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatientInfo:
    age: int | None = None
    gender: str | None = None
    birth_date: date | None = None

    def age_on(self, when: date) -> int | None:
        if self.age is not None:
            return self.age
        if self.birth_date is None:
            return None
        had_birthday = (when.month, when.day) >= (self.birth_date.month, self.birth_date.day)
        return when.year - self.birth_date.year - (0 if had_birthday else 1)


@dataclass(frozen=True)
class ServiceInfo:
    service_id: int
    amount: Decimal
    category_id: int | None = None


@dataclass(frozen=True)
class InsurancePlanInfo:
    plan_id: int
    coverage_percent: Decimal = Decimal(0)
    deductible: Decimal = Decimal(0)
    is_active: bool = True


@dataclass(frozen=True)
class CalculationContext:
    """Inputs for one share calculation, resolved by the caller."""

    patient: PatientInfo
    service: ServiceInfo
    plan: InsurancePlanInfo
    calculation_date: date
    patient_share_percent: Decimal | None = None
    insurer_share_percent: Decimal | None = None
    supplementary_coverage_percent: Decimal | None = None
    supplementary_max_payment: Decimal | None = None

    @property
    def patient_age(self) -> int | None:
        return self.patient.age_on(self.calculation_date)

    @property
    def is_manual(self) -> bool:
        return self.patient_share_percent is not None and self.insurer_share_percent is not None


# ---------------------------------------------------------------------------
# Stored rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BusinessRule:
    """A rule as persisted by the administration tooling.

    ``conditions`` and ``actions`` are either JSON text or decoded
    structures; they are parsed into typed form by the engine.
    """

    rule_id: int
    name: str
    rule_type: RuleType
    priority: int = 50
    conditions: Any = None
    actions: Any = None
    is_active: bool = True
    insurance_plan_id: int | None = None
    service_category_id: int | None = None
    service_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = None

    def in_window(self, as_of: date) -> bool:
        if self.start_date is not None and as_of < self.start_date:
            return False
        if self.end_date is not None and as_of > self.end_date:
            return False
        return True

    def in_scope(
        self,
        plan_id: int | None = None,
        category_id: int | None = None,
        service_id: int | None = None,
    ) -> bool:
        if plan_id is not None and self.insurance_plan_id not in (None, plan_id):
            return False
        if category_id is not None and self.service_category_id not in (None, category_id):
            return False
        if service_id is not None and self.service_id not in (None, service_id):
            return False
        return True


# ---------------------------------------------------------------------------
# Typed conditions and actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Condition:
    field: str
    operator: str
    value: Any


@dataclass(frozen=True)
class ConditionGroup:
    """Composite predicate; ``mode`` is ``all`` (AND) or ``any`` (OR)."""

    mode: str
    children: tuple[ConditionNode, ...] = ()


ConditionNode = Union[Condition, ConditionGroup]


@dataclass(frozen=True)
class SetCoveragePercent:
    percent: Decimal


@dataclass(frozen=True)
class SetDeductible:
    amount: Decimal


@dataclass(frozen=True)
class PaymentCeiling:
    limit: Decimal
    applies_to: str = "insurer"


@dataclass(frozen=True)
class SupplementaryTerms:
    coverage_percent: Decimal | None = None
    max_payment: Decimal | None = None
    applicable: bool | None = None


@dataclass(frozen=True)
class ApplyDiscount:
    percent: Decimal


RuleAction = Union[SetCoveragePercent, SetDeductible, PaymentCeiling, SupplementaryTerms, ApplyDiscount]


@dataclass(frozen=True)
class ParsedRule:
    """A stored rule with its conditions and actions in typed form."""

    rule: BusinessRule
    condition: ConditionGroup
    actions: tuple[RuleAction, ...]

    @property
    def label(self) -> str:
        return f"{self.rule.rule_type.value}:{self.rule.rule_id}:{self.rule.name}"


@dataclass(frozen=True)
class AppliedPaymentCeiling:
    rule_name: str
    limit: Decimal
    applies_to: str


@dataclass
class EffectiveParameters:
    """Base context values overridden by matching rule actions."""

    coverage_percent: Decimal
    deductible: Decimal
    discount_percent: Decimal = Decimal(0)
    payment_ceilings: list[AppliedPaymentCeiling] = field(default_factory=list)
    supplementary_coverage_percent: Decimal | None = None
    supplementary_max_payment: Decimal | None = None
    supplementary_applicable: bool = False
    applied_rules: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def effective_supplementary_percent(self) -> Decimal:
        if not self.supplementary_applicable or self.supplementary_coverage_percent is None:
            return Decimal(0)
        return self.supplementary_coverage_percent

    @property
    def effective_supplementary_max_payment(self) -> Decimal | None:
        if not self.supplementary_applicable:
            return None
        return self.supplementary_max_payment
