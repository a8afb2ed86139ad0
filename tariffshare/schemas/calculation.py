"""Pydantic schemas for the share calculation endpoint."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from tariffshare.calculator import ShareResult
from tariffshare.rules.models import CalculationContext, InsurancePlanInfo, PatientInfo, ServiceInfo


class PatientPayload(BaseModel):
    age: int | None = None
    gender: str | None = None
    birth_date: date | None = None

    @field_validator("age")
    @classmethod
    def validate_age(cls, v: int | None) -> int | None:
        if v is not None and (v < 0 or v > 150):
            raise ValueError("age must be between 0 and 150")
        return v

    @field_validator("gender")
    @classmethod
    def strip_gender(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class ServicePayload(BaseModel):
    """Billable service line; ``amount`` is in integer currency units."""

    service_id: int
    amount: int
    category_id: int | None = None


class PlanPayload(BaseModel):
    plan_id: int
    coverage_percent: Decimal = Decimal(0)
    deductible: int = 0
    is_active: bool = True


class CalculateShareRequest(BaseModel):
    """Request model for POST /calculate-share.

    Supplying both ``patient_share_percent`` and ``insurer_share_percent``
    selects the manual split; otherwise the plan's coverage drives the
    automatic split.
    """

    patient: PatientPayload = PatientPayload()
    service: ServicePayload
    plan: PlanPayload
    calculation_date: date | None = None
    patient_share_percent: Decimal | None = None
    insurer_share_percent: Decimal | None = Field(default=None, validate_default=True)
    supplementary_coverage_percent: Decimal | None = None
    supplementary_max_payment: int | None = None

    @field_validator("insurer_share_percent")
    @classmethod
    def validate_manual_pair(cls, v: Decimal | None, info: ValidationInfo) -> Decimal | None:
        """Manual percentages must be given together."""
        patient_percent = info.data.get("patient_share_percent")
        if (v is None) != (patient_percent is None):
            raise ValueError("patient_share_percent and insurer_share_percent must be provided together")
        return v

    def to_context(self, today: date | None = None) -> CalculationContext:
        return CalculationContext(
            patient=PatientInfo(
                age=self.patient.age,
                gender=self.patient.gender,
                birth_date=self.patient.birth_date,
            ),
            service=ServiceInfo(
                service_id=self.service.service_id,
                amount=Decimal(self.service.amount),
                category_id=self.service.category_id,
            ),
            plan=InsurancePlanInfo(
                plan_id=self.plan.plan_id,
                coverage_percent=self.plan.coverage_percent,
                deductible=Decimal(self.plan.deductible),
                is_active=self.plan.is_active,
            ),
            calculation_date=self.calculation_date or today or date.today(),
            patient_share_percent=self.patient_share_percent,
            insurer_share_percent=self.insurer_share_percent,
            supplementary_coverage_percent=self.supplementary_coverage_percent,
            supplementary_max_payment=(
                Decimal(self.supplementary_max_payment) if self.supplementary_max_payment is not None else None
            ),
        )


def _amount(value: Decimal | None) -> int | None:
    return int(value) if value is not None else None


def _percent(value: Decimal | None) -> str | None:
    return f"{value:.2f}" if value is not None else None


class ShareResultResponse(BaseModel):
    """Serialized ShareResult: integer amounts, percentages as 2-decimal strings."""

    is_valid: bool
    tariff_price: int | None = None
    patient_share: int | None = None
    insurer_share: int | None = None
    patient_share_percent: str | None = None
    insurer_share_percent: str | None = None
    supplementary_percent_of_total: str | None = None
    total_coverage_percent: str | None = None
    original_price: int | None = None
    discount_amount: int | None = None
    mode: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    applied_rules: list[str] = []
    warnings: list[str] = []

    @classmethod
    def from_result(cls, result: ShareResult) -> ShareResultResponse:
        return cls(
            is_valid=result.is_valid,
            tariff_price=_amount(result.tariff_price),
            patient_share=_amount(result.patient_share),
            insurer_share=_amount(result.insurer_share),
            patient_share_percent=_percent(result.patient_share_percent),
            insurer_share_percent=_percent(result.insurer_share_percent),
            supplementary_percent_of_total=_percent(result.supplementary_percent_of_total),
            total_coverage_percent=_percent(result.total_coverage_percent),
            original_price=_amount(result.original_price),
            discount_amount=_amount(result.discount_amount),
            mode=result.mode.value if result.mode else None,
            error_code=result.error_code.value if result.error_code else None,
            error_message=result.error_message,
            applied_rules=list(result.applied_rules),
            warnings=list(result.warnings),
        )
