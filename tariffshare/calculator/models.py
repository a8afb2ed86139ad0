"""Data models for the share calculator."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Union


class InvalidShareInput(ValueError):
    """Raised when a share request violates price or percentage constraints."""


class CalculationMode(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class ShareErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    PAYMENT_LIMIT_EXCEEDED = "PAYMENT_LIMIT_EXCEEDED"


@dataclass(frozen=True)
class ManualShareRequest:
    """Split driven by explicitly entered patient/insurer percentages."""

    tariff_price: Decimal
    patient_percent: Decimal
    insurer_percent: Decimal


@dataclass(frozen=True)
class AutomaticShareRequest:
    """Split driven by deductible, primary and supplementary coverage."""

    tariff_price: Decimal
    deductible: Decimal = Decimal(0)
    primary_coverage_percent: Decimal = Decimal(0)
    supplementary_coverage_percent: Decimal = Decimal(0)
    supplementary_max_payment: Decimal | None = None


ShareRequest = Union[ManualShareRequest, AutomaticShareRequest]


@dataclass(frozen=True)
class ShareBreakdown:
    """Reconciled amounts produced by the calculator."""

    mode: CalculationMode
    tariff_price: Decimal
    patient_share: Decimal
    insurer_share: Decimal
    patient_share_percent: Decimal
    insurer_share_percent: Decimal
    insurer_base: Decimal | None = None
    supplementary_amount: Decimal | None = None
    supplementary_percent_of_total: Decimal | None = None
    total_coverage_percent: Decimal | None = None


@dataclass(frozen=True)
class ShareResult:
    """Final outcome returned to callers.

    A valid result always satisfies ``patient_share + insurer_share ==
    tariff_price``. A failed result carries no amounts.
    """

    is_valid: bool
    tariff_price: Decimal | None = None
    patient_share: Decimal | None = None
    insurer_share: Decimal | None = None
    patient_share_percent: Decimal | None = None
    insurer_share_percent: Decimal | None = None
    supplementary_percent_of_total: Decimal | None = None
    total_coverage_percent: Decimal | None = None
    original_price: Decimal | None = None
    discount_amount: Decimal | None = None
    mode: CalculationMode | None = None
    error_code: ShareErrorCode | None = None
    error_message: str | None = None
    applied_rules: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def failure(
        cls,
        code: ShareErrorCode,
        message: str,
        applied_rules: list[str] | None = None,
        warnings: list[str] | None = None,
    ) -> ShareResult:
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message,
            applied_rules=list(applied_rules or []),
            warnings=list(warnings or []),
        )
