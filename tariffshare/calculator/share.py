"""Patient/insurer share calculator.

Only one side of every split is rounded; the other side is derived by
subtraction from the tariff price, so the two shares always add up to the
price exactly.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from tariffshare import messages

from .models import (
    AutomaticShareRequest,
    CalculationMode,
    InvalidShareInput,
    ManualShareRequest,
    ShareBreakdown,
    ShareRequest,
)
from .rounding import DEFAULT_ROUNDING, RoundingPolicy, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
HUNDRED = Decimal(100)


def _check_price(price: Decimal, rounding: RoundingPolicy) -> None:
    if price <= ZERO:
        raise InvalidShareInput(messages.NON_POSITIVE_PRICE)
    if not rounding.is_currency_precise(price):
        raise InvalidShareInput(messages.FRACTIONAL_PRICE)


def _check_percent(value: Decimal, kind: str) -> None:
    if value < ZERO or value > HUNDRED:
        raise InvalidShareInput(messages.percent_out_of_range(kind))


def _percent_of(amount: Decimal, price: Decimal, rounding: RoundingPolicy) -> Decimal:
    return rounding.round_percentage(amount / price * HUNDRED)


def check_manual_percents(patient_percent: Decimal, insurer_percent: Decimal) -> None:
    """Reject manual percentages outside 0..100 or summing past 100.

    Raises:
        InvalidShareInput: a percentage or their sum is out of range
    """
    _check_percent(patient_percent, "patient")
    _check_percent(insurer_percent, "insurer")
    if patient_percent + insurer_percent > HUNDRED:
        raise InvalidShareInput(messages.PERCENT_SUM_EXCEEDED)


def calculate_manual(
    request: ManualShareRequest, rounding: RoundingPolicy = DEFAULT_ROUNDING
) -> ShareBreakdown:
    price = to_decimal(request.tariff_price)
    patient_percent = to_decimal(request.patient_percent)
    insurer_percent = to_decimal(request.insurer_percent)

    _check_price(price, rounding)
    check_manual_percents(patient_percent, insurer_percent)

    insurer = rounding.round_currency(price * insurer_percent / HUNDRED)
    patient = price - insurer

    return ShareBreakdown(
        mode=CalculationMode.MANUAL,
        tariff_price=price,
        patient_share=patient,
        insurer_share=insurer,
        patient_share_percent=_percent_of(patient, price, rounding),
        insurer_share_percent=_percent_of(insurer, price, rounding),
        total_coverage_percent=_percent_of(insurer, price, rounding),
    )


def calculate_automatic(
    request: AutomaticShareRequest, rounding: RoundingPolicy = DEFAULT_ROUNDING
) -> ShareBreakdown:
    price = to_decimal(request.tariff_price)
    deductible = to_decimal(request.deductible)
    primary_percent = to_decimal(request.primary_coverage_percent)
    supplementary_percent = to_decimal(request.supplementary_coverage_percent)
    max_payment = (
        None
        if request.supplementary_max_payment is None
        else to_decimal(request.supplementary_max_payment)
    )

    _check_price(price, rounding)
    if deductible < ZERO:
        raise InvalidShareInput(messages.NEGATIVE_DEDUCTIBLE)
    _check_percent(primary_percent, "primary")
    _check_percent(supplementary_percent, "supplementary")
    if max_payment is not None and max_payment < ZERO:
        raise InvalidShareInput(messages.NEGATIVE_MAX_PAYMENT)

    coverable = max(ZERO, price - deductible)
    insurer_base = rounding.round_currency(coverable * primary_percent / HUNDRED)
    # Supplementary coverage applies to what primary left of the full price,
    # not to the deductible-reduced coverable amount.
    remaining = max(ZERO, price - insurer_base)
    supplementary = rounding.round_currency(remaining * supplementary_percent / HUNDRED)
    if max_payment is not None and supplementary > max_payment:
        logger.debug(f"Supplementary amount {supplementary} capped at max payment {max_payment}")
        supplementary = rounding.floor_currency(max_payment)

    insurer = min(price, insurer_base + supplementary)
    patient = price - insurer

    return ShareBreakdown(
        mode=CalculationMode.AUTOMATIC,
        tariff_price=price,
        patient_share=patient,
        insurer_share=insurer,
        patient_share_percent=_percent_of(patient, price, rounding),
        insurer_share_percent=_percent_of(insurer, price, rounding),
        insurer_base=insurer_base,
        supplementary_amount=supplementary,
        supplementary_percent_of_total=_percent_of(supplementary, price, rounding),
        total_coverage_percent=_percent_of(insurer, price, rounding),
    )


def calculate_share(
    request: ShareRequest, rounding: RoundingPolicy = DEFAULT_ROUNDING
) -> ShareBreakdown:
    """Split a tariff price between patient and insurer.

    Raises:
        InvalidShareInput: price or percentages out of range
        TypeError: request is neither manual nor automatic
    """
    if isinstance(request, ManualShareRequest):
        return calculate_manual(request, rounding)
    if isinstance(request, AutomaticShareRequest):
        return calculate_automatic(request, rounding)
    raise TypeError(f"Unsupported share request type: {type(request).__name__}")
