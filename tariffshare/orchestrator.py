"""Insurance tariff orchestrator.

Composes the rule engine's effective parameters into a share request,
runs the calculator and checks payment ceilings against the final
shares. Invalid input and ceiling violations come back as failed
``ShareResult`` values; ``RuleStoreUnavailable`` is raised so the caller
can choose between failing closed and calling
``calculate_with_base_parameters``.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from . import messages
from .calculator import (
    DEFAULT_ROUNDING,
    AutomaticShareRequest,
    CalculationMode,
    InvalidShareInput,
    ManualShareRequest,
    RoundingPolicy,
    ShareBreakdown,
    ShareErrorCode,
    ShareRequest,
    ShareResult,
    calculate_share,
    check_manual_percents,
)
from .calculator.rounding import to_decimal
from .repository.base import AsyncRuleRepository, RuleRepository
from .rules.engine import BusinessRuleEngine, base_parameters
from .rules.models import CalculationContext, EffectiveParameters

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
HUNDRED = Decimal(100)


class InsuranceTariffOrchestrator:
    """Facade computing the final patient/insurer split for a context."""

    def __init__(
        self,
        repository: RuleRepository | None = None,
        async_repository: AsyncRuleRepository | None = None,
        rounding: RoundingPolicy = DEFAULT_ROUNDING,
        engine: BusinessRuleEngine | None = None,
    ) -> None:
        self.engine = engine or BusinessRuleEngine(repository=repository, async_repository=async_repository)
        self.rounding = rounding

    def calculate(self, context: CalculationContext) -> ShareResult:
        """Calculate shares using rules from the synchronous repository.

        Raises:
            RuleStoreUnavailable: If the rule store cannot be read
        """
        rejected = self._reject_price(context)
        if rejected is not None:
            return rejected
        return self._finish(context, self.engine.evaluate(context))

    async def calculate_async(self, context: CalculationContext) -> ShareResult:
        rejected = self._reject_price(context)
        if rejected is not None:
            return rejected
        return self._finish(context, await self.engine.evaluate_async(context))

    def calculate_with_base_parameters(
        self, context: CalculationContext, warning: str | None = None
    ) -> ShareResult:
        """Calculate with the plan's own values, ignoring every rule."""
        rejected = self._reject_price(context)
        if rejected is not None:
            return rejected
        params = base_parameters(context)
        if warning:
            params.warnings.append(warning)
        return self._finish(context, params)

    # -- internals -----------------------------------------------------------

    def _reject_price(self, context: CalculationContext) -> ShareResult | None:
        if to_decimal(context.service.amount) <= ZERO:
            return ShareResult.failure(ShareErrorCode.INVALID_INPUT, messages.NON_POSITIVE_PRICE)
        return None

    def build_request(
        self, context: CalculationContext, params: EffectiveParameters, price: Decimal
    ) -> ShareRequest:
        if context.is_manual:
            return ManualShareRequest(
                tariff_price=price,
                patient_percent=to_decimal(context.patient_share_percent),
                insurer_percent=to_decimal(context.insurer_share_percent),
            )
        return AutomaticShareRequest(
            tariff_price=price,
            deductible=params.deductible,
            primary_coverage_percent=params.coverage_percent,
            supplementary_coverage_percent=params.effective_supplementary_percent,
            supplementary_max_payment=params.effective_supplementary_max_payment,
        )

    def _finish(self, context: CalculationContext, params: EffectiveParameters) -> ShareResult:
        original_price = to_decimal(context.service.amount)
        discount_amount = self.rounding.round_currency(original_price * params.discount_percent / HUNDRED)
        price = original_price - discount_amount

        try:
            if price <= ZERO:
                breakdown = self._waived(context)
            else:
                breakdown = calculate_share(self.build_request(context, params, price), self.rounding)
        except InvalidShareInput as e:
            logger.warning(f"Rejected share calculation for service {context.service.service_id}: {e}")
            return ShareResult.failure(
                ShareErrorCode.INVALID_INPUT, str(e), params.applied_rules, params.warnings
            )

        violation = self._check_ceilings(context, params, breakdown)
        if violation is not None:
            return violation

        return ShareResult(
            is_valid=True,
            tariff_price=breakdown.tariff_price,
            patient_share=breakdown.patient_share,
            insurer_share=breakdown.insurer_share,
            patient_share_percent=breakdown.patient_share_percent,
            insurer_share_percent=breakdown.insurer_share_percent,
            supplementary_percent_of_total=breakdown.supplementary_percent_of_total,
            total_coverage_percent=breakdown.total_coverage_percent,
            original_price=original_price,
            discount_amount=discount_amount,
            mode=breakdown.mode,
            applied_rules=list(params.applied_rules),
            warnings=list(params.warnings),
        )

    def _waived(self, context: CalculationContext) -> ShareBreakdown:
        # Entered percentages are still validated when nothing is left to split.
        if context.is_manual:
            check_manual_percents(
                to_decimal(context.patient_share_percent), to_decimal(context.insurer_share_percent)
            )
        logger.info(f"Service {context.service.service_id} fully waived by discount rules")
        return ShareBreakdown(
            mode=CalculationMode.MANUAL if context.is_manual else CalculationMode.AUTOMATIC,
            tariff_price=ZERO,
            patient_share=ZERO,
            insurer_share=ZERO,
            patient_share_percent=ZERO,
            insurer_share_percent=ZERO,
        )

    def _check_ceilings(
        self, context: CalculationContext, params: EffectiveParameters, breakdown: ShareBreakdown
    ) -> ShareResult | None:
        amounts = {
            "insurer": breakdown.insurer_share,
            "patient": breakdown.patient_share,
            "service_amount": to_decimal(context.service.amount),
        }
        for ceiling in params.payment_ceilings:
            amount = amounts[ceiling.applies_to]
            if amount > ceiling.limit:
                logger.warning(
                    f"Payment limit '{ceiling.rule_name}' exceeded: {ceiling.applies_to} "
                    f"{amount} > {ceiling.limit}"
                )
                return ShareResult.failure(
                    ShareErrorCode.PAYMENT_LIMIT_EXCEEDED,
                    messages.payment_limit_exceeded(ceiling.applies_to, int(amount), int(ceiling.limit)),
                    params.applied_rules,
                    params.warnings,
                )
        return None
