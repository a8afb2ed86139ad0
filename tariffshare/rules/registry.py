"""Registry of rule types and how their matches are applied."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .models import DISCOUNT_RULE_TYPES, RuleType


class ApplicationMode(str, Enum):
    FIRST_MATCH = "first_match"
    ACCUMULATE = "accumulate"


@dataclass(frozen=True)
class RuleTypeHandler:
    rule_type: RuleType
    mode: ApplicationMode
    description: str


class RuleTypeRegistry:
    def __init__(self) -> None:
        self._handlers: dict[RuleType, RuleTypeHandler] = {}

    def register(self, handler: RuleTypeHandler) -> None:
        if handler.rule_type not in self._handlers:
            self._handlers[handler.rule_type] = handler

    def extend(self, handlers: Iterable[RuleTypeHandler]) -> None:
        for handler in handlers:
            self.register(handler)

    def get(self, rule_type: RuleType) -> RuleTypeHandler:
        return self._handlers[rule_type]

    def handlers(self) -> tuple[RuleTypeHandler, ...]:
        """Handlers in evaluation order."""
        return tuple(self._handlers.values())


def register_default_handlers(registry: RuleTypeRegistry) -> None:
    """Register the built-in rule types.

    Order matters: single-value overrides first, then discounts, then
    custom rules (which may override anything before them), and payment
    ceilings last.
    """
    registry.extend(
        [
            RuleTypeHandler(
                RuleType.COVERAGE_PERCENT,
                ApplicationMode.FIRST_MATCH,
                "Overrides the plan's primary coverage percent",
            ),
            RuleTypeHandler(
                RuleType.DEDUCTIBLE,
                ApplicationMode.FIRST_MATCH,
                "Overrides the plan's deductible",
            ),
            RuleTypeHandler(
                RuleType.SUPPLEMENTARY_INSURANCE,
                ApplicationMode.FIRST_MATCH,
                "Sets supplementary coverage percent, max payment and applicability",
            ),
        ]
    )
    registry.extend(
        RuleTypeHandler(
            rule_type,
            ApplicationMode.ACCUMULATE,
            "Discount on the tariff price; matching discounts compose",
        )
        for rule_type in sorted(DISCOUNT_RULE_TYPES, key=lambda t: t.value)
    )
    registry.extend(
        [
            RuleTypeHandler(
                RuleType.CUSTOM_RULE,
                ApplicationMode.ACCUMULATE,
                "Any combination of the other action kinds",
            ),
            RuleTypeHandler(
                RuleType.PAYMENT_LIMIT,
                ApplicationMode.ACCUMULATE,
                "Hard ceiling checked against the final computed share",
            ),
        ]
    )


default_registry = RuleTypeRegistry()
register_default_handlers(default_registry)
