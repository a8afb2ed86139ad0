"""Business rule engine for insurance tariff overrides."""

from .engine import BusinessRuleEngine
from .models import (
    BusinessRule,
    CalculationContext,
    EffectiveParameters,
    InsurancePlanInfo,
    PatientInfo,
    RuleConfigurationError,
    RuleType,
    ServiceInfo,
)
from .parser import parse_rule
from .registry import default_registry

__all__ = [
    "BusinessRuleEngine",
    "BusinessRule",
    "CalculationContext",
    "EffectiveParameters",
    "InsurancePlanInfo",
    "PatientInfo",
    "RuleConfigurationError",
    "RuleType",
    "ServiceInfo",
    "parse_rule",
    "default_registry",
]
