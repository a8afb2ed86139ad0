"""Shared Pydantic schemas for the tariff share API.

This module centralizes request/response models used across routers
to prevent drift between duplicate definitions.
"""

from .calculation import CalculateShareRequest, ShareResultResponse
from .rules import RuleDefinition, RuleTypeInfo, RuleValidationResponse

__all__ = [
    "CalculateShareRequest",
    "ShareResultResponse",
    "RuleDefinition",
    "RuleTypeInfo",
    "RuleValidationResponse",
]
