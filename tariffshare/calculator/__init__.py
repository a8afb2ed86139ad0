"""Share calculator and rounding policy."""

from .models import (
    AutomaticShareRequest,
    CalculationMode,
    InvalidShareInput,
    ManualShareRequest,
    ShareBreakdown,
    ShareErrorCode,
    ShareRequest,
    ShareResult,
)
from .rounding import DEFAULT_ROUNDING, RoundingPolicy, round_currency, round_percentage
from .share import calculate_share, check_manual_percents

__all__ = [
    "AutomaticShareRequest",
    "CalculationMode",
    "InvalidShareInput",
    "ManualShareRequest",
    "ShareBreakdown",
    "ShareErrorCode",
    "ShareRequest",
    "ShareResult",
    "DEFAULT_ROUNDING",
    "RoundingPolicy",
    "round_currency",
    "round_percentage",
    "calculate_share",
    "check_manual_percents",
]
