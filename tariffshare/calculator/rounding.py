"""Currency and percentage rounding policy."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


@dataclass(frozen=True)
class RoundingPolicy:
    """Half-away-from-zero rounding at fixed precisions.

    ``ROUND_HALF_UP`` in :mod:`decimal` rounds ties away from zero for both
    signs, so ``-0.5`` becomes ``-1`` rather than ``0``.
    """

    currency_places: int = 0
    percentage_places: int = 2

    @staticmethod
    def _round(value: Number, places: int) -> Decimal:
        exponent = Decimal(1).scaleb(-places)
        return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)

    def round_currency(self, value: Number) -> Decimal:
        return self._round(value, self.currency_places)

    def round_percentage(self, value: Number) -> Decimal:
        return self._round(value, self.percentage_places)

    def floor_currency(self, value: Number) -> Decimal:
        """Truncate toward negative infinity; used where a ceiling must hold."""
        exponent = Decimal(1).scaleb(-self.currency_places)
        return to_decimal(value).quantize(exponent, rounding=ROUND_FLOOR)

    def is_currency_precise(self, value: Number) -> bool:
        value = to_decimal(value)
        return self.round_currency(value) == value


DEFAULT_ROUNDING = RoundingPolicy()


def round_currency(value: Number) -> Decimal:
    return DEFAULT_ROUNDING.round_currency(value)


def round_percentage(value: Number) -> Decimal:
    return DEFAULT_ROUNDING.round_percentage(value)
