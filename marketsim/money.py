"""Monetary amounts with two-decimal precision."""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum

_CENT = Decimal("0.01")


class Currency(Enum):
    HKD = "Hkd"


class MoneyVerifyError(ValueError):
    """Raised when an amount of money is not valid."""

    NEGATIVE_VALUE = "negative value"
    TOO_MANY_DECIMALS = "too many decimals"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def _decimal_places(value: Decimal) -> int:
    exponent = value.as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def round_money(value: Decimal | float | int) -> Decimal:
    """Convert to Decimal, rounding half-even to at most two decimals."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        result = Decimal(value)
    if not result.is_finite():
        raise ValueError(f"not a finite amount: {value!r}")
    if _decimal_places(result) > 2:
        return result.quantize(_CENT, rounding=ROUND_HALF_EVEN)
    return result


def gen_from_range(rng: random.Random, low: float, high: float) -> Decimal:
    """Draw a uniform amount from [low, high], rounded to cents."""
    return round_money(rng.uniform(low, high))


@dataclass(frozen=True)
class Money:
    value: Decimal
    currency: Currency = Currency.HKD

    def verify(self) -> None:
        if self.value < 0:
            raise MoneyVerifyError(MoneyVerifyError.NEGATIVE_VALUE)
        if _decimal_places(self.value) > 2:
            raise MoneyVerifyError(MoneyVerifyError.TOO_MANY_DECIMALS)

    @classmethod
    def calculate_average(cls, prices: Sequence[Money]) -> Money:
        if not prices:
            raise ValueError("cannot average an empty list of prices")
        total = sum((price.value for price in prices), Decimal(0))
        average = round_money(total / Decimal(len(prices)))
        return cls(average, prices[0].currency)

    def to_float(self) -> float:
        return float(self.value)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError("Cannot add money of different currencies")
        return Money(self.value + other.value, self.currency)