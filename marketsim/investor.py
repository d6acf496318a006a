"""Investors and their cash accounts."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from decimal import Decimal

from marketsim.money import Money, MoneyVerifyError
from marketsim.time_handler import TimeHandler

_SECONDS_PER_YEAR = 60.0 * 60.0 * 24.0 * 365.25


class InvestorVerifyError(ValueError):
    INVALID_NAME = "invalid name"
    INVALID_AGE = "invalid age"
    MONEY = "money error"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def _zero() -> Money:
    return Money(Decimal(0))


@dataclass
class Investor:
    id: int
    name: str
    dob: int
    liquid_cash: Money
    debt: Money = field(default_factory=_zero)

    def verify(self, time: TimeHandler) -> None:
        try:
            self.liquid_cash.verify()
        except MoneyVerifyError as exc:
            raise InvestorVerifyError(InvestorVerifyError.MONEY) from exc
        if not self.name:
            raise InvestorVerifyError(InvestorVerifyError.INVALID_NAME)
        age = self.get_age(time)
        if age < 18.0 or age > 100.0:
            raise InvestorVerifyError(InvestorVerifyError.INVALID_AGE)

    def get_age(self, time: TimeHandler) -> float:
        """Age in years at the current virtual time."""
        return (time.get_now_unix_timestamp() - self.dob) / _SECONDS_PER_YEAR

    def subtract_cash(self, amount: Money) -> None:
        """Pay ``amount``; any shortfall becomes debt."""
        diff = self.liquid_cash.value - amount.value
        if diff < 0:
            self.liquid_cash = Money(Decimal(0), self.liquid_cash.currency)
            self.debt = Money(self.debt.value + abs(diff), self.debt.currency)
        else:
            self.liquid_cash = Money(diff, self.liquid_cash.currency)

    def add_cash(self, amount: Money) -> None:
        """Receive ``amount``, repaying debt first."""
        if self.debt.value > 0:
            diff = self.debt.value - amount.value
            if diff < 0:
                self.debt = Money(Decimal(0), self.debt.currency)
                self.liquid_cash = Money(
                    self.liquid_cash.value + abs(diff), self.liquid_cash.currency
                )
            else:
                self.debt = Money(diff, self.debt.currency)
        else:
            self.liquid_cash = Money(
                self.liquid_cash.value + amount.value, self.liquid_cash.currency
            )


@dataclass
class Investors:
    last_id: int = 0
    mapping: dict[int, Investor] = field(default_factory=dict)

    def next_id(self) -> int:
        """Allocate and return the next investor id."""
        self.last_id += 1
        return self.last_id

    def get_random(self, rng: random.Random) -> Investor:
        if not self.mapping:
            raise ValueError("there are no investors")
        ordered = [self.mapping[key] for key in sorted(self.mapping)]
        return rng.choice(ordered)