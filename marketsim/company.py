"""Companies, listed companies and IPOs."""

from __future__ import annotations

from dataclasses import dataclass, field


class CompanySymbolVerifyError(ValueError):
    """Raised for an empty or non-alphabetic symbol."""


class CompanyVerifyError(ValueError):
    NAME = "name"
    SYMBOL = "symbol"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ListedCompanyVerifyError(ValueError):
    LOT_SIZE = "lot size"
    NAME = "name"
    SYMBOL = "symbol"
    TOTAL_STOCKS = "total stocks"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True, order=True)
class CompanySymbol:
    value: str

    def verify(self) -> None:
        if not self.value or not all(c.isalpha() for c in self.value):
            raise CompanySymbolVerifyError(f"invalid symbol: {self.value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass
class Company:
    name: str
    symbol: CompanySymbol

    def verify(self) -> None:
        if not self.name:
            raise CompanyVerifyError(CompanyVerifyError.NAME)
        try:
            self.symbol.verify()
        except CompanySymbolVerifyError as exc:
            raise CompanyVerifyError(CompanyVerifyError.SYMBOL) from exc


@dataclass
class Companies:
    mapping: dict[CompanySymbol, Company] = field(default_factory=dict)


@dataclass
class ListedCompany:
    lot_size: int
    symbol: CompanySymbol
    total_stocks: int

    def verify(self) -> None:
        if self.lot_size == 0:
            raise ListedCompanyVerifyError(ListedCompanyVerifyError.LOT_SIZE)
        if self.total_stocks == 0 or self.total_stocks % self.lot_size != 0:
            raise ListedCompanyVerifyError(ListedCompanyVerifyError.TOTAL_STOCKS)
        try:
            self.symbol.verify()
        except CompanySymbolVerifyError as exc:
            raise ListedCompanyVerifyError(ListedCompanyVerifyError.SYMBOL) from exc


@dataclass
class ListedCompanies:
    mapping: dict[CompanySymbol, ListedCompany] = field(default_factory=dict)

    def get_list(self) -> list[ListedCompany]:
        """Listed companies ordered by symbol."""
        return [self.mapping[symbol] for symbol in sorted(self.mapping)]


@dataclass
class Ipo:
    symbol: CompanySymbol
    shares: int
    lot_size: int
    date: int


@dataclass
class Ipos:
    mapping: dict[CompanySymbol, Ipo] = field(default_factory=dict)