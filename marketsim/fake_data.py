"""Random companies, investors and market makers for a new simulation."""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Sequence
from decimal import Decimal

from marketsim.company import (
    Companies,
    Company,
    CompanySymbol,
    CompanyVerifyError,
    Ipo,
    Ipos,
    ListedCompanies,
    ListedCompany,
    ListedCompanyVerifyError,
)
from marketsim.investor import Investor, Investors, InvestorVerifyError
from marketsim.market_maker import MarketMaker, MarketMakers, MarketMakerVerifyError
from marketsim.money import Currency, Money, round_money
from marketsim.time_handler import TimeHandler


class GenerationError(Exception):
    """Raised when valid random data could not be produced."""


_EN_FIRST = (
    "James", "Mary", "John", "Patricia", "Robert", "Jennifer", "Michael", "Linda",
    "William", "Elizabeth", "David", "Barbara", "Richard", "Susan", "Joseph", "Jessica",
    "Thomas", "Sarah", "Charles", "Karen", "Daniel", "Nancy", "Matthew", "Lisa",
    "Anthony", "Betty", "Mark", "Helen", "Steven", "Sandra",
)
_EN_LAST = (
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Miller", "Davis", "Wilson",
    "Anderson", "Taylor", "Thomas", "Moore", "Martin", "Jackson", "Thompson", "White",
    "Harris", "Clark", "Lewis", "Robinson", "Walker", "Young", "Allen", "King",
    "Wright", "Scott", "Green", "Baker", "Adams", "Nelson", "Carter", "Mitchell",
    "Roberts", "Turner", "Phillips", "Campbell", "Parker", "Evans", "Edwards", "Collins",
    "Stewart", "Morris", "Rogers", "Reed", "Cook", "Morgan", "Bell", "Murphy",
    "Bailey", "Cooper", "Howard", "Ward", "Peterson", "Gray", "Watson", "Brooks",
    "Kelly", "Sanders", "Price", "Bennett", "Wood", "Barnes", "Ross", "Henderson",
)
_EN_SUFFIXES = ("Inc", "LLC", "Group", "Ltd")

_PT_FIRST = (
    "João", "Maria", "José", "Ana", "Pedro", "Francisca", "Lucas", "Juliana",
    "Gabriel", "Mariana", "Rafael", "Beatriz", "Mateus", "Larissa", "Gustavo", "Camila",
    "Felipe", "Fernanda", "Bruno", "Letícia",
)
_PT_LAST = (
    "Silva", "Santos", "Oliveira", "Souza", "Rodrigues", "Ferreira", "Alves", "Pereira",
    "Lima", "Gomes", "Costa", "Ribeiro", "Martins", "Carvalho", "Almeida", "Lopes",
    "Soares", "Fernandes", "Vieira", "Barbosa", "Rocha", "Dias", "Nascimento", "Andrade",
    "Moreira", "Nunes", "Marques", "Machado", "Mendes", "Freitas",
)
_PT_SUFFIXES = ("S.A.", "Ltda.", "e Associados", "Comércio")

_FR_FIRST = (
    "Jean", "Marie", "Pierre", "Camille", "Louis", "Chloé", "Hugo", "Léa",
    "Jules", "Manon", "Lucas", "Emma", "Nathan", "Inès", "Arthur", "Sarah",
    "Gabriel", "Louise", "Paul", "Alice",
)
_FR_LAST = (
    "Martin", "Bernard", "Dubois", "Thomas", "Robert", "Richard", "Petit", "Durand",
    "Leroy", "Moreau", "Simon", "Laurent", "Lefebvre", "Michel", "Garcia", "David",
    "Bertrand", "Roux", "Vincent", "Fournier", "Morel", "Girard", "André", "Lefèvre",
    "Mercier", "Dupont", "Lambert", "Bonnet", "François", "Martinez",
)
_FR_SUFFIXES = ("SA", "SARL", "SAS", "EURL")

_ZH_SURNAMES = (
    "陳", "林", "黃", "張", "李", "王", "吳", "劉", "蔡", "楊",
    "許", "鄭", "謝", "洪", "郭", "邱", "曾", "廖", "賴", "徐",
)
_ZH_GIVEN = (
    "志明", "淑芬", "俊傑", "美玲", "家豪", "雅婷", "建宏", "怡君",
    "宗翰", "佩珊", "冠宇", "婉婷", "承恩", "欣怡", "柏翰", "詩涵",
)
_ZH_BRANDS = (
    "台灣", "大同", "宏達", "聯華", "統一", "長榮", "遠東", "國泰",
    "富邦", "中華", "新光", "華南", "永豐", "台新", "光寶", "仁寶",
)
_ZH_INDUSTRIES = ("電子", "科技", "實業", "建設", "食品", "紡織", "航運", "化學", "鋼鐵", "金融")

_JA_SURNAMES = (
    "佐藤", "鈴木", "高橋", "田中", "伊藤", "渡辺", "山本", "中村", "小林", "加藤",
    "吉田", "山田", "山口", "松本", "井上", "木村", "清水", "山崎", "森田", "池田",
)
_JA_GIVEN = ("翔太", "陽菜", "大輝", "結衣", "蓮", "美咲", "拓海", "葵", "悠斗", "さくら")
_JA_INDUSTRIES = ("商事", "電機", "工業", "製作所", "建設", "物産", "化学", "食品", "運輸", "銀行")


def _western_company(
    last: Sequence[str], suffixes: Sequence[str], conjunction: str
) -> Callable[[random.Random], str]:
    def generate(rng: random.Random) -> str:
        pattern = rng.randrange(3)
        if pattern == 0:
            return f"{rng.choice(last)} {rng.choice(suffixes)}"
        if pattern == 1:
            return f"{rng.choice(last)}-{rng.choice(last)}"
        return f"{rng.choice(last)}, {rng.choice(last)} {conjunction} {rng.choice(last)}"

    return generate


def _western_name(first: Sequence[str], last: Sequence[str]) -> Callable[[random.Random], str]:
    def generate(rng: random.Random) -> str:
        return f"{rng.choice(first)} {rng.choice(last)}"

    return generate


def _zh_company(rng: random.Random) -> str:
    return f"{rng.choice(_ZH_BRANDS)}{rng.choice(_ZH_INDUSTRIES)}股份有限公司"


def _zh_name(rng: random.Random) -> str:
    return f"{rng.choice(_ZH_SURNAMES)}{rng.choice(_ZH_GIVEN)}"


def _ja_company(rng: random.Random) -> str:
    return f"{rng.choice(_JA_SURNAMES)}{rng.choice(_JA_INDUSTRIES)}株式会社"


def _ja_name(rng: random.Random) -> str:
    return f"{rng.choice(_JA_SURNAMES)}{rng.choice(_JA_GIVEN)}"


_COMPANY_NAMES = (
    _western_company(_EN_LAST, _EN_SUFFIXES, "and"),
    _zh_company,
    _western_company(_PT_LAST, _PT_SUFFIXES, "e"),
    _ja_company,
    _western_company(_FR_LAST, _FR_SUFFIXES, "et"),
)
_PERSON_NAMES = (
    _western_name(_EN_FIRST, _EN_LAST),
    _zh_name,
    _western_name(_PT_FIRST, _PT_LAST),
    _ja_name,
    _western_name(_FR_FIRST, _FR_LAST),
)


def _random_lot(rng: random.Random) -> tuple[int, int]:
    lot_size = math.ceil(100.0 / (rng.random() + 1.0))
    return lot_size, rng.randrange(10, 100) * lot_size


def generate_companies(existing: Companies, n: int, rng: random.Random) -> Companies:
    """``n`` new companies whose symbols differ from those in ``existing``."""
    symbols = set(existing.mapping)
    generated: list[Company] = []
    failures = 0
    allowed_failures = 10 * n

    while len(generated) < n:
        while True:
            name = rng.choice(_COMPANY_NAMES)(rng)
            symbol = CompanySymbol(name.upper().replace(" ", "")[:4])
            if symbol not in symbols:
                symbols.add(symbol)
                break

        company = Company(name=name, symbol=symbol)
        try:
            company.verify()
        except CompanyVerifyError:
            failures += 1
        else:
            generated.append(company)

        if failures > allowed_failures:
            raise GenerationError("Failed to generate companies")

    return Companies({company.symbol: company for company in generated})


def generate_listed_companies(companies: Companies, rng: random.Random) -> ListedCompanies:
    """A listing with random lot size and share count for every company."""
    mapping = {}
    for symbol in sorted(companies.mapping):
        lot_size, total_stocks = _random_lot(rng)
        listed = ListedCompany(lot_size=lot_size, symbol=symbol, total_stocks=total_stocks)
        try:
            listed.verify()
        except ListedCompanyVerifyError as exc:
            raise GenerationError("Failed to generate listed companies") from exc
        mapping[symbol] = listed
    return ListedCompanies(mapping)


def generate_ipos(companies: Companies, time: TimeHandler, rng: random.Random) -> Ipos:
    """An IPO 1 to 29 days ahead for every company."""
    mapping = {}
    for symbol in sorted(companies.mapping):
        lot_size, shares = _random_lot(rng)
        days = rng.randrange(1, 30)
        mapping[symbol] = Ipo(
            symbol=symbol,
            shares=shares,
            lot_size=lot_size,
            date=time.get_n_days_from_now_unix_timestamp(days),
        )
    return Ipos(mapping)


def generate_investors(n: int, time: TimeHandler, rng: random.Random) -> Investors:
    """``n`` valid investors with distinct names and random cash."""
    names: set[str] = set()
    investors = Investors()
    failures = 0
    allowed_failures = 10 * n

    while len(investors.mapping) < n:
        while True:
            name = _PERSON_NAMES[rng.randrange(5)](rng)
            if name not in names:
                names.add(name)
                break

        investor = Investor(
            id=investors.next_id(),
            name=name,
            dob=rng.getrandbits(64) % 1_000_000_000,
            liquid_cash=Money(round_money(rng.random() * 100_000.0), Currency.HKD),
            debt=Money(Decimal("0"), Currency.HKD),
        )
        try:
            investor.verify(time)
        except InvestorVerifyError:
            failures += 1
        else:
            investors.mapping[investor.id] = investor

        if failures > allowed_failures:
            raise GenerationError("Failed to generate investors")

    return investors


def generate_market_makers(n: int, time: TimeHandler, rng: random.Random) -> MarketMakers:
    """``n`` market makers with permits starting now."""
    makers = MarketMakers()
    while len(makers.mapping) < n:
        now = time.get_now_unix_timestamp()
        maker = MarketMaker(
            id=makers.next_id(),
            permit_start_time=now,
            permit_end_time=now + rng.randrange(1_000, 1_000_000),
        )
        try:
            maker.verify(time)
        except MarketMakerVerifyError:
            continue
        makers.mapping[maker.id] = maker
    return makers