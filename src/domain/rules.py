"""Statutory rule tables for Japanese individual income tax.

Every bracket, cap and threshold used by the calculators lives here. A change
in tax law is a new ``TaxRuleSet`` entry in ``RULE_SETS``; the calculators
never hard-code amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

from .base_types import ExpenseCategory, FilingType, HomeOfficeKey, floor_yen
from .errors import ConfigurationError


@dataclass(frozen=True)
class CategoryRule:
    account_title: str
    deductible: bool = True
    apportionment: HomeOfficeKey | None = None


CATEGORY_RULES: dict[ExpenseCategory, CategoryRule] = {
    ExpenseCategory.TRAVEL: CategoryRule("旅費交通費"),
    ExpenseCategory.COMMUNICATION: CategoryRule("通信費", apportionment=HomeOfficeKey.INTERNET),
    ExpenseCategory.ENTERTAINMENT: CategoryRule("接待交際費"),
    ExpenseCategory.SUPPLIES: CategoryRule("消耗品費"),
    ExpenseCategory.BOOKS: CategoryRule("新聞図書費"),
    ExpenseCategory.ADVERTISING: CategoryRule("広告宣伝費"),
    ExpenseCategory.OUTSOURCING: CategoryRule("外注費"),
    ExpenseCategory.RENT: CategoryRule("地代家賃", apportionment=HomeOfficeKey.RENT),
    ExpenseCategory.UTILITIES: CategoryRule("水道光熱費", apportionment=HomeOfficeKey.UTILITIES),
    ExpenseCategory.FEES: CategoryRule("支払手数料"),
    ExpenseCategory.INSURANCE: CategoryRule("保険料"),
    ExpenseCategory.DEPRECIATION: CategoryRule("減価償却費"),
    ExpenseCategory.MISCELLANEOUS: CategoryRule("雑費"),
}


def category_rule(category: ExpenseCategory) -> CategoryRule:
    try:
        return CATEGORY_RULES[category]
    except KeyError as err:
        raise ConfigurationError(f"No category rule for {category}") from err


class _Tier(Protocol):
    @property
    def up_to(self) -> Decimal | None: ...


TierT = TypeVar("TierT", bound=_Tier)


class TaxBracket(BaseModel):
    """Progressive bracket: tax = floor(taxable * rate - deduction) while taxable <= up_to."""

    model_config = ConfigDict(frozen=True)

    up_to: Decimal | None
    rate: Decimal
    deduction: Decimal

    def tax_for(self, taxable_income: Decimal) -> Decimal:
        return floor_yen(taxable_income * self.rate - self.deduction)


class DeductionTier(BaseModel):
    """Deduction tier: amount = floor(value * rate + fixed) while value <= up_to."""

    model_config = ConfigDict(frozen=True)

    up_to: Decimal | None
    rate: Decimal = Decimal(0)
    fixed: Decimal = Decimal(0)

    def amount_for(self, value: Decimal) -> Decimal:
        return floor_yen(value * self.rate + self.fixed)


class PensionDeductionTable(BaseModel):
    """Pension deduction tiers that apply while non-pension income is <= other_income_up_to."""

    model_config = ConfigDict(frozen=True)

    other_income_up_to: Decimal | None
    under_age: list[DeductionTier]
    at_or_over_age: list[DeductionTier]

    @property
    def up_to(self) -> Decimal | None:
        return self.other_income_up_to


def find_tier(tiers: Sequence[TierT], value: Decimal) -> TierT:
    """Return the first tier whose upper bound covers ``value``."""
    for tier in tiers:
        if tier.up_to is None or value <= tier.up_to:
            return tier
    raise ConfigurationError(f"No tier covers value {value}")


def _check_tiers(name: str, tiers: Sequence[_Tier]) -> None:
    if not tiers:
        raise ValueError(f"{name} must not be empty")
    bounds = [tier.up_to for tier in tiers]
    if bounds[-1] is not None:
        raise ValueError(f"{name} must end with an unbounded tier")
    finite = bounds[:-1]
    if any(bound is None for bound in finite):
        raise ValueError(f"{name} may only have one unbounded tier, at the end")
    if finite != sorted(finite) or len(set(finite)) != len(finite):
        raise ValueError(f"{name} must be strictly ascending")


class TaxRuleSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    effective_from: int
    income_tax_brackets: list[TaxBracket]
    reconstruction_surtax_rate: Decimal
    basic_deduction_tiers: list[DeductionTier]
    salary_deduction_tiers: list[DeductionTier]
    pension_deduction_tables: list[PensionDeductionTable]
    pension_age_threshold: int = 65
    blue_special_deductions: dict[FilingType, Decimal]
    insurance_category_cap: Decimal
    insurance_combined_cap: Decimal
    earthquake_insurance_cap: Decimal
    crypto_filing_threshold: Decimal
    pension_filing_revenue_threshold: Decimal
    other_income_filing_threshold: Decimal

    @model_validator(mode="after")
    def _validate_tables(self) -> TaxRuleSet:
        _check_tiers("income_tax_brackets", self.income_tax_brackets)
        _check_tiers("basic_deduction_tiers", self.basic_deduction_tiers)
        _check_tiers("salary_deduction_tiers", self.salary_deduction_tiers)
        _check_tiers("pension_deduction_tables", self.pension_deduction_tables)
        for table in self.pension_deduction_tables:
            _check_tiers("pension under_age tiers", table.under_age)
            _check_tiers("pension at_or_over_age tiers", table.at_or_over_age)
        missing = set(FilingType) - set(self.blue_special_deductions)
        if missing:
            raise ValueError(f"blue_special_deductions missing filing types: {sorted(missing)}")
        return self

    def blue_special_deduction(self, filing_type: FilingType) -> Decimal:
        return self.blue_special_deductions[filing_type]


def _yen(value: int | str) -> Decimal:
    return Decimal(value)


def _full(up_to: int) -> DeductionTier:
    """Tier where the whole amount is deducted."""
    return DeductionTier(up_to=_yen(up_to), rate=Decimal(1))


def _fixed(up_to: int | None, amount: int) -> DeductionTier:
    return DeductionTier(up_to=None if up_to is None else _yen(up_to), fixed=_yen(amount))


def _linear(up_to: int, rate: str, fixed: int) -> DeductionTier:
    return DeductionTier(up_to=_yen(up_to), rate=Decimal(rate), fixed=_yen(fixed))


def _pension_table(*, other_income_up_to: int | None, offset: int) -> PensionDeductionTable:
    """Build the under-65 / 65+ pair for one band of non-pension income.

    ``offset`` is the reduction applied once non-pension income exceeds 10M (100,000) or 20M (200,000).
    """

    def tiers(minimum: int, minimum_up_to: int) -> list[DeductionTier]:
        return [
            _full(minimum),
            _fixed(minimum_up_to, minimum),
            _linear(4_100_000, "0.25", 275_000 - offset),
            _linear(7_700_000, "0.15", 685_000 - offset),
            _linear(10_000_000, "0.05", 1_455_000 - offset),
            _fixed(None, 1_955_000 - offset),
        ]

    return PensionDeductionTable(
        other_income_up_to=None if other_income_up_to is None else _yen(other_income_up_to),
        under_age=tiers(600_000 - offset, 1_300_000),
        at_or_over_age=tiers(1_100_000 - offset, 3_300_000),
    )


_INCOME_TAX_BRACKETS = [
    TaxBracket(up_to=_yen(1_950_000), rate=Decimal("0.05"), deduction=_yen(0)),
    TaxBracket(up_to=_yen(3_300_000), rate=Decimal("0.10"), deduction=_yen(97_500)),
    TaxBracket(up_to=_yen(6_950_000), rate=Decimal("0.20"), deduction=_yen(427_500)),
    TaxBracket(up_to=_yen(9_000_000), rate=Decimal("0.23"), deduction=_yen(636_000)),
    TaxBracket(up_to=_yen(18_000_000), rate=Decimal("0.33"), deduction=_yen(1_536_000)),
    TaxBracket(up_to=_yen(40_000_000), rate=Decimal("0.40"), deduction=_yen(2_796_000)),
    TaxBracket(up_to=None, rate=Decimal("0.45"), deduction=_yen(4_796_000)),
]

_PENSION_TABLES = [
    _pension_table(other_income_up_to=10_000_000, offset=0),
    _pension_table(other_income_up_to=20_000_000, offset=100_000),
    _pension_table(other_income_up_to=None, offset=200_000),
]

_BLUE_SPECIAL_DEDUCTIONS = {
    FilingType.WHITE: _yen(0),
    FilingType.BLUE_SIMPLE: _yen(100_000),
    FilingType.BLUE_REGULAR: _yen(550_000),
    FilingType.BLUE_ETAX: _yen(650_000),
}

_COMMON = dict(
    income_tax_brackets=_INCOME_TAX_BRACKETS,
    reconstruction_surtax_rate=Decimal("0.021"),
    pension_deduction_tables=_PENSION_TABLES,
    blue_special_deductions=_BLUE_SPECIAL_DEDUCTIONS,
    insurance_category_cap=_yen(40_000),
    insurance_combined_cap=_yen(120_000),
    earthquake_insurance_cap=_yen(50_000),
    crypto_filing_threshold=_yen(200_000),
    pension_filing_revenue_threshold=_yen(4_000_000),
    other_income_filing_threshold=_yen(200_000),
)

RULES_2020 = TaxRuleSet(
    effective_from=2020,
    basic_deduction_tiers=[
        _fixed(24_000_000, 480_000),
        _fixed(24_500_000, 320_000),
        _fixed(25_000_000, 160_000),
        _fixed(None, 0),
    ],
    salary_deduction_tiers=[
        _full(550_000),
        _fixed(1_625_000, 550_000),
        _linear(1_800_000, "0.4", -100_000),
        _linear(3_600_000, "0.3", 80_000),
        _linear(6_600_000, "0.2", 440_000),
        _linear(8_500_000, "0.1", 1_100_000),
        _fixed(None, 1_950_000),
    ],
    **_COMMON,
)

RULES_2025 = TaxRuleSet(
    effective_from=2025,
    basic_deduction_tiers=[
        _fixed(1_320_000, 950_000),
        _fixed(3_360_000, 880_000),
        _fixed(4_890_000, 680_000),
        _fixed(6_550_000, 630_000),
        _fixed(23_500_000, 580_000),
        _fixed(24_000_000, 480_000),
        _fixed(24_500_000, 320_000),
        _fixed(25_000_000, 160_000),
        _fixed(None, 0),
    ],
    salary_deduction_tiers=[
        _full(650_000),
        _fixed(1_900_000, 650_000),
        _linear(3_600_000, "0.3", 80_000),
        _linear(6_600_000, "0.2", 440_000),
        _linear(8_500_000, "0.1", 1_100_000),
        _fixed(None, 1_950_000),
    ],
    **_COMMON,
)

RULE_SETS: tuple[TaxRuleSet, ...] = (RULES_2020, RULES_2025)


def rules_for(fiscal_year: int) -> TaxRuleSet:
    """Newest rule set already in force for ``fiscal_year``."""
    applicable = [rules for rules in RULE_SETS if rules.effective_from <= fiscal_year]
    if not applicable:
        raise ConfigurationError(f"No tax rules in force for fiscal year {fiscal_year}")
    return max(applicable, key=lambda rules: rules.effective_from)
