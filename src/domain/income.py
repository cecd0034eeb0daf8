from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .base_types import ZERO, ExpenseCategory, FilingType, IncomeType, floor_yen
from .deductions import special_deduction
from .ledger import HomeOfficeRatio, IncomeEntry, LedgerEntry
from .rules import TaxRuleSet, category_rule, find_tier

logger = logging.getLogger(__name__)


class IncomeBreakdown(BaseModel):
    """Gross revenue, the statutory deduction applied to it, and the resulting net income."""

    model_config = ConfigDict(frozen=True)

    revenue: Decimal
    deduction: Decimal
    income: Decimal


class BusinessLedgerSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    revenue: Decimal
    expenses: dict[ExpenseCategory, Decimal]
    uncategorized_expenses: Decimal

    @property
    def total_expenses(self) -> Decimal:
        return sum(self.expenses.values(), start=ZERO)


class IncomeSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    business: IncomeBreakdown
    salary: IncomeBreakdown
    pension: IncomeBreakdown
    miscellaneous: IncomeBreakdown
    crypto_gain: Decimal
    special_deduction: Decimal
    total_withholding: Decimal

    @property
    def total_revenue(self) -> Decimal:
        return self.business.revenue + self.salary.revenue + self.pension.revenue + self.miscellaneous.revenue

    @property
    def total_income(self) -> Decimal:
        return self.business.income + self.salary.income + self.pension.income + self.miscellaneous.income


def apportion(amount: Decimal, ratio_percent: Decimal | None) -> Decimal:
    """Business share of a mixed-use expense; ``None`` means fully business use."""
    if ratio_percent is None:
        return amount
    return floor_yen(amount * ratio_percent / 100)


def summarize_business_ledger(
    entries: Iterable[LedgerEntry],
    *,
    fiscal_year: int,
    home_office_ratio: HomeOfficeRatio | None = None,
) -> BusinessLedgerSummary:
    """Revenue and deductible expenses by category from approved ledger entries.

    Mixed-use categories are apportioned once per category total, not per entry.
    """
    ratio = home_office_ratio or HomeOfficeRatio()
    revenue = ZERO
    raw_expenses: dict[ExpenseCategory, Decimal] = defaultdict(lambda: ZERO)
    uncategorized = ZERO
    skipped_out_of_year = 0

    for entry in entries:
        if not entry.counts_toward_totals:
            continue
        if entry.transaction_date.year != fiscal_year:
            skipped_out_of_year += 1
            continue
        if entry.is_revenue:
            revenue += -entry.amount
        elif entry.category is None:
            uncategorized += entry.amount
        elif category_rule(entry.category).deductible:
            raw_expenses[entry.category] += entry.amount

    if skipped_out_of_year:
        logger.info("Ignored %d ledger entries dated outside fiscal year %d", skipped_out_of_year, fiscal_year)

    expenses: dict[ExpenseCategory, Decimal] = {}
    for category in ExpenseCategory:
        if category not in raw_expenses:
            continue
        rule = category_rule(category)
        share = ratio.ratio_for(rule.apportionment) if rule.apportionment is not None else None
        expenses[category] = apportion(raw_expenses[category], share)

    return BusinessLedgerSummary(revenue=revenue, expenses=expenses, uncategorized_expenses=uncategorized)


def age_on(birth_date: date, on: date) -> int:
    age = on.year - birth_date.year
    if (on.month, on.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def is_age_or_older(birth_date: date | None, fiscal_year: int, age: int = 65) -> bool:
    """Age is taken on 31 December of the fiscal year; an unknown birth date counts as younger."""
    if birth_date is None:
        return False
    return age_on(birth_date, date(fiscal_year, 12, 31)) >= age


def business_income(revenue: Decimal, expenses: Decimal, special_deduction: Decimal) -> IncomeBreakdown:
    profit = max(ZERO, revenue - expenses)
    applied = min(special_deduction, profit)
    return IncomeBreakdown(revenue=revenue, deduction=expenses + applied, income=max(ZERO, profit - applied))


def salary_income(gross: Decimal, rules: TaxRuleSet) -> IncomeBreakdown:
    if gross <= 0:
        return IncomeBreakdown(revenue=gross, deduction=ZERO, income=ZERO)
    deduction = find_tier(rules.salary_deduction_tiers, gross).amount_for(gross)
    return IncomeBreakdown(revenue=gross, deduction=deduction, income=max(ZERO, gross - deduction))


def pension_deduction(
    gross: Decimal,
    *,
    is_senior: bool,
    other_income: Decimal = ZERO,
    rules: TaxRuleSet,
) -> Decimal:
    if gross <= 0:
        return ZERO
    table = find_tier(rules.pension_deduction_tables, other_income)
    tiers = table.at_or_over_age if is_senior else table.under_age
    return find_tier(tiers, gross).amount_for(gross)


def pension_income(
    gross: Decimal,
    *,
    is_senior: bool,
    other_income: Decimal = ZERO,
    rules: TaxRuleSet,
) -> IncomeBreakdown:
    deduction = pension_deduction(gross, is_senior=is_senior, other_income=other_income, rules=rules)
    return IncomeBreakdown(revenue=gross, deduction=deduction, income=max(ZERO, gross - deduction))


def miscellaneous_income(gross: Decimal) -> IncomeBreakdown:
    # No statutory deduction applies to this category.
    return IncomeBreakdown(revenue=gross, deduction=ZERO, income=gross)


def revenue_by_type(entries: Iterable[IncomeEntry], *, fiscal_year: int) -> tuple[dict[IncomeType, Decimal], Decimal]:
    """Gross revenue per income type and the total withheld tax for entries of ``fiscal_year``."""
    totals = {income_type: ZERO for income_type in IncomeType}
    withheld = ZERO
    skipped = 0
    for entry in entries:
        if entry.fiscal_year != fiscal_year:
            skipped += 1
            continue
        totals[entry.income_type] += entry.amount
        withheld += entry.withholding_tax

    if skipped:
        logger.info("Ignored %d income entries recorded for another fiscal year than %d", skipped, fiscal_year)
    return totals, withheld


def summarize_income(
    income_entries: Iterable[IncomeEntry],
    *,
    fiscal_year: int,
    ledger_revenue: Decimal = ZERO,
    business_expenses: Decimal = ZERO,
    filing_type: FilingType = FilingType.WHITE,
    crypto_gain: Decimal = ZERO,
    is_senior: bool = False,
    rules: TaxRuleSet,
) -> IncomeSummary:
    """Net income per type. The pension deduction depends on the other three, so it is computed last."""
    revenue, withheld = revenue_by_type(income_entries, fiscal_year=fiscal_year)

    business_revenue = revenue[IncomeType.BUSINESS] + ledger_revenue
    special = special_deduction(
        filing_type, business_revenue=business_revenue, business_expenses=business_expenses, rules=rules
    )
    business = business_income(business_revenue, business_expenses, special)
    salary = salary_income(revenue[IncomeType.SALARY], rules)
    # A crypto loss never reduces other income.
    counted_crypto = max(ZERO, crypto_gain)
    miscellaneous = miscellaneous_income(revenue[IncomeType.MISCELLANEOUS] + counted_crypto)

    other_income = business.income + salary.income + miscellaneous.income
    pension = pension_income(
        revenue[IncomeType.PENSION],
        is_senior=is_senior,
        other_income=other_income,
        rules=rules,
    )

    return IncomeSummary(
        business=business,
        salary=salary,
        pension=pension,
        miscellaneous=miscellaneous,
        crypto_gain=counted_crypto,
        special_deduction=special,
        total_withholding=withheld,
    )
