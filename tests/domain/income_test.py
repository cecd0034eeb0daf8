import logging
from datetime import date
from decimal import Decimal

import pytest

from domain.base_types import ExpenseCategory, FilingType, IncomeType, TransactionStatus
from domain.income import (
    apportion,
    business_income,
    is_age_or_older,
    pension_income,
    salary_income,
    summarize_business_ledger,
    summarize_income,
)
from domain.ledger import HomeOfficeRatio
from domain.rules import RULES_2025, TaxRuleSet
from tests.constants import FISCAL_YEAR
from tests.helpers.entries import expense, income, revenue


@pytest.mark.parametrize(
    ("gross", "expected_income"),
    [
        (0, 0),
        (500_000, 0),
        (1_800_000, 1_180_000),
        (5_000_000, 3_560_000),
        (10_000_000, 8_050_000),
    ],
)
def test_salary_income_2020_table(gross: int, expected_income: int, rules: TaxRuleSet) -> None:
    assert salary_income(Decimal(gross), rules).income == Decimal(expected_income)


def test_salary_income_2025_raises_minimum_deduction() -> None:
    breakdown = salary_income(Decimal(1_800_000), RULES_2025)

    assert breakdown.deduction == Decimal(650_000)
    assert breakdown.income == Decimal(1_150_000)


def test_pension_income_uses_senior_table(rules: TaxRuleSet) -> None:
    senior = pension_income(Decimal(3_000_000), is_senior=True, rules=rules)
    younger = pension_income(Decimal(3_000_000), is_senior=False, rules=rules)

    assert senior.deduction == Decimal(1_100_000)
    assert senior.income == Decimal(1_900_000)
    assert younger.deduction == Decimal(1_025_000)
    assert younger.income == Decimal(1_975_000)


def test_pension_deduction_shrinks_with_high_other_income(rules: TaxRuleSet) -> None:
    breakdown = pension_income(
        Decimal(3_000_000), is_senior=True, other_income=Decimal(15_000_000), rules=rules
    )

    assert breakdown.deduction == Decimal(1_000_000)


def test_pension_deduction_is_capped_for_large_pensions(rules: TaxRuleSet) -> None:
    assert pension_income(Decimal(12_000_000), is_senior=True, rules=rules).deduction == Decimal(1_955_000)


@pytest.mark.parametrize(
    ("birth_date", "fiscal_year", "expected"),
    [
        (date(1954, 6, 15), 2024, True),
        (date(1960, 1, 1), 2024, False),
        (date(1960, 1, 1), 2025, True),
        (date(1959, 12, 31), 2024, True),
        (None, 2024, False),
    ],
)
def test_age_is_taken_on_december_31(birth_date: date | None, fiscal_year: int, expected: bool) -> None:
    assert is_age_or_older(birth_date, fiscal_year) is expected


def test_apportion_floors_business_share() -> None:
    assert apportion(Decimal(100_001), Decimal(30)) == Decimal(30_000)
    assert apportion(Decimal(100_001), None) == Decimal(100_001)


def test_business_ledger_summary(caplog: pytest.LogCaptureFixture) -> None:
    entries = [
        revenue(5_000_000),
        expense(1_000_000, ExpenseCategory.SUPPLIES),
        expense(1_200_000, ExpenseCategory.RENT),
        expense(100_001, ExpenseCategory.COMMUNICATION),
        expense(50_000, None),
        expense(999, ExpenseCategory.SUPPLIES, status=TransactionStatus.PENDING),
        expense(777, ExpenseCategory.SUPPLIES, status=TransactionStatus.EXCLUDED),
        expense(4_000, ExpenseCategory.TRAVEL, on=date(FISCAL_YEAR - 1, 12, 31)),
    ]
    ratio = HomeOfficeRatio(rent=Decimal(50), internet=Decimal(30))

    with caplog.at_level(logging.INFO, logger="domain.income"):
        summary = summarize_business_ledger(entries, fiscal_year=FISCAL_YEAR, home_office_ratio=ratio)

    assert summary.revenue == Decimal(5_000_000)
    assert summary.expenses == {
        ExpenseCategory.SUPPLIES: Decimal(1_000_000),
        ExpenseCategory.RENT: Decimal(600_000),
        ExpenseCategory.COMMUNICATION: Decimal(30_000),
    }
    assert summary.total_expenses == Decimal(1_630_000)
    assert summary.uncategorized_expenses == Decimal(50_000)
    assert "Ignored 1 ledger entries" in caplog.text


def test_apportionment_is_applied_to_category_total() -> None:
    entries = [expense(333, ExpenseCategory.RENT), expense(333, ExpenseCategory.RENT)]

    summary = summarize_business_ledger(
        entries, fiscal_year=FISCAL_YEAR, home_office_ratio=HomeOfficeRatio(rent=Decimal(50))
    )

    assert summary.expenses[ExpenseCategory.RENT] == Decimal(333)


def test_modified_entries_count_toward_totals() -> None:
    entries = [expense(10_000, ExpenseCategory.BOOKS, status=TransactionStatus.MODIFIED)]

    summary = summarize_business_ledger(entries, fiscal_year=FISCAL_YEAR)

    assert summary.expenses == {ExpenseCategory.BOOKS: Decimal(10_000)}


def test_business_scenario_with_blue_etax_deduction(rules: TaxRuleSet) -> None:
    summary = summarize_income(
        [],
        fiscal_year=FISCAL_YEAR,
        ledger_revenue=Decimal(5_000_000),
        business_expenses=Decimal(2_000_000),
        filing_type=FilingType.BLUE_ETAX,
        rules=rules,
    )

    assert summary.special_deduction == Decimal(650_000)
    assert summary.business.income == Decimal(2_350_000)
    assert summary.total_income == Decimal(2_350_000)


def test_business_income_never_negative() -> None:
    loss = business_income(Decimal(500_000), Decimal(800_000), Decimal(0))

    assert loss.income == 0


def test_business_income_entries_add_to_ledger_revenue(rules: TaxRuleSet) -> None:
    summary = summarize_income(
        [income(IncomeType.BUSINESS, 1_000_000)],
        fiscal_year=FISCAL_YEAR,
        ledger_revenue=Decimal(2_000_000),
        rules=rules,
    )

    assert summary.business.revenue == Decimal(3_000_000)


def test_crypto_loss_does_not_reduce_miscellaneous_income(rules: TaxRuleSet) -> None:
    with_loss = summarize_income(
        [income(IncomeType.MISCELLANEOUS, 100_000)],
        fiscal_year=FISCAL_YEAR,
        crypto_gain=Decimal(-300_000),
        rules=rules,
    )
    with_gain = summarize_income(
        [income(IncomeType.MISCELLANEOUS, 100_000)],
        fiscal_year=FISCAL_YEAR,
        crypto_gain=Decimal(50_000),
        rules=rules,
    )

    assert with_loss.miscellaneous.income == Decimal(100_000)
    assert with_loss.crypto_gain == 0
    assert with_gain.miscellaneous.income == Decimal(150_000)


def test_pension_uses_other_income_band(rules: TaxRuleSet) -> None:
    summary = summarize_income(
        [income(IncomeType.SALARY, 15_000_000), income(IncomeType.PENSION, 3_000_000)],
        fiscal_year=FISCAL_YEAR,
        is_senior=True,
        rules=rules,
    )

    assert summary.salary.income == Decimal(13_050_000)
    assert summary.pension.deduction == Decimal(1_000_000)
    assert summary.total_income == Decimal(15_050_000)


def test_income_entries_of_other_years_are_ignored(rules: TaxRuleSet, caplog: pytest.LogCaptureFixture) -> None:
    entries = [
        income(IncomeType.MISCELLANEOUS, 100_000, withholding=10_210),
        income(IncomeType.MISCELLANEOUS, 900_000, withholding=91_890, fiscal_year=FISCAL_YEAR - 1),
    ]

    with caplog.at_level(logging.INFO, logger="domain.income"):
        summary = summarize_income(entries, fiscal_year=FISCAL_YEAR, rules=rules)

    assert summary.miscellaneous.revenue == Decimal(100_000)
    assert summary.total_withholding == Decimal(10_210)
    assert "Ignored 1 income entries" in caplog.text
