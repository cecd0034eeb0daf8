from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from .base_types import ZERO, ExpenseCategory, FilingType, IncomeType
from .closing_inventory import InventoryRecord, inventory_adjustment
from .errors import InvalidEntryError
from .crypto_gains import CryptoGainsReport, compute_crypto_gains
from .deductions import DeductionSet, aggregate_deductions
from .filing_check import FilingRequirement, filing_requirement
from .income import IncomeBreakdown, is_age_or_older, summarize_business_ledger, summarize_income
from .ledger import (
    BusinessProfile,
    CryptoTradeEntry,
    DeductionInputs,
    IncomeEntry,
    LedgerEntry,
    validate_entries,
)
from .loans import LoanRepayment, yearly_repayment_summary
from .payroll import PayrollEntry, payroll_expense
from .rules import TaxRuleSet, rules_for
from .tax import settle

logger = logging.getLogger(__name__)


class BusinessExpenses(BaseModel):
    model_config = ConfigDict(frozen=True)

    by_category: dict[ExpenseCategory, Decimal]
    loan_interest: Decimal = ZERO
    payroll: Decimal = ZERO
    inventory_adjustment: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return sum(self.by_category.values(), start=ZERO) + self.loan_interest + self.payroll + self.inventory_adjustment


class TaxReturnResult(BaseModel):
    """Computed return for one fiscal year. A negative ``final_amount`` is a refund."""

    model_config = ConfigDict(frozen=True)

    fiscal_year: int
    filing_type: FilingType
    business: IncomeBreakdown
    business_expenses: BusinessExpenses
    salary: IncomeBreakdown
    pension: IncomeBreakdown
    miscellaneous: IncomeBreakdown
    crypto: CryptoGainsReport
    total_revenue: Decimal
    total_income: Decimal
    deductions: DeductionSet
    total_deductions: Decimal
    taxable_income: Decimal
    income_tax: Decimal
    reconstruction_surtax: Decimal
    total_tax: Decimal
    withholding_tax: Decimal
    prepaid_tax: Decimal
    final_amount: Decimal
    filing_requirement: FilingRequirement

    @property
    def is_refund(self) -> bool:
        return self.final_amount < 0

    @property
    def refund_amount(self) -> Decimal:
        return -self.final_amount if self.is_refund else ZERO


def compute_tax_return(
    ledger_entries: Sequence[LedgerEntry],
    income_entries: Sequence[IncomeEntry],
    crypto_trades: Sequence[CryptoTradeEntry],
    business_profile: BusinessProfile,
    deduction_inputs: DeductionInputs,
    fiscal_year: int,
    *,
    loan_repayments: Sequence[LoanRepayment] = (),
    inventory_record: InventoryRecord | None = None,
    payroll_entries: Sequence[PayrollEntry] = (),
    rules: TaxRuleSet | None = None,
) -> TaxReturnResult:
    """Run the whole pipeline: crypto gains, income per type, deductions, tax and settlement.

    Pure over its arguments. Every entry is validated before anything is computed.
    """
    validate_entries(ledger_entries, income_entries, crypto_trades)
    rules = rules or rules_for(fiscal_year)

    if business_profile.fiscal_year != fiscal_year:
        logger.info(
            "Using business profile of fiscal year %d for fiscal year %d", business_profile.fiscal_year, fiscal_year
        )

    inventory_change = ZERO
    if inventory_record is not None:
        if inventory_record.fiscal_year != fiscal_year:
            raise InvalidEntryError(
                f"Inventory record of fiscal year {inventory_record.fiscal_year} used for fiscal year {fiscal_year}",
                entry=inventory_record,
                field="fiscal_year",
            )
        inventory_change = inventory_adjustment(inventory_record)

    ledger = summarize_business_ledger(
        ledger_entries,
        fiscal_year=fiscal_year,
        home_office_ratio=business_profile.home_office_ratio,
    )
    expenses = BusinessExpenses(
        by_category=ledger.expenses,
        loan_interest=yearly_repayment_summary(loan_repayments, fiscal_year=fiscal_year).total_interest,
        payroll=payroll_expense(payroll_entries, fiscal_year=fiscal_year),
        inventory_adjustment=inventory_change,
    )

    other_misc = sum(
        (
            entry.amount
            for entry in income_entries
            if entry.fiscal_year == fiscal_year and entry.income_type == IncomeType.MISCELLANEOUS
        ),
        start=ZERO,
    )
    crypto = compute_crypto_gains(crypto_trades, fiscal_year=fiscal_year, other_misc_income=other_misc, rules=rules)

    is_senior = is_age_or_older(business_profile.birth_date, fiscal_year, rules.pension_age_threshold)
    income = summarize_income(
        income_entries,
        fiscal_year=fiscal_year,
        ledger_revenue=ledger.revenue,
        business_expenses=expenses.total,
        filing_type=business_profile.filing_type,
        crypto_gain=crypto.total_realized_gain,
        is_senior=is_senior,
        rules=rules,
    )

    deductions = aggregate_deductions(
        deduction_inputs,
        total_income=income.total_income,
        special=income.special_deduction,
        rules=rules,
    )
    withholding = income.total_withholding + business_profile.total_withholding
    tax = settle(
        income.total_income,
        deductions.total,
        withholding_tax=withholding,
        prepaid_tax=business_profile.prepaid_tax,
        rules=rules,
    )

    logger.debug(
        "Fiscal year %d: total income=%s deductions=%s taxable=%s tax=%s final=%s",
        fiscal_year,
        income.total_income,
        deductions.total,
        tax.taxable_income,
        tax.total_tax,
        tax.final_amount,
    )

    return TaxReturnResult(
        fiscal_year=fiscal_year,
        filing_type=business_profile.filing_type,
        business=income.business,
        business_expenses=expenses,
        salary=income.salary,
        pension=income.pension,
        miscellaneous=income.miscellaneous,
        crypto=crypto,
        total_revenue=income.total_revenue,
        total_income=income.total_income,
        deductions=deductions,
        total_deductions=deductions.total,
        taxable_income=tax.taxable_income,
        income_tax=tax.income_tax,
        reconstruction_surtax=tax.reconstruction_surtax,
        total_tax=tax.total_tax,
        withholding_tax=withholding,
        prepaid_tax=tax.prepaid_tax,
        final_amount=tax.final_amount,
        filing_requirement=filing_requirement(income, is_senior=is_senior, rules=rules),
    )
