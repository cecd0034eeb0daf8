from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from .base_types import ZERO, floor_yen
from .rules import TaxRuleSet, find_tier


class TaxComputation(BaseModel):
    model_config = ConfigDict(frozen=True)

    taxable_income: Decimal
    income_tax: Decimal
    reconstruction_surtax: Decimal
    total_tax: Decimal
    withholding_tax: Decimal
    prepaid_tax: Decimal = ZERO
    final_amount: Decimal

    @property
    def is_refund(self) -> bool:
        return self.final_amount < 0

    @property
    def refund_amount(self) -> Decimal:
        return -self.final_amount if self.is_refund else ZERO

    @property
    def amount_due(self) -> Decimal:
        return ZERO if self.is_refund else self.final_amount


def taxable_income(total_income: Decimal, total_deductions: Decimal) -> Decimal:
    return max(ZERO, total_income - total_deductions)


def income_tax(taxable: Decimal, rules: TaxRuleSet) -> Decimal:
    if taxable <= 0:
        return ZERO
    return find_tier(rules.income_tax_brackets, taxable).tax_for(taxable)


def reconstruction_surtax(tax: Decimal, rules: TaxRuleSet) -> Decimal:
    return floor_yen(tax * rules.reconstruction_surtax_rate)


def reconcile(total_tax: Decimal, withholding_tax: Decimal, prepaid_tax: Decimal = ZERO) -> Decimal:
    return total_tax - withholding_tax - prepaid_tax


def settle(
    total_income: Decimal,
    total_deductions: Decimal,
    *,
    withholding_tax: Decimal = ZERO,
    prepaid_tax: Decimal = ZERO,
    rules: TaxRuleSet,
) -> TaxComputation:
    """Run the bracket schedule and reconcile against tax already paid.

    A negative ``final_amount`` is a refund.
    """
    taxable = taxable_income(total_income, total_deductions)
    tax = income_tax(taxable, rules)
    surtax = reconstruction_surtax(tax, rules)
    total = tax + surtax
    return TaxComputation(
        taxable_income=taxable,
        income_tax=tax,
        reconstruction_surtax=surtax,
        total_tax=total,
        withholding_tax=withholding_tax,
        prepaid_tax=prepaid_tax,
        final_amount=reconcile(total, withholding_tax, prepaid_tax),
    )
