from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from .base_types import ZERO
from .income import IncomeSummary, pension_income
from .rules import TaxRuleSet


class FilingRequirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: bool
    reason: str
    recommendation: str | None = None


def pension_filing_requirement(
    pension_revenue: Decimal,
    other_income: Decimal,
    *,
    withholding_tax: Decimal = ZERO,
    is_senior: bool = True,
    rules: TaxRuleSet,
) -> FilingRequirement:
    """Whether a pensioner must file. ``other_income`` is net income from every non-pension source."""
    revenue_limit = rules.pension_filing_revenue_threshold
    other_limit = rules.other_income_filing_threshold

    if pension_revenue > revenue_limit:
        return FilingRequirement(
            required=True,
            reason=f"Pension revenue exceeds {revenue_limit:,} yen, so a tax return is required.",
        )
    if other_income > other_limit:
        return FilingRequirement(
            required=True,
            reason=f"Income other than pension exceeds {other_limit:,} yen, so a tax return is required.",
        )

    reason = (
        f"Pension revenue is {revenue_limit:,} yen or less and other income is {other_limit:,} yen or less, "
        "so no tax return is required."
    )
    net_pension = pension_income(pension_revenue, is_senior=is_senior, other_income=other_income, rules=rules).income
    if withholding_tax > 0 and net_pension == 0:
        return FilingRequirement(
            required=False,
            reason=reason,
            recommendation="Withheld tax is likely to be refunded. Filing a return is recommended.",
        )
    return FilingRequirement(required=False, reason=reason)


def salaried_filing_requirement(non_salary_income: Decimal, *, rules: TaxRuleSet) -> FilingRequirement:
    threshold = rules.other_income_filing_threshold
    if non_salary_income > threshold:
        return FilingRequirement(
            required=True,
            reason=f"Income other than salary exceeds {threshold:,} yen, so a tax return is required.",
        )
    return FilingRequirement(
        required=False,
        reason=f"Income other than salary is {threshold:,} yen or less, so no tax return is required.",
        recommendation="A resident tax declaration may still be needed. Check with your municipality.",
    )


def filing_requirement(summary: IncomeSummary, *, is_senior: bool, rules: TaxRuleSet) -> FilingRequirement:
    """Salary-only taxpayers get the side-income check, pensioners the pensioner check.

    Anyone else with no pension is checked against the same other-income threshold.
    """
    if summary.salary.revenue > 0 and summary.pension.revenue == 0 and summary.business.revenue == 0:
        non_salary = summary.miscellaneous.income + summary.business.income + summary.pension.income
        return salaried_filing_requirement(non_salary, rules=rules)

    other_income = summary.salary.income + summary.business.income + summary.miscellaneous.income
    if summary.pension.revenue == 0:
        return _income_filing_requirement(other_income, withholding_tax=summary.total_withholding, rules=rules)

    return pension_filing_requirement(
        summary.pension.revenue,
        other_income,
        withholding_tax=summary.total_withholding,
        is_senior=is_senior,
        rules=rules,
    )


def _income_filing_requirement(
    total_income: Decimal, *, withholding_tax: Decimal, rules: TaxRuleSet
) -> FilingRequirement:
    threshold = rules.other_income_filing_threshold
    if total_income > threshold:
        return FilingRequirement(
            required=True,
            reason=f"Income exceeds {threshold:,} yen, so a tax return is required.",
        )
    reason = f"Income is {threshold:,} yen or less, so no tax return is required."
    if withholding_tax > 0:
        return FilingRequirement(
            required=False,
            reason=reason,
            recommendation="Withheld tax is likely to be refunded. Filing a return is recommended.",
        )
    return FilingRequirement(required=False, reason=reason)
