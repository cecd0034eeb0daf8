from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from .base_types import ZERO, FilingType, InsuranceKind
from .ledger import DeductionInputs
from .rules import TaxRuleSet, find_tier


class CappedInsurance(BaseModel):
    model_config = ConfigDict(frozen=True)

    per_kind: dict[InsuranceKind, Decimal]
    total: Decimal


class DeductionSet(BaseModel):
    """Finalised personal deductions.

    ``special`` is the blue-filing deduction already subtracted from business
    income; it is kept for display only and is not part of ``total``.
    """

    model_config = ConfigDict(frozen=True)

    social_insurance: Decimal
    life_insurance: Decimal
    medical_care_insurance: Decimal
    private_pension_insurance: Decimal
    insurance_total: Decimal
    earthquake_insurance: Decimal
    spouse: Decimal
    dependent: Decimal
    basic: Decimal
    medical: Decimal
    donation: Decimal
    special: Decimal

    @property
    def total(self) -> Decimal:
        return (
            self.social_insurance
            + self.insurance_total
            + self.earthquake_insurance
            + self.spouse
            + self.dependent
            + self.basic
            + self.medical
            + self.donation
        )


def cap_insurance_premiums(premiums: dict[InsuranceKind, Decimal], rules: TaxRuleSet) -> CappedInsurance:
    per_kind = {
        kind: min(premiums.get(kind, ZERO), rules.insurance_category_cap) for kind in InsuranceKind
    }
    combined = sum(per_kind.values(), start=ZERO)
    return CappedInsurance(per_kind=per_kind, total=min(combined, rules.insurance_combined_cap))


def special_deduction(
    filing_type: FilingType,
    *,
    business_revenue: Decimal,
    business_expenses: Decimal,
    rules: TaxRuleSet,
) -> Decimal:
    """Blue-filing deduction, limited to pre-deduction business profit so it never creates a loss."""
    nominal = rules.blue_special_deduction(filing_type)
    profit = max(ZERO, business_revenue - business_expenses)
    return min(nominal, profit)


def basic_deduction(total_income: Decimal, rules: TaxRuleSet) -> Decimal:
    return find_tier(rules.basic_deduction_tiers, total_income).amount_for(total_income)


def aggregate_deductions(
    inputs: DeductionInputs,
    *,
    total_income: Decimal,
    special: Decimal = ZERO,
    rules: TaxRuleSet,
) -> DeductionSet:
    insurance = cap_insurance_premiums(inputs.premiums_by_kind(), rules)
    return DeductionSet(
        social_insurance=inputs.social_insurance,
        life_insurance=insurance.per_kind[InsuranceKind.LIFE],
        medical_care_insurance=insurance.per_kind[InsuranceKind.MEDICAL_CARE],
        private_pension_insurance=insurance.per_kind[InsuranceKind.PRIVATE_PENSION],
        insurance_total=insurance.total,
        earthquake_insurance=min(inputs.earthquake_insurance, rules.earthquake_insurance_cap),
        spouse=inputs.spouse,
        dependent=inputs.dependent,
        basic=basic_deduction(total_income, rules),
        medical=inputs.medical,
        donation=inputs.donation,
        special=special,
    )
