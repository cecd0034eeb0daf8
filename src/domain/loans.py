from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Iterable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .base_types import ZERO, EntryId


class LoanType(StrEnum):
    BANK = "bank"
    POLICY = "policy"
    CREDIT_UNION = "credit_union"
    RELATIVES = "relatives"
    OTHER = "other"


class RepaymentFrequency(StrEnum):
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    IRREGULAR = "irregular"


class Loan(BaseModel):
    """A business loan. ``opening_balance`` is the balance at the start of the fiscal year."""

    model_config = ConfigDict(frozen=True)

    id: EntryId = EntryId(Field(default_factory=uuid4))
    fiscal_year: int
    lender_name: str
    loan_type: LoanType = LoanType.BANK
    purpose: str | None = None
    original_amount: Decimal = Field(ge=0)
    opening_balance: Decimal = Field(ge=0)
    interest_rate: Decimal | None = None
    repayment_frequency: RepaymentFrequency = RepaymentFrequency.MONTHLY
    monthly_repayment: Decimal | None = None


class LoanRepayment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: EntryId = EntryId(Field(default_factory=uuid4))
    loan_id: EntryId
    repayment_date: date
    principal_amount: Decimal = Field(ge=0)
    interest_amount: Decimal = Field(ge=0)
    balance_after: Decimal | None = None
    is_estimated: bool = False
    notes: str | None = None

    @property
    def total_amount(self) -> Decimal:
        return self.principal_amount + self.interest_amount


class RepaymentSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_principal: Decimal = ZERO
    total_interest: Decimal = ZERO
    total_amount: Decimal = ZERO
    repayment_count: int = 0


def yearly_repayment_summary(repayments: Iterable[LoanRepayment], *, fiscal_year: int | None = None) -> RepaymentSummary:
    selected = [
        repayment
        for repayment in repayments
        if fiscal_year is None or repayment.repayment_date.year == fiscal_year
    ]
    return RepaymentSummary(
        total_principal=sum((repayment.principal_amount for repayment in selected), start=ZERO),
        total_interest=sum((repayment.interest_amount for repayment in selected), start=ZERO),
        total_amount=sum((repayment.total_amount for repayment in selected), start=ZERO),
        repayment_count=len(selected),
    )


def ending_balance(loan: Loan, repayments: Iterable[LoanRepayment]) -> Decimal:
    paid = sum((repayment.principal_amount for repayment in repayments if repayment.loan_id == loan.id), start=ZERO)
    return loan.opening_balance - paid


def _parse_month(value: str) -> date:
    try:
        year, month = value.split("-")
        return date(int(year), int(month), 1)
    except ValueError as err:
        msg = f"Expected a YYYY-MM month, got {value!r}"
        raise ValueError(msg) from err


def _next_month(value: date) -> date:
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def generate_bulk_repayments(
    loan: Loan,
    start_month: str,
    end_month: str,
    *,
    monthly_principal: Decimal,
    monthly_interest: Decimal,
) -> list[LoanRepayment]:
    """Estimated repayments on the first of each month from ``start_month`` to ``end_month`` inclusive.

    The running balance is reported floored at zero.
    """
    current = _parse_month(start_month)
    end = _parse_month(end_month)
    balance = loan.opening_balance
    repayments: list[LoanRepayment] = []

    while current <= end:
        balance -= monthly_principal
        repayments.append(
            LoanRepayment(
                loan_id=loan.id,
                repayment_date=current,
                principal_amount=monthly_principal,
                interest_amount=monthly_interest,
                balance_after=max(ZERO, balance),
                is_estimated=True,
            )
        )
        current = _next_month(current)

    return repayments
