from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Iterable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .base_types import ZERO, EntryId, floor_yen


class EmployeeType(StrEnum):
    PART_TIME = "part_time"
    FULL_TIME = "full_time"


class PayrollDeductions(BaseModel):
    model_config = ConfigDict(frozen=True)

    income_tax: Decimal = Field(default=ZERO, ge=0)
    health_insurance: Decimal = Field(default=ZERO, ge=0)
    pension_insurance: Decimal = Field(default=ZERO, ge=0)
    employment_insurance: Decimal = Field(default=ZERO, ge=0)
    other: Decimal = Field(default=ZERO, ge=0)

    @property
    def total(self) -> Decimal:
        return self.income_tax + self.health_insurance + self.pension_insurance + self.employment_insurance + self.other


class PayrollEntry(BaseModel):
    """Wages paid to one employee. ``gross_amount`` is the business expense."""

    model_config = ConfigDict(frozen=True)

    id: EntryId = EntryId(Field(default_factory=uuid4))
    employee_name: str
    employee_type: EmployeeType
    payment_date: date
    gross_amount: Decimal = Field(ge=0)
    deductions: PayrollDeductions = Field(default_factory=PayrollDeductions)
    position: str | None = None
    notes: str | None = None

    @property
    def net_amount(self) -> Decimal:
        return self.gross_amount - self.deductions.total


class PayCalculation(BaseModel):
    model_config = ConfigDict(frozen=True)

    gross_amount: Decimal
    total_deductions: Decimal
    net_amount: Decimal


class EmployeePayrollSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    employee_name: str
    total_amount: Decimal
    payment_count: int


def part_time_pay(work_hours: Decimal, hourly_rate: Decimal) -> PayCalculation:
    # Withholding on part-time wages is not computed; net equals gross.
    gross = floor_yen(work_hours * hourly_rate)
    return PayCalculation(gross_amount=gross, total_deductions=ZERO, net_amount=gross)


def full_time_pay(base_salary: Decimal, deductions: PayrollDeductions) -> PayCalculation:
    return PayCalculation(
        gross_amount=base_salary,
        total_deductions=deductions.total,
        net_amount=base_salary - deductions.total,
    )


def employee_summaries(entries: Iterable[PayrollEntry], *, fiscal_year: int) -> list[EmployeePayrollSummary]:
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    for entry in entries:
        if entry.payment_date.year != fiscal_year:
            continue
        totals[entry.employee_name] += entry.gross_amount
        counts[entry.employee_name] += 1

    return [
        EmployeePayrollSummary(employee_name=name, total_amount=totals[name], payment_count=counts[name])
        for name in sorted(totals)
    ]


def payroll_expense(entries: Iterable[PayrollEntry], *, fiscal_year: int) -> Decimal:
    return sum((entry.gross_amount for entry in entries if entry.payment_date.year == fiscal_year), start=ZERO)
