from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base_types import (
    COUNTED_STATUSES,
    ZERO,
    CurrencyCode,
    CryptoTransactionType,
    EntryId,
    ExpenseCategory,
    FilingType,
    HomeOfficeKey,
    IncomeType,
    InsuranceKind,
    PensionType,
    TransactionStatus,
)
from .errors import InvalidEntryError

_SALARY_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class LedgerEntry(BaseModel):
    """A single dated money movement from a bank statement, card or receipt.

    Amount sign convention:
    - Negative amount is revenue received.
    - Positive amount is an expense paid.
    """

    id: EntryId = EntryId(Field(default_factory=uuid4))
    transaction_date: date
    amount: Decimal
    merchant: str = ""
    description: str | None = None
    category: ExpenseCategory | None = None
    status: TransactionStatus = TransactionStatus.PENDING

    @property
    def counts_toward_totals(self) -> bool:
        return self.status in COUNTED_STATUSES

    @property
    def is_revenue(self) -> bool:
        return self.amount < 0

    @property
    def is_expense(self) -> bool:
        return self.amount > 0


class IncomeEntry(BaseModel):
    """A declared income event that does not come from the business ledger."""

    model_config = ConfigDict(frozen=True)

    id: EntryId = EntryId(Field(default_factory=uuid4))
    fiscal_year: int
    income_type: IncomeType
    amount: Decimal
    payment_date: date | None = None
    source_name: str = ""
    withholding_tax: Decimal = ZERO
    pension_type: PensionType | None = None
    salary_month: str | None = None
    notes: str | None = None


class CryptoTradeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: EntryId = EntryId(Field(default_factory=uuid4))
    trade_date: date
    transaction_type: CryptoTransactionType
    currency: CurrencyCode
    quantity: Decimal
    total_amount: Decimal
    price_per_unit: Decimal = ZERO
    fee: Decimal = ZERO
    exchange: str = ""
    notes: str | None = None

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class WithholdingEntry(BaseModel):
    """Tax withheld by a single payer (client, employer)."""

    model_config = ConfigDict(frozen=True)

    payer_name: str
    amount: Decimal = Field(ge=0)


class InsurancePremium(BaseModel):
    model_config = ConfigDict(frozen=True)

    insurer: str
    kind: InsuranceKind
    amount: Decimal = Field(ge=0)


class HomeOfficeRatio(BaseModel):
    """Business-use percentages (0-100). None means the expense is fully business use."""

    model_config = ConfigDict(frozen=True)

    rent: Decimal | None = Field(default=None, ge=0, le=100)
    utilities: Decimal | None = Field(default=None, ge=0, le=100)
    internet: Decimal | None = Field(default=None, ge=0, le=100)

    def ratio_for(self, key: HomeOfficeKey) -> Decimal | None:
        return getattr(self, key.value)


class BusinessProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    fiscal_year: int
    filing_type: FilingType = FilingType.BLUE_ETAX
    business_name: str | None = None
    birth_date: date | None = None
    home_office_ratio: HomeOfficeRatio = Field(default_factory=HomeOfficeRatio)
    withholding_entries: list[WithholdingEntry] = Field(default_factory=list)
    prepaid_tax: Decimal = Field(default=ZERO, ge=0)

    @property
    def total_withholding(self) -> Decimal:
        return sum((entry.amount for entry in self.withholding_entries), start=ZERO)


class DeductionInputs(BaseModel):
    """Personal deduction amounts as declared by the taxpayer, before caps."""

    model_config = ConfigDict(frozen=True)

    social_insurance: Decimal = Field(default=ZERO, ge=0)
    insurance_premiums: list[InsurancePremium] = Field(default_factory=list)
    earthquake_insurance: Decimal = Field(default=ZERO, ge=0)
    spouse: Decimal = Field(default=ZERO, ge=0)
    dependent: Decimal = Field(default=ZERO, ge=0)
    medical: Decimal = Field(default=ZERO, ge=0)
    donation: Decimal = Field(default=ZERO, ge=0)

    def premiums_by_kind(self) -> dict[InsuranceKind, Decimal]:
        totals = {kind: ZERO for kind in InsuranceKind}
        for premium in self.insurance_premiums:
            totals[premium.kind] += premium.amount
        return totals


def validate_ledger_entry(entry: LedgerEntry) -> LedgerEntry:
    # Zero-amount entries are not meaningful in the ledger.
    if entry.amount == 0:
        raise InvalidEntryError(f"Ledger entry {entry.id} has a zero amount", entry=entry, field="amount")
    return entry


def validate_income_entry(entry: IncomeEntry) -> IncomeEntry:
    if entry.amount <= 0:
        raise InvalidEntryError(
            f"Income entry {entry.id} amount must be > 0, got {entry.amount}", entry=entry, field="amount"
        )
    if entry.withholding_tax < 0:
        raise InvalidEntryError(
            f"Income entry {entry.id} withholding_tax must be >= 0", entry=entry, field="withholding_tax"
        )
    if entry.withholding_tax > entry.amount:
        raise InvalidEntryError(
            f"Income entry {entry.id} withholding_tax {entry.withholding_tax} exceeds amount {entry.amount}",
            entry=entry,
            field="withholding_tax",
        )
    if entry.pension_type is not None and entry.income_type != IncomeType.PENSION:
        raise InvalidEntryError(
            f"Income entry {entry.id} has a pension_type but is {entry.income_type}", entry=entry, field="pension_type"
        )
    if entry.salary_month is not None:
        if entry.income_type != IncomeType.SALARY:
            raise InvalidEntryError(
                f"Income entry {entry.id} has a salary_month but is {entry.income_type}",
                entry=entry,
                field="salary_month",
            )
        if not _SALARY_MONTH_RE.match(entry.salary_month):
            raise InvalidEntryError(
                f"Income entry {entry.id} salary_month must be YYYY-MM, got {entry.salary_month!r}",
                entry=entry,
                field="salary_month",
            )
    return entry


def validate_crypto_trade(trade: CryptoTradeEntry) -> CryptoTradeEntry:
    if not trade.currency:
        raise InvalidEntryError(f"Crypto trade {trade.id} has no currency", entry=trade, field="currency")
    if trade.quantity <= 0:
        raise InvalidEntryError(
            f"Crypto trade {trade.id} quantity must be > 0, got {trade.quantity}", entry=trade, field="quantity"
        )
    if trade.total_amount <= 0:
        raise InvalidEntryError(
            f"Crypto trade {trade.id} total_amount must be > 0, got {trade.total_amount}",
            entry=trade,
            field="total_amount",
        )
    if trade.fee < 0:
        raise InvalidEntryError(f"Crypto trade {trade.id} fee must be >= 0", entry=trade, field="fee")
    if trade.price_per_unit < 0:
        raise InvalidEntryError(
            f"Crypto trade {trade.id} price_per_unit must be >= 0", entry=trade, field="price_per_unit"
        )
    return trade


def validate_entries(
    ledger_entries: Iterable[LedgerEntry] = (),
    income_entries: Iterable[IncomeEntry] = (),
    crypto_trades: Iterable[CryptoTradeEntry] = (),
) -> None:
    """Check every input record before any calculation runs."""
    for entry in ledger_entries:
        validate_ledger_entry(entry)
    for income in income_entries:
        validate_income_entry(income)
    for trade in crypto_trades:
        validate_crypto_trade(trade)
