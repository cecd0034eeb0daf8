from __future__ import annotations

from datetime import date
from decimal import Decimal

from domain.base_types import (
    CryptoTransactionType,
    CurrencyCode,
    ExpenseCategory,
    IncomeType,
    TransactionStatus,
)
from domain.ledger import CryptoTradeEntry, IncomeEntry, LedgerEntry
from tests.constants import BTC, FISCAL_YEAR


def expense(
    amount: int | str,
    category: ExpenseCategory | None = ExpenseCategory.SUPPLIES,
    *,
    on: date | None = None,
    status: TransactionStatus = TransactionStatus.APPROVED,
) -> LedgerEntry:
    return LedgerEntry(
        transaction_date=on or date(FISCAL_YEAR, 6, 1),
        amount=Decimal(amount),
        merchant="shop",
        category=category,
        status=status,
    )


def revenue(
    amount: int | str,
    *,
    on: date | None = None,
    status: TransactionStatus = TransactionStatus.APPROVED,
) -> LedgerEntry:
    """Revenue is recorded as a negative ledger amount."""
    return LedgerEntry(
        transaction_date=on or date(FISCAL_YEAR, 6, 1),
        amount=-Decimal(amount),
        merchant="client",
        status=status,
    )


def income(
    income_type: IncomeType,
    amount: int | str,
    *,
    withholding: int | str = 0,
    fiscal_year: int = FISCAL_YEAR,
) -> IncomeEntry:
    return IncomeEntry(
        fiscal_year=fiscal_year,
        income_type=income_type,
        amount=Decimal(amount),
        withholding_tax=Decimal(withholding),
        source_name="payer",
    )


def trade(
    transaction_type: CryptoTransactionType,
    quantity: int | str,
    total_amount: int | str,
    *,
    on: date,
    currency: CurrencyCode = BTC,
    fee: int | str = 0,
) -> CryptoTradeEntry:
    return CryptoTradeEntry(
        trade_date=on,
        transaction_type=transaction_type,
        currency=currency,
        quantity=Decimal(quantity),
        total_amount=Decimal(total_amount),
        fee=Decimal(fee),
    )


def buy(quantity: int | str, total_amount: int | str, *, on: date, **kwargs: object) -> CryptoTradeEntry:
    return trade(CryptoTransactionType.BUY, quantity, total_amount, on=on, **kwargs)  # type: ignore[arg-type]


def sell(quantity: int | str, total_amount: int | str, *, on: date, **kwargs: object) -> CryptoTradeEntry:
    return trade(CryptoTransactionType.SELL, quantity, total_amount, on=on, **kwargs)  # type: ignore[arg-type]
