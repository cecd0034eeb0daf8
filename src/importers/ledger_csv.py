from __future__ import annotations

import logging
from csv import DictReader
from datetime import date
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, field_validator

from domain.base_types import ExpenseCategory, TransactionStatus
from domain.ledger import LedgerEntry
from domain.rules import CATEGORY_RULES

from .parsing import blank_to_none, find_column, parse_date, parse_yen

logger = logging.getLogger(__name__)

DATE_COLUMNS = ("日付", "取引日", "年月日", "発生日", "決済日", "date")
AMOUNT_COLUMNS = ("金額", "支払金額", "amount")
WITHDRAWAL_COLUMNS = ("出金", "出金額", "支出金額", "withdrawal")
DEPOSIT_COLUMNS = ("入金", "入金額", "deposit")
MERCHANT_COLUMNS = ("摘要", "取引先", "相手先", "名称", "店舗名", "支払先", "merchant")
DESCRIPTION_COLUMNS = ("メモ", "備考", "内容", "詳細", "description")
ACCOUNT_TITLE_COLUMNS = ("勘定科目", "科目", "category")
STATUS_COLUMNS = ("ステータス", "status")

ACCOUNT_TITLE_TO_CATEGORY: dict[str, ExpenseCategory] = {
    rule.account_title: category for category, rule in CATEGORY_RULES.items()
}


def category_for_title(title: str | None) -> ExpenseCategory | None:
    """Map a Japanese account title or an English category name to an expense category."""
    if title is None:
        return None
    title = title.strip()
    if title in ACCOUNT_TITLE_TO_CATEGORY:
        return ACCOUNT_TITLE_TO_CATEGORY[title]
    try:
        return ExpenseCategory(title.lower())
    except ValueError:
        return None


class LedgerCsvRow(BaseModel):
    """One statement row after header aliases have been resolved."""

    transaction_date: date
    amount: Decimal
    merchant: str = ""
    description: str | None = None
    account_title: str | None = None
    status: TransactionStatus = TransactionStatus.PENDING

    @field_validator("transaction_date", mode="before")
    @classmethod
    def _parse_date(cls, value: str | date) -> date:
        if isinstance(value, date):
            return value
        return parse_date(value)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: str | None) -> str:
        if value is None or value.strip() == "":
            return TransactionStatus.PENDING.value
        return value.strip().lower()

    def to_entry(self) -> LedgerEntry:
        return LedgerEntry(
            transaction_date=self.transaction_date,
            amount=self.amount,
            merchant=self.merchant,
            description=self.description,
            category=category_for_title(self.account_title),
            status=self.status,
        )


class LedgerCsvImporter:
    """Import bank, card or bookkeeping-app statements.

    A single amount column follows the ledger sign convention (positive expense,
    negative revenue). Separate withdrawal and deposit columns are also accepted:
    withdrawals become expenses and deposits become revenue.
    """

    def __init__(self, source_path: str | Path) -> None:
        self._source_path = Path(source_path)

    def load_entries(self) -> list[LedgerEntry]:
        if not self._source_path.exists():
            raise ValueError(f"Ledger CSV {self._source_path} does not exist")

        entries: list[LedgerEntry] = []
        skipped = 0
        with self._source_path.open(encoding="utf-8-sig", newline="") as handle:
            reader = DictReader(handle)
            if reader.fieldnames is None:
                raise ValueError(f"Ledger CSV {self._source_path} is empty or missing headers")

            columns = self._resolve_columns(reader.fieldnames)
            for row in reader:
                amount = self._row_amount(row, columns)
                raw_date = row.get(columns["date"] or "") or ""
                if amount == 0 or not raw_date.strip():
                    skipped += 1
                    continue

                parsed = LedgerCsvRow.model_validate(
                    {
                        "transaction_date": raw_date,
                        "amount": amount,
                        "merchant": (row.get(columns["merchant"] or "") or "").strip(),
                        "description": blank_to_none(row.get(columns["description"] or "")),
                        "account_title": blank_to_none(row.get(columns["account_title"] or "")),
                        "status": row.get(columns["status"] or ""),
                    }
                )
                entries.append(parsed.to_entry())

        if skipped:
            logger.info("Skipped %d ledger rows without a date or with a zero amount in %s", skipped, self._source_path)
        logger.info("Loaded %d ledger entries from %s", len(entries), self._source_path)
        return entries

    def _resolve_columns(self, headers: list[str]) -> dict[str, str | None]:
        columns = {
            "date": find_column(headers, DATE_COLUMNS),
            "amount": find_column(headers, AMOUNT_COLUMNS),
            "withdrawal": find_column(headers, WITHDRAWAL_COLUMNS),
            "deposit": find_column(headers, DEPOSIT_COLUMNS),
            "merchant": find_column(headers, MERCHANT_COLUMNS),
            "description": find_column(headers, DESCRIPTION_COLUMNS),
            "account_title": find_column(headers, ACCOUNT_TITLE_COLUMNS),
            "status": find_column(headers, STATUS_COLUMNS),
        }
        if columns["date"] is None:
            raise ValueError(f"Ledger CSV {self._source_path} has no date column")
        if columns["amount"] is None and columns["withdrawal"] is None and columns["deposit"] is None:
            raise ValueError(f"Ledger CSV {self._source_path} has no amount, withdrawal or deposit column")
        return columns

    @staticmethod
    def _row_amount(row: dict[str, str], columns: dict[str, str | None]) -> Decimal:
        if columns["amount"] is not None:
            return parse_yen(row.get(columns["amount"]))
        withdrawal = parse_yen(row.get(columns["withdrawal"] or ""))
        deposit = parse_yen(row.get(columns["deposit"] or ""))
        return withdrawal - deposit
