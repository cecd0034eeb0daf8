from __future__ import annotations

import logging
from csv import DictReader
from datetime import date
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, field_validator

from domain.base_types import ZERO, IncomeType, PensionType
from domain.ledger import IncomeEntry

from .parsing import parse_date, parse_yen

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"fiscal_year", "income_type", "amount"}


class IncomeCsvRow(BaseModel):
    fiscal_year: int
    income_type: IncomeType
    amount: Decimal
    withholding_tax: Decimal = ZERO
    payment_date: date | None = None
    source_name: str = ""
    pension_type: PensionType | None = None
    salary_month: str | None = None
    notes: str | None = None

    @field_validator("amount", "withholding_tax", mode="before")
    @classmethod
    def _parse_yen(cls, value: str | Decimal | None) -> Decimal:
        if isinstance(value, Decimal):
            return value
        return parse_yen(value)

    @field_validator("payment_date", mode="before")
    @classmethod
    def _parse_date(cls, value: str | date | None) -> date | None:
        if value is None or isinstance(value, date):
            return value
        if value.strip() == "":
            return None
        return parse_date(value)

    @field_validator("pension_type", "salary_month", "notes", mode="before")
    @classmethod
    def _empty_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    def to_entry(self) -> IncomeEntry:
        return IncomeEntry(**self.model_dump())


class IncomeCsvImporter:
    """Rows: fiscal_year,income_type,amount[,withholding_tax][,payment_date][,source_name][,pension_type][,salary_month][,notes]"""

    def __init__(self, source_path: str | Path) -> None:
        self._source_path = Path(source_path)

    def load_entries(self) -> list[IncomeEntry]:
        if not self._source_path.exists():
            raise ValueError(f"Income CSV {self._source_path} does not exist")

        entries: list[IncomeEntry] = []
        with self._source_path.open(encoding="utf-8-sig", newline="") as handle:
            reader = DictReader(handle)
            if reader.fieldnames is None:
                raise ValueError(f"Income CSV {self._source_path} is empty or missing headers")

            missing = REQUIRED_COLUMNS - {name.strip() for name in reader.fieldnames}
            if missing:
                raise ValueError(f"Income CSV {self._source_path} missing required columns: {', '.join(sorted(missing))}")

            for row in reader:
                cleaned = {key.strip(): value for key, value in row.items() if key is not None}
                entries.append(IncomeCsvRow.model_validate(cleaned).to_entry())

        logger.info("Loaded %d income entries from %s", len(entries), self._source_path)
        return entries
