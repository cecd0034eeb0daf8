from __future__ import annotations

import logging
from csv import DictReader
from datetime import date
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from domain.base_types import ZERO, CryptoTransactionType
from domain.ledger import CryptoTradeEntry

from .parsing import parse_date, parse_yen

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"date", "type", "currency", "quantity", "total_amount"}

# Exchange exports use several words for the same trade kind.
TYPE_ALIASES = {
    "buy": CryptoTransactionType.BUY,
    "購入": CryptoTransactionType.BUY,
    "sell": CryptoTransactionType.SELL,
    "売却": CryptoTransactionType.SELL,
    "exchange": CryptoTransactionType.EXCHANGE,
    "swap": CryptoTransactionType.EXCHANGE,
    "交換": CryptoTransactionType.EXCHANGE,
    "receive": CryptoTransactionType.RECEIVE,
    "reward": CryptoTransactionType.RECEIVE,
    "受取": CryptoTransactionType.RECEIVE,
}


class CryptoCsvRow(BaseModel):
    trade_date: date = Field(alias="date")
    transaction_type: CryptoTransactionType = Field(alias="type")
    currency: str
    quantity: Decimal
    total_amount: Decimal
    price_per_unit: Decimal = ZERO
    fee: Decimal = ZERO
    exchange: str = ""
    notes: str | None = None

    @field_validator("trade_date", mode="before")
    @classmethod
    def _parse_date(cls, value: str | date | None) -> date:
        if isinstance(value, date):
            return value
        if value is None:
            raise ValueError("Missing trade date")
        return parse_date(value)

    @field_validator("transaction_type", mode="before")
    @classmethod
    def _parse_type(cls, value: str | None) -> CryptoTransactionType:
        if value is None:
            raise ValueError("Missing crypto transaction type")
        key = value.strip().lower()
        if key not in TYPE_ALIASES:
            raise ValueError(f"Unknown crypto transaction type {value!r}")
        return TYPE_ALIASES[key]

    @field_validator("quantity", mode="before")
    @classmethod
    def _strip_quantity(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("Missing quantity")
        return value.replace(",", "").strip()

    @field_validator("total_amount", "price_per_unit", "fee", mode="before")
    @classmethod
    def _parse_yen(cls, value: str | Decimal | None, info: ValidationInfo) -> Decimal:
        if isinstance(value, Decimal):
            return value
        if value is None and info.field_name == "total_amount":
            raise ValueError("Missing total amount")
        return parse_yen(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _empty_notes(cls, value: str | None) -> str | None:
        if value is None or value.strip() == "":
            return None
        return value

    def to_entry(self) -> CryptoTradeEntry:
        return CryptoTradeEntry(
            trade_date=self.trade_date,
            transaction_type=self.transaction_type,
            currency=self.currency,
            quantity=self.quantity,
            total_amount=self.total_amount,
            price_per_unit=self.price_per_unit,
            fee=self.fee,
            exchange=self.exchange,
            notes=self.notes,
        )


class CryptoCsvImporter:
    def __init__(self, source_path: str | Path) -> None:
        self._source_path = Path(source_path)

    def load_trades(self) -> list[CryptoTradeEntry]:
        if not self._source_path.exists():
            raise ValueError(f"Crypto CSV {self._source_path} does not exist")

        trades: list[CryptoTradeEntry] = []
        with self._source_path.open(encoding="utf-8-sig", newline="") as handle:
            reader = DictReader(handle)
            if reader.fieldnames is None:
                raise ValueError(f"Crypto CSV {self._source_path} is empty or missing headers")

            missing = REQUIRED_COLUMNS - {name.strip() for name in reader.fieldnames}
            if missing:
                raise ValueError(f"Crypto CSV {self._source_path} missing required columns: {', '.join(sorted(missing))}")

            for row in reader:
                cleaned = {key.strip(): value for key, value in row.items() if key is not None}
                trades.append(CryptoCsvRow.model_validate(cleaned).to_entry())

        trades.sort(key=lambda trade: trade.trade_date)
        logger.info("Loaded %d crypto trades from %s", len(trades), self._source_path)
        return trades
