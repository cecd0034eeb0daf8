from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any


class InvalidEntryError(Exception):
    """An input record violates a structural invariant; nothing was computed."""

    def __init__(self, message: str, *, entry: Any = None, field: str | None = None) -> None:
        super().__init__(message)
        self.entry = entry
        self.field = field


class NegativeHoldingsError(Exception):
    def __init__(
        self,
        *,
        currency: str,
        trade_date: date,
        attempted_quantity: Decimal,
        available_quantity: Decimal,
    ) -> None:
        self.currency = currency
        self.trade_date = trade_date
        self.attempted_quantity = attempted_quantity
        self.available_quantity = available_quantity
        message = (
            f"Insufficient holdings for currency={currency} on {trade_date.isoformat()} "
            f"attempted={attempted_quantity} available={available_quantity}"
        )
        super().__init__(message)


class ConfigurationError(Exception):
    pass
