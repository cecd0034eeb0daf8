from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from enum import StrEnum
from typing import NewType
from uuid import UUID

EntryId = NewType("EntryId", UUID)
CurrencyCode = NewType("CurrencyCode", str)
UserId = NewType("UserId", str)

ZERO = Decimal(0)


class TransactionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    MODIFIED = "modified"
    HELD = "held"
    EXCLUDED = "excluded"


# Only these statuses participate in ledger totals.
COUNTED_STATUSES = frozenset({TransactionStatus.APPROVED, TransactionStatus.MODIFIED})


class ExpenseCategory(StrEnum):
    TRAVEL = "travel"
    COMMUNICATION = "communication"
    ENTERTAINMENT = "entertainment"
    SUPPLIES = "supplies"
    BOOKS = "books"
    ADVERTISING = "advertising"
    OUTSOURCING = "outsourcing"
    RENT = "rent"
    UTILITIES = "utilities"
    FEES = "fees"
    INSURANCE = "insurance"
    DEPRECIATION = "depreciation"
    MISCELLANEOUS = "miscellaneous"


class IncomeType(StrEnum):
    BUSINESS = "business"
    SALARY = "salary"
    PENSION = "pension"
    MISCELLANEOUS = "miscellaneous"


class PensionType(StrEnum):
    KOSEI = "kosei"
    KOKUMIN = "kokumin"
    KYOSAI = "kyosai"
    CORPORATE = "corporate"
    IDECO = "ideco"
    OTHER = "other"


class CryptoTransactionType(StrEnum):
    BUY = "buy"
    SELL = "sell"
    EXCHANGE = "exchange"
    RECEIVE = "receive"


ACQUISITION_TYPES = frozenset({CryptoTransactionType.BUY, CryptoTransactionType.RECEIVE})
DISPOSAL_TYPES = frozenset({CryptoTransactionType.SELL, CryptoTransactionType.EXCHANGE})


class FilingType(StrEnum):
    WHITE = "white"
    BLUE_SIMPLE = "blue_simple"
    BLUE_REGULAR = "blue_regular"
    BLUE_ETAX = "blue_etax"


class InsuranceKind(StrEnum):
    LIFE = "life"
    MEDICAL_CARE = "medical_care"
    PRIVATE_PENSION = "private_pension"


class HomeOfficeKey(StrEnum):
    RENT = "rent"
    UTILITIES = "utilities"
    INTERNET = "internet"


def floor_yen(value: Decimal) -> Decimal:
    """Truncate toward negative infinity to a whole yen amount."""
    return value.to_integral_value(rounding=ROUND_FLOOR)
