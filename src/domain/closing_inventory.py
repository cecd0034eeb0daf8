"""Year-end stock count for businesses that hold goods for sale.

Purchases are booked as expenses when paid, so the return corrects them with
the change in stock: ``opening - closing`` is added to expenses.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .base_types import ZERO, EntryId
from .errors import InvalidEntryError


class InventoryStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    ESTIMATED = "estimated"


class InventoryLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    amount: Decimal
    notes: str | None = None


class InventoryRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: EntryId = EntryId(Field(default_factory=uuid4))
    fiscal_year: int
    opening_inventory: Decimal = Field(default=ZERO, ge=0)
    closing_inventory: Decimal | None = Field(default=None, ge=0)
    status: InventoryStatus = InventoryStatus.PENDING
    count_date: date | None = None
    breakdown: list[InventoryLine] = Field(default_factory=list)
    notes: str | None = None


def cost_of_goods_sold(opening: Decimal, purchases: Decimal, closing: Decimal) -> Decimal:
    return opening + purchases - closing


def gross_profit(revenue: Decimal, cogs: Decimal) -> Decimal:
    return revenue - cogs


def inventory_ratio(average_inventory: Decimal, cogs: Decimal) -> Decimal:
    """Average stock as a percentage of cost of goods sold; 0 when nothing was sold."""
    if cogs == 0:
        return ZERO
    return average_inventory / cogs * 100


def estimate_closing_inventory(opening: Decimal, purchases: Decimal, cost_ratio: Decimal) -> Decimal:
    """Rough closing stock from the cost-of-sales ratio (e.g. ``Decimal("0.7")``)."""
    return max(ZERO, opening + purchases - purchases * cost_ratio)


def is_inventory_complete(record: InventoryRecord | None) -> bool:
    if record is None:
        return False
    return record.status == InventoryStatus.COMPLETED and record.closing_inventory is not None


def inventory_warning(record: InventoryRecord | None, today: date) -> str | None:
    if today.month == 12:
        if record is None or record.status == InventoryStatus.PENDING:
            return "Take the year-end stock count and enter the closing inventory."
        if record.status == InventoryStatus.ESTIMATED:
            return "Closing inventory is an estimate. Confirm it with a physical count."

    # Filing season.
    if today.month <= 3 and not is_inventory_complete(record):
        return "Closing inventory required for the tax return has not been entered."

    return None


def inventory_adjustment(record: InventoryRecord) -> Decimal:
    """Amount added to business expenses: stock consumed over the year (negative when stock grew)."""
    if record.closing_inventory is None:
        raise InvalidEntryError(
            f"Inventory record for {record.fiscal_year} has no closing count",
            entry=record,
            field="closing_inventory",
        )
    return record.opening_inventory - record.closing_inventory
