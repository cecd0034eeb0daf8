from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .base_types import ACQUISITION_TYPES, DISPOSAL_TYPES, ZERO, CurrencyCode
from .errors import NegativeHoldingsError
from .ledger import CryptoTradeEntry, validate_crypto_trade
from .rules import RULE_SETS, TaxRuleSet, rules_for

logger = logging.getLogger(__name__)


@dataclass
class _CurrencyPosition:
    currency: CurrencyCode
    total_cost_basis: Decimal = ZERO
    total_quantity_held: Decimal = ZERO
    average_cost: Decimal = ZERO
    total_bought: Decimal = ZERO
    total_quantity_bought: Decimal = ZERO
    total_sold: Decimal = ZERO
    total_quantity_sold: Decimal = ZERO
    realized_gain: Decimal = ZERO


class CurrencyGain(BaseModel):
    model_config = ConfigDict(frozen=True)

    currency: CurrencyCode
    realized_gain: Decimal
    average_cost: Decimal
    total_quantity_sold: Decimal
    remaining_quantity: Decimal
    remaining_cost_basis: Decimal
    total_bought: Decimal
    total_quantity_bought: Decimal
    total_sold: Decimal


class CryptoFilingVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: bool
    reason: str
    gain: Decimal
    threshold: Decimal


class CryptoGainsReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    per_currency_gains: list[CurrencyGain]
    total_realized_gain: Decimal
    filing_required: bool
    filing_reason: str


class CryptoGainCalculator:
    """Realized gains per currency under the moving-average cost method."""

    def process(self, trades: Iterable[CryptoTradeEntry], *, fiscal_year: int | None = None) -> list[CurrencyGain]:
        """Trades may arrive in any order; they are replayed by date, same-day trades in given order.

        With ``fiscal_year`` set, earlier trades still build cost basis but only disposals inside
        that year are counted as realized.
        """
        ordered = sorted((validate_crypto_trade(trade) for trade in trades), key=lambda trade: trade.trade_date)
        positions: dict[CurrencyCode, _CurrencyPosition] = {}

        for trade in ordered:
            if fiscal_year is not None and trade.trade_date.year > fiscal_year:
                continue

            position = positions.get(trade.currency)
            if position is None:
                position = positions[trade.currency] = _CurrencyPosition(currency=trade.currency)

            in_scope = fiscal_year is None or trade.trade_date.year == fiscal_year
            if trade.transaction_type in ACQUISITION_TYPES:
                self._acquire(position, trade)
            elif trade.transaction_type in DISPOSAL_TYPES:
                self._dispose(position, trade, counted=in_scope)

        return [self._snapshot(positions[currency]) for currency in sorted(positions)]

    def _acquire(self, position: _CurrencyPosition, trade: CryptoTradeEntry) -> None:
        cost = trade.total_amount + trade.fee
        position.total_cost_basis += cost
        position.total_quantity_held += trade.quantity
        position.average_cost = position.total_cost_basis / position.total_quantity_held
        position.total_bought += cost
        position.total_quantity_bought += trade.quantity

    def _dispose(self, position: _CurrencyPosition, trade: CryptoTradeEntry, *, counted: bool) -> None:
        if trade.quantity > position.total_quantity_held:
            raise NegativeHoldingsError(
                currency=trade.currency,
                trade_date=trade.trade_date,
                attempted_quantity=trade.quantity,
                available_quantity=position.total_quantity_held,
            )

        proceeds = trade.total_amount - trade.fee
        cost_of_sold = position.average_cost * trade.quantity
        position.total_quantity_held -= trade.quantity
        if position.total_quantity_held == 0:
            position.total_cost_basis = ZERO
        else:
            position.total_cost_basis -= cost_of_sold

        if not counted:
            return
        position.realized_gain += proceeds - cost_of_sold
        position.total_sold += proceeds
        position.total_quantity_sold += trade.quantity

    @staticmethod
    def _snapshot(position: _CurrencyPosition) -> CurrencyGain:
        return CurrencyGain(
            currency=position.currency,
            realized_gain=position.realized_gain,
            average_cost=position.average_cost,
            total_quantity_sold=position.total_quantity_sold,
            remaining_quantity=position.total_quantity_held,
            remaining_cost_basis=position.total_cost_basis,
            total_bought=position.total_bought,
            total_quantity_bought=position.total_quantity_bought,
            total_sold=position.total_sold,
        )


def crypto_filing_verdict(
    total_gain: Decimal,
    *,
    other_misc_income: Decimal = ZERO,
    rules: TaxRuleSet,
) -> CryptoFilingVerdict:
    """Advisory check for salaried workers: side income up to the threshold needs no national return."""
    threshold = rules.crypto_filing_threshold
    if total_gain + other_misc_income > threshold:
        return CryptoFilingVerdict(
            required=True,
            reason=f"Income other than salary exceeds {threshold:,} yen, so a tax return is required.",
            gain=total_gain,
            threshold=threshold,
        )
    return CryptoFilingVerdict(
        required=False,
        reason=(
            f"Income other than salary is {threshold:,} yen or less, so no tax return is required. "
            "A resident tax declaration may still be needed."
        ),
        gain=total_gain,
        threshold=threshold,
    )


def compute_crypto_gains(
    trades: Iterable[CryptoTradeEntry],
    *,
    fiscal_year: int | None = None,
    other_misc_income: Decimal = ZERO,
    rules: TaxRuleSet | None = None,
) -> CryptoGainsReport:
    if rules is None:
        rules = _threshold_rules(fiscal_year)

    gains = CryptoGainCalculator().process(trades, fiscal_year=fiscal_year)
    total = sum((gain.realized_gain for gain in gains), start=ZERO)
    verdict = crypto_filing_verdict(total, other_misc_income=other_misc_income, rules=rules)
    logger.debug("Crypto gains for %d currencies, total realized=%s", len(gains), total)

    return CryptoGainsReport(
        per_currency_gains=gains,
        total_realized_gain=total,
        filing_required=verdict.required,
        filing_reason=verdict.reason,
    )


def _threshold_rules(fiscal_year: int | None) -> TaxRuleSet:
    """Rules for the filing threshold. Years before every rule set use the oldest one."""
    if fiscal_year is None:
        return max(RULE_SETS, key=lambda rules: rules.effective_from)
    oldest = min(RULE_SETS, key=lambda rules: rules.effective_from)
    if fiscal_year < oldest.effective_from:
        return oldest
    return rules_for(fiscal_year)
