from datetime import date
from decimal import Decimal

import pytest

from domain.base_types import CryptoTransactionType
from domain.crypto_gains import CryptoGainCalculator, compute_crypto_gains, crypto_filing_verdict
from domain.errors import InvalidEntryError, NegativeHoldingsError
from domain.rules import TaxRuleSet
from tests.constants import BTC, ETH
from tests.helpers.entries import buy, sell, trade


def test_moving_average_realized_gain_and_remaining_holding() -> None:
    trades = [
        buy(1, 5_000_000, on=date(2024, 1, 10)),
        buy(1, 7_000_000, on=date(2024, 2, 10)),
        sell(1, 8_000_000, on=date(2024, 3, 10)),
    ]

    report = compute_crypto_gains(trades)

    (btc,) = report.per_currency_gains
    assert btc.currency == BTC
    assert btc.realized_gain == Decimal(2_000_000)
    assert btc.average_cost == Decimal(6_000_000)
    assert btc.remaining_quantity == Decimal(1)
    assert btc.remaining_cost_basis == Decimal(6_000_000)
    assert btc.total_quantity_sold == Decimal(1)
    assert report.total_realized_gain == Decimal(2_000_000)
    assert report.filing_required is True


def test_fees_increase_cost_and_reduce_proceeds() -> None:
    trades = [
        buy(1, 1_000_000, on=date(2024, 1, 1), fee=1_000),
        sell(1, 1_200_000, on=date(2024, 2, 1), fee=2_000),
    ]

    (btc,) = CryptoGainCalculator().process(trades)

    assert btc.total_bought == Decimal(1_001_000)
    assert btc.total_sold == Decimal(1_198_000)
    assert btc.realized_gain == Decimal(197_000)


def test_closed_position_has_zero_cost_basis() -> None:
    trades = [
        buy(3, 1_000_000, on=date(2024, 1, 1)),
        sell(1, 400_000, on=date(2024, 2, 1)),
        sell(2, 800_000, on=date(2024, 3, 1)),
    ]

    (btc,) = CryptoGainCalculator().process(trades)

    assert btc.remaining_quantity == 0
    assert btc.remaining_cost_basis == 0


def test_trades_are_replayed_in_date_order() -> None:
    trades = [
        sell(1, 8_000_000, on=date(2024, 3, 10)),
        buy(1, 7_000_000, on=date(2024, 2, 10)),
        buy(1, 5_000_000, on=date(2024, 1, 10)),
    ]

    report = compute_crypto_gains(trades)

    assert report.total_realized_gain == Decimal(2_000_000)


def test_selling_more_than_held_raises() -> None:
    trades = [
        buy(1, 5_000_000, on=date(2024, 1, 10)),
        sell(2, 12_000_000, on=date(2024, 2, 10)),
    ]

    with pytest.raises(NegativeHoldingsError) as excinfo:
        compute_crypto_gains(trades)

    assert excinfo.value.currency == BTC
    assert excinfo.value.attempted_quantity == Decimal(2)
    assert excinfo.value.available_quantity == Decimal(1)


def test_fiscal_year_counts_only_disposals_inside_the_year() -> None:
    trades = [
        buy(1, 5_000_000, on=date(2023, 1, 10)),
        sell("0.5", 3_000_000, on=date(2023, 6, 1)),
        sell("0.5", 4_000_000, on=date(2024, 6, 1)),
        buy(1, 9_000_000, on=date(2025, 1, 5)),
    ]

    report = compute_crypto_gains(trades, fiscal_year=2024)

    (btc,) = report.per_currency_gains
    assert btc.realized_gain == Decimal(1_500_000)
    assert btc.total_quantity_sold == Decimal("0.5")
    assert btc.remaining_quantity == 0


def test_receive_is_an_acquisition_and_exchange_a_disposal() -> None:
    trades = [
        trade(CryptoTransactionType.RECEIVE, 2, 600_000, on=date(2024, 1, 1), currency=ETH),
        trade(CryptoTransactionType.EXCHANGE, 1, 400_000, on=date(2024, 2, 1), currency=ETH),
    ]

    (eth,) = CryptoGainCalculator().process(trades)

    assert eth.realized_gain == Decimal(100_000)
    assert eth.remaining_quantity == Decimal(1)


def test_total_is_exact_sum_of_per_currency_gains() -> None:
    trades = [
        buy(1, 5_000_000, on=date(2024, 1, 10)),
        buy(1, 7_000_000, on=date(2024, 2, 10)),
        sell(1, 8_000_000, on=date(2024, 3, 10)),
        buy(3, 1_000_000, on=date(2024, 1, 5), currency=ETH),
        sell(1, 500_000, on=date(2024, 4, 5), currency=ETH),
    ]

    report = compute_crypto_gains(trades)

    assert [gain.currency for gain in report.per_currency_gains] == [BTC, ETH]
    assert report.total_realized_gain == sum(
        (gain.realized_gain for gain in report.per_currency_gains), start=Decimal(0)
    )
    for gain in report.per_currency_gains:
        assert gain.remaining_quantity >= 0
        assert gain.remaining_cost_basis >= 0


def test_invalid_trade_is_rejected_before_processing() -> None:
    trades = [
        buy(1, 5_000_000, on=date(2024, 1, 10)),
        buy(0, 1_000, on=date(2024, 1, 11)),
    ]

    with pytest.raises(InvalidEntryError) as excinfo:
        compute_crypto_gains(trades)

    assert excinfo.value.field == "quantity"


def test_filing_verdict_threshold_is_exclusive(rules: TaxRuleSet) -> None:
    at_threshold = crypto_filing_verdict(Decimal(200_000), rules=rules)
    above_threshold = crypto_filing_verdict(Decimal(150_000), other_misc_income=Decimal(50_001), rules=rules)

    assert at_threshold.required is False
    assert above_threshold.required is True
    assert "200,000" in above_threshold.reason


def test_currency_is_normalized_to_upper_case() -> None:
    entry = buy(1, 100, on=date(2024, 1, 1), currency=" btc ")  # type: ignore[arg-type]

    assert entry.currency == BTC


def test_years_before_first_rule_set_use_the_oldest_threshold() -> None:
    trades = [
        buy(1, 1_000_000, on=date(2019, 1, 10)),
        sell(1, 1_300_000, on=date(2019, 6, 10)),
    ]

    report = compute_crypto_gains(trades, fiscal_year=2019)

    assert report.total_realized_gain == Decimal(300_000)
    assert report.filing_required is True
    assert "200,000" in report.filing_reason
