from datetime import date
from decimal import Decimal

import pytest

from domain.base_types import ExpenseCategory, FilingType
from domain.crypto_gains import compute_crypto_gains
from domain.ledger import BusinessProfile, DeductionInputs, WithholdingEntry
from domain.tax_return import compute_tax_return
from tests.constants import FISCAL_YEAR
from tests.helpers.entries import buy, expense, revenue, sell
from utils.formatting import format_decimal, format_yen
from utils.tax_return_report import render_crypto_report, render_tax_return, tax_return_rows


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Decimal("1234.9"), "1,234"),
        (Decimal(-50_000), "-50,000"),
        (Decimal("-0.5"), "-1"),
        (Decimal(0), "0"),
    ],
)
def test_format_yen(value: Decimal, expected: str) -> None:
    assert format_yen(value) == expected


def test_format_decimal_drops_trailing_zeros() -> None:
    assert format_decimal(Decimal("1.500")) == "1.5"
    assert format_decimal(Decimal("1E+2")) == "100"


def _profile(**kwargs: object) -> BusinessProfile:
    return BusinessProfile(fiscal_year=FISCAL_YEAR, filing_type=FilingType.BLUE_ETAX, **kwargs)  # type: ignore[arg-type]


def test_tax_return_rows_skip_zero_prepaid_tax() -> None:
    result = compute_tax_return([revenue(1_000_000)], [], [], _profile(), DeductionInputs(), FISCAL_YEAR)

    labels = [label for label, _ in tax_return_rows(result)]

    assert labels[0] == "Business revenue"
    assert "Prepaid tax" not in labels
    assert dict(tax_return_rows(result))["Basic deduction"] == Decimal(480_000)


def test_render_tax_return_amount_due(capsys: pytest.CaptureFixture[str]) -> None:
    ledger = [revenue(5_000_000), expense(2_000_000, ExpenseCategory.OUTSOURCING)]
    result = compute_tax_return(ledger, [], [], _profile(), DeductionInputs(), FISCAL_YEAR)

    render_tax_return(result)

    output = capsys.readouterr().out
    assert f"Tax return for fiscal year {FISCAL_YEAR} (blue_etax filing):" in output
    assert "95,463" in output
    assert "Amount due" in output
    assert "外注費 (outsourcing): 2,000,000" in output
    assert "Filing required: yes" in output


def test_render_tax_return_refund(capsys: pytest.CaptureFixture[str]) -> None:
    ledger = [revenue(5_000_000), expense(2_000_000, ExpenseCategory.OUTSOURCING)]
    profile = _profile(withholding_entries=[WithholdingEntry(payer_name="Client", amount=Decimal(145_463))])
    result = compute_tax_return(ledger, [], [], profile, DeductionInputs(), FISCAL_YEAR)

    render_tax_return(result)

    output = capsys.readouterr().out
    refund_line = next(line for line in output.splitlines() if line.strip().startswith("Refund"))
    assert refund_line.rstrip().endswith("50,000")
    assert "Amount due" not in output


def test_render_crypto_report(capsys: pytest.CaptureFixture[str]) -> None:
    trades = [
        buy(1, 5_000_000, on=date(FISCAL_YEAR, 1, 10)),
        buy(1, 7_000_000, on=date(FISCAL_YEAR, 2, 10)),
        sell(1, 8_000_000, on=date(FISCAL_YEAR, 3, 10)),
    ]

    render_crypto_report(compute_crypto_gains(trades, fiscal_year=FISCAL_YEAR))

    lines = capsys.readouterr().out.splitlines()
    btc_line = next(line for line in lines if line.startswith("BTC"))
    assert btc_line.split() == ["BTC", "1", "1", "6,000,000", "2,000,000"]
    assert "Total realized gain: 2,000,000" in lines
    assert any(line.startswith("Filing required: yes") for line in lines)


def test_render_empty_crypto_report(capsys: pytest.CaptureFixture[str]) -> None:
    render_crypto_report(compute_crypto_gains([], fiscal_year=FISCAL_YEAR))

    output = capsys.readouterr().out
    assert "(no trades)" in output
    assert "Total realized gain: 0" in output
