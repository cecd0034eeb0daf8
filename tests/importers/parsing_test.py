from datetime import date
from decimal import Decimal

import pytest

from importers.parsing import blank_to_none, find_column, parse_date, parse_yen


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1,200円", Decimal(1_200)),
        ("¥3,000", Decimal(3_000)),
        ("▲5,000", Decimal(-5_000)),
        ("5,000△", Decimal(-5_000)),
        ("-42", Decimal(-42)),
        ("", Decimal(0)),
        (None, Decimal(0)),
    ],
)
def test_parse_yen(raw: str | None, expected: Decimal) -> None:
    assert parse_yen(raw) == expected


def test_parse_yen_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_yen("abc")


@pytest.mark.parametrize("raw", ["2024/3/5", "2024-03-05", "2024年3月5日", " 2024/03/05 "])
def test_parse_date_formats(raw: str) -> None:
    assert parse_date(raw) == date(2024, 3, 5)


def test_parse_date_rejects_other_formats() -> None:
    with pytest.raises(ValueError):
        parse_date("05.03.2024")


def test_find_column_prefers_earlier_candidates() -> None:
    headers = [" 金額", "日付", "date"]

    assert find_column(headers, ("日付", "date")) == "日付"
    assert find_column(headers, ("金額",)) == " 金額"
    assert find_column(headers, ("amount",)) is None


def test_blank_to_none() -> None:
    assert blank_to_none("  ") is None
    assert blank_to_none(None) is None
    assert blank_to_none(" memo ") == "memo"
