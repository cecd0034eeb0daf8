from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable

_YEN_NOISE_RE = re.compile(r"[,円¥￥\s]")
_NEGATIVE_MARKERS = "-▲△"
_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def parse_yen(raw: str | None) -> Decimal:
    """Parse a yen amount such as ``"1,200円"``, ``"¥3,000"`` or ``"▲5,000"``.

    ``▲``/``△``/``-`` at either end marks a negative amount. Blank means zero.
    """
    if raw is None:
        return Decimal(0)
    cleaned = _YEN_NOISE_RE.sub("", raw)
    if not cleaned:
        return Decimal(0)

    negative = cleaned[0] in _NEGATIVE_MARKERS or cleaned[-1] in _NEGATIVE_MARKERS
    digits = cleaned.strip(_NEGATIVE_MARKERS)
    try:
        amount = Decimal(digits)
    except InvalidOperation as err:
        msg = f"Not a yen amount: {raw!r}"
        raise ValueError(msg) from err
    return -amount if negative else amount


def parse_date(raw: str) -> date:
    """Accept ``YYYY-MM-DD``, ``YYYY/MM/DD`` and ``YYYY年M月D日``."""
    cleaned = raw.strip().replace("/", "-").replace("年", "-").replace("月", "-").replace("日", "")
    match = _DATE_RE.match(cleaned)
    if match is None:
        msg = f"Unrecognised date: {raw!r}"
        raise ValueError(msg)
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


def find_column(headers: Iterable[str], candidates: Iterable[str]) -> str | None:
    available = {header.strip(): header for header in headers}
    for candidate in candidates:
        if candidate in available:
            return available[candidate]
    return None


def blank_to_none(value: str | None) -> str | None:
    if value is None or value.strip() == "":
        return None
    return value.strip()
