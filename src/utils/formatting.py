from __future__ import annotations

from decimal import Decimal

from domain.base_types import floor_yen


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_yen(value: Decimal) -> str:
    """Whole yen with thousands separators, e.g. ``-50,000``."""
    return f"{floor_yen(value):,.0f}"
