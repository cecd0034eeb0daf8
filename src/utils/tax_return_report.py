from __future__ import annotations

from decimal import Decimal

from domain.crypto_gains import CryptoGainsReport
from domain.rules import CATEGORY_RULES
from domain.tax_return import TaxReturnResult

from .formatting import format_decimal, format_yen


def tax_return_rows(result: TaxReturnResult) -> list[tuple[str, Decimal]]:
    rows: list[tuple[str, Decimal]] = [
        ("Business revenue", result.business.revenue),
        ("Business expenses", result.business_expenses.total),
        ("Blue special deduction", result.deductions.special),
        ("Business income", result.business.income),
        ("Salary revenue", result.salary.revenue),
        ("Salary income", result.salary.income),
        ("Pension revenue", result.pension.revenue),
        ("Pension income", result.pension.income),
        ("Miscellaneous income", result.miscellaneous.income),
        ("Total income", result.total_income),
        ("Social insurance", result.deductions.social_insurance),
        ("Insurance premiums", result.deductions.insurance_total),
        ("Earthquake insurance", result.deductions.earthquake_insurance),
        ("Spouse", result.deductions.spouse),
        ("Dependents", result.deductions.dependent),
        ("Medical", result.deductions.medical),
        ("Donations", result.deductions.donation),
        ("Basic deduction", result.deductions.basic),
        ("Total deductions", result.total_deductions),
        ("Taxable income", result.taxable_income),
        ("Income tax", result.income_tax),
        ("Reconstruction surtax", result.reconstruction_surtax),
        ("Total tax", result.total_tax),
        ("Withholding tax", result.withholding_tax),
    ]
    if result.prepaid_tax:
        rows.append(("Prepaid tax", result.prepaid_tax))
    return rows


def render_tax_return(result: TaxReturnResult) -> None:
    print(f"Tax return for fiscal year {result.fiscal_year} ({result.filing_type.value} filing):")
    rows = tax_return_rows(result)
    settlement_label = "Refund" if result.is_refund else "Amount due"
    settlement_amount = result.refund_amount if result.is_refund else result.final_amount
    rows.append((settlement_label, settlement_amount))

    label_width = max(len(label) for label, _ in rows)
    amount_width = max(len(format_yen(amount)) for _, amount in rows)
    for label, amount in rows:
        print(f"  {label:<{label_width}} {format_yen(amount):>{amount_width}}")

    if result.business_expenses.by_category:
        print("Expenses by account title:")
        for category, amount in result.business_expenses.by_category.items():
            print(f"  {CATEGORY_RULES[category].account_title} ({category.value}): {format_yen(amount)}")

    requirement = result.filing_requirement
    print(f"Filing required: {'yes' if requirement.required else 'no'} - {requirement.reason}")
    if requirement.recommendation:
        print(f"  {requirement.recommendation}")


def render_crypto_report(report: CryptoGainsReport) -> None:
    print("Crypto realized gains (JPY, moving-average method):")
    gains = report.per_currency_gains
    if not gains:
        print("  (no trades)")
    else:
        currency_width = max(len("Currency"), max(len(gain.currency) for gain in gains))
        sold_width = max(len("Sold qty"), max(len(format_decimal(gain.total_quantity_sold)) for gain in gains))
        held_width = max(len("Held qty"), max(len(format_decimal(gain.remaining_quantity)) for gain in gains))
        avg_width = max(len("Avg cost"), max(len(format_yen(gain.average_cost)) for gain in gains))
        gain_width = max(len("Realized gain"), max(len(format_yen(gain.realized_gain)) for gain in gains))

        header = (
            f"{'Currency':<{currency_width}} "
            f"{'Sold qty':>{sold_width}} "
            f"{'Held qty':>{held_width}} "
            f"{'Avg cost':>{avg_width}} "
            f"{'Realized gain':>{gain_width}}"
        )
        lines = [header, "-" * len(header)]
        for gain in gains:
            lines.append(
                f"{gain.currency:<{currency_width}} "
                f"{format_decimal(gain.total_quantity_sold):>{sold_width}} "
                f"{format_decimal(gain.remaining_quantity):>{held_width}} "
                f"{format_yen(gain.average_cost):>{avg_width}} "
                f"{format_yen(gain.realized_gain):>{gain_width}}"
            )
        print("\n".join(lines))

    print(f"Total realized gain: {format_yen(report.total_realized_gain)}")
    print(f"Filing required: {'yes' if report.filing_required else 'no'} - {report.filing_reason}")
