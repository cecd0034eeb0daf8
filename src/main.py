from __future__ import annotations

import argparse
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Sequence

from sqlalchemy.orm import Session

from config import config
from db.db import init_db
from db.repositories import (
    CryptoTradeRepository,
    IncomeEntryRepository,
    LedgerEntryRepository,
    TaxYearSettingsRepository,
)
from domain.base_types import FilingType, UserId
from domain.crypto_gains import compute_crypto_gains
from domain.ledger import BusinessProfile, DeductionInputs, HomeOfficeRatio
from domain.tax_return import compute_tax_return
from importers.crypto_csv import CryptoCsvImporter
from importers.income_csv import IncomeCsvImporter
from importers.ledger_csv import LedgerCsvImporter
from utils.tax_return_report import render_crypto_report, render_tax_return

logger = logging.getLogger(__name__)


def run_import(session: Session, user_id: UserId, kind: str, csv_path: Path) -> int:
    if kind == "ledger":
        entries = LedgerCsvImporter(csv_path).load_entries()
        return len(LedgerEntryRepository(session).create_many(user_id, entries))
    if kind == "income":
        incomes = IncomeCsvImporter(csv_path).load_entries()
        return len(IncomeEntryRepository(session).create_many(user_id, incomes))
    trades = CryptoCsvImporter(csv_path).load_trades()
    return len(CryptoTradeRepository(session).create_many(user_id, trades))


def run_profile(session: Session, user_id: UserId, args: argparse.Namespace) -> None:
    settings = TaxYearSettingsRepository(session)
    profile = BusinessProfile(
        fiscal_year=args.year,
        filing_type=FilingType(args.filing_type),
        business_name=args.business_name,
        birth_date=args.birth_date,
        home_office_ratio=HomeOfficeRatio(rent=args.rent_ratio, utilities=args.utilities_ratio, internet=args.internet_ratio),
        prepaid_tax=args.prepaid_tax,
    )
    settings.save_profile(user_id, profile)
    print(f"Saved business profile for {args.year}")

    if args.deductions is not None:
        inputs = DeductionInputs.model_validate_json(args.deductions.read_text(encoding="utf-8"))
        settings.save_deductions(user_id, args.year, inputs)
        print(f"Saved deduction inputs for {args.year}")


def run_compute(session: Session, user_id: UserId, fiscal_year: int, *, as_json: bool) -> None:
    settings = TaxYearSettingsRepository(session)
    profile = settings.get_profile(user_id, fiscal_year)
    if profile is None:
        logger.info("No business profile saved for %d, using defaults", fiscal_year)
        profile = BusinessProfile(fiscal_year=fiscal_year)
    deduction_inputs = settings.get_deductions(user_id, fiscal_year) or DeductionInputs()

    result = compute_tax_return(
        LedgerEntryRepository(session).list_for_year(user_id, fiscal_year),
        IncomeEntryRepository(session).list_for_year(user_id, fiscal_year),
        CryptoTradeRepository(session).list_through_year(user_id, fiscal_year),
        profile,
        deduction_inputs,
        fiscal_year,
    )
    if as_json:
        print(result.model_dump_json(indent=2))
    else:
        render_tax_return(result)


def run_crypto(session: Session, user_id: UserId, fiscal_year: int) -> None:
    trades = CryptoTradeRepository(session).list_through_year(user_id, fiscal_year)
    render_crypto_report(compute_crypto_gains(trades, fiscal_year=fiscal_year))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute a Japanese individual income tax return.")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL, defaults to the configured database")
    parser.add_argument("--user", default=None, help="User id, defaults to the configured user")
    commands = parser.add_subparsers(dest="command", required=True)

    import_parser = commands.add_parser("import", help="Import records from a CSV file")
    import_parser.add_argument("kind", choices=("ledger", "income", "crypto"))
    import_parser.add_argument("csv", type=Path)

    profile_parser = commands.add_parser("profile", help="Save the business profile for a fiscal year")
    profile_parser.add_argument("--year", type=int, required=True)
    profile_parser.add_argument(
        "--filing-type", choices=[filing.value for filing in FilingType], default=FilingType.BLUE_ETAX.value
    )
    profile_parser.add_argument("--business-name", default=None)
    profile_parser.add_argument("--birth-date", type=date.fromisoformat, default=None)
    profile_parser.add_argument("--rent-ratio", type=Decimal, default=None)
    profile_parser.add_argument("--utilities-ratio", type=Decimal, default=None)
    profile_parser.add_argument("--internet-ratio", type=Decimal, default=None)
    profile_parser.add_argument("--prepaid-tax", type=Decimal, default=Decimal(0))
    profile_parser.add_argument("--deductions", type=Path, default=None, help="JSON file with deduction inputs")

    compute_parser = commands.add_parser("compute", help="Compute the tax return for a fiscal year")
    compute_parser.add_argument("--year", type=int, required=True)
    compute_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    crypto_parser = commands.add_parser("crypto", help="Report realized crypto gains for a fiscal year")
    crypto_parser.add_argument("--year", type=int, required=True)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    settings = config()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)

    session = init_db(args.database_url or settings.database_url)
    user_id = UserId(args.user or settings.default_user_id)
    try:
        if args.command == "import":
            count = run_import(session, user_id, args.kind, args.csv)
            print(f"Imported {count} {args.kind} records from {args.csv}")
        elif args.command == "profile":
            run_profile(session, user_id, args)
        elif args.command == "compute":
            run_compute(session, user_id, args.year, as_json=args.json)
        elif args.command == "crypto":
            run_crypto(session, user_id, args.year)
    finally:
        session.close()


if __name__ == "__main__":
    main()
