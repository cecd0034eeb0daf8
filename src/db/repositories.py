from __future__ import annotations

from datetime import date
from typing import Iterable, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from db import models
from domain.base_types import (
    CryptoTransactionType,
    EntryId,
    ExpenseCategory,
    IncomeType,
    PensionType,
    TransactionStatus,
    UserId,
)
from domain.ledger import BusinessProfile, CryptoTradeEntry, DeductionInputs, IncomeEntry, LedgerEntry

SettingsT = TypeVar("SettingsT", bound=BaseModel)


class LedgerEntryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, user_id: UserId, entry: LedgerEntry) -> LedgerEntry:
        return self.create_many(user_id, [entry])[0]

    def create_many(self, user_id: UserId, entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
        orm_entries = [
            models.LedgerEntryOrm(
                id=entry.id,
                user_id=user_id,
                transaction_date=entry.transaction_date,
                amount=entry.amount,
                merchant=entry.merchant,
                description=entry.description,
                category=None if entry.category is None else entry.category.value,
                status=entry.status.value,
            )
            for entry in entries
        ]
        self._session.add_all(orm_entries)
        self._session.commit()
        return [self._to_domain(orm_entry) for orm_entry in orm_entries]

    def get(self, entry_id: EntryId) -> LedgerEntry | None:
        orm_entry = self._session.get(models.LedgerEntryOrm, entry_id)
        if orm_entry is None:
            return None
        return self._to_domain(orm_entry)

    def update_status(
        self, entry_id: EntryId, status: TransactionStatus, category: ExpenseCategory | None = None
    ) -> LedgerEntry:
        """Record a categorisation decision; the only mutation a ledger entry receives."""
        orm_entry = self._session.get(models.LedgerEntryOrm, entry_id)
        if orm_entry is None:
            msg = f"Ledger entry {entry_id} not found"
            raise KeyError(msg)
        orm_entry.status = status.value
        if category is not None:
            orm_entry.category = category.value
        self._session.commit()
        return self._to_domain(orm_entry)

    def list_for_year(self, user_id: UserId, fiscal_year: int) -> list[LedgerEntry]:
        stmt = (
            select(models.LedgerEntryOrm)
            .where(models.LedgerEntryOrm.user_id == user_id)
            .where(models.LedgerEntryOrm.transaction_date >= date(fiscal_year, 1, 1))
            .where(models.LedgerEntryOrm.transaction_date <= date(fiscal_year, 12, 31))
            .order_by(models.LedgerEntryOrm.transaction_date.asc())
        )
        return [self._to_domain(orm_entry) for orm_entry in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(orm_entry: models.LedgerEntryOrm) -> LedgerEntry:
        return LedgerEntry(
            id=orm_entry.id,
            transaction_date=orm_entry.transaction_date,
            amount=orm_entry.amount,
            merchant=orm_entry.merchant,
            description=orm_entry.description,
            category=None if orm_entry.category is None else ExpenseCategory(orm_entry.category),
            status=TransactionStatus(orm_entry.status),
        )


class IncomeEntryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, user_id: UserId, entries: Iterable[IncomeEntry]) -> list[IncomeEntry]:
        orm_entries = [
            models.IncomeEntryOrm(
                id=entry.id,
                user_id=user_id,
                fiscal_year=entry.fiscal_year,
                income_type=entry.income_type.value,
                amount=entry.amount,
                payment_date=entry.payment_date,
                source_name=entry.source_name,
                withholding_tax=entry.withholding_tax,
                pension_type=None if entry.pension_type is None else entry.pension_type.value,
                salary_month=entry.salary_month,
                notes=entry.notes,
            )
            for entry in entries
        ]
        self._session.add_all(orm_entries)
        self._session.commit()
        return [self._to_domain(orm_entry) for orm_entry in orm_entries]

    def list_for_year(self, user_id: UserId, fiscal_year: int) -> list[IncomeEntry]:
        stmt = (
            select(models.IncomeEntryOrm)
            .where(models.IncomeEntryOrm.user_id == user_id)
            .where(models.IncomeEntryOrm.fiscal_year == fiscal_year)
            .order_by(models.IncomeEntryOrm.payment_date.asc())
        )
        return [self._to_domain(orm_entry) for orm_entry in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(orm_entry: models.IncomeEntryOrm) -> IncomeEntry:
        return IncomeEntry(
            id=orm_entry.id,
            fiscal_year=orm_entry.fiscal_year,
            income_type=IncomeType(orm_entry.income_type),
            amount=orm_entry.amount,
            payment_date=orm_entry.payment_date,
            source_name=orm_entry.source_name,
            withholding_tax=orm_entry.withholding_tax,
            pension_type=None if orm_entry.pension_type is None else PensionType(orm_entry.pension_type),
            salary_month=orm_entry.salary_month,
            notes=orm_entry.notes,
        )


class CryptoTradeRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, user_id: UserId, trades: Iterable[CryptoTradeEntry]) -> list[CryptoTradeEntry]:
        orm_trades = [
            models.CryptoTradeOrm(
                id=trade.id,
                user_id=user_id,
                trade_date=trade.trade_date,
                transaction_type=trade.transaction_type.value,
                currency=trade.currency,
                quantity=trade.quantity,
                total_amount=trade.total_amount,
                price_per_unit=trade.price_per_unit,
                fee=trade.fee,
                exchange=trade.exchange,
                notes=trade.notes,
            )
            for trade in trades
        ]
        self._session.add_all(orm_trades)
        self._session.commit()
        return [self._to_domain(orm_trade) for orm_trade in orm_trades]

    def list_through_year(self, user_id: UserId, fiscal_year: int) -> list[CryptoTradeEntry]:
        """Every trade up to the end of ``fiscal_year``; earlier years build the cost basis."""
        stmt = (
            select(models.CryptoTradeOrm)
            .where(models.CryptoTradeOrm.user_id == user_id)
            .where(models.CryptoTradeOrm.trade_date <= date(fiscal_year, 12, 31))
            .order_by(models.CryptoTradeOrm.trade_date.asc())
        )
        return [self._to_domain(orm_trade) for orm_trade in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(orm_trade: models.CryptoTradeOrm) -> CryptoTradeEntry:
        return CryptoTradeEntry(
            id=orm_trade.id,
            trade_date=orm_trade.trade_date,
            transaction_type=CryptoTransactionType(orm_trade.transaction_type),
            currency=orm_trade.currency,
            quantity=orm_trade.quantity,
            total_amount=orm_trade.total_amount,
            price_per_unit=orm_trade.price_per_unit,
            fee=orm_trade.fee,
            exchange=orm_trade.exchange,
            notes=orm_trade.notes,
        )


class TaxYearSettingsRepository:
    """Business profile and deduction inputs, one JSON document per (user, year, kind)."""

    PROFILE = "business_profile"
    DEDUCTIONS = "deduction_inputs"

    def __init__(self, session: Session) -> None:
        self._session = session

    def save_profile(self, user_id: UserId, profile: BusinessProfile) -> None:
        self._save(user_id, profile.fiscal_year, self.PROFILE, profile)

    def get_profile(self, user_id: UserId, fiscal_year: int) -> BusinessProfile | None:
        return self._get(user_id, fiscal_year, self.PROFILE, BusinessProfile)

    def save_deductions(self, user_id: UserId, fiscal_year: int, inputs: DeductionInputs) -> None:
        self._save(user_id, fiscal_year, self.DEDUCTIONS, inputs)

    def get_deductions(self, user_id: UserId, fiscal_year: int) -> DeductionInputs | None:
        return self._get(user_id, fiscal_year, self.DEDUCTIONS, DeductionInputs)

    def _find(self, user_id: UserId, fiscal_year: int, kind: str) -> models.TaxYearSettingsOrm | None:
        stmt = (
            select(models.TaxYearSettingsOrm)
            .where(models.TaxYearSettingsOrm.user_id == user_id)
            .where(models.TaxYearSettingsOrm.fiscal_year == fiscal_year)
            .where(models.TaxYearSettingsOrm.kind == kind)
        )
        return self._session.scalars(stmt).one_or_none()

    def _save(self, user_id: UserId, fiscal_year: int, kind: str, document: BaseModel) -> None:
        payload = document.model_dump_json()
        orm_settings = self._find(user_id, fiscal_year, kind)
        if orm_settings is None:
            orm_settings = models.TaxYearSettingsOrm(user_id=user_id, fiscal_year=fiscal_year, kind=kind, payload=payload)
            self._session.add(orm_settings)
        else:
            orm_settings.payload = payload
        self._session.commit()

    def _get(self, user_id: UserId, fiscal_year: int, kind: str, model: type[SettingsT]) -> SettingsT | None:
        orm_settings = self._find(user_id, fiscal_year, kind)
        if orm_settings is None:
            return None
        return model.model_validate_json(orm_settings.payload)
