"""Repository layer for the tables read by the charge engine."""

import logging
from datetime import date
from typing import Optional, List

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    Condominium,
    BillingSettingsRow,
    Resident,
    FinancialIncome,
)

logger = logging.getLogger(__name__)


class BillingSettingsRepository:
    """Repository for per-account billing settings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_account(self, account_id: str) -> Optional[BillingSettingsRow]:
        """Get the settings row of an account, if one was saved."""
        result = await self.session.execute(
            select(BillingSettingsRow).where(BillingSettingsRow.account_id == account_id)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        account_id: str,
        key_type: str,
        payee_key: str,
        due_day: str = "10",
        daily_interest_rate: str = "0.033",
    ) -> BillingSettingsRow:
        """Create or replace the settings of an account.

        Args:
            account_id: Condominium account ID.
            key_type: Payee key type (CPF, CNPJ, EMAIL, TELEFONE).
            payee_key: Payee key value.
            due_day: Day of month charges fall due, as entered.
            daily_interest_rate: Daily interest rate percent, as entered.

        Returns:
            The stored settings row.
        """
        row = await self.get_by_account(account_id)
        if row is None:
            row = BillingSettingsRow(account_id=account_id)
            self.session.add(row)

        row.key_type = key_type
        row.payee_key = payee_key
        row.due_day = due_day
        row.daily_interest_rate = daily_interest_rate

        await self.session.flush()
        logger.info(f"Saved billing settings for account {account_id}")
        return row


class ResidentRepository:
    """Repository for residents."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        account_id: str,
        unit: str,
        full_name: str,
        monthly_due_amount: Optional[str] = None,
        resident_id: Optional[str] = None,
    ) -> Resident:
        resident = Resident(
            account_id=account_id,
            unit=unit,
            full_name=full_name,
            monthly_due_amount=monthly_due_amount,
        )
        if resident_id:
            resident.id = resident_id

        self.session.add(resident)
        await self.session.flush()

        logger.info(f"Created resident {resident.id} for unit {unit}")
        return resident

    async def get_by_id(self, resident_id: str) -> Optional[Resident]:
        result = await self.session.execute(
            select(Resident).where(Resident.id == resident_id)
        )
        return result.scalar_one_or_none()


class FinancialIncomeRepository:
    """Repository for ledger income records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        account_id: str,
        unit: Optional[str],
        amount: str,
        reference_month: str,
        payment_date: Optional[date] = None,
        category: str = "taxa_condominio",
    ) -> FinancialIncome:
        """Record a payment.

        Args:
            account_id: Condominium account ID.
            unit: Unit the payment belongs to.
            amount: Amount as entered, e.g. "350,00".
            reference_month: Month settled, as "YYYY-MM".
            payment_date: Date of payment.
            category: Income category.

        Returns:
            Created FinancialIncome instance.
        """
        income = FinancialIncome(
            account_id=account_id,
            unit=unit,
            amount=amount,
            reference_month=reference_month,
            payment_date=payment_date,
            category=category,
        )
        self.session.add(income)
        await self.session.flush()

        logger.info(f"Recorded income {income.id} for unit {unit} ({reference_month})")
        return income

    async def list_by_unit(self, account_id: str, unit: str) -> List[FinancialIncome]:
        """List the income records of a unit, most recent payment first."""
        result = await self.session.execute(
            select(FinancialIncome)
            .where(
                and_(
                    FinancialIncome.account_id == account_id,
                    FinancialIncome.unit == unit,
                )
            )
            .order_by(FinancialIncome.payment_date.desc())
        )
        return list(result.scalars().all())


class CondominiumRepository:
    """Repository for condominium accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, account_id: str, display_name: str) -> Condominium:
        condominium = Condominium(account_id=account_id, display_name=display_name)
        self.session.add(condominium)
        await self.session.flush()
        return condominium

    async def get_by_account(self, account_id: str) -> Optional[Condominium]:
        result = await self.session.execute(
            select(Condominium).where(Condominium.account_id == account_id)
        )
        return result.scalar_one_or_none()
