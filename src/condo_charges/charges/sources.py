"""Readers supplying the inputs of a reconciliation run."""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import (
    BillingSettingsRow,
    Resident,
    FinancialIncome,
    BillingSettingsRepository,
    ResidentRepository,
    FinancialIncomeRepository,
    CondominiumRepository,
)
from .amounts import parse_amount
from .models import (
    AccountIdentity,
    BillingSettings,
    DEFAULT_BILLING_SETTINGS,
    PaymentRecord,
    PixKeyType,
    ResidentBillingProfile,
)

logger = logging.getLogger(__name__)


class ChargeSource(ABC):
    """Point lookups consumed by the reconciliation engine.

    Lookups return ``None`` (or an empty list) when nothing is stored and
    raise when the underlying store fails.
    """

    @abstractmethod
    async def get_billing_settings(self, account_id: str) -> Optional[BillingSettings]:
        """Fetch the billing settings of a condominium account."""
        raise NotImplementedError

    @abstractmethod
    async def get_resident_billing_profile(self, resident_id: str) -> Optional[ResidentBillingProfile]:
        """Fetch the monthly fee and registration time of a resident."""
        raise NotImplementedError

    @abstractmethod
    async def get_payment_records(self, account_id: str, unit: str) -> List[PaymentRecord]:
        """Fetch the ledger records of a unit, across all years."""
        raise NotImplementedError

    @abstractmethod
    async def get_account_identity(self, account_id: str) -> Optional[AccountIdentity]:
        """Fetch the display identity of a condominium account."""
        raise NotImplementedError


def settings_from_row(row: BillingSettingsRow) -> BillingSettings:
    """Convert a stored settings row, defaulting each malformed field.

    Args:
        row: Settings row as saved by the management forms.

    Returns:
        BillingSettings with invalid values replaced by the documented
        defaults.
    """
    due_day = DEFAULT_BILLING_SETTINGS.due_day_of_month
    try:
        parsed_day = int(str(row.due_day).strip())
        if 1 <= parsed_day <= 31:
            due_day = parsed_day
        else:
            logger.warning(f"Due day {row.due_day!r} out of range for account {row.account_id}; using {due_day}")
    except (TypeError, ValueError):
        logger.warning(f"Invalid due day {row.due_day!r} for account {row.account_id}; using {due_day}")

    rate = DEFAULT_BILLING_SETTINGS.daily_interest_rate_percent
    try:
        parsed_rate = Decimal(str(row.daily_interest_rate).strip().replace(",", "."))
        if parsed_rate.is_finite() and parsed_rate >= 0:
            rate = parsed_rate
        else:
            logger.warning(f"Invalid interest rate {row.daily_interest_rate!r} for account {row.account_id}")
    except InvalidOperation:
        logger.warning(f"Invalid interest rate {row.daily_interest_rate!r} for account {row.account_id}")

    key_type: Optional[PixKeyType] = None
    try:
        key_type = PixKeyType(str(row.key_type).strip().upper())
    except ValueError:
        logger.warning(f"Unknown key type {row.key_type!r} for account {row.account_id}")

    return BillingSettings(
        due_day_of_month=due_day,
        daily_interest_rate_percent=rate,
        key_type=key_type,
        payee_key=(row.payee_key or "").strip() or None,
    )


def profile_from_resident(resident: Resident) -> ResidentBillingProfile:
    """Convert a resident row; an unreadable fee leaves the amount unset."""
    amount: Optional[Decimal] = None
    if resident.monthly_due_amount:
        try:
            amount = parse_amount(resident.monthly_due_amount)
        except ValueError:
            logger.warning(
                f"Invalid monthly amount {resident.monthly_due_amount!r} for resident {resident.id}"
            )

    return ResidentBillingProfile(
        resident_id=resident.id,
        unit=resident.unit,
        monthly_due_amount=amount,
        account_created_at=resident.created_at,
    )


def record_from_income(income: FinancialIncome, unit: str) -> Optional[PaymentRecord]:
    """Convert a ledger row, or return None when its amount is unreadable."""
    try:
        amount = parse_amount(income.amount)
    except ValueError:
        logger.warning(f"Skipping income {income.id}: invalid amount {income.amount!r}")
        return None

    return PaymentRecord(
        id=income.id,
        unit=income.unit or unit,
        amount=amount,
        reference_month=income.reference_month or "",
        payment_date=income.payment_date,
    )


class DatabaseChargeSource(ChargeSource):
    """Reads charge inputs through the SQLAlchemy repositories.

    Each lookup opens its own session so the orchestrator can run them
    concurrently; a single AsyncSession does not allow concurrent use.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize the source.

        Args:
            session_factory: Factory producing one session per lookup.
        """
        self._session_factory = session_factory

    async def get_billing_settings(self, account_id: str) -> Optional[BillingSettings]:
        async with self._session_factory() as session:
            row = await BillingSettingsRepository(session).get_by_account(account_id)
        if row is None:
            return None
        return settings_from_row(row)

    async def get_resident_billing_profile(self, resident_id: str) -> Optional[ResidentBillingProfile]:
        async with self._session_factory() as session:
            resident = await ResidentRepository(session).get_by_id(resident_id)
        if resident is None:
            return None
        return profile_from_resident(resident)

    async def get_payment_records(self, account_id: str, unit: str) -> List[PaymentRecord]:
        async with self._session_factory() as session:
            incomes = await FinancialIncomeRepository(session).list_by_unit(account_id, unit)

        records: List[PaymentRecord] = []
        for income in incomes:
            record = record_from_income(income, unit)
            if record is not None:
                records.append(record)
        return records

    async def get_account_identity(self, account_id: str) -> Optional[AccountIdentity]:
        async with self._session_factory() as session:
            condominium = await CondominiumRepository(session).get_by_account(account_id)
        if condominium is None:
            return None
        return AccountIdentity(account_id=condominium.account_id, display_name=condominium.display_name)
