"""Shared test fixtures and configuration."""

import os
import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

# Set up test environment variables before importing modules
os.environ.setdefault("API_KEY", "test_api_key_12345")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from condo_charges.charges import (
    AccountIdentity,
    BillingSettings,
    ChargeRequest,
    ChargeSource,
    PaymentRecord,
    PixKeyType,
    ResidentBillingProfile,
)


def make_source(
    settings: Optional[BillingSettings] = None,
    profile: Optional[ResidentBillingProfile] = None,
    records: Optional[List[PaymentRecord]] = None,
    identity: Optional[AccountIdentity] = None,
) -> MagicMock:
    """Build a ChargeSource mock whose lookups return the given snapshots."""
    source = MagicMock(spec=ChargeSource)
    source.get_billing_settings = AsyncMock(return_value=settings)
    source.get_resident_billing_profile = AsyncMock(return_value=profile)
    source.get_payment_records = AsyncMock(return_value=records if records is not None else [])
    source.get_account_identity = AsyncMock(return_value=identity)
    return source


@pytest.fixture
def billing_settings() -> BillingSettings:
    """Settings of the sample condominium: due on the 10th."""
    return BillingSettings(
        due_day_of_month=10,
        daily_interest_rate_percent=Decimal("0.033"),
        key_type=PixKeyType.CNPJ,
        payee_key="12.345.678/0001-90",
    )


@pytest.fixture
def resident_profile() -> ResidentBillingProfile:
    """Resident of unit 101B registered before 2024."""
    return ResidentBillingProfile(
        resident_id="resident_001",
        unit="101B",
        monthly_due_amount=Decimal("350.00"),
        account_created_at=datetime(2023, 11, 20, 14, 30),
    )


@pytest.fixture
def april_payment() -> PaymentRecord:
    return PaymentRecord(
        id="income_001",
        unit="101B",
        amount=Decimal("350.00"),
        reference_month="2024-04",
        payment_date=date(2024, 4, 8),
    )


@pytest.fixture
def account_identity() -> AccountIdentity:
    return AccountIdentity(account_id="cond_123", display_name="Residencial Jardim das Flores")


@pytest.fixture
def charge_request() -> ChargeRequest:
    return ChargeRequest(
        account_id="cond_123",
        resident_id="resident_001",
        unit="101B",
        year=2024,
    )


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-06-15."""
    return lambda: date(2024, 6, 15)


# Database fixtures
@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing."""
    from condo_charges.database import create_async_engine, create_tables

    engine = create_async_engine(
        database_url="sqlite+aiosqlite:///:memory:",
        echo=False
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    from condo_charges.database import make_session_factory

    return make_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory):
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def source_factory():
    """Factory for ChargeSource mocks, see make_source."""
    return make_source
