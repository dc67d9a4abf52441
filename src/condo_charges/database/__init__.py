"""Database module backing the charge engine's readers."""

from .models import (
    Base,
    Condominium,
    BillingSettingsRow,
    Resident,
    FinancialIncome,
)
from .session import (
    get_database_url,
    init_db,
    close_db,
    create_async_engine,
    create_tables,
    make_session_factory,
    get_async_session_factory,
)
from .repository import (
    BillingSettingsRepository,
    ResidentRepository,
    FinancialIncomeRepository,
    CondominiumRepository,
)

__all__ = [
    # Models
    "Base",
    "Condominium",
    "BillingSettingsRow",
    "Resident",
    "FinancialIncome",
    # Session management
    "get_database_url",
    "init_db",
    "close_db",
    "create_async_engine",
    "create_tables",
    "make_session_factory",
    "get_async_session_factory",
    # Repositories
    "BillingSettingsRepository",
    "ResidentRepository",
    "FinancialIncomeRepository",
    "CondominiumRepository",
]
