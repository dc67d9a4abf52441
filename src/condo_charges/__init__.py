# condo_charges package
__version__ = "0.1.0"

from .database import (
    Condominium,
    BillingSettingsRow,
    Resident,
    FinancialIncome,
    init_db,
    close_db,
)

from .charges import (
    ChargeReconciliationService,
    ChargeReconciler,
    ChargeRequest,
    ChargeStatement,
    ChargeStatus,
    ChargeView,
    Charge,
    BillingSettings,
    SettlementPayload,
    DatabaseChargeSource,
)
