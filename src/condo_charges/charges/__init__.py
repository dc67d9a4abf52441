"""Monthly charge reconciliation for condominium units.

For every unit and calendar month this package yields exactly one charge:
either a recorded payment from the ledger or a projected due built from the
unit's monthly fee and the account's billing settings.

Features:
- Project the twelve monthly dues of a year
- Replace projected months with recorded payments
- Classify open months as pending or overdue
- Hide dues that predate the resident's registration
- Build the settlement payload for a selected month
"""

from .errors import (
    ChargesError,
    SourceUnavailable,
    InvalidReferenceMonth,
    ChargeNotPayable,
    SettlementUnavailable,
)
from .models import (
    ChargeStatus,
    ChargeView,
    PixKeyType,
    BillingSettings,
    DEFAULT_BILLING_SETTINGS,
    ResidentBillingProfile,
    PaymentRecord,
    AccountIdentity,
    Charge,
    ChargeRequest,
    ChargeStatement,
    SettlementPayload,
)
from .periods import ReferenceMonth, due_date_for
from .amounts import parse_amount, format_brl
from .sources import ChargeSource, DatabaseChargeSource
from .reconciler import ChargeReconciler
from .service import ChargeReconciliationService
from .report import ReportGenerator

__all__ = [
    # Errors
    "ChargesError",
    "SourceUnavailable",
    "InvalidReferenceMonth",
    "ChargeNotPayable",
    "SettlementUnavailable",
    # Models
    "ChargeStatus",
    "ChargeView",
    "PixKeyType",
    "BillingSettings",
    "DEFAULT_BILLING_SETTINGS",
    "ResidentBillingProfile",
    "PaymentRecord",
    "AccountIdentity",
    "Charge",
    "ChargeRequest",
    "ChargeStatement",
    "SettlementPayload",
    # Helpers
    "ReferenceMonth",
    "due_date_for",
    "parse_amount",
    "format_brl",
    # Sources
    "ChargeSource",
    "DatabaseChargeSource",
    # Core Components
    "ChargeReconciler",
    "ChargeReconciliationService",
    "ReportGenerator",
]
