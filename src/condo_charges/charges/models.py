"""Models for monthly charge reconciliation."""

import enum
from datetime import MAXYEAR, MINYEAR, date, datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field

from .periods import ReferenceMonth


class ChargeStatus(str, enum.Enum):
    """Lifecycle state of a monthly charge."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class ChargeView(str, enum.Enum):
    """Partition of a statement requested by the caller."""
    PENDING = "pending"  # pending or overdue
    PAID = "paid"


class PixKeyType(str, enum.Enum):
    """Kinds of payee key accepted by the settlement dialog."""
    CPF = "CPF"
    CNPJ = "CNPJ"
    EMAIL = "EMAIL"
    TELEFONE = "TELEFONE"


class BillingSettings(BaseModel):
    """Billing rules configured by the managing account.

    The field defaults are the documented fallbacks used whenever the
    settings of an account cannot be read.
    """
    due_day_of_month: int = Field(default=10, ge=1, le=31, description="Day of month charges fall due")
    daily_interest_rate_percent: Decimal = Field(
        default=Decimal("0.033"), ge=0, description="Daily interest rate applied after the due date"
    )
    key_type: Optional[PixKeyType] = Field(None, description="Type of the payee key")
    payee_key: Optional[str] = Field(None, description="Payee key used for settlement")


DEFAULT_BILLING_SETTINGS = BillingSettings()


class ResidentBillingProfile(BaseModel):
    """Billing data of a resident's unit."""
    resident_id: str = Field(..., description="Resident ID")
    unit: str = Field(..., description="Unit identifier, e.g. '101B'")
    monthly_due_amount: Optional[Decimal] = Field(None, description="Current monthly condominium fee")
    account_created_at: Optional[datetime] = Field(None, description="When the resident was registered")


class PaymentRecord(BaseModel):
    """A recorded payment from the financial ledger."""
    id: str = Field(..., description="Ledger record ID")
    unit: str = Field(..., description="Unit the payment belongs to")
    amount: Decimal = Field(..., description="Amount paid")
    reference_month: str = Field(..., description="Month settled, as 'YYYY-MM'")
    payment_date: Optional[date] = Field(None, description="Date the payment was made")

    class Config:
        from_attributes = True


class AccountIdentity(BaseModel):
    """Identity of the condominium account."""
    account_id: str
    display_name: str


class Charge(BaseModel):
    """A month-scoped billing obligation, projected or backed by a payment."""
    id: str = Field(..., description="Ledger record ID, or 'generated-YYYY-MM' for projections")
    unit: str
    month: int = Field(..., ge=1, le=12)
    year: int
    amount: Decimal
    status: Optional[ChargeStatus] = Field(None, description="Unset until classified")
    due_date: date
    payment_date: Optional[date] = None
    reference_month: Optional[str] = Field(None, description="'YYYY-MM' key of the month")
    payment_id: Optional[str] = Field(None, description="Ledger record backing a paid charge")

    @property
    def key(self) -> ReferenceMonth:
        return ReferenceMonth(self.year, self.month)

    @property
    def is_paid(self) -> bool:
        return self.status == ChargeStatus.PAID

    @property
    def is_open(self) -> bool:
        """True for pending and overdue charges."""
        return self.status in (ChargeStatus.PENDING, ChargeStatus.OVERDUE)


class ChargeRequest(BaseModel):
    """Parameters of a reconciliation run."""
    account_id: str = Field(..., description="Condominium account ID")
    resident_id: str = Field(..., description="Resident ID")
    unit: str = Field(..., description="Unit to reconcile")
    year: Optional[int] = Field(
        None, ge=MINYEAR, le=MAXYEAR, description="Year to project; defaults to the current year"
    )
    view: ChargeView = Field(default=ChargeView.PENDING)


class ChargeStatement(BaseModel):
    """Result of a reconciliation run for one unit and one view."""
    account_id: str
    resident_id: str
    unit: str
    year: int
    view: ChargeView
    as_of: date = Field(..., description="Date the statuses were computed against")
    charges: List[Charge] = Field(default_factory=list)
    overdue_count: int = Field(default=0)
    settings: BillingSettings = Field(default_factory=BillingSettings)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_summary_dict(self) -> Dict[str, Any]:
        """Return the statement header and totals without the charges."""
        total = sum((c.amount for c in self.charges), Decimal("0"))
        return {
            "account_id": self.account_id,
            "resident_id": self.resident_id,
            "unit": self.unit,
            "year": self.year,
            "view": self.view.value,
            "as_of": self.as_of.isoformat(),
            "created_at": self.created_at.isoformat(),
            "statistics": {
                "total_charges": len(self.charges),
                "total_amount": str(total),
                "overdue_count": self.overdue_count,
            },
            "settings": {
                "due_day_of_month": self.settings.due_day_of_month,
                "daily_interest_rate_percent": str(self.settings.daily_interest_rate_percent),
            },
        }

    def to_full_dict(self) -> Dict[str, Any]:
        """Return the summary plus every charge."""
        result = self.to_summary_dict()
        result["charges"] = [c.model_dump(mode="json") for c in self.charges]
        return result


class SettlementPayload(BaseModel):
    """Data handed to the settlement dialog for a selected charge.

    Interest accrual is left to the dialog; only the raw rate and due date
    are supplied.
    """
    key_type: PixKeyType
    payee_key: str
    amount: Decimal
    payee_display_name: str
    account_id: str
    unit: str
    month: int
    year: int
    is_overdue: bool
    due_date: date
    daily_interest_rate_percent: Decimal
