"""SQLAlchemy models for the tables the charge engine reads."""

import uuid
from datetime import date, datetime
from typing import Optional, Dict, Any

from sqlalchemy import (
    String,
    Boolean,
    Date,
    DateTime,
    Index,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Condominium(Base):
    """Condominium account."""
    __tablename__ = "condominiums"

    account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class BillingSettingsRow(Base):
    """Billing and payee settings of a condominium account.

    Values are stored as text, the way the management forms submit them.
    """
    __tablename__ = "pix_receipt_settings"

    account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    key_type: Mapped[str] = mapped_column(String(20), nullable=False)
    payee_key: Mapped[str] = mapped_column(String(255), nullable=False)
    due_day: Mapped[str] = mapped_column(String(2), nullable=False, default="10")
    daily_interest_rate: Mapped[str] = mapped_column(String(20), nullable=False, default="0.033")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class Resident(Base):
    """Resident of a unit."""
    __tablename__ = "residents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    monthly_due_amount: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_residents_account_unit", "account_id", "unit"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "unit": self.unit,
            "full_name": self.full_name,
            "monthly_due_amount": self.monthly_due_amount,
            "active": self.active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class FinancialIncome(Base):
    """Recorded income; condominium fees are the entries carrying a unit."""
    __tablename__ = "financial_incomes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="taxa_condominio")
    amount: Mapped[str] = mapped_column(String(50), nullable=False)
    reference_month: Mapped[str] = mapped_column(String(7), nullable=False)
    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_financial_incomes_account_unit", "account_id", "unit"),
        Index("ix_financial_incomes_reference_month", "reference_month"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "unit": self.unit,
            "category": self.category,
            "amount": self.amount,
            "reference_month": self.reference_month,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
