"""Reconciliation of projected monthly charges against the payment ledger."""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Dict, Optional

from .errors import InvalidReferenceMonth
from .models import Charge, ChargeStatus, PaymentRecord
from .periods import ReferenceMonth, due_date_for

logger = logging.getLogger(__name__)


class ChargeReconciler:
    """Builds the per-month charge list of a unit for one year.

    The pipeline is ``project_charges`` -> ``match_payments`` -> ``classify``
    -> ``filter_visible``. Every stage is a pure function of its inputs, so a
    reconciler can be shared between runs.
    """

    def __init__(self, due_day_of_month: int = 10):
        """Initialize the reconciler.

        Args:
            due_day_of_month: Day of month charges fall due. Days missing from
                a month are clamped to that month's last day.
        """
        self.due_day_of_month = due_day_of_month

    def project_charges(
        self,
        year: int,
        unit: str,
        monthly_due_amount: Decimal,
    ) -> List[Charge]:
        """Synthesize the twelve monthly charges of a year.

        The current monthly amount is used for every month, past months
        included; amount history is not modelled.

        Args:
            year: Calendar year to project.
            unit: Unit identifier.
            monthly_due_amount: Current monthly fee of the unit.

        Returns:
            Twelve unclassified charges ordered January to December.
        """
        charges: List[Charge] = []
        for month in range(1, 13):
            key = ReferenceMonth(year, month)
            charges.append(Charge(
                id=f"generated-{key}",
                unit=unit,
                month=month,
                year=year,
                amount=monthly_due_amount,
                due_date=due_date_for(year, month, self.due_day_of_month),
                reference_month=str(key),
            ))
        return charges

    def _record_key(self, record: PaymentRecord) -> Optional[ReferenceMonth]:
        """Resolve the month a ledger record settles.

        Falls back to the payment date's month when the reference month
        does not parse.
        """
        try:
            return ReferenceMonth.parse(record.reference_month)
        except InvalidReferenceMonth:
            if record.payment_date is not None:
                key = ReferenceMonth.from_date(record.payment_date)
                logger.warning(
                    f"Payment {record.id} has invalid reference month "
                    f"{record.reference_month!r}; using payment month {key}"
                )
                return key
            logger.warning(
                f"Payment {record.id} has invalid reference month "
                f"{record.reference_month!r} and no payment date; skipping"
            )
            return None

    def match_payments(
        self,
        projected: List[Charge],
        records: List[PaymentRecord],
    ) -> List[Charge]:
        """Replace projected months that have a ledger entry with paid charges.

        Every ledger record is emitted regardless of year. When several
        records settle the same month, the earliest payment wins.

        Args:
            projected: Output of ``project_charges``.
            records: Ledger records of the unit.

        Returns:
            Paid charges (ledger order) followed by unmatched projections.
        """
        paid_by_key: Dict[ReferenceMonth, PaymentRecord] = {}
        order: List[ReferenceMonth] = []

        for record in records:
            key = self._record_key(record)
            if key is None:
                continue
            existing = paid_by_key.get(key)
            if existing is None:
                paid_by_key[key] = record
                order.append(key)
                continue
            if record.payment_date and (
                existing.payment_date is None or record.payment_date < existing.payment_date
            ):
                logger.warning(
                    f"Duplicate payments for {key}: keeping {record.id}, dropping {existing.id}"
                )
                paid_by_key[key] = record
            else:
                logger.warning(
                    f"Duplicate payments for {key}: keeping {existing.id}, dropping {record.id}"
                )

        paid: List[Charge] = []
        for key in order:
            record = paid_by_key[key]
            paid.append(Charge(
                id=record.id,
                unit=record.unit,
                month=key.month,
                year=key.year,
                amount=record.amount,
                status=ChargeStatus.PAID,
                due_date=due_date_for(key.year, key.month, self.due_day_of_month),
                payment_date=record.payment_date,
                reference_month=str(key),
                payment_id=record.id,
            ))

        unmatched = [c for c in projected if c.key not in paid_by_key]

        logger.debug(
            f"Matched {len(projected) - len(unmatched)} of {len(projected)} projected months "
            f"against {len(records)} ledger records"
        )
        return paid + unmatched

    def classify(self, charges: List[Charge], as_of: date) -> List[Charge]:
        """Stamp unclassified charges as overdue or pending.

        A charge is overdue when its due date is strictly before ``as_of``.
        Charges that already carry a status are returned untouched.
        """
        classified: List[Charge] = []
        for charge in charges:
            if charge.status is not None:
                classified.append(charge)
                continue
            status = ChargeStatus.OVERDUE if charge.due_date < as_of else ChargeStatus.PENDING
            classified.append(charge.model_copy(update={"status": status}))
        return classified

    def filter_visible(
        self,
        charges: List[Charge],
        account_created_at: Optional[datetime],
    ) -> List[Charge]:
        """Drop open charges that fell due before the resident registered.

        Paid charges are always kept. A charge falls due at midnight of its
        due date, so one due on the registration day is hidden unless the
        resident registered exactly at midnight.
        """
        if account_created_at is None:
            return list(charges)

        # Due dates carry no zone; compare on the registration's wall clock
        created_at = account_created_at.replace(tzinfo=None)
        visible = [
            c for c in charges
            if not (c.is_open and datetime.combine(c.due_date, time.min) < created_at)
        ]
        hidden = len(charges) - len(visible)
        if hidden:
            logger.debug(f"Hid {hidden} charges due before registration at {created_at}")
        return visible

    def reconcile(
        self,
        year: int,
        unit: str,
        monthly_due_amount: Optional[Decimal],
        records: List[PaymentRecord],
        as_of: date,
        account_created_at: Optional[datetime] = None,
    ) -> List[Charge]:
        """Run the whole pipeline.

        Without a monthly amount nothing is projected and only ledger
        entries are returned.
        """
        projected: List[Charge] = []
        if monthly_due_amount is not None:
            projected = self.project_charges(year, unit, monthly_due_amount)

        merged = self.match_payments(projected, records)
        classified = self.classify(merged, as_of)
        return self.filter_visible(classified, account_created_at)
