"""Service layer orchestrating charge reconciliation runs."""

import asyncio
import logging
from datetime import MAXYEAR, MINYEAR, date
from typing import Any, Callable, List, NamedTuple, Optional

from .errors import ChargeNotPayable, SettlementUnavailable, SourceUnavailable
from .models import (
    AccountIdentity,
    BillingSettings,
    Charge,
    ChargeRequest,
    ChargeStatement,
    ChargeStatus,
    ChargeView,
    DEFAULT_BILLING_SETTINGS,
    PaymentRecord,
    ResidentBillingProfile,
    SettlementPayload,
)
from .periods import due_date_for
from .reconciler import ChargeReconciler
from .report import ReportGenerator
from .sources import ChargeSource

logger = logging.getLogger(__name__)


class RunInputs(NamedTuple):
    """Snapshots joined from the four reads of a run."""
    settings: BillingSettings
    profile: Optional[ResidentBillingProfile]
    records: List[PaymentRecord]
    identity: Optional[AccountIdentity]


class ChargeReconciliationService:
    """Produces per-unit charge statements from the configured sources."""

    def __init__(
        self,
        source: ChargeSource,
        clock: Callable[[], date] = date.today,
    ):
        """Initialize the service.

        Args:
            source: Reader for settings, profiles, ledger and identity.
            clock: Returns the current date; called once per run.
        """
        self.source = source
        self.clock = clock

    def _recover(self, result: Any, source: str, default: Any) -> Any:
        """Replace a failed or empty read with its default."""
        if isinstance(result, Exception):
            error = SourceUnavailable(source, f"{type(result).__name__}: {result}")
            logger.warning(f"{error}; using default")
            return default
        if isinstance(result, BaseException):
            raise result
        if result is None:
            logger.warning(f"{SourceUnavailable(source, 'no data')}; using default")
            return default
        return result

    async def fetch_inputs(self, request: ChargeRequest) -> RunInputs:
        """Issue the four reads concurrently and join them.

        Failures never propagate: settings fall back to
        ``DEFAULT_BILLING_SETTINGS``, the ledger to an empty list, and the
        profile and identity to ``None``.
        """
        settings, profile, records, identity = await asyncio.gather(
            self.source.get_billing_settings(request.account_id),
            self.source.get_resident_billing_profile(request.resident_id),
            self.source.get_payment_records(request.account_id, request.unit),
            self.source.get_account_identity(request.account_id),
            return_exceptions=True,
        )

        return RunInputs(
            settings=self._recover(settings, "billing_settings", DEFAULT_BILLING_SETTINGS),
            profile=self._recover(profile, "resident_profile", None),
            records=self._recover(records, "payment_ledger", []),
            identity=self._recover(identity, "account_identity", None),
        )

    def _merge(
        self,
        request: ChargeRequest,
        inputs: RunInputs,
        year: int,
        as_of: date,
    ) -> List[Charge]:
        """Project, match and classify; visibility is not applied."""
        reconciler = ChargeReconciler(due_day_of_month=inputs.settings.due_day_of_month)
        amount = inputs.profile.monthly_due_amount if inputs.profile else None

        projected: List[Charge] = []
        if not MINYEAR <= year <= MAXYEAR:
            logger.warning(f"Year {year} is outside {MINYEAR}..{MAXYEAR}; projecting nothing")
        elif amount is not None:
            projected = reconciler.project_charges(year, request.unit, amount)
        else:
            logger.info(f"No monthly amount for resident {request.resident_id}; projecting nothing")

        merged = reconciler.match_payments(projected, inputs.records)
        return reconciler.classify(merged, as_of)

    async def merged_charges(
        self,
        request: ChargeRequest,
        as_of: Optional[date] = None,
    ) -> List[Charge]:
        """Return every classified charge of a run before visibility filtering."""
        as_of = as_of or self.clock()
        inputs = await self.fetch_inputs(request)
        year = request.year if request.year is not None else as_of.year
        return self._merge(request, inputs, year, as_of)

    async def reconcile(self, request: ChargeRequest) -> ChargeStatement:
        """Execute a reconciliation run.

        Args:
            request: Unit, resident, year and view to produce.

        Returns:
            ChargeStatement holding the requested view. Pending/overdue
            charges keep generation order; paid charges are sorted by
            reference month.
        """
        as_of = self.clock()
        year = request.year if request.year is not None else as_of.year

        logger.info(
            f"Reconciling charges for unit {request.unit} (account {request.account_id}) "
            f"year {year} as of {as_of}"
        )

        inputs = await self.fetch_inputs(request)
        merged = self._merge(request, inputs, year, as_of)

        reconciler = ChargeReconciler(due_day_of_month=inputs.settings.due_day_of_month)
        account_created_at = inputs.profile.account_created_at if inputs.profile else None
        visible = reconciler.filter_visible(merged, account_created_at)

        if request.view == ChargeView.PAID:
            charges = sorted(
                (c for c in visible if c.is_paid),
                key=lambda c: c.reference_month or "",
            )
        else:
            charges = [c for c in visible if c.is_open]

        overdue_count = sum(
            1 for c in visible
            if c.status == ChargeStatus.OVERDUE and c.year == year
        )

        logger.info(
            f"Unit {request.unit}: {len(charges)} {request.view.value} charges, "
            f"{overdue_count} overdue"
        )

        return ChargeStatement(
            account_id=request.account_id,
            resident_id=request.resident_id,
            unit=request.unit,
            year=year,
            view=request.view,
            as_of=as_of,
            charges=charges,
            overdue_count=overdue_count,
            settings=inputs.settings,
        )

    async def count_overdue(self, request: ChargeRequest) -> int:
        """Number of visible overdue charges in the requested year."""
        statement = await self.reconcile(request.model_copy(update={"view": ChargeView.PENDING}))
        return statement.overdue_count

    async def build_settlement(
        self,
        request: ChargeRequest,
        year: int,
        month: int,
    ) -> SettlementPayload:
        """Build the settlement hand-off for an open charge.

        Billing settings and account identity are read again after the
        charge is located, so the payload never relies on the snapshot the
        statement was computed from.

        Raises:
            ChargeNotPayable: If the month has no visible open charge.
            SettlementUnavailable: If the payee key cannot be supplied.
        """
        statement = await self.reconcile(
            request.model_copy(update={"year": year, "view": ChargeView.PENDING})
        )
        charge = next((c for c in statement.charges if c.year == year and c.month == month), None)
        if charge is None:
            raise ChargeNotPayable(f"No open charge for unit {request.unit} in {year}-{month:02d}")

        settings, identity = await asyncio.gather(
            self.source.get_billing_settings(request.account_id),
            self.source.get_account_identity(request.account_id),
            return_exceptions=True,
        )
        if isinstance(settings, BaseException) or settings is None:
            raise SettlementUnavailable(f"Billing settings unavailable for account {request.account_id}")
        if settings.key_type is None or not settings.payee_key:
            raise SettlementUnavailable(f"No payee key configured for account {request.account_id}")

        identity = self._recover(identity, "account_identity", None)
        due_date = due_date_for(year, month, settings.due_day_of_month)

        return SettlementPayload(
            key_type=settings.key_type,
            payee_key=settings.payee_key,
            amount=charge.amount,
            payee_display_name=identity.display_name if identity else "",
            account_id=request.account_id,
            unit=request.unit,
            month=month,
            year=year,
            is_overdue=due_date < statement.as_of,
            due_date=due_date,
            daily_interest_rate_percent=settings.daily_interest_rate_percent,
        )

    def generate_report(
        self,
        statement: ChargeStatement,
        format: str = "json",
        include_details: bool = True,
    ) -> str:
        """Render a statement.

        Args:
            statement: Statement to render.
            format: Output format ('json', 'csv', 'text').
            include_details: Include every charge (JSON only).

        Returns:
            Formatted statement string.
        """
        generator = ReportGenerator(statement)

        if format == "json":
            return generator.to_json(include_details=include_details)
        elif format == "csv":
            return generator.to_csv()
        elif format == "text":
            return generator.to_text()
        else:
            raise ValueError(f"Unsupported report format: {format}")
