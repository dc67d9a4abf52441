"""Tests for the charge reconciliation service."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from condo_charges.charges import (
    BillingSettings,
    ChargeNotPayable,
    ChargeReconciliationService,
    ChargeStatus,
    ChargeView,
    PaymentRecord,
    PixKeyType,
    SettlementUnavailable,
)


@pytest.fixture
def source(source_factory, billing_settings, resident_profile, april_payment, account_identity):
    return source_factory(
        settings=billing_settings,
        profile=resident_profile,
        records=[april_payment],
        identity=account_identity,
    )


@pytest.fixture
def service(source, fixed_clock):
    return ChargeReconciliationService(source, clock=fixed_clock)


class TestReconcile:
    """Tests for statement production."""

    async def test_pending_view_mid_year(self, service, charge_request):
        """Test the pending view of unit 101B on 2024-06-15."""
        statement = await service.reconcile(charge_request)

        statuses = {c.month: c.status for c in statement.charges}
        assert sorted(statuses) == [1, 2, 3, 5, 6, 7, 8, 9, 10, 11, 12]
        for month in (1, 2, 3, 5, 6):
            assert statuses[month] == ChargeStatus.OVERDUE
        for month in range(7, 13):
            assert statuses[month] == ChargeStatus.PENDING
        assert statement.overdue_count == 5
        assert statement.as_of == date(2024, 6, 15)
        assert statement.year == 2024

    async def test_pending_view_keeps_generation_order(self, service, charge_request):
        statement = await service.reconcile(charge_request)
        months = [c.month for c in statement.charges]
        assert months == sorted(months)

    async def test_paid_view(self, service, charge_request):
        request = charge_request.model_copy(update={"view": ChargeView.PAID})

        statement = await service.reconcile(request)

        assert len(statement.charges) == 1
        april = statement.charges[0]
        assert april.month == 4
        assert april.status == ChargeStatus.PAID
        assert april.payment_date == date(2024, 4, 8)
        assert statement.overdue_count == 5

    async def test_paid_view_sorted_by_reference_month(self, source_factory, billing_settings,
                                                       resident_profile, fixed_clock, charge_request):
        records = [
            PaymentRecord(id="c", unit="101B", amount=Decimal("350"), reference_month="2024-05",
                          payment_date=date(2024, 5, 9)),
            PaymentRecord(id="a", unit="101B", amount=Decimal("350"), reference_month="2023-12",
                          payment_date=date(2023, 12, 9)),
            PaymentRecord(id="b", unit="101B", amount=Decimal("350"), reference_month="2024-02",
                          payment_date=date(2024, 2, 9)),
        ]
        source = source_factory(settings=billing_settings, profile=resident_profile, records=records)
        service = ChargeReconciliationService(source, clock=fixed_clock)

        statement = await service.reconcile(charge_request.model_copy(update={"view": ChargeView.PAID}))

        assert [c.reference_month for c in statement.charges] == ["2023-12", "2024-02", "2024-05"]

    async def test_year_defaults_to_clock_year(self, service, charge_request):
        statement = await service.reconcile(charge_request.model_copy(update={"year": None}))
        assert statement.year == 2024

    async def test_clock_read_once(self, source, charge_request):
        calls = []

        def clock():
            calls.append(1)
            return date(2024, 6, 15)

        service = ChargeReconciliationService(source, clock=clock)
        await service.reconcile(charge_request)

        assert len(calls) == 1

    async def test_reads_issued_with_request_keys(self, service, source, charge_request):
        await service.reconcile(charge_request)

        source.get_billing_settings.assert_awaited_once_with("cond_123")
        source.get_resident_billing_profile.assert_awaited_once_with("resident_001")
        source.get_payment_records.assert_awaited_once_with("cond_123", "101B")
        source.get_account_identity.assert_awaited_once_with("cond_123")

    async def test_registration_hides_earlier_open_months(self, source_factory, billing_settings,
                                                          april_payment, fixed_clock, charge_request):
        """Test that months due before registration are not shown as open."""
        from condo_charges.charges import ResidentBillingProfile

        profile = ResidentBillingProfile(
            resident_id="resident_001",
            unit="101B",
            monthly_due_amount=Decimal("350.00"),
            account_created_at=datetime(2024, 3, 15, 10, 0),
        )
        source = source_factory(settings=billing_settings, profile=profile, records=[april_payment])
        service = ChargeReconciliationService(source, clock=fixed_clock)

        statement = await service.reconcile(charge_request)

        assert [c.month for c in statement.charges] == [5, 6, 7, 8, 9, 10, 11, 12]
        assert statement.overdue_count == 2

        paid = await service.reconcile(charge_request.model_copy(update={"view": ChargeView.PAID}))
        assert [c.month for c in paid.charges] == [4]

    async def test_settings_change_shifts_due_dates(self, source_factory, resident_profile,
                                                    april_payment, fixed_clock, charge_request):
        """Test that a later due day is picked up on the next run."""
        settings = BillingSettings(due_day_of_month=20)
        source = source_factory(settings=settings, profile=resident_profile, records=[april_payment])
        service = ChargeReconciliationService(source, clock=fixed_clock)

        statement = await service.reconcile(charge_request)

        june = next(c for c in statement.charges if c.month == 6)
        assert june.due_date == date(2024, 6, 20)
        assert june.status == ChargeStatus.PENDING
        assert statement.overdue_count == 4

    async def test_settings_change_leaves_payments_untouched(self, source_factory, billing_settings,
                                                             resident_profile, april_payment,
                                                             fixed_clock, charge_request):
        """Test that only projected months follow a new due day."""
        later = billing_settings.model_copy(update={"due_day_of_month": 20})
        source = source_factory(profile=resident_profile, records=[april_payment])
        source.get_billing_settings.side_effect = [billing_settings, later]
        service = ChargeReconciliationService(source, clock=fixed_clock)

        before = await service.merged_charges(charge_request)
        after = await service.merged_charges(charge_request)

        open_before = {c.month: c for c in before if c.is_open}
        open_after = {c.month: c for c in after if c.is_open}
        assert sorted(open_before) == sorted(open_after) == [1, 2, 3, 5, 6, 7, 8, 9, 10, 11, 12]
        for month, charge in open_after.items():
            assert open_before[month].due_date == date(2024, month, 10)
            assert charge.due_date == date(2024, month, 20)

        [paid_before] = [c for c in before if c.is_paid]
        [paid_after] = [c for c in after if c.is_paid]
        assert paid_before.payment_date == paid_after.payment_date == date(2024, 4, 8)
        assert paid_before.amount == paid_after.amount == Decimal("350.00")
        assert paid_before.payment_id == paid_after.payment_id == "income_001"

    async def test_year_out_of_range_yields_empty_statement(self, service, charge_request):
        """Test that a year no calendar date can hold does not fail the run."""
        statement = await service.reconcile(charge_request.model_copy(update={"year": 10000}))

        assert statement.charges == []
        assert statement.overdue_count == 0
        assert statement.year == 10000

    async def test_year_zero_is_not_replaced_by_current_year(self, service, charge_request):
        statement = await service.reconcile(charge_request.model_copy(update={"year": 0}))

        assert statement.year == 0
        assert statement.charges == []

    def test_request_year_bounds(self):
        from pydantic import ValidationError

        from condo_charges.charges import ChargeRequest

        with pytest.raises(ValidationError):
            ChargeRequest(account_id="cond_123", resident_id="resident_001", unit="101B", year=10000)
        with pytest.raises(ValidationError):
            ChargeRequest(account_id="cond_123", resident_id="resident_001", unit="101B", year=0)

    async def test_repeated_runs_are_identical(self, service, charge_request):
        first = await service.reconcile(charge_request)
        second = await service.reconcile(charge_request)

        assert first.charges == second.charges
        assert first.overdue_count == second.overdue_count


class TestSourceFallbacks:
    """Tests for degraded runs when a read fails."""

    async def test_settings_failure_uses_defaults(self, source, fixed_clock, charge_request):
        source.get_billing_settings.side_effect = RuntimeError("connection reset")
        service = ChargeReconciliationService(source, clock=fixed_clock)

        statement = await service.reconcile(charge_request)

        assert statement.settings.due_day_of_month == 10
        assert statement.settings.daily_interest_rate_percent == Decimal("0.033")
        assert statement.charges[0].due_date == date(2024, 1, 10)

    async def test_missing_settings_use_defaults(self, source, fixed_clock, charge_request):
        source.get_billing_settings.return_value = None
        service = ChargeReconciliationService(source, clock=fixed_clock)

        statement = await service.reconcile(charge_request)

        assert statement.settings.due_day_of_month == 10
        assert statement.overdue_count == 5

    async def test_profile_failure_projects_nothing(self, source, fixed_clock, charge_request):
        source.get_resident_billing_profile.side_effect = RuntimeError("timeout")
        service = ChargeReconciliationService(source, clock=fixed_clock)

        pending = await service.reconcile(charge_request)
        paid = await service.reconcile(charge_request.model_copy(update={"view": ChargeView.PAID}))

        assert pending.charges == []
        assert pending.overdue_count == 0
        assert [c.month for c in paid.charges] == [4]

    async def test_ledger_failure_leaves_every_month_open(self, source, fixed_clock, charge_request):
        source.get_payment_records.side_effect = RuntimeError("timeout")
        service = ChargeReconciliationService(source, clock=fixed_clock)

        statement = await service.reconcile(charge_request)

        assert len(statement.charges) == 12
        assert statement.overdue_count == 6

    async def test_identity_failure_does_not_affect_statement(self, source, fixed_clock, charge_request):
        source.get_account_identity.side_effect = RuntimeError("timeout")
        service = ChargeReconciliationService(source, clock=fixed_clock)

        statement = await service.reconcile(charge_request)

        assert statement.overdue_count == 5

    async def test_every_source_down(self, source_factory, fixed_clock, charge_request):
        source = source_factory()
        for method in (
            source.get_billing_settings,
            source.get_resident_billing_profile,
            source.get_payment_records,
            source.get_account_identity,
        ):
            method.side_effect = ConnectionError("down")
        service = ChargeReconciliationService(source, clock=fixed_clock)

        statement = await service.reconcile(charge_request)

        assert statement.charges == []
        assert statement.overdue_count == 0


class TestCountOverdue:
    async def test_counts_overdue_for_year(self, service, charge_request):
        assert await service.count_overdue(charge_request) == 5

    async def test_count_ignores_view(self, service, charge_request):
        request = charge_request.model_copy(update={"view": ChargeView.PAID})
        assert await service.count_overdue(request) == 5

    async def test_count_matches_statement(self, service, charge_request):
        statement = await service.reconcile(charge_request)
        overdue = [c for c in statement.charges if c.status == ChargeStatus.OVERDUE]
        assert await service.count_overdue(charge_request) == len(overdue)


class TestMergedCharges:
    async def test_unfiltered_result(self, source_factory, billing_settings, fixed_clock, charge_request):
        from condo_charges.charges import ResidentBillingProfile

        profile = ResidentBillingProfile(
            resident_id="resident_001",
            unit="101B",
            monthly_due_amount=Decimal("350.00"),
            account_created_at=datetime(2024, 6, 1),
        )
        source = source_factory(settings=billing_settings, profile=profile)
        service = ChargeReconciliationService(source, clock=fixed_clock)

        charges = await service.merged_charges(charge_request)

        assert len(charges) == 12


class TestBuildSettlement:
    """Tests for the settlement hand-off."""

    async def test_overdue_month(self, service, charge_request):
        payload = await service.build_settlement(charge_request, year=2024, month=6)

        assert payload.key_type == PixKeyType.CNPJ
        assert payload.payee_key == "12.345.678/0001-90"
        assert payload.amount == Decimal("350.00")
        assert payload.payee_display_name == "Residencial Jardim das Flores"
        assert payload.account_id == "cond_123"
        assert payload.unit == "101B"
        assert payload.month == 6
        assert payload.year == 2024
        assert payload.is_overdue is True
        assert payload.due_date == date(2024, 6, 10)
        assert payload.daily_interest_rate_percent == Decimal("0.033")

    async def test_pending_month(self, service, charge_request):
        payload = await service.build_settlement(charge_request, year=2024, month=9)

        assert payload.is_overdue is False
        assert payload.due_date == date(2024, 9, 10)

    async def test_paid_month_not_payable(self, service, charge_request):
        with pytest.raises(ChargeNotPayable):
            await service.build_settlement(charge_request, year=2024, month=4)

    async def test_hidden_month_not_payable(self, source_factory, billing_settings, fixed_clock, charge_request):
        from condo_charges.charges import ResidentBillingProfile

        profile = ResidentBillingProfile(
            resident_id="resident_001",
            unit="101B",
            monthly_due_amount=Decimal("350.00"),
            account_created_at=datetime(2024, 5, 1),
        )
        source = source_factory(settings=billing_settings, profile=profile)
        service = ChargeReconciliationService(source, clock=fixed_clock)

        with pytest.raises(ChargeNotPayable):
            await service.build_settlement(charge_request, year=2024, month=2)

    async def test_missing_payee_key(self, source, fixed_clock, charge_request):
        source.get_billing_settings.return_value = BillingSettings(due_day_of_month=10)
        service = ChargeReconciliationService(source, clock=fixed_clock)

        with pytest.raises(SettlementUnavailable):
            await service.build_settlement(charge_request, year=2024, month=6)

    async def test_settings_read_failure(self, source, billing_settings, fixed_clock, charge_request):
        source.get_billing_settings.side_effect = [billing_settings, RuntimeError("down")]
        service = ChargeReconciliationService(source, clock=fixed_clock)

        with pytest.raises(SettlementUnavailable):
            await service.build_settlement(charge_request, year=2024, month=6)

    async def test_settings_read_again(self, source, billing_settings, fixed_clock, charge_request):
        """Test that the payload uses settings read after locating the charge."""
        updated = billing_settings.model_copy(update={
            "due_day_of_month": 20,
            "payee_key": "financeiro@jardimdasflores.com.br",
            "key_type": PixKeyType.EMAIL,
        })
        source.get_billing_settings.side_effect = [billing_settings, updated]
        service = ChargeReconciliationService(source, clock=fixed_clock)

        payload = await service.build_settlement(charge_request, year=2024, month=6)

        assert source.get_billing_settings.await_count == 2
        assert payload.key_type == PixKeyType.EMAIL
        assert payload.payee_key == "financeiro@jardimdasflores.com.br"
        assert payload.due_date == date(2024, 6, 20)
        assert payload.is_overdue is False

    async def test_missing_identity_leaves_name_empty(self, source, fixed_clock, charge_request):
        source.get_account_identity.return_value = None
        service = ChargeReconciliationService(source, clock=fixed_clock)

        payload = await service.build_settlement(charge_request, year=2024, month=6)

        assert payload.payee_display_name == ""

    async def test_year_out_of_range_not_payable(self, service, charge_request):
        with pytest.raises(ChargeNotPayable):
            await service.build_settlement(charge_request, year=10000, month=6)


class TestGenerateReport:
    async def test_formats(self, service, charge_request):
        statement = await service.reconcile(charge_request)

        assert service.generate_report(statement, format="json").startswith("{")
        assert service.generate_report(statement, format="csv").startswith("id,unit")
        assert "COBRANÇAS PENDENTES" in service.generate_report(statement, format="text")

    async def test_unsupported_format(self, service, charge_request):
        statement = await service.reconcile(charge_request)

        with pytest.raises(ValueError, match="Unsupported report format"):
            service.generate_report(statement, format="xml")
