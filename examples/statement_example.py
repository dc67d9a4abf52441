"""
Seeds a throwaway SQLite database with one condominium, one resident and an
April payment, then prints the resident's pending statement and the settlement
payload of June as they looked on 2024-06-15.
"""
import asyncio
import os
import tempfile
from datetime import date, datetime

from condo_charges.charges import ChargeRequest, ChargeReconciliationService, DatabaseChargeSource
from condo_charges.database import (
    BillingSettingsRepository,
    CondominiumRepository,
    FinancialIncomeRepository,
    ResidentRepository,
    close_db,
    get_async_session_factory,
    init_db,
)


async def seed():
    async with get_async_session_factory()() as session:
        await CondominiumRepository(session).create("cond_123", "Residencial Jardim das Flores")
        await BillingSettingsRepository(session).upsert("cond_123", "CNPJ", "12.345.678/0001-90", due_day="10")
        resident = await ResidentRepository(session).create(
            "cond_123", "101B", "Maria Souza", monthly_due_amount="350,00", resident_id="resident_001"
        )
        resident.created_at = datetime(2023, 11, 20, 14, 30)
        await FinancialIncomeRepository(session).create("cond_123", "101B", "350,00", "2024-04", date(2024, 4, 8))
        await session.commit()


async def run():
    db_path = os.path.join(tempfile.mkdtemp(), "statement_example.db")
    await init_db(f"sqlite+aiosqlite:///{db_path}")
    try:
        await seed()
        service = ChargeReconciliationService(
            DatabaseChargeSource(get_async_session_factory()),
            clock=lambda: date(2024, 6, 15),
        )
        request = ChargeRequest(account_id="cond_123", resident_id="resident_001", unit="101B", year=2024)

        statement = await service.reconcile(request)
        print(service.generate_report(statement, format="text"))

        payload = await service.build_settlement(request, year=2024, month=6)
        print("Settlement:", payload.model_dump_json(indent=2))
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(run())
