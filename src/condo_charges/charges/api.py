"""API endpoints for resident charge statements."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from fastapi.responses import PlainTextResponse

from ..auth import verify_api_key, limiter, RATE_LIMIT
from ..database import get_async_session_factory
from .errors import ChargeNotPayable, SettlementUnavailable
from .models import ChargeRequest, ChargeView, SettlementPayload
from .service import ChargeReconciliationService
from .sources import ChargeSource, DatabaseChargeSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/charges", tags=["charges"])


def get_charge_source() -> ChargeSource:
    """Dependency returning the database-backed source."""
    return DatabaseChargeSource(get_async_session_factory())


def get_charge_service(
    source: ChargeSource = Depends(get_charge_source),
) -> ChargeReconciliationService:
    return ChargeReconciliationService(source)


@router.get("/health")
async def charges_health():
    """Health check endpoint for the charges service."""
    return {"status": "healthy", "service": "charges"}


@router.get("/{account_id}/residents/{resident_id}")
@limiter.limit(RATE_LIMIT)
async def get_statement(
    request: Request,
    account_id: str,
    resident_id: str,
    unit: str = Query(..., min_length=1, description="Unit of the resident"),
    view: ChargeView = Query(default=ChargeView.PENDING, description="pending or paid"),
    year: Optional[int] = Query(default=None, ge=1900, le=9999, description="Year to project"),
    format: str = Query(default="json", description="Output format: json, csv, text"),
    include_details: bool = Query(default=True, description="Include every charge"),
    service: ChargeReconciliationService = Depends(get_charge_service),
    api_key: str = Depends(verify_api_key),
):
    """
    Return the charge statement of a resident's unit.

    Pending views list pending and overdue months in month order; paid
    views list ledger payments ordered by reference month.
    """
    if format not in ("json", "csv", "text"):
        raise HTTPException(
            status_code=400,
            detail="format must be one of: json, csv, text"
        )

    charge_request = ChargeRequest(
        account_id=account_id,
        resident_id=resident_id,
        unit=unit,
        year=year,
        view=view,
    )
    statement = await service.reconcile(charge_request)

    if format == "json":
        return statement.to_full_dict() if include_details else statement.to_summary_dict()

    output = service.generate_report(statement, format=format, include_details=include_details)
    content_type = "text/csv" if format == "csv" else "text/plain"
    return PlainTextResponse(content=output, media_type=content_type)


@router.get("/{account_id}/residents/{resident_id}/overdue-count")
@limiter.limit(RATE_LIMIT)
async def get_overdue_count(
    request: Request,
    account_id: str,
    resident_id: str,
    unit: str = Query(..., min_length=1),
    year: Optional[int] = Query(default=None, ge=1900, le=9999),
    service: ChargeReconciliationService = Depends(get_charge_service),
    api_key: str = Depends(verify_api_key),
):
    """Number of overdue months shown to the resident, for the menu badge."""
    charge_request = ChargeRequest(
        account_id=account_id,
        resident_id=resident_id,
        unit=unit,
        year=year,
    )
    count = await service.count_overdue(charge_request)
    return {"unit": unit, "overdue_count": count}


@router.get(
    "/{account_id}/residents/{resident_id}/settlement/{year}/{month}",
    response_model=SettlementPayload,
)
@limiter.limit(RATE_LIMIT)
async def get_settlement(
    request: Request,
    account_id: str,
    resident_id: str,
    year: int = Path(..., ge=1900, le=9999),
    month: int = Path(...),
    unit: str = Query(..., min_length=1),
    service: ChargeReconciliationService = Depends(get_charge_service),
    api_key: str = Depends(verify_api_key),
):
    """
    Return the data the payment dialog needs to settle one month.

    Responds 409 when the month is paid or not shown to the resident and
    503 when the account has no payee key configured.
    """
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be between 1 and 12")

    charge_request = ChargeRequest(
        account_id=account_id,
        resident_id=resident_id,
        unit=unit,
        year=year,
    )
    try:
        return await service.build_settlement(charge_request, year=year, month=month)
    except ChargeNotPayable as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SettlementUnavailable as e:
        logger.warning(str(e))
        raise HTTPException(status_code=503, detail=str(e))
