"""POST /v1/invoices - closed, current and forecast invoices of a card"""

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from invoice_gateway.api.dependencies import (
    get_audit_log,
    get_holiday_calendar,
    get_late_charge_rates,
    get_request_id,
)
from invoice_gateway.api.v1.schemas import InvoiceBuildResponse, InvoiceRequest
from invoice_gateway.config import settings
from invoice_gateway.domain.audit import AuditLog
from invoice_gateway.domain.business_days import HolidayCalendar
from invoice_gateway.domain.exceptions import ConfigurationError
from invoice_gateway.domain.invoices import build_invoices
from invoice_gateway.domain.late_charges import LateChargeRates
from invoice_gateway.infrastructure.database.session import get_db
from invoice_gateway.infrastructure.observability.logging import log_invoice_build
from invoice_gateway.infrastructure.observability.metrics import invoice_build_counter, record_invoice_build

router = APIRouter()


@router.post("/invoices", response_model=InvoiceBuildResponse)
def create_invoice_build(
    request_body: InvoiceRequest,
    request: Request,
    db: Session = Depends(get_db),
    calendar: HolidayCalendar = Depends(get_holiday_calendar),
    rates: LateChargeRates = Depends(get_late_charge_rates),
    audit_log: AuditLog = Depends(get_audit_log),
):
    """
    Build a card's invoices from raw aggregator data.

    Flow:
    1. Normalize card and transactions (bad records are excluded, not fatal)
    2. Bucket transactions into billing cycles and classify them
    3. Project installments and recurring charges into open/forecast cycles
    4. Persist the computation's audit trail
    5. Return invoices, purchases and excluded records
    """
    start_time = time.perf_counter()
    request_id = get_request_id(request)
    forecast_months = (
        request_body.forecast_months if request_body.forecast_months is not None else settings.forecast_months
    )

    try:
        result = build_invoices(
            request_body.card,
            request_body.transactions,
            card_id=request_body.card_id,
            forecast_months=forecast_months,
            as_of_date=request_body.as_of_date,
            calendar=calendar,
            rates=rates,
            audit=audit_log,
            recurring=[charge.to_domain() for charge in request_body.recurring],
            roll_unpaid_balance=settings.roll_unpaid_balance,
        )
        db.commit()

    except ConfigurationError as e:
        db.rollback()
        invoice_build_counter.labels(outcome="configuration_error").inc()
        logging.warning(f"Card configuration error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except ValueError as e:
        db.rollback()
        invoice_build_counter.labels(outcome="invalid_input").inc()
        logging.warning(f"Invalid invoice request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        invoice_build_counter.labels(outcome="error").inc()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.perf_counter() - start_time) * 1000
    record_invoice_build(result, audit_log.entries())
    log_invoice_build(
        request_id,
        request_body.card_id,
        result.closed_invoice.total_cents,
        result.current_invoice.total_cents,
        len(result.excluded),
        duration_ms,
    )

    return InvoiceBuildResponse.model_validate(result)
