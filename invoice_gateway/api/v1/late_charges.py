"""POST /v1/late-charges - late fee and interest on an overdue amount"""

from datetime import date

from fastapi import APIRouter, Depends

from invoice_gateway.api.dependencies import get_late_charge_rates
from invoice_gateway.api.v1.schemas import LateChargeRequest, LateChargeResponse
from invoice_gateway.domain.late_charges import LateChargeRates, calculate_late_charges
from invoice_gateway.domain.money import to_cents
from invoice_gateway.infrastructure.observability.metrics import record_late_charges

router = APIRouter()


@router.post("/late-charges", response_model=LateChargeResponse)
def compute_late_charges(
    request_body: LateChargeRequest,
    rates: LateChargeRates = Depends(get_late_charge_rates),
):
    """Charges owed when `amount` is paid on `as_of_date` (today when omitted)"""
    as_of_date = request_body.as_of_date or date.today()
    charges = calculate_late_charges(request_body.amount, request_body.due_date, as_of_date, rates)
    record_late_charges(charges.days_overdue)

    return LateChargeResponse(
        amount_cents=to_cents(request_body.amount),
        late_fee_cents=charges.late_fee_cents,
        interest_cents=charges.interest_cents,
        total_charges_cents=charges.total_charges_cents,
        days_overdue=charges.days_overdue,
    )
