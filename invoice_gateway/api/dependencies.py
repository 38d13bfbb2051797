"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from invoice_gateway.config import settings
from invoice_gateway.domain.audit import AuditLog
from invoice_gateway.domain.business_days import HolidayCalendar, get_calendar
from invoice_gateway.domain.late_charges import LateChargeRates
from invoice_gateway.infrastructure.database.repositories import AuditEntryRepository
from invoice_gateway.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_holiday_calendar() -> HolidayCalendar:
    """Provide the configured holiday calendar"""
    return get_calendar(settings.holiday_calendar)


def get_late_charge_rates() -> LateChargeRates:
    """Provide late-charge rates from settings"""
    return LateChargeRates(
        late_fee_rate=settings.late_fee_rate,
        mora_monthly_rate=settings.mora_monthly_rate,
        revolving_monthly_rate=settings.revolving_monthly_rate,
    )


def get_audit_log(db: Session = Depends(get_db)) -> AuditLog:
    """Provide an audit log persisting committed batches in the request's session"""
    return AuditLog(sink=AuditEntryRepository(db).add_entries)
