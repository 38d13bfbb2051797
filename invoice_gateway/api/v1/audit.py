"""GET /v1/audit - persisted audit trail of a card's computations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from invoice_gateway.api.v1.schemas import AuditEntrySchema, AuditResponse
from invoice_gateway.config import settings
from invoice_gateway.infrastructure.database.repositories import AuditEntryRepository
from invoice_gateway.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/audit", response_model=AuditResponse)
def get_audit_trail(
    card_id: str = Query(..., description="Card identifier used when building invoices"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent audit entries for a card.

    Returns:
        Entries newest first (classification defaults, exclusions, overrides, builds)
    """
    repository = AuditEntryRepository(db)
    records = repository.get_entries_by_card(card_id, limit=limit or settings.audit_history_limit)

    return AuditResponse(
        card_id=card_id,
        entries=[AuditEntrySchema.model_validate(record) for record in records],
    )
