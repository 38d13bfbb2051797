"""Data access layer for persisted audit entries"""

from typing import List, Sequence

from sqlalchemy.orm import Session

from invoice_gateway.domain.audit import AuditEntry
from invoice_gateway.infrastructure.database.models import AuditRecord


class AuditEntryRepository:
    """Repository for audit trail entries"""

    def __init__(self, db: Session):
        self.db = db

    def add_entries(self, entries: Sequence[AuditEntry]) -> List[AuditRecord]:
        """Persist one committed batch, keeping its call order"""
        records = [
            AuditRecord(
                computation_id=entry.computation_id,
                card_id=entry.card_id,
                sequence=position,
                operation=entry.operation,
                details=entry.details,
                result=entry.result,
                recorded_at=entry.recorded_at,
            )
            for position, entry in enumerate(entries)
        ]
        self.db.add_all(records)
        self.db.flush()  # Get IDs without committing
        return records

    def get_entries_by_card(self, card_id: str, limit: int = 50) -> List[AuditRecord]:
        """Fetch the most recent entries for a card, newest first"""
        return (
            self.db.query(AuditRecord)
            .filter(AuditRecord.card_id == card_id)
            .order_by(AuditRecord.recorded_at.desc(), AuditRecord.sequence.desc())
            .limit(limit)
            .all()
        )
