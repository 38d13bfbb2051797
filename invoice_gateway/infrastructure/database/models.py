"""SQLAlchemy ORM models for the persisted audit trail"""

import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class AuditRecord(Base):
    """One audit entry of an invoice computation"""

    __tablename__ = "invoice_audit_entry"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    computation_id = Column(Text, nullable=False, index=True)
    card_id = Column(Text, nullable=True, index=True)
    sequence = Column(Integer, nullable=False)  # position within the computation
    operation = Column(Text, nullable=False)
    details = Column(JSON, nullable=False)
    result = Column(JSON, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
