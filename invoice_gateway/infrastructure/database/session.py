"""Database session management"""

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from invoice_gateway.config import settings
from invoice_gateway.infrastructure.database.models import Base

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

# Recycle after 1 hour to avoid stale connections
engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    pool_pre_ping=True,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create the audit tables if they do not exist"""
    Base.metadata.create_all(bind=engine)
