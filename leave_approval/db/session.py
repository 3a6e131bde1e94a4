"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from leave_approval.core.config import settings
from leave_approval.db.base import Base

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args,
    echo=False
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_models() -> None:
    """Create tables for SQLite deployments (other databases are provisioned externally)"""
    # Import models so they are registered on Base.metadata
    import leave_approval.models  # noqa: F401

    if "sqlite" in settings.DATABASE_URL:
        Base.metadata.create_all(bind=engine)
