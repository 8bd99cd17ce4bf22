# backend/dealer_scheduling/api/dependencies/database.py
"""
Database-related dependencies.
"""

from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from ...database import SessionLocal
from ...database import get_db as original_get_db


def get_db() -> Generator[Session, None, None]:
    """
    Get database session dependency.

    Yields:
        Database session that will be closed after use
    """
    yield from original_get_db()


def get_session_factory() -> sessionmaker:
    """
    Session factory for work that must outlive the request.

    Admission opens its own session from this factory inside a worker
    thread, so a disconnecting client cannot interrupt the transaction.
    """
    return SessionLocal
