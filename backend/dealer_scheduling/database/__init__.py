"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
import logging
from typing import Any, Generator, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import UnboundExecutionError
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from ..core.config import settings

logger = logging.getLogger(__name__)


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Engine options for the configured dialect."""
    kwargs: dict[str, Any] = {"echo": settings.db_echo, "future": True}
    if db_url.startswith("sqlite"):
        # Admission runs in worker threads, so connections cross threads.
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout_seconds,
        }
        return kwargs

    kwargs.update(
        {
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            # Fail fast when the pool is exhausted; the API answers 503.
            "pool_timeout": settings.db_pool_timeout,
            "pool_pre_ping": True,
        }
    )
    return kwargs


def build_engine(db_url: str) -> Engine:
    """Create an engine for ``db_url`` with connection hooks installed."""
    new_engine = create_engine(db_url, **_build_engine_kwargs(db_url))

    if new_engine.dialect.name == "sqlite":

        @event.listens_for(new_engine, "connect")
        def _sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={int(settings.sqlite_busy_timeout_seconds * 1000)}")
            cursor.close()

    @event.listens_for(new_engine, "connect")
    def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["connect_time"] = datetime.now()
        logger.debug("Database connection established")

    return new_engine


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind, expire_on_commit=False)


engine: Engine = build_engine(settings.database_url)

SessionLocal = build_session_factory(engine)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Session scope for scripts and commands outside the request cycle."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """Dialect name of the engine a session is bound to."""
    try:
        bind = session.get_bind()
    except UnboundExecutionError:
        return default
    dialect = getattr(bind, "dialect", None)
    return getattr(dialect, "name", None) or default


def init_db(bind: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    # Register every model on the metadata before creating tables.
    from .. import models  # noqa: F401

    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info("Database schema ready", extra={"dialect": target.dialect.name})


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "build_session_factory",
    "engine",
    "get_db",
    "get_db_session",
    "get_dialect_name",
    "init_db",
]
