"""
Database connection and session management for the appraisal store.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool

from loan_appraisal.config import get_settings
from loan_appraisal.db.models import Base

logger = logging.getLogger(__name__)
settings = get_settings()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine; NullPool for Postgres, thread-shared SQLite otherwise."""
    if database_url.startswith("postgresql"):
        return create_engine(database_url, poolclass=NullPool)
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False},
    )


engine = create_db_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Create appraisal and experiment tables if missing."""
    logger.info("Initializing appraisal store tables")
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Transactional session for scripts running outside FastAPI."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
