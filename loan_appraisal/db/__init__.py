"""
Database configuration and models.
"""

from loan_appraisal.db.database import engine, SessionLocal, get_db
from loan_appraisal.db.models import Base

__all__ = ["engine", "SessionLocal", "get_db", "Base"]
