"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os
from datetime import date
from decimal import Decimal

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from loan_appraisal.main import app
from loan_appraisal.db.database import get_db
from loan_appraisal.calculations.inputs import LoanInput
# Import all models to ensure all tables are created
from loan_appraisal.db.models import Base, Appraisal, Experiment


# Create a shared test database engine
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the dependency globally for all tests
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and drop after."""
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    """Create database session for test setup."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def base_input():
    """$250k purchase, $10k costs, $60k down: $200k financed at 6% for 30 years."""
    return LoanInput(
        purchase_price=Decimal("250000"),
        total_costs=Decimal("10000"),
        loan_term_months=360,
        annual_interest_rate=Decimal("0.06"),
        predicted_start_date=date(2025, 1, 1),
        down_payment=Decimal("60000"),
        projected_annual_rental_income=Decimal("18000"),
    )
