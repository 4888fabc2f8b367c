"""
SQLAlchemy ORM models for stored appraisals and experiments.
"""

from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    JSON,
    Numeric,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
import uuid

from loan_appraisal.calculations.inputs import LoanInput

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


class AuditMixin:
    """Mixin for audit fields on all models."""

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
    is_deleted = Column(Boolean, default=False, nullable=False)


class Appraisal(AuditMixin, Base):
    """A saved loan input and its most recent calculated model."""

    __tablename__ = "appraisals"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text)

    # Acquisition
    purchase_price = Column(Numeric(18, 2), nullable=False)
    total_costs = Column(Numeric(18, 2), nullable=False, default=0)
    down_payment = Column(Numeric(18, 2), nullable=False, default=0)

    # Financing
    loan_term_months = Column(Integer, nullable=False)
    annual_interest_rate = Column(Numeric(12, 8), nullable=False)
    predicted_start_date = Column(Date, nullable=False)

    # Income
    projected_annual_rental_income = Column(Numeric(18, 2), nullable=True)

    # Calculated results (cached, always re-derivable from the inputs)
    calculated_model = Column(JSON, nullable=True)
    calculated_at = Column(DateTime, nullable=True)
    engine_version = Column(String(20), nullable=True)

    # Relationships
    experiments = relationship(
        "Experiment",
        back_populates="appraisal",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def to_loan_input(self) -> LoanInput:
        """Build the engine value object from the stored columns."""
        return LoanInput(
            purchase_price=self.purchase_price,
            total_costs=self.total_costs,
            loan_term_months=self.loan_term_months,
            annual_interest_rate=self.annual_interest_rate,
            predicted_start_date=self.predicted_start_date,
            down_payment=self.down_payment,
            projected_annual_rental_income=self.projected_annual_rental_income,
        )


class Experiment(AuditMixin, Base):
    """A parameter sweep run against a saved appraisal."""

    __tablename__ = "experiments"

    id = Column(String, primary_key=True, default=generate_uuid)
    appraisal_id = Column(String, ForeignKey("appraisals.id"), nullable=False, index=True)
    name = Column(String(255))

    # Plan (axes stored as JSON list of {"field", "values"})
    axes = Column(JSON, default=list)
    objective = Column(String(50), nullable=True)

    # Results
    variant_count = Column(Integer, default=0)
    failed_count = Column(Integer, default=0)
    result = Column(JSON, default=dict)
    engine_version = Column(String(20), nullable=True)

    # Relationships
    appraisal = relationship("Appraisal", back_populates="experiments")
