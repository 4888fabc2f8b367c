"""
Appraisal Calculator

Composes the amortization and ratio modules into one calculated model per
loan input. A CalculatedModel is a cache of a pure computation: the same
input and engine version always reproduce it, apart from generated_at.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from loan_appraisal.calculations.amortization import (
    AmortizationSchedule,
    compute_schedule,
)
from loan_appraisal.calculations.config import DEFAULT_CONFIG, EngineConfig
from loan_appraisal.calculations.inputs import LoanInput, derive_principal
from loan_appraisal.calculations.money import quantize_money
from loan_appraisal.calculations.ratios import compute_ratios

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CalculatedModel:
    """Result of appraising one loan input."""

    loan_input: LoanInput
    principal: Decimal
    schedule: AmortizationSchedule
    total_interest_paid: Decimal
    total_repayment: Decimal
    loan_to_value_ratio: Optional[Decimal]
    loan_to_cost_ratio: Optional[Decimal]
    loan_to_purchase_price_ratio: Optional[Decimal]
    debt_service_coverage_ratio: Optional[Decimal]
    engine_version: str
    # Informational only, excluded from equality
    generated_at: datetime = field(default_factory=_utcnow, compare=False)

    @property
    def periodic_payment(self) -> Decimal:
        return self.schedule.periodic_payment

    def to_dict(self, include_schedule: bool = True) -> Dict[str, Any]:
        """Logical shape of the model for serialization."""
        data = {
            "loan_input": self.loan_input.to_dict(),
            "principal": self.principal,
            "periodic_payment": self.periodic_payment,
            "total_interest_paid": self.total_interest_paid,
            "total_repayment": self.total_repayment,
            "loan_to_value_ratio": self.loan_to_value_ratio,
            "loan_to_cost_ratio": self.loan_to_cost_ratio,
            "loan_to_purchase_price_ratio": self.loan_to_purchase_price_ratio,
            "debt_service_coverage_ratio": self.debt_service_coverage_ratio,
            "engine_version": self.engine_version,
            "generated_at": self.generated_at,
        }
        if include_schedule:
            data["schedule"] = self.schedule.to_rows()
        return data


class AppraisalCalculator:
    """Turns a LoanInput into a CalculatedModel."""

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    def calculate(self, loan_input: LoanInput) -> CalculatedModel:
        """
        Appraise a single loan input.

        Raises:
            InvalidInputError: (or a rate/term/principal subclass) naming the
                violated field; raised before any numeric work
        """
        loan_input.validate()

        places = self.config.currency_places
        principal = quantize_money(derive_principal(loan_input), places)

        schedule = compute_schedule(
            principal,
            loan_input.annual_interest_rate,
            loan_input.loan_term_months,
            start_date=loan_input.predicted_start_date,
            config=self.config,
        )
        ratios = compute_ratios(loan_input, principal, schedule, self.config)

        total_interest = schedule.total_interest
        total_repayment = schedule.total_repayment

        logger.debug(
            "Appraised principal=%s term=%d rate=%s: repayment=%s interest=%s",
            principal,
            loan_input.loan_term_months,
            loan_input.annual_interest_rate,
            total_repayment,
            total_interest,
        )

        return CalculatedModel(
            loan_input=loan_input,
            principal=principal,
            schedule=schedule,
            total_interest_paid=total_interest,
            total_repayment=total_repayment,
            loan_to_value_ratio=ratios.loan_to_value,
            loan_to_cost_ratio=ratios.loan_to_cost,
            loan_to_purchase_price_ratio=ratios.loan_to_purchase_price,
            debt_service_coverage_ratio=ratios.debt_service_coverage,
            engine_version=self.config.engine_version,
        )


def calculate(
    loan_input: LoanInput, config: EngineConfig = DEFAULT_CONFIG
) -> CalculatedModel:
    """Appraise a loan input with the given (or default) configuration."""
    return AppraisalCalculator(config).calculate(loan_input)
