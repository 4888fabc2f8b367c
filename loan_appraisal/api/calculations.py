"""
Appraisal calculation API endpoints.

These endpoints accept loan inputs and return calculated results.
Nothing here is persisted; see appraisals.py for the stored variants.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from loan_appraisal.calculations import amortization
from loan_appraisal.calculations.appraisal import AppraisalCalculator, CalculatedModel
from loan_appraisal.calculations.comparison import RankingObjective
from loan_appraisal.calculations.config import EngineConfig
from loan_appraisal.calculations.experiment import (
    ExperimentAxis,
    ExperimentPlan,
    ExperimentResult,
    ExperimentRunner,
    VariantOutcome,
)
from loan_appraisal.calculations.inputs import LoanInput
from loan_appraisal.config import get_settings

router = APIRouter()


def get_engine_config() -> EngineConfig:
    """Dependency providing the engine configuration."""
    return get_settings().engine_config()


# ============================================================================
# SCHEMAS
# ============================================================================


class LoanInputSchema(BaseModel):
    """Loan input schema."""

    purchase_price: Decimal = Field(gt=0)
    total_costs: Decimal = Field(default=Decimal("0"), ge=0)
    loan_term_months: int
    annual_interest_rate: Decimal
    predicted_start_date: date
    down_payment: Decimal = Field(default=Decimal("0"), ge=0)
    projected_annual_rental_income: Optional[Decimal] = Field(default=None, ge=0)

    def to_loan_input(self) -> LoanInput:
        return LoanInput(**self.model_dump(include=set(LoanInputSchema.model_fields)))


class AmortizationPeriodSchema(BaseModel):
    """One row of an amortization schedule."""

    period: int
    payment_date: Optional[date]
    opening_balance: Decimal
    payment: Decimal
    interest: Decimal
    principal: Decimal
    closing_balance: Decimal


class AmortizationInput(BaseModel):
    """Input for amortization calculation."""

    principal: Decimal
    annual_rate: Decimal
    term_months: int
    start_date: Optional[date] = None


class AmortizationResponse(BaseModel):
    """Amortization schedule with totals."""

    periodic_payment: Decimal
    total_interest: Decimal
    total_principal: Decimal
    total_repayment: Decimal
    schedule: List[AmortizationPeriodSchema]


class CalculatedModelResponse(BaseModel):
    """Calculated appraisal model."""

    loan_input: LoanInputSchema
    principal: Decimal
    periodic_payment: Decimal
    total_interest_paid: Decimal
    total_repayment: Decimal
    loan_to_value_ratio: Optional[Decimal]
    loan_to_cost_ratio: Optional[Decimal]
    loan_to_purchase_price_ratio: Optional[Decimal]
    debt_service_coverage_ratio: Optional[Decimal]
    engine_version: str
    generated_at: datetime
    schedule: Optional[List[AmortizationPeriodSchema]] = None


class ExperimentAxisSchema(BaseModel):
    """One varied field with its candidate values."""

    field: Literal[
        "purchase_price", "annual_interest_rate", "loan_term_months", "down_payment"
    ]
    values: List[Decimal] = Field(min_length=1)

    def to_axis(self) -> ExperimentAxis:
        values: List[Any] = list(self.values)
        if self.field == "loan_term_months":
            # Integral terms become ints; anything else fails per variant
            values = [int(v) if v == v.to_integral_value() else v for v in values]
        return ExperimentAxis(field=self.field, values=values)


class ExperimentInput(BaseModel):
    """Input for an experiment run."""

    base: LoanInputSchema
    axes: List[ExperimentAxisSchema] = []
    objective: Optional[RankingObjective] = None
    include_schedules: bool = False

    def to_plan(self) -> ExperimentPlan:
        return ExperimentPlan(
            base=self.base.to_loan_input(),
            axes=[axis.to_axis() for axis in self.axes],
            objective=self.objective,
        )


class RankInput(ExperimentInput):
    """Experiment input where the ranking objective is required."""

    objective: RankingObjective


class VariantOutcomeSchema(BaseModel):
    """Outcome of one experiment variant."""

    index: int
    overrides: Dict[str, Any]
    succeeded: bool
    model: Optional[CalculatedModelResponse] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_field: Optional[str] = None


class ExperimentResponse(BaseModel):
    """Experiment results in enumeration or ranked order."""

    variant_count: int
    objective: Optional[RankingObjective]
    succeeded_count: int
    failed_count: int
    outcomes: List[VariantOutcomeSchema]


# ============================================================================
# CONVERTERS
# ============================================================================


def model_to_response(
    model: CalculatedModel, include_schedule: bool = True
) -> CalculatedModelResponse:
    """Convert a CalculatedModel to its response schema."""
    data = model.to_dict(include_schedule=include_schedule)
    return CalculatedModelResponse(**data)


def outcome_to_response(
    outcome: VariantOutcome, include_schedule: bool = False
) -> VariantOutcomeSchema:
    return VariantOutcomeSchema(
        index=outcome.index,
        overrides=outcome.overrides,
        succeeded=outcome.succeeded,
        model=(
            model_to_response(outcome.model, include_schedule)
            if outcome.model is not None
            else None
        ),
        error=outcome.error,
        error_type=outcome.error_type,
        error_field=outcome.error_field,
    )


def experiment_to_response(
    result: ExperimentResult, include_schedules: bool = False
) -> ExperimentResponse:
    """Convert an ExperimentResult to its response schema."""
    return ExperimentResponse(
        variant_count=result.variant_count,
        objective=result.objective,
        succeeded_count=len(result.successes),
        failed_count=len(result.failures),
        outcomes=[outcome_to_response(o, include_schedules) for o in result],
    )


# ============================================================================
# ENDPOINTS
# ============================================================================


@router.post("/appraisal", response_model=CalculatedModelResponse)
async def calculate_appraisal(
    inputs: LoanInputSchema,
    include_schedule: bool = True,
    config: EngineConfig = Depends(get_engine_config),
):
    """Calculate an appraisal model for a single loan input."""
    model = AppraisalCalculator(config).calculate(inputs.to_loan_input())
    return model_to_response(model, include_schedule)


@router.post("/amortization", response_model=AmortizationResponse)
async def calculate_amortization(
    inputs: AmortizationInput,
    config: EngineConfig = Depends(get_engine_config),
):
    """Generate loan amortization schedule."""
    schedule = amortization.compute_schedule(
        principal=inputs.principal,
        annual_rate=inputs.annual_rate,
        term_months=inputs.term_months,
        start_date=inputs.start_date,
        config=config,
    )

    return AmortizationResponse(
        periodic_payment=schedule.periodic_payment,
        total_interest=schedule.total_interest,
        total_principal=schedule.total_principal,
        total_repayment=schedule.total_repayment,
        schedule=schedule.to_rows(),
    )


@router.post("/experiment", response_model=ExperimentResponse)
async def calculate_experiment(
    inputs: ExperimentInput,
    config: EngineConfig = Depends(get_engine_config),
):
    """Run a parameter sweep over a base loan input."""
    result = ExperimentRunner(config).run(inputs.to_plan())
    return experiment_to_response(result, inputs.include_schedules)


@router.post("/rank", response_model=ExperimentResponse)
async def rank_experiment(
    inputs: RankInput,
    config: EngineConfig = Depends(get_engine_config),
):
    """Run a parameter sweep and rank successful variants by the objective."""
    plan = inputs.to_plan()
    result = ExperimentRunner(config).run(
        ExperimentPlan(base=plan.base, axes=plan.axes)
    )
    return experiment_to_response(
        result.ranked(inputs.objective), inputs.include_schedules
    )
