"""
Stored appraisal API endpoints.

Saved loan inputs, their cached calculated models, and experiments run
against them.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from loan_appraisal.api.calculations import (
    CalculatedModelResponse,
    ExperimentAxisSchema,
    ExperimentResponse,
    LoanInputSchema,
    experiment_to_response,
    get_engine_config,
    model_to_response,
)
from loan_appraisal.calculations.appraisal import AppraisalCalculator
from loan_appraisal.calculations.comparison import RankingObjective
from loan_appraisal.calculations.config import EngineConfig
from loan_appraisal.calculations.experiment import (
    ExperimentPlan,
    ExperimentRunner,
    order_outcomes,
)
from loan_appraisal.db.database import get_db
from loan_appraisal.db.models import Appraisal, Experiment

logger = logging.getLogger(__name__)

router = APIRouter()


class AppraisalCreate(LoanInputSchema):
    """Schema for creating an appraisal."""

    name: str
    description: Optional[str] = None


class AppraisalResponse(BaseModel):
    """Schema for appraisal response."""

    id: str
    name: str
    description: Optional[str]
    purchase_price: Decimal
    total_costs: Decimal
    loan_term_months: int
    annual_interest_rate: Decimal
    predicted_start_date: date
    down_payment: Decimal
    projected_annual_rental_income: Optional[Decimal]
    calculated_at: Optional[datetime] = None
    engine_version: Optional[str] = None

    class Config:
        from_attributes = True


class AppraisalListResponse(BaseModel):
    """Response for listing appraisals."""

    appraisals: List[AppraisalResponse]
    total: int


class ExperimentCreate(BaseModel):
    """Schema for running a stored experiment."""

    name: Optional[str] = None
    axes: List[ExperimentAxisSchema] = []
    objective: Optional[RankingObjective] = None


class ExperimentRecordResponse(BaseModel):
    """Stored experiment with its results."""

    id: str
    appraisal_id: str
    name: Optional[str]
    objective: Optional[str]
    variant_count: int
    failed_count: int
    result: dict
    created_at: datetime


def _get_appraisal(db: Session, appraisal_id: str) -> Appraisal:
    appraisal = db.query(Appraisal).filter(
        Appraisal.id == appraisal_id,
        Appraisal.is_deleted == False,
    ).first()
    if not appraisal:
        raise HTTPException(status_code=404, detail="Appraisal not found")
    return appraisal


def experiment_to_record_response(experiment: Experiment) -> ExperimentRecordResponse:
    return ExperimentRecordResponse(
        id=experiment.id,
        appraisal_id=experiment.appraisal_id,
        name=experiment.name,
        objective=experiment.objective,
        variant_count=experiment.variant_count,
        failed_count=experiment.failed_count,
        result=experiment.result or {},
        created_at=experiment.created_at,
    )


@router.get("/", response_model=AppraisalListResponse)
async def list_appraisals(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    """List saved appraisals."""
    query = db.query(Appraisal).filter(Appraisal.is_deleted == False)
    total = query.count()
    appraisals = query.order_by(Appraisal.created_at).offset(skip).limit(limit).all()

    return AppraisalListResponse(
        appraisals=[AppraisalResponse.model_validate(a) for a in appraisals],
        total=total,
    )


@router.post("/", response_model=AppraisalResponse, status_code=201)
async def create_appraisal(
    appraisal_data: AppraisalCreate,
    db: Session = Depends(get_db),
):
    """Save a loan input. Domain invariants are checked before storing."""
    appraisal_data.to_loan_input().validate()

    db_appraisal = Appraisal(**appraisal_data.model_dump())
    db.add(db_appraisal)
    db.commit()
    db.refresh(db_appraisal)

    logger.info(f"Created appraisal {db_appraisal.id} ({db_appraisal.name})")
    return AppraisalResponse.model_validate(db_appraisal)


@router.get("/{appraisal_id}", response_model=AppraisalResponse)
async def get_appraisal(appraisal_id: str, db: Session = Depends(get_db)):
    """Get a saved appraisal by ID."""
    return AppraisalResponse.model_validate(_get_appraisal(db, appraisal_id))


@router.delete("/{appraisal_id}")
async def delete_appraisal(appraisal_id: str, db: Session = Depends(get_db)):
    """Soft delete a saved appraisal."""
    appraisal = _get_appraisal(db, appraisal_id)
    appraisal.is_deleted = True
    db.commit()
    return {"deleted": True}


@router.post("/{appraisal_id}/calculate", response_model=CalculatedModelResponse)
async def calculate_saved_appraisal(
    appraisal_id: str,
    include_schedule: bool = True,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config),
):
    """Calculate a saved appraisal and cache the model on the record."""
    appraisal = _get_appraisal(db, appraisal_id)
    model = AppraisalCalculator(config).calculate(appraisal.to_loan_input())

    response = model_to_response(model, include_schedule=True)
    appraisal.calculated_model = response.model_dump(mode="json")
    appraisal.calculated_at = model.generated_at
    appraisal.engine_version = model.engine_version
    db.commit()

    logger.info(f"Cached calculated model for appraisal {appraisal_id}")
    if include_schedule:
        return response
    return model_to_response(model, include_schedule=False)


@router.get("/{appraisal_id}/model", response_model=CalculatedModelResponse)
async def get_cached_model(appraisal_id: str, db: Session = Depends(get_db)):
    """Return the cached calculated model of a saved appraisal."""
    appraisal = _get_appraisal(db, appraisal_id)
    if not appraisal.calculated_model:
        raise HTTPException(status_code=404, detail="Appraisal has not been calculated")
    return CalculatedModelResponse.model_validate(appraisal.calculated_model)


@router.post(
    "/{appraisal_id}/experiments",
    response_model=ExperimentRecordResponse,
    status_code=201,
)
async def run_saved_experiment(
    appraisal_id: str,
    experiment_data: ExperimentCreate,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config),
):
    """Run an experiment against a saved appraisal and store the results."""
    appraisal = _get_appraisal(db, appraisal_id)
    plan = ExperimentPlan(
        base=appraisal.to_loan_input(),
        axes=[axis.to_axis() for axis in experiment_data.axes],
        objective=experiment_data.objective,
    )
    result = ExperimentRunner(config).run(plan)

    experiment = Experiment(
        appraisal_id=appraisal.id,
        name=experiment_data.name,
        axes=[axis.model_dump(mode="json") for axis in experiment_data.axes],
        objective=experiment_data.objective.value if experiment_data.objective else None,
        variant_count=result.variant_count,
        failed_count=len(result.failures),
        result=experiment_to_response(result).model_dump(mode="json"),
        engine_version=config.engine_version,
    )
    db.add(experiment)
    db.commit()
    db.refresh(experiment)

    logger.info(
        f"Stored experiment {experiment.id} for appraisal {appraisal_id}: "
        f"{experiment.variant_count} variants, {experiment.failed_count} failed"
    )
    return experiment_to_record_response(experiment)


@router.get("/{appraisal_id}/experiments", response_model=List[ExperimentRecordResponse])
async def list_saved_experiments(appraisal_id: str, db: Session = Depends(get_db)):
    """List experiments stored against a saved appraisal."""
    appraisal = _get_appraisal(db, appraisal_id)
    experiments = (
        appraisal.experiments.filter(Experiment.is_deleted == False)
        .order_by(Experiment.created_at)
        .all()
    )
    return [experiment_to_record_response(e) for e in experiments]


@router.get("/{appraisal_id}/experiments/{experiment_id}/ranked", response_model=ExperimentResponse)
async def rerank_saved_experiment(
    appraisal_id: str,
    experiment_id: str,
    objective: RankingObjective,
    db: Session = Depends(get_db),
):
    """Re-rank the stored outcomes of an experiment by a new objective."""
    appraisal = _get_appraisal(db, appraisal_id)
    experiment = appraisal.experiments.filter(
        Experiment.id == experiment_id,
        Experiment.is_deleted == False,
    ).first()
    if not experiment:
        raise HTTPException(status_code=404, detail="Experiment not found")

    stored = ExperimentResponse.model_validate(experiment.result or {})
    return stored.model_copy(
        update={
            "objective": objective,
            "outcomes": list(order_outcomes(stored.outcomes, objective)),
        }
    )
