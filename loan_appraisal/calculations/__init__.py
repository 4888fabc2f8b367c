"""
Financial Appraisal Calculation Engine

Pure, deterministic modules turning loan inputs into calculated appraisal
models and comparing them across parameter sweeps.
"""

from loan_appraisal.calculations import amortization, ratios, appraisal, experiment, comparison
from loan_appraisal.calculations.appraisal import AppraisalCalculator, CalculatedModel, calculate
from loan_appraisal.calculations.comparison import RankingObjective, rank
from loan_appraisal.calculations.config import EngineConfig
from loan_appraisal.calculations.errors import (
    AppraisalError,
    DivisionUndefinedError,
    ExperimentTooLargeError,
    InvalidInputError,
    InvalidPrincipalError,
    InvalidRateError,
    InvalidTermError,
)
from loan_appraisal.calculations.experiment import (
    ExperimentAxis,
    ExperimentPlan,
    ExperimentResult,
    ExperimentRunner,
    VariantOutcome,
    run_experiment,
)
from loan_appraisal.calculations.inputs import LoanInput

__all__ = [
    "amortization",
    "ratios",
    "appraisal",
    "experiment",
    "comparison",
    "AppraisalCalculator",
    "CalculatedModel",
    "calculate",
    "RankingObjective",
    "rank",
    "EngineConfig",
    "AppraisalError",
    "DivisionUndefinedError",
    "ExperimentTooLargeError",
    "InvalidInputError",
    "InvalidPrincipalError",
    "InvalidRateError",
    "InvalidTermError",
    "ExperimentAxis",
    "ExperimentPlan",
    "ExperimentResult",
    "ExperimentRunner",
    "VariantOutcome",
    "run_experiment",
    "LoanInput",
]
