"""
Experiment Runner

Re-runs the appraisal calculator over a Cartesian product of varied inputs.

Variants are enumerated with axes in declared order and candidates in the
order supplied, the first axis varying slowest. That order is part of the
output contract. A failing variant is recorded against itself and never
aborts the rest of the run.
"""

import itertools
import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from loan_appraisal.calculations.appraisal import AppraisalCalculator, CalculatedModel
from loan_appraisal.calculations.comparison import (
    RankingObjective,
    parse_objective,
    rank,
)
from loan_appraisal.calculations.config import DEFAULT_CONFIG, EngineConfig
from loan_appraisal.calculations.errors import (
    AppraisalError,
    ExperimentTooLargeError,
    InvalidInputError,
)
from loan_appraisal.calculations.inputs import OVERRIDABLE_FIELDS, LoanInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExperimentAxis:
    """One varied field and its ordered candidate values."""

    field: str
    values: Tuple[Any, ...]

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True)
class ExperimentPlan:
    """A base input plus the axes to sweep."""

    base: LoanInput
    axes: Tuple[ExperimentAxis, ...] = ()
    objective: Optional[RankingObjective] = None

    def __post_init__(self):
        object.__setattr__(self, "axes", tuple(self.axes))
        if self.objective is not None:
            object.__setattr__(self, "objective", parse_objective(self.objective))

    @property
    def variant_count(self) -> int:
        return math.prod(len(axis.values) for axis in self.axes)

    def validate(self) -> "ExperimentPlan":
        seen = set()
        for axis in self.axes:
            if axis.field not in OVERRIDABLE_FIELDS:
                raise InvalidInputError(axis.field, "cannot be varied in an experiment")
            if axis.field in seen:
                raise InvalidInputError(axis.field, "appears in more than one axis")
            if not axis.values:
                raise InvalidInputError(axis.field, "axis has no candidate values")
            seen.add(axis.field)
        return self

    def combinations(self):
        """Yield override dicts in enumeration order."""
        fields = [axis.field for axis in self.axes]
        for values in itertools.product(*(axis.values for axis in self.axes)):
            yield dict(zip(fields, values))


@dataclass(frozen=True)
class VariantOutcome:
    """Result of one variant: a model, or the reason it failed."""

    index: int
    overrides: Dict[str, Any]
    loan_input: Optional[LoanInput]
    model: Optional[CalculatedModel] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_field: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.model is not None


def order_outcomes(
    outcomes: Sequence[Any], objective: Optional[RankingObjective]
) -> Tuple[Any, ...]:
    """
    Put outcomes in enumeration order, or ranked by objective with failures
    appended in enumeration order.

    Works on anything exposing index, succeeded and model, including
    outcomes rebuilt from stored results.
    """
    if objective is None:
        return tuple(sorted(outcomes, key=lambda o: o.index))
    enumerated = sorted(outcomes, key=lambda o: o.index)
    failures = [o for o in enumerated if not o.succeeded]
    return tuple(rank(enumerated, objective)) + tuple(failures)


@dataclass(frozen=True)
class ExperimentResult:
    """All variant outcomes of an experiment run."""

    outcomes: Tuple[VariantOutcome, ...]
    objective: Optional[RankingObjective] = None
    variant_count: int = 0

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self):
        return iter(self.outcomes)

    @property
    def successes(self) -> List[VariantOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failures(self) -> List[VariantOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    def ranked(self, objective: Union[RankingObjective, str]) -> "ExperimentResult":
        """Re-rank by a different objective without recomputation."""
        objective = parse_objective(objective)
        return ExperimentResult(
            outcomes=order_outcomes(self.outcomes, objective),
            objective=objective,
            variant_count=self.variant_count,
        )

    def best(self, objective: Union[RankingObjective, str]) -> Optional[VariantOutcome]:
        ranked = rank(self.outcomes, objective)
        return ranked[0] if ranked else None


class ExperimentRunner:
    """Fans variants of a base input out to the appraisal calculator."""

    def __init__(
        self,
        config: EngineConfig = DEFAULT_CONFIG,
        calculator: Optional[AppraisalCalculator] = None,
    ):
        self.config = config
        self.calculator = calculator or AppraisalCalculator(config)

    def _run_variant(
        self, base: LoanInput, index: int, overrides: Dict[str, Any]
    ) -> VariantOutcome:
        variant = None
        try:
            variant = base.with_overrides(**overrides)
            model = self.calculator.calculate(variant)
        except AppraisalError as e:
            logger.warning("Variant %d %s failed: %s", index, overrides, e)
            return VariantOutcome(
                index=index,
                overrides=overrides,
                loan_input=variant,
                error=str(e),
                error_type=type(e).__name__,
                error_field=getattr(e, "field", None),
            )
        return VariantOutcome(
            index=index, overrides=overrides, loan_input=variant, model=model
        )

    def run(self, plan: ExperimentPlan) -> ExperimentResult:
        """
        Run every variant of the plan.

        Raises:
            InvalidInputError: if the plan itself is malformed
            ExperimentTooLargeError: if the variant count exceeds the
                configured cap; raised before any variant is computed
        """
        plan.validate()
        count = plan.variant_count
        limit = self.config.max_experiment_variants
        if count > limit:
            raise ExperimentTooLargeError(count, limit)

        logger.info(
            "Running experiment: %d variants over %s",
            count,
            [axis.field for axis in plan.axes] or "base input",
        )

        combinations = list(plan.combinations())
        slots: List[Optional[VariantOutcome]] = [None] * count

        workers = min(self.config.max_workers, count)
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {
                    pool.submit(self._run_variant, plan.base, index, overrides): index
                    for index, overrides in enumerate(combinations)
                }
                for future in as_completed(futures):
                    slots[futures[future]] = future.result()
        else:
            for index, overrides in enumerate(combinations):
                slots[index] = self._run_variant(plan.base, index, overrides)

        result = ExperimentResult(
            outcomes=order_outcomes(slots, plan.objective),
            objective=plan.objective,
            variant_count=count,
        )
        logger.info(
            "Experiment finished: %d succeeded, %d failed",
            len(result.successes),
            len(result.failures),
        )
        return result


def run_experiment(
    plan: ExperimentPlan, config: EngineConfig = DEFAULT_CONFIG
) -> ExperimentResult:
    """Run an experiment plan with the given (or default) configuration."""
    return ExperimentRunner(config).run(plan)
