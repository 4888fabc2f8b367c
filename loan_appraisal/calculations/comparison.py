"""
Result Comparison

Ranks calculated models by an objective. Sorting is stable: ties keep the
order in which results were supplied.
"""

import enum
from typing import Any, Iterable, List, Union

from loan_appraisal.calculations.errors import InvalidInputError


class RankingObjective(str, enum.Enum):
    """Objectives a result set can be ranked by."""

    min_total_repayment = "min_total_repayment"
    min_total_interest = "min_total_interest"
    max_dscr = "max_dscr"


def parse_objective(objective: Union[RankingObjective, str]) -> RankingObjective:
    """Resolve an objective name, raising InvalidInputError if unknown."""
    try:
        return RankingObjective(objective)
    except ValueError:
        choices = ", ".join(o.value for o in RankingObjective)
        raise InvalidInputError(
            "objective", f"unknown objective {objective!r}, expected one of {choices}"
        ) from None


def _model_of(item: Any):
    # Accept both CalculatedModel and VariantOutcome
    return getattr(item, "model", item)


def _sort_key(objective: RankingObjective):
    if objective is RankingObjective.min_total_repayment:
        return lambda item: _model_of(item).total_repayment
    if objective is RankingObjective.min_total_interest:
        return lambda item: _model_of(item).total_interest_paid

    def dscr_key(item):
        dscr = _model_of(item).debt_service_coverage_ratio
        # Models without DSCR rank last
        if dscr is None:
            return (1, 0)
        return (0, -dscr)

    return dscr_key


def rank(results: Iterable[Any], objective: Union[RankingObjective, str]) -> List[Any]:
    """
    Order results by an objective without recomputing them.

    Args:
        results: CalculatedModels, or experiment outcomes carrying a model
        objective: RankingObjective or its name

    Returns:
        New list in ranked order; outcomes without a model are dropped
    """
    objective = parse_objective(objective)
    ranked = [item for item in results if _model_of(item) is not None]
    return sorted(ranked, key=_sort_key(objective))
