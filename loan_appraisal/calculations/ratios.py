"""
Loan Ratio Calculations

Derives leverage and coverage ratios from a loan input and its financing.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Optional

from loan_appraisal.calculations.amortization import (
    DECIMAL_PRECISION,
    AmortizationSchedule,
)
from loan_appraisal.calculations.config import DEFAULT_CONFIG, EngineConfig
from loan_appraisal.calculations.errors import DivisionUndefinedError
from loan_appraisal.calculations.inputs import LoanInput
from loan_appraisal.calculations.money import ZERO, quantize_ratio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoanRatios:
    """Leverage and coverage ratios. None means the ratio is undefined."""

    loan_to_value: Optional[Decimal]
    loan_to_cost: Optional[Decimal]
    loan_to_purchase_price: Optional[Decimal]
    debt_service_coverage: Optional[Decimal] = None


def divide(numerator: Decimal, denominator: Decimal, ratio: str, places: int) -> Decimal:
    """
    Divide two amounts into a rounded ratio.

    Raises:
        DivisionUndefinedError: if the denominator is zero
    """
    if denominator == 0:
        raise DivisionUndefinedError(ratio)
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return quantize_ratio(numerator / denominator, places)


def _optional_ratio(
    numerator: Decimal, denominator: Decimal, ratio: str, places: int
) -> Optional[Decimal]:
    try:
        return divide(numerator, denominator, ratio, places)
    except DivisionUndefinedError as e:
        logger.debug("%s", e)
        return None


def annual_debt_service(
    schedule: AmortizationSchedule, periods_per_year: int = 12
) -> Decimal:
    """Sum of payments over the first year (all periods if shorter)."""
    end = min(periods_per_year, len(schedule))
    return schedule.debt_service(1, end)


def compute_ratios(
    loan_input: LoanInput,
    principal: Decimal,
    schedule: Optional[AmortizationSchedule] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> LoanRatios:
    """
    Calculate LTV, LTC, LTP and (when rental income is known) DSCR.

    LTV and LTP are both principal over purchase price today. They are kept
    as separate computations because an appraised value may later replace
    the purchase price in LTV.

    Args:
        loan_input: Validated loan input
        principal: Financed principal
        schedule: Amortization schedule, required for DSCR
        config: Engine configuration

    Returns:
        LoanRatios, with None for any ratio whose denominator is zero
    """
    places = config.ratio_places

    if principal == 0:
        # Fully cash-funded project
        ltv = ltc = ltp = quantize_ratio(ZERO, places)
    else:
        value = loan_input.purchase_price
        ltv = _optional_ratio(principal, value, "loan_to_value", places)
        ltc = _optional_ratio(principal, loan_input.total_costs, "loan_to_cost", places)
        ltp = _optional_ratio(
            principal, loan_input.purchase_price, "loan_to_purchase_price", places
        )

    dscr = None
    income = loan_input.projected_annual_rental_income
    if income is not None and schedule is not None:
        debt_service = annual_debt_service(schedule, config.periods_per_year)
        dscr = _optional_ratio(income, debt_service, "debt_service_coverage", places)

    return LoanRatios(
        loan_to_value=ltv,
        loan_to_cost=ltc,
        loan_to_purchase_price=ltp,
        debt_service_coverage=dscr,
    )
