"""
Loan Amortization Calculations

Builds fixed-payment amortization schedules in fixed-point currency.

Rate convention: the annual rate is converted to a periodic rate by simple
division by the number of periods per year (12, monthly compounding).
Callers needing a different compounding basis must pre-convert the rate.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, localcontext
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

from loan_appraisal.calculations.config import DEFAULT_CONFIG, EngineConfig
from loan_appraisal.calculations.errors import (
    InvalidPrincipalError,
    InvalidRateError,
    InvalidTermError,
)
from loan_appraisal.calculations.money import ZERO, Number, quantize_money, to_decimal

logger = logging.getLogger(__name__)

DECIMAL_PRECISION = 28


@dataclass(frozen=True)
class AmortizationPeriod:
    """A single repayment period."""

    period_index: int
    payment_date: Optional[date]
    opening_balance: Decimal
    payment: Decimal
    interest_portion: Decimal
    principal_portion: Decimal
    closing_balance: Decimal


@dataclass(frozen=True)
class AmortizationSchedule:
    """Ordered repayment periods for one loan."""

    principal: Decimal
    annual_rate: Decimal
    periodic_rate: Decimal
    periodic_payment: Decimal
    periods: Tuple[AmortizationPeriod, ...]

    def __len__(self) -> int:
        return len(self.periods)

    def __iter__(self):
        return iter(self.periods)

    def __getitem__(self, index):
        return self.periods[index]

    @property
    def term_months(self) -> int:
        return len(self.periods)

    @property
    def total_interest(self) -> Decimal:
        return sum((p.interest_portion for p in self.periods), ZERO)

    @property
    def total_principal(self) -> Decimal:
        return sum((p.principal_portion for p in self.periods), ZERO)

    @property
    def total_repayment(self) -> Decimal:
        return sum((p.payment for p in self.periods), ZERO)

    def debt_service(self, start_period: int, end_period: int) -> Decimal:
        """Calculate total debt service (P+I) for a range of periods."""
        return sum(
            (
                p.payment
                for p in self.periods
                if start_period <= p.period_index <= end_period
            ),
            ZERO,
        )

    def to_rows(self):
        """Schedule as a list of plain dicts."""
        return [
            {
                "period": p.period_index,
                "payment_date": p.payment_date,
                "opening_balance": p.opening_balance,
                "payment": p.payment,
                "interest": p.interest_portion,
                "principal": p.principal_portion,
                "closing_balance": p.closing_balance,
            }
            for p in self.periods
        ]


def _validate_terms(principal: Decimal, annual_rate: Decimal, term_months) -> None:
    if isinstance(term_months, bool) or not isinstance(term_months, int):
        raise InvalidTermError("must be a whole number of months")
    if term_months <= 0:
        raise InvalidTermError(f"must be positive, got {term_months}")
    if annual_rate < 0 or annual_rate >= 1:
        raise InvalidRateError(f"must be at least 0 and less than 1, got {annual_rate}")
    if principal < 0:
        raise InvalidPrincipalError(f"must not be negative, got {principal}")


def periodic_rate(annual_rate: Number, periods_per_year: int = 12) -> Decimal:
    """Convert an annual nominal rate to a per-period rate."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return to_decimal(annual_rate) / Decimal(periods_per_year)


def calculate_payment(
    principal: Number,
    annual_rate: Number,
    term_months: int,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Decimal:
    """
    Calculate the constant periodic payment.

    Matches Excel's PMT() function, rounded to the currency unit:

        payment = P * i * (1 + i)^n / ((1 + i)^n - 1)

    When the rate is zero, or too small to move (1 + i)^n at working
    precision, the payment is simply P / n.

    Args:
        principal: Loan principal amount
        annual_rate: Annual interest rate as decimal (e.g., 0.05 for 5%)
        term_months: Number of periods

    Returns:
        Periodic payment in fixed-point currency

    Raises:
        InvalidTermError, InvalidRateError, InvalidPrincipalError
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    _validate_terms(principal, annual_rate, term_months)

    rate = periodic_rate(annual_rate, config.periods_per_year)

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        factor = (1 + rate) ** term_months
        # Rates below working precision leave the factor at exactly one
        if rate == 0 or factor == 1:
            payment = principal / Decimal(term_months)
        else:
            payment = principal * rate * factor / (factor - 1)

    return quantize_money(payment, config.currency_places)


def calculate_remaining_balance(
    principal: Number,
    annual_rate: Number,
    term_months: int,
    payments_completed: int,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Decimal:
    """Calculate remaining loan balance after N payments."""
    schedule = compute_schedule(principal, annual_rate, term_months, config=config)
    if payments_completed <= 0:
        return schedule.principal
    if payments_completed >= len(schedule):
        return ZERO
    return schedule[payments_completed - 1].closing_balance


def compute_schedule(
    principal: Number,
    annual_rate: Number,
    term_months: int,
    start_date: Optional[date] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AmortizationSchedule:
    """
    Generate a fully-amortizing schedule.

    Each period's interest is the opening balance times the periodic rate,
    rounded to the currency unit. The final period's principal portion is
    the remaining opening balance, so the schedule always closes at exactly
    zero and rounding drift is absorbed there.

    Args:
        principal: Loan principal amount
        annual_rate: Annual interest rate as decimal
        term_months: Number of periods
        start_date: Date of first payment, optional
        config: Engine configuration

    Returns:
        AmortizationSchedule with exactly term_months periods

    Raises:
        InvalidTermError: term_months <= 0
        InvalidRateError: annual_rate < 0 or >= 1
        InvalidPrincipalError: principal < 0
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    _validate_terms(principal, annual_rate, term_months)

    places = config.currency_places
    principal = quantize_money(principal, places)
    rate = periodic_rate(annual_rate, config.periods_per_year)
    payment = calculate_payment(principal, annual_rate, term_months, config)

    periods = []
    balance = principal

    for index in range(1, term_months + 1):
        period_date = None
        if start_date is not None:
            period_date = start_date + relativedelta(months=index - 1)

        interest = quantize_money(balance * rate, places)

        if index == term_months:
            # Absorb rounding drift in the last period
            principal_pmt = balance
        else:
            principal_pmt = min(payment - interest, balance)

        closing = balance - principal_pmt

        periods.append(
            AmortizationPeriod(
                period_index=index,
                payment_date=period_date,
                opening_balance=balance,
                payment=interest + principal_pmt,
                interest_portion=interest,
                principal_portion=principal_pmt,
                closing_balance=closing,
            )
        )
        balance = closing

    logger.debug(
        "Built %d-period schedule: principal=%s rate=%s payment=%s",
        term_months,
        principal,
        annual_rate,
        payment,
    )

    return AmortizationSchedule(
        principal=principal,
        annual_rate=annual_rate,
        periodic_rate=rate,
        periodic_payment=payment,
        periods=tuple(periods),
    )
