"""
Loan Input

Immutable value object describing one appraisal scenario.
"""

import dataclasses
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from loan_appraisal.calculations.errors import (
    InvalidInputError,
    InvalidRateError,
    InvalidTermError,
)
from loan_appraisal.calculations.money import ZERO, to_decimal

# Fields an experiment axis may vary
OVERRIDABLE_FIELDS = (
    "purchase_price",
    "annual_interest_rate",
    "loan_term_months",
    "down_payment",
)

_DECIMAL_FIELDS = (
    "purchase_price",
    "total_costs",
    "annual_interest_rate",
    "down_payment",
    "projected_annual_rental_income",
)


@dataclass(frozen=True)
class LoanInput:
    """
    One appraisal scenario.

    Numeric fields are coerced to Decimal on construction but not validated;
    call validate() (the calculator does) before doing numeric work.

    Attributes:
        purchase_price: Purchase price of the asset
        total_costs: Acquisition and closing costs financed on top of price
        loan_term_months: Number of monthly repayment periods
        annual_interest_rate: Nominal annual rate as decimal (0.06 for 6%)
        predicted_start_date: Date of the first repayment period
        down_payment: Cash contributed by the borrower
        projected_annual_rental_income: Expected gross annual rent, if any
    """

    purchase_price: Decimal
    total_costs: Decimal
    loan_term_months: int
    annual_interest_rate: Decimal
    predicted_start_date: date
    down_payment: Decimal = ZERO
    projected_annual_rental_income: Optional[Decimal] = None

    def __post_init__(self):
        for name in _DECIMAL_FIELDS:
            value = getattr(self, name)
            if value is None and name == "projected_annual_rental_income":
                continue
            if value is None:
                raise InvalidInputError(name, "is required")
            try:
                object.__setattr__(self, name, to_decimal(value))
            except (TypeError, ValueError) as e:
                raise InvalidInputError(name, str(e)) from e

    @property
    def loan_principal(self) -> Decimal:
        """Financed amount: price plus costs less the down payment."""
        return derive_principal(self)

    def validate(self) -> "LoanInput":
        """
        Check domain invariants, raising on the first violated field.

        Returns:
            self, so calls can be chained

        Raises:
            InvalidInputError: naming the offending field
        """
        for name in _DECIMAL_FIELDS:
            value = getattr(self, name)
            if value is not None and not value.is_finite():
                raise InvalidInputError(name, "must be a finite amount")

        if self.purchase_price <= 0:
            raise InvalidInputError("purchase_price", "must be positive")
        if self.total_costs < 0:
            raise InvalidInputError("total_costs", "must not be negative")
        if self.down_payment < 0:
            raise InvalidInputError("down_payment", "must not be negative")
        if (
            self.projected_annual_rental_income is not None
            and self.projected_annual_rental_income < 0
        ):
            raise InvalidInputError(
                "projected_annual_rental_income", "must not be negative"
            )

        if isinstance(self.loan_term_months, bool) or not isinstance(
            self.loan_term_months, int
        ):
            raise InvalidTermError("must be a whole number of months")
        if self.loan_term_months <= 0:
            raise InvalidTermError("must be positive")

        if not (0 <= self.annual_interest_rate < 1):
            raise InvalidRateError("must be at least 0 and less than 1")

        if not isinstance(self.predicted_start_date, date):
            raise InvalidInputError("predicted_start_date", "must be a date")

        if self.down_payment > self.purchase_price + self.total_costs:
            raise InvalidInputError(
                "down_payment",
                "exceeds purchase price plus total costs (negative principal)",
            )
        return self

    def with_overrides(self, **overrides: Any) -> "LoanInput":
        """Return a copy with the named fields replaced."""
        for name in overrides:
            if name not in OVERRIDABLE_FIELDS:
                raise InvalidInputError(name, "is not an overridable field")
        return dataclasses.replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Logical shape for serialization by the service layer."""
        return {
            "purchase_price": self.purchase_price,
            "total_costs": self.total_costs,
            "loan_term_months": self.loan_term_months,
            "annual_interest_rate": self.annual_interest_rate,
            "predicted_start_date": self.predicted_start_date,
            "down_payment": self.down_payment,
            "projected_annual_rental_income": self.projected_annual_rental_income,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoanInput":
        start = data["predicted_start_date"]
        if isinstance(start, str):
            start = date.fromisoformat(start)
        return cls(
            purchase_price=data["purchase_price"],
            total_costs=data.get("total_costs", ZERO),
            loan_term_months=data["loan_term_months"],
            annual_interest_rate=data["annual_interest_rate"],
            predicted_start_date=start,
            down_payment=data.get("down_payment", ZERO),
            projected_annual_rental_income=data.get("projected_annual_rental_income"),
        )


def derive_principal(loan_input: LoanInput) -> Decimal:
    """Calculate financed principal (may be negative for invalid inputs)."""
    return loan_input.purchase_price + loan_input.total_costs - loan_input.down_payment
