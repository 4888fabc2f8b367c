"""
Appraisal Engine Errors

Exception taxonomy raised by the calculation engine.
"""

from typing import Optional


class AppraisalError(Exception):
    """Base class for all calculation engine errors."""


class InvalidInputError(AppraisalError):
    """A loan input violates a domain invariant."""

    def __init__(self, field: Optional[str], message: str):
        self.field = field
        self.message = message
        if field:
            super().__init__(f"{field}: {message}")
        else:
            super().__init__(message)


class InvalidRateError(InvalidInputError):
    """Annual interest rate is outside [0, 1)."""

    def __init__(self, message: str, field: str = "annual_interest_rate"):
        super().__init__(field, message)


class InvalidTermError(InvalidInputError):
    """Loan term is not a positive number of periods."""

    def __init__(self, message: str, field: str = "loan_term_months"):
        super().__init__(field, message)


class InvalidPrincipalError(InvalidInputError):
    """Financed principal is negative."""

    def __init__(self, message: str, field: str = "principal"):
        super().__init__(field, message)


class DivisionUndefinedError(AppraisalError):
    """A ratio denominator is zero. Surfaces as a null ratio, never fatal."""

    def __init__(self, ratio: str):
        self.ratio = ratio
        super().__init__(f"{ratio} is undefined: denominator is zero")


class ExperimentTooLargeError(AppraisalError):
    """Experiment plan expands to more variants than the configured cap."""

    def __init__(self, variant_count: int, limit: int):
        self.variant_count = variant_count
        self.limit = limit
        super().__init__(
            f"Experiment has {variant_count} variants, limit is {limit}"
        )
