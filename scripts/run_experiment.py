"""
Run a rate x term sweep for a sample loan and print the ranked results.

Usage:
    python scripts/run_experiment.py [objective]

objective is one of min_total_repayment, min_total_interest, max_dscr
(default min_total_interest).
"""
import sys
import os
from datetime import date
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loan_appraisal.calculations import (
    ExperimentAxis,
    ExperimentPlan,
    ExperimentRunner,
    LoanInput,
)
from loan_appraisal.config import get_settings


def main():
    objective = sys.argv[1] if len(sys.argv) > 1 else "min_total_interest"

    base = LoanInput(
        purchase_price=Decimal("400000"),
        total_costs=Decimal("12000"),
        loan_term_months=360,
        annual_interest_rate=Decimal("0.06"),
        predicted_start_date=date(2025, 1, 1),
        down_payment=Decimal("80000"),
        projected_annual_rental_income=Decimal("36000"),
    )
    plan = ExperimentPlan(
        base=base,
        axes=[
            ExperimentAxis("annual_interest_rate", ["0.05", "0.055", "0.06", "0.065"]),
            ExperimentAxis("loan_term_months", [180, 240, 360]),
        ],
        objective=objective,
    )

    result = ExperimentRunner(get_settings().engine_config()).run(plan)

    print(f"Ranked by {result.objective.value} ({result.variant_count} variants)\n")
    print(f"{'Rate':>7} {'Term':>5} {'Payment':>11} {'Interest':>13} {'Repayment':>13} {'DSCR':>6}")
    for outcome in result:
        variant = outcome.loan_input
        if not outcome.succeeded:
            print(f"{outcome.overrides}: FAILED ({outcome.error})")
            continue
        model = outcome.model
        dscr = model.debt_service_coverage_ratio
        print(
            f"{variant.annual_interest_rate:>7.2%} "
            f"{variant.loan_term_months:>5} "
            f"{model.periodic_payment:>11,.2f} "
            f"{model.total_interest_paid:>13,.2f} "
            f"{model.total_repayment:>13,.2f} "
            f"{(f'{dscr:.2f}' if dscr is not None else '-'):>6}"
        )


if __name__ == "__main__":
    main()
